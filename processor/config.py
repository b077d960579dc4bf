"""Run configuration for the Webflow sync."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from processor.exceptions import ConfigError

DEFAULT_SOURCE_URL = 'https://www.hessen-szene.de/'

_TRUE_VALUES = ('1', 'true', 'yes', 'on')


@dataclass
class SyncOptions:
    """Credentials and tuning knobs for one sync run."""
    collection_id: str
    api_token: str
    site_id: str
    auto_publish: bool = False
    upload_images: bool = False
    image_field: str = 'main-image'
    delay_seconds: float = 1.0
    detail_delay: float = 1.0
    listing_timeout: int = 30
    request_timeout: int = 30

    def validate(self) -> None:
        """
        Check that the options are usable before any request is made.

        Raises:
            ConfigError: If a credential is missing or a timing value is invalid
        """
        missing = [
            name for name in ('collection_id', 'api_token', 'site_id')
            if not (getattr(self, name) or '').strip()
        ]
        if missing:
            raise ConfigError(f"Missing required options: {', '.join(missing)}")

        for name in ('listing_timeout', 'request_timeout'):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

        for name in ('delay_seconds', 'detail_delay'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name} must not be negative")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'SyncOptions':
        """
        Build options from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            SyncOptions object (not yet validated)

        Raises:
            ConfigError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        return cls(
            collection_id=env.get('WEBFLOW_COLLECTION_ID', ''),
            api_token=env.get('WEBFLOW_API_TOKEN', ''),
            site_id=env.get('WEBFLOW_SITE_ID', ''),
            auto_publish=parse_bool(env.get('AUTO_PUBLISH')),
            upload_images=parse_bool(env.get('UPLOAD_IMAGES')),
            image_field=env.get('WEBFLOW_IMAGE_FIELD') or 'main-image',
            delay_seconds=_parse_number(env, 'SYNC_DELAY_SECONDS', float, 1.0),
            detail_delay=_parse_number(env, 'DETAIL_DELAY_SECONDS', float, 1.0),
            listing_timeout=_parse_number(env, 'LISTING_TIMEOUT_SECONDS', int, 30),
            request_timeout=_parse_number(env, 'REQUEST_TIMEOUT_SECONDS', int, 30)
        )


def validate_source_url(url: str) -> str:
    """
    Check that the listing URL is an absolute http(s) URL.

    Raises:
        ConfigError: If the URL is missing or malformed
    """
    if not url or not isinstance(url, str):
        raise ConfigError('Invalid URL provided')

    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigError(f"Invalid URL format: {url}")
    return url


def parse_bool(value) -> bool:
    """Interpret an env or JSON payload value ("true", "0", True, None) as a flag."""
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in _TRUE_VALUES


def _parse_number(env: Mapping[str, str], name: str, kind, default):
    value = env.get(name)
    if value is None or value.strip() == '':
        return default
    try:
        return kind(value)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
