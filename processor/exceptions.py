"""Error types for the hessen-szene sync pipeline.

Error kinds:
- ConfigError: missing credentials or invalid settings (fatal, before any request)
- FetchError: network/HTTP failure fetching a page or image
- ParseError: a row or detail field could not be extracted (non-fatal)
- RemoteAPIError: non-2xx response from the Webflow API
"""
from typing import Optional


class SyncError(Exception):
    """Base exception for all sync pipeline errors."""


class ConfigError(SyncError):
    """Raised when required configuration is missing or invalid."""


class FetchError(SyncError):
    """Raised when a page or image cannot be retrieved."""

    def __init__(self, message: str, url: str = '', status_code: Optional[int] = None):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ParseError(SyncError):
    """Raised when a listing row cannot be extracted."""


class RemoteAPIError(SyncError):
    """Raised when the Webflow API rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500

    def __str__(self) -> str:
        msg = super().__str__()
        if self.status_code is not None:
            msg = f"{msg} (status {self.status_code})"
        return msg


class ImageDownloadError(RemoteAPIError, FetchError):
    """Raised when an image cannot be downloaded before uploading it as an asset."""

    def __init__(self, message: str, url: str = '', status_code: Optional[int] = None):
        RemoteAPIError.__init__(self, message, status_code=status_code)
        self.url = url
