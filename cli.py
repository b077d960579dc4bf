"""
Command line interface for the hessen-szene to Webflow sync.

    hessen-szene-sync sync [--url URL] [--publish] [--upload-images]
    hessen-szene-sync check-fields

Credentials are read from the same environment variables as the
scheduled Lambda (WEBFLOW_API_TOKEN, WEBFLOW_COLLECTION_ID, WEBFLOW_SITE_ID).
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

from lambda_function import setup_logging
from processor.config import DEFAULT_SOURCE_URL, SyncOptions
from processor.exceptions import ConfigError, FetchError, RemoteAPIError
from storage.webflow_client import WebflowClient
from sync_runner import run_sync

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EVENTS_FAILED = 2


def _cmd_sync(args: argparse.Namespace) -> int:
    try:
        options = SyncOptions.from_env()
        if args.publish:
            options.auto_publish = True
        if args.upload_images:
            options.upload_images = True

        report = run_sync(args.url, options)
    except (ConfigError, FetchError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return EXIT_EVENTS_FAILED if report.failed else EXIT_OK


def _text_like_fields(fields: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [f for f in fields if f.get('type') in ('PlainText', 'RichText')]


def _cmd_check_fields(args: argparse.Namespace) -> int:
    """
    Print the collection's fields so the payload slugs can be checked
    against what the collection actually defines.
    """
    try:
        options = SyncOptions.from_env()
        options.validate()
        client = WebflowClient(options.api_token, site_id=options.site_id, timeout=options.request_timeout)
        schema = client.get_collection_schema(options.collection_id)
    except (ConfigError, RemoteAPIError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    print(f"Collection: {schema.get('displayName') or schema.get('name')} ({schema.get('id')})")

    fields = schema.get('fields') or []
    if not fields:
        print('No fields found in this collection.')
        return EXIT_OK

    for index, f in enumerate(fields, start=1):
        name = f.get('displayName') or f.get('name') or ''
        required = 'yes' if f.get('isRequired') else 'no'
        print(f"{index}. {name!r} slug={f.get('slug')!r} type={f.get('type') or 'N/A'} required={required}")

    print('\nText-like fields:')
    for f in _text_like_fields(fields):
        print(f"  - {f.get('slug')} ({f.get('type')})")

    slugs = [(f.get('slug') or '').lower() for f in fields]
    candidates = {
        'kategorie': [s for s in slugs if 'kategorie' in s],
        'tag': [s for s in slugs if 'tag' in s and 'kategorie' not in s],
    }
    for needle, matches in candidates.items():
        if matches:
            print(f"\nFields for {needle!r}: {', '.join(matches)}")
        else:
            print(f"\nNo field found for {needle!r}")

    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='hessen-szene-sync',
        description='Scrape hessen-szene.de events into a Webflow collection'
    )
    parser.add_argument('--log-level', default=os.environ.get('LOG_LEVEL', 'INFO'))
    sub = parser.add_subparsers(dest='command', required=True)

    p_sync = sub.add_parser('sync', help='Scrape the listing page and sync all events')
    p_sync.add_argument('--url', default=os.environ.get('SOURCE_URL') or DEFAULT_SOURCE_URL)
    p_sync.add_argument('--publish', action='store_true', help='Publish newly created items')
    p_sync.add_argument('--upload-images', action='store_true', help='Upload event images as assets')

    sub.add_parser('check-fields', help='List the field slugs of the target collection')
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    if args.command == 'sync':
        return _cmd_sync(args)
    return _cmd_check_fields(args)


if __name__ == '__main__':
    sys.exit(main())
