"""
Photo Harvest CLI
=================

Drive the session core from a terminal. ``login`` prints an encrypted session
string; the other commands read it back from ``--session-file`` or the
``PHOTO_HARVEST_SESSION`` environment variable.

Usage:
    python -m photo_harvest.cli login --site https://example.com --username jane > session.txt
    python -m photo_harvest.cli validate --session-file session.txt
    python -m photo_harvest.cli upload --session-file session.txt --path photo.jpg
    python -m photo_harvest.cli taxonomies --session-file session.txt

``APP_SECRET`` must be set; the password is read from ``WP_PASSWORD`` or
prompted for.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from photo_harvest.config import AppConfig
from photo_harvest.errors import PhotoHarvestError
from photo_harvest.schema import Session
from photo_harvest.session import validate_session, validate_token
from photo_harvest.session_codec import SessionCodec
from photo_harvest.wordpress_client import WordPressClient, build_upload_form

logger = logging.getLogger("photo_harvest.cli")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _client(config: AppConfig) -> WordPressClient:
    return WordPressClient(
        timeout=config.http_timeout,
        discovery_mode=config.discovery_mode,
        discovery_path=config.discovery_path,
    )


def _load_session(args: argparse.Namespace, codec: SessionCodec) -> Session:
    if args.session_file:
        raw = Path(args.session_file).read_text(encoding="utf-8").strip()
    else:
        raw = os.environ.get("PHOTO_HARVEST_SESSION", "")
    if not raw:
        raise PhotoHarvestError("No session given (use --session-file or PHOTO_HARVEST_SESSION)")
    return validate_session(raw, codec)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cli_login(args: argparse.Namespace, config: AppConfig, codec: SessionCodec) -> None:
    site = args.site or config.wp_url
    if not site:
        raise PhotoHarvestError("No site given (use --site or WP_URL)")
    password = os.environ.get("WP_PASSWORD") or getpass.getpass("WordPress password: ")
    async with _client(config) as wp:
        session = await wp.login(site, args.username, password)
    print(codec.encode(session))


async def _cli_validate(args: argparse.Namespace, config: AppConfig, codec: SessionCodec) -> None:
    session = _load_session(args, codec)
    async with _client(config) as wp:
        await validate_token(session, wp)
    _print_json({"valid": True, **session.to_user().model_dump(mode="json")})


async def _cli_upload(args: argparse.Namespace, config: AppConfig, codec: SessionCodec) -> None:
    session = _load_session(args, codec)
    path = Path(args.path)
    if not path.is_file():
        raise PhotoHarvestError(f"{path} is not a file")
    if path.stat().st_size > config.max_file_size:
        raise PhotoHarvestError(f"{path} exceeds the {config.max_file_size} byte limit")
    with open(path, "rb") as fh:
        form = build_upload_form(path.name, fh, title=args.title)
        async with _client(config) as wp:
            source_url = await wp.upload(session.api_url, session.token, form)
    _print_json({"source_url": source_url})


async def _cli_taxonomies(args: argparse.Namespace, config: AppConfig, codec: SessionCodec) -> None:
    session = _load_session(args, codec)
    async with _client(config) as wp:
        found = await wp.get_taxonomies(session.api_url, session.token)
        if args.terms:
            if args.terms not in found.root:
                raise PhotoHarvestError(f"Unknown taxonomy {args.terms!r}")
            terms = await wp.get_taxonomy_terms(found[args.terms], session.token)
            _print_json([term.model_dump(mode="json", by_alias=True) for term in terms])
        else:
            _print_json(found.model_dump(mode="json", by_alias=True))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="photo_harvest",
        description="Photo Harvest -- WordPress session and media upload tool",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    lp = sub.add_parser("login", help="Log in and print an encrypted session")
    lp.add_argument("--site", default=None, help="WordPress site URL (default: WP_URL)")
    lp.add_argument("--username", required=True, help="WordPress username")
    lp.set_defaults(func=_cli_login)

    vp = sub.add_parser("validate", help="Check a session and its token")
    vp.add_argument("--session-file", default=None, help="File holding the session string")
    vp.set_defaults(func=_cli_validate)

    up = sub.add_parser("upload", help="Upload a file to the media library")
    up.add_argument("--session-file", default=None, help="File holding the session string")
    up.add_argument("--path", required=True, help="File to upload")
    up.add_argument("--title", default=None, help="Media title")
    up.set_defaults(func=_cli_upload)

    tp = sub.add_parser("taxonomies", help="List attachment taxonomies or their terms")
    tp.add_argument("--session-file", default=None, help="File holding the session string")
    tp.add_argument("--terms", default=None, metavar="SLUG", help="List terms of this taxonomy")
    tp.set_defaults(func=_cli_taxonomies)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        config = AppConfig.from_env()
        codec = SessionCodec(config.secret)
        asyncio.run(args.func(args, config, codec))
    except PhotoHarvestError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
