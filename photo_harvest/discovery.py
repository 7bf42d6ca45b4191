"""
Photo Harvest — REST API Discovery
==================================

Resolves a human-supplied WordPress site URL into the canonical REST API base
URL. Two strategies are supported:

* ``passive`` (default) -- ``HEAD`` the site root and read the
  ``Link: <...>; rel="https://api.w.org/"`` header WordPress emits on every
  page.
* ``active`` -- ``GET`` a discovery endpoint relative to the site URL that
  answers with the API base URL as a JSON string, or an object
  holding it under ``api_url``.

Usage:
    from photo_harvest.discovery import DiscoveryMode, discover_api_url

    api_url = await discover_api_url(http, "https://example.com")
"""

from __future__ import annotations

import asyncio
import logging
import re
from enum import Enum
from typing import Iterable

import aiohttp

from photo_harvest.errors import (
    DiscoveryError,
    DiscoveryRequestError,
    MissingLinkHeaderError,
    NoApiRelationError,
    RemoteApiError,
)
from photo_harvest.rest import handle_response
from photo_harvest.schema import DiscoveryAnswer, URLStr, parse

logger = logging.getLogger("photo_harvest.discovery")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

API_RELATION = "https://api.w.org/"

_API_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="' + re.escape(API_RELATION) + '"')

DEFAULT_DISCOVERY_PATH = "/wp-json/photo-harvest/v1/discover"


class DiscoveryMode(str, Enum):
    PASSIVE = "passive"
    ACTIVE = "active"


def _strip_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


# ---------------------------------------------------------------------------
# Link header parsing
# ---------------------------------------------------------------------------


def api_url_from_link_headers(site_url: str, values: Iterable[str]) -> str:
    """Extract the REST API base URL from the ``Link`` header values of *site_url*.

    Raises
    ------
    MissingLinkHeaderError
        When there is no ``Link`` header at all.
    NoApiRelationError
        When ``Link`` is present but no entry has the REST API relation.
    """
    values = [v for v in values if v]
    if not values:
        raise MissingLinkHeaderError(f"{site_url} did not send a Link header")

    match = _API_LINK_RE.search(", ".join(values))
    if match is None:
        raise NoApiRelationError(
            f"No REST API link found in the Link header of {site_url}. "
            "Is this a WordPress site?"
        )
    return _strip_slash(match.group(1))


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


async def discover_passive(http: aiohttp.ClientSession, site_url: str) -> str:
    """``HEAD`` *site_url* and read the API location from its ``Link`` header."""
    logger.debug("Discovery HEAD %s", site_url)
    try:
        async with http.request("HEAD", site_url) as resp:
            if not resp.ok:
                raise DiscoveryRequestError(site_url, resp.status, resp.reason or "")
            values = resp.headers.getall("Link", [])
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise DiscoveryError(f"{site_url} is unreachable: {exc}") from exc

    return api_url_from_link_headers(site_url, values)


def _api_url_from_body(body) -> str:
    if isinstance(body, dict):
        return _strip_slash(parse(DiscoveryAnswer, body).api_url)
    return _strip_slash(parse(URLStr, body))


async def discover_active(
    http: aiohttp.ClientSession,
    site_url: str,
    discovery_path: str = DEFAULT_DISCOVERY_PATH,
) -> str:
    """``GET`` the discovery endpoint of *site_url*; its JSON body is the API URL."""
    url = _strip_slash(site_url) + discovery_path
    logger.debug("Discovery GET %s", url)
    try:
        async with http.request("GET", url) as resp:
            return await handle_response(resp, _api_url_from_body)
    except RemoteApiError as exc:
        raise DiscoveryRequestError(url, exc.status, exc.status_text) from exc
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise DiscoveryError(f"{site_url} is unreachable: {exc}") from exc


async def discover_api_url(
    http: aiohttp.ClientSession,
    site_url: str,
    mode: DiscoveryMode = DiscoveryMode.PASSIVE,
    discovery_path: str = DEFAULT_DISCOVERY_PATH,
) -> str:
    """Resolve *site_url* to its REST API base URL using the configured strategy."""
    if DiscoveryMode(mode) is DiscoveryMode.ACTIVE:
        api_url = await discover_active(http, site_url, discovery_path)
    else:
        api_url = await discover_passive(http, site_url)
    logger.info("Discovered REST API for %s at %s", site_url, api_url)
    return api_url
