"""
Photo Harvest — WordPress REST API Client
=========================================

Async client for the handful of WordPress REST endpoints Photo Harvest needs:
JWT-auth login and token validation, the current user's profile, media upload
and attachment taxonomy lookups. Every response goes through
:func:`photo_harvest.rest.handle_response` and is validated against its schema
before it is returned.

Calls are stateless with respect to credentials: the API URL and bearer token
are passed to each method, so one client can serve any session.

Usage:
    from photo_harvest.wordpress_client import WordPressClient

    async with WordPressClient() as wp:
        session = await wp.login("https://example.com", "jane", "s3cret")
        url = await wp.upload(session.api_url, session.token, form)

    # One-shot helpers open and close their own client
    from photo_harvest.wordpress_client import login, upload
    session = await login("https://example.com", "jane", "s3cret")
"""

from __future__ import annotations

import asyncio
import logging
import math
import mimetypes
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

import aiohttp

from photo_harvest.discovery import DEFAULT_DISCOVERY_PATH, DiscoveryMode, discover_api_url
from photo_harvest.errors import RemoteApiError
from photo_harvest.rest import handle_response
from photo_harvest.schema import (
    Session,
    ValidToken,
    WPLoginData,
    WPMediaItem,
    WPTaxonomies,
    WPTaxonomy,
    WPTaxonomyTerms,
    WPTerm,
    WPUser,
    parse,
)

logger = logging.getLogger("photo_harvest.wordpress_client")

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USER_AGENT = "PhotoHarvest/1.0"

TOKEN_ENDPOINT = "jwt-auth/v1/token"
TOKEN_VALIDATE_ENDPOINT = "jwt-auth/v1/token/validate"
USERS_ME_ENDPOINT = "wp/v2/users/me"
MEDIA_ENDPOINT = "wp/v2/media"
TAXONOMIES_ENDPOINT = "wp/v2/taxonomies"

DEFAULT_TIMEOUT = 30.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def pick_avatar_url(avatar_urls: Mapping[str, str]) -> str:
    """Return the URL registered under the numerically largest size key.

    Keys are sorted by numeric value, descending; the sort is stable so equal
    sizes keep their original order and the first one wins. Non-numeric and
    non-finite keys (``"nan"``, ``"inf"``) rank below every numeric one.
    """
    if not avatar_urls:
        raise ValueError("avatar_urls is empty")

    def _size(key: str) -> float:
        try:
            size = float(key)
        except ValueError:
            return float("-inf")
        return size if math.isfinite(size) else float("-inf")

    largest = sorted(avatar_urls, key=_size, reverse=True)[0]
    return avatar_urls[largest]


def build_upload_form(
    filename: str,
    content: Union[bytes, Any],
    content_type: Optional[str] = None,
    **fields: str,
) -> aiohttp.FormData:
    """Build the multipart body for a media upload.

    *content* may be bytes or a file-like object; aiohttp streams the latter.
    Extra *fields* (``title``, ``caption``, ``alt_text``...) are sent as plain
    form fields alongside the file.
    """
    if not content_type:
        content_type, _ = mimetypes.guess_type(filename)
    form = aiohttp.FormData()
    form.add_field(
        "file",
        content,
        filename=filename,
        content_type=content_type or "application/octet-stream",
    )
    for name, value in fields.items():
        if value is not None:
            form.add_field(name, value)
    return form


def _endpoint(api_url: str, path: str) -> str:
    return f"{api_url.rstrip('/')}/{path}"


def _clean_params(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop ``None`` values and render booleans the way WordPress expects."""
    if not params:
        return None
    cleaned: Dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        cleaned[key] = value
    return cleaned


def _source_url(body: Any) -> str:
    return parse(WPMediaItem, body).source_url


# ---------------------------------------------------------------------------
# WordPressClient
# ---------------------------------------------------------------------------


class WordPressClient:
    """
    Async WordPress REST API client.

    Parameters
    ----------
    timeout : float
        Total request timeout in seconds. Default 30.
    discovery_mode : DiscoveryMode
        How :meth:`login` locates the REST API. Default passive.
    discovery_path : str
        Endpoint used by active discovery.

    There is no retry: a failed call surfaces immediately.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        discovery_mode: DiscoveryMode = DiscoveryMode.PASSIVE,
        discovery_path: str = DEFAULT_DISCOVERY_PATH,
    ):
        self.timeout = timeout
        self.discovery_mode = DiscoveryMode(discovery_mode)
        self.discovery_path = discovery_path
        self._session: Optional[aiohttp.ClientSession] = None

    # -- Session management -------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # -- Core request -------------------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        on_success: Callable[[Any], T],
        *,
        token: Optional[str] = None,
        json_data: Optional[Dict[str, Any]] = None,
        data: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> T:
        """
        Issue one request and interpret its response.

        Raises
        ------
        RemoteApiError
            On a non-OK response, or with status 0 when the request never got
            an answer (connection refused, timeout...).
        SchemaViolation
            When a successful body does not match the expected shape.
        """
        session = await self._get_session()

        kwargs: Dict[str, Any] = {}
        if token is not None:
            kwargs["headers"] = {"Authorization": f"Bearer {token}"}
        if json_data is not None:
            kwargs["json"] = json_data
        if data is not None:
            kwargs["data"] = data
        cleaned = _clean_params(params)
        if cleaned is not None:
            kwargs["params"] = cleaned

        logger.debug("API %s %s", method.upper(), url)
        try:
            async with session.request(method, url, **kwargs) as resp:
                return await handle_response(resp, on_success)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.warning("Network error on %s %s: %s", method.upper(), url, type(exc).__name__)
            raise RemoteApiError(0, f"Network error: {exc}") from exc

    # -- Discovery & login --------------------------------------------------

    async def discover_api_url(self, site_url: str) -> str:
        """Resolve *site_url* to its REST API base URL."""
        session = await self._get_session()
        return await discover_api_url(
            session,
            site_url,
            mode=self.discovery_mode,
            discovery_path=self.discovery_path,
        )

    async def request_token(self, api_url: str, username: str, password: str) -> WPLoginData:
        """Exchange credentials for a JWT bearer token."""
        return await self._request(
            "POST",
            _endpoint(api_url, TOKEN_ENDPOINT),
            lambda body: parse(WPLoginData, body),
            json_data={"username": username, "password": password},
        )

    async def fetch_profile(self, api_url: str, token: str) -> WPUser:
        """Fetch the profile of the user owning *token*."""
        return await self._request(
            "POST",
            _endpoint(api_url, USERS_ME_ENDPOINT),
            lambda body: parse(WPUser, body),
            token=token,
        )

    async def login(self, site_url: str, username: str, password: str) -> Session:
        """
        Authenticate against *site_url* and assemble a session.

        Discovery, token exchange and profile lookup must all succeed; no
        session is returned otherwise.

        Returns
        -------
        Session
            Site URL, API URL, display name (nicename when empty), largest
            avatar, email and bearer token.
        """
        site_url = site_url.rstrip("/")
        api_url = await self.discover_api_url(site_url)
        login_data = await self.request_token(api_url, username, password)
        profile = await self.fetch_profile(api_url, login_data.token)

        session = Session(
            wp_url=site_url,
            api_url=api_url,
            name=login_data.user_display_name or login_data.user_nicename,
            avatar_url=pick_avatar_url(profile.avatar_urls),
            email=login_data.user_email,
            token=login_data.token,
        )
        logger.info("Logged in %s on %s", session.name, site_url)
        return session

    async def validate_token(self, api_url: str, token: str) -> ValidToken:
        """Ask the remote whether *token* is still accepted.

        The body must carry the exact confirmation code and an embedded status
        of 200; anything else raises :class:`SchemaViolation` even when the
        transport status was 200.
        """
        return await self._request(
            "POST",
            _endpoint(api_url, TOKEN_VALIDATE_ENDPOINT),
            lambda body: parse(ValidToken, body),
            token=token,
        )

    # -- Media ---------------------------------------------------------------

    async def upload(self, api_url: str, token: str, form_data: aiohttp.FormData) -> str:
        """Upload a multipart body to the media library and return its ``source_url``."""
        source_url = await self._request(
            "POST",
            _endpoint(api_url, MEDIA_ENDPOINT),
            _source_url,
            token=token,
            data=form_data,
        )
        logger.info("Uploaded media to %s: %s", api_url, source_url)
        return source_url

    # -- Taxonomies ----------------------------------------------------------

    async def get_taxonomies(self, api_url: str, token: str) -> WPTaxonomies:
        """Taxonomies registered for attachments, keyed by slug."""
        return await self._request(
            "GET",
            _endpoint(api_url, TAXONOMIES_ENDPOINT),
            lambda body: parse(WPTaxonomies, body),
            token=token,
            params={"type": "attachment"},
        )

    async def get_taxonomy_terms(
        self,
        taxonomy: Union[WPTaxonomy, str],
        token: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> List[WPTerm]:
        """Terms of *taxonomy* (a taxonomy object or its ``wp:items`` URL)."""
        url = taxonomy.items_url if isinstance(taxonomy, WPTaxonomy) else taxonomy
        return await self._request(
            "GET",
            url,
            lambda body: parse(WPTaxonomyTerms, body),
            token=token,
            params=params,
        )

    def __repr__(self) -> str:
        return f"WordPressClient(discovery={self.discovery_mode.value!r}, timeout={self.timeout})"


# ---------------------------------------------------------------------------
# Convenience functions
# ---------------------------------------------------------------------------


async def login(site_url: str, username: str, password: str, **client_kwargs: Any) -> Session:
    """One-shot :meth:`WordPressClient.login`."""
    async with WordPressClient(**client_kwargs) as wp:
        return await wp.login(site_url, username, password)


async def upload(api_url: str, token: str, form_data: aiohttp.FormData, **client_kwargs: Any) -> str:
    """One-shot :meth:`WordPressClient.upload`."""
    async with WordPressClient(**client_kwargs) as wp:
        return await wp.upload(api_url, token, form_data)


async def fetch_profile(api_url: str, token: str, **client_kwargs: Any) -> WPUser:
    """One-shot :meth:`WordPressClient.fetch_profile`."""
    async with WordPressClient(**client_kwargs) as wp:
        return await wp.fetch_profile(api_url, token)
