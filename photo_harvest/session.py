"""
Photo Harvest — Session Lifecycle
=================================

Reading, validating, persisting and destroying the one session a client
holds. The session lives in a single HTTP-only cookie; the host framework's
cookie primitives are reached through the :class:`CookieJar` protocol.

Operations that would end request processing (no session, logout) do not
raise. They return an explicit :class:`Redirect` outcome and leave it to the
calling layer to realize it; :class:`Continue` carries the value otherwise.

Usage:
    manager = SessionManager(SessionCodec(config.secret), jar, config.cookie_options())

    outcome = await manager.verify(wp_client)
    if isinstance(outcome, Redirect):
        return redirect(outcome.location, outcome.status)
    session = outcome.value
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, Protocol, TypeVar, Union

from photo_harvest.errors import RemoteApiError, SchemaViolation, SessionInvalid
from photo_harvest.schema import Session, ValidToken, parse
from photo_harvest.session_codec import SessionCodec

logger = logging.getLogger("photo_harvest.session")

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SESSION_COOKIE_NAME = "session"
SESSION_MAX_AGE = 60 * 60 * 24 * 7
DEFAULT_LOGIN_PATH = "/login"


class SameSite(str, Enum):
    LAX = "lax"
    STRICT = "strict"


@dataclass(frozen=True)
class CookieOptions:
    """Attributes of the session cookie."""

    http_only: bool = True
    max_age: int = SESSION_MAX_AGE
    path: str = "/"
    same_site: SameSite = SameSite.LAX
    secure: bool = False

    def as_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Starlette's ``Response.set_cookie``."""
        return {
            "httponly": self.http_only,
            "max_age": self.max_age,
            "path": self.path,
            "samesite": self.same_site.value,
            "secure": self.secure,
        }


class CookieJar(Protocol):
    """Cookie primitives supplied by the host framework."""

    def get(self, name: str) -> Optional[str]: ...

    def set(self, name: str, value: str, options: CookieOptions) -> None: ...

    def delete(self, name: str, options: CookieOptions) -> None: ...


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Redirect:
    """Stop processing and send the client to *location*."""

    location: str
    status: int = 302


@dataclass(frozen=True)
class Continue(Generic[T]):
    """Keep processing with *value*."""

    value: T


Outcome = Union[Redirect, Continue[T]]


# ---------------------------------------------------------------------------
# Lifecycle operations
# ---------------------------------------------------------------------------


def validate_session(raw: str, codec: SessionCodec) -> Session:
    """Decode and validate a stored session without touching the network.

    Raises
    ------
    SessionInvalid
        When *raw* cannot be decoded, decrypted or validated.
    """
    return codec.decode(raw)


async def validate_token(session: Session, client) -> ValidToken:
    """Confirm with the remote API that the session's token is still accepted.

    *client* is a :class:`~photo_harvest.wordpress_client.WordPressClient`.
    """
    return await client.validate_token(session.api_url, session.token)


def logout(manager: SessionManager) -> Redirect:
    """Destroy the stored session and send the client to the login route."""
    return manager.logout()


class SessionManager:
    """Session storage for one client, on top of a :class:`CookieJar`.

    Parameters
    ----------
    codec : SessionCodec
        Encrypting serializer holding the process secret.
    jar : CookieJar
        The client's cookie storage.
    options : CookieOptions, optional
        Cookie attributes. Defaults to HTTP-only, lax, non-secure, 7 days.
    login_path : str
        Where :class:`Redirect` outcomes point.
    """

    def __init__(
        self,
        codec: SessionCodec,
        jar: CookieJar,
        options: Optional[CookieOptions] = None,
        login_path: str = DEFAULT_LOGIN_PATH,
    ) -> None:
        self.codec = codec
        self.jar = jar
        self.options = options or CookieOptions()
        self.login_path = login_path

    def get_session(self) -> Optional[Session]:
        """The stored session, or ``None`` when there is none.

        Raises
        ------
        SessionInvalid
            When a cookie is present but does not hold a valid session.
        """
        raw = self.jar.get(SESSION_COOKIE_NAME)
        if not raw:
            return None
        return validate_session(raw, self.codec)

    def set_session(self, session: Session) -> None:
        """Validate, encrypt and store *session*."""
        # model_construct() skips validation; never persist an unchecked session.
        parse(Session, session.model_dump())
        self.jar.set(SESSION_COOKIE_NAME, self.codec.encode(session), self.options)

    def delete_session(self) -> None:
        self.jar.delete(SESSION_COOKIE_NAME, self.options)

    def require_session(self) -> Outcome[Session]:
        """``Continue(session)``, or a redirect to login when it is missing or invalid."""
        try:
            session = self.get_session()
        except SessionInvalid as exc:
            logger.warning("Discarding invalid session cookie: %s", exc)
            self.delete_session()
            return Redirect(self.login_path)
        if session is None:
            return Redirect(self.login_path)
        return Continue(session)

    async def verify(self, client) -> Outcome[Session]:
        """Like :meth:`require_session`, and also check the token with the remote.

        A token the remote no longer accepts ends the session.
        """
        outcome = self.require_session()
        if isinstance(outcome, Redirect):
            return outcome
        try:
            await validate_token(outcome.value, client)
        except (RemoteApiError, SchemaViolation) as exc:
            if isinstance(exc, RemoteApiError) and exc.status == 0:
                raise
            logger.warning("Remote rejected session token for %s: %s", outcome.value.wp_url, exc)
            self.delete_session()
            return Redirect(self.login_path)
        return outcome

    def logout(self) -> Redirect:
        """Delete the stored session; the session must not be used afterwards."""
        self.delete_session()
        logger.info("Session destroyed")
        return Redirect(self.login_path)
