"""
Photo Harvest — Error Kinds
===========================

Every failure the core can surface to a caller. None of these are retried;
the calling layer decides how to present them (redirect to login, show the
remote message, etc.).
"""

from __future__ import annotations

from typing import Optional


class PhotoHarvestError(Exception):
    """Base exception for all Photo Harvest errors."""


class ConfigurationError(PhotoHarvestError):
    """Raised when required configuration is missing or malformed."""


class SchemaViolation(PhotoHarvestError):
    """Remote or stored data does not match its expected shape.

    Parameters
    ----------
    path : str
        Dotted location of the offending value (``"<root>"`` for the value
        itself).
    constraint : str
        Human-readable description of the failed constraint.
    """

    def __init__(self, path: str, constraint: str, model: str = ""):
        self.path = path
        self.constraint = constraint
        self.model = model
        prefix = f"{model}: " if model else ""
        super().__init__(f"{prefix}{path}: {constraint}")


class RemoteApiError(PhotoHarvestError):
    """Raised on a non-OK response from the remote API.

    ``code`` and ``message`` are only set when the remote answered with a
    structured WordPress error body; otherwise only the transport status and
    status text are known.
    """

    def __init__(
        self,
        status: int,
        status_text: str = "",
        code: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.status = status
        self.status_text = status_text
        self.code = code
        self.message = message
        if code is not None:
            text = f"HTTP {status} [{code}]: {message}"
        else:
            text = f"HTTP {status} {status_text}".rstrip()
        super().__init__(text)


class DiscoveryError(PhotoHarvestError):
    """The site is unreachable or does not expose its REST API location."""


class DiscoveryRequestError(DiscoveryError):
    """The discovery request itself returned a non-OK status."""

    def __init__(self, site_url: str, status: int, status_text: str = ""):
        self.site_url = site_url
        self.status = status
        super().__init__(
            f"Discovery request to {site_url} failed: HTTP {status} {status_text}".rstrip()
        )


class MissingLinkHeaderError(DiscoveryError):
    """The site root answered without any ``Link`` header."""


class NoApiRelationError(DiscoveryError):
    """A ``Link`` header is present but carries no REST API relation."""


class SessionInvalid(PhotoHarvestError):
    """A stored session cannot be decoded, decrypted, or validated."""
