"""
Photo Harvest — REST Response Handler
=====================================

The single chokepoint every remote API response goes through. It branches on
success/failure, parses the JSON body, and hands successful bodies to a
caller-supplied validator that narrows them to the shape the caller wants.

Two failure kinds come out of here and callers must be able to tell them
apart:

* :class:`RemoteApiError` -- the remote said no (non-OK status).
* :class:`SchemaViolation` -- the remote said yes but the body does not have
  the promised shape.

Usage:
    from photo_harvest.rest import handle_response
    from photo_harvest.schema import WPMediaItem, parse

    async with session.request("POST", url, data=form) as resp:
        source_url = await handle_response(resp, lambda body: parse(WPMediaItem, body).source_url)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Mapping, Protocol, TypeVar

from photo_harvest.errors import RemoteApiError, SchemaViolation
from photo_harvest.schema import WPRestError, parse

logger = logging.getLogger("photo_harvest.rest")

T = TypeVar("T")


class ApiResponse(Protocol):
    """What the handler needs from an HTTP response (``aiohttp.ClientResponse`` fits)."""

    status: int
    reason: Any
    headers: Mapping[str, str]

    @property
    def ok(self) -> bool: ...

    async def text(self) -> str: ...


async def _read_body(response: ApiResponse) -> Any:
    raw = await response.text()
    return json.loads(raw)


async def _remote_error(response: ApiResponse) -> RemoteApiError:
    """Build the error for a non-OK response, preferring the remote's own body."""
    status_text = response.reason or ""
    try:
        body = await _read_body(response)
        error = parse(WPRestError, body)
    except (ValueError, SchemaViolation):
        logger.debug("Unstructured error body for HTTP %d", response.status)
        return RemoteApiError(response.status, status_text)
    return RemoteApiError(
        response.status,
        status_text,
        code=error.code,
        message=error.message,
    )


async def handle_response(response: ApiResponse, on_success: Callable[[Any], T]) -> T:
    """Interpret *response* and return ``on_success(body)`` for OK responses.

    Parameters
    ----------
    response : ApiResponse
        The HTTP response. Its body is read exactly once.
    on_success : callable
        Receives the parsed JSON body and returns the caller's result. Any
        :class:`SchemaViolation` it raises propagates unchanged.

    Raises
    ------
    RemoteApiError
        When ``response.ok`` is false. ``code``/``message`` are populated only
        if the body is a well-formed WordPress error.
    SchemaViolation
        When a successful body is not JSON or does not match the caller's shape.
    """
    if not response.ok:
        raise await _remote_error(response)

    try:
        body = await _read_body(response)
    except ValueError as exc:
        raise SchemaViolation("<body>", f"malformed JSON ({exc})") from exc

    return on_success(body)
