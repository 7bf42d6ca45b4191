"""
Photo Harvest — Schemas
=======================

Declarative shapes for every structure that crosses the network or storage
boundary: the session and user, the JWT-auth responses, and the WordPress
media, user, taxonomy and error objects.

Nothing decoded from the wire is trusted until it has gone through
:func:`parse`, which narrows a parsed-JSON value to its model or raises
:class:`~photo_harvest.errors.SchemaViolation` naming the offending path.

Usage:
    from photo_harvest.schema import Session, WPUser, parse

    user = parse(WPUser, body)
    session = Session(avatar_url=..., name=..., wp_url=..., api_url=..., token=...)
"""

from __future__ import annotations

import functools
import re
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from pydantic import (
    AfterValidator,
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    RootModel,
    StrictBool,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from photo_harvest.errors import SchemaViolation

T = TypeVar("T")

VALID_TOKEN_CODE = "jwt_auth_valid_token"

# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

_URL_ADAPTER = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    """Reject strings that are not absolute URLs, keeping the original text."""
    try:
        _URL_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise ValueError(f"invalid URL: {value!r}") from exc
    return value


URLStr = Annotated[StrictStr, AfterValidator(_check_url)]

_EMAIL_RE = re.compile(
    r"(?!\.)(?!.*\.\.)[A-Z0-9_'+\-.]*[A-Z0-9_+-]@(?:[A-Z0-9][A-Z0-9\-]*\.)+[A-Z]{2,}",
    re.IGNORECASE,
)


def _check_email(value: str) -> str:
    """Syntax check only; the address is kept exactly as sent."""
    if not _EMAIL_RE.fullmatch(value):
        raise ValueError(f"invalid email address: {value!r}")
    return value


EmailText = Annotated[StrictStr, AfterValidator(_check_email)]


class _Model(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _Frozen(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class User(_Frozen):
    """The authenticated identity, derived entirely from remote responses."""

    avatar_url: URLStr
    email: Optional[EmailText] = None
    name: StrictStr
    wp_url: URLStr


class Session(User):
    """An active authenticated context: a :class:`User` plus its credential."""

    api_url: URLStr
    token: StrictStr = Field(repr=False)

    def to_user(self) -> User:
        return User(
            avatar_url=self.avatar_url,
            email=self.email,
            name=self.name,
            wp_url=self.wp_url,
        )


# ---------------------------------------------------------------------------
# JWT-auth responses
# ---------------------------------------------------------------------------


class _StatusData(_Model):
    status: StrictInt


class ValidTokenData(_Model):
    status: StrictInt

    @field_validator("status")
    @classmethod
    def _must_be_200(cls, value: int) -> int:
        if value != 200:
            raise ValueError(f"embedded status must be 200, got {value}")
        return value


class ValidToken(_Model):
    """Affirmative answer of the token validation endpoint.

    Any other code or embedded status is an invalid token, not merely a
    different one.
    """

    code: StrictStr
    data: ValidTokenData

    @field_validator("code")
    @classmethod
    def _must_be_valid_code(cls, value: str) -> str:
        if value != VALID_TOKEN_CODE:
            raise ValueError(f"code must be {VALID_TOKEN_CODE!r}, got {value!r}")
        return value


class WPLoginData(_Model):
    user_email: EmailText
    user_display_name: StrictStr
    user_nicename: StrictStr
    token: StrictStr


class WPRestError(_Model):
    """Structured error body emitted by the WordPress REST API."""

    code: StrictStr
    message: StrictStr
    data: _StatusData


class DiscoveryAnswer(_Model):
    """Object form of the active discovery endpoint's answer."""

    api_url: URLStr


# ---------------------------------------------------------------------------
# WordPress entities
# ---------------------------------------------------------------------------


class WPItemString(_Model):
    raw: StrictStr
    rendered: StrictStr


class WPGuid(_Model):
    raw: URLStr
    rendered: URLStr


class WPMediaItem(BaseModel):
    """An uploaded attachment. Only ``source_url`` is consumed; the rest passes through."""

    model_config = ConfigDict(extra="allow")

    id: StrictInt
    date: StrictStr
    date_gmt: StrictStr
    caption: WPItemString
    description: WPItemString
    guid: WPGuid
    link: URLStr
    slug: StrictStr
    source_url: URLStr
    title: WPItemString


class WPLink(_Model):
    href: URLStr


class WPLinks(_Model):
    self_: List[WPLink] = Field(alias="self")
    collection: List[WPLink]


class WPTermLinks(WPLinks):
    about: List[WPLink]


class WPTaxonomyLinks(_Model):
    collection: List[WPLink]
    wp_items: List[WPLink] = Field(alias="wp:items")


class WPTaxonomy(_Model):
    hierarchical: StrictBool
    description: StrictStr
    name: StrictStr
    rest_base: StrictStr
    rest_namespace: StrictStr
    slug: StrictStr
    types: List[StrictStr]
    links: WPTaxonomyLinks = Field(alias="_links")

    @property
    def items_url(self) -> str:
        """URL of the term collection for this taxonomy."""
        return self.links.wp_items[0].href


class WPTaxonomies(RootModel[Dict[str, WPTaxonomy]]):
    """Taxonomies keyed by slug."""

    def __getitem__(self, slug: str) -> WPTaxonomy:
        return self.root[slug]

    def __iter__(self):
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


class WPTerm(_Model):
    id: StrictInt = Field(ge=1)
    count: StrictInt
    description: StrictStr
    link: StrictStr
    name: StrictStr
    slug: StrictStr
    taxonomy: StrictStr
    parent: StrictInt
    links: WPTermLinks = Field(alias="_links")


WPTaxonomyTerms = List[WPTerm]


class WPUser(_Model):
    avatar_urls: Dict[str, URLStr] = Field(min_length=1)
    description: StrictStr
    id: StrictInt = Field(ge=1)
    link: URLStr
    meta: Optional[Dict[str, Any]] = None
    name: StrictStr = Field(min_length=1)
    slug: StrictStr
    url: URLStr
    links: WPLinks = Field(alias="_links")


# ---------------------------------------------------------------------------
# Validation entry point
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def _adapter(shape: Any) -> TypeAdapter:
    return TypeAdapter(shape)


def _shape_name(shape: Any) -> str:
    return getattr(shape, "__name__", None) or str(shape)


def parse(shape: Type[T], value: Any) -> T:
    """Narrow *value* to *shape* or raise :class:`SchemaViolation`.

    *shape* may be a model class or any type pydantic can build an adapter
    for (``List[WPTerm]``, ``Dict[str, str]``...). The input is never mutated.
    """
    try:
        return _adapter(shape).validate_python(value)
    except ValidationError as exc:
        first = exc.errors()[0]
        path = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
        constraint = f"{first.get('msg', 'invalid')} ({first.get('type', 'unknown')})"
        raise SchemaViolation(path, constraint, model=_shape_name(shape)) from exc
