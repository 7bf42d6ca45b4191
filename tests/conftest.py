"""
Shared fixtures for the Photo Harvest test suite.

Provides WordPress response payloads and mock aiohttp objects so that all
tests run WITHOUT any external services.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from multidict import CIMultiDict

from photo_harvest.schema import Session


SITE_URL = "https://photos.harvest.blog"
API_URL = "https://photos.harvest.blog/wp-json"
TEST_SECRET = "test-secret-for-unit-tests-2026"


# ---------------------------------------------------------------------------
# HTTP mock fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_aiohttp_response():
    """Create a mock aiohttp response factory.

    ``json_data`` is serialized into the body unless ``text`` is given.
    """

    def _make(status=200, json_data=None, text=None, headers=None, reason=None):
        resp = MagicMock()
        resp.status = status
        resp.ok = status < 400
        resp.reason = reason if reason is not None else ("OK" if status < 400 else "Error")
        body = text if text is not None else json.dumps(json_data if json_data is not None else {})
        resp.text = AsyncMock(return_value=body)
        resp.headers = CIMultiDict(headers or {"Content-Type": "application/json"})
        return resp

    return _make


@pytest.fixture
def mock_session_factory():
    """Create a mock aiohttp session whose .request() yields the given responses in order.

    The code uses ``async with session.request(method, url, **kwargs) as resp``
    so ``session.request`` returns async context managers wrapping each response.
    """

    def _make(*responses):
        contexts = []
        for resp in responses:
            ctx = MagicMock()
            ctx.__aenter__ = AsyncMock(return_value=resp)
            ctx.__aexit__ = AsyncMock(return_value=False)
            contexts.append(ctx)

        session = MagicMock()
        session.request = MagicMock(side_effect=contexts)
        session.close = AsyncMock()
        session.closed = False
        return session

    return _make


# ---------------------------------------------------------------------------
# WordPress payload fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def wp_login_response():
    """JWT-auth token endpoint response."""
    return {
        "token": "eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9.test.signature",
        "user_email": "jane@harvest.blog",
        "user_nicename": "jane",
        "user_display_name": "Jane Doe",
    }


@pytest.fixture
def wp_user_response():
    """/wp/v2/users/me response."""
    return {
        "id": 1,
        "name": "Jane Doe",
        "url": SITE_URL,
        "description": "",
        "link": f"{SITE_URL}/author/jane/",
        "slug": "jane",
        "avatar_urls": {
            "24": "https://secure.gravatar.com/avatar/abc?s=24",
            "96": "https://secure.gravatar.com/avatar/abc?s=96",
            "48": "https://secure.gravatar.com/avatar/abc?s=48",
        },
        "meta": {},
        "_links": {
            "self": [{"href": f"{API_URL}/wp/v2/users/1"}],
            "collection": [{"href": f"{API_URL}/wp/v2/users"}],
        },
    }


@pytest.fixture
def wp_media_response():
    """/wp/v2/media upload response."""
    return {
        "id": 100,
        "date": "2026-02-14T10:00:00",
        "date_gmt": "2026-02-14T10:00:00",
        "guid": {
            "raw": f"{SITE_URL}/wp-content/uploads/2026/02/harvest.jpg",
            "rendered": f"{SITE_URL}/wp-content/uploads/2026/02/harvest.jpg",
        },
        "slug": "harvest",
        "status": "inherit",
        "type": "attachment",
        "link": f"{SITE_URL}/harvest/",
        "title": {"raw": "harvest", "rendered": "harvest"},
        "caption": {"raw": "", "rendered": ""},
        "description": {"raw": "", "rendered": "<p>harvest</p>"},
        "media_type": "image",
        "mime_type": "image/jpeg",
        "source_url": f"{SITE_URL}/wp-content/uploads/2026/02/harvest.jpg",
    }


@pytest.fixture
def valid_token_response():
    return {"code": "jwt_auth_valid_token", "data": {"status": 200}}


@pytest.fixture
def wp_taxonomies_response():
    """/wp/v2/taxonomies?type=attachment response."""
    return {
        "media_category": {
            "name": "Media Categories",
            "slug": "media_category",
            "description": "",
            "types": ["attachment"],
            "hierarchical": True,
            "rest_base": "media_category",
            "rest_namespace": "wp/v2",
            "_links": {
                "collection": [{"href": f"{API_URL}/wp/v2/taxonomies"}],
                "wp:items": [{"href": f"{API_URL}/wp/v2/media_category"}],
            },
        },
    }


@pytest.fixture
def wp_terms_response():
    """Term list of the media_category taxonomy."""
    return [
        {
            "id": 7,
            "count": 3,
            "description": "",
            "link": f"{SITE_URL}/media_category/garden/",
            "name": "Garden",
            "slug": "garden",
            "taxonomy": "media_category",
            "parent": 0,
            "_links": {
                "self": [{"href": f"{API_URL}/wp/v2/media_category/7"}],
                "collection": [{"href": f"{API_URL}/wp/v2/media_category"}],
                "about": [{"href": f"{API_URL}/wp/v2/taxonomies/media_category"}],
            },
        },
    ]


@pytest.fixture
def wp_rest_error():
    return {"code": "rest_forbidden", "message": "Forbidden", "data": {"status": 403}}


# ---------------------------------------------------------------------------
# Session fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def secret():
    return TEST_SECRET


@pytest.fixture
def session():
    """A fully valid session."""
    return Session(
        avatar_url="https://secure.gravatar.com/avatar/abc?s=96",
        email="jane@harvest.blog",
        name="Jane Doe",
        wp_url=SITE_URL,
        api_url=API_URL,
        token="eyJ0eXAiOiJKV1QiLCJhbGciOiJIUzI1NiJ9.test.signature",
    )


class MemoryCookieJar:
    """In-memory cookie jar recording the options of every write."""

    def __init__(self, cookies=None):
        self.cookies = dict(cookies or {})
        self.writes = []

    def get(self, name):
        return self.cookies.get(name)

    def set(self, name, value, options):
        self.cookies[name] = value
        self.writes.append(("set", name, options))

    def delete(self, name, options):
        self.cookies.pop(name, None)
        self.writes.append(("delete", name, options))


@pytest.fixture
def cookie_jar():
    return MemoryCookieJar()
