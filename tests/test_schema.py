"""
Tests for the schema layer.

Covers required/optional fields, URL and email formats, numeric bounds,
literal refinements, open mappings and the SchemaViolation path reporting.
"""

import copy

import pytest
from pydantic import ValidationError

from photo_harvest.errors import SchemaViolation
from photo_harvest.schema import (
    Session,
    User,
    ValidToken,
    WPLoginData,
    WPMediaItem,
    WPRestError,
    WPTaxonomies,
    WPTaxonomyTerms,
    WPUser,
    parse,
)


# ===================================================================
# Session / User
# ===================================================================

class TestSessionSchema:

    @pytest.mark.unit
    def test_email_is_optional(self):
        user = parse(User, {
            "avatar_url": "https://secure.gravatar.com/avatar/abc",
            "name": "Jane",
            "wp_url": "https://photos.harvest.blog",
        })
        assert user.email is None

    @pytest.mark.unit
    def test_session_requires_token(self, session):
        data = session.model_dump()
        del data["token"]
        with pytest.raises(SchemaViolation) as exc_info:
            parse(Session, data)
        assert exc_info.value.path == "token"
        assert exc_info.value.model == "Session"

    @pytest.mark.unit
    def test_rejects_bad_url(self, session):
        data = {**session.model_dump(), "api_url": "not a url"}
        with pytest.raises(SchemaViolation) as exc_info:
            parse(Session, data)
        assert exc_info.value.path == "api_url"

    @pytest.mark.unit
    def test_rejects_bad_email(self, session):
        data = {**session.model_dump(), "email": "nope"}
        with pytest.raises(SchemaViolation) as exc_info:
            parse(Session, data)
        assert exc_info.value.path == "email"

    @pytest.mark.unit
    def test_session_is_immutable(self, session):
        with pytest.raises(ValidationError):
            session.token = "other"

    @pytest.mark.unit
    def test_repr_hides_token(self, session):
        assert session.token not in repr(session)
        assert session.token not in str(session)

    @pytest.mark.unit
    def test_to_user_drops_credentials(self, session):
        user = session.to_user()
        assert not hasattr(user, "token")
        assert user.name == session.name


# ===================================================================
# Token validation shape
# ===================================================================

class TestValidToken:

    @pytest.mark.unit
    def test_accepts_exact_literals(self, valid_token_response):
        result = parse(ValidToken, valid_token_response)
        assert result.code == "jwt_auth_valid_token"
        assert result.data.status == 200

    @pytest.mark.unit
    def test_rejects_other_code(self):
        with pytest.raises(SchemaViolation) as exc_info:
            parse(ValidToken, {"code": "jwt_auth_invalid_token", "data": {"status": 200}})
        assert exc_info.value.path == "code"

    @pytest.mark.unit
    @pytest.mark.parametrize("status", [403, "200", 200.5, True])
    def test_rejects_other_embedded_status(self, status):
        with pytest.raises(SchemaViolation) as exc_info:
            parse(ValidToken, {"code": "jwt_auth_valid_token", "data": {"status": status}})
        assert exc_info.value.path == "data.status"


# ===================================================================
# WordPress entities
# ===================================================================

class TestWordPressSchemas:

    @pytest.mark.unit
    def test_login_data(self, wp_login_response):
        data = parse(WPLoginData, wp_login_response)
        assert data.user_nicename == "jane"

    @pytest.mark.unit
    def test_rest_error(self, wp_rest_error):
        error = parse(WPRestError, wp_rest_error)
        assert error.code == "rest_forbidden"
        assert error.data.status == 403

    @pytest.mark.unit
    def test_media_item_keeps_pass_through_fields(self, wp_media_response):
        item = parse(WPMediaItem, wp_media_response)
        assert item.source_url.endswith("harvest.jpg")
        assert item.model_extra["mime_type"] == "image/jpeg"

    @pytest.mark.unit
    def test_media_item_requires_source_url(self, wp_media_response):
        del wp_media_response["source_url"]
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPMediaItem, wp_media_response)
        assert exc_info.value.path == "source_url"

    @pytest.mark.unit
    def test_user_requires_avatar(self, wp_user_response):
        wp_user_response["avatar_urls"] = {}
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPUser, wp_user_response)
        assert exc_info.value.path == "avatar_urls"

    @pytest.mark.unit
    def test_user_id_lower_bound(self, wp_user_response):
        wp_user_response["id"] = 0
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPUser, wp_user_response)
        assert exc_info.value.path == "id"

    @pytest.mark.unit
    def test_user_nested_link_path(self, wp_user_response):
        wp_user_response["_links"]["self"][0]["href"] = "relative/path"
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPUser, wp_user_response)
        assert exc_info.value.path == "_links.self.0.href"

    @pytest.mark.unit
    def test_taxonomies_mapping(self, wp_taxonomies_response):
        taxonomies = parse(WPTaxonomies, wp_taxonomies_response)
        assert list(taxonomies) == ["media_category"]
        assert taxonomies["media_category"].items_url.endswith("/wp/v2/media_category")
        assert taxonomies["media_category"].hierarchical is True

    @pytest.mark.unit
    def test_terms_list(self, wp_terms_response):
        terms = parse(WPTaxonomyTerms, wp_terms_response)
        assert terms[0].slug == "garden"
        assert terms[0].parent == 0

    @pytest.mark.unit
    def test_terms_reject_non_list(self, wp_terms_response):
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPTaxonomyTerms, wp_terms_response[0])
        assert exc_info.value.path == "<root>"

    @pytest.mark.unit
    def test_parse_does_not_mutate_input(self, wp_user_response):
        before = copy.deepcopy(wp_user_response)
        parse(WPUser, wp_user_response)
        assert wp_user_response == before


# ===================================================================
# Email addresses
# ===================================================================

class TestEmailAddresses:

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["admin@mysite.local", "admin@wp.test", "o'neil+photos@harvest.blog"])
    def test_accepts_local_and_reserved_domains(self, wp_login_response, email):
        wp_login_response["user_email"] = email
        assert parse(WPLoginData, wp_login_response).user_email == email

    @pytest.mark.unit
    def test_keeps_address_as_sent(self, session):
        data = {**session.model_dump(), "email": "Jane@Example.COM"}
        assert parse(Session, data).email == "Jane@Example.COM"

    @pytest.mark.unit
    @pytest.mark.parametrize("email", ["nope", "jane@localhost", ".jane@harvest.blog", "ja..ne@harvest.blog", "jane@harvest"])
    def test_rejects_malformed(self, wp_login_response, email):
        wp_login_response["user_email"] = email
        with pytest.raises(SchemaViolation) as exc_info:
            parse(WPLoginData, wp_login_response)
        assert exc_info.value.path == "user_email"
