"""
Tests for environment-driven configuration.
"""

import pytest

from photo_harvest.config import DEFAULT_MAX_FILE_SIZE, AppConfig
from photo_harvest.discovery import DEFAULT_DISCOVERY_PATH, DiscoveryMode
from photo_harvest.errors import ConfigurationError
from photo_harvest.session import SameSite


class TestFromEnv:

    @pytest.mark.unit
    def test_defaults(self, secret):
        config = AppConfig.from_env({"APP_SECRET": secret})
        assert config.secret == secret
        assert config.app_name == "Photo Harvest"
        assert config.max_file_size == DEFAULT_MAX_FILE_SIZE
        assert config.discovery_mode is DiscoveryMode.PASSIVE
        assert config.discovery_path == DEFAULT_DISCOVERY_PATH
        assert config.same_site is SameSite.LAX
        assert config.production is False
        assert config.login_path == "/login"

    @pytest.mark.unit
    def test_overrides(self, secret):
        config = AppConfig.from_env({
            "APP_SECRET": secret,
            "APP_NAME": "Garden Photos",
            "WP_URL": "https://photos.harvest.blog/",
            "PUBLIC_MAX_FILE_SIZE": "2048",
            "PHOTO_HARVEST_DISCOVERY": "ACTIVE",
            "PHOTO_HARVEST_SAMESITE": "strict",
            "NODE_ENV": "production",
            "PHOTO_HARVEST_HTTP_TIMEOUT": "2.5",
        })
        assert config.app_name == "Garden Photos"
        assert config.wp_url == "https://photos.harvest.blog"
        assert config.max_file_size == 2048
        assert config.discovery_mode is DiscoveryMode.ACTIVE
        assert config.http_timeout == 2.5
        options = config.cookie_options()
        assert options.same_site is SameSite.STRICT
        assert options.secure is True

    @pytest.mark.unit
    def test_photo_harvest_env_wins(self, secret):
        config = AppConfig.from_env({
            "APP_SECRET": secret,
            "PHOTO_HARVEST_ENV": "development",
            "NODE_ENV": "production",
        })
        assert config.production is False

    @pytest.mark.unit
    def test_missing_secret(self):
        with pytest.raises(ConfigurationError):
            AppConfig.from_env({})

    @pytest.mark.unit
    @pytest.mark.parametrize("key,value", [
        ("PUBLIC_MAX_FILE_SIZE", "ten"),
        ("PUBLIC_MAX_FILE_SIZE", "0"),
        ("PHOTO_HARVEST_HTTP_TIMEOUT", "-1"),
        ("PHOTO_HARVEST_DISCOVERY", "sniff"),
        ("PHOTO_HARVEST_SAMESITE", "none"),
    ])
    def test_invalid_values(self, secret, key, value):
        with pytest.raises(ConfigurationError):
            AppConfig.from_env({"APP_SECRET": secret, key: value})

    @pytest.mark.unit
    def test_repr_hides_secret(self, secret):
        assert secret not in repr(AppConfig.from_env({"APP_SECRET": secret}))
