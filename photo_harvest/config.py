"""
Photo Harvest — Configuration
=============================

Process-wide settings read once from the environment at start-up. The
encryption secret lives here and is handed explicitly to the session codec;
nothing else reads it from the environment.

Environment:
    APP_SECRET                    -- session encryption secret (required)
    APP_NAME                      -- display name (default "Photo Harvest")
    WP_URL                        -- default WordPress site for the login form
    PUBLIC_MAX_FILE_SIZE          -- upload size limit in bytes (default 10 MiB)
    PHOTO_HARVEST_DISCOVERY       -- "passive" (default) or "active"
    PHOTO_HARVEST_DISCOVERY_PATH  -- endpoint used by active discovery
    PHOTO_HARVEST_SAMESITE        -- cookie same-site policy, "lax" or "strict"
    PHOTO_HARVEST_ENV / NODE_ENV  -- "production" turns on secure cookies
    PHOTO_HARVEST_HTTP_TIMEOUT    -- remote request timeout in seconds (default 30)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from photo_harvest.discovery import DEFAULT_DISCOVERY_PATH, DiscoveryMode
from photo_harvest.errors import ConfigurationError
from photo_harvest.session import CookieOptions, SameSite

logger = logging.getLogger("photo_harvest.config")

DEFAULT_APP_NAME = "Photo Harvest"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_HTTP_TIMEOUT = 30.0
LOGIN_PATH = "/login"


@dataclass(frozen=True)
class AppConfig:
    """Immutable application settings."""

    secret: str = field(repr=False)
    app_name: str = DEFAULT_APP_NAME
    wp_url: str = ""
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    discovery_mode: DiscoveryMode = DiscoveryMode.PASSIVE
    discovery_path: str = DEFAULT_DISCOVERY_PATH
    same_site: SameSite = SameSite.LAX
    production: bool = False
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    login_path: str = LOGIN_PATH

    def cookie_options(self) -> CookieOptions:
        return CookieOptions(same_site=self.same_site, secure=self.production)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> AppConfig:
        """Build the configuration from *environ* (defaults to ``os.environ``).

        Raises
        ------
        ConfigurationError
            When ``APP_SECRET`` is missing or a value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        secret = env.get("APP_SECRET", "")
        if not secret:
            raise ConfigurationError("APP_SECRET is not set")

        environment = env.get("PHOTO_HARVEST_ENV") or env.get("NODE_ENV", "")

        try:
            max_file_size = int(env.get("PUBLIC_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE))
            http_timeout = float(env.get("PHOTO_HARVEST_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT))
            discovery_mode = DiscoveryMode(
                env.get("PHOTO_HARVEST_DISCOVERY", DiscoveryMode.PASSIVE.value).lower()
            )
            same_site = SameSite(env.get("PHOTO_HARVEST_SAMESITE", SameSite.LAX.value).lower())
        except ValueError as exc:
            raise ConfigurationError(f"Invalid configuration value: {exc}") from exc

        if max_file_size <= 0 or http_timeout <= 0:
            raise ConfigurationError(
                "PUBLIC_MAX_FILE_SIZE and PHOTO_HARVEST_HTTP_TIMEOUT must be positive"
            )

        config = cls(
            secret=secret,
            app_name=env.get("APP_NAME", DEFAULT_APP_NAME),
            wp_url=env.get("WP_URL", "").rstrip("/"),
            max_file_size=max_file_size,
            discovery_mode=discovery_mode,
            discovery_path=env.get("PHOTO_HARVEST_DISCOVERY_PATH", DEFAULT_DISCOVERY_PATH),
            same_site=same_site,
            production=environment.lower() == "production",
            http_timeout=http_timeout,
        )
        logger.debug(
            "Loaded config: discovery=%s same_site=%s production=%s",
            config.discovery_mode.value,
            config.same_site.value,
            config.production,
        )
        return config
