"""
USIM - Configuration Management
===============================
Centralized configuration with environment variable support.

Usage:
    from usim.config import get_settings

    settings = get_settings()
    namespace = settings.screens_namespace
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # Screens
    screens_namespace: str = "app.ui.screens"
    screens_path: Path = field(default_factory=lambda: Path("app/ui/screens"))

    # Uploads
    upload_root: Path = field(default_factory=lambda: Path("storage"))
    upload_db_path: Path = field(default_factory=lambda: Path("storage/uploads.db"))
    temporary_upload_ttl_hours: int = 24
    upload_max_size_mb: float = 10.0
    upload_allowed_types: list[str] = field(default_factory=lambda: ["*"])

    # UI state
    ui_state_ttl_seconds: int = 1800  # 30 minutes
    client_id_cookie: str = "ui_client_id"
    client_id_cookie_max_age: int = 60 * 60 * 24 * 365  # 1 year

    # Client storage signing (never log this)
    app_key: str = "usim-insecure-development-key"

    # Access control
    login_url: str = "/auth/login"
    trust_user_header: bool = False  # only behind a proxy that sets X-User-ID

    # HTTP
    max_request_bytes: int = 20_000_000
    cors_allow_origins: set[str] = field(
        default_factory=lambda: {
            "http://localhost",
            "http://localhost:8000",
            "http://127.0.0.1",
            "http://127.0.0.1:8000",
        }
    )
    cors_allow_credentials: bool = True
    cors_max_age: int = 600  # 10 minutes

    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()
        self.screens_namespace = normalize_namespace(self.screens_namespace)

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # Screens
        if namespace := os.environ.get("USIM_SCREENS_NAMESPACE"):
            self.screens_namespace = namespace
        if screens_path := os.environ.get("USIM_SCREENS_PATH"):
            self.screens_path = Path(screens_path)

        # Uploads
        if upload_root := os.environ.get("USIM_UPLOAD_ROOT"):
            self.upload_root = Path(upload_root)
        if upload_db := os.environ.get("USIM_UPLOAD_DB_PATH"):
            self.upload_db_path = Path(upload_db)
        if ttl_hours := os.environ.get("USIM_TEMP_UPLOAD_TTL_HOURS"):
            self.temporary_upload_ttl_hours = int(ttl_hours)
        if max_size := os.environ.get("USIM_UPLOAD_MAX_SIZE_MB"):
            self.upload_max_size_mb = float(max_size)
        if allowed := os.environ.get("USIM_UPLOAD_ALLOWED_TYPES", "").strip():
            self.upload_allowed_types = [t.strip() for t in allowed.split(",") if t.strip()]

        # UI state
        if ui_ttl := os.environ.get("UI_CACHE_TTL"):
            self.ui_state_ttl_seconds = int(ui_ttl)

        if app_key := os.environ.get("USIM_APP_KEY"):
            self.app_key = app_key
        if login_url := os.environ.get("USIM_LOGIN_URL"):
            self.login_url = login_url
        if os.environ.get("USIM_TRUST_USER_HEADER", "").lower() in ("1", "true"):
            self.trust_user_header = True

        if max_bytes := os.environ.get("USIM_MAX_REQUEST_BYTES"):
            self.max_request_bytes = int(max_bytes)

        # CORS configuration
        if cors_origins := os.environ.get("CORS_ALLOW_ORIGINS", "").strip():
            if cors_origins == "*":
                logger.warning(
                    "CORS_ALLOW_ORIGINS set to '*' - allowing all origins. " "This should only be used in development."
                )
                self.cors_allow_origins = {"*"}
                # Browsers reject credentialed requests against a wildcard origin.
                self.cors_allow_credentials = False
            else:
                self.cors_allow_origins = {origin.strip() for origin in cors_origins.split(",") if origin.strip()}
        if cors_max_age := os.environ.get("CORS_MAX_AGE"):
            self.cors_max_age = int(cors_max_age)

        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True

    @property
    def temp_upload_dir(self) -> Path:
        return self.upload_root / "temp"

    @property
    def uses_default_app_key(self) -> bool:
        return self.app_key == Settings.app_key


def normalize_namespace(namespace: str) -> str:
    """
    Normalize a screens namespace to a dotted Python package path.

    Accepts backslash or slash separated forms (``App\\UI\\Screens``) so that
    configuration written for other stacks keeps working.
    """
    cleaned = namespace.replace("\\", ".").replace("/", ".").strip(".")
    return ".".join(part for part in cleaned.split(".") if part)


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
        if _settings.uses_default_app_key and not _settings.debug_mode:
            logger.warning("USIM_APP_KEY is not set; client storage is signed with the development key")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings
