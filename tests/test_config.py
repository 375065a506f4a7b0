"""
Tests for usim.config module.

Covers:
- Settings defaults
- Environment variable overrides
- Namespace normalization
"""

import os
from pathlib import Path
from unittest import mock

from usim.config import Settings, normalize_namespace


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings()

        assert settings.screens_namespace == "app.ui.screens"
        assert settings.screens_path == Path("app/ui/screens")
        assert settings.temporary_upload_ttl_hours == 24
        assert settings.upload_max_size_mb == 10.0
        assert settings.ui_state_ttl_seconds == 1800
        assert settings.client_id_cookie == "ui_client_id"
        assert settings.login_url == "/auth/login"
        assert settings.debug_mode is False
        assert settings.uses_default_app_key is True

    def test_env_override_screens_and_uploads(self):
        env = {
            "USIM_SCREENS_NAMESPACE": "App\\UI\\Screens",
            "USIM_SCREENS_PATH": "/srv/app/screens",
            "USIM_UPLOAD_ROOT": "/srv/storage",
            "USIM_TEMP_UPLOAD_TTL_HOURS": "2",
            "USIM_UPLOAD_MAX_SIZE_MB": "2.5",
            "USIM_UPLOAD_ALLOWED_TYPES": "image/*, application/pdf",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.screens_namespace == "App.UI.Screens"
        assert settings.screens_path == Path("/srv/app/screens")
        assert settings.upload_root == Path("/srv/storage")
        assert settings.temp_upload_dir == Path("/srv/storage/temp")
        assert settings.temporary_upload_ttl_hours == 2
        assert settings.upload_max_size_mb == 2.5
        assert settings.upload_allowed_types == ["image/*", "application/pdf"]

    def test_env_override_state_and_security(self):
        env = {"UI_CACHE_TTL": "60", "USIM_APP_KEY": "s3cret", "USIM_LOGIN_URL": "/login", "DEBUG": "true"}
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.ui_state_ttl_seconds == 60
        assert settings.app_key == "s3cret"
        assert settings.uses_default_app_key is False
        assert settings.login_url == "/login"
        assert settings.debug_mode is True

    def test_cors_origins_from_env(self):
        with mock.patch.dict(os.environ, {"CORS_ALLOW_ORIGINS": "https://a.example, https://b.example"}, clear=True):
            settings = Settings()
        assert settings.cors_allow_origins == {"https://a.example", "https://b.example"}
        assert settings.cors_allow_credentials is True

    def test_cors_wildcard_disables_credentials(self):
        with mock.patch.dict(os.environ, {"CORS_ALLOW_ORIGINS": "*"}, clear=True):
            settings = Settings()
        assert settings.cors_allow_origins == {"*"}
        assert settings.cors_allow_credentials is False


class TestNormalizeNamespace:
    def test_backslashes_and_slashes(self):
        assert normalize_namespace("App\\UI\\Screens") == "App.UI.Screens"
        assert normalize_namespace("app/ui/screens/") == "app.ui.screens"

    def test_collapses_empty_parts(self):
        assert normalize_namespace(".app..ui.") == "app.ui"


class TestSettingsSingleton:
    def test_get_settings_is_cached(self):
        from usim.config import get_settings

        assert get_settings() is get_settings()

    def test_reload_settings_picks_up_env(self, monkeypatch):
        from usim.config import get_settings, reload_settings

        get_settings()
        monkeypatch.setenv("USIM_LOGIN_URL", "/signin")

        assert reload_settings().login_url == "/signin"
        assert get_settings().login_url == "/signin"
