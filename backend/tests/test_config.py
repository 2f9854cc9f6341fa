"""
Unit tests for Glide settings loading.
"""

import pytest

from app.config import DEFAULT_TIMEOUT_SECONDS, GlideSettings, load_settings


class TestLoadSettings:
    """load_settings reads an explicit mapping so tests never touch os.environ."""

    def test_credentials_read(self):
        settings = load_settings({"GLIDE_CLIENT_ID": "id", "GLIDE_CLIENT_SECRET": "secret"})

        assert settings.client_id == "id"
        assert settings.client_secret == "secret"
        assert settings.has_credentials is True

    def test_missing_credentials_not_an_error(self):
        settings = load_settings({})

        assert settings.client_id is None
        assert settings.client_secret is None
        assert settings.has_credentials is False

    def test_blank_credentials_treated_as_missing(self):
        settings = load_settings({"GLIDE_CLIENT_ID": "  ", "GLIDE_CLIENT_SECRET": "secret"})

        assert settings.has_client_id is False
        assert settings.has_client_secret is True
        assert settings.has_credentials is False

    def test_defaults_to_sandbox(self):
        settings = load_settings({})

        assert settings.environment == "sandbox"
        assert "sandbox" in settings.api_base_url
        assert settings.timeout_seconds == DEFAULT_TIMEOUT_SECONDS

    def test_production_environment(self):
        settings = load_settings({"GLIDE_ENVIRONMENT": "Production"})

        assert settings.environment == "production"
        assert "sandbox" not in settings.api_base_url
        assert "sandbox" not in settings.auth_url

    def test_unknown_environment_raises(self):
        with pytest.raises(ValueError) as exc_info:
            load_settings({"GLIDE_ENVIRONMENT": "staging"})

        assert "staging" in str(exc_info.value)

    def test_url_overrides(self):
        settings = load_settings({
            "GLIDE_API_BASE_URL": "http://localhost:9000/",
            "GLIDE_AUTH_URL": "http://localhost:9001/token",
        })

        assert settings.api_base_url == "http://localhost:9000"
        assert settings.auth_url == "http://localhost:9001/token"

    def test_timeout_parsed(self):
        assert load_settings({"GLIDE_TIMEOUT_SECONDS": "5"}).timeout_seconds == 5.0

    @pytest.mark.parametrize("raw", ["abc", "0", "-1"])
    def test_bad_timeout_raises(self, raw):
        with pytest.raises(ValueError):
            load_settings({"GLIDE_TIMEOUT_SECONDS": raw})


class TestGlideSettings:

    def test_settings_are_immutable(self):
        settings = GlideSettings(client_id="id", client_secret="secret")

        with pytest.raises(Exception):
            settings.client_id = "other"
