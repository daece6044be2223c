"""Unit tests for server configuration settings model.

Tests verify that the Settings model binds environment variables, falls back
to its defaults, and that the grouped configuration views are consistent
with the flat fields.
"""

from pathlib import Path

import pytest
from pydantic import SecretStr

from loopwell.server.core.config import AuthConfig, CORSConfig, OpenAIConfig, RealtimeConfig, Settings


@pytest.fixture
def env_example_path() -> Path:
    """Get path to .env.example file."""
    return Path(__file__).resolve().parents[4] / ".env.example"


@pytest.fixture
def env_example_vars(env_example_path: Path) -> dict[str, str]:
    """Parse .env.example file and return environment variables."""
    env_vars = {}
    with open(env_example_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, value = line.split("=", 1)
                env_vars[key.strip()] = value.strip()
    return env_vars


class TestSettingsBinding:
    """Test Settings model environment variable binding."""

    def test_server_binding(self, env_example_vars: dict[str, str], monkeypatch):
        monkeypatch.setenv("LOOPWELL_SERVER_HOST", env_example_vars["LOOPWELL_SERVER_HOST"])
        monkeypatch.setenv("LOOPWELL_SERVER_PORT", "9100")
        monkeypatch.setenv("LOOPWELL_LOG_LEVEL", "debug")

        settings = Settings(_env_file=None)

        assert settings.server_host == "0.0.0.0"
        assert settings.server_port == 9100
        assert settings.log_level.upper() == "DEBUG"

    def test_database_url_binding(self):
        """The test session points the database at in-memory SQLite."""
        settings = Settings(_env_file=None)

        assert settings.database_url == "sqlite+aiosqlite:///:memory:"
        assert settings.database.url == settings.database_url

    def test_provider_keys_are_secret(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_BASE_URL", "http://mock.openai/v1")

        settings = Settings(_env_file=None)

        assert isinstance(settings.openai_api_key, SecretStr)
        assert settings.openai.api_key.get_secret_value() == "sk-test"
        assert settings.openai.base_url == "http://mock.openai/v1"

    def test_blank_provider_keys_are_none(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "  ")
        monkeypatch.setenv("GOOGLE_API_KEY", "")

        settings = Settings(_env_file=None)

        assert settings.anthropic.api_key is None
        assert settings.google.api_key is None

    def test_env_example_lists_every_setting(self, env_example_vars: dict[str, str]):
        aliases = {field.alias for field in Settings.model_fields.values() if field.alias}

        assert aliases - set(env_example_vars) <= {"DATABASE_ECHO", "OPENAI_BASE_URL", "CORS_ALLOW_CREDENTIALS"}


class TestGroupedConfig:
    def test_cors_origins_are_split(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example,")

        cors = Settings(_env_file=None).cors

        assert isinstance(cors, CORSConfig)
        assert cors.origins == ["http://a.example", "http://b.example"]

    def test_blank_cors_origins_allow_all(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", " ")

        assert Settings(_env_file=None).cors.origins == ["*"]

    def test_realtime_flag(self, monkeypatch):
        monkeypatch.setenv("REALTIME_ENABLED", "true")

        assert Settings(_env_file=None).realtime == RealtimeConfig(enabled=True)

    def test_auth_view(self, monkeypatch):
        monkeypatch.setenv("ALLOW_DEV_LOGIN", "true")
        monkeypatch.setenv("DEV_USER_EMAIL", "me@example.com")

        auth = Settings(_env_file=None).auth

        assert auth.allow_dev_login is True
        assert auth.dev_user_email == "me@example.com"
        assert auth.dev_bypass_enabled is True


class TestDevBypass:
    @pytest.mark.parametrize(
        "allow,environment,prod_lock,enabled",
        [
            (True, "development", False, True),
            (False, "development", False, False),
            (True, "production", False, False),
            (True, "development", True, False),
        ],
    )
    def test_dev_bypass_enabled(self, allow, environment, prod_lock, enabled):
        config = AuthConfig(allow_dev_login=allow, environment=environment, prod_lock=prod_lock)

        assert config.dev_bypass_enabled is enabled


class TestConfigModels:
    def test_openai_config_by_alias_and_name(self):
        by_alias = OpenAIConfig.model_validate({"OPENAI_API_KEY": "sk-1"})
        by_name = OpenAIConfig(api_key="sk-1")

        assert by_alias.api_key.get_secret_value() == by_name.api_key.get_secret_value() == "sk-1"

    def test_defaults(self, monkeypatch):
        for name in ("LOOPWELL_SERVER_PORT", "LOOPWELL_ENVIRONMENT", "PROD_LOCK", "CORS_ORIGINS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.server_port == 8000
        assert settings.environment == "development"
        assert settings.prod_lock is False
        assert settings.cors.origins == ["*"]
        assert settings.cors.allow_credentials is True
