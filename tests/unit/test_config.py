"""
Tests for environment configuration loading and validation.
"""

from pathlib import Path

import pytest

from taskgraph.config import AppConfig, ConfigValidator, EnvironmentLoader, LogLevel, OAuthConfig, SyncSettings

ENV_VARS = [
    "GOOGLE_OAUTH_CLIENT_ID",
    "GOOGLE_OAUTH_CLIENT_SECRET",
    "GOOGLE_OAUTH_REDIRECT_URI",
    "TASKGRAPH_TOKEN_ENCRYPTION_KEY",
    "TASKGRAPH_DOCUMENT_NAME",
    "TASKGRAPH_DEBOUNCE_MS",
    "TASKGRAPH_MAX_ATTEMPTS",
    "TASKGRAPH_DATA_DIR",
    "TASKGRAPH_CORS_ORIGINS",
    "TASKGRAPH_PORT",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEnvironmentLoader:
    """Tests for EnvironmentLoader."""

    def test_defaults(self, clean_env):
        config = EnvironmentLoader.load_config()

        assert config.remote_sync_enabled is False
        assert config.sync.document_name == "config.json"
        assert config.sync.debounce_ms == 800
        assert config.sync.max_attempts == 5
        assert config.sync.backoff_base_ms == 400
        assert config.sync.backoff_cap_ms == 8000
        assert config.server.port == 8000
        assert config.log_level == LogLevel.INFO
        assert config.local_state_path == Path("data") / "userdata.json"

    def test_overrides(self, clean_env):
        clean_env.setenv("GOOGLE_OAUTH_CLIENT_ID", "id.apps.googleusercontent.com")
        clean_env.setenv("GOOGLE_OAUTH_CLIENT_SECRET", "secret")
        clean_env.setenv("TASKGRAPH_DOCUMENT_NAME", "graph.json")
        clean_env.setenv("TASKGRAPH_DEBOUNCE_MS", "250")
        clean_env.setenv("TASKGRAPH_DATA_DIR", "/var/lib/taskgraph")
        clean_env.setenv("TASKGRAPH_CORS_ORIGINS", "http://a.test, http://b.test")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = EnvironmentLoader.load_config()

        assert config.remote_sync_enabled is True
        assert config.sync.document_name == "graph.json"
        assert config.sync.debounce_ms == 250
        assert config.token_dir == Path("/var/lib/taskgraph/.tokens")
        assert config.server.cors_origins == ["http://a.test", "http://b.test"]
        assert config.log_level == LogLevel.DEBUG

    def test_unknown_log_level_falls_back_to_info(self, clean_env):
        clean_env.setenv("LOG_LEVEL", "chatty")
        assert EnvironmentLoader.load_config().log_level == LogLevel.INFO


class TestConfigValidator:
    """Tests for ConfigValidator."""

    def test_default_config_is_valid(self):
        assert ConfigValidator.validate_config(AppConfig()) == []

    def test_half_configured_oauth(self):
        config = AppConfig(oauth=OAuthConfig(client_id="id.apps.googleusercontent.com"))
        errors = ConfigValidator.validate_config(config)
        assert any("must be set together" in error for error in errors)

    def test_sync_ranges(self):
        config = AppConfig(sync=SyncSettings(max_attempts=0, backoff_base_ms=500, backoff_cap_ms=100))
        errors = ConfigValidator.validate_config(config)
        assert len(errors) == 2
