"""Tests for settings loading and startup validation."""

import pytest

import main
from config import load_settings
from errors import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    for var in ("CHANNEL_ID", "API_KEY", "CACHE_TTL", "PORT", "MAX_RETRIES"):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_settings_from_environment(clean_env):
    clean_env.setenv("CHANNEL_ID", "UC123")
    clean_env.setenv("API_KEY", "secret")
    clean_env.setenv("CACHE_TTL", "60")

    settings = load_settings(_env_file=None)

    assert settings.channel_id == "UC123"
    assert settings.api_key == "secret"
    assert settings.cache_ttl == 60


def test_defaults(clean_env):
    settings = load_settings(_env_file=None, channel_id="abc", api_key="k")

    assert settings.cache_ttl == 300
    assert settings.port == 3000
    assert settings.max_retries == 3
    assert settings.retry_backoff_seconds == 0
    assert settings.shutdown_grace_seconds == 10
    assert settings.cors_origin_list == ["*"]


def test_settings_are_immutable(clean_env):
    settings = load_settings(_env_file=None, channel_id="abc", api_key="k")
    with pytest.raises(Exception):
        settings.channel_id = "other"


def test_each_missing_variable_is_logged(clean_env, caplog):
    with pytest.raises(ConfigurationError):
        load_settings(_env_file=None)

    assert "Missing required environment variable: CHANNEL_ID" in caplog.text
    assert "Missing required environment variable: API_KEY" in caplog.text


def test_invalid_ttl_is_rejected(clean_env, caplog):
    clean_env.setenv("CACHE_TTL", "0")

    with pytest.raises(ConfigurationError):
        load_settings(_env_file=None, channel_id="abc", api_key="k")
    assert "CACHE_TTL" in caplog.text


def test_cors_origins_are_split(clean_env):
    settings = load_settings(
        _env_file=None,
        channel_id="abc",
        api_key="k",
        cors_origins="https://a.example, https://b.example",
    )
    assert settings.cors_origin_list == ["https://a.example", "https://b.example"]


def test_run_exits_nonzero_without_config(clean_env, monkeypatch):
    monkeypatch.setattr(main, "load_settings", lambda: load_settings(_env_file=None))
    monkeypatch.setattr(main, "configure_logging", lambda settings=None: None)

    with pytest.raises(SystemExit) as exc_info:
        main.run()
    assert exc_info.value.code == 1
