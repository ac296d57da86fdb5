"""Tests for environment configuration."""

import pytest

from taskdeck.config import Settings
from taskdeck.errors import ConfigError


def test_defaults(monkeypatch):
    for name in ("TASKDECK_BACKEND", "TASKDECK_HISTORY_LIMIT", "TASKDECK_REMOTE_TIMEOUT", "TASKDECK_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.backend == "local"
    assert settings.history_limit == 50
    assert settings.remote_timeout == 10.0
    assert settings.log_level == "INFO"


def test_from_env(monkeypatch):
    monkeypatch.setenv("TASKDECK_BACKEND", "SQL")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("TASKDECK_HISTORY_LIMIT", "10")
    monkeypatch.setenv("TASKDECK_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.backend == "sql"
    assert settings.database_url == "sqlite://"
    assert settings.history_limit == 10
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize("name, value", [
    ("TASKDECK_BACKEND", "firebase"),
    ("TASKDECK_HISTORY_LIMIT", "many"),
    ("TASKDECK_HISTORY_LIMIT", "0"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        Settings.from_env()


def test_supabase_requires_credentials():
    with pytest.raises(ConfigError):
        Settings(backend="supabase")
    assert Settings(backend="supabase", supabase_url="https://x.supabase.co", supabase_anon_key="k")
