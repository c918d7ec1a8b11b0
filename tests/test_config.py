# tests/test_config.py

import pytest
from pydantic import ValidationError

from taskboard.config import MongoSettings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    for name in ("TASKBOARD_MONGO_URI", "TASKBOARD_DATABASE_NAME"):
        monkeypatch.delenv(name, raising=False)

    settings = MongoSettings(_env_file=None)

    assert settings.mongo_uri == "mongodb://localhost:27017"
    assert settings.database_name == "taskboard"
    assert settings.users_collection == "users"
    assert settings.legacy_users_collection == "Users"
    assert settings.legacy_projects_collection == "Projects"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TASKBOARD_MONGO_URI", "mongodb://db.internal:27017")
    monkeypatch.setenv("TASKBOARD_DATABASE_NAME", "tenant_a")
    monkeypatch.setenv("TASKBOARD_SERVER_SELECTION_TIMEOUT_MS", "250")

    settings = MongoSettings(_env_file=None)

    assert settings.mongo_uri == "mongodb://db.internal:27017"
    assert settings.database_name == "tenant_a"
    assert settings.server_selection_timeout_ms == 250


def test_empty_database_name_is_rejected(monkeypatch):
    monkeypatch.setenv("TASKBOARD_DATABASE_NAME", "")
    with pytest.raises(ValidationError):
        MongoSettings(_env_file=None)


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("TASKBOARD_DATABASE_NAME", "first")
    first = get_settings()
    monkeypatch.setenv("TASKBOARD_DATABASE_NAME", "second")

    assert get_settings() is first
    get_settings.cache_clear()
    assert get_settings().database_name == "second"
