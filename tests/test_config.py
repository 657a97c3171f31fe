import os

import pytest

from conftest import TEST_MONGO_URI, make_settings
from graphgate.app import create_app
from graphgate.core.config import get_settings, load_settings
from graphgate.core.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_missing_mongo_uri_is_a_configuration_error():
    os.environ.pop("MONGO_URI", None)

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(_env_file=None)

    assert "MONGO_URI" in str(exc_info.value)
    assert exc_info.value.code == "CONFIGURATION_ERROR"


def test_app_does_not_start_without_mongo_uri(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.chdir(os.path.dirname(__file__))

    with pytest.raises(ConfigurationError):
        create_app()


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("MONGO_URI", TEST_MONGO_URI)
    monkeypatch.setenv("ENVIRONMENT", "staging")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = load_settings(_env_file=None)

    assert settings.mongo_uri == TEST_MONGO_URI
    assert settings.environment == "staging"
    assert settings.log_level == "DEBUG"


def test_invalid_environment_is_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(_env_file=None, mongo_uri=TEST_MONGO_URI, environment="moon")


def test_blank_mongo_uri_is_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(_env_file=None, mongo_uri="   ")


def test_production_toggles():
    settings = make_settings(environment="production")

    assert settings.introspection_enabled is False
    assert settings.graphql_ide is None
    assert settings.should_mask_errors is True


def test_development_toggles():
    settings = make_settings(environment="development")

    assert settings.introspection_enabled is True
    assert settings.graphql_ide == "graphiql"
    assert settings.should_mask_errors is False


def test_mask_errors_override():
    assert make_settings(environment="development", mask_errors=True).should_mask_errors is True
    assert make_settings(environment="production", mask_errors=False).should_mask_errors is False


def test_get_settings_is_cached(monkeypatch):
    monkeypatch.setenv("MONGO_URI", TEST_MONGO_URI)

    assert get_settings() is get_settings()


@pytest.mark.parametrize(
    "value, expected",
    [("test", "testing"), ("dev", "development"), ("prod", "production"), ("Stage", "staging")],
)
def test_environment_aliases(value, expected):
    assert make_settings(environment=value).environment == expected


def test_production_alias_disables_introspection(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "prod")

    settings = load_settings(_env_file=None, mongo_uri=TEST_MONGO_URI)

    assert settings.is_production is True
    assert settings.introspection_enabled is False
