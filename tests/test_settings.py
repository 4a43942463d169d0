import logging

import pytest

from config.settings import ConfigurationError, load_settings

TOKEN = "M" + "a" * 23 + ".Gh1234." + "x" * 27
CLIENT_ID = "123456789012345678"


def _env(**overrides):
    env = {"DISCORD_TOKEN": TOKEN, "CLIENT_ID": CLIENT_ID}
    env.update(overrides)
    return {key: value for key, value in env.items() if value is not None}


def test_defaults():
    settings = load_settings(_env())

    assert settings.discord_token == TOKEN
    assert settings.client_id == CLIENT_ID
    assert settings.guild_id is None
    assert settings.database_path == "data/bot.db"
    assert settings.log_level == "info"
    assert settings.environment == "development"
    assert settings.default_prefix == "!"
    assert settings.enable_file_logging is False
    assert settings.is_development
    assert not settings.is_production


def test_production_enables_file_logging_by_default():
    settings = load_settings(_env(ENVIRONMENT="production"))

    assert settings.is_production
    assert settings.enable_file_logging is True

    explicit = load_settings(_env(ENVIRONMENT="production", ENABLE_FILE_LOGGING="false"))
    assert explicit.enable_file_logging is False


def test_log_level_is_case_insensitive():
    settings = load_settings(_env(LOG_LEVEL="WARN"))

    assert settings.log_level == "warn"
    assert settings.logging_level == logging.WARNING


def test_all_errors_are_reported_together():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(
            {
                "CLIENT_ID": "abc",
                "GUILD_ID": "12",
                "LOG_LEVEL": "loud",
                "ENVIRONMENT": "staging",
            }
        )

    errors = exc_info.value.errors
    assert len(errors) == 5
    message = str(exc_info.value)
    for key in ("DISCORD_TOKEN", "CLIENT_ID", "GUILD_ID", "LOG_LEVEL", "ENVIRONMENT"):
        assert key in message


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        load_settings({})


def test_redacted_hides_token():
    settings = load_settings(_env(GUILD_ID="876543210987654321"))

    redacted = settings.redacted()

    assert redacted["discord_token"] == "***"
    assert redacted["guild_id"] == "876543210987654321"
