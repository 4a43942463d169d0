"""
Configuration settings for Sentinel Bot.

This module loads environment variables (optionally from a ``.env`` file),
builds an immutable :class:`Settings` object and validates it so the bot
fails fast at startup. Every problem found is reported at once rather than
one per restart.
"""

import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

from utils.validators import (
    is_valid_client_id,
    is_valid_discord_token,
    is_valid_prefix,
    is_valid_snowflake,
)

logger = logging.getLogger("sentinel_bot.config")

# Defaults
DEFAULT_DATABASE_PATH = "data/bot.db"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_ENVIRONMENT = "development"
DEFAULT_PREFIX = "!"

VALID_LOG_LEVELS = ("debug", "info", "warning", "warn", "error", "critical")
VALID_ENVIRONMENTS = ("development", "production", "test")
TRUTHY_VALUES = ("1", "true", "yes", "on")

# UI Colors
BOT_COLOR = 0x5865F2  # Blurple
COLOR_SUCCESS = 0x4CAF50  # Green
COLOR_KICK = 0xFF9900  # Orange
COLOR_BAN = 0xFF0000  # Bright red


class ConfigurationError(ValueError):
    """Raised when one or more configuration values are missing or invalid."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        message = "Configuration validation failed:\n" + "\n".join(
            f"  - {error}" for error in self.errors
        )
        super().__init__(message)


@dataclass(frozen=True)
class Settings:
    """
    Validated, read-only runtime configuration.

    Attributes:
        discord_token: Bot token used to log in.
        client_id: Application ID, needed to deploy slash commands.
        guild_id: Optional development guild for fast command propagation.
        database_path: Location of the SQLite file.
        log_level: Lower-case logging level name.
        enable_file_logging: Whether rotating log files are written.
        environment: One of development, production or test.
        default_prefix: Legacy prefix the database stores on new guild rows.
    """

    discord_token: str
    client_id: str
    guild_id: Optional[str] = None
    database_path: str = DEFAULT_DATABASE_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    enable_file_logging: bool = False
    environment: str = DEFAULT_ENVIRONMENT
    default_prefix: str = DEFAULT_PREFIX

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def logging_level(self) -> int:
        """Numeric level for the stdlib ``logging`` module."""
        name = "WARNING" if self.log_level == "warn" else self.log_level.upper()
        return getattr(logging, name, logging.INFO)

    def redacted(self) -> Dict[str, Any]:
        """Return the settings as a dict safe to log (token removed)."""
        values = asdict(self)
        values["discord_token"] = "***"
        return values


def _read(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings(
    environ: Optional[Mapping[str, str]] = None, use_dotenv: bool = True
) -> Settings:
    """
    Build and validate settings from the environment.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.
        use_dotenv: Load a ``.env`` file into ``os.environ`` first. Ignored
            when an explicit ``environ`` is given.

    Returns:
        The validated :class:`Settings`.

    Raises:
        ConfigurationError: Listing every missing or invalid value.
    """
    if environ is None:
        if use_dotenv:
            load_dotenv()
        environ = os.environ

    errors: List[str] = []

    environment = (_read(environ, "ENVIRONMENT") or DEFAULT_ENVIRONMENT).lower()
    if environment not in VALID_ENVIRONMENTS:
        errors.append(f"ENVIRONMENT must be one of: {', '.join(VALID_ENVIRONMENTS)}")

    token = _read(environ, "DISCORD_TOKEN") or ""
    if not token:
        errors.append("DISCORD_TOKEN is required")
    elif not is_valid_discord_token(token):
        errors.append("DISCORD_TOKEN does not look like a valid bot token")

    client_id = _read(environ, "CLIENT_ID") or ""
    if not client_id:
        errors.append("CLIENT_ID is required")
    elif not is_valid_client_id(client_id):
        errors.append("CLIENT_ID must be a Discord application ID (17-20 digits)")

    guild_id = _read(environ, "GUILD_ID")
    if guild_id is not None and not is_valid_snowflake(guild_id):
        errors.append("GUILD_ID must be a Discord guild ID (17-20 digits)")

    log_level = (_read(environ, "LOG_LEVEL") or DEFAULT_LOG_LEVEL).lower()
    if log_level not in VALID_LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of: {', '.join(VALID_LOG_LEVELS)}")

    database_path = _read(environ, "DATABASE_PATH") or DEFAULT_DATABASE_PATH

    file_logging_raw = _read(environ, "ENABLE_FILE_LOGGING")
    if file_logging_raw is None:
        enable_file_logging = environment == "production"
    else:
        enable_file_logging = file_logging_raw.lower() in TRUTHY_VALUES

    default_prefix = _read(environ, "DEFAULT_PREFIX") or DEFAULT_PREFIX
    if not is_valid_prefix(default_prefix):
        errors.append("DEFAULT_PREFIX must be 1-5 characters without whitespace")

    if errors:
        raise ConfigurationError(errors)

    settings = Settings(
        discord_token=token,
        client_id=client_id,
        guild_id=guild_id,
        database_path=database_path,
        log_level=log_level,
        enable_file_logging=enable_file_logging,
        environment=environment,
        default_prefix=default_prefix,
    )

    if guild_id is None:
        logger.warning(
            "⚠️  GUILD_ID not set - commands will be deployed globally (slow propagation)"
        )

    logger.info("✅ Configuration validation completed successfully")
    return settings
