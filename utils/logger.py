"""
Logging setup and the bot's semantic logging façade.

Every module obtains a logger through :func:`get_logger`, which returns a
:class:`BotLogger` wrapping ``sentinel_bot.<name>``. Besides the usual
``debug``/``info``/``warning``/``error`` calls, it offers category-specific
helpers (commands, gateway events, database operations, security audit
entries, lifecycle) that attach structured context through ``extra``.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

ROOT_LOGGER_NAME = "sentinel_bot"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024  # 5MB
LOG_FILE_BACKUP_COUNT = 5


def setup_logging(
    level: Union[int, str] = logging.INFO,
    enable_file_logging: bool = False,
    log_dir: Union[str, Path] = "logs",
) -> None:
    """
    Configure the root logger.

    A stdout handler is always installed. With file logging enabled, two
    rotating files are written to ``log_dir``: ``combined.log`` at the
    configured level and ``error.log`` for errors only.

    Args:
        level: Logging level (number or name).
        enable_file_logging: Whether to add the rotating file handlers.
        log_dir: Directory for log files, created if missing.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list = [logging.StreamHandler(sys.stdout)]

    if enable_file_logging:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        handlers.append(
            RotatingFileHandler(
                log_path / "combined.log",
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

        error_handler = RotatingFileHandler(
            log_path / "error.log",
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)

    # discord.py is chatty at DEBUG; keep it one notch quieter than us
    logging.getLogger("discord").setLevel(max(level, logging.INFO))


def shutdown_logging() -> None:
    """Flush and close all handlers."""
    logging.shutdown()


class BotLogger(logging.LoggerAdapter):
    """Logger adapter adding semantic logging methods."""

    def process(self, msg, kwargs):
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def log_command(
        self, command: str, user_id: Any, guild_id: Optional[Any] = None
    ) -> None:
        self.info(
            f"Command executed: {command}",
            extra={
                "category": "command",
                "command": command,
                "user_id": user_id,
                "guild_id": guild_id,
            },
        )

    def log_event(self, event: str, **data: Any) -> None:
        self.info(
            f"Event processed: {event}",
            extra={"category": "event", "event": event, "data": data},
        )

    def log_database(
        self,
        operation: str,
        table: Optional[str] = None,
        record_id: Optional[Any] = None,
    ) -> None:
        self.debug(
            f"Database operation: {operation}",
            extra={
                "category": "database",
                "operation": operation,
                "table": table,
                "record_id": record_id,
            },
        )

    def log_discord_api(
        self, endpoint: str, method: str, status: Optional[int] = None
    ) -> None:
        self.debug(
            f"Discord API call: {method} {endpoint}",
            extra={
                "category": "discord-api",
                "endpoint": endpoint,
                "method": method,
                "status": status,
            },
        )

    def log_security(
        self, action: str, user_id: Optional[Any] = None, **details: Any
    ) -> None:
        """Audit entry for privileged actions (kicks, bans, purges)."""
        detail_text = ", ".join(f"{key}={value}" for key, value in details.items())
        self.warning(
            f"Security event: {action} by {user_id}"
            + (f" ({detail_text})" if detail_text else ""),
            extra={
                "category": "security",
                "action": action,
                "user_id": user_id,
                "details": details,
            },
        )

    def log_startup(self, message: str) -> None:
        self.info(f"🚀 {message}", extra={"category": "startup"})

    def log_shutdown(self, message: str) -> None:
        self.info(f"🛑 {message}", extra={"category": "shutdown"})


def get_logger(name: Optional[str] = None) -> BotLogger:
    """
    Return the façade for ``sentinel_bot.<name>`` (or the root bot logger).
    """
    full_name = f"{ROOT_LOGGER_NAME}.{name}" if name else ROOT_LOGGER_NAME
    return BotLogger(logging.getLogger(full_name), {})
