"""
This module contains static constant definitions used throughout the application,
including:
- Discord API limits (embeds, fields, message lengths, audit log reasons)
- Moderation limits (bulk delete window, fetch batch sizes)
- Regular expressions for input validation
- User-facing messages (errors, status updates)
"""

import re
from datetime import timedelta

# Discord Embed Limits
DISCORD_EMBED_TITLE_LIMIT = 256
DISCORD_EMBED_DESCRIPTION_LIMIT = 4096
DISCORD_EMBED_FIELD_VALUE_LIMIT = 1024
DISCORD_EMBED_FIELD_NAME_LIMIT = 256
DISCORD_EMBED_FOOTER_LIMIT = 2048
DISCORD_EMBED_AUTHOR_LIMIT = 256
DISCORD_EMBED_TOTAL_LIMIT = 6000
DISCORD_EMBED_FIELD_COUNT_LIMIT = 25

# Discord Message / Audit Limits
DISCORD_MESSAGE_LIMIT = 2000
DISCORD_AUDIT_REASON_LIMIT = 512
SANITIZED_INPUT_LIMIT = 2000

# Identity Formats
SNOWFLAKE_PATTERN = re.compile(r"^\d{17,20}$")
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
MIN_TOKEN_LENGTH = 50
USERNAME_FORBIDDEN_PATTERN = re.compile(r"[@#:`]")
MIN_USERNAME_LENGTH = 2
MAX_USERNAME_LENGTH = 32
MIN_GUILD_NAME_LENGTH = 2
MAX_GUILD_NAME_LENGTH = 100
MAX_PREFIX_LENGTH = 5

# Misc Input Formats
HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DURATION_PATTERN = re.compile(r"^(\d+)([smhd])$")
DURATION_UNITS = {
    "s": timedelta(seconds=1),
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}

# Bulk Delete Configuration
# Discord refuses bulk deletion of messages older than two weeks.
BULK_DELETE_MAX_AGE = timedelta(days=14)
CLEAR_MIN_AMOUNT = 1
CLEAR_MAX_AMOUNT = 100
CLEAR_USER_FILTER_FETCH_LIMIT = 100

# Ban Configuration
BAN_DELETE_DAYS_MIN = 0
BAN_DELETE_DAYS_MAX = 7

# Help Categories
MODERATION_COMMAND_NAMES = frozenset({"kick", "ban", "timeout", "clear", "warn"})

# Startup
READY_TIMEOUT_SECONDS = 30

# Error Messages
ERROR_UNKNOWN_COMMAND = (
    "❌ Unknown command. Please use `/help` to see available commands."
)
ERROR_COMMAND_FAILED = "❌ There was an error while executing this command!"
ERROR_GUILD_ONLY = "❌ This command can only be used in a server."
ERROR_TEXT_CHANNEL_ONLY = "❌ This command can only be used in text channels."
ERROR_BOT_MISSING_MANAGE_MESSAGES = (
    '❌ I need the "Manage Messages" permission to use this command.'
)
ERROR_NO_MESSAGES = "❌ No messages found to delete."
ERROR_ALL_MESSAGES_TOO_OLD = (
    "❌ All selected messages are older than 14 days and cannot be bulk deleted."
)
ERROR_ALREADY_BANNED = "❌ This user is already banned."
ERROR_REASON_TOO_LONG = (
    f"❌ The reason must be at most {DISCORD_AUDIT_REASON_LIMIT} characters."
)

DEFAULT_REASON = "No reason provided"
