"""
Input validation and sanitization functions.

This module ensures that user input and configuration values conform to
Discord's formats and limits before they reach the API or the database. It
handles tokens and snowflake IDs, usernames and guild names, moderation
reasons, embed limits, and duration strings such as ``10m`` or ``2d``.
"""

import json
from datetime import timedelta
from typing import Any, Optional, Tuple
from urllib.parse import urlparse

import discord

from utils.constants import (
    DISCORD_AUDIT_REASON_LIMIT,
    DISCORD_EMBED_DESCRIPTION_LIMIT,
    DISCORD_EMBED_FIELD_COUNT_LIMIT,
    DISCORD_EMBED_FIELD_NAME_LIMIT,
    DISCORD_EMBED_FIELD_VALUE_LIMIT,
    DISCORD_EMBED_TITLE_LIMIT,
    DISCORD_EMBED_TOTAL_LIMIT,
    DISCORD_MESSAGE_LIMIT,
    DURATION_PATTERN,
    DURATION_UNITS,
    EMAIL_PATTERN,
    HEX_COLOR_PATTERN,
    MAX_GUILD_NAME_LENGTH,
    MAX_PREFIX_LENGTH,
    MAX_USERNAME_LENGTH,
    MIN_GUILD_NAME_LENGTH,
    MIN_TOKEN_LENGTH,
    MIN_USERNAME_LENGTH,
    SANITIZED_INPUT_LIMIT,
    SNOWFLAKE_PATTERN,
    TOKEN_PATTERN,
    USERNAME_FORBIDDEN_PATTERN,
)


def is_valid_discord_token(token: str) -> bool:
    """
    Check that a bot token looks plausible.

    A leading ``"Bot "`` prefix is accepted and ignored. The token itself must
    be longer than 50 characters and only use the base64url alphabet plus dots.
    """
    if not token:
        return False

    raw = token[4:] if token.startswith("Bot ") else token
    return len(raw) > MIN_TOKEN_LENGTH and bool(TOKEN_PATTERN.match(raw))


def is_valid_snowflake(value: Any) -> bool:
    """Return True if ``value`` is a 17 to 20 digit Discord ID."""
    if value is None:
        return False
    return bool(SNOWFLAKE_PATTERN.match(str(value)))


def is_valid_client_id(client_id: str) -> bool:
    """Application IDs are ordinary snowflakes."""
    return is_valid_snowflake(client_id)


def is_valid_username(username: str) -> bool:
    if not username:
        return False
    return (
        MIN_USERNAME_LENGTH <= len(username) <= MAX_USERNAME_LENGTH
        and not USERNAME_FORBIDDEN_PATTERN.search(username)
    )


def is_valid_guild_name(name: str) -> bool:
    return bool(name) and MIN_GUILD_NAME_LENGTH <= len(name) <= MAX_GUILD_NAME_LENGTH


def is_valid_prefix(prefix: str) -> bool:
    if not prefix:
        return False
    return len(prefix) <= MAX_PREFIX_LENGTH and not any(c.isspace() for c in prefix)


def is_valid_reason(reason: str) -> bool:
    """Audit log reasons are capped by Discord at 512 characters."""
    return len(reason) <= DISCORD_AUDIT_REASON_LIMIT


def is_valid_message_content(content: str) -> bool:
    return 0 < len(content) <= DISCORD_MESSAGE_LIMIT


def is_valid_embed_title(title: str) -> bool:
    return len(title) <= DISCORD_EMBED_TITLE_LIMIT


def is_valid_embed_description(description: str) -> bool:
    return len(description) <= DISCORD_EMBED_DESCRIPTION_LIMIT


def is_valid_embed_field_name(name: str) -> bool:
    return 0 < len(name) <= DISCORD_EMBED_FIELD_NAME_LIMIT


def is_valid_embed_field_value(value: str) -> bool:
    return 0 < len(value) <= DISCORD_EMBED_FIELD_VALUE_LIMIT


def validate_embed_size(embed: discord.Embed) -> Tuple[bool, Optional[str]]:
    """
    Validate that a Discord embed fits within API limits.

    Checks total character count (title + description + fields + footer + author)
    and the number of fields.

    Args:
        embed: The Discord embed object to validate.

    Returns:
        Tuple containing (is_valid, error_message).
    """
    total_chars = 0

    if embed.title:
        total_chars += len(embed.title)

    if embed.description:
        total_chars += len(embed.description)

    if embed.footer.text:
        total_chars += len(embed.footer.text)

    if embed.author.name:
        total_chars += len(embed.author.name)

    for field in embed.fields:
        total_chars += len(field.name or "") + len(field.value or "")

    if len(embed.fields) > DISCORD_EMBED_FIELD_COUNT_LIMIT:
        return (
            False,
            f"Too many fields ({len(embed.fields)} > {DISCORD_EMBED_FIELD_COUNT_LIMIT})",
        )

    if total_chars > DISCORD_EMBED_TOTAL_LIMIT:
        return (
            False,
            f"Embed too large ({total_chars} > {DISCORD_EMBED_TOTAL_LIMIT} characters)",
        )

    return True, None


def is_valid_hex_color(color: str) -> bool:
    return bool(HEX_COLOR_PATTERN.match(color or ""))


def is_valid_integer(
    value: Any, min_value: Optional[int] = None, max_value: Optional[int] = None
) -> bool:
    """
    Check that ``value`` parses as an integer inside the optional bounds.

    Args:
        value: An int or a string holding one.
        min_value: Inclusive lower bound, if any.
        max_value: Inclusive upper bound, if any.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        return False

    if min_value is not None and number < min_value:
        return False
    if max_value is not None and number > max_value:
        return False
    return True


def is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except (TypeError, ValueError):
        return False
    return True


def sanitize_input(text: str) -> str:
    """
    Sanitize free-form user input before it is stored or echoed.

    Removes characters commonly used for markup injection (``<>"'&``),
    strips surrounding whitespace and caps the length at 2000 characters.

    Args:
        text: Raw user input string.

    Returns:
        Sanitized string.
    """
    if not text:
        return ""

    text = "".join(c for c in text if c not in "<>\"'&")
    return text.strip()[:SANITIZED_INPUT_LIMIT]


def is_valid_duration(duration: str) -> bool:
    return bool(DURATION_PATTERN.match(duration or ""))


def parse_duration(duration: str) -> timedelta:
    """
    Parse a compact duration such as ``30s``, ``10m``, ``2h`` or ``7d``.

    Raises:
        ValueError: If the string does not match ``<number><s|m|h|d>``.
    """
    match = DURATION_PATTERN.match(duration or "")
    if not match:
        raise ValueError(f"Invalid duration format: {duration!r}")

    amount, unit = match.groups()
    return int(amount) * DURATION_UNITS[unit]
