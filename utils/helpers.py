"""
Helper functions for Discord embed creation and text formatting.

This module contains utility functions to:
- Sanitize text to prevent Discord mention exploits.
- Create standardized success embeds.
- Format durations and timestamps for display.
- Truncate text to ensure compliance with Discord API limits.
"""

from datetime import datetime
from typing import Optional

import discord

from config.settings import COLOR_SUCCESS
from utils.constants import (
    DISCORD_EMBED_DESCRIPTION_LIMIT,
    DISCORD_EMBED_TITLE_LIMIT,
    DISCORD_EMBED_TOTAL_LIMIT,
)


def sanitize_embed_content(text: str) -> str:
    """
    Sanitize text for safe embedding by escaping mentions and markdown.

    Injects a zero-width space (`\u200b`) into mentions (e.g., `@everyone`
    becomes `@` + `\u200b` + `everyone`) to prevent them from pinging users,
    even if the bot has mention permissions. Also escapes markdown characters
    to prevent formatting exploits.

    Args:
        text: Text to sanitize.

    Returns:
        Sanitized text safe for Discord embeds.
    """
    if not text:
        return ""

    text = text.replace("@", "@\u200b")  # Zero-width space prevents mentions

    # Escape Discord markdown to prevent formatting exploits
    text = text.replace("`", "\\`")
    text = text.replace("*", "\\*")
    text = text.replace("_", "\\_")
    text = text.replace("~", "\\~")
    text = text.replace("|", "\\|")

    return text


def truncate_text(text: str, max_length: int = 1024, smart: bool = True) -> str:
    """
    Truncate text to fit within Discord API limits.

    Args:
        text: The text to truncate.
        max_length: The absolute maximum characters allowed.
        smart: If True, attempts to split at the nearest space character
            before the limit to avoid cutting words in half.

    Returns:
        Truncated text, ending with '...' if truncation occurred.
    """
    if len(text) <= max_length:
        return text

    if smart:
        truncate_point = text.rfind(" ", 0, max_length - 3)
        if truncate_point > max_length // 2:  # Only if we find a space in latter half
            return text[:truncate_point] + "..."

    return text[: max_length - 3] + "..."


def format_uptime(seconds: float, include_seconds: bool = True) -> str:
    """
    Format a duration as ``1d 2h 3m 4s``, leaving out leading zero units.

    Args:
        seconds: Duration in seconds.
        include_seconds: Whether to show the seconds part.
    """
    total = max(0, int(seconds))
    days, remainder = divmod(total, 86400)
    hours, remainder = divmod(remainder, 3600)
    minutes, secs = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if include_seconds or not parts:
        parts.append(f"{secs}s")

    return " ".join(parts)


def format_timestamp(moment: Optional[datetime], style: str = "F") -> str:
    """Render a datetime as a Discord timestamp tag, or 'Unknown'."""
    if moment is None:
        return "Unknown"
    return discord.utils.format_dt(moment, style=style)  # type: ignore[arg-type]


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def create_success_embed(title: str, description: Optional[str] = None) -> discord.Embed:
    """
    Create a standardized success embed (Green).

    Applies content sanitization to inputs.

    Args:
        title: Title of the success message.
        description: Optional detailed success message.

    Returns:
        Discord Embed object.
    """
    safe_title = sanitize_embed_content(title)

    embed = discord.Embed(title=f"✅ {safe_title}", color=COLOR_SUCCESS)
    if description:
        embed.description = truncate_text(
            sanitize_embed_content(description), DISCORD_EMBED_DESCRIPTION_LIMIT
        )
    return embed


def validate_and_truncate_embed(embed: discord.Embed) -> discord.Embed:
    """
    Validate and truncate an embed to ensure it fits within Discord API limits.

    Checks total character counts and shortens the description if limits
    are exceeded.

    Args:
        embed: The Discord embed to validate.

    Returns:
        The modified (truncated) embed.
    """
    if embed.title and len(embed.title) > DISCORD_EMBED_TITLE_LIMIT:
        embed.title = embed.title[: DISCORD_EMBED_TITLE_LIMIT - 3] + "..."

    if embed.description and len(embed.description) > DISCORD_EMBED_DESCRIPTION_LIMIT:
        embed.description = truncate_text(
            embed.description, DISCORD_EMBED_DESCRIPTION_LIMIT
        )

    total_chars = len(embed)
    if total_chars > DISCORD_EMBED_TOTAL_LIMIT:
        excess = total_chars - DISCORD_EMBED_TOTAL_LIMIT

        if embed.description and len(embed.description) > excess:
            new_desc_length = max(100, len(embed.description) - excess - 50)
            embed.description = truncate_text(embed.description, new_desc_length)

    return embed
