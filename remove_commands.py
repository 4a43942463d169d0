"""
Remove published slash commands from Discord.

Usage:
    python remove_commands.py [--scope {all,guild,global}]

``guild`` clears the development guild (GUILD_ID must be set), ``global``
clears the application-wide set and ``all`` clears both.
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import discord

from config.settings import ConfigurationError, Settings, load_settings
from utils.logger import get_logger, setup_logging

logger = get_logger("remove")

SCOPES = ("all", "guild", "global")


async def remove_commands(settings: Settings, scope: str = "all") -> None:
    """
    Replace the selected command sets with an empty list.

    Raises:
        ValueError: If ``scope`` is ``guild`` and no GUILD_ID is configured.
    """
    if scope not in SCOPES:
        raise ValueError(f"Unknown scope: {scope}")
    if scope == "guild" and not settings.guild_id:
        raise ValueError("GUILD_ID is required to remove guild commands")

    client = discord.Client(intents=discord.Intents.none())
    async with client:
        await client.login(settings.discord_token)

        if scope in ("all", "global"):
            logger.info("Started removing all global application (/) commands.")
            await client.http.bulk_upsert_global_commands(settings.client_id, [])
            logger.info("Successfully removed all global application (/) commands.")

        if scope in ("all", "guild") and settings.guild_id:
            logger.info(
                f"Started removing all guild application (/) commands for guild "
                f"{settings.guild_id}."
            )
            await client.http.bulk_upsert_guild_commands(
                settings.client_id, settings.guild_id, []
            )
            logger.info("Successfully removed all guild application (/) commands.")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Remove slash commands from Discord")
    parser.add_argument(
        "--scope",
        choices=SCOPES,
        default="all",
        help="Which command sets to clear (default: all)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging()

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(str(e))
        return 1

    setup_logging(settings.logging_level)

    try:
        asyncio.run(remove_commands(settings, args.scope))
    except ValueError as e:
        logger.error(str(e))
        return 1
    except discord.HTTPException as e:
        logger.error(f"Failed to remove commands: {e}", exc_info=e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
