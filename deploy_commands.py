"""
Publish the slash command definitions to Discord.

Commands go to the development guild when GUILD_ID is set (visible at once)
or globally otherwise (may take up to an hour to show up everywhere).

Usage:
    python deploy_commands.py [--global]
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

import discord

from bot import load_extensions
from config.settings import ConfigurationError, Settings, load_settings
from utils.logger import get_logger, setup_logging
from utils.registry import CommandRegistry

logger = get_logger("deploy")


async def deploy(settings: Settings, force_global: bool = False) -> int:
    """
    Overwrite the command set of the guild or of the application.

    Returns:
        Number of commands Discord accepted.
    """
    payload = load_extensions(CommandRegistry()).payloads()
    logger.info(f"Started refreshing {len(payload)} application (/) commands.")

    client = discord.Client(intents=discord.Intents.none())
    async with client:
        await client.login(settings.discord_token)

        if settings.guild_id and not force_global:
            data = await client.http.bulk_upsert_guild_commands(
                settings.client_id, settings.guild_id, payload
            )
            logger.info(
                f"Successfully reloaded {len(data)} guild commands for guild "
                f"{settings.guild_id}."
            )
        else:
            data = await client.http.bulk_upsert_global_commands(
                settings.client_id, payload
            )
            logger.info(f"Successfully reloaded {len(data)} global commands.")
            logger.warning(
                "Global commands may take up to 1 hour to propagate to all servers."
            )

    return len(data)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Deploy slash commands to Discord")
    parser.add_argument(
        "--global",
        dest="force_global",
        action="store_true",
        help="Deploy globally even when GUILD_ID is set",
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
        asyncio.run(deploy(settings, force_global=args.force_global))
    except discord.HTTPException as e:
        logger.error(f"Failed to deploy commands: {e}", exc_info=e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
