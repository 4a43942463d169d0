"""
Main entry point for the Sentinel moderation bot.

This module configures the client, initializes the database connection, loads
the command modules and handles gateway events. It includes specific logic for:
- Routing slash command interactions through the command registry.
- Recording guilds, users and memberships as they are seen.
- Graceful startup/shutdown sequences.
"""

import asyncio
import importlib
import signal
import sys
import time
from typing import Optional

import discord

from config.settings import BOT_COLOR, ConfigurationError, Settings, load_settings
from utils.constants import READY_TIMEOUT_SECONDS
from utils.database import Database
from utils.dispatcher import CommandDispatcher
from utils.logger import get_logger, setup_logging, shutdown_logging
from utils.registry import CommandRegistry

logger = get_logger("bot")

EXTENSIONS = ("cogs.general", "cogs.moderation")


def build_intents() -> discord.Intents:
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.members = True
    intents.message_content = True
    return intents


def load_extensions(registry: CommandRegistry) -> CommandRegistry:
    """Import each command module and let it register its commands."""
    for name in EXTENSIONS:
        try:
            module = importlib.import_module(name)
            module.setup(registry)
            logger.info(f"✅ Loaded {name}")
        except Exception as e:
            logger.error(f"❌ Failed to load {name}: {e}", exc_info=e)

    logger.info(
        f"Registered {len(registry)} commands", extra={"commands": registry.names()}
    )
    return registry


class SentinelBot(discord.Client):
    """
    Discord client bound to one registry, database and configuration.

    Features:
    - Async initialization via `setup_hook`.
    - Database connection lifecycle management.
    - Interaction routing through :class:`CommandDispatcher`.
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        registry: CommandRegistry,
        **options,
    ):
        options.setdefault("intents", build_intents())
        super().__init__(**options)
        self.settings = settings
        self.database = database
        self.registry = registry
        self.dispatcher = CommandDispatcher(registry, self)
        self.start_time: Optional[float] = None
        self._ready_event = asyncio.Event()

    async def setup_hook(self) -> None:
        """
        Async initialization hook called before the bot connects to Discord.

        Performs:
        1. Time recording for uptime.
        2. Database connection and migrations.
        3. Command module loading.
        """
        logger.info("Bot setup hook called - performing async initialization")
        self.start_time = time.time()

        try:
            await self.database.connect()
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}", exc_info=e)

        self.load_extensions()

    def load_extensions(self) -> None:
        load_extensions(self.registry)

    async def close(self) -> None:
        """Close the database, then the gateway connection."""
        logger.log_shutdown("Shutting down Discord bot...")
        await self.database.close()
        await super().close()

    async def wait_for_ready(self, timeout: float = READY_TIMEOUT_SECONDS) -> None:
        """
        Wait until the first READY event.

        Raises:
            asyncio.TimeoutError: If the bot is not ready within ``timeout``.
        """
        await asyncio.wait_for(self._ready_event.wait(), timeout)

    @property
    def is_bot_ready(self) -> bool:
        return self._ready_event.is_set()

    async def on_ready(self) -> None:
        """Called when the bot has successfully connected to the Gateway."""
        logger.log_startup(f"Bot is ready! Logged in as {self.user}")
        logger.info(
            "Bot statistics",
            extra={
                "guilds": len(self.guilds),
                "users": len(self.users),
                "latency_ms": round(self.latency * 1000),
            },
        )

        try:
            await self.change_presence(
                activity=discord.Activity(
                    type=discord.ActivityType.watching,
                    name=f"{len(self.guilds)} servers | /help",
                )
            )
            logger.info("Bot presence set successfully")
        except Exception as e:
            logger.error(f"Failed to set bot presence: {e}")

        self._ready_event.set()
        logger.log_startup("Bot initialization completed")

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        await self.dispatcher.dispatch(interaction)

    async def on_guild_join(self, guild: discord.Guild) -> None:
        """Record the guild and greet it in its system channel."""
        logger.log_event(
            "Bot added to guild",
            guild_id=guild.id,
            guild_name=guild.name,
            member_count=guild.member_count,
            owner_id=guild.owner_id,
        )

        try:
            if self.database.is_connected:
                await self.database.create_or_update_guild(
                    guild.id,
                    guild.name,
                    {
                        "owner_id": str(guild.owner_id),
                        "member_count": guild.member_count,
                        "joined_at": discord.utils.utcnow().isoformat(),
                    },
                )
                logger.log_database("upsert", "guilds", guild.id)

            channel = guild.system_channel
            if channel and channel.permissions_for(guild.me).send_messages:
                embed = discord.Embed(
                    title="👋 Hello!",
                    description=(
                        "Thanks for adding me to your server! "
                        "Use `/help` to see available commands."
                    ),
                    color=BOT_COLOR,
                    timestamp=discord.utils.utcnow(),
                )
                await channel.send(embed=embed)
        except Exception as e:
            logger.error(f"Error handling guild join event: {e}", exc_info=e)

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        # Guild rows are kept in case the bot is added back
        logger.log_event("Bot removed from guild", guild_id=guild.id, guild_name=guild.name)

    async def on_member_join(self, member: discord.Member) -> None:
        """Record the user and their membership of the guild."""
        logger.log_event(
            "Member joined",
            user_id=member.id,
            username=member.name,
            guild_id=member.guild.id,
        )

        if not self.database.is_connected:
            logger.debug("Database unavailable, member not recorded")
            return

        try:
            await self.database.create_or_update_user(
                member.id, member.name, member.discriminator
            )
            logger.log_database("upsert", "users", member.id)

            await self.database.create_or_update_guild(member.guild.id, member.guild.name)
            await self.database.create_or_update_membership(
                member.id,
                member.guild.id,
                [role.id for role in member.roles if not role.is_default()],
            )
            logger.log_database("upsert", "user_guilds", member.id)
        except Exception as e:
            logger.error(f"Failed to add user to database: {e}", exc_info=e)

    async def on_error(self, event_method: str, *args, **kwargs) -> None:
        logger.error(f"Discord client error in {event_method}", exc_info=True)


async def main() -> int:
    """
    Main bot startup function.

    Loads configuration, builds the bot and runs it until it is closed.

    Returns:
        Process exit code.
    """
    setup_logging()

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logger.critical(str(e))
        return 1

    setup_logging(settings.logging_level, settings.enable_file_logging)
    logger.log_startup("Initializing Discord Bot...")
    logger.info("Bot configuration loaded", extra=settings.redacted())

    database = Database(settings.database_path, default_prefix=settings.default_prefix)
    bot = SentinelBot(settings, database, CommandRegistry())

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGTERM, lambda: asyncio.create_task(bot.close()))
    except NotImplementedError:
        # Signal handlers are unavailable on Windows event loops
        pass

    try:
        async with bot:
            await bot.start(settings.discord_token)
    except discord.LoginFailure as e:
        logger.critical(f"Failed to start Discord bot: {e}")
        return 1

    return 0


if __name__ == "__main__":
    exit_code = 0
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=e)
        exit_code = 1
    finally:
        shutdown_logging()
    sys.exit(exit_code)
