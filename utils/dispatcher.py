"""
Routes incoming interactions to registered commands.

Each interaction is handled in its own task by discord.py's event loop, so
commands may interleave at await points but never run in parallel. Errors
raised by a command stay inside that invocation: they are logged and turned
into an ephemeral message for the invoking user.
"""

from typing import TYPE_CHECKING, Any, Optional

import discord

from utils.constants import ERROR_COMMAND_FAILED, ERROR_UNKNOWN_COMMAND
from utils.logger import get_logger
from utils.registry import CommandContext, CommandRegistry

if TYPE_CHECKING:
    from bot import SentinelBot

logger = get_logger("dispatcher")


async def send_ephemeral(interaction: discord.Interaction, content: str) -> None:
    """
    Send an ephemeral message, as a follow-up if the interaction was already
    answered or deferred. An interaction accepts one initial response only.
    """
    if interaction.response.is_done():
        await interaction.followup.send(content, ephemeral=True)
    else:
        await interaction.response.send_message(content, ephemeral=True)


class CommandDispatcher:
    """Looks up the command named by an interaction and runs it."""

    def __init__(self, registry: CommandRegistry, bot: "SentinelBot"):
        self.registry = registry
        self.bot = bot

    async def dispatch(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.application_command:
            self._log_other_interaction(interaction)
            return

        data: Any = interaction.data or {}
        name: Optional[str] = data.get("name")
        descriptor = self.registry.lookup(name) if name else None

        if descriptor is None:
            logger.warning(
                f"Unknown command attempted: {name}",
                extra={"user_id": interaction.user.id, "guild_id": interaction.guild_id},
            )
            await self._reply_error(interaction, ERROR_UNKNOWN_COMMAND)
            return

        context = CommandContext.from_interaction(interaction, self.bot)

        try:
            logger.log_command(name, interaction.user.id, interaction.guild_id)
            await descriptor.execute(context)
            logger.debug(f"Command executed successfully: {name}")
        except Exception as e:
            logger.error(
                f"Error executing command: {name}",
                exc_info=e,
                extra={"user_id": interaction.user.id, "guild_id": interaction.guild_id},
            )
            await self._reply_error(interaction, ERROR_COMMAND_FAILED)

    async def _reply_error(self, interaction: discord.Interaction, content: str) -> None:
        try:
            await send_ephemeral(interaction, content)
        except Exception as e:
            logger.error(f"Failed to send error message to user: {e}")

    def _log_other_interaction(self, interaction: discord.Interaction) -> None:
        data: Any = interaction.data or {}
        context = {
            "custom_id": data.get("custom_id"),
            "user_id": interaction.user.id,
            "guild_id": interaction.guild_id,
        }

        if interaction.type is discord.InteractionType.component:
            if data.get("component_type") == discord.ComponentType.button.value:
                logger.log_event("Button interaction", **context)
            else:
                logger.log_event(
                    "Select menu interaction", values=data.get("values"), **context
                )
        elif interaction.type is discord.InteractionType.modal_submit:
            logger.log_event("Modal submission", **context)
