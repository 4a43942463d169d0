"""
Moderation commands: kick, ban and clear.

Every action goes through the shared target checks in :mod:`utils.guards`
before anything is sent to Discord, and every completed action leaves a
security entry in the log.
"""

from typing import Optional

import discord

from config.settings import COLOR_BAN, COLOR_KICK
from utils.constants import (
    BAN_DELETE_DAYS_MAX,
    BAN_DELETE_DAYS_MIN,
    CLEAR_MAX_AMOUNT,
    CLEAR_MIN_AMOUNT,
    DEFAULT_REASON,
    DISCORD_AUDIT_REASON_LIMIT,
    ERROR_ALREADY_BANNED,
    ERROR_BOT_MISSING_MANAGE_MESSAGES,
    ERROR_GUILD_ONLY,
    ERROR_REASON_TOO_LONG,
    ERROR_TEXT_CHANNEL_ONLY,
)
from utils.guards import check_moderation_target, guard_message
from utils.helpers import create_success_embed, truncate_text
from utils.logger import get_logger
from utils.purge import purge
from utils.registry import (
    CommandContext,
    CommandDescriptor,
    CommandOption,
    CommandRegistry,
    OptionType,
)
from utils.validators import is_valid_reason

logger = get_logger("moderation")

SECONDS_PER_DAY = 24 * 60 * 60

# Channel types that support message history and bulk deletion
PURGEABLE_CHANNEL_TYPES = (discord.TextChannel, discord.Thread, discord.VoiceChannel)


async def _reply(ctx: CommandContext, content: str) -> None:
    await ctx.interaction.response.send_message(content, ephemeral=True)


async def _send_notice(
    user: discord.abc.User,
    title: str,
    color: int,
    guild: discord.Guild,
    reason: str,
    moderator: discord.abc.User,
) -> None:
    """
    DM the target about the action. Users with closed DMs are skipped.
    """
    embed = discord.Embed(title=title, color=color, timestamp=discord.utils.utcnow())
    embed.add_field(name="Server", value=guild.name, inline=True)
    embed.add_field(name="Reason", value=reason, inline=True)
    embed.add_field(name="Moderator", value=moderator.name, inline=True)

    try:
        await user.send(embed=embed)
    except discord.HTTPException as e:
        logger.debug(
            f"Could not send DM to user: {e}", extra={"target_user_id": user.id}
        )


def _action_embed(
    title: str,
    target: discord.abc.User,
    moderator: discord.abc.User,
    reason: str,
    color: Optional[int] = None,
) -> discord.Embed:
    embed = create_success_embed(title)
    if color is not None:
        embed.colour = discord.Colour(color)
    embed.timestamp = discord.utils.utcnow()
    embed.add_field(name="User", value=f"{target.name} ({target.id})", inline=True)
    embed.add_field(name="Moderator", value=moderator.name, inline=True)
    embed.add_field(name="Reason", value=reason, inline=False)
    return embed


def _get_reason(ctx: CommandContext) -> Optional[str]:
    """The reason option, or None when it exceeds the audit log limit."""
    reason = ctx.get_string("reason") or DEFAULT_REASON
    return reason if is_valid_reason(reason) else None


async def kick(ctx: CommandContext) -> None:
    """Remove a member from the guild after the target checks pass."""
    guild = ctx.guild
    if guild is None:
        await _reply(ctx, ERROR_GUILD_ONLY)
        return

    reason = _get_reason(ctx)
    if reason is None:
        await _reply(ctx, ERROR_REASON_TOO_LONG)
        return

    target = await ctx.get_user("user")
    target_member = guild.get_member(target.id)

    violation = check_moderation_target(
        "kick", guild, ctx.user, target, target_member, guild.me
    )
    if violation is not None:
        await _reply(ctx, guard_message(violation, "kick"))
        return

    await _send_notice(
        target, "🦶 You have been kicked", COLOR_KICK, guild, reason, ctx.user
    )

    try:
        await target_member.kick(reason=reason)
    except discord.HTTPException as e:
        logger.error(f"Error kicking user: {e}", extra={"target_user_id": target.id})
        await _reply(ctx, "❌ An error occurred while trying to kick the user.")
        return

    await ctx.interaction.response.send_message(
        embed=_action_embed("User Kicked", target, ctx.user, reason)
    )

    logger.log_security(
        "User kicked",
        ctx.user.id,
        target_user_id=target.id,
        target_username=target.name,
        guild_id=guild.id,
        reason=reason,
    )


async def _is_banned(guild: discord.Guild, user: discord.abc.User) -> bool:
    try:
        await guild.fetch_ban(user)
    except discord.NotFound:
        return False
    except discord.HTTPException as e:
        # Ban list unreadable, let the ban call itself decide
        logger.debug(f"Could not fetch ban entry: {e}", extra={"target_user_id": user.id})
        return False
    return True


async def ban(ctx: CommandContext) -> None:
    """
    Ban a user, who does not have to be a member of the guild.

    Optionally removes up to seven days of their messages.
    """
    guild = ctx.guild
    if guild is None:
        await _reply(ctx, ERROR_GUILD_ONLY)
        return

    reason = _get_reason(ctx)
    if reason is None:
        await _reply(ctx, ERROR_REASON_TOO_LONG)
        return

    delete_days = ctx.get_integer("delete_days", 0)
    delete_days = min(max(delete_days, BAN_DELETE_DAYS_MIN), BAN_DELETE_DAYS_MAX)

    target = await ctx.get_user("user")
    target_member = guild.get_member(target.id)

    violation = check_moderation_target(
        "ban", guild, ctx.user, target, target_member, guild.me
    )
    if violation is not None:
        await _reply(ctx, guard_message(violation, "ban"))
        return

    if await _is_banned(guild, target):
        await _reply(ctx, ERROR_ALREADY_BANNED)
        return

    # Only members share a server with the bot and can receive its DMs
    if target_member is not None:
        await _send_notice(
            target, "🔨 You have been banned", COLOR_BAN, guild, reason, ctx.user
        )

    audit_reason = truncate_text(
        f"{reason} | Moderator: {ctx.user.name}", DISCORD_AUDIT_REASON_LIMIT, smart=False
    )
    try:
        await guild.ban(
            target,
            reason=audit_reason,
            delete_message_seconds=delete_days * SECONDS_PER_DAY,
        )
    except discord.HTTPException as e:
        logger.error(f"Error banning user: {e}", extra={"target_user_id": target.id})
        await _reply(ctx, "❌ An error occurred while trying to ban the user.")
        return

    embed = _action_embed("User Banned", target, ctx.user, reason, color=COLOR_BAN)
    if delete_days > 0:
        embed.add_field(
            name="Messages Deleted",
            value=f"{delete_days} day{'' if delete_days == 1 else 's'} worth of messages",
            inline=True,
        )
    await ctx.interaction.response.send_message(embed=embed)

    logger.log_security(
        "User banned",
        ctx.user.id,
        target_user_id=target.id,
        target_username=target.name,
        guild_id=guild.id,
        reason=reason,
        delete_days=delete_days,
    )


async def clear(ctx: CommandContext) -> None:
    """Bulk delete recent messages, optionally only those of one user."""
    interaction = ctx.interaction
    guild = ctx.guild
    if guild is None:
        await _reply(ctx, ERROR_GUILD_ONLY)
        return

    channel = interaction.channel
    if not isinstance(channel, PURGEABLE_CHANNEL_TYPES):
        await _reply(ctx, ERROR_TEXT_CHANNEL_ONLY)
        return

    if not channel.permissions_for(guild.me).manage_messages:
        await _reply(ctx, ERROR_BOT_MISSING_MANAGE_MESSAGES)
        return

    amount = ctx.get_integer("amount")
    target = await ctx.get_user("user")

    await interaction.response.defer(ephemeral=True)

    try:
        result = await purge(channel, amount, target.id if target else None)
    except discord.HTTPException as e:
        logger.error(f"Error clearing messages: {e}", extra={"channel_id": channel.id})
        await interaction.edit_original_response(
            content="❌ An error occurred while trying to delete messages."
        )
        return

    if result.aborted:
        await interaction.edit_original_response(content=result.reason)
        return

    embed = create_success_embed("Messages Cleared")
    embed.timestamp = discord.utils.utcnow()
    embed.add_field(name="Messages Deleted", value=str(result.deleted), inline=True)
    embed.add_field(name="Channel", value=channel.mention, inline=True)
    embed.add_field(name="Moderator", value=ctx.user.name, inline=True)
    if target:
        embed.add_field(
            name="Target User", value=f"{target.name} ({target.id})", inline=True
        )
    if result.skipped > 0:
        plural = "" if result.skipped == 1 else "s"
        embed.add_field(
            name="⚠️ Note",
            value=(
                f"{result.skipped} message{plural} older than 14 days "
                "could not be deleted."
            ),
            inline=False,
        )

    await interaction.edit_original_response(embed=embed)

    logger.log_security(
        "Messages cleared",
        ctx.user.id,
        channel_id=channel.id,
        deleted_count=result.deleted,
        target_user_id=target.id if target else None,
        guild_id=guild.id,
        old_messages_skipped=result.skipped,
    )


COMMANDS = (
    CommandDescriptor(
        name="kick",
        description="Kick a member from the server",
        execute=kick,
        options=(
            CommandOption(
                name="user",
                description="The user to kick",
                type=OptionType.user,
                required=True,
            ),
            CommandOption(name="reason", description="Reason for kicking the user"),
        ),
        default_permission=discord.Permissions(kick_members=True),
    ),
    CommandDescriptor(
        name="ban",
        description="Ban a member from the server",
        execute=ban,
        options=(
            CommandOption(
                name="user",
                description="The user to ban",
                type=OptionType.user,
                required=True,
            ),
            CommandOption(name="reason", description="Reason for banning the user"),
            CommandOption(
                name="delete_days",
                description="Number of days of messages to delete (0-7)",
                type=OptionType.integer,
                min_value=BAN_DELETE_DAYS_MIN,
                max_value=BAN_DELETE_DAYS_MAX,
            ),
        ),
        default_permission=discord.Permissions(ban_members=True),
    ),
    CommandDescriptor(
        name="clear",
        description="Delete multiple messages at once",
        execute=clear,
        options=(
            CommandOption(
                name="amount",
                description="Number of messages to delete (1-100)",
                type=OptionType.integer,
                required=True,
                min_value=CLEAR_MIN_AMOUNT,
                max_value=CLEAR_MAX_AMOUNT,
            ),
            CommandOption(
                name="user",
                description="Only delete messages from this user",
                type=OptionType.user,
            ),
        ),
        default_permission=discord.Permissions(manage_messages=True),
    ),
)


def setup(registry: CommandRegistry) -> None:
    """Register the moderation commands."""
    for descriptor in COMMANDS:
        registry.register(descriptor)
    logger.info("Moderation commands loaded successfully")
