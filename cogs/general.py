"""
General commands available to every user.

This module contains informational commands including:
- Diagnostics (ping, info).
- Command help with per-command detail.
- User and server lookups (userinfo, serverinfo).
"""

import platform
import time

import discord

from config.settings import BOT_COLOR
from utils.constants import ERROR_GUILD_ONLY, MODERATION_COMMAND_NAMES
from utils.helpers import (
    format_timestamp,
    format_uptime,
    validate_and_truncate_embed,
    yes_no,
)
from utils.logger import get_logger
from utils.registry import (
    CommandContext,
    CommandDescriptor,
    CommandOption,
    CommandRegistry,
    OptionType,
)

logger = get_logger("general")

MAX_ROLES_SHOWN = 10

KEY_PERMISSIONS = (
    ("manage_guild", "Manage Server"),
    ("manage_roles", "Manage Roles"),
    ("manage_channels", "Manage Channels"),
    ("moderate_members", "Moderate Members"),
    ("kick_members", "Kick Members"),
    ("ban_members", "Ban Members"),
)


def _set_requester_footer(embed: discord.Embed, user: discord.abc.User) -> None:
    embed.set_footer(
        text=f"Requested by {user.name}", icon_url=user.display_avatar.url
    )


async def ping(ctx: CommandContext) -> None:
    """
    Check the bot's latency.

    Displays two metrics:
    1. Bot Latency: Time between the interaction and our reply being created.
    2. API Latency: Gateway heartbeat round trip.
    """
    interaction = ctx.interaction
    await interaction.response.send_message("Pinging...")
    sent = await interaction.original_response()

    bot_latency = round((sent.created_at - interaction.created_at).total_seconds() * 1000)
    api_latency = round(ctx.bot.latency * 1000)

    embed = discord.Embed(
        title="🏓 Pong!", color=BOT_COLOR, timestamp=discord.utils.utcnow()
    )
    embed.add_field(name="Bot Latency", value=f"{bot_latency}ms", inline=True)
    embed.add_field(name="API Latency", value=f"{api_latency}ms", inline=True)

    await interaction.edit_original_response(content=None, embed=embed)


async def info(ctx: CommandContext) -> None:
    """Display bot statistics, performance and version information."""
    bot = ctx.bot
    uptime = format_uptime(time.time() - bot.start_time) if bot.start_time else "0s"
    avatar_url = bot.user.display_avatar.url if bot.user else None

    embed = discord.Embed(
        title="🤖 Bot Information", color=BOT_COLOR, timestamp=discord.utils.utcnow()
    )
    if avatar_url:
        embed.set_thumbnail(url=avatar_url)

    embed.add_field(
        name="📊 Statistics",
        value="\n".join(
            [
                f"**Guilds:** {len(bot.guilds)}",
                f"**Users:** {len(bot.users)}",
                f"**Channels:** {sum(1 for _ in bot.get_all_channels())}",
            ]
        ),
        inline=True,
    )
    embed.add_field(
        name="⚡ Performance",
        value="\n".join(
            [
                f"**Uptime:** {uptime}",
                f"**Commands:** {len(bot.registry)}",
                f"**Ping:** {round(bot.latency * 1000)}ms",
            ]
        ),
        inline=True,
    )
    embed.add_field(
        name="🔧 Technical",
        value="\n".join(
            [
                f"**Python:** {platform.python_version()}",
                f"**discord.py:** v{discord.__version__}",
                f"**Environment:** {bot.settings.environment}",
            ]
        ),
        inline=True,
    )
    embed.set_footer(
        text=f"Bot ID: {bot.user.id if bot.user else 'unknown'}", icon_url=avatar_url
    )

    await ctx.interaction.response.send_message(embed=embed)

    logger.info(
        "Info command executed",
        extra={"user_id": ctx.user.id, "guild_id": ctx.interaction.guild_id},
    )


def build_help_summary(registry: CommandRegistry) -> discord.Embed:
    """All commands grouped into general and moderation."""
    general = []
    moderation = []

    for descriptor in registry:
        line = f"`/{descriptor.name}` - {descriptor.description}"
        if descriptor.name in MODERATION_COMMAND_NAMES:
            moderation.append(line)
        else:
            general.append(line)

    embed = discord.Embed(
        title="📚 Available Commands",
        description=(
            "Here are all the available commands. Use `/help <command>` for "
            "detailed information about a specific command."
        ),
        color=BOT_COLOR,
    )
    if general:
        embed.add_field(name="🔧 General Commands", value="\n".join(general), inline=False)
    if moderation:
        embed.add_field(
            name="🛡️ Moderation Commands", value="\n".join(moderation), inline=False
        )
    embed.set_footer(text=f"Total commands: {len(registry)}")

    return embed


def build_help_detail(descriptor: CommandDescriptor) -> discord.Embed:
    """Usage and options of a single command."""
    embed = discord.Embed(
        title=f"📖 Help: /{descriptor.name}",
        description=descriptor.description,
        color=BOT_COLOR,
    )
    embed.add_field(name="Usage", value=f"`/{descriptor.name}`", inline=False)

    if descriptor.options:
        lines = [
            f"`{option.name}` {'(required)' if option.required else '(optional)'}"
            f" - {option.description}"
            for option in descriptor.options
        ]
        embed.add_field(name="Options", value="\n".join(lines), inline=False)

    return embed


async def help_command(ctx: CommandContext) -> None:
    """Show every command, or the details of one when ``command`` is given."""
    name = ctx.get_string("command")

    if not name:
        await ctx.interaction.response.send_message(
            embed=build_help_summary(ctx.registry)
        )
        return

    descriptor = ctx.registry.lookup(name)
    if descriptor is None:
        await ctx.interaction.response.send_message(
            f"❌ Command `{name}` not found.", ephemeral=True
        )
        return

    await ctx.interaction.response.send_message(embed=build_help_detail(descriptor))


async def userinfo(ctx: CommandContext) -> None:
    """Show account details, and membership details inside a guild."""
    target = await ctx.get_user("user") or ctx.user
    member = ctx.guild.get_member(target.id) if ctx.guild else None

    embed = discord.Embed(title="👤 User Information", color=BOT_COLOR)
    embed.set_thumbnail(url=target.display_avatar.with_size(256).url)

    embed.add_field(
        name="📝 Basic Info",
        value="\n".join(
            [
                f"**Username:** {target.name}",
                f"**Display Name:** {target.display_name}",
                f"**ID:** {target.id}",
                f"**Bot:** {yes_no(target.bot)}",
            ]
        ),
        inline=True,
    )

    joined = (
        f"**Joined:** {format_timestamp(member.joined_at, 'R')}"
        if member
        else "**Joined:** Not in this server"
    )
    embed.add_field(
        name="📅 Dates",
        value=f"**Created:** {format_timestamp(target.created_at, 'R')}\n{joined}",
        inline=True,
    )

    if member:
        roles = sorted(
            (role for role in member.roles if not role.is_default()),
            key=lambda role: role.position,
            reverse=True,
        )
        if roles:
            shown = ", ".join(role.mention for role in roles[:MAX_ROLES_SHOWN])
            if len(roles) > MAX_ROLES_SHOWN:
                shown += "..."
            embed.add_field(name=f"🎭 Roles ({len(roles)})", value=shown, inline=False)

        permissions = member.guild_permissions
        if permissions.administrator:
            embed.add_field(
                name="⚡ Key Permissions",
                value="Administrator (All Permissions)",
                inline=False,
            )
        else:
            key_permissions = [
                label for flag, label in KEY_PERMISSIONS if getattr(permissions, flag)
            ]
            if key_permissions:
                embed.add_field(
                    name="⚡ Key Permissions",
                    value=", ".join(key_permissions),
                    inline=False,
                )

        if member.premium_since:
            embed.add_field(
                name="💎 Server Booster",
                value=f"Since {format_timestamp(member.premium_since, 'R')}",
                inline=True,
            )

    _set_requester_footer(embed, ctx.user)
    await ctx.interaction.response.send_message(embed=validate_and_truncate_embed(embed))


def _format_feature(feature: str) -> str:
    return feature.replace("_", " ").lower().capitalize()


async def serverinfo(ctx: CommandContext) -> None:
    """Summarize the current guild."""
    guild = ctx.guild
    if guild is None:
        await ctx.interaction.response.send_message(ERROR_GUILD_ONLY, ephemeral=True)
        return

    total_members = guild.member_count or 0
    bots = sum(1 for member in guild.members if member.bot)
    verification = guild.verification_level.name.replace("_", " ").title()

    embed = discord.Embed(title=f"🏠 {guild.name}", color=BOT_COLOR)
    if guild.icon:
        embed.set_thumbnail(url=guild.icon.with_size(256).url)

    embed.add_field(
        name="📊 General Information",
        value="\n".join(
            [
                f"**Owner:** <@{guild.owner_id}>",
                f"**Created:** {format_timestamp(guild.created_at, 'R')}",
                f"**ID:** {guild.id}",
                f"**Verification Level:** {verification}",
            ]
        ),
        inline=True,
    )
    embed.add_field(
        name="👥 Members",
        value="\n".join(
            [
                f"**Total:** {total_members}",
                f"**Humans:** {total_members - bots}",
                f"**Bots:** {bots}",
            ]
        ),
        inline=True,
    )
    embed.add_field(
        name="📺 Channels",
        value="\n".join(
            [
                f"**Text:** {len(guild.text_channels)}",
                f"**Voice:** {len(guild.voice_channels)}",
                f"**Categories:** {len(guild.categories)}",
                f"**Threads:** {len(guild.threads)}",
            ]
        ),
        inline=True,
    )
    embed.add_field(
        name="🎭 Other",
        value="\n".join(
            [
                f"**Roles:** {max(len(guild.roles) - 1, 0)}",
                f"**Emojis:** {len(guild.emojis)}",
                f"**Stickers:** {len(guild.stickers)}",
            ]
        ),
        inline=True,
    )

    boosts = guild.premium_subscription_count or 0
    if boosts > 0:
        embed.add_field(
            name="💎 Server Boost",
            value=f"**Level:** {guild.premium_tier}\n**Boosts:** {boosts}",
            inline=True,
        )

    if guild.features:
        embed.add_field(
            name="✨ Features",
            value=", ".join(_format_feature(feature) for feature in guild.features),
            inline=False,
        )

    if guild.banner:
        embed.set_image(url=guild.banner.with_size(1024).url)

    _set_requester_footer(embed, ctx.user)
    await ctx.interaction.response.send_message(embed=validate_and_truncate_embed(embed))


COMMANDS = (
    CommandDescriptor(
        name="ping",
        description="Replies with Pong! and shows bot latency",
        execute=ping,
    ),
    CommandDescriptor(
        name="info",
        description="Display bot information and statistics",
        execute=info,
    ),
    CommandDescriptor(
        name="help",
        description="Display all available commands",
        execute=help_command,
        options=(
            CommandOption(
                name="command",
                description="Get detailed help for a specific command",
            ),
        ),
    ),
    CommandDescriptor(
        name="userinfo",
        description="Display information about a user",
        execute=userinfo,
        options=(
            CommandOption(
                name="user",
                description="The user to get information about",
                type=OptionType.user,
            ),
        ),
    ),
    CommandDescriptor(
        name="serverinfo",
        description="Display information about the current server",
        execute=serverinfo,
    ),
)


def setup(registry: CommandRegistry) -> None:
    """Register the general commands."""
    for descriptor in COMMANDS:
        registry.register(descriptor)
    logger.info("General commands loaded successfully")
