from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cogs import general, moderation
from conftest import (
    FakeChannel,
    make_interaction,
    make_member,
    make_message,
    make_user,
)
from utils.registry import CommandContext

OWNER_ID = 1
MOD_ID = 10
TARGET_ID = 20
BOT_ID = 99


@pytest.fixture
def loaded_registry(registry):
    general.setup(registry)
    moderation.setup(registry)
    return registry


@pytest.fixture
def bot_member():
    return make_member(BOT_ID, "sentinel", position=10)


@pytest.fixture
def moderator():
    return make_member(MOD_ID, "mod", position=5)


@pytest.fixture
def target():
    return make_member(TARGET_ID, "troll", position=2)


@pytest.fixture
def guild(bot_member, target):
    guild = MagicMock(spec=discord.Guild)
    guild.id = 5
    guild.name = "Test Guild"
    guild.owner_id = OWNER_ID
    guild.me = bot_member
    members = {TARGET_ID: target}
    guild.get_member = MagicMock(side_effect=members.get)
    return guild


def _context(interaction, bot):
    return CommandContext.from_interaction(interaction, bot)


def _sent_embed(mock):
    return mock.await_args.kwargs["embed"]


def _fields(embed):
    return {field.name: field.value for field in embed.fields}


def test_all_commands_registered(loaded_registry):
    assert loaded_registry.names() == [
        "ping",
        "info",
        "help",
        "userinfo",
        "serverinfo",
        "kick",
        "ban",
        "clear",
    ]


@pytest.mark.asyncio
async def test_help_summary(loaded_registry, fake_bot):
    interaction = make_interaction("help")

    await general.help_command(_context(interaction, fake_bot))

    embed = _sent_embed(interaction.response.send_message)
    fields = _fields(embed)
    assert embed.title == "📚 Available Commands"
    assert "`/ping` - Replies with Pong! and shows bot latency" in fields["🔧 General Commands"]
    assert "/kick" in fields["🛡️ Moderation Commands"]
    assert "/kick" not in fields["🔧 General Commands"]
    assert embed.footer.text == "Total commands: 8"


@pytest.mark.asyncio
async def test_help_detail(loaded_registry, fake_bot):
    interaction = make_interaction("help", options={"command": "ban"})

    await general.help_command(_context(interaction, fake_bot))

    embed = _sent_embed(interaction.response.send_message)
    fields = _fields(embed)
    assert embed.title == "📖 Help: /ban"
    assert fields["Usage"] == "`/ban`"
    assert "`user` (required) - The user to ban" in fields["Options"]
    assert "`delete_days` (optional)" in fields["Options"]


@pytest.mark.asyncio
async def test_help_unknown_command(loaded_registry, fake_bot):
    interaction = make_interaction("help", options={"command": "dance"})

    await general.help_command(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        "❌ Command `dance` not found.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_kick_succeeds_when_dm_fails(mocker, fake_bot, guild, moderator, target):
    security_log = mocker.spy(moderation.logger, "log_security")
    target.send.side_effect = discord.Forbidden(
        MagicMock(status=403, reason="Forbidden"), "Cannot send messages to this user"
    )
    interaction = make_interaction(
        "kick",
        options={"user": str(TARGET_ID), "reason": "spam"},
        user=moderator,
        guild=guild,
    )

    await moderation.kick(_context(interaction, fake_bot))

    target.send.assert_awaited_once()
    target.kick.assert_awaited_once_with(reason="spam")
    embed = _sent_embed(interaction.response.send_message)
    fields = _fields(embed)
    assert embed.title == "✅ User Kicked"
    assert fields["User"] == f"troll ({TARGET_ID})"
    assert fields["Moderator"] == "mod"
    assert fields["Reason"] == "spam"
    security_log.assert_called_once_with(
        "User kicked",
        MOD_ID,
        target_user_id=TARGET_ID,
        target_username="troll",
        guild_id=5,
        reason="spam",
    )


@pytest.mark.asyncio
async def test_kick_rejects_non_member(fake_bot, guild, moderator):
    interaction = make_interaction(
        "kick", options={"user": "12345"}, user=moderator, guild=guild
    )
    fake_bot.fetch_user.return_value = MagicMock(id=12345)

    await moderation.kick(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        "❌ User is not in this server.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_kick_outside_guild(fake_bot):
    interaction = make_interaction("kick", options={"user": str(TARGET_ID)})

    await moderation.kick(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        "❌ This command can only be used in a server.", ephemeral=True
    )


@pytest.mark.asyncio
async def test_clear_end_to_end(mocker, fake_bot, guild, moderator):
    mocker.patch.object(moderation, "PURGEABLE_CHANNEL_TYPES", (FakeChannel,))
    now = datetime.now(timezone.utc)
    messages = [make_message(TARGET_ID, timedelta(minutes=i), now=now) for i in range(3)]
    channel = FakeChannel(messages)
    interaction = make_interaction(
        "clear",
        options={"amount": 5},
        user=moderator,
        guild=guild,
        channel=channel,
    )

    await moderation.clear(_context(interaction, fake_bot))

    interaction.response.defer.assert_awaited_once_with(ephemeral=True)
    assert channel.history_limits == [5]
    channel.delete_messages.assert_awaited_once_with(messages)
    embed = _sent_embed(interaction.edit_original_response)
    fields = _fields(embed)
    assert embed.title == "✅ Messages Cleared"
    assert fields["Messages Deleted"] == "3"
    assert fields["Channel"] == channel.mention
    assert "⚠️ Note" not in fields


@pytest.mark.asyncio
async def test_clear_requires_manage_messages(mocker, fake_bot, guild, moderator):
    mocker.patch.object(moderation, "PURGEABLE_CHANNEL_TYPES", (FakeChannel,))
    channel = FakeChannel([], manage_messages=False)
    interaction = make_interaction(
        "clear", options={"amount": 5}, user=moderator, guild=guild, channel=channel
    )

    await moderation.clear(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        '❌ I need the "Manage Messages" permission to use this command.',
        ephemeral=True,
    )
    interaction.response.defer.assert_not_awaited()


def _not_found():
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Ban")


@pytest.fixture
def ban_guild(guild):
    guild.fetch_ban = AsyncMock(side_effect=_not_found())
    guild.ban = AsyncMock()
    return guild


@pytest.mark.asyncio
async def test_ban_member(mocker, fake_bot, ban_guild, moderator, target):
    security_log = mocker.spy(moderation.logger, "log_security")
    interaction = make_interaction(
        "ban",
        options={"user": str(TARGET_ID), "reason": "raiding", "delete_days": 2},
        user=moderator,
        guild=ban_guild,
    )

    await moderation.ban(_context(interaction, fake_bot))

    target.send.assert_awaited_once()
    ban_guild.ban.assert_awaited_once_with(
        target,
        reason="raiding | Moderator: mod",
        delete_message_seconds=2 * 24 * 60 * 60,
    )
    embed = _sent_embed(interaction.response.send_message)
    fields = _fields(embed)
    assert embed.title == "✅ User Banned"
    assert fields["Reason"] == "raiding"
    assert fields["Messages Deleted"] == "2 days worth of messages"
    security_log.assert_called_once_with(
        "User banned",
        MOD_ID,
        target_user_id=TARGET_ID,
        target_username="troll",
        guild_id=5,
        reason="raiding",
        delete_days=2,
    )


@pytest.mark.asyncio
async def test_ban_non_member_skips_dm(fake_bot, ban_guild, moderator):
    outsider = make_user(12345, "outsider")
    fake_bot.fetch_user.return_value = outsider
    interaction = make_interaction(
        "ban", options={"user": "12345"}, user=moderator, guild=ban_guild
    )

    await moderation.ban(_context(interaction, fake_bot))

    outsider.send.assert_not_awaited()
    ban_guild.ban.assert_awaited_once()
    assert ban_guild.ban.await_args.kwargs["delete_message_seconds"] == 0
    assert "Messages Deleted" not in _fields(
        _sent_embed(interaction.response.send_message)
    )


@pytest.mark.asyncio
async def test_ban_rejects_already_banned(fake_bot, ban_guild, moderator, target):
    ban_guild.fetch_ban = AsyncMock(return_value=MagicMock(user=target))
    interaction = make_interaction(
        "ban", options={"user": str(TARGET_ID)}, user=moderator, guild=ban_guild
    )

    await moderation.ban(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        "❌ This user is already banned.", ephemeral=True
    )
    ban_guild.ban.assert_not_awaited()
    target.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_ban_truncates_audit_reason(fake_bot, ban_guild, moderator, target):
    reason = "r" * 512
    interaction = make_interaction(
        "ban",
        options={"user": str(TARGET_ID), "reason": reason},
        user=moderator,
        guild=ban_guild,
    )

    await moderation.ban(_context(interaction, fake_bot))

    audit_reason = ban_guild.ban.await_args.kwargs["reason"]
    assert len(audit_reason) == 512
    assert audit_reason == reason[:509] + "..."
    assert _fields(_sent_embed(interaction.response.send_message))["Reason"] == reason


@pytest.mark.asyncio
async def test_ban_non_member_without_ban_permission(fake_bot, ban_guild, moderator):
    ban_guild.me.guild_permissions = discord.Permissions(kick_members=True)
    ban_guild.fetch_ban = AsyncMock(
        side_effect=discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Missing Permissions"
        )
    )
    fake_bot.fetch_user.return_value = make_user(12345, "outsider")
    interaction = make_interaction(
        "ban", options={"user": "12345"}, user=moderator, guild=ban_guild
    )

    await moderation.ban(_context(interaction, fake_bot))

    interaction.response.send_message.assert_awaited_once_with(
        "❌ I cannot ban this user. They may have higher permissions.", ephemeral=True
    )
    ban_guild.ban.assert_not_awaited()


@pytest.mark.asyncio
async def test_ban_proceeds_when_ban_list_unreadable(fake_bot, ban_guild, moderator):
    ban_guild.fetch_ban = AsyncMock(
        side_effect=discord.Forbidden(
            MagicMock(status=403, reason="Forbidden"), "Missing Access"
        )
    )
    fake_bot.fetch_user.return_value = make_user(12345, "outsider")
    interaction = make_interaction(
        "ban", options={"user": "12345"}, user=moderator, guild=ban_guild
    )

    await moderation.ban(_context(interaction, fake_bot))

    ban_guild.ban.assert_awaited_once()
    assert _sent_embed(interaction.response.send_message).title == "✅ User Banned"


@pytest.mark.asyncio
async def test_serverinfo_member_counts(fake_bot, guild, moderator, target):
    helper_bot = make_member(BOT_ID, "sentinel")
    helper_bot.bot = True
    guild.members = [moderator, target, helper_bot]
    guild.member_count = 3
    guild.verification_level = discord.VerificationLevel.high
    guild.created_at = datetime(2020, 1, 1, tzinfo=timezone.utc)
    guild.icon = None
    guild.banner = None
    guild.text_channels = [MagicMock()]
    guild.voice_channels = []
    guild.categories = []
    guild.threads = []
    guild.roles = [MagicMock(), MagicMock()]
    guild.emojis = []
    guild.stickers = []
    guild.premium_subscription_count = 0
    guild.features = []
    interaction = make_interaction("serverinfo", user=moderator, guild=guild)

    await general.serverinfo(_context(interaction, fake_bot))

    embed = _sent_embed(interaction.response.send_message)
    members = _fields(embed)["👥 Members"]
    assert embed.title == "🏠 Test Guild"
    assert members == "**Total:** 3\n**Humans:** 2\n**Bots:** 1"
    assert "Online" not in members
