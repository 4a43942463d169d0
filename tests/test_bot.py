import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio

from bot import SentinelBot
from config.settings import Settings
from conftest import make_member
from utils.database import Database
from utils.registry import CommandRegistry

GUILD_ID = 222222222222222222
USER_ID = 111111111111111111


@pytest_asyncio.fixture
async def bot(clock):
    database = Database(":memory:", clock=clock)
    await database.connect()
    client = SentinelBot(
        Settings(discord_token="token", client_id="123456789012345678"),
        database,
        CommandRegistry(),
    )
    yield client
    await database.close()


def _guild():
    guild = MagicMock(spec=discord.Guild)
    guild.id = GUILD_ID
    guild.name = "Test Guild"
    guild.owner_id = 1
    guild.member_count = 42
    guild.system_channel = MagicMock()
    guild.system_channel.permissions_for.return_value = discord.Permissions(
        send_messages=True
    )
    guild.system_channel.send = AsyncMock()
    return guild


@pytest.mark.asyncio
async def test_wait_for_ready_times_out(bot):
    assert not bot.is_bot_ready
    with pytest.raises(asyncio.TimeoutError):
        await bot.wait_for_ready(timeout=0.01)


def test_load_extensions_registers_commands(bot):
    bot.load_extensions()

    assert "help" in bot.registry
    assert "clear" in bot.registry
    assert len(bot.registry) == 8


@pytest.mark.asyncio
async def test_guild_join_records_guild_and_greets(bot):
    guild = _guild()

    await bot.on_guild_join(guild)

    row = await bot.database.get_guild(GUILD_ID)
    assert row["name"] == "Test Guild"
    settings = json.loads(row["settings"])
    assert settings["owner_id"] == "1"
    assert settings["member_count"] == 42
    embed = guild.system_channel.send.await_args.kwargs["embed"]
    assert embed.title == "👋 Hello!"


@pytest.mark.asyncio
async def test_guild_join_skips_greeting_without_permission(bot):
    guild = _guild()
    guild.system_channel.permissions_for.return_value = discord.Permissions.none()

    await bot.on_guild_join(guild)

    guild.system_channel.send.assert_not_awaited()
    assert await bot.database.get_guild(GUILD_ID) is not None


@pytest.mark.asyncio
async def test_guild_remove_keeps_rows(bot):
    guild = _guild()
    await bot.on_guild_join(guild)

    await bot.on_guild_remove(guild)

    assert await bot.database.get_guild(GUILD_ID) is not None


@pytest.mark.asyncio
async def test_member_join_records_user_and_membership(bot):
    guild = _guild()
    member = make_member(USER_ID, "alice")
    member.discriminator = "0"
    member.guild = guild
    default_role = MagicMock()
    default_role.is_default.return_value = True
    mod_role = MagicMock(id=777)
    mod_role.is_default.return_value = False
    member.roles = [default_role, mod_role]

    await bot.on_member_join(member)

    user = await bot.database.get_user(USER_ID)
    assert user["username"] == "alice"
    membership = await bot.database.get_membership(USER_ID, GUILD_ID)
    assert json.loads(membership["roles"]) == ["777"]
