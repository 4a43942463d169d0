import os
import sys
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
import pytest_asyncio

# Add project root to python path so we can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from utils.database import Database  # noqa: E402
from utils.registry import CommandRegistry  # noqa: E402

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_user(user_id: int, name: str = "user") -> MagicMock:
    user = MagicMock(spec=discord.User)
    user.id = user_id
    user.name = name
    user.bot = False
    user.send = AsyncMock()
    return user


def make_member(user_id: int, name: str = "member", position: int = 1) -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.name = name
    member.bot = False
    member.send = AsyncMock()
    member.kick = AsyncMock()
    member.top_role.position = position
    member.guild_permissions = discord.Permissions(kick_members=True, ban_members=True)
    return member


def make_message(author_id: int, age: timedelta, now: datetime = NOW) -> MagicMock:
    message = MagicMock(spec=discord.Message)
    message.author = MagicMock()
    message.author.id = author_id
    message.created_at = now - age
    message.delete = AsyncMock()
    return message


class FakeChannel:
    """Text channel stand-in with an async ``history`` iterator."""

    def __init__(self, messages, channel_id: int = 555, manage_messages: bool = True):
        self.id = channel_id
        self.mention = f"<#{channel_id}>"
        self.messages = list(messages)
        self.history_limits = []
        self.delete_messages = AsyncMock()
        self._permissions = discord.Permissions(manage_messages=manage_messages)

    def history(self, limit: int = 100):
        self.history_limits.append(limit)
        messages = self.messages[:limit]

        async def iterate():
            for message in messages:
                yield message

        return iterate()

    def permissions_for(self, _member):
        return self._permissions


def make_interaction(
    name: str = "ping",
    options=None,
    user=None,
    guild=None,
    channel=None,
    done: bool = False,
    interaction_type=discord.InteractionType.application_command,
) -> MagicMock:
    interaction = MagicMock()
    interaction.type = interaction_type
    interaction.data = {
        "name": name,
        "options": [
            {"name": key, "value": value} for key, value in (options or {}).items()
        ],
    }
    interaction.user = user or make_user(1000, "invoker")
    interaction.guild = guild
    interaction.guild_id = guild.id if guild is not None else None
    interaction.channel = channel
    interaction.response.is_done.return_value = done
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    interaction.edit_original_response = AsyncMock()
    interaction.original_response = AsyncMock()
    return interaction


@pytest.fixture
def registry():
    return CommandRegistry()


@pytest.fixture
def fake_bot(registry):
    """Bot stand-in exposing what commands reach through the context."""
    bot = MagicMock()
    bot.registry = registry
    bot.get_user.return_value = None
    bot.fetch_user = AsyncMock()
    return bot


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def db(clock):
    """Migrated in-memory database."""
    database = Database(":memory:", clock=clock)
    await database.connect()
    yield database
    await database.close()
