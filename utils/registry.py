"""
Slash command descriptors and the registry that holds them.

A command is plain data: a :class:`CommandDescriptor` pairs the schema sent
to Discord (name, description, typed options, default permission) with the
coroutine that executes it. Descriptors are registered once at startup and
looked up by name for every incoming interaction.
"""

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Tuple,
)

import discord

from utils.logger import get_logger

if TYPE_CHECKING:
    from bot import SentinelBot

logger = get_logger("registry")

OptionType = discord.AppCommandOptionType
CHAT_INPUT_COMMAND_TYPE = 1


@dataclass(frozen=True)
class CommandOption:
    """One typed option of a slash command."""

    name: str
    description: str
    type: OptionType = OptionType.string
    required: bool = False
    min_value: Optional[int] = None
    max_value: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "name": self.name,
            "description": self.description,
            "required": self.required,
        }
        if self.min_value is not None:
            payload["min_value"] = self.min_value
        if self.max_value is not None:
            payload["max_value"] = self.max_value
        return payload


@dataclass(frozen=True)
class CommandDescriptor:
    """
    Static schema plus execution coroutine for one slash command.

    Attributes:
        name: Unique command name (registry key).
        description: Shown in the Discord client and in ``/help``.
        execute: ``async def execute(ctx: CommandContext) -> None``.
        options: Options in the order Discord should display them.
        default_permission: Permissions a member needs by default, or None
            for everyone.
    """

    name: str
    description: str
    execute: Callable[["CommandContext"], Awaitable[None]]
    options: Tuple[CommandOption, ...] = ()
    default_permission: Optional[discord.Permissions] = None

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON body used by the bulk command upsert endpoints."""
        payload: Dict[str, Any] = {
            "type": CHAT_INPUT_COMMAND_TYPE,
            "name": self.name,
            "description": self.description,
            "options": [option.to_payload() for option in self.options],
        }
        if self.default_permission is not None:
            payload["default_member_permissions"] = str(self.default_permission.value)
        return payload


class CommandRegistry:
    """
    Name to descriptor mapping.

    Registering a name twice replaces the first descriptor (last write wins).
    The registry is filled before the client starts and only read afterwards.
    """

    def __init__(self) -> None:
        self._commands: Dict[str, CommandDescriptor] = {}

    def register(self, descriptor: CommandDescriptor) -> None:
        if descriptor.name in self._commands:
            logger.debug(f"Command replaced: {descriptor.name}")
        self._commands[descriptor.name] = descriptor
        logger.debug(f"Command registered: {descriptor.name}")

    def unregister(self, name: str) -> bool:
        removed = self._commands.pop(name, None) is not None
        if removed:
            logger.debug(f"Command unregistered: {name}")
        return removed

    def lookup(self, name: str) -> Optional[CommandDescriptor]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return list(self._commands)

    def payloads(self) -> List[Dict[str, Any]]:
        return [descriptor.to_payload() for descriptor in self]

    def __iter__(self) -> Iterator[CommandDescriptor]:
        return iter(list(self._commands.values()))

    def __len__(self) -> int:
        return len(self._commands)

    def __contains__(self, name: object) -> bool:
        return name in self._commands


@dataclass
class CommandContext:
    """
    Everything a command needs for one invocation.

    Wraps the raw interaction, the bot (for the registry, database, settings
    and client caches) and the option values parsed from the payload.
    """

    interaction: discord.Interaction
    bot: "SentinelBot"
    options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_interaction(
        cls, interaction: discord.Interaction, bot: "SentinelBot"
    ) -> "CommandContext":
        data = interaction.data or {}
        options = {
            option["name"]: option.get("value")
            for option in data.get("options", [])  # type: ignore[union-attr]
            if "value" in option
        }
        return cls(interaction=interaction, bot=bot, options=options)

    @property
    def guild(self) -> Optional[discord.Guild]:
        return self.interaction.guild

    @property
    def user(self) -> discord.abc.User:
        return self.interaction.user

    @property
    def registry(self) -> CommandRegistry:
        return self.bot.registry

    def get_string(self, name: str, default: Optional[str] = None) -> Optional[str]:
        value = self.options.get(name)
        return str(value) if value is not None else default

    def get_integer(self, name: str, default: Optional[int] = None) -> Optional[int]:
        value = self.options.get(name)
        return int(value) if value is not None else default

    def get_snowflake(self, name: str) -> Optional[int]:
        value = self.options.get(name)
        return int(value) if value is not None else None

    def get_member(self, name: str) -> Optional[discord.Member]:
        """Resolve a user option to a cached member of the current guild."""
        user_id = self.get_snowflake(name)
        if user_id is None or self.guild is None:
            return None
        return self.guild.get_member(user_id)

    async def get_user(self, name: str) -> Optional[discord.abc.User]:
        """
        Resolve a user option: guild member if cached, else the client's
        user cache, else a REST fetch.
        """
        user_id = self.get_snowflake(name)
        if user_id is None:
            return None

        member = self.get_member(name)
        if member is not None:
            return member

        user = self.bot.get_user(user_id)
        if user is None:
            user = await self.bot.fetch_user(user_id)
        return user
