"""
Keyed CRUD access to the users and guilds tables.

The bot itself only needs the upserts on :class:`~utils.database.Database`;
these repositories cover the rest (search, partial updates, deletion,
settings access) for commands and maintenance scripts.
"""

import json
from typing import Any, Dict, List, Optional

from utils.database import Database, RecordNotFoundError
from utils.logger import get_logger

logger = get_logger("repositories")


class _Repository:
    table: str = ""
    updatable: frozenset = frozenset()

    def __init__(self, db: Database):
        self.db = db

    async def find_by_id(self, record_id: Any) -> Optional[Dict[str, Any]]:
        return await self.db.fetch_one(
            f"SELECT * FROM {self.table} WHERE id = ?", (str(record_id),)
        )

    async def exists(self, record_id: Any) -> bool:
        row = await self.db.fetch_one(
            f"SELECT 1 AS present FROM {self.table} WHERE id = ?", (str(record_id),)
        )
        return row is not None

    async def update(self, record_id: Any, **fields: Any) -> bool:
        """
        Update some columns of a row and bump ``updated_at``.

        Returns:
            True if a row was changed.

        Raises:
            ValueError: If a field is not updatable (ids and ``created_at``
                never are).
        """
        unknown = set(fields) - self.updatable
        if unknown:
            raise ValueError(
                f"Cannot update {', '.join(sorted(unknown))} on {self.table}"
            )
        if not fields:
            return False

        assignments = ", ".join(f"{column} = ?" for column in fields)
        params = [*fields.values(), self.db.timestamp(), str(record_id)]
        changed = await self.db.execute(
            f"UPDATE {self.table} SET {assignments}, updated_at = ? WHERE id = ?",
            params,
        )
        logger.log_database("update", self.table, str(record_id))
        return changed > 0

    async def delete(self, record_id: Any) -> bool:
        changed = await self.db.execute(
            f"DELETE FROM {self.table} WHERE id = ?", (str(record_id),)
        )
        logger.log_database("delete", self.table, str(record_id))
        return changed > 0


class UserRepository(_Repository):
    table = "users"
    updatable = frozenset({"username", "discriminator"})

    async def find_by_username(self, username: str) -> List[Dict[str, Any]]:
        """Case-insensitive substring search on usernames."""
        return await self.db.fetch_all(
            "SELECT * FROM users WHERE username LIKE ? ORDER BY username",
            (f"%{username}%",),
        )

    async def create(self, user_id: Any, username: str, discriminator: str) -> None:
        """Plain insert; raises ``sqlite3.IntegrityError`` if the id exists."""
        now = self.db.timestamp()
        await self.db.execute(
            "INSERT INTO users (id, username, discriminator, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (str(user_id), username, str(discriminator), now, now),
        )
        logger.log_database("create", "users", str(user_id))


class GuildRepository(_Repository):
    table = "guilds"
    updatable = frozenset({"name", "prefix", "settings"})

    async def find_by_name(self, name: str) -> List[Dict[str, Any]]:
        return await self.db.fetch_all(
            "SELECT * FROM guilds WHERE name LIKE ? ORDER BY name", (f"%{name}%",)
        )

    async def create(
        self,
        guild_id: Any,
        name: str,
        prefix: Optional[str] = None,
        settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        now = self.db.timestamp()
        await self.db.execute(
            "INSERT INTO guilds (id, name, prefix, settings, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                str(guild_id),
                name,
                prefix or self.db.default_prefix,
                json.dumps(settings or {}),
                now,
                now,
            ),
        )
        logger.log_database("create", "guilds", str(guild_id))

    async def update_settings(self, guild_id: Any, settings: Dict[str, Any]) -> bool:
        return await self.update(guild_id, settings=json.dumps(settings))

    async def get_settings(self, guild_id: Any) -> Dict[str, Any]:
        """
        Return the parsed settings object of a guild.

        Unparsable JSON yields an empty dict.

        Raises:
            RecordNotFoundError: If the guild has no row.
        """
        guild = await self.find_by_id(guild_id)
        if guild is None:
            raise RecordNotFoundError(f"Guild with id {guild_id} not found")

        try:
            settings = json.loads(guild["settings"])
        except (TypeError, ValueError):
            return {}
        return settings if isinstance(settings, dict) else {}
