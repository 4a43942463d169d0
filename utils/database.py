"""
Database module for persistent storage using SQLite.

Stores users, guilds and guild memberships. Schema changes live in numbered
migration scripts under ``utils/migrations`` (``NNN_description.py``), each
exposing ``up(conn)`` and ``down(conn)``.
"""

import asyncio
import importlib.util
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import aiosqlite

from config.settings import DEFAULT_DATABASE_PATH, DEFAULT_PREFIX
from utils.logger import get_logger

logger = get_logger("database")

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MEMORY_DATABASE = ":memory:"


class DatabaseNotConnectedError(RuntimeError):
    """Raised when the database is used before :meth:`Database.connect`."""


class RecordNotFoundError(LookupError):
    """Raised when a keyed lookup that must succeed finds nothing."""


class MigrationError(RuntimeError):
    """Raised when a migration step fails."""


@dataclass(frozen=True)
class Migration:
    """One numbered migration script."""

    version: int
    name: str
    module: ModuleType

    @property
    def table(self) -> Optional[str]:
        return getattr(self.module, "TABLE", None)

    @property
    def columns(self) -> Optional[str]:
        return getattr(self.module, "COLUMNS", None)

    @property
    def indexes(self) -> Dict[str, str]:
        return getattr(self.module, "INDEXES", {})

    async def up(self, conn: aiosqlite.Connection) -> None:
        await self.module.up(conn)

    async def down(self, conn: aiosqlite.Connection) -> None:
        await self.module.down(conn)


def load_migrations(directory: Path = MIGRATIONS_DIR) -> List[Migration]:
    """
    Load migration scripts from ``directory`` in ascending version order.

    Files must be named ``NNN_<name>.py``; anything else is ignored.

    Raises:
        MigrationError: If two scripts share a version number.
    """
    migrations: List[Migration] = []
    seen: Dict[int, str] = {}

    for path in sorted(directory.glob("[0-9][0-9][0-9]_*.py")):
        version = int(path.stem.split("_", 1)[0])
        if version in seen:
            raise MigrationError(
                f"Duplicate migration version {version}: {seen[version]} and {path.stem}"
            )
        seen[version] = path.stem

        spec = importlib.util.spec_from_file_location(
            f"sentinel_migrations.m{path.stem}", path
        )
        module = importlib.util.module_from_spec(spec)  # type: ignore[arg-type]
        spec.loader.exec_module(module)  # type: ignore[union-attr]
        migrations.append(Migration(version=version, name=path.stem, module=module))

    return migrations


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Database:
    """
    Async database interface for bot persistence, backed by aiosqlite.

    Schema:
    - **users**: id (PK), username, discriminator, created_at, updated_at.
    - **guilds**: id (PK), name, prefix, settings (JSON object), created_at, updated_at.
    - **user_guilds**: (user_id, guild_id) PK, roles (JSON list), joined_at;
      both foreign keys cascade on delete.
    - **schema_migrations**: version (PK), name, applied_at.

    All statements go through one connection and one ``asyncio.Lock``. The
    upserts are single statements, so concurrent calls for the same id are
    last-writer-wins.
    """

    def __init__(
        self,
        path: str = DEFAULT_DATABASE_PATH,
        clock: Optional[Callable[[], datetime]] = None,
        migrations_dir: Path = MIGRATIONS_DIR,
        default_prefix: str = DEFAULT_PREFIX,
    ):
        """
        Initialize the database instance.

        Args:
            path: SQLite file path, or ``:memory:``.
            clock: Returns the current time; used for created/updated stamps.
            migrations_dir: Directory holding the numbered migration scripts.
            default_prefix: Prefix stored on newly inserted guild rows.
        """
        self.path = path
        self.migrations_dir = migrations_dir
        self.default_prefix = default_prefix
        self._clock = clock or utc_now
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._conn is not None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseNotConnectedError(
                "Database not initialized. Call connect() first."
            )
        return self._conn

    def timestamp(self) -> str:
        return self._clock().isoformat()

    async def connect(self, bootstrap: bool = True) -> None:
        """
        Open the connection.

        With ``bootstrap`` (the bot's startup path) pending migrations are
        applied and any missing table is then created with ``IF NOT EXISTS``.
        The dedicated migration runner passes ``bootstrap=False`` and calls
        :meth:`run_migrations` itself.
        """
        if self._conn is not None:
            return

        if self.path != MEMORY_DATABASE:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self.path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA foreign_keys = ON")
        logger.info(f"Database connected: {self.path}")

        if bootstrap:
            await self.run_migrations()
            await self.create_tables()

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Database connection closed")

    # ==================== QUERY HELPERS ====================

    async def execute(self, query: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and commit. Returns the affected row count."""
        async with self._lock:
            cursor = await self.connection.execute(query, params)
            await self.connection.commit()
            return cursor.rowcount

    async def fetch_one(
        self, query: str, params: Sequence[Any] = ()
    ) -> Optional[Dict[str, Any]]:
        async with self._lock:
            cursor = await self.connection.execute(query, params)
            row = await cursor.fetchone()
        return dict(row) if row is not None else None

    async def fetch_all(
        self, query: str, params: Sequence[Any] = ()
    ) -> List[Dict[str, Any]]:
        async with self._lock:
            cursor = await self.connection.execute(query, params)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # ==================== SCHEMA ====================

    async def _ensure_migrations_table(self) -> None:
        await self.connection.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                version INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                applied_at TEXT NOT NULL
            )
            """
        )

    async def applied_migrations(self) -> List[int]:
        """Versions already applied, ascending."""
        async with self._lock:
            await self._ensure_migrations_table()
            cursor = await self.connection.execute(
                "SELECT version FROM schema_migrations ORDER BY version"
            )
            rows = await cursor.fetchall()
        return [row["version"] for row in rows]

    async def run_migrations(self) -> List[str]:
        """
        Apply every pending migration in ascending version order.

        Migration bodies are not idempotent: a version that fails (for
        instance because its table already exists) stops the run.

        Returns:
            Names of the migrations applied by this call.

        Raises:
            MigrationError: If a migration step fails.
        """
        applied = set(await self.applied_migrations())
        newly_applied: List[str] = []

        async with self._lock:
            conn = self.connection
            for migration in load_migrations(self.migrations_dir):
                if migration.version in applied:
                    continue

                try:
                    await migration.up(conn)
                    await conn.execute(
                        "INSERT INTO schema_migrations (version, name, applied_at) VALUES (?, ?, ?)",
                        (migration.version, migration.name, self.timestamp()),
                    )
                    await conn.commit()
                except aiosqlite.Error as e:
                    await conn.rollback()
                    raise MigrationError(
                        f"Migration {migration.name} failed: {e}"
                    ) from e

                newly_applied.append(migration.name)
                logger.info(f"Applied migration {migration.name}")

        if not newly_applied:
            logger.debug("Database schema is up to date")
        return newly_applied

    async def rollback_migration(self) -> Optional[str]:
        """
        Revert the most recently applied migration.

        Returns:
            The reverted migration name, or None if nothing was applied.
        """
        applied = await self.applied_migrations()
        if not applied:
            return None

        latest = applied[-1]
        migrations = {m.version: m for m in load_migrations(self.migrations_dir)}
        migration = migrations.get(latest)
        if migration is None:
            raise MigrationError(f"No migration script found for version {latest}")

        async with self._lock:
            conn = self.connection
            try:
                await migration.down(conn)
                await conn.execute(
                    "DELETE FROM schema_migrations WHERE version = ?", (latest,)
                )
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise MigrationError(
                    f"Rollback of {migration.name} failed: {e}"
                ) from e

        logger.info(f"Rolled back migration {migration.name}")
        return migration.name

    async def create_tables(self) -> None:
        """Create any missing table and index (bootstrap path, idempotent)."""
        async with self._lock:
            conn = self.connection
            for migration in load_migrations(self.migrations_dir):
                if not migration.table or not migration.columns:
                    continue
                await conn.execute(
                    f"CREATE TABLE IF NOT EXISTS {migration.table} {migration.columns}"
                )
                for index_name, column in migration.indexes.items():
                    await conn.execute(
                        f"CREATE INDEX IF NOT EXISTS {index_name} "
                        f"ON {migration.table}({column})"
                    )
            await conn.commit()
        logger.debug("Database tables verified")

    async def table_names(self) -> List[str]:
        rows = await self.fetch_all(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        return [row["name"] for row in rows]

    # ==================== USERS ====================

    async def get_user(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return await self.fetch_one("SELECT * FROM users WHERE id = ?", (str(user_id),))

    async def create_or_update_user(
        self, user_id: Any, username: str, discriminator: str
    ) -> None:
        """
        Insert a user or refresh its mutable fields.

        ``created_at`` is only written on insert; ``updated_at`` is bumped on
        every call.
        """
        now = self.timestamp()
        await self.execute(
            """
            INSERT INTO users (id, username, discriminator, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                username = excluded.username,
                discriminator = excluded.discriminator,
                updated_at = excluded.updated_at
            """,
            (str(user_id), username, str(discriminator), now, now),
        )
        logger.log_database("upsert", "users", str(user_id))

    # ==================== GUILDS ====================

    async def get_guild(self, guild_id: Any) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT * FROM guilds WHERE id = ?", (str(guild_id),)
        )

    async def create_or_update_guild(
        self,
        guild_id: Any,
        name: str,
        settings: Optional[Dict[str, Any]] = None,
        prefix: Optional[str] = None,
    ) -> None:
        """
        Insert a guild or refresh its mutable fields.

        Args:
            guild_id: Discord guild ID.
            name: Current guild name.
            settings: New settings object. ``None`` keeps the stored settings
                on update and stores ``{}`` on insert.
            prefix: Legacy command prefix. ``None`` keeps the stored prefix
                on update and stores the default on insert.
        """
        now = self.timestamp()
        settings_json = json.dumps(settings) if settings is not None else None
        await self.execute(
            """
            INSERT INTO guilds (id, name, prefix, settings, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                prefix = COALESCE(?, guilds.prefix),
                settings = COALESCE(?, guilds.settings),
                updated_at = excluded.updated_at
            """,
            (
                str(guild_id),
                name,
                prefix or self.default_prefix,
                settings_json if settings_json is not None else "{}",
                now,
                now,
                prefix,
                settings_json,
            ),
        )
        logger.log_database("upsert", "guilds", str(guild_id))

    # ==================== MEMBERSHIPS ====================

    async def get_membership(
        self, user_id: Any, guild_id: Any
    ) -> Optional[Dict[str, Any]]:
        return await self.fetch_one(
            "SELECT * FROM user_guilds WHERE user_id = ? AND guild_id = ?",
            (str(user_id), str(guild_id)),
        )

    async def create_or_update_membership(
        self, user_id: Any, guild_id: Any, roles: Iterable[Any] = ()
    ) -> None:
        """
        Record that a user belongs to a guild. Both rows must already exist.
        """
        roles_json = json.dumps([str(role) for role in roles])
        await self.execute(
            """
            INSERT INTO user_guilds (user_id, guild_id, roles, joined_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id, guild_id) DO UPDATE SET
                roles = excluded.roles
            """,
            (str(user_id), str(guild_id), roles_json, self.timestamp()),
        )
        logger.log_database("upsert", "user_guilds", f"{user_id}:{guild_id}")
