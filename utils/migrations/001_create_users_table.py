"""Create the users table."""

import aiosqlite

TABLE = "users"

COLUMNS = """(
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    discriminator TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)"""

INDEXES = {
    "idx_users_username": "username",
    "idx_users_created_at": "created_at",
}


async def up(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"CREATE TABLE {TABLE} {COLUMNS}")
    for index_name, column in INDEXES.items():
        await conn.execute(f"CREATE INDEX {index_name} ON {TABLE}({column})")


async def down(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"DROP TABLE IF EXISTS {TABLE}")
