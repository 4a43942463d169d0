"""Create the guilds table.

``prefix`` is a leftover from prefix commands and is not read by slash
commands. ``settings`` holds a JSON object.
"""

import aiosqlite

TABLE = "guilds"

COLUMNS = """(
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    prefix TEXT NOT NULL DEFAULT '!',
    settings TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
)"""

INDEXES = {
    "idx_guilds_name": "name",
    "idx_guilds_created_at": "created_at",
}


async def up(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"CREATE TABLE {TABLE} {COLUMNS}")
    for index_name, column in INDEXES.items():
        await conn.execute(f"CREATE INDEX {index_name} ON {TABLE}({column})")


async def down(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"DROP TABLE IF EXISTS {TABLE}")
