"""Create the user_guilds junction table (member of guild, with roles)."""

import aiosqlite

TABLE = "user_guilds"

COLUMNS = """(
    user_id TEXT NOT NULL,
    guild_id TEXT NOT NULL,
    roles TEXT NOT NULL DEFAULT '[]',
    joined_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_id, guild_id),
    FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
    FOREIGN KEY (guild_id) REFERENCES guilds(id) ON DELETE CASCADE
)"""

INDEXES = {
    "idx_user_guilds_user_id": "user_id",
    "idx_user_guilds_guild_id": "guild_id",
    "idx_user_guilds_joined_at": "joined_at",
}


async def up(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"CREATE TABLE {TABLE} {COLUMNS}")
    for index_name, column in INDEXES.items():
        await conn.execute(f"CREATE INDEX {index_name} ON {TABLE}({column})")


async def down(conn: aiosqlite.Connection) -> None:
    await conn.execute(f"DROP TABLE IF EXISTS {TABLE}")
