"""
Apply or revert database migrations.

Usage:
    python migrate.py [up|rollback] [--database PATH]

Only the database path is read from the environment, so migrations can run
without Discord credentials.
"""

import argparse
import asyncio
import os
import sys
from typing import List, Optional, Sequence

from dotenv import load_dotenv

from config.settings import DEFAULT_DATABASE_PATH
from utils.database import Database, MigrationError
from utils.logger import get_logger, setup_logging

logger = get_logger("migrate")


async def migrate(path: str, action: str = "up") -> List[str]:
    """
    Run the migration action against the database at ``path``.

    Returns:
        Names of the migrations applied or reverted.
    """
    db = Database(path)
    await db.connect(bootstrap=False)
    try:
        if action == "rollback":
            name = await db.rollback_migration()
            if name is None:
                logger.info("No migrations to roll back")
                return []
            return [name]

        applied = await db.run_migrations()
        logger.info(f"Database migrations completed successfully ({len(applied)} applied)")
        return applied
    finally:
        await db.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run database migrations")
    parser.add_argument(
        "action",
        nargs="?",
        choices=("up", "rollback"),
        default="up",
        help="Apply pending migrations (default) or revert the latest one",
    )
    parser.add_argument(
        "--database",
        default=None,
        help="SQLite file to migrate (defaults to DATABASE_PATH)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    load_dotenv()
    setup_logging(os.getenv("LOG_LEVEL", "info"))

    path = args.database or os.getenv("DATABASE_PATH") or DEFAULT_DATABASE_PATH
    logger.info(f"Starting database migrations ({args.action}) on {path}")

    try:
        asyncio.run(migrate(path, args.action))
    except MigrationError as e:
        logger.error(f"Error running migrations: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
