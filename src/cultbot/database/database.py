"""
Startup and shutdown of CultBot's SQLite store.

``database.initialize()`` runs once before the bot logs in; afterwards
repositories reach the store through
:data:`cultbot.database.db_connection.db_connection`.
"""

from __future__ import annotations

from pathlib import Path

import aiosqlite

from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.database.db_schema import SchemaManager
from cultbot.util.logger import get_logger

logger = get_logger("database")

DB_PATH = Path("./data/cultbot.db").resolve()


class Database:
    """Opens the connection, creates or upgrades the schema, and closes it again."""

    def __init__(self, db_path: Path = DB_PATH, connection: ConnectionManager | None = None):
        self.db_path = db_path
        self.connection = connection or db_connection

    async def initialize(self) -> bool:
        """Returns False (after logging why) when the store cannot be used."""
        if self.connection.is_open:
            return True

        try:
            await self.connection.open(self.db_path)
            await SchemaManager.initialize_schema(self.connection.connection)
        except (OSError, aiosqlite.Error) as exc:
            logger.error("[DATABASE] Cannot use %s: %s", self.db_path, exc)
            await self.connection.close()
            return False

        logger.info("[DATABASE] Ready at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        await self.connection.close()


database = Database()
