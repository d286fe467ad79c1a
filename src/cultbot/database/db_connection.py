"""
The single aiosqlite connection shared by every CultBot repository.

Initiation sessions, spam trackers and live-stream status are all updated
with read-modify-write sequences (look up the pending session, then insert;
load the tracker, prune its window, then store it). Those sequences must not
interleave, so every write block holds ``_writer`` for its whole duration.
SQLite only admits one writer anyway; doing the queueing here keeps it off
SQLite's busy timeout.

    async with db_connection.transaction() as conn:
        row = await (await conn.execute(...)).fetchone()
        await conn.execute(...)

Plain lookups use ``read()`` and are not queued behind writers (WAL mode).
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from cultbot.util.logger import get_logger

logger = get_logger("database_connection")

PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
)


class ConnectionManager:
    """Owns the connection plus the write queue."""

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._writer = asyncio.Lock()
        self.path: Path | None = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def open(self, path: Path) -> None:
        """Connect to ``path`` (creating its directory) and apply the pragmas."""
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Already connected to %s; ignoring open(%s)", self.path, path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        for pragma in PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

        self._conn = conn
        self.path = path
        logger.info("[DB CONNECTION] Connected to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file, then disconnect."""
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        except aiosqlite.Error as exc:
            logger.warning("[DB CONNECTION] WAL checkpoint failed: %s", exc)
        finally:
            await conn.close()
        logger.info("[DB CONNECTION] Disconnected from %s", self.path)

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Database connection is not open; call open() during startup")
        return self._conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Queued write block; commits when it exits cleanly, rolls back otherwise."""
        conn = self.connection
        async with self._writer:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection


db_connection = ConnectionManager()
