"""Storage for logged member messages (feeds repetition and link-ratio checks)."""

from __future__ import annotations

from typing import List, Tuple

import aiosqlite

from cultbot.datatypes.activity_datatypes import MessageLogEntry
from cultbot.util.time_utils import from_timestamp, to_timestamp


class MessageLogRepo:
    """CRUD for the ``user_messages`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, entry: MessageLogEntry) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO user_messages
                (user_id, guild_id, channel_id, content, timestamp, was_deleted, was_flagged, flag_reason)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                entry.user_id,
                entry.guild_id,
                entry.channel_id,
                entry.content,
                to_timestamp(entry.timestamp),
                int(entry.was_deleted),
                int(entry.was_flagged),
                entry.flag_reason,
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def get_recent(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        limit: int = 5,
    ) -> List[MessageLogEntry]:
        """Latest ``limit`` messages for the member, newest first."""
        async with conn.execute(
            """
            SELECT user_id, guild_id, channel_id, content, timestamp, was_deleted, was_flagged, flag_reason
            FROM user_messages
            WHERE user_id = ? AND guild_id = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (user_id, guild_id, limit),
        ) as cursor:
            rows = await cursor.fetchall()

        return [
            MessageLogEntry(
                user_id=row[0],
                guild_id=row[1],
                channel_id=row[2],
                content=row[3],
                timestamp=from_timestamp(row[4]),
                was_deleted=bool(row[5]),
                was_flagged=bool(row[6]),
                flag_reason=row[7],
            )
            for row in rows
        ]

    @staticmethod
    async def get_link_stats(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
    ) -> Tuple[int, int]:
        """Return ``(total_messages, messages_containing_http)`` for the member."""
        async with conn.execute(
            """
            SELECT COUNT(*),
                   COALESCE(SUM(CASE WHEN instr(lower(content), 'http') > 0 THEN 1 ELSE 0 END), 0)
            FROM user_messages
            WHERE user_id = ? AND guild_id = ?
            """,
            (user_id, guild_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return 0, 0
        return int(row[0]), int(row[1])
