"""
Append-only storage for the offense log.

Entries are written once and then only counted; nothing updates or deletes
them.
"""

from __future__ import annotations

import aiosqlite

from cultbot.datatypes.moderation_datatypes import (
    ModerationActionType,
    ModerationRecord,
    ProfanityCategory,
)
from cultbot.util.time_utils import to_timestamp


class ModerationLogRepo:
    """Insert and query helpers for the ``moderation_logs`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, record: ModerationRecord) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO moderation_logs
                (user_id, guild_id, moderator_id, action, reason, category, timestamp, is_automated)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                record.user_id,
                record.guild_id,
                record.moderator_id,
                record.action.value,
                record.reason,
                record.category.value if record.category else None,
                to_timestamp(record.timestamp),
                int(record.is_automated),
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def count(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        action: ModerationActionType,
        category: ProfanityCategory | None = None,
    ) -> int:
        """Count entries of ``action`` for a member, optionally restricted to one category."""
        query = "SELECT COUNT(*) FROM moderation_logs WHERE user_id = ? AND guild_id = ? AND action = ?"
        params: list = [user_id, guild_id, action.value]
        if category is not None:
            query += " AND category = ?"
            params.append(category.value)

        async with conn.execute(query, params) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
