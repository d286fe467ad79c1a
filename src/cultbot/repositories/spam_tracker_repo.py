"""
Persistent storage for per-member spam trackers.

The message-time window is stored as a JSON array of unix seconds.
"""

from __future__ import annotations

import json
from datetime import datetime

import aiosqlite

from cultbot.datatypes.spam_datatypes import SpamTrackerRecord
from cultbot.util.time_utils import from_timestamp, to_timestamp


class SpamTrackerRepo:
    """Low-level CRUD for the ``spam_trackers`` table (primary key = user_id + guild_id)."""

    @staticmethod
    async def get(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
    ) -> SpamTrackerRecord | None:
        async with conn.execute(
            """
            SELECT user_id, guild_id, recent_message_times, spam_score,
                   last_spam_check, slow_mode_active, slow_mode_until
            FROM spam_trackers WHERE user_id = ? AND guild_id = ?
            """,
            (user_id, guild_id),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return SpamTrackerRecord(
            user_id=row[0],
            guild_id=row[1],
            recent_message_times=[from_timestamp(ts) for ts in json.loads(row[2] or "[]")],
            spam_score=row[3],
            last_spam_check=from_timestamp(row[4]),
            slow_mode_active=bool(row[5]),
            slow_mode_until=from_timestamp(row[6]),
        )

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, record: SpamTrackerRecord) -> None:
        await conn.execute(
            """
            INSERT INTO spam_trackers
                (user_id, guild_id, recent_message_times, spam_score,
                 last_spam_check, slow_mode_active, slow_mode_until)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, guild_id) DO UPDATE SET
                recent_message_times = excluded.recent_message_times,
                spam_score           = excluded.spam_score,
                last_spam_check      = excluded.last_spam_check,
                slow_mode_active     = excluded.slow_mode_active,
                slow_mode_until      = excluded.slow_mode_until
            """,
            (
                record.user_id,
                record.guild_id,
                json.dumps([to_timestamp(ts) for ts in record.recent_message_times]),
                record.spam_score,
                to_timestamp(record.last_spam_check),
                int(record.slow_mode_active),
                to_timestamp(record.slow_mode_until),
            ),
        )

    @staticmethod
    async def activate_slow_mode(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        until: datetime,
        now: datetime,
    ) -> SpamTrackerRecord:
        """Flag slow mode until ``until``, creating the tracker if the member has none yet."""
        record = await SpamTrackerRepo.get(conn, user_id, guild_id)
        if record is None:
            record = SpamTrackerRecord(user_id=user_id, guild_id=guild_id, last_spam_check=now)
        record.slow_mode_active = True
        record.slow_mode_until = until
        await SpamTrackerRepo.upsert(conn, record)
        return record
