"""
Persistent storage for initiation sessions.

Rows are never deleted; terminal sessions stay as history. Status updates
are guarded by ``status = 'pending'`` in the WHERE clause so a second
completion or expiry of the same row changes nothing.
"""

from __future__ import annotations

from typing import List

import aiosqlite

from cultbot.datatypes.session_datatypes import InitiationPath, InitiationSession, SessionStatus
from cultbot.util.time_utils import from_timestamp

_COLUMNS = (
    "id, user_id, guild_id, ritual_channel_id, ritual_message_id, join_time, "
    "status, chosen_path, completed_time, expired_time"
)


def _row_to_session(row) -> InitiationSession:
    return InitiationSession(
        id=row[0],
        user_id=row[1],
        guild_id=row[2],
        ritual_channel_id=row[3],
        ritual_message_id=row[4],
        join_time=from_timestamp(row[5]),
        status=SessionStatus(row[6]),
        chosen_path=InitiationPath(row[7]) if row[7] else None,
        completed_time=from_timestamp(row[8]),
        expired_time=from_timestamp(row[9]),
    )


class InitiationSessionRepo:
    """Low-level CRUD for the ``initiation_sessions`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    async def insert_pending(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        ritual_channel_id: int,
        ritual_message_id: int,
        join_time: float,
    ) -> int:
        """Insert a pending session and return its row id."""
        cursor = await conn.execute(
            """
            INSERT INTO initiation_sessions
                (user_id, guild_id, ritual_channel_id, ritual_message_id, join_time, status)
            VALUES (?, ?, ?, ?, ?, 'pending')
            """,
            (user_id, guild_id, ritual_channel_id, ritual_message_id, join_time),
        )
        return cursor.lastrowid

    @staticmethod
    async def mark_completed(
        conn: aiosqlite.Connection,
        session_id: int,
        chosen_path: InitiationPath,
        completed_time: float,
    ) -> bool:
        """Move a pending session to completed. Returns False if nothing changed."""
        cursor = await conn.execute(
            """
            UPDATE initiation_sessions
            SET status = 'completed', chosen_path = ?, completed_time = ?
            WHERE id = ? AND status = 'pending'
            """,
            (chosen_path.value, completed_time, session_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    async def mark_expired(
        conn: aiosqlite.Connection,
        session_id: int,
        expired_time: float,
    ) -> bool:
        """Move a pending session to expired. Returns False if nothing changed."""
        cursor = await conn.execute(
            """
            UPDATE initiation_sessions
            SET status = 'expired', expired_time = ?
            WHERE id = ? AND status = 'pending'
            """,
            (expired_time, session_id),
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    async def get(conn: aiosqlite.Connection, session_id: int) -> InitiationSession | None:
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM initiation_sessions WHERE id = ?",
            (session_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_session(row) if row else None

    @staticmethod
    async def get_pending(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
    ) -> InitiationSession | None:
        """Most recent pending session for the member, if any."""
        async with conn.execute(
            f"""
            SELECT {_COLUMNS} FROM initiation_sessions
            WHERE user_id = ? AND guild_id = ? AND status = 'pending'
            ORDER BY join_time DESC, id DESC
            LIMIT 1
            """,
            (user_id, guild_id),
        ) as cursor:
            row = await cursor.fetchone()
        return _row_to_session(row) if row else None

    @staticmethod
    async def get_pending_joined_before(
        conn: aiosqlite.Connection,
        cutoff: float,
    ) -> List[InitiationSession]:
        """All pending sessions whose join time is strictly older than ``cutoff``."""
        async with conn.execute(
            f"""
            SELECT {_COLUMNS} FROM initiation_sessions
            WHERE status = 'pending' AND join_time < ?
            ORDER BY join_time ASC, id ASC
            """,
            (cutoff,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_session(row) for row in rows]

    @staticmethod
    async def get_pending_user_ids(conn: aiosqlite.Connection, guild_id: int) -> set[int]:
        async with conn.execute(
            "SELECT user_id FROM initiation_sessions WHERE guild_id = ? AND status = 'pending'",
            (guild_id,),
        ) as cursor:
            rows = await cursor.fetchall()
        return {row[0] for row in rows}

    @staticmethod
    async def count_pending(conn: aiosqlite.Connection, user_id: int, guild_id: int) -> int:
        async with conn.execute(
            "SELECT COUNT(*) FROM initiation_sessions WHERE user_id = ? AND guild_id = ? AND status = 'pending'",
            (user_id, guild_id),
        ) as cursor:
            row = await cursor.fetchone()
        return int(row[0]) if row else 0
