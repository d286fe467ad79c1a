"""
Storage for per-member activity counters and game sessions.

``user_activity`` has one row per (user, guild); ``game_activity`` holds play
sessions (open while ``ended_at`` is NULL) and chat mentions of tracked games.
"""

from __future__ import annotations

from datetime import datetime

import aiosqlite

from cultbot.datatypes.activity_datatypes import GameActivity, UserActivity
from cultbot.util.time_utils import from_timestamp, to_timestamp

_ACTIVITY_COLUMNS = (
    "user_id, guild_id, username, total_message_count, first_seen_at, last_message_time, "
    "joined_at, left_at, join_count, leave_count, warning_count, slow_mode_count, is_banned, "
    "current_game, game_started_at, last_updated"
)


class UserActivityRepo:
    """CRUD for the ``user_activity`` table."""

    @staticmethod
    async def get(conn: aiosqlite.Connection, user_id: int, guild_id: int) -> UserActivity | None:
        async with conn.execute(
            f"SELECT {_ACTIVITY_COLUMNS} FROM user_activity WHERE user_id = ? AND guild_id = ?",
            (user_id, guild_id),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return UserActivity(
            user_id=row[0],
            guild_id=row[1],
            username=row[2],
            total_message_count=row[3],
            first_seen_at=from_timestamp(row[4]),
            last_message_time=from_timestamp(row[5]),
            joined_at=from_timestamp(row[6]),
            left_at=from_timestamp(row[7]),
            join_count=row[8],
            leave_count=row[9],
            warning_count=row[10],
            slow_mode_count=row[11],
            is_banned=bool(row[12]),
            current_game=row[13],
            game_started_at=from_timestamp(row[14]),
            last_updated=from_timestamp(row[15]),
        )

    @staticmethod
    async def get_or_new(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        username: str,
        now: datetime,
    ) -> UserActivity:
        """Load the member's row, or build an unsaved one first seen at ``now``."""
        activity = await UserActivityRepo.get(conn, user_id, guild_id)
        if activity is None:
            activity = UserActivity(
                user_id=user_id,
                guild_id=guild_id,
                username=username,
                first_seen_at=now,
                last_updated=now,
            )
        return activity

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, activity: UserActivity) -> None:
        await conn.execute(
            f"""
            INSERT INTO user_activity ({_ACTIVITY_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, guild_id) DO UPDATE SET
                username            = excluded.username,
                total_message_count = excluded.total_message_count,
                first_seen_at       = excluded.first_seen_at,
                last_message_time   = excluded.last_message_time,
                joined_at           = excluded.joined_at,
                left_at             = excluded.left_at,
                join_count          = excluded.join_count,
                leave_count         = excluded.leave_count,
                warning_count       = excluded.warning_count,
                slow_mode_count     = excluded.slow_mode_count,
                is_banned           = excluded.is_banned,
                current_game        = excluded.current_game,
                game_started_at     = excluded.game_started_at,
                last_updated        = excluded.last_updated
            """,
            (
                activity.user_id,
                activity.guild_id,
                activity.username,
                activity.total_message_count,
                to_timestamp(activity.first_seen_at),
                to_timestamp(activity.last_message_time),
                to_timestamp(activity.joined_at),
                to_timestamp(activity.left_at),
                activity.join_count,
                activity.leave_count,
                activity.warning_count,
                activity.slow_mode_count,
                int(activity.is_banned),
                activity.current_game,
                to_timestamp(activity.game_started_at),
                to_timestamp(activity.last_updated),
            ),
        )


class GameActivityRepo:
    """Insert/close helpers for the ``game_activity`` table."""

    @staticmethod
    async def insert(conn: aiosqlite.Connection, game: GameActivity) -> int:
        cursor = await conn.execute(
            """
            INSERT INTO game_activity (user_id, guild_id, game_name, started_at, ended_at, duration_seconds)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                game.user_id,
                game.guild_id,
                game.game_name,
                to_timestamp(game.started_at),
                to_timestamp(game.ended_at),
                game.duration_seconds,
            ),
        )
        return cursor.lastrowid

    @staticmethod
    async def close_open_session(
        conn: aiosqlite.Connection,
        user_id: int,
        guild_id: int,
        game_name: str,
        ended_at: float,
    ) -> bool:
        """Stamp the end of the member's open session for ``game_name``, if one exists."""
        cursor = await conn.execute(
            """
            UPDATE game_activity
            SET ended_at = ?, duration_seconds = ? - started_at
            WHERE id = (
                SELECT id FROM game_activity
                WHERE user_id = ? AND guild_id = ? AND game_name = ? AND ended_at IS NULL
                ORDER BY started_at DESC
                LIMIT 1
            )
            """,
            (ended_at, ended_at, user_id, guild_id, game_name),
        )
        return cursor.rowcount > 0
