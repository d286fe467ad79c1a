"""Storage for the per-platform live-stream announcement state."""

from __future__ import annotations

import aiosqlite

from cultbot.datatypes.livestream_datatypes import LiveStreamStatus
from cultbot.util.time_utils import from_timestamp, to_timestamp


class LiveStreamStatusRepo:
    """CRUD for the ``live_stream_status`` table (primary key = platform)."""

    @staticmethod
    async def get(conn: aiosqlite.Connection, platform: str) -> LiveStreamStatus | None:
        async with conn.execute(
            """
            SELECT platform, current_video_id, is_live, live_started_at, announcement_sent, last_checked_at
            FROM live_stream_status WHERE platform = ?
            """,
            (platform,),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return LiveStreamStatus(
            platform=row[0],
            current_video_id=row[1],
            is_live=bool(row[2]),
            live_started_at=from_timestamp(row[3]),
            announcement_sent=bool(row[4]),
            last_checked_at=from_timestamp(row[5]),
        )

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, status: LiveStreamStatus) -> None:
        await conn.execute(
            """
            INSERT INTO live_stream_status
                (platform, current_video_id, is_live, live_started_at, announcement_sent, last_checked_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(platform) DO UPDATE SET
                current_video_id  = excluded.current_video_id,
                is_live           = excluded.is_live,
                live_started_at   = excluded.live_started_at,
                announcement_sent = excluded.announcement_sent,
                last_checked_at   = excluded.last_checked_at
            """,
            (
                status.platform,
                status.current_video_id,
                int(status.is_live),
                to_timestamp(status.live_started_at),
                int(status.announcement_sent),
                to_timestamp(status.last_checked_at),
            ),
        )
