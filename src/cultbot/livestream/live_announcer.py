"""
Announces each live stream once.

The announcer asks the oracle whether the channel is live and keeps the
answer in the persisted :class:`LiveStreamStatus` row for its platform. A
video id that has not been announced yet is announced; a not-live answer
(oracle failures included) resets the row, so a stream that drops and comes
back is announced again. ``/live`` announces regardless of the stored state.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Protocol

from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.datatypes.livestream_datatypes import LiveCheckResult, LiveStreamStatus
from cultbot.repositories.live_stream_status_repo import LiveStreamStatusRepo
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import utcnow

logger = get_logger("live_announcer")


class AnnouncementNotDelivered(Exception):
    """Raised by an announcement sink when nobody received the announcement."""


class LiveOracle(Protocol):
    async def check_if_live(self) -> LiveCheckResult: ...

    async def resolve_channel_url(self) -> str | None: ...


# (stream url, manual trigger) -> delivered to every guild; raises if nothing was delivered
AnnouncementSink = Callable[[str, bool], Awaitable[Any]]


class LiveStreamAnnouncer:
    """
    Polls an oracle and announces each stream once.

    Args:
        oracle: Source of truth for "is it live".
        announce: Coroutine that posts the announcement.
        platform: Key of the status row.
        channel_handle: Shown in the manual response when the channel URL
            cannot be resolved.
        connection: Shared connection manager (defaults to the global one).
        now: Clock; injectable for tests.
    """

    def __init__(
        self,
        oracle: LiveOracle,
        announce: AnnouncementSink,
        platform: str = "YouTube",
        channel_handle: str = "",
        connection: ConnectionManager | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.oracle = oracle
        self._announce = announce
        self.platform = platform
        self.channel_handle = channel_handle
        self._db = connection or db_connection
        self._now = now
        # Manual /live and the poll loop must not interleave on the status row
        self._lock = asyncio.Lock()
        self.last_result: LiveCheckResult = LiveCheckResult.offline()

    async def _query_oracle(self) -> LiveCheckResult:
        try:
            return await self.oracle.check_if_live()
        except Exception as exc:
            logger.error("[LIVE] Live oracle failed, treating as offline: %s", exc)
            return LiveCheckResult.offline()

    async def get_status(self) -> LiveStreamStatus | None:
        async with self._db.read() as conn:
            return await LiveStreamStatusRepo.get(conn, self.platform)

    async def check_and_announce(self, manual_trigger: bool = False) -> bool:
        """
        Run one check.

        Returns:
            True if the stream is live.
        """
        async with self._lock:
            result = await self._query_oracle()
            self.last_result = result
            now = self._now()

            status = await self.get_status() or LiveStreamStatus(platform=self.platform)
            status.last_checked_at = now

            if not (result.is_live and result.video_id and result.video_url):
                if status.is_live:
                    logger.info("[LIVE] Stream ended, resetting status")
                status.reset()
                await self._save(status)
                return False

            should_announce = (
                manual_trigger
                or status.current_video_id != result.video_id
                or not status.announcement_sent
            )

            if status.current_video_id != result.video_id:
                status.announcement_sent = False
            status.is_live = True
            status.current_video_id = result.video_id
            if status.live_started_at is None:
                status.live_started_at = now

            if should_announce:
                try:
                    await self._announce(result.video_url, manual_trigger)
                    status.announcement_sent = True
                    logger.info("[LIVE] Announcement sent for stream %s", result.video_id)
                except Exception as exc:
                    logger.error("[LIVE] Failed to send announcement for %s: %s", result.video_id, exc)
            else:
                logger.debug("[LIVE] Stream %s already announced", result.video_id)

            await self._save(status)
            return True

    async def _save(self, status: LiveStreamStatus) -> None:
        async with self._db.transaction() as conn:
            await LiveStreamStatusRepo.upsert(conn, status)

    async def manual_response(self) -> str:
        """Run a manually triggered check and return the reply for the invoking admin."""
        if await self.check_and_announce(manual_trigger=True):
            return f"✓ You're live! Announcement sent to all servers.\nStream: {self.last_result.video_url}"

        try:
            channel_url = await self.oracle.resolve_channel_url()
        except Exception as exc:
            logger.error("[LIVE] Could not resolve channel url: %s", exc)
            channel_url = None
        return f"⚠️ No live stream detected on your channel.\nChannel: {channel_url or self.channel_handle}"
