"""Adaptive live-stream poll loop."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from cultbot.configuration.bot_settings import LiveStreamSettings
from cultbot.livestream.live_announcer import LiveStreamAnnouncer
from cultbot.livestream.poll_policy import is_within_check_window, next_check_delay
from cultbot.scheduler.periodic_task import PeriodicTask
from cultbot.util.logger import get_logger
from cultbot.util.ready_signal import ReadySignal
from cultbot.util.time_utils import utcnow

logger = get_logger("livestream_scheduler")


class LiveStreamScheduler:
    """
    Checks for a live stream inside the configured daily window.

    Outside the window no check is made and the loop sleeps the normal
    interval. Once the current stream is live and announced the loop backs
    off to the longer already-live interval.
    """

    def __init__(
        self,
        announcer: LiveStreamAnnouncer,
        settings: LiveStreamSettings,
        ready_signal: ReadySignal,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.announcer = announcer
        self.settings = settings
        self._now = now
        self._task = PeriodicTask(
            "LIVE",
            self.tick,
            lambda: self.normal_interval.total_seconds(),
            ready_signal,
            initial_delay=settings.initial_delay_seconds,
        )

    @property
    def normal_interval(self) -> timedelta:
        return timedelta(minutes=self.settings.check_interval_minutes)

    @property
    def already_live_interval(self) -> timedelta:
        return timedelta(minutes=self.settings.already_live_check_interval_minutes)

    def start(self) -> None:
        logger.info(
            "[LIVE] Window %02d:00-%02d:00 %s, interval %.0f min (already live: %.0f min)",
            self.settings.window_start_hour,
            self.settings.window_end_hour,
            self.settings.timezone,
            self.settings.check_interval_minutes,
            self.settings.already_live_check_interval_minutes,
        )
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def tick(self) -> float:
        """Run one check if inside the window; returns the delay before the next one."""
        in_window = is_within_check_window(
            self._now(),
            self.settings.window_start_hour,
            self.settings.window_end_hour,
            self.settings.timezone,
        )
        if not in_window:
            return self.normal_interval.total_seconds()

        await self.announcer.check_and_announce(manual_trigger=False)
        status = await self.announcer.get_status()
        return next_check_delay(status, self.normal_interval, self.already_live_interval).total_seconds()
