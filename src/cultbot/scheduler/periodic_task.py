"""Generic periodic background task.

Provides a reusable async runner that waits for the bot's ready signal once,
then calls a user-supplied coroutine on an interval until stopped. Handles the
lifecycle (start/stop) and the standard per-iteration error handling.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from cultbot.util.logger import get_logger
from cultbot.util.ready_signal import ReadySignal

logger = get_logger("periodic_task")

# A tick may return the delay in seconds before the next run; None keeps the default interval.
TickCoro = Callable[[], Awaitable[float | None]]


class PeriodicTask:
    """
    Interval loop gated on a :class:`ReadySignal`.

    Stopping sets an event the loop checks between iterations and sleeps on,
    so ``stop()`` returns promptly without cancelling a tick halfway through.

    Args:
        name: Human-readable name for logging (e.g., "EXPIRY", "LIVE").
        tick: Coroutine run each iteration.
        get_interval: Callable returning the default interval in seconds.
        ready_signal: Gate awaited once before the first tick.
        initial_delay: Seconds to wait after the gate opens before the first tick.
    """

    def __init__(
        self,
        name: str,
        tick: TickCoro,
        get_interval: Callable[[], float],
        ready_signal: ReadySignal,
        initial_delay: float = 0.0,
    ) -> None:
        self._name = name
        self._tick = tick
        self._get_interval = get_interval
        self._ready_signal = ready_signal
        self._initial_delay = initial_delay
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if a stop was requested meanwhile."""
        if seconds <= 0:
            return self._stop_event.is_set()
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_loop(self) -> None:
        if not await self._ready_signal.wait_for_ready(self._stop_event):
            logger.info("[%s] Stopped before the bot became ready", self._name)
            return

        logger.info("[%s] Starting periodic task (interval=%.1fs)", self._name, self._get_interval())
        if await self._sleep(self._initial_delay):
            return

        while not self._stop_event.is_set():
            delay = self._get_interval()
            try:
                next_delay = await self._tick()
                if next_delay is not None:
                    delay = next_delay
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("[%s] Unexpected error during tick: %s", self._name, exc)

            if await self._sleep(delay):
                break

        logger.info("[%s] Periodic task stopped", self._name)

    def start(self) -> None:
        """Start the background task if not already running."""
        if self.running:
            logger.warning("[%s] Task already running", self._name)
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name=f"cultbot-{self._name.lower()}")

    async def stop(self, timeout: float | None = 30.0) -> None:
        """Request a stop and wait for the current iteration to finish."""
        self._stop_event.set()
        if self._task is None:
            return

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("[%s] Did not stop within %.0fs; cancelling", self._name, timeout)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None

        logger.info("[%s] Scheduler shutdown complete", self._name)
