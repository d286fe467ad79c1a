"""
One-shot readiness gate shared by the Discord listeners and background loops.

The events cog sets the signal once the gateway is connected and slash
commands are synced. Background schedulers await it exactly once before
their first iteration instead of polling a shared flag.
"""

from __future__ import annotations

import asyncio

from cultbot.util.logger import get_logger

logger = get_logger("ready_signal")


class ReadySignal:
    """Awaitable flag that flips from "not ready" to "ready" exactly once."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    def set_ready(self) -> None:
        """Release every current and future waiter. Later calls are no-ops."""
        if not self._event.is_set():
            logger.info("[READY] Bot marked ready; releasing background tasks")
        self._event.set()

    async def wait_for_ready(self, stop_event: asyncio.Event | None = None) -> bool:
        """
        Block until the bot is ready or ``stop_event`` is set.

        Returns:
            True when the ready signal fired, False when the wait was
            abandoned because shutdown was requested first.
        """
        if self._event.is_set():
            return True
        if stop_event is None:
            await self._event.wait()
            return True

        ready_task = asyncio.create_task(self._event.wait())
        stop_task = asyncio.create_task(stop_event.wait())
        try:
            await asyncio.wait({ready_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (ready_task, stop_task):
                if not task.done():
                    task.cancel()
        return self._event.is_set()
