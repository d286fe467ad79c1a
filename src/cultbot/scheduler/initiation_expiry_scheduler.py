"""
Periodic initiation sweep: recovery first, then expiry.

Each tick re-sends rituals to Uninitiated members that lost their session,
then ejects members whose pending session outlived the timeout. A session is
marked expired only after the member has been kicked (or was already gone),
so a failed kick is retried on the next tick.
"""

from __future__ import annotations

import asyncio

import discord

from cultbot.configuration.bot_settings import InitiationSettings
from cultbot.initiation.initiation_state_machine import InitiationStateMachine
from cultbot.scheduler.periodic_task import PeriodicTask
from cultbot.util.logger import get_logger
from cultbot.util.ready_signal import ReadySignal

logger = get_logger("initiation_expiry_scheduler")


class InitiationExpiryScheduler:
    """
    Owns the expiry sweep loop.

    Args:
        bot: Discord bot used to look up guilds and members.
        state_machine: Session lifecycle owner.
        onboarding: Service performing recovery rituals and ejections
            (:class:`cultbot.bot.onboarding.OnboardingService`).
        settings: Timeout and sweep interval.
        ready_signal: Gate awaited before the first sweep.
    """

    def __init__(
        self,
        bot: discord.Bot,
        state_machine: InitiationStateMachine,
        onboarding,
        settings: InitiationSettings,
        ready_signal: ReadySignal,
    ) -> None:
        self.bot = bot
        self.state_machine = state_machine
        self.onboarding = onboarding
        self.settings = settings
        self._task = PeriodicTask(
            "EXPIRY",
            self.sweep,
            lambda: self.settings.expiration_check_interval_minutes * 60,
            ready_signal,
        )

    def start(self) -> None:
        self._task.start()

    async def stop(self) -> None:
        await self._task.stop()

    async def sweep(self) -> None:
        await self.recover_missed_initiations()
        await self.expire_sessions()

    async def recover_missed_initiations(self) -> int:
        recovered = 0
        for guild in self.bot.guilds:
            try:
                recovered += await self.onboarding.recover_guild(guild)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("[EXPIRY] Recovery failed for guild %s: %s", guild.id, exc)
        return recovered

    async def expire_sessions(self) -> int:
        """Eject and expire every overdue session. Returns how many were expired."""
        sessions = await self.state_machine.get_expired_sessions(self.settings.timeout)
        expired = 0

        for session in sessions:
            try:
                guild = self.bot.get_guild(session.guild_id)
                if guild is None:
                    logger.debug("[EXPIRY] Guild %s unavailable; session %s left pending", session.guild_id, session.id)
                    continue

                member = guild.get_member(session.user_id)
                if member is not None and not await self.onboarding.eject_member(member, session):
                    continue

                if await self.state_machine.expire_session(session.id):
                    expired += 1
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("[EXPIRY] Error processing expired session %s: %s", session.id, exc)

        if expired:
            logger.info("[EXPIRY] Expired %d initiation session(s)", expired)
        return expired
