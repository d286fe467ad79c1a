"""
Wiring of the bot's long-lived services.

:func:`build_services` creates every component once from the application
configuration; the cogs receive the resulting :class:`BotServices` in their
``setup`` functions.
"""

from __future__ import annotations

from dataclasses import dataclass

import discord

from cultbot.bot.announcements import GuildAnnouncer
from cultbot.bot.config_validator import ConfigurationValidator
from cultbot.bot.onboarding import OnboardingService
from cultbot.configuration.app_configuration import AppConfig
from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.initiation.initiation_state_machine import InitiationStateMachine
from cultbot.livestream.live_announcer import LiveStreamAnnouncer
from cultbot.livestream.youtube_client import YouTubeLiveClient
from cultbot.moderation.escalation_policy import EscalationPolicy
from cultbot.moderation.profanity_detector import ProfanityDetector
from cultbot.moderation.sanction_executor import SanctionExecutor
from cultbot.moderation.spam_tracker import SpamTracker
from cultbot.scheduler.initiation_expiry_scheduler import InitiationExpiryScheduler
from cultbot.scheduler.livestream_scheduler import LiveStreamScheduler
from cultbot.services.activity_tracker import ActivityTracker
from cultbot.util.ready_signal import ReadySignal


@dataclass(slots=True)
class BotServices:
    config: AppConfig
    ready_signal: ReadySignal
    state_machine: InitiationStateMachine
    activity: ActivityTracker
    spam_tracker: SpamTracker
    profanity_detector: ProfanityDetector
    escalation: EscalationPolicy
    sanctions: SanctionExecutor
    onboarding: OnboardingService
    validator: ConfigurationValidator
    youtube: YouTubeLiveClient
    announcer: LiveStreamAnnouncer
    expiry_scheduler: InitiationExpiryScheduler
    live_scheduler: LiveStreamScheduler

    async def shutdown(self) -> None:
        await self.expiry_scheduler.stop()
        await self.live_scheduler.stop()
        await self.youtube.close()


def build_services(
    bot: discord.Bot,
    config: AppConfig,
    youtube_api_key: str | None,
    connection: ConnectionManager | None = None,
) -> BotServices:
    conn = connection or db_connection
    ready_signal = ReadySignal()

    state_machine = InitiationStateMachine(conn)
    activity = ActivityTracker(conn, config.tracked_games)
    onboarding = OnboardingService(bot, state_machine, activity, config)

    live = config.live_stream
    youtube = YouTubeLiveClient(youtube_api_key, live.channel_handle, live.channel_id)
    announcer = LiveStreamAnnouncer(
        youtube,
        GuildAnnouncer(bot, live.transmissions_channel_id),
        platform=live.platform,
        channel_handle=live.channel_handle,
        connection=conn,
    )

    return BotServices(
        config=config,
        ready_signal=ready_signal,
        state_machine=state_machine,
        activity=activity,
        spam_tracker=SpamTracker(config.spam, conn),
        profanity_detector=ProfanityDetector(config.profanity.terms),
        escalation=EscalationPolicy(config.spam, config.profanity),
        sanctions=SanctionExecutor(conn, config.discord.mod_log_channel_id),
        onboarding=onboarding,
        validator=ConfigurationValidator(bot, config),
        youtube=youtube,
        announcer=announcer,
        expiry_scheduler=InitiationExpiryScheduler(bot, state_machine, onboarding, config.initiation, ready_signal),
        live_scheduler=LiveStreamScheduler(announcer, live, ready_signal),
    )
