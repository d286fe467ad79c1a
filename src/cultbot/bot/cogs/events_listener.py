"""Event listener Cog for CultBot.

This cog handles bot lifecycle events (on_ready): it registers the persistent
ritual view, opens the ready gate for the background loops, validates the
configuration and starts the schedulers.
"""

import discord
from discord.ext import commands

from cultbot.bot.bot_services import BotServices
from cultbot.bot.onboarding import RitualView
from cultbot.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle handlers."""

    def __init__(self, discord_bot_instance, services: BotServices):
        """
        Initialize the events listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        services:
            Shared bot services.
        """
        self.bot = discord_bot_instance
        self.services = services
        self._started = False
        logger.info("[EVENTS] Events listener cog loaded")

    @commands.Cog.listener(name='on_ready')
    async def on_ready(self):
        """
        Handle bot startup.

        py-cord has synced the application commands by the time on_ready
        fires. This method:
        1. Registers the persistent ritual view so old ritual buttons keep working
        2. Sets the ready signal releasing the background loops
        3. Validates channel/role configuration for every guild
        4. Starts the expiry sweep and live-stream schedulers (first ready only)
        """
        if self.bot.user:
            logger.info("[EVENTS] Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("[EVENTS] Bot partially connected, but user information not yet available.")

        if self._started:
            logger.info("[EVENTS] Reconnected; background tasks already running")
            return
        self._started = True

        self.bot.add_view(RitualView(self.services.onboarding))
        await self.bot.change_presence(
            status=discord.Status.online,
            activity=discord.Activity(type=discord.ActivityType.watching, name="the veil"),
        )

        self.services.ready_signal.set_ready()
        self.services.validator.validate_all()

        self.services.expiry_scheduler.start()
        self.services.live_scheduler.start()


def setup(discord_bot_instance, services: BotServices):
    """
    Register the EventsListenerCog with the bot.

    Parameters
    ----------
    discord_bot_instance:
        The Discord bot instance to add this cog to.
    services:
        Shared bot services.
    """
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, services))
