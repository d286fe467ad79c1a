"""
Live-stream commands cog for CultBot.
"""

import discord
from discord.ext import commands

from cultbot.bot.bot_services import BotServices
from cultbot.util.logger import get_logger

logger = get_logger("live_cmds_cog")


class LiveCommandsCog(commands.Cog):
    """
    Cog containing the manual live-announcement command.
    """

    def __init__(self, discord_bot_instance, services: BotServices):
        self.discord_bot_instance = discord_bot_instance
        self.services = services
        logger.info("[LIVE CMDS] Live commands cog loaded")

    @commands.slash_command(
        name="live",
        description="Manually trigger a live stream announcement",
        default_member_permissions=discord.Permissions(administrator=True),
    )
    @commands.has_permissions(administrator=True)
    async def live(self, application_context: discord.ApplicationContext):
        """Check the channel now and announce it if live, even if already announced."""
        await application_context.defer(ephemeral=True)
        try:
            response = await self.services.announcer.manual_response()
        except Exception as exc:
            logger.error("[LIVE CMDS] /live failed: %s", exc, exc_info=True)
            response = "An error occurred while checking the live status."

        await application_context.respond(response, ephemeral=True)
        logger.info("[LIVE CMDS] /live executed by %s", application_context.author)


def setup(discord_bot_instance, services: BotServices):
    """Register the LiveCommandsCog with the bot."""
    discord_bot_instance.add_cog(LiveCommandsCog(discord_bot_instance, services))
