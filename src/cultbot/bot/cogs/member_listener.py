"""Member listener Cog for CultBot.

Handles guild membership events (join, leave) and presence updates used for
game activity tracking.
"""

import discord
from discord.ext import commands

from cultbot.bot.bot_services import BotServices
from cultbot.util.logger import get_logger

logger = get_logger("member_listener_cog")


def playing_activity_name(member: discord.Member) -> str | None:
    """Name of the game ``member`` is playing, if any."""
    for activity in getattr(member, "activities", ()) or ():
        if activity.type == discord.ActivityType.playing and activity.name:
            return activity.name
    return None


class MemberListenerCog(commands.Cog):
    """Cog responsible for member join/leave and presence events."""

    def __init__(self, discord_bot_instance, services: BotServices):
        self.bot = discord_bot_instance
        self.services = services
        logger.info("[MEMBER LISTENER] Member listener cog loaded")

    @commands.Cog.listener(name='on_member_join')
    async def on_member_join(self, member: discord.Member):
        """Start onboarding for a newly joined member."""
        try:
            await self.services.onboarding.handle_member_join(member)
        except Exception as exc:
            logger.error("[MEMBER LISTENER] Onboarding failed for %s: %s", member.id, exc)

    @commands.Cog.listener(name='on_member_remove')
    async def on_member_remove(self, member: discord.Member):
        try:
            await self.services.activity.track_leave(member.id, member.guild.id)
        except Exception as exc:
            logger.error("[MEMBER LISTENER] Failed to track leave for %s: %s", member.id, exc)

    @commands.Cog.listener(name='on_presence_update')
    async def on_presence_update(self, before: discord.Member, after: discord.Member):
        """Open or close a game session when the member's playing activity changes."""
        if after.bot:
            return

        before_game = playing_activity_name(before)
        after_game = playing_activity_name(after)
        if before_game == after_game:
            return

        activity = self.services.activity
        try:
            if after_game is not None:
                await activity.track_game_start(after.id, after.guild.id, after.name, after_game)
            else:
                await activity.end_game_session(after.id, after.guild.id)
        except Exception as exc:
            logger.error("[MEMBER LISTENER] Failed to track game activity for %s: %s", after.id, exc)


def setup(discord_bot_instance, services: BotServices):
    """Register the MemberListenerCog with the bot."""
    discord_bot_instance.add_cog(MemberListenerCog(discord_bot_instance, services))
