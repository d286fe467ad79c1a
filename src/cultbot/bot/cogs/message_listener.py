"""Message listener Cog for CultBot.

Every guild message passes through, in order: slow-mode enforcement, activity
tracking, the profanity filter and finally spam scoring. A message removed by
an earlier stage never reaches the later ones.
"""

import discord
from discord.ext import commands

from cultbot.bot.bot_services import BotServices
from cultbot.datatypes.moderation_datatypes import ProfanityMatch
from cultbot.datatypes.spam_datatypes import MemberProfile
from cultbot.moderation.spam_tracker import score_bot_suspicion
from cultbot.util import discord_utils
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import utcnow

logger = get_logger("message_listener_cog")

SLOW_MODE_NOTICE_SECONDS = 5
REMOVAL_NOTICE_SECONDS = 10


class MessageListenerCog(commands.Cog):
    """Cog responsible for moderating message creation events."""

    def __init__(self, discord_bot_instance, services: BotServices):
        """
        Initialize the message listener cog.

        Parameters
        ----------
        discord_bot_instance:
            The Discord bot instance to attach this cog to.
        services:
            Shared bot services.
        """
        self.bot = discord_bot_instance
        self.services = services
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name='on_message')
    async def on_message(self, message: discord.Message):
        """Run a guild message through the moderation pipeline."""
        if message.guild is None or discord_utils.is_ignored_author(message.author):
            return

        member = message.author
        content = message.content or ""

        try:
            if await self.services.spam_tracker.is_in_slow_mode(member.id, message.guild.id):
                await self._enforce_slow_mode(message)
                return

            await self.services.activity.track_message(
                member.id, message.guild.id, message.channel.id, member.name, content
            )

            match = self.services.profanity_detector.detect(content)
            if match is not None:
                await self._handle_profanity(message, match)
                return

            await self._handle_spam(message)
        except Exception as exc:
            logger.error(
                "[MESSAGE LISTENER] Error moderating message %s from %s: %s",
                message.id, member.id, exc, exc_info=True,
            )

    async def _enforce_slow_mode(self, message: discord.Message) -> None:
        await discord_utils.safe_delete_message(message)
        await discord_utils.send_self_deleting(
            message.channel,
            content=f"{message.author.mention}, you are in slow mode. Please wait before sending another message.",
            delete_after=SLOW_MODE_NOTICE_SECONDS,
        )
        logger.debug("[SLOW MODE] Removed message from %s", message.author.id)

    async def _handle_profanity(self, message: discord.Message, match: ProfanityMatch) -> None:
        member = message.author
        guild_id = message.guild.id
        logger.warning("[PROFANITY] %s from %s in guild %s", match.description, member.id, guild_id)

        await discord_utils.safe_delete_message(message)
        await self.services.activity.log_flagged_message(
            member.id, guild_id, message.channel.id, message.content, f"{match.category}: {match.term}"
        )

        offense_count = await self.services.sanctions.record_profanity_deletion(
            member, match.category, f"{match.category.label} detected in message"
        )
        sanctions = self.services.escalation.for_profanity(offense_count, match.category)
        await self.services.sanctions.apply(member, message.channel, sanctions)

        embed = discord.Embed(
            title="🚫 Message Removed",
            description=f"A message from {member.mention} was removed for violating server rules.",
            color=discord.Color.red(),
        )
        await discord_utils.send_self_deleting(message.channel, embed=embed, delete_after=REMOVAL_NOTICE_SECONDS)

    async def _handle_spam(self, message: discord.Message) -> None:
        member = message.author
        guild_id = message.guild.id
        activity = self.services.activity

        history = await activity.recent_contents(member.id, guild_id)
        score = await self.services.spam_tracker.evaluate_message(
            member.id, guild_id, message.content or "", utcnow(), history
        )

        async def is_likely_bot() -> bool:
            total, with_links = await activity.link_stats(member.id, guild_id)
            profile = MemberProfile(
                username=member.name,
                account_created_at=discord_utils.account_created_at(member),
                has_default_avatar=discord_utils.has_default_avatar(member),
                message_count=total,
                messages_with_links=with_links,
            )
            suspicion = score_bot_suspicion(profile, self.services.config.bot_detection, utcnow())
            if suspicion.likely_automated:
                logger.warning(
                    "[SPAM] %s looks automated (score %d: %s)",
                    member.id, suspicion.score, ", ".join(suspicion.reasons),
                )
            return suspicion.likely_automated

        sanctions = await self.services.escalation.for_spam(score, is_likely_bot)
        if not sanctions:
            return

        logger.info("[SPAM] Escalating for %s with score %d", member.id, score)
        await self.services.sanctions.apply(member, message.channel, sanctions)


def setup(discord_bot_instance, services: BotServices):
    """Register the MessageListenerCog with the bot."""
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, services))
