"""Posts live-stream announcements to the transmissions channel of every guild."""

from __future__ import annotations

import datetime

import discord

from cultbot.livestream.live_announcer import AnnouncementNotDelivered
from cultbot.util.logger import get_logger

logger = get_logger("announcements")

YOUTUBE_THUMBNAIL = "https://www.youtube.com/s/desktop/6e27bc15/img/favicon_144x144.png"


def build_live_embed(stream_url: str, manual_trigger: bool) -> discord.Embed:
    embed = discord.Embed(
        title="🔴 LIVE NOW ON YOUTUBE",
        description="Hey everyone, I'm live on YouTube! Come join the stream and hang out!",
        url=stream_url,
        color=discord.Color.red(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.set_thumbnail(url=YOUTUBE_THUMBNAIL)
    embed.add_field(name="Stream Link", value=f"[Click here to watch]({stream_url})", inline=False)
    embed.set_footer(text="Manually triggered" if manual_trigger else "Auto-detected")
    return embed


class GuildAnnouncer:
    """
    Announcement sink for :class:`cultbot.livestream.live_announcer.LiveStreamAnnouncer`.

    A guild without the channel, or one where posting fails, is logged and
    skipped; the remaining guilds still get the announcement. If no guild
    received it, :class:`AnnouncementNotDelivered` is raised so the stream
    stays unannounced and the next check tries again.
    """

    def __init__(self, bot: discord.Bot, channel_id: int) -> None:
        self.bot = bot
        self.channel_id = channel_id

    async def __call__(self, stream_url: str, manual_trigger: bool) -> int:
        embed = build_live_embed(stream_url, manual_trigger)
        delivered = 0
        for guild in self.bot.guilds:
            channel = guild.get_channel(self.channel_id)
            if channel is None:
                logger.warning("[LIVE] Transmissions channel %s not found in guild %s", self.channel_id, guild.name)
                continue
            try:
                await channel.send(
                    content="@everyone",
                    embed=embed,
                    allowed_mentions=discord.AllowedMentions(everyone=True),
                )
            except discord.HTTPException as exc:
                logger.error("[LIVE] Failed to post announcement in %s: %s", guild.name, exc)
                continue
            delivered += 1
            logger.info("[LIVE] Announcement posted to #%s in %s", channel.name, guild.name)

        if not delivered:
            raise AnnouncementNotDelivered(f"no guild received the announcement for {stream_url}")
        return delivered
