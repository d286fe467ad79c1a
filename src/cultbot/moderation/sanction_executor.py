"""
Applies sanction instructions produced by the escalation policy.

Each sanction is first written to the offense log (together with the
member's activity counters and, for slow mode, the tracker flag) in a single
transaction. Once that commit succeeds the sanction counts as applied; the
Discord side effects that follow (warning embed, DM, ban, mod-log post) may
fail without undoing it.
"""

from __future__ import annotations

import datetime
from datetime import timedelta
from typing import Callable, Sequence

import discord

from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.datatypes.moderation_datatypes import (
    ModerationActionType,
    ModerationRecord,
    ProfanityCategory,
    Sanction,
    SanctionKind,
    SanctionOutcome,
)
from cultbot.repositories.moderation_log_repo import ModerationLogRepo
from cultbot.repositories.spam_tracker_repo import SpamTrackerRepo
from cultbot.repositories.user_activity_repo import UserActivityRepo
from cultbot.util import discord_utils
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import utcnow

logger = get_logger("sanction_executor")


class SanctionExecutor:
    """
    Records and carries out sanctions against a guild member.

    Args:
        connection: Shared connection manager (defaults to the global one).
        mod_log_channel_id: Channel receiving a line per sanction; 0 disables it.
        now: Clock; injectable for tests.
    """

    def __init__(
        self,
        connection: ConnectionManager | None = None,
        mod_log_channel_id: int = 0,
        now: Callable[[], datetime.datetime] = utcnow,
    ) -> None:
        self._db = connection or db_connection
        self.mod_log_channel_id = mod_log_channel_id
        self._now = now

    async def apply(
        self,
        member: discord.Member,
        channel: discord.abc.Messageable | None,
        sanctions: Sequence[Sanction],
    ) -> SanctionOutcome:
        """
        Record then apply ``sanctions`` in order.

        Parameters
        ----------
        member:
            Member being sanctioned.
        channel:
            Channel the offending message was posted in (warnings are shown there).
        sanctions:
            Ordered instructions from :class:`EscalationPolicy`.

        Returns
        -------
        SanctionOutcome
            Which sanctions were recorded, which could not be recorded, and
            whether the member was notified by DM.
        """
        outcome = SanctionOutcome()

        for sanction in sanctions:
            try:
                warning_count = await self._record(member, sanction)
            except Exception as exc:
                logger.error("[SANCTION] Failed to record %s for %s: %s", sanction.kind, member.id, exc)
                outcome.failed.append(sanction)
                continue

            outcome.recorded.append(sanction)

            if sanction.kind is SanctionKind.WARN:
                if await self._warn(member, channel, sanction, warning_count):
                    outcome.notified = True
            elif sanction.kind is SanctionKind.BAN:
                await self._ban(member, sanction)
            else:
                logger.info(
                    "[SANCTION] Slow mode applied to %s for %d minutes",
                    member.id, sanction.duration_minutes,
                )
                await discord_utils.post_to_mod_log(
                    member.guild,
                    self.mod_log_channel_id,
                    f"🐌 **Slow Mode Applied**\nUser: {member.mention}\nDuration: {sanction.duration_minutes} minutes",
                )

        return outcome

    async def record_profanity_deletion(
        self,
        member: discord.Member,
        category: ProfanityCategory,
        reason: str,
    ) -> int:
        """
        Log a filter deletion and return the member's offense count in ``category``,
        this deletion included.
        """
        async with self._db.transaction() as conn:
            await ModerationLogRepo.insert(
                conn,
                ModerationRecord(
                    user_id=member.id,
                    guild_id=member.guild.id,
                    action=ModerationActionType.MESSAGE_DELETED,
                    reason=reason,
                    timestamp=self._now(),
                    category=category,
                ),
            )
            return await ModerationLogRepo.count(
                conn, member.id, member.guild.id, ModerationActionType.MESSAGE_DELETED, category
            )

    async def _record(self, member: discord.Member, sanction: Sanction) -> int:
        """Write the offense log entry and counters; returns the member's warning total."""
        now = self._now()
        async with self._db.transaction() as conn:
            await ModerationLogRepo.insert(
                conn,
                ModerationRecord(
                    user_id=member.id,
                    guild_id=member.guild.id,
                    action=sanction.kind.log_action,
                    reason=sanction.reason,
                    timestamp=now,
                ),
            )

            activity = await UserActivityRepo.get_or_new(conn, member.id, member.guild.id, member.name, now)
            if sanction.kind is SanctionKind.WARN:
                activity.warning_count += 1
            elif sanction.kind is SanctionKind.SLOW_MODE:
                activity.slow_mode_count += 1
                await SpamTrackerRepo.activate_slow_mode(
                    conn, member.id, member.guild.id, now + timedelta(minutes=sanction.duration_minutes), now
                )
            else:
                activity.is_banned = True
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)

        return activity.warning_count

    async def _warn(
        self,
        member: discord.Member,
        channel: discord.abc.Messageable | None,
        sanction: Sanction,
        warning_count: int,
    ) -> bool:
        if channel is not None:
            embed = discord.Embed(
                title="⚠️ Warning",
                description=f"{member.mention}, you have been warned.",
                color=discord.Color.orange(),
                timestamp=self._now(),
            )
            embed.add_field(name="Reason", value=sanction.reason, inline=False)
            embed.add_field(name="Total Warnings", value=str(warning_count), inline=False)
            try:
                await channel.send(embed=embed)
            except discord.HTTPException as exc:
                logger.warning("[SANCTION] Failed to post warning for %s: %s", member.id, exc)

        notified = await discord_utils.safe_send_dm(
            member,
            f"You received a warning in **{member.guild.name}**\n**Reason:** {sanction.reason}",
        )

        logger.info("[SANCTION] Warned %s: %s", member.id, sanction.reason)
        await discord_utils.post_to_mod_log(
            member.guild,
            self.mod_log_channel_id,
            f"⚠️ **Warning Issued**\nUser: {member.mention}\nReason: {sanction.reason}\nTotal Warnings: {warning_count}",
        )
        return notified

    async def _ban(self, member: discord.Member, sanction: Sanction) -> None:
        try:
            await member.ban(reason=sanction.reason, delete_message_seconds=0)
        except discord.NotFound:
            logger.info("[SANCTION] %s already left before the ban", member.id)
        except discord.HTTPException as exc:
            logger.error("[SANCTION] Failed to ban %s: %s", member.id, exc)
            return

        logger.info("[SANCTION] Banned %s: %s", member.id, sanction.reason)
        await discord_utils.post_to_mod_log(
            member.guild,
            self.mod_log_channel_id,
            f"🔨 **User Banned**\nUser: {member.mention} ({member.name})\nReason: {sanction.reason}\nAction: Automated",
        )
