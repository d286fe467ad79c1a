"""
Discord side of the initiation ritual.

:class:`OnboardingService` turns state-machine decisions into Discord actions
(roles, welcome and ritual messages, kicks) and :class:`RitualView` is the
persistent three-button view attached to every ritual message. The view is
registered once with ``bot.add_view`` so buttons keep working after a restart.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List

import discord

from cultbot.configuration.app_configuration import AppConfig, app_config
from cultbot.datatypes.session_datatypes import (
    PATH_DESCRIPTIONS,
    InitiationPath,
    InitiationSession,
    MemberSnapshot,
)
from cultbot.initiation.initiation_state_machine import DuplicatePendingSessionError, InitiationStateMachine
from cultbot.initiation.reconciliation import reconcile_membership
from cultbot.services.activity_tracker import ActivityTracker
from cultbot.util import discord_utils
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import utcnow

logger = get_logger("onboarding")


class RitualView(discord.ui.View):
    """Persistent view carrying one button per initiation path."""

    def __init__(self, onboarding: "OnboardingService"):
        # timeout=None makes the view persistent across bot restarts
        super().__init__(timeout=None)
        self.onboarding = onboarding
        for path in InitiationPath:
            button = discord.ui.Button(
                label=f"Become a {path.display_name}",
                style=discord.ButtonStyle.secondary,
                custom_id=path.button_custom_id,
            )
            button.callback = self._make_callback(path)
            self.add_item(button)

    def _make_callback(self, path: InitiationPath):
        async def callback(interaction: discord.Interaction):
            await self.onboarding.handle_path_choice(interaction, path)
        return callback


class OnboardingService:
    """
    Welcome, ritual, completion and ejection flows.

    Args:
        bot: The Discord bot.
        state_machine: Session lifecycle owner.
        activity: Activity bookkeeping for joins.
        config: Application configuration.
        now: Clock used for recovery cutoffs.
    """

    def __init__(
        self,
        bot: discord.Bot,
        state_machine: InitiationStateMachine,
        activity: ActivityTracker,
        config: AppConfig = app_config,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.bot = bot
        self.state_machine = state_machine
        self.activity = activity
        self.config = config
        self._now = now

    # ------------------------------------------------------------------
    # Message texts
    # ------------------------------------------------------------------

    def welcome_text(self, member: discord.Member) -> str:
        ids = self.config.discord
        hours = self.config.initiation.timeout_hours
        return (
            f"A new presence enters: {member.mention}.\n\n"
            "You have been marked as **The Uninitiated**.\n"
            f"To walk among us, you must complete the **Rite of Choosing** in <#{ids.ritual_channel_id}>.\n"
            f"You have **{hours} hours** before the veil closes."
        )

    def ritual_text(self, member: discord.Member) -> str:
        paths = "\n".join(f"**{path.display_name}** - {PATH_DESCRIPTIONS[path]}" for path in InitiationPath)
        return (
            f"{member.mention}, choose your path to enter the Cult.\n\n"
            f"{paths}\n\n"
            "Select one below.\n"
            f"You have **{self.config.initiation.timeout_hours} hours**."
        )

    @staticmethod
    def failure_text(member: discord.Member) -> str:
        return f"{member.mention} has failed to complete the rites.\nThey have been cast out of the Cult."

    def success_text(self, member: discord.Member, path: InitiationPath) -> str:
        gif = self.config.discord.path_gif_urls.get(path.value, "")
        return f"{member.mention} has chosen the path of the **{path.display_name}**.\n{gif}\nGreet them."

    # ------------------------------------------------------------------
    # Join
    # ------------------------------------------------------------------

    async def handle_member_join(self, member: discord.Member) -> None:
        """Mark the member Uninitiated, welcome them and open their ritual."""
        if member.bot:
            logger.debug("[ONBOARDING] Ignoring bot user %s", member.id)
            return

        try:
            await self.activity.track_join(member.id, member.guild.id, member.name)
        except Exception as exc:
            logger.error("[ONBOARDING] Failed to track join for %s: %s", member.id, exc)

        await self.retire_stale_session(member)

        guild = member.guild
        ids = self.config.discord

        role = guild.get_role(ids.uninitiated_role_id)
        if role is None:
            logger.warning("[ONBOARDING] Uninitiated role %s not found in guild %s", ids.uninitiated_role_id, guild.id)
        else:
            try:
                await member.add_roles(role, reason="New member awaiting initiation")
            except discord.HTTPException as exc:
                logger.error("[ONBOARDING] Failed to assign Uninitiated role to %s: %s", member.id, exc)

        await self.send_welcome(member)
        await self.send_ritual(member)

    async def retire_stale_session(self, member: discord.Member) -> bool:
        """
        Expire a pending session left over from before the member last left.

        A rejoining member starts a fresh ritual with a fresh timeout; the old
        session counts as ejected since the member was absent.
        """
        stale = await self.state_machine.get_pending_session(member.id, member.guild.id)
        if stale is None:
            return False

        channel = member.guild.get_channel(stale.ritual_channel_id)
        if channel is not None:
            await self._delete_ritual_message(channel, stale)
        expired = await self.state_machine.expire_session(stale.id)
        logger.info("[ONBOARDING] %s rejoined guild %s; expired stale session %s", member.id, member.guild.id, stale.id)
        return expired

    @staticmethod
    async def _delete_ritual_message(channel: discord.abc.Messageable, session: InitiationSession) -> None:
        try:
            message = await channel.fetch_message(session.ritual_message_id)
            await message.delete()
        except discord.NotFound:
            pass
        except discord.HTTPException as exc:
            logger.warning("[ONBOARDING] Could not delete ritual message %s: %s", session.ritual_message_id, exc)

    async def send_welcome(self, member: discord.Member) -> None:
        channel = member.guild.get_channel(self.config.discord.gateway_channel_id)
        if channel is None:
            logger.warning("[ONBOARDING] Gateway channel %s not found", self.config.discord.gateway_channel_id)
            return
        try:
            await channel.send(self.welcome_text(member))
        except discord.HTTPException as exc:
            logger.error("[ONBOARDING] Failed to send welcome for %s: %s", member.id, exc)

    async def send_ritual(self, member: discord.Member) -> InitiationSession | None:
        """
        Post the ritual message and open a pending session for it.

        Returns:
            The new session, or None if the ritual could not be sent or the
            member already has a pending session.
        """
        guild = member.guild
        if await self.state_machine.get_pending_session(member.id, guild.id) is not None:
            logger.error("[ONBOARDING] %s already has a pending session in guild %s; not sending a second ritual",
                         member.id, guild.id)
            return None

        channel = guild.get_channel(self.config.discord.ritual_channel_id)
        if channel is None:
            logger.warning("[ONBOARDING] Ritual channel %s not found in guild %s",
                           self.config.discord.ritual_channel_id, guild.id)
            return None

        message = await channel.send(self.ritual_text(member), view=RitualView(self))
        try:
            session = await self.state_machine.create_session(member.id, guild.id, channel.id, message.id)
        except DuplicatePendingSessionError as exc:
            logger.error("[ONBOARDING] %s", exc)
            await discord_utils.safe_delete_message(message)
            return None

        logger.info(
            "[ONBOARDING] Ritual sent to %s (session %s), expires in %d hours",
            member.id, session.id, self.config.initiation.timeout_hours,
        )
        return session

    # ------------------------------------------------------------------
    # Path choice
    # ------------------------------------------------------------------

    async def handle_path_choice(self, interaction: discord.Interaction, path: InitiationPath) -> None:
        """Complete the clicking member's ritual with ``path``."""
        member = interaction.user
        if not isinstance(member, discord.Member) or interaction.message is None:
            return

        session = await self.state_machine.get_pending_session(member.id, member.guild.id)
        if session is None:
            await interaction.response.send_message("You don't have a pending initiation.", ephemeral=True)
            return

        if interaction.message.id != session.ritual_message_id:
            await interaction.response.send_message("This is not your ritual message.", ephemeral=True)
            return

        try:
            await self._swap_roles(member, path)
            await discord_utils.safe_delete_message(interaction.message)

            channel = member.guild.get_channel(self.config.discord.ritual_channel_id)
            if channel is not None:
                await channel.send(self.success_text(member, path))

            await self.state_machine.complete_session(session.id, path)
            logger.info("[ONBOARDING] Initiation completed for %s (%s)", member.id, path.display_name)

            await interaction.response.defer()
        except Exception as exc:
            logger.error("[ONBOARDING] Failed to complete initiation for %s: %s", member.id, exc)
            if not interaction.response.is_done():
                await interaction.response.send_message(
                    "An error occurred. Please contact an administrator.", ephemeral=True
                )

    async def _swap_roles(self, member: discord.Member, path: InitiationPath) -> None:
        ids = self.config.discord
        uninitiated = member.guild.get_role(ids.uninitiated_role_id)
        if uninitiated is not None and uninitiated in member.roles:
            await member.remove_roles(uninitiated, reason="Initiation completed")

        role_id = ids.path_role_ids.get(path.value, 0)
        new_role = member.guild.get_role(role_id)
        if new_role is None:
            logger.warning("[ONBOARDING] Role for path %s not found (ID: %s)", path.value, role_id)
            return
        await member.add_roles(new_role, reason=f"Chose the path of the {path.display_name}")

    # ------------------------------------------------------------------
    # Expiry and recovery
    # ------------------------------------------------------------------

    async def eject_member(self, member: discord.Member, session: InitiationSession) -> bool:
        """
        Remove the ritual, announce the failure and kick the member.

        Returns:
            True once the member is gone (kicked or already absent); False if
            the kick failed and should be retried on the next sweep.
        """
        guild = member.guild
        channel = guild.get_channel(session.ritual_channel_id)
        if channel is not None:
            await self._delete_ritual_message(channel, session)

            try:
                await channel.send(self.failure_text(member))
            except discord.HTTPException as exc:
                logger.warning("[ONBOARDING] Could not post failure notice for %s: %s", member.id, exc)

        hours = self.config.initiation.timeout_hours
        try:
            await member.kick(reason=f"Failed to complete initiation within {hours} hours")
        except discord.NotFound:
            logger.info("[ONBOARDING] %s already left guild %s", member.id, guild.id)
            return True
        except discord.HTTPException as exc:
            logger.error("[ONBOARDING] Failed to kick %s from guild %s: %s", member.id, guild.id, exc)
            return False

        logger.info("[ONBOARDING] Kicked %s for failing initiation", member.id)
        return True

    def uninitiated_snapshots(self, guild: discord.Guild) -> List[MemberSnapshot]:
        role = guild.get_role(self.config.discord.uninitiated_role_id)
        if role is None:
            return []
        return [
            MemberSnapshot(user_id=m.id, guild_id=guild.id, joined_at=m.joined_at, is_bot=m.bot)
            for m in role.members
        ]

    async def recover_guild(self, guild: discord.Guild) -> int:
        """Send rituals to Uninitiated members of ``guild`` that have no pending session."""
        snapshots = self.uninitiated_snapshots(guild)
        if not snapshots:
            return 0

        pending = {(uid, guild.id) for uid in await self.state_machine.get_pending_user_ids(guild.id)}
        max_age_days = self.config.initiation.recovery_max_join_age_days
        actions = reconcile_membership(snapshots, pending, self._now(), timedelta(days=max_age_days))

        recovered = 0
        for action in actions:
            member = guild.get_member(action.user_id)
            if member is None:
                continue
            try:
                if await self.send_ritual(member) is not None:
                    recovered += 1
            except discord.HTTPException as exc:
                logger.error("[ONBOARDING] Recovery ritual failed for %s: %s", action.user_id, exc)

        if recovered:
            logger.info("[ONBOARDING] Recovered %d member(s) in guild %s", recovered, guild.id)
        return recovered
