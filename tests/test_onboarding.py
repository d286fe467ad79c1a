"""
Tests for the Discord side of the initiation ritual.
"""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cultbot.bot.onboarding import OnboardingService, RitualView
from cultbot.configuration.app_configuration import AppConfig
from cultbot.datatypes.session_datatypes import InitiationPath, SessionStatus
from cultbot.initiation.initiation_state_machine import DuplicatePendingSessionError, InitiationStateMachine
from cultbot.scheduler.initiation_expiry_scheduler import InitiationExpiryScheduler
from cultbot.services.activity_tracker import ActivityTracker
from cultbot.util.ready_signal import ReadySignal

from fakes import make_channel, make_guild, make_member

CONFIG = """
discord:
  gateway_channel_id: 10
  ritual_channel_id: 20
  uninitiated_role_id: 30
  path_roles:
    silent_witness: 31
    neon_disciple: 32
    veiled_archivist: 33
  path_gifs:
    neon_disciple: https://gifs.example/neon.gif
initiation:
  timeout_hours: 24
  recovery_max_join_age_days: 7
"""


@pytest.fixture
def config(tmp_path):
    path = tmp_path / "app_config.yml"
    path.write_text(CONFIG, encoding="utf-8")
    return AppConfig(path)


@pytest.fixture
def machine(connection, clock):
    return InitiationStateMachine(connection, now=clock)


@pytest.fixture
def guild_setup():
    guild = make_guild(1000)
    gateway = make_channel(10)
    ritual = make_channel(20, message_id=9000)
    roles = {rid: SimpleNamespace(id=rid, members=[]) for rid in (30, 31, 32, 33)}
    guild.get_channel.side_effect = {10: gateway, 20: ritual}.get
    guild.get_role.side_effect = roles.get
    return SimpleNamespace(guild=guild, gateway=gateway, ritual=ritual, roles=roles)


@pytest.fixture
def service(machine, connection, config, clock):
    return OnboardingService(MagicMock(), machine, ActivityTracker(connection, now=clock), config, now=clock)


def make_interaction(member, message_id):
    interaction = MagicMock()
    interaction.user = member
    interaction.message = SimpleNamespace(id=message_id, delete=AsyncMock())
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.response.is_done = MagicMock(return_value=False)
    return interaction


def make_discord_member(user_id, guild, roles=()):
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.name = f"user{user_id}"
    member.guild = guild
    member.mention = f"<@{user_id}>"
    member.roles = list(roles)
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_join_assigns_role_welcomes_and_opens_session(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild)

    await service.handle_member_join(member)

    member.add_roles.assert_awaited_once()
    assert member.add_roles.await_args.args[0] is guild_setup.roles[30]
    welcome = guild_setup.gateway.send.await_args.args[0]
    assert "<@42>" in welcome and "<#20>" in welcome and "24 hours" in welcome

    ritual_kwargs = guild_setup.ritual.send.await_args.kwargs
    assert isinstance(ritual_kwargs["view"], RitualView)

    session = await machine.get_pending_session(42, 1000)
    assert session.ritual_channel_id == 20
    assert session.ritual_message_id == 9000


@pytest.mark.asyncio
async def test_bots_are_not_onboarded(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild, bot=True)

    await service.handle_member_join(member)

    member.add_roles.assert_not_awaited()
    guild_setup.ritual.send.assert_not_awaited()
    assert await machine.get_pending_session(42, 1000) is None


@pytest.mark.asyncio
async def test_no_second_ritual_for_pending_member(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild)
    await machine.create_session(42, 1000, 20, 1)

    assert await service.send_ritual(member) is None
    guild_setup.ritual.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_lost_race_deletes_the_extra_ritual(service, guild_setup):
    member = make_member(42, guild_setup.guild)
    message = SimpleNamespace(id=9000, delete=AsyncMock())
    guild_setup.ritual.send = AsyncMock(return_value=message)
    service.state_machine.create_session = AsyncMock(side_effect=DuplicatePendingSessionError(42, 1000))

    assert await service.send_ritual(member) is None
    message.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_missing_ritual_channel_skips_ritual(service, machine, guild_setup):
    guild_setup.guild.get_channel.side_effect = lambda cid: None
    member = make_member(42, guild_setup.guild)

    assert await service.send_ritual(member) is None
    assert await machine.get_pending_session(42, 1000) is None


@pytest.mark.asyncio
async def test_ritual_view_has_three_persistent_buttons(service):
    view = RitualView(service)

    assert view.timeout is None
    assert [item.custom_id for item in view.children] == [p.button_custom_id for p in InitiationPath]
    assert view.children[0].label == "Become a Silent Witness"


# ---------------------------------------------------------------------------
# Path choice
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_path_choice_completes_initiation(service, machine, guild_setup):
    uninitiated = guild_setup.roles[30]
    member = make_discord_member(42, guild_setup.guild, roles=[uninitiated])
    session = await machine.create_session(42, 1000, 20, 9000)
    interaction = make_interaction(member, 9000)

    await service.handle_path_choice(interaction, InitiationPath.NEON_DISCIPLE)

    member.remove_roles.assert_awaited_once()
    assert member.remove_roles.await_args.args[0] is uninitiated
    assert member.add_roles.await_args.args[0] is guild_setup.roles[32]
    interaction.message.delete.assert_awaited_once()
    success = guild_setup.ritual.send.await_args.args[0]
    assert "Neon Disciple" in success and "https://gifs.example/neon.gif" in success
    interaction.response.defer.assert_awaited_once()

    stored = await machine.get_session(session.id)
    assert stored.status is SessionStatus.COMPLETED
    assert stored.chosen_path is InitiationPath.NEON_DISCIPLE


@pytest.mark.asyncio
async def test_path_choice_without_session(service, guild_setup):
    member = make_discord_member(42, guild_setup.guild)
    interaction = make_interaction(member, 9000)

    await service.handle_path_choice(interaction, InitiationPath.SILENT_WITNESS)

    interaction.response.send_message.assert_awaited_once_with(
        "You don't have a pending initiation.", ephemeral=True
    )
    member.add_roles.assert_not_awaited()


@pytest.mark.asyncio
async def test_path_choice_on_someone_elses_ritual(service, machine, guild_setup):
    await machine.create_session(42, 1000, 20, 9000)
    member = make_discord_member(42, guild_setup.guild)
    interaction = make_interaction(member, 1234)

    await service.handle_path_choice(interaction, InitiationPath.SILENT_WITNESS)

    interaction.response.send_message.assert_awaited_once_with("This is not your ritual message.", ephemeral=True)
    assert await machine.get_pending_session(42, 1000) is not None


@pytest.mark.asyncio
async def test_path_choice_error_reports_to_member(service, machine, guild_setup):
    await machine.create_session(42, 1000, 20, 9000)
    member = make_discord_member(42, guild_setup.guild, roles=[guild_setup.roles[30]])
    member.remove_roles = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing permissions"))
    interaction = make_interaction(member, 9000)

    await service.handle_path_choice(interaction, InitiationPath.SILENT_WITNESS)

    interaction.response.send_message.assert_awaited_once_with(
        "An error occurred. Please contact an administrator.", ephemeral=True
    )
    assert await machine.get_pending_session(42, 1000) is not None


# ---------------------------------------------------------------------------
# Ejection and recovery
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_eject_member_cleans_up_and_kicks(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild)
    session = await machine.create_session(42, 1000, 20, 9000)
    ritual_message = SimpleNamespace(delete=AsyncMock())
    guild_setup.ritual.fetch_message = AsyncMock(return_value=ritual_message)

    assert await service.eject_member(member, session) is True

    ritual_message.delete.assert_awaited_once()
    assert "failed to complete the rites" in guild_setup.ritual.send.await_args.args[0]
    member.kick.assert_awaited_once_with(reason="Failed to complete initiation within 24 hours")


@pytest.mark.asyncio
async def test_eject_member_tolerates_missing_ritual_message(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild)
    session = await machine.create_session(42, 1000, 20, 9000)
    guild_setup.ritual.fetch_message = AsyncMock(side_effect=discord.NotFound(MagicMock(), "Unknown Message"))

    assert await service.eject_member(member, session) is True
    member.kick.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_kick_reports_false(service, machine, guild_setup):
    member = make_member(42, guild_setup.guild)
    member.kick = AsyncMock(side_effect=discord.Forbidden(MagicMock(), "Missing permissions"))
    session = await machine.create_session(42, 1000, 20, 9000)

    assert await service.eject_member(member, session) is False


@pytest.mark.asyncio
async def test_recover_guild_sends_rituals_to_members_without_session(service, machine, guild_setup, clock):
    pending = make_member(1, guild_setup.guild)
    lost = make_member(2, guild_setup.guild)
    stale = make_member(3, guild_setup.guild)
    lost.joined_at = clock.current - timedelta(days=1)
    stale.joined_at = clock.current - timedelta(days=30)
    guild_setup.roles[30].members = [pending, lost, stale]
    guild_setup.guild.get_member.side_effect = {1: pending, 2: lost, 3: stale}.get
    await machine.create_session(1, 1000, 20, 1)

    assert await service.recover_guild(guild_setup.guild) == 1

    assert guild_setup.ritual.send.await_count == 1
    assert await machine.get_pending_session(2, 1000) is not None
    assert await machine.get_pending_session(3, 1000) is None


@pytest.mark.asyncio
async def test_recover_guild_is_idempotent(service, guild_setup):
    lost = make_member(2, guild_setup.guild)
    guild_setup.roles[30].members = [lost]
    guild_setup.guild.get_member.side_effect = {2: lost}.get

    assert await service.recover_guild(guild_setup.guild) == 1
    assert await service.recover_guild(guild_setup.guild) == 0


@pytest.mark.asyncio
async def test_rejoin_gets_fresh_ritual_and_timeout(service, machine, guild_setup, clock, initiation_settings):
    old_ritual = SimpleNamespace(delete=AsyncMock())
    guild_setup.ritual.fetch_message = AsyncMock(return_value=old_ritual)
    first = make_member(42, guild_setup.guild)
    await service.handle_member_join(first)
    old_session = await machine.get_pending_session(42, 1000)

    # left, then came back 23 hours later
    await service.activity.track_leave(42, 1000)
    clock.advance(hours=23)
    rejoined = make_member(42, guild_setup.guild)
    await service.handle_member_join(rejoined)

    assert guild_setup.ritual.send.await_count == 2
    old_ritual.delete.assert_awaited_once()
    assert (await machine.get_session(old_session.id)).status is SessionStatus.EXPIRED
    new_session = await machine.get_pending_session(42, 1000)
    assert new_session.id != old_session.id
    assert new_session.join_time == clock.current

    # past the original deadline but well inside the new one
    clock.advance(hours=1, minutes=1)
    bot = MagicMock()
    bot.guilds = [guild_setup.guild]
    bot.get_guild = MagicMock(return_value=guild_setup.guild)
    guild_setup.guild.get_member.side_effect = {42: rejoined}.get
    scheduler = InitiationExpiryScheduler(bot, machine, service, initiation_settings, ReadySignal())

    assert await scheduler.expire_sessions() == 0
    rejoined.kick.assert_not_awaited()
    assert (await machine.get_pending_session(42, 1000)).id == new_session.id
