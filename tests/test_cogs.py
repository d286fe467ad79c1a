"""
Tests for the listener cogs wired to real services over a temporary database.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from cultbot.bot.cogs.live_cmds import LiveCommandsCog
from cultbot.bot.cogs.member_listener import MemberListenerCog, playing_activity_name
from cultbot.bot.cogs.message_listener import MessageListenerCog
from cultbot.configuration.bot_settings import BotDetectionSettings
from cultbot.datatypes.moderation_datatypes import ModerationActionType
from cultbot.moderation.escalation_policy import EscalationPolicy
from cultbot.moderation.profanity_detector import ProfanityDetector
from cultbot.moderation.sanction_executor import SanctionExecutor
from cultbot.moderation.spam_tracker import SpamTracker
from cultbot.repositories.moderation_log_repo import ModerationLogRepo
from cultbot.services.activity_tracker import ActivityTracker

from fakes import make_channel, make_guild


@pytest.fixture
def services(connection, clock, spam_settings, profanity_settings):
    return SimpleNamespace(
        config=SimpleNamespace(bot_detection=BotDetectionSettings({})),
        activity=ActivityTracker(connection, now=clock),
        spam_tracker=SpamTracker(spam_settings, connection, now=clock),
        profanity_detector=ProfanityDetector(profanity_settings.terms),
        escalation=EscalationPolicy(spam_settings, profanity_settings),
        sanctions=SanctionExecutor(connection, now=clock),
    )


@pytest.fixture
def guild():
    return make_guild(1000)


@pytest.fixture
def author(guild):
    member = MagicMock(spec=discord.Member)
    member.id = 42
    member.name = "initiate"
    member.bot = False
    member.guild = guild
    member.mention = "<@42>"
    member.send = AsyncMock()
    member.ban = AsyncMock()
    return member


def make_message(author, guild, content, channel=None):
    message = MagicMock()
    message.id = 1
    message.author = author
    message.guild = guild
    message.content = content
    message.channel = channel or make_channel()
    message.delete = AsyncMock()
    return message


async def count_actions(connection, action):
    async with connection.read() as conn:
        return await ModerationLogRepo.count(conn, 42, 1000, action)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_clean_message_is_only_tracked(services, author, guild):
    cog = MessageListenerCog(MagicMock(), services)
    message = make_message(author, guild, "hello cult")

    await cog.on_message(message)

    message.delete.assert_not_awaited()
    assert await services.activity.recent_contents(42, 1000) == ["hello cult"]


@pytest.mark.asyncio
async def test_direct_messages_and_bots_are_ignored(services, author, guild):
    cog = MessageListenerCog(MagicMock(), services)
    dm = make_message(author, None, "word")
    author.bot = True
    from_bot = make_message(author, guild, "word")

    await cog.on_message(dm)
    await cog.on_message(from_bot)

    assert await services.activity.recent_contents(42, 1000) == []


@pytest.mark.asyncio
async def test_profanity_is_removed_and_warned(services, author, guild, connection):
    cog = MessageListenerCog(MagicMock(), services)
    channel = make_channel()
    message = make_message(author, guild, "you w0rd", channel)

    await cog.on_message(message)

    message.delete.assert_awaited_once()
    assert await count_actions(connection, ModerationActionType.MESSAGE_DELETED) == 1
    assert await count_actions(connection, ModerationActionType.WARNING) == 1

    removal = channel.send.await_args_list[-1].kwargs
    assert removal["embed"].title == "🚫 Message Removed"
    assert removal["delete_after"] == 10


@pytest.mark.asyncio
async def test_third_profanity_offense_bans(services, author, guild, connection, clock):
    cog = MessageListenerCog(MagicMock(), services)

    for _ in range(3):
        await cog.on_message(make_message(author, guild, "word"))
        # the second offense adds slow mode
        clock.advance(hours=1)

    author.ban.assert_awaited_once()
    assert await count_actions(connection, ModerationActionType.BAN) == 1


@pytest.mark.asyncio
async def test_repeated_spam_triggers_slow_mode_then_enforces_it(services, author, guild, connection):
    cog = MessageListenerCog(MagicMock(), services)

    for _ in range(5):
        await cog.on_message(make_message(author, guild, "join my server"))

    assert await count_actions(connection, ModerationActionType.SLOW_MODE) == 1
    assert await count_actions(connection, ModerationActionType.WARNING) == 1
    assert await services.spam_tracker.is_in_slow_mode(42, 1000)

    channel = make_channel()
    blocked = make_message(author, guild, "one more", channel)
    await cog.on_message(blocked)

    blocked.delete.assert_awaited_once()
    notice = channel.send.await_args.kwargs
    assert "you are in slow mode" in notice["content"]
    assert notice["delete_after"] == 5
    assert "one more" not in await services.activity.recent_contents(42, 1000)


@pytest.mark.asyncio
async def test_pipeline_errors_are_contained(services, author, guild):
    services.activity.track_message = AsyncMock(side_effect=RuntimeError("db locked"))
    cog = MessageListenerCog(MagicMock(), services)

    await cog.on_message(make_message(author, guild, "hello"))


# ---------------------------------------------------------------------------
# Members and presence
# ---------------------------------------------------------------------------

def playing(name):
    return SimpleNamespace(type=discord.ActivityType.playing, name=name)


def presence_member(*activities):
    return SimpleNamespace(id=42, name="initiate", bot=False, guild=SimpleNamespace(id=1000), activities=list(activities))


def test_playing_activity_name():
    listening = SimpleNamespace(type=discord.ActivityType.listening, name="Spotify")

    assert playing_activity_name(presence_member(listening, playing("Valorant"))) == "Valorant"
    assert playing_activity_name(presence_member(listening)) is None


@pytest.mark.asyncio
async def test_presence_change_opens_and_closes_game_sessions():
    services = SimpleNamespace(activity=MagicMock())
    services.activity.track_game_start = AsyncMock()
    services.activity.end_game_session = AsyncMock()
    cog = MemberListenerCog(MagicMock(), services)

    await cog.on_presence_update(presence_member(), presence_member(playing("Valorant")))
    await cog.on_presence_update(presence_member(playing("Valorant")), presence_member(playing("Valorant")))
    await cog.on_presence_update(presence_member(playing("Valorant")), presence_member())

    services.activity.track_game_start.assert_awaited_once_with(42, 1000, "initiate", "Valorant")
    services.activity.end_game_session.assert_awaited_once_with(42, 1000)


@pytest.mark.asyncio
async def test_member_events_delegate_to_services():
    services = SimpleNamespace(onboarding=MagicMock(), activity=MagicMock())
    services.onboarding.handle_member_join = AsyncMock()
    services.activity.track_leave = AsyncMock(return_value=True)
    cog = MemberListenerCog(MagicMock(), services)
    member = SimpleNamespace(id=42, guild=SimpleNamespace(id=1000))

    await cog.on_member_join(member)
    await cog.on_member_remove(member)

    services.onboarding.handle_member_join.assert_awaited_once_with(member)
    services.activity.track_leave.assert_awaited_once_with(42, 1000)


# ---------------------------------------------------------------------------
# /live
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_live_command_replies_ephemerally():
    services = SimpleNamespace(announcer=MagicMock())
    services.announcer.manual_response = AsyncMock(return_value="⚠️ No live stream detected on your channel.")
    cog = LiveCommandsCog(MagicMock(), services)
    ctx = MagicMock()
    ctx.defer = AsyncMock()
    ctx.respond = AsyncMock()

    await cog.live.callback(cog, ctx)

    ctx.defer.assert_awaited_once_with(ephemeral=True)
    ctx.respond.assert_awaited_once_with("⚠️ No live stream detected on your channel.", ephemeral=True)
