"""
Tests for the live-stream check window, poll cadence and YouTube client.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import aiohttp
import pytest

from cultbot.configuration.bot_settings import LiveStreamSettings
from cultbot.datatypes.livestream_datatypes import LiveStreamStatus
from cultbot.livestream.poll_policy import is_within_check_window, next_check_delay
from cultbot.livestream.youtube_client import YouTubeLiveClient
from cultbot.scheduler.livestream_scheduler import LiveStreamScheduler
from cultbot.util.ready_signal import ReadySignal

NORMAL = timedelta(minutes=10)
ALREADY_LIVE = timedelta(minutes=30)


def at(hour, minute=0):
    return datetime(2024, 6, 1, hour, minute, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Window
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "now, start, end, expected",
    [
        (at(12), 0, 24, True),
        (at(18), 18, 23, True),
        (at(17, 59), 18, 23, False),
        (at(23), 18, 23, False),
        (at(23, 30), 22, 2, True),
        (at(1, 59), 22, 2, True),
        (at(2), 22, 2, False),
        (at(12), 22, 2, False),
    ],
)
def test_check_window_in_utc(now, start, end, expected):
    assert is_within_check_window(now, start, end, "UTC") is expected


def test_check_window_uses_local_time():
    # 23:00 UTC is 19:00 in New York during daylight saving time
    assert is_within_check_window(at(23), 18, 22, "America/New_York") is True
    assert is_within_check_window(at(23), 18, 22, "UTC") is False


def test_unknown_timezone_keeps_checking():
    assert is_within_check_window(at(3), 18, 22, "Not/AZone") is True


# ---------------------------------------------------------------------------
# Cadence
# ---------------------------------------------------------------------------

def test_next_delay_backs_off_once_announced():
    announced = LiveStreamStatus(platform="YouTube", current_video_id="v", is_live=True, announcement_sent=True)
    pending = LiveStreamStatus(platform="YouTube", current_video_id="v", is_live=True, announcement_sent=False)

    assert next_check_delay(announced, NORMAL, ALREADY_LIVE) == ALREADY_LIVE
    assert next_check_delay(pending, NORMAL, ALREADY_LIVE) == NORMAL
    assert next_check_delay(LiveStreamStatus(platform="YouTube"), NORMAL, ALREADY_LIVE) == NORMAL
    assert next_check_delay(None, NORMAL, ALREADY_LIVE) == NORMAL


@pytest.mark.asyncio
async def test_scheduler_skips_checks_outside_window():
    announcer = AsyncMock()
    settings = LiveStreamSettings({"window_start_hour": 18, "window_end_hour": 23, "check_interval_minutes": 10})
    scheduler = LiveStreamScheduler(announcer, settings, ReadySignal(), now=lambda: at(9))

    assert await scheduler.tick() == 600
    announcer.check_and_announce.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduler_uses_already_live_interval():
    announcer = AsyncMock()
    announcer.get_status.return_value = LiveStreamStatus(
        platform="YouTube", current_video_id="v", is_live=True, announcement_sent=True
    )
    settings = LiveStreamSettings({"check_interval_minutes": 10, "already_live_check_interval_minutes": 30})
    scheduler = LiveStreamScheduler(announcer, settings, ReadySignal(), now=lambda: at(12))

    assert await scheduler.tick() == 1800
    announcer.check_and_announce.assert_awaited_once_with(manual_trigger=False)


# ---------------------------------------------------------------------------
# YouTube client
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_client_without_api_key_reports_offline():
    client = YouTubeLiveClient(None, channel_handle="@cult")

    result = await client.check_if_live()

    assert result.is_live is False
    assert await client.resolve_channel_url() is None


@pytest.mark.asyncio
async def test_client_parses_live_search_result():
    client = YouTubeLiveClient("key", channel_id="UC123")
    client._search = AsyncMock(return_value=[{"id": {"videoId": "vid1"}, "snippet": {"title": "Ritual night"}}])

    result = await client.check_if_live()

    assert result.is_live is True
    assert result.video_id == "vid1"
    assert result.video_url == "https://www.youtube.com/watch?v=vid1"
    client._search.assert_awaited_once_with(channelId="UC123", eventType="live", type="video")


@pytest.mark.asyncio
async def test_client_resolves_handle_once():
    client = YouTubeLiveClient("key", channel_handle="@cult")
    client._search = AsyncMock(side_effect=[
        [{"snippet": {"channelId": "UC999"}}],
        [],
        [],
    ])

    assert (await client.check_if_live()).is_live is False
    assert (await client.check_if_live()).is_live is False

    assert client._search.await_count == 3
    client._search.assert_any_await(q="cult", type="channel")
    assert await client.resolve_channel_url() == "https://www.youtube.com/@cult"


@pytest.mark.asyncio
async def test_client_network_error_is_offline():
    client = YouTubeLiveClient("key", channel_id="UC123")
    client._search = AsyncMock(side_effect=aiohttp.ClientError("connection reset"))

    assert (await client.check_if_live()).is_live is False
