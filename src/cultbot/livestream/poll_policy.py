"""Polling cadence for the live-stream checker."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cultbot.datatypes.livestream_datatypes import LiveStreamStatus
from cultbot.util.logger import get_logger

logger = get_logger("poll_policy")


def _resolve_timezone(name: str):
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def is_within_check_window(now: datetime, start_hour: int, end_hour: int, tz_name: str) -> bool:
    """
    Whether ``now`` falls inside the daily check window in ``tz_name``.

    The window is ``[start_hour, end_hour)`` in local time and wraps past
    midnight when ``start_hour > end_hour``. An unknown timezone counts as
    always inside so checks keep running.
    """
    try:
        local = now.astimezone(_resolve_timezone(tz_name))
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.warning("[LIVE] Unknown timezone %r (%s); checking regardless", tz_name, exc)
        return True

    hour = local.hour + local.minute / 60 + local.second / 3600
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def next_check_delay(
    status: LiveStreamStatus | None,
    normal: timedelta,
    already_live: timedelta,
) -> timedelta:
    """Use the longer interval once the current stream is live and announced."""
    if status is not None and status.is_live and status.announcement_sent:
        return already_live
    return normal
