"""Member activity records: message log, per-member counters and game sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class MessageLogEntry:
    user_id: int
    guild_id: int
    channel_id: int
    content: str
    timestamp: datetime
    was_deleted: bool = False
    was_flagged: bool = False
    flag_reason: str | None = None


@dataclass(slots=True)
class UserActivity:
    """Aggregated counters for one (user, guild) key."""

    user_id: int
    guild_id: int
    username: str = ""
    total_message_count: int = 0
    first_seen_at: datetime | None = None
    last_message_time: datetime | None = None
    joined_at: datetime | None = None
    left_at: datetime | None = None
    join_count: int = 0
    leave_count: int = 0
    warning_count: int = 0
    slow_mode_count: int = 0
    is_banned: bool = False
    current_game: str | None = None
    game_started_at: datetime | None = None
    last_updated: datetime | None = None


@dataclass(slots=True, frozen=True)
class GameActivity:
    user_id: int
    guild_id: int
    game_name: str
    started_at: datetime
    ended_at: datetime | None = None
    duration_seconds: float | None = None
