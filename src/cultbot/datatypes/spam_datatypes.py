"""
Spam tracking types.

Holds the per-member sliding-window record, the score breakdown produced for
a single message, and the inputs/outputs of the bot-suspicion heuristic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List


@dataclass(slots=True)
class SpamTrackerRecord:
    """
    Sliding-window state for one (user, guild) key.

    Attributes:
        user_id: Member being tracked.
        guild_id: Guild the member posts in.
        recent_message_times: Non-decreasing timestamps inside the window as of
            the last check.
        spam_score: Score of the most recent evaluation (a snapshot).
        last_spam_check: When the last evaluation ran.
        slow_mode_active: Whether slow mode is flagged.
        slow_mode_until: Slow-mode expiry; cleared lazily once in the past.
    """

    user_id: int
    guild_id: int
    recent_message_times: List[datetime] = field(default_factory=list)
    spam_score: int = 0
    last_spam_check: datetime | None = None
    slow_mode_active: bool = False
    slow_mode_until: datetime | None = None


@dataclass(slots=True)
class SpamScore:
    """Additive spam score with the individual signals that contributed."""

    total: int = 0
    reasons: List[str] = field(default_factory=list)

    def add(self, points: int, reason: str) -> None:
        self.total += points
        self.reasons.append(f"{reason} (+{points})")


@dataclass(slots=True, frozen=True)
class MemberProfile:
    """
    What the bot-suspicion heuristic needs to know about a member.

    Attributes:
        username: Account username (not the guild nickname).
        account_created_at: Account creation time (aware UTC).
        has_default_avatar: True if no custom avatar is set.
        message_count: Messages logged for this member in the guild.
        messages_with_links: How many of those contain a link.
    """

    username: str
    account_created_at: datetime
    has_default_avatar: bool
    message_count: int = 0
    messages_with_links: int = 0


@dataclass(slots=True)
class BotSuspicion:
    score: int = 0
    reasons: List[str] = field(default_factory=list)
    likely_automated: bool = False
