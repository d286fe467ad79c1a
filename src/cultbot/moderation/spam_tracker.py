"""
Spam scoring over a per-member sliding window.

The scoring itself is a set of pure functions over (window, content, history,
thresholds) so it can be tested without a database. :class:`SpamTracker`
wraps them with the load-prune-append-score-store cycle, run inside one write
transaction so concurrent messages from the same member cannot lose updates.

Signals (additive):

* frequency:  +5 when the pruned window plus this message reaches the message threshold
* repetition: +10 when the last 5 logged messages (at least 3 of them) all normalize to the same text
* links:      +3 per link when the message carries 2 or more
* gibberish:  +5 when a message over 10 chars is less than 40% alphanumeric
* length:     +3 when the message exceeds the length threshold
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import Callable, List, Sequence

from cultbot.configuration.bot_settings import BotDetectionSettings, SpamSettings
from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.datatypes.spam_datatypes import BotSuspicion, MemberProfile, SpamScore, SpamTrackerRecord
from cultbot.repositories.spam_tracker_repo import SpamTrackerRepo
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import utcnow

logger = get_logger("spam_tracker")

LINK_PATTERN = re.compile(r"https?://", re.IGNORECASE)
_MANY_DIGITS = re.compile(r"\d{4,}")
_ASCII_LETTER = re.compile(r"[a-zA-Z]")

FREQUENCY_PENALTY = 5
REPETITION_PENALTY = 10
LINK_PENALTY_PER_LINK = 3
GIBBERISH_PENALTY = 5
LENGTH_PENALTY = 3

REPETITION_LOOKBACK = 5
REPETITION_MIN_MESSAGES = 3
MIN_LINKS = 2
GIBBERISH_MIN_LENGTH = 10
GIBBERISH_MAX_RATIO = 0.4


# ==========================================
# Pure scoring helpers
# ==========================================

def prune_window(window: Sequence[datetime], now: datetime, time_window: timedelta) -> List[datetime]:
    """Return the timestamps of ``window`` that are no older than ``time_window`` at ``now``."""
    cutoff = now - time_window
    return [ts for ts in window if ts >= cutoff]


def append_timestamp(window: Sequence[datetime], timestamp: datetime) -> List[datetime]:
    """Append keeping the window non-decreasing even if the clock stepped backwards."""
    if window and timestamp < window[-1]:
        timestamp = window[-1]
    return [*window, timestamp]


def count_links(content: str) -> int:
    return len(LINK_PATTERN.findall(content))


def alphanumeric_ratio(content: str) -> float:
    if not content:
        return 0.0
    return sum(1 for ch in content if ch.isalnum()) / len(content)


def is_repetitive(recent_history: Sequence[str]) -> bool:
    """True when the latest messages (newest first, up to 5, at least 3) are all identical after normalizing."""
    latest = recent_history[:REPETITION_LOOKBACK]
    if len(latest) < REPETITION_MIN_MESSAGES:
        return False
    return len({text.strip().lower() for text in latest}) == 1


def score_message(
    window: Sequence[datetime],
    content: str,
    recent_history: Sequence[str],
    message_threshold: int,
    message_length_threshold: int,
) -> SpamScore:
    """
    Score one message.

    Args:
        window: Window after pruning and appending this message's timestamp.
        content: Message text.
        recent_history: Member's latest logged messages, newest first.
        message_threshold: Window size at which the frequency penalty applies.
        message_length_threshold: Length above which the length penalty applies.
    """
    score = SpamScore()

    if len(window) >= message_threshold:
        score.add(FREQUENCY_PENALTY, f"{len(window)} messages in window")

    if is_repetitive(recent_history):
        score.add(REPETITION_PENALTY, "repeated content")

    links = count_links(content)
    if links >= MIN_LINKS:
        score.add(LINK_PENALTY_PER_LINK * links, f"{links} links")

    if len(content) > GIBBERISH_MIN_LENGTH and alphanumeric_ratio(content) < GIBBERISH_MAX_RATIO:
        score.add(GIBBERISH_PENALTY, "gibberish")

    if len(content) > message_length_threshold:
        score.add(LENGTH_PENALTY, "long message")

    return score


def is_suspicious_username(username: str) -> bool:
    return bool(_MANY_DIGITS.search(username)) or len(username) > 25 or not _ASCII_LETTER.search(username)


def score_bot_suspicion(profile: MemberProfile, settings: BotDetectionSettings, now: datetime) -> BotSuspicion:
    """
    Heuristic "is this an automated account" score.

    +5 young account, +5 when more than ``link_ratio`` of the member's logged
    messages contain links, +2 default avatar, +3 suspicious username.
    """
    result = BotSuspicion()

    account_age = now - profile.account_created_at
    if account_age < timedelta(days=settings.account_age_days):
        result.score += 5
        result.reasons.append(f"account is {account_age.total_seconds() / 86400:.1f} days old")

    if profile.message_count > 0:
        ratio = profile.messages_with_links / profile.message_count
        if ratio > settings.link_ratio:
            result.score += 5
            result.reasons.append(f"{ratio:.0%} of messages contain links")

    if profile.has_default_avatar:
        result.score += 2
        result.reasons.append("default avatar")

    if is_suspicious_username(profile.username):
        result.score += 3
        result.reasons.append("suspicious username")

    result.likely_automated = result.score >= settings.likely_bot_score
    return result


# ==========================================
# Stateful tracker
# ==========================================

class SpamTracker:
    """
    Persistent per-member window, score snapshot and slow-mode flag.

    Args:
        settings: Spam thresholds.
        connection: Shared connection manager (defaults to the global one).
        now: Clock used for slow-mode checks; injectable for tests.
    """

    def __init__(
        self,
        settings: SpamSettings,
        connection: ConnectionManager | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self._db = connection or db_connection
        self._now = now

    @property
    def time_window(self) -> timedelta:
        return timedelta(seconds=self.settings.time_window_seconds)

    async def evaluate_message(
        self,
        user_id: int,
        guild_id: int,
        content: str,
        timestamp: datetime,
        recent_history: Sequence[str],
    ) -> int:
        """Prune, append, score and store the snapshot score. Returns the score."""
        async with self._db.transaction() as conn:
            record = await SpamTrackerRepo.get(conn, user_id, guild_id)
            if record is None:
                record = SpamTrackerRecord(user_id=user_id, guild_id=guild_id)

            window = prune_window(record.recent_message_times, timestamp, self.time_window)
            window = append_timestamp(window, timestamp)

            score = score_message(
                window,
                content,
                recent_history,
                self.settings.message_threshold,
                self.settings.message_length_threshold,
            )

            record.recent_message_times = window
            record.spam_score = score.total
            record.last_spam_check = timestamp
            await SpamTrackerRepo.upsert(conn, record)

        if score.total:
            logger.debug(
                "[SPAM] user=%s guild=%s score=%d (%s)",
                user_id, guild_id, score.total, ", ".join(score.reasons),
            )
        return score.total

    async def is_in_slow_mode(self, user_id: int, guild_id: int) -> bool:
        """True while slow mode is active; an expired flag is cleared on read."""
        now = self._now()
        async with self._db.transaction() as conn:
            record = await SpamTrackerRepo.get(conn, user_id, guild_id)
            if record is None or not record.slow_mode_active:
                return False
            if record.slow_mode_until is not None and record.slow_mode_until > now:
                return True

            record.slow_mode_active = False
            record.slow_mode_until = None
            await SpamTrackerRepo.upsert(conn, record)

        logger.debug("[SPAM] Slow mode expired for user %s in guild %s", user_id, guild_id)
        return False

    async def get_record(self, user_id: int, guild_id: int) -> SpamTrackerRecord | None:
        async with self._db.read() as conn:
            return await SpamTrackerRepo.get(conn, user_id, guild_id)
