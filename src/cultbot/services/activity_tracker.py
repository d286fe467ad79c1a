"""
Member activity bookkeeping: message log, join/leave counters, game sessions.

Everything here is best effort from the caller's point of view; the listener
cogs log failures and carry on with moderation.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable, Iterable, List, Tuple

from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.datatypes.activity_datatypes import GameActivity, MessageLogEntry, UserActivity
from cultbot.repositories.message_log_repo import MessageLogRepo
from cultbot.repositories.user_activity_repo import GameActivityRepo, UserActivityRepo
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import to_timestamp, utcnow

logger = get_logger("activity_tracker")

MENTION_PREFIX = "[Mentioned] "


class ActivityTracker:
    """
    Writes per-member activity rows.

    Args:
        connection: Shared connection manager (defaults to the global one).
        tracked_games: Lower-case game names whose mention in chat is recorded.
        now: Clock; injectable for tests.
    """

    def __init__(
        self,
        connection: ConnectionManager | None = None,
        tracked_games: Iterable[str] = (),
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = connection or db_connection
        self._now = now
        self._game_patterns = [
            (game, re.compile(rf"\b{re.escape(game.lower())}\b")) for game in tracked_games if game.strip()
        ]

    def mentioned_games(self, content: str) -> List[str]:
        text = content.lower()
        return [game for game, pattern in self._game_patterns if pattern.search(text)]

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def track_message(
        self,
        user_id: int,
        guild_id: int,
        channel_id: int,
        username: str,
        content: str,
    ) -> None:
        """Log the message, bump counters and record tracked-game mentions."""
        now = self._now()
        async with self._db.transaction() as conn:
            await MessageLogRepo.insert(
                conn,
                MessageLogEntry(user_id=user_id, guild_id=guild_id, channel_id=channel_id, content=content, timestamp=now),
            )

            activity = await UserActivityRepo.get_or_new(conn, user_id, guild_id, username, now)
            activity.total_message_count += 1
            activity.last_message_time = now
            activity.username = username
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)

            for game in self.mentioned_games(content):
                await GameActivityRepo.insert(
                    conn,
                    GameActivity(
                        user_id=user_id,
                        guild_id=guild_id,
                        game_name=f"{MENTION_PREFIX}{game}",
                        started_at=now,
                        ended_at=now,
                        duration_seconds=0.0,
                    ),
                )

    async def log_flagged_message(
        self,
        user_id: int,
        guild_id: int,
        channel_id: int,
        content: str,
        flag_reason: str,
    ) -> None:
        """Record a message that was removed by a filter."""
        async with self._db.transaction() as conn:
            await MessageLogRepo.insert(
                conn,
                MessageLogEntry(
                    user_id=user_id,
                    guild_id=guild_id,
                    channel_id=channel_id,
                    content=content,
                    timestamp=self._now(),
                    was_deleted=True,
                    was_flagged=True,
                    flag_reason=flag_reason,
                ),
            )

    async def recent_contents(self, user_id: int, guild_id: int, limit: int = 5) -> List[str]:
        """Latest logged message texts for the member, newest first."""
        async with self._db.read() as conn:
            entries = await MessageLogRepo.get_recent(conn, user_id, guild_id, limit)
        return [entry.content for entry in entries]

    async def link_stats(self, user_id: int, guild_id: int) -> Tuple[int, int]:
        async with self._db.read() as conn:
            return await MessageLogRepo.get_link_stats(conn, user_id, guild_id)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def track_join(self, user_id: int, guild_id: int, username: str) -> UserActivity:
        now = self._now()
        async with self._db.transaction() as conn:
            activity = await UserActivityRepo.get_or_new(conn, user_id, guild_id, username, now)
            activity.joined_at = now
            activity.left_at = None
            activity.join_count += 1
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)

        logger.info("[ACTIVITY] Tracked join: %s (total joins: %d)", username, activity.join_count)
        return activity

    async def track_leave(self, user_id: int, guild_id: int) -> bool:
        """Stamp a leave for a known member. Unknown members are ignored."""
        now = self._now()
        async with self._db.transaction() as conn:
            activity = await UserActivityRepo.get(conn, user_id, guild_id)
            if activity is None:
                return False
            activity.left_at = now
            activity.leave_count += 1
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)

        logger.info("[ACTIVITY] Tracked leave: %s (total leaves: %d)", activity.username, activity.leave_count)
        return True

    # ------------------------------------------------------------------
    # Games
    # ------------------------------------------------------------------

    async def track_game_start(self, user_id: int, guild_id: int, username: str, game_name: str) -> None:
        """Open a play session, closing the previous one if the member switched games."""
        now = self._now()
        async with self._db.transaction() as conn:
            activity = await UserActivityRepo.get_or_new(conn, user_id, guild_id, username, now)
            if activity.current_game == game_name:
                return

            if activity.current_game:
                await GameActivityRepo.close_open_session(
                    conn, user_id, guild_id, activity.current_game, to_timestamp(now)
                )

            activity.current_game = game_name
            activity.game_started_at = now
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)
            await GameActivityRepo.insert(
                conn,
                GameActivity(user_id=user_id, guild_id=guild_id, game_name=game_name, started_at=now),
            )

        logger.debug("[ACTIVITY] %s started playing %s", username, game_name)

    async def end_game_session(self, user_id: int, guild_id: int) -> None:
        now = self._now()
        async with self._db.transaction() as conn:
            activity = await UserActivityRepo.get(conn, user_id, guild_id)
            if activity is None or not activity.current_game:
                return

            await GameActivityRepo.close_open_session(
                conn, user_id, guild_id, activity.current_game, to_timestamp(now)
            )
            game = activity.current_game
            activity.current_game = None
            activity.game_started_at = None
            activity.last_updated = now
            await UserActivityRepo.upsert(conn, activity)

        logger.debug("[ACTIVITY] %s stopped playing %s", activity.username, game)
