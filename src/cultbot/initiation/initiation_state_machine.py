"""
Initiation session lifecycle: Pending -> Completed | Expired.

The state machine is the only writer of ``initiation_sessions``. Creation runs
its existence check and insert inside one serialized write transaction, and
the partial UNIQUE index on pending sessions rejects anything that slips past
(e.g. a second process sharing the database file). Either way a duplicate is
surfaced as :class:`DuplicatePendingSessionError`.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List

import aiosqlite

from cultbot.database.db_connection import ConnectionManager, db_connection
from cultbot.datatypes.session_datatypes import InitiationPath, InitiationSession
from cultbot.repositories.initiation_session_repo import InitiationSessionRepo
from cultbot.util.logger import get_logger
from cultbot.util.time_utils import to_timestamp, utcnow

logger = get_logger("initiation_state_machine")


class DuplicatePendingSessionError(Exception):
    """Raised when a member already has a pending session in the guild."""

    def __init__(self, user_id: int, guild_id: int) -> None:
        super().__init__(f"User {user_id} already has a pending initiation session in guild {guild_id}")
        self.user_id = user_id
        self.guild_id = guild_id


class InitiationStateMachine:
    """
    Owns creation, completion, expiry and lookup of initiation sessions.

    Args:
        connection: Shared connection manager (defaults to the global one).
        now: Clock returning an aware UTC datetime; injectable for tests.
    """

    def __init__(
        self,
        connection: ConnectionManager | None = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = connection or db_connection
        self._now = now

    async def create_session(
        self,
        user_id: int,
        guild_id: int,
        ritual_channel_id: int,
        ritual_message_id: int,
    ) -> InitiationSession:
        """
        Open a new pending session stamped with the current time.

        Raises:
            DuplicatePendingSessionError: If the member already has a pending session.
        """
        join_time = self._now()
        try:
            async with self._db.transaction() as conn:
                if await InitiationSessionRepo.count_pending(conn, user_id, guild_id) > 0:
                    raise DuplicatePendingSessionError(user_id, guild_id)
                session_id = await InitiationSessionRepo.insert_pending(
                    conn,
                    user_id,
                    guild_id,
                    ritual_channel_id,
                    ritual_message_id,
                    to_timestamp(join_time),
                )
        except aiosqlite.IntegrityError as exc:
            raise DuplicatePendingSessionError(user_id, guild_id) from exc

        logger.info(
            "[INITIATION] Created session %s for user %s in guild %s",
            session_id, user_id, guild_id,
        )
        return InitiationSession(
            id=session_id,
            user_id=user_id,
            guild_id=guild_id,
            ritual_channel_id=ritual_channel_id,
            ritual_message_id=ritual_message_id,
            join_time=join_time,
        )

    async def get_pending_session(self, user_id: int, guild_id: int) -> InitiationSession | None:
        async with self._db.read() as conn:
            return await InitiationSessionRepo.get_pending(conn, user_id, guild_id)

    async def get_session(self, session_id: int) -> InitiationSession | None:
        async with self._db.read() as conn:
            return await InitiationSessionRepo.get(conn, session_id)

    async def get_expired_sessions(self, timeout: timedelta) -> List[InitiationSession]:
        """Pending sessions whose join time is older than ``now - timeout``. Read only."""
        cutoff = self._now() - timeout
        async with self._db.read() as conn:
            return await InitiationSessionRepo.get_pending_joined_before(conn, to_timestamp(cutoff))

    async def get_pending_user_ids(self, guild_id: int) -> set[int]:
        async with self._db.read() as conn:
            return await InitiationSessionRepo.get_pending_user_ids(conn, guild_id)

    async def complete_session(self, session_id: int, chosen_path: InitiationPath) -> bool:
        """
        Mark a pending session completed with the chosen path.

        Returns:
            True if the session moved to COMPLETED; False if it was missing or
            already resolved (not an error).
        """
        async with self._db.transaction() as conn:
            changed = await InitiationSessionRepo.mark_completed(
                conn, session_id, chosen_path, to_timestamp(self._now())
            )

        if changed:
            logger.info("[INITIATION] Session %s completed (path=%s)", session_id, chosen_path)
        else:
            logger.debug("[INITIATION] Session %s already resolved; completion ignored", session_id)
        return changed

    async def expire_session(self, session_id: int) -> bool:
        """Mark a pending session expired. Same no-op tolerance as :meth:`complete_session`."""
        async with self._db.transaction() as conn:
            changed = await InitiationSessionRepo.mark_expired(conn, session_id, to_timestamp(self._now()))

        if changed:
            logger.info("[INITIATION] Session %s expired", session_id)
        else:
            logger.debug("[INITIATION] Session %s already resolved; expiry ignored", session_id)
        return changed
