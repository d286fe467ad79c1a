"""
Crash recovery for onboarding.

After a restart some members may still carry the Uninitiated role while no
pending session exists for them (the process died between assigning the role
and creating the session, or the database was restored). Such members would
never expire and never get a ritual message. The reconciliation pass compares
a snapshot of those members against the pending-session keys and returns the
members that need a fresh session and ritual.

The pass is pure: it does no I/O and running it twice on the same snapshot
yields the same actions.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Set, Tuple

from cultbot.datatypes.session_datatypes import MemberSnapshot, RecoveryAction


def reconcile_membership(
    members_lacking_completion: Iterable[MemberSnapshot],
    members_with_pending: Set[Tuple[int, int]],
    now: datetime,
    max_join_age: timedelta | None = None,
) -> List[RecoveryAction]:
    """
    Work out which members need a new pending session.

    Args:
        members_lacking_completion: Members that have not finished initiation
            (e.g. everyone holding the Uninitiated role).
        members_with_pending: ``(user_id, guild_id)`` keys that already have a
            pending session.
        now: Reference time for the join-age cutoff.
        max_join_age: Members who joined longer ago than this are skipped.
            ``None`` or a non-positive value disables the cutoff.

    Returns:
        One :class:`RecoveryAction` per member to recover, in input order.
    """
    cutoff = None
    if max_join_age is not None and max_join_age > timedelta(0):
        cutoff = now - max_join_age

    actions: List[RecoveryAction] = []
    seen: Set[Tuple[int, int]] = set()

    for member in members_lacking_completion:
        key = (member.user_id, member.guild_id)
        if member.is_bot or key in members_with_pending or key in seen:
            continue
        if cutoff is not None and member.joined_at is not None and member.joined_at < cutoff:
            continue

        seen.add(key)
        actions.append(RecoveryAction(user_id=member.user_id, guild_id=member.guild_id))

    return actions
