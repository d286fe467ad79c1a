"""
Tests for the onboarding recovery pass.
"""

from datetime import datetime, timedelta, timezone

from cultbot.datatypes.session_datatypes import MemberSnapshot, RecoveryAction
from cultbot.initiation.reconciliation import reconcile_membership

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def snapshot(user_id, guild_id=1000, joined_days_ago=None, is_bot=False):
    joined_at = None if joined_days_ago is None else NOW - timedelta(days=joined_days_ago)
    return MemberSnapshot(user_id=user_id, guild_id=guild_id, joined_at=joined_at, is_bot=is_bot)


def test_members_without_pending_session_are_recovered():
    actions = reconcile_membership([snapshot(1), snapshot(2)], set(), NOW)

    assert actions == [RecoveryAction(1, 1000), RecoveryAction(2, 1000)]


def test_members_with_pending_session_are_skipped():
    actions = reconcile_membership([snapshot(1), snapshot(2)], {(1, 1000)}, NOW)

    assert [a.user_id for a in actions] == [2]


def test_pending_in_other_guild_does_not_count():
    actions = reconcile_membership([snapshot(1, guild_id=1000)], {(1, 2000)}, NOW)

    assert [a.user_id for a in actions] == [1]


def test_bots_are_skipped():
    assert reconcile_membership([snapshot(1, is_bot=True)], set(), NOW) == []


def test_duplicate_snapshots_yield_one_action():
    actions = reconcile_membership([snapshot(1), snapshot(1)], set(), NOW)

    assert len(actions) == 1


def test_join_age_cutoff():
    members = [snapshot(1, joined_days_ago=1), snapshot(2, joined_days_ago=30), snapshot(3)]

    actions = reconcile_membership(members, set(), NOW, timedelta(days=7))

    # unknown join time is still recovered
    assert [a.user_id for a in actions] == [1, 3]


def test_non_positive_cutoff_disables_age_filter():
    members = [snapshot(1, joined_days_ago=365)]

    assert len(reconcile_membership(members, set(), NOW, timedelta(0))) == 1
    assert len(reconcile_membership(members, set(), NOW, None)) == 1


def test_pass_is_deterministic():
    members = [snapshot(3), snapshot(1), snapshot(2)]

    first = reconcile_membership(members, {(1, 1000)}, NOW)
    second = reconcile_membership(members, {(1, 1000)}, NOW)

    assert first == second
    assert [a.user_id for a in first] == [3, 2]
