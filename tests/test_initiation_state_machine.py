"""
Tests for the initiation session lifecycle.
"""

import asyncio
from datetime import timedelta

import pytest

from cultbot.datatypes.session_datatypes import InitiationPath, SessionStatus
from cultbot.initiation.initiation_state_machine import DuplicatePendingSessionError, InitiationStateMachine


@pytest.fixture
def machine(connection, clock):
    return InitiationStateMachine(connection, now=clock)


@pytest.mark.asyncio
async def test_create_session_is_pending(machine, clock):
    session = await machine.create_session(42, 1000, 500, 9000)

    assert session.status is SessionStatus.PENDING
    assert session.join_time == clock.current

    stored = await machine.get_pending_session(42, 1000)
    assert stored is not None
    assert stored.id == session.id
    assert stored.ritual_message_id == 9000
    assert stored.join_time == clock.current
    assert stored.chosen_path is None


@pytest.mark.asyncio
async def test_second_pending_session_is_rejected(machine):
    await machine.create_session(42, 1000, 500, 9000)

    with pytest.raises(DuplicatePendingSessionError):
        await machine.create_session(42, 1000, 500, 9001)


@pytest.mark.asyncio
async def test_same_user_in_other_guild_is_independent(machine):
    await machine.create_session(42, 1000, 500, 9000)
    other = await machine.create_session(42, 2000, 600, 9100)

    assert other.guild_id == 2000


@pytest.mark.asyncio
async def test_concurrent_creation_yields_one_pending(machine, connection):
    results = await asyncio.gather(
        *(machine.create_session(42, 1000, 500, 9000 + i) for i in range(5)),
        return_exceptions=True,
    )

    created = [r for r in results if not isinstance(r, Exception)]
    duplicates = [r for r in results if isinstance(r, DuplicatePendingSessionError)]
    assert len(created) == 1
    assert len(duplicates) == 4

    async with connection.read() as conn:
        cursor = await conn.execute(
            "SELECT COUNT(*) FROM initiation_sessions WHERE user_id = ? AND guild_id = ? AND status = 'pending'",
            (42, 1000),
        )
        row = await cursor.fetchone()
    assert row[0] == 1


@pytest.mark.asyncio
async def test_complete_session_sets_path_and_time(machine, clock):
    session = await machine.create_session(42, 1000, 500, 9000)
    clock.advance(minutes=10)

    assert await machine.complete_session(session.id, InitiationPath.NEON_DISCIPLE) is True

    stored = await machine.get_session(session.id)
    assert stored.status is SessionStatus.COMPLETED
    assert stored.chosen_path is InitiationPath.NEON_DISCIPLE
    assert stored.completed_time == clock.current
    assert stored.expired_time is None
    assert await machine.get_pending_session(42, 1000) is None


@pytest.mark.asyncio
async def test_completion_is_idempotent(machine):
    session = await machine.create_session(42, 1000, 500, 9000)
    await machine.complete_session(session.id, InitiationPath.SILENT_WITNESS)

    assert await machine.complete_session(session.id, InitiationPath.VEILED_ARCHIVIST) is False
    stored = await machine.get_session(session.id)
    assert stored.chosen_path is InitiationPath.SILENT_WITNESS


@pytest.mark.asyncio
async def test_terminal_states_do_not_cross(machine):
    completed = await machine.create_session(42, 1000, 500, 9000)
    await machine.complete_session(completed.id, InitiationPath.SILENT_WITNESS)
    assert await machine.expire_session(completed.id) is False
    assert (await machine.get_session(completed.id)).status is SessionStatus.COMPLETED

    expired = await machine.create_session(43, 1000, 500, 9001)
    assert await machine.expire_session(expired.id) is True
    assert await machine.expire_session(expired.id) is False
    assert await machine.complete_session(expired.id, InitiationPath.NEON_DISCIPLE) is False
    stored = await machine.get_session(expired.id)
    assert stored.status is SessionStatus.EXPIRED
    assert stored.chosen_path is None
    assert stored.expired_time is not None


@pytest.mark.asyncio
async def test_unknown_session_is_a_no_op(machine):
    assert await machine.complete_session(12345, InitiationPath.SILENT_WITNESS) is False
    assert await machine.expire_session(12345) is False
    assert await machine.get_session(12345) is None


@pytest.mark.asyncio
async def test_new_session_allowed_after_resolution(machine):
    first = await machine.create_session(42, 1000, 500, 9000)
    await machine.expire_session(first.id)

    second = await machine.create_session(42, 1000, 500, 9001)
    assert second.id != first.id
    assert (await machine.get_pending_session(42, 1000)).id == second.id


@pytest.mark.asyncio
async def test_get_expired_sessions_uses_cutoff(machine, clock):
    old = await machine.create_session(1, 1000, 500, 9000)
    clock.advance(hours=23)
    recent = await machine.create_session(2, 1000, 500, 9001)
    clock.advance(hours=1, seconds=1)

    expired = await machine.get_expired_sessions(timedelta(hours=24))

    assert [s.id for s in expired] == [old.id]
    assert recent.id not in {s.id for s in expired}
    # read only: nothing changed
    assert (await machine.get_session(old.id)).status is SessionStatus.PENDING


@pytest.mark.asyncio
async def test_get_expired_sessions_skips_resolved(machine, clock):
    session = await machine.create_session(1, 1000, 500, 9000)
    await machine.complete_session(session.id, InitiationPath.SILENT_WITNESS)
    clock.advance(days=2)

    assert await machine.get_expired_sessions(timedelta(hours=24)) == []


@pytest.mark.asyncio
async def test_get_pending_user_ids(machine):
    await machine.create_session(1, 1000, 500, 9000)
    done = await machine.create_session(2, 1000, 500, 9001)
    await machine.create_session(3, 2000, 500, 9002)
    await machine.complete_session(done.id, InitiationPath.SILENT_WITNESS)

    assert await machine.get_pending_user_ids(1000) == {1}
