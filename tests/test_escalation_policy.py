"""
Tests for the escalation policy.
"""

from unittest.mock import AsyncMock

import pytest

from cultbot.configuration.bot_settings import ProfanitySettings, SpamSettings
from cultbot.datatypes.moderation_datatypes import ProfanityCategory, Sanction, SanctionKind
from cultbot.moderation.escalation_policy import (
    BOT_SPAM_BAN_REASON,
    PROFANITY_FINAL_WARNING_REASON,
    SPAM_WARNING_REASON,
    EscalationPolicy,
)

CATEGORY = ProfanityCategory.RACIAL_SLUR


@pytest.fixture
def policy():
    return EscalationPolicy(SpamSettings({}), ProfanitySettings({}))


# ---------------------------------------------------------------------------
# Spam
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_low_score_has_no_sanctions(policy):
    is_bot = AsyncMock(return_value=True)

    assert await policy.for_spam(14, is_bot) == []
    is_bot.assert_not_awaited()


@pytest.mark.asyncio
async def test_score_threshold_applies_slow_mode_then_warning(policy):
    sanctions = await policy.for_spam(15, AsyncMock(return_value=False))

    assert [s.kind for s in sanctions] == [SanctionKind.SLOW_MODE, SanctionKind.WARN]
    assert sanctions[0].duration_minutes == 5
    assert sanctions[1].reason == SPAM_WARNING_REASON


@pytest.mark.asyncio
async def test_ban_threshold_with_likely_bot_bans(policy):
    sanctions = await policy.for_spam(25, AsyncMock(return_value=True))

    assert sanctions == [Sanction(SanctionKind.BAN, BOT_SPAM_BAN_REASON)]


@pytest.mark.asyncio
async def test_ban_threshold_without_bot_signal_falls_back_to_slow_mode(policy):
    is_bot = AsyncMock(return_value=False)

    sanctions = await policy.for_spam(30, is_bot)

    is_bot.assert_awaited_once()
    assert [s.kind for s in sanctions] == [SanctionKind.SLOW_MODE, SanctionKind.WARN]


@pytest.mark.asyncio
async def test_bot_check_only_runs_at_ban_threshold(policy):
    is_bot = AsyncMock(return_value=True)

    await policy.for_spam(24, is_bot)

    is_bot.assert_not_awaited()


@pytest.mark.asyncio
async def test_thresholds_come_from_settings():
    policy = EscalationPolicy(
        SpamSettings({"score_threshold": 5, "ban_threshold": 8, "slow_mode_minutes": 2}),
        ProfanitySettings({}),
    )

    slowed = await policy.for_spam(5, AsyncMock(return_value=True))
    banned = await policy.for_spam(8, AsyncMock(return_value=True))

    assert slowed[0].duration_minutes == 2
    assert banned[0].kind is SanctionKind.BAN


# ---------------------------------------------------------------------------
# Profanity
# ---------------------------------------------------------------------------

def test_first_offense_warns(policy):
    sanctions = policy.for_profanity(1, CATEGORY)

    assert [s.kind for s in sanctions] == [SanctionKind.WARN]
    assert "Racial slur" in sanctions[0].reason


def test_second_offense_final_warning_and_slow_mode(policy):
    sanctions = policy.for_profanity(2, CATEGORY)

    assert sanctions == [
        Sanction(SanctionKind.WARN, PROFANITY_FINAL_WARNING_REASON),
        Sanction(SanctionKind.SLOW_MODE, "Slow mode applied for 30 minutes", 30),
    ]


@pytest.mark.parametrize("count", [3, 4, 10])
def test_third_and_later_offenses_ban(policy, count):
    sanctions = policy.for_profanity(count, CATEGORY)

    assert [s.kind for s in sanctions] == [SanctionKind.BAN]
    assert sanctions[0].reason == "Banned for repeated violations: Racial slur"


def test_no_offense_no_sanction(policy):
    assert policy.for_profanity(0, CATEGORY) == []
