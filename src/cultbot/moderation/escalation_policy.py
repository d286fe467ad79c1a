"""
Turns spam scores and profanity offense counts into sanction instructions.

The policy only decides; recording and applying the sanctions is the job of
:class:`cultbot.moderation.sanction_executor.SanctionExecutor`.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List

from cultbot.configuration.bot_settings import ProfanitySettings, SpamSettings
from cultbot.datatypes.moderation_datatypes import ProfanityCategory, Sanction, SanctionKind

SPAM_WARNING_REASON = "Spam detected. Slow mode applied. Please avoid rapid/repeated messages."
BOT_SPAM_BAN_REASON = "Automated ban: Bot spam detected"
PROFANITY_FINAL_WARNING_REASON = "Final warning: Repeated use of inappropriate language. Slow mode applied."


def profanity_warning_reason(category: ProfanityCategory) -> str:
    return f"Use of inappropriate language ({category.label}) is not allowed."


def profanity_ban_reason(category: ProfanityCategory) -> str:
    return f"Banned for repeated violations: {category.label}"


class EscalationPolicy:
    """
    Maps offenses to ordered lists of :class:`Sanction`.

    Args:
        spam: Thresholds and slow-mode length for spam.
        profanity: Slow-mode length for a repeat profanity offense.
    """

    def __init__(self, spam: SpamSettings, profanity: ProfanitySettings) -> None:
        self.spam = spam
        self.profanity = profanity

    async def for_spam(self, score: int, is_likely_bot: Callable[[], Awaitable[bool]]) -> List[Sanction]:
        """
        Sanctions for a spam score.

        ``is_likely_bot`` is only awaited once the ban threshold is reached, so
        the bot-suspicion lookups run for high scores alone.
        """
        if score >= self.spam.ban_threshold and await is_likely_bot():
            return [Sanction(SanctionKind.BAN, BOT_SPAM_BAN_REASON)]

        if score >= self.spam.score_threshold:
            return [
                Sanction(SanctionKind.SLOW_MODE, f"Slow mode applied for {self.spam.slow_mode_minutes} minutes",
                         self.spam.slow_mode_minutes),
                Sanction(SanctionKind.WARN, SPAM_WARNING_REASON),
            ]

        return []

    def for_profanity(self, offense_count: int, category: ProfanityCategory) -> List[Sanction]:
        """
        Sanctions for the ``offense_count``-th profanity offense in ``category``.

        The count includes the offense being handled: 1 warns, 2 warns and
        applies slow mode, 3 or more bans.
        """
        if offense_count <= 0:
            return []

        if offense_count == 1:
            return [Sanction(SanctionKind.WARN, profanity_warning_reason(category))]

        if offense_count == 2:
            minutes = self.profanity.repeat_offense_slow_mode_minutes
            return [
                Sanction(SanctionKind.WARN, PROFANITY_FINAL_WARNING_REASON),
                Sanction(SanctionKind.SLOW_MODE, f"Slow mode applied for {minutes} minutes", minutes),
            ]

        return [Sanction(SanctionKind.BAN, profanity_ban_reason(category))]
