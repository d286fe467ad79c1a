"""
Moderation types: offense log entries, profanity hits and sanctions.

This module defines the closed enumerations used by the offense log and the
escalation policy, along with the immutable records passed between the
detectors, the policy and the sanction executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


class ModerationActionType(Enum):
    """Kinds of entries in the append-only offense log."""

    WARNING = "warning"
    SLOW_MODE = "slow_mode"
    BAN = "ban"
    MESSAGE_DELETED = "message_deleted"

    def __str__(self) -> str:
        return self.value


class ProfanityCategory(Enum):
    """Category attached to profanity-driven deletions; offenses are counted per category."""

    RACIAL_SLUR = "racial_slur"

    def __str__(self) -> str:
        return self.value

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").capitalize()


class MatchKind(Enum):
    EXACT = "exact"
    OBFUSCATED = "obfuscated"

    def __str__(self) -> str:
        return self.value


class SanctionKind(Enum):
    """What the escalation policy asks the orchestrator to do."""

    WARN = "warn"
    SLOW_MODE = "slow_mode"
    BAN = "ban"

    def __str__(self) -> str:
        return self.value

    @property
    def log_action(self) -> ModerationActionType:
        return _SANCTION_LOG_ACTIONS[self]


_SANCTION_LOG_ACTIONS = {
    SanctionKind.WARN: ModerationActionType.WARNING,
    SanctionKind.SLOW_MODE: ModerationActionType.SLOW_MODE,
    SanctionKind.BAN: ModerationActionType.BAN,
}


@dataclass(slots=True, frozen=True)
class ModerationRecord:
    """
    One immutable offense log entry.

    Attributes:
        user_id: Member the action targeted.
        guild_id: Guild the action happened in.
        action: Kind of action.
        reason: Human-readable reason.
        timestamp: When the action was recorded (aware UTC).
        is_automated: True for actions taken by the bot itself.
        moderator_id: Acting moderator for manual actions, otherwise None.
        category: Profanity category for message deletions from the filter.
        id: Row id once persisted.
    """

    user_id: int
    guild_id: int
    action: ModerationActionType
    reason: str
    timestamp: datetime
    is_automated: bool = True
    moderator_id: int | None = None
    category: ProfanityCategory | None = None
    id: int | None = None


@dataclass(slots=True, frozen=True)
class ProfanityMatch:
    """First disallowed term found in a message and how it matched."""

    term: str
    kind: MatchKind
    category: ProfanityCategory = ProfanityCategory.RACIAL_SLUR

    @property
    def description(self) -> str:
        if self.kind is MatchKind.OBFUSCATED:
            return f"{self.category.label} (obfuscated)"
        return self.category.label


@dataclass(slots=True, frozen=True)
class Sanction:
    """
    A single sanction instruction.

    Attributes:
        kind: Warning, slow mode or ban.
        reason: Text recorded in the offense log and shown to the member.
        duration_minutes: Slow-mode length; zero for other kinds.
    """

    kind: SanctionKind
    reason: str
    duration_minutes: int = 0


@dataclass(slots=True)
class SanctionOutcome:
    """What the executor managed to do for one batch of sanctions."""

    recorded: List[Sanction] = field(default_factory=list)
    failed: List[Sanction] = field(default_factory=list)
    notified: bool = False

    @property
    def banned(self) -> bool:
        return any(s.kind is SanctionKind.BAN for s in self.recorded)
