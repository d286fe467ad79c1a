"""
Initiation session types.

A session is one member's onboarding attempt, from joining the guild to
either choosing a path (completed) or running out of time (expired).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SessionStatus(Enum):
    """Lifecycle state of an initiation session. Only PENDING is non-terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value


class InitiationPath(Enum):
    """The three paths a new member can choose during the ritual."""

    SILENT_WITNESS = "silent_witness"
    NEON_DISCIPLE = "neon_disciple"
    VEILED_ARCHIVIST = "veiled_archivist"

    def __str__(self) -> str:
        return self.value

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def button_custom_id(self) -> str:
        return f"ritual_button_{self.value}"

    @classmethod
    def from_custom_id(cls, custom_id: str | None) -> "InitiationPath | None":
        """Resolve a ritual button custom id back to its path, or None."""
        for path in cls:
            if path.button_custom_id == custom_id:
                return path
        return None


PATH_DESCRIPTIONS = {
    InitiationPath.SILENT_WITNESS: "for those who watch from the shadows.",
    InitiationPath.NEON_DISCIPLE: "for those who challenge themselves in digital arenas.",
    InitiationPath.VEILED_ARCHIVIST: "for those who seek stories, lore, and horror.",
}


@dataclass(slots=True)
class InitiationSession:
    """
    Persisted record of an onboarding attempt.

    Attributes:
        id: Database row id.
        user_id: Member being initiated.
        guild_id: Guild the member joined.
        ritual_channel_id: Channel holding the ritual message.
        ritual_message_id: Message carrying the path buttons.
        join_time: When the session was opened (aware UTC).
        status: Current lifecycle state.
        chosen_path: Path picked by the member, only set once completed.
        completed_time: Completion stamp, only set once completed.
        expired_time: Expiry stamp, only set once expired.
    """

    id: int
    user_id: int
    guild_id: int
    ritual_channel_id: int
    ritual_message_id: int
    join_time: datetime
    status: SessionStatus = SessionStatus.PENDING
    chosen_path: InitiationPath | None = None
    completed_time: datetime | None = None
    expired_time: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is SessionStatus.PENDING


@dataclass(slots=True, frozen=True)
class MemberSnapshot:
    """Point-in-time view of a guild member used by the recovery pass."""

    user_id: int
    guild_id: int
    joined_at: datetime | None = None
    is_bot: bool = False


@dataclass(slots=True, frozen=True)
class RecoveryAction:
    """Instruction to open a fresh session and (re-)send the ritual to a member."""

    user_id: int
    guild_id: int
    reason: str = "Missing pending initiation session"
