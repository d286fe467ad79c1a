"""Live-stream status and oracle result types."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True, frozen=True)
class LiveCheckResult:
    """Answer from the external "is it live" oracle."""

    is_live: bool
    video_id: str | None = None
    video_url: str | None = None

    @classmethod
    def offline(cls) -> "LiveCheckResult":
        return cls(is_live=False)


@dataclass(slots=True)
class LiveStreamStatus:
    """
    Announcement state for one streaming platform.

    ``announcement_sent`` may only be True while ``is_live`` is True and
    ``current_video_id`` is the id that was announced.
    """

    platform: str
    current_video_id: str | None = None
    is_live: bool = False
    live_started_at: datetime | None = None
    announcement_sent: bool = False
    last_checked_at: datetime | None = None

    def reset(self) -> None:
        self.is_live = False
        self.current_video_id = None
        self.live_started_at = None
        self.announcement_sent = False
