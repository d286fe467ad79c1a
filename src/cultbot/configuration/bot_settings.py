"""Typed accessors for the sections of ``app_config.yml``.

Each helper wraps the raw mapping for one section and exposes the fields the
bot reads as properties with the defaults the bot shipped with. Values are
coerced on access so a hand-edited YAML file with quoted numbers still works.
"""

from datetime import timedelta
from typing import Any, Dict, List


class _Section:
    """Common base: a raw mapping plus ``get``/``as_dict``."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    def _int(self, key: str, default: int) -> int:
        try:
            return int(self.data.get(key, default))
        except (TypeError, ValueError):
            return default

    def _float(self, key: str, default: float) -> float:
        try:
            return float(self.data.get(key, default))
        except (TypeError, ValueError):
            return default


class DiscordIds(_Section):
    """Channel and role snowflakes plus the ritual GIFs."""

    @property
    def gateway_channel_id(self) -> int:
        return self._int("gateway_channel_id", 0)

    @property
    def ritual_channel_id(self) -> int:
        return self._int("ritual_channel_id", 0)

    @property
    def mod_log_channel_id(self) -> int:
        return self._int("mod_log_channel_id", 0)

    @property
    def uninitiated_role_id(self) -> int:
        return self._int("uninitiated_role_id", 0)

    @property
    def path_role_ids(self) -> Dict[str, int]:
        """Map of initiation path value (e.g. ``silent_witness``) to role id."""
        roles = self.data.get("path_roles", {})
        if not isinstance(roles, dict):
            return {}
        result: Dict[str, int] = {}
        for key, value in roles.items():
            try:
                result[str(key)] = int(value)
            except (TypeError, ValueError):
                continue
        return result

    @property
    def path_gif_urls(self) -> Dict[str, str]:
        gifs = self.data.get("path_gifs", {})
        if not isinstance(gifs, dict):
            return {}
        return {str(k): str(v) for k, v in gifs.items() if v}


class InitiationSettings(_Section):
    @property
    def timeout_hours(self) -> int:
        return self._int("timeout_hours", 24)

    @property
    def timeout(self) -> timedelta:
        return timedelta(hours=self.timeout_hours)

    @property
    def expiration_check_interval_minutes(self) -> float:
        return self._float("expiration_check_interval_minutes", 5.0)

    @property
    def recovery_max_join_age_days(self) -> int:
        """Members who joined longer ago than this are left out of recovery (0 disables the cutoff)."""
        return self._int("recovery_max_join_age_days", 7)


class SpamSettings(_Section):
    @property
    def message_threshold(self) -> int:
        return self._int("message_threshold", 5)

    @property
    def time_window_seconds(self) -> int:
        return self._int("time_window_seconds", 10)

    @property
    def score_threshold(self) -> int:
        return self._int("score_threshold", 15)

    @property
    def ban_threshold(self) -> int:
        return self._int("ban_threshold", 25)

    @property
    def slow_mode_minutes(self) -> int:
        return self._int("slow_mode_minutes", 5)

    @property
    def message_length_threshold(self) -> int:
        return self._int("message_length_threshold", 200)


class BotDetectionSettings(_Section):
    @property
    def account_age_days(self) -> int:
        return self._int("account_age_days", 7)

    @property
    def link_ratio(self) -> float:
        """Share of a user's logged messages containing links above which they look automated."""
        return self._float("link_ratio", 0.5)

    @property
    def likely_bot_score(self) -> int:
        return self._int("likely_bot_score", 10)


class ProfanitySettings(_Section):
    @property
    def terms(self) -> List[str]:
        raw = self.data.get("terms", [])
        if not isinstance(raw, list):
            return []
        return [str(term) for term in raw if str(term).strip()]

    @property
    def repeat_offense_slow_mode_minutes(self) -> int:
        return self._int("repeat_offense_slow_mode_minutes", 30)


class LiveStreamSettings(_Section):
    @property
    def platform(self) -> str:
        return str(self.data.get("platform", "YouTube"))

    @property
    def channel_handle(self) -> str:
        return str(self.data.get("youtube_channel_handle", "") or "")

    @property
    def channel_id(self) -> str:
        return str(self.data.get("youtube_channel_id", "") or "")

    @property
    def transmissions_channel_id(self) -> int:
        return self._int("transmissions_channel_id", 0)

    @property
    def check_interval_minutes(self) -> float:
        return self._float("check_interval_minutes", 10.0)

    @property
    def already_live_check_interval_minutes(self) -> float:
        return self._float("already_live_check_interval_minutes", 30.0)

    @property
    def window_start_hour(self) -> int:
        return self._int("window_start_hour", 0)

    @property
    def window_end_hour(self) -> int:
        return self._int("window_end_hour", 24)

    @property
    def timezone(self) -> str:
        return str(self.data.get("timezone", "UTC") or "UTC")

    @property
    def initial_delay_seconds(self) -> float:
        return self._float("initial_delay_seconds", 30.0)
