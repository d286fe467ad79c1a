"""
CultBot's application configuration (``config/app_config.yml``).

Channel and role ids, initiation timing, spam and bot-detection thresholds,
the disallowed-term list and live-stream polling all live in this one YAML
file. Each top-level section is exposed as a typed view from
:mod:`cultbot.configuration.bot_settings`; a missing or malformed file
leaves every setting at its default.
"""

from __future__ import annotations

import fcntl
from pathlib import Path
from typing import Any, Dict, List

import yaml

from cultbot.configuration.bot_settings import (
    BotDetectionSettings,
    DiscordIds,
    InitiationSettings,
    LiveStreamSettings,
    ProfanitySettings,
    SpamSettings,
)
from cultbot.util.logger import get_logger

logger = get_logger("app_configuration")

CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_TRACKED_GAMES = [
    "valorant", "league of legends", "minecraft", "fortnite",
    "apex legends", "overwatch", "csgo", "cs2", "dota",
    "gta", "cod", "warzone", "destiny", "rust",
]


def read_yaml_mapping(path: Path) -> Dict[str, Any]:
    """Parse ``path`` under a shared lock so a concurrent editor never hands us half a file."""
    with path.open("r", encoding="utf-8") as handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
        try:
            loaded = yaml.safe_load(handle)
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    return loaded if isinstance(loaded, dict) else {}


class AppConfig:
    """Cached view of the configuration file; call :meth:`reload` after editing it."""

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    def reload(self) -> Dict[str, Any]:
        try:
            self._data = read_yaml_mapping(self.config_path)
        except FileNotFoundError:
            logger.warning("[APP CONFIGURATION] %s does not exist; using defaults", self.config_path)
            self._data = {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Could not read %s, using defaults: %s", self.config_path, exc)
            self._data = {}
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        return self._data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key)
        return value if isinstance(value, dict) else {}

    @property
    def discord(self) -> DiscordIds:
        return DiscordIds(self._section("discord"))

    @property
    def initiation(self) -> InitiationSettings:
        return InitiationSettings(self._section("initiation"))

    @property
    def spam(self) -> SpamSettings:
        return SpamSettings(self._section("spam"))

    @property
    def bot_detection(self) -> BotDetectionSettings:
        return BotDetectionSettings(self._section("bot_detection"))

    @property
    def profanity(self) -> ProfanitySettings:
        return ProfanitySettings(self._section("profanity"))

    @property
    def live_stream(self) -> LiveStreamSettings:
        return LiveStreamSettings(self._section("live_stream"))

    @property
    def tracked_games(self) -> List[str]:
        """Lower-cased games whose mention in chat counts as game activity."""
        games = self._data.get("tracked_games")
        if not isinstance(games, list):
            return list(DEFAULT_TRACKED_GAMES)
        return [str(game).strip().lower() for game in games if str(game).strip()]


app_config = AppConfig(CONFIG_PATH)
