"""
Pytest configuration and fixtures for CultBot tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from cultbot.configuration.bot_settings import (  # noqa: E402
    BotDetectionSettings,
    InitiationSettings,
    LiveStreamSettings,
    ProfanitySettings,
    SpamSettings,
)
from cultbot.database.db_connection import ConnectionManager  # noqa: E402
from cultbot.database.db_schema import SchemaManager  # noqa: E402


START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock handed to components as their ``now`` callable."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def connection(tmp_path):
    """Open a ConnectionManager on a temporary database with the full schema."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "test.db")
    await SchemaManager.initialize_schema(manager.connection)
    yield manager
    await manager.close()


@pytest.fixture
def spam_settings():
    return SpamSettings({})


@pytest.fixture
def profanity_settings():
    return ProfanitySettings({"terms": ["word"]})


@pytest.fixture
def bot_detection_settings():
    return BotDetectionSettings({})


@pytest.fixture
def initiation_settings():
    return InitiationSettings({"timeout_hours": 24, "expiration_check_interval_minutes": 5})


@pytest.fixture
def live_settings():
    return LiveStreamSettings({"check_interval_minutes": 10, "already_live_check_interval_minutes": 30})
