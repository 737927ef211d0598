"""Pytest configuration and fixtures."""

import os
import sys
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from domains.reminders.engine import ReminderEngine
from domains.reminders.store import ReminderStorage
from domains.reminders.types import ReminderEngineConfig

# Midday, well outside the default 22:00-08:00 quiet hours
NOON = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock for the engine."""

    def __init__(self, now: datetime = NOON):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(tmp_path):
    """Reminder storage in a fresh temp directory."""
    return ReminderStorage(tmp_path / "reminders")


@pytest.fixture
def delivery():
    """Delivery callback that records every message."""
    return AsyncMock(return_value=None)


@pytest.fixture
def engine_config(tmp_path):
    return ReminderEngineConfig(
        meeting_reminder_minutes=15,
        check_interval_seconds=60,
        save_path=tmp_path / "reminders",
        timezone="UTC",
        quiet_hours_start=22,
        quiet_hours_end=8,
    )


@pytest.fixture
def make_engine(engine_config, storage, delivery, clock):
    """Build an engine wired to the temp storage, mock delivery and fake clock."""

    def _make(events=None, **overrides) -> ReminderEngine:
        kwargs = dict(
            on_reminder=delivery,
            get_upcoming_events=events,
            engine_config=engine_config,
            storage=storage,
            clock=clock,
        )
        kwargs.update(overrides)
        return ReminderEngine(**kwargs)

    return _make
