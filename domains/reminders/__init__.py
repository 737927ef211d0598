"""Reminders: user-created one-off reminders and calendar meeting nudges.

A single ReminderEngine ticks on an APScheduler interval job, with
per-user JSON file persistence.
"""

from .types import (
    CalendarEvent,
    Confidence,
    NudgeState,
    ParsedTime,
    Reminder,
    ReminderEngineConfig,
    ReminderKind,
    ReminderSettings,
    UserReminders,
)
from .time_parser import parse_reminder_time
from .formatting import format_reminder_time
from .store import ReminderStorage
from .engine import ReminderEngine
from .calendar import HttpCalendarSource
from .delivery import DeliveryError, DiscordDelivery
from .handler import handle_reminder_intent

__all__ = [
    "CalendarEvent",
    "Confidence",
    "NudgeState",
    "ParsedTime",
    "Reminder",
    "ReminderEngineConfig",
    "ReminderKind",
    "ReminderSettings",
    "UserReminders",
    "parse_reminder_time",
    "format_reminder_time",
    "ReminderStorage",
    "ReminderEngine",
    "HttpCalendarSource",
    "DeliveryError",
    "DiscordDelivery",
    "handle_reminder_intent",
]
