"""Type definitions for the reminder engine.

Two kinds of notification go through the engine:
- User reminders: one-shot, created from chat ("remind me to call mom at 5pm")
- Meeting nudges: derived from the calendar ("meeting in 15 min")
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from dateutil.parser import isoparse

from . import config


class ReminderKind(str, Enum):
    """What produced a notification."""
    MEETING = "meeting"
    USER = "user"


class Confidence(str, Enum):
    """How unambiguous the parsed time expression was."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    if not value:
        return None
    parsed = isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class Reminder:
    """A user-created, one-shot reminder."""
    id: str
    user_id: str
    content: str
    due_at: datetime
    created_at: datetime
    created_by: str  # agent/persona that created it
    fired: bool = False
    fired_at: Optional[datetime] = None  # set only on confirmed delivery

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "content": self.content,
            "dueAt": _to_iso(self.due_at),
            "createdAt": _to_iso(self.created_at),
            "createdBy": self.created_by,
            "fired": self.fired,
            "firedAt": _to_iso(self.fired_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Reminder":
        """Build from a stored record.

        Raises:
            KeyError, ValueError: If a required field is missing or unreadable
        """
        due_at = _from_iso(data["dueAt"])
        created_at = _from_iso(data["createdAt"])
        if due_at is None or created_at is None:
            raise ValueError(f"Reminder {data.get('id')} has no dueAt/createdAt")

        return cls(
            id=data["id"],
            user_id=str(data["userId"]),
            content=data["content"],
            due_at=due_at,
            created_at=created_at,
            created_by=data.get("createdBy", config.DEFAULT_AGENT_ID),
            fired=bool(data.get("fired", False)),
            fired_at=_from_iso(data.get("firedAt")),
        )


@dataclass
class ReminderSettings:
    """Per-user reminder settings."""
    meeting_reminder_minutes: int = config.MEETING_REMINDER_MINUTES
    enabled: bool = True  # master switch

    def to_dict(self) -> dict:
        return {
            "meetingReminderMinutes": self.meeting_reminder_minutes,
            "enabled": self.enabled,
        }

    @classmethod
    def from_dict(cls, data: dict, defaults: "ReminderSettings") -> "ReminderSettings":
        return cls(
            meeting_reminder_minutes=int(
                data.get("meetingReminderMinutes", defaults.meeting_reminder_minutes)
            ),
            enabled=bool(data.get("enabled", defaults.enabled)),
        )


@dataclass
class UserReminders:
    """Everything persisted for one user: one JSON file per user."""
    reminders: list[Reminder] = field(default_factory=list)
    settings: ReminderSettings = field(default_factory=ReminderSettings)

    def to_dict(self) -> dict:
        return {
            "reminders": [r.to_dict() for r in self.reminders],
            "settings": self.settings.to_dict(),
        }


@dataclass
class NudgeState:
    """Per-user, in-memory record of meeting nudges already sent."""
    notified_event_ids: set[str] = field(default_factory=set)
    last_check: Optional[datetime] = None


@dataclass
class CalendarEvent:
    """An upcoming calendar event, as returned by the calendar collaborator."""
    title: str
    start_time: datetime
    id: Optional[str] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = None
    conference_url: Optional[str] = None
    description: Optional[str] = None


@dataclass
class ParsedTime:
    """Result of parsing a natural language time expression."""
    date: datetime
    confidence: Confidence
    interpretation: str  # human-readable echo of what was understood


@dataclass
class ReminderEngineConfig:
    """Engine configuration. Defaults come from domains.reminders.config."""
    meeting_reminder_minutes: int = config.MEETING_REMINDER_MINUTES
    check_interval_seconds: int = config.CHECK_INTERVAL_SECONDS
    save_path: Path = config.SAVE_PATH
    timezone: str = config.TIMEZONE
    quiet_hours_start: int = config.QUIET_HOURS_START
    quiet_hours_end: int = config.QUIET_HOURS_END


# Collaborators
# on_reminder(user_id, message, kind, agent_id) - must raise if not delivered
DeliveryCallback = Callable[[str, str, ReminderKind, Optional[str]], Awaitable[Any]]
# get_upcoming_events(within_hours) - sync or async
CalendarQuery = Callable[[float], Union[list[CalendarEvent], Awaitable[list[CalendarEvent]]]]
