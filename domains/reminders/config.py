"""Reminder engine configuration - defaults, overridable via environment."""

import os
from pathlib import Path
from typing import Final

# Calendar nudges: minutes before a meeting to send the heads-up
MEETING_REMINDER_MINUTES: Final[int] = int(os.getenv("MEETING_REMINDER_MINUTES", "15"))

# How often the engine ticks
CHECK_INTERVAL_SECONDS: Final[int] = int(os.getenv("REMINDER_CHECK_INTERVAL_SECONDS", "60"))

# One JSON file per user lives here
SAVE_PATH: Final[Path] = Path(
    os.getenv("REMINDER_SAVE_PATH", str(Path.home() / ".nudgebot" / "reminders"))
)

# IANA name, only used for hour-of-day arithmetic
TIMEZONE: Final[str] = os.getenv("REMINDER_TIMEZONE", "UTC")

# Quiet hours (no user reminders; meeting nudges still fire)
QUIET_HOURS_START: Final[int] = int(os.getenv("QUIET_HOURS_START", "22"))  # 10pm
QUIET_HOURS_END: Final[int] = int(os.getenv("QUIET_HOURS_END", "8"))       # 8am

# Startup batching: reminders overdue by more than this are "very overdue"
OVERDUE_BATCH_MINUTES: Final[int] = 5

# Calendar window queried each tick
CALENDAR_LOOKAHEAD_HOURS: Final[int] = 1
CALENDAR_TIMEOUT_SECONDS: Final[float] = 10

# Fired reminders older than this are dropped by the retention pass
RETENTION_DAYS: Final[int] = int(os.getenv("REMINDER_RETENTION_DAYS", "7"))

# Persona credited with engine-generated messages (batches, meeting nudges)
DEFAULT_AGENT_ID: Final[str] = os.getenv("REMINDER_DEFAULT_AGENT", "assistant")

# Time used when the parser cannot make sense of the input
DEFAULT_DELAY_MINUTES: Final[int] = 60
