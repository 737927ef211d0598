"""Global configuration for the reminder bot."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Discord
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

# Channel to post reminders in (mentions the user). 0 = send as direct message
REMINDER_CHANNEL_ID = int(os.getenv("REMINDER_CHANNEL_ID", "0") or 0)

# Users registered with the engine at startup, on top of those with saved reminders
REMINDER_USER_IDS = [
    uid.strip() for uid in os.getenv("REMINDER_USER_IDS", "").split(",") if uid.strip()
]

# Calendar API (Google Calendar proxy). Meeting nudges are off when unset
CALENDAR_API_BASE = os.getenv("CALENDAR_API_BASE")

# Logging
LOG_DIR = Path(os.getenv("LOCALAPPDATA", ".")) / "nudgebot" / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_RETENTION_DAYS = int(os.getenv("LOG_RETENTION_DAYS", "14"))
