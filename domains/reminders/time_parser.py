"""Parse natural language time expressions into concrete due times.

Handles:
- "in 30 minutes", "in 2 hours", "in 3 days"
- "tomorrow", "tomorrow morning", "tomorrow at 5pm"
- "today at 3:30pm", "tonight", "tonight at 8"
- "at 5pm", "at 15:00"
- "5pm", "15:00"
- ISO 8601 and other date strings dateutil understands

Each rule returns a ParsedTime or None; the first match wins. Parsing never
fails: unrecognised input falls back to one hour from now, low confidence.
"""

import re
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse, parse as parse_datetime

from logger import logger
from .config import DEFAULT_DELAY_MINUTES
from .formatting import format_clock, format_time
from .types import Confidence, ParsedTime

RELATIVE_PATTERN = re.compile(r"^in\s+(\d+)\s*(minute|min|hour|hr|day)s?$")
AT_CLAUSE_PATTERN = re.compile(r"\bat\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b")
AT_ONLY_PATTERN = re.compile(r"^at\s+(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")
TIME_ONLY_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(am|pm)?$")

# Qualifier -> hour, checked in this order
DAY_PARTS = (
    ("morning", 9),
    ("afternoon", 14),
    ("evening", 18),
    ("night", 20),
)
TONIGHT_DEFAULT_HOUR = 20
TOMORROW_DEFAULT_HOUR = 9

Rule = Callable[[str, datetime], Optional[ParsedTime]]


def resolve_timezone(name: str) -> tzinfo:
    """Look up an IANA timezone name, falling back to UTC."""
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone '{name}', using UTC")
        return ZoneInfo("UTC")


def parse_reminder_time(
    text: str,
    timezone: str = "UTC",
    now: Optional[datetime] = None
) -> ParsedTime:
    """Parse a natural language time expression.

    Args:
        text: Time expression, e.g. "in 30 minutes" or "tomorrow at 5pm"
        timezone: IANA timezone name for wall-clock times
        now: Current time (defaults to now in timezone)

    Returns:
        ParsedTime with an absolute, timezone-aware date
    """
    tz = resolve_timezone(timezone)
    now = now.astimezone(tz) if now else datetime.now(tz)
    text = (text or "").strip()

    for rule in RULES:
        result = rule(text, now)
        if result:
            return result

    default_time = now + timedelta(minutes=DEFAULT_DELAY_MINUTES)
    logger.warning(f"Could not parse reminder time '{text}', defaulting to 1 hour from now")
    return ParsedTime(
        date=default_time,
        confidence=Confidence.LOW,
        interpretation=f'Couldn\'t parse "{text}", defaulting to 1 hour from now',
    )


# =============================================================================
# Rules
# =============================================================================

def parse_relative(text: str, now: datetime) -> Optional[ParsedTime]:
    """'in 30 minutes', 'in 2 hrs', 'in 3 days'."""
    match = RELATIVE_PATTERN.match(text.lower())
    if not match:
        return None

    num = int(match.group(1))
    unit = match.group(2)
    if unit.startswith("min"):
        unit_name = "minute"
    elif unit.startswith("h"):
        unit_name = "hour"
    else:
        unit_name = "day"

    try:
        date = now + timedelta(**{f"{unit_name}s": num})
    except OverflowError:
        return None

    plural = "" if num == 1 else "s"
    return ParsedTime(
        date=date,
        confidence=Confidence.HIGH,
        interpretation=f"In {num} {unit_name}{plural} ({format_time(date)})",
    )


def parse_tomorrow(text: str, now: datetime) -> Optional[ParsedTime]:
    """'tomorrow', 'tomorrow morning', 'tomorrow at 5pm'."""
    lower = text.lower()
    if "tomorrow" not in lower:
        return None

    tomorrow = now + timedelta(days=1)

    for part, hour in DAY_PARTS:
        if part in lower:
            date = _at(tomorrow, hour, 0)
            return ParsedTime(
                date=date,
                confidence=Confidence.HIGH,
                interpretation=f"Tomorrow {part} at {format_clock(date)}",
            )

    clock = _find_at_clause(lower)
    if clock:
        date = _at(tomorrow, *clock)
        return ParsedTime(
            date=date,
            confidence=Confidence.HIGH,
            interpretation=f"Tomorrow at {format_time(date)}",
        )

    date = _at(tomorrow, TOMORROW_DEFAULT_HOUR, 0)
    return ParsedTime(
        date=date,
        confidence=Confidence.MEDIUM,
        interpretation=f"Tomorrow at {format_clock(date)} (default)",
    )


def parse_today(text: str, now: datetime) -> Optional[ParsedTime]:
    """'today at 5pm', 'today evening', 'tonight', 'tonight at 8'."""
    lower = text.lower()
    is_tonight = "tonight" in lower
    if not is_tonight and "today" not in lower:
        return None

    if is_tonight:
        clock = _find_at_clause(lower)
        if clock:
            hour, minute = clock
            if hour < 12 and not re.search(r"\d\s*am\b", lower):
                hour += 12  # "tonight at 8" is 8pm
            return _same_day(now, hour, minute, Confidence.HIGH, "Tonight")
        return _same_day(
            now, TONIGHT_DEFAULT_HOUR, 0, Confidence.MEDIUM, "Tonight", default=True
        )

    for part, hour in DAY_PARTS:
        if part in lower:
            return _same_day(now, hour, 0, Confidence.HIGH, f"Today {part}")

    clock = _find_at_clause(lower)
    if clock:
        return _same_day(now, *clock, Confidence.HIGH, "Today")

    return None


def parse_at_time(text: str, now: datetime) -> Optional[ParsedTime]:
    """'at 5pm', 'at 3:30pm', 'at 15:00'."""
    match = AT_ONLY_PATTERN.match(text.lower())
    clock = _clock_from_match(match) if match else None
    if not clock:
        return None
    return _same_day(now, *clock, Confidence.HIGH, "Today")


def parse_time_only(text: str, now: datetime) -> Optional[ParsedTime]:
    """'5pm', '3:30pm', '15:00' - no 'at', so only medium confidence."""
    match = TIME_ONLY_PATTERN.match(text.lower())
    clock = _clock_from_match(match) if match else None
    if not clock:
        return None
    return _same_day(now, *clock, Confidence.MEDIUM, "Today")


def parse_iso(text: str, now: datetime) -> Optional[ParsedTime]:
    """ISO 8601, e.g. '2026-02-20T15:00:00'."""
    if "-" not in text and "T" not in text:
        return None

    try:
        date = _localize(isoparse(text), now)
        local = date.astimezone(now.tzinfo)
    except (ValueError, OverflowError):
        return None

    return ParsedTime(
        date=date,
        confidence=Confidence.HIGH,
        interpretation=format_time(local),
    )


def parse_freeform(text: str, now: datetime) -> Optional[ParsedTime]:
    """Anything else dateutil can read ('March 5 3pm', 'friday')."""
    if not text:
        return None

    try:
        date = _localize(parse_datetime(text, default=now.replace(second=0, microsecond=0)), now)
        local = date.astimezone(now.tzinfo)
    except (ValueError, OverflowError):
        return None

    return ParsedTime(
        date=date,
        confidence=Confidence.LOW,
        interpretation=f"Parsed as {format_time(local)}",
    )


RULES: list[Rule] = [
    parse_relative,
    parse_tomorrow,
    parse_today,
    parse_at_time,
    parse_time_only,
    parse_iso,
    parse_freeform,
]


# =============================================================================
# Helpers
# =============================================================================

def to_24_hour(hour: int, minute: int, meridiem: Optional[str]) -> Optional[tuple[int, int]]:
    """Resolve a clock reading to (hour, minute) on a 24-hour clock.

    An explicit am/pm wins. Without one: 1-6 are taken as PM, 7-11 as AM,
    0 and 12-23 as already 24-hour. Returns None for impossible times.
    """
    if minute > 59:
        return None

    if meridiem:
        if not 1 <= hour <= 12:
            return None
        if meridiem == "pm":
            return (12 if hour == 12 else hour + 12), minute
        return (0 if hour == 12 else hour), minute

    if hour > 23:
        return None
    if 1 <= hour <= 6:
        hour += 12
    return hour, minute


def _clock_from_match(match: re.Match) -> Optional[tuple[int, int]]:
    hour, minute, meridiem = match.groups()
    return to_24_hour(int(hour), int(minute) if minute else 0, meridiem)


def _find_at_clause(lower: str) -> Optional[tuple[int, int]]:
    match = AT_CLAUSE_PATTERN.search(lower)
    return _clock_from_match(match) if match else None


def _at(day: datetime, hour: int, minute: int) -> datetime:
    return day.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _same_day(
    now: datetime,
    hour: int,
    minute: int,
    confidence: Confidence,
    label: str,
    default: bool = False
) -> ParsedTime:
    """Today at hour:minute, or tomorrow if that has already passed."""
    date = _at(now, hour, minute)
    if date <= now:
        date += timedelta(days=1)
        return ParsedTime(
            date=date,
            confidence=confidence,
            interpretation=f"Tomorrow at {format_time(date)} (today's time already passed)",
        )

    when = format_clock(date) if default else format_time(date)
    suffix = " (default)" if default else ""
    return ParsedTime(
        date=date,
        confidence=confidence,
        interpretation=f"{label} at {when}{suffix}",
    )


def _localize(date: datetime, now: datetime) -> datetime:
    """Attach the user's timezone to naive datetimes."""
    if date.tzinfo is None:
        return date.replace(tzinfo=now.tzinfo)
    return date
