"""Human-readable rendering of times and reminder messages."""

from datetime import datetime, timedelta
from typing import Optional

from .types import CalendarEvent, Reminder


def format_clock(dt: datetime) -> str:
    """12-hour clock time, e.g. "5:00 PM"."""
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt:%M} {'PM' if dt.hour >= 12 else 'AM'}"


def format_time(dt: datetime) -> str:
    """Short date and time, e.g. "Sun, Oct 18, 5:00 PM"."""
    return f"{dt:%a, %b} {dt.day}, {format_clock(dt)}"


def format_reminder_time(dt: datetime, now: Optional[datetime] = None) -> str:
    """Relative date and time, e.g. "today at 5:00 PM" or "Mon, Oct 19 at 9:00 AM".

    Args:
        dt: Time to render
        now: Reference time (defaults to now in dt's timezone)
    """
    now = now or datetime.now(dt.tzinfo)
    if dt.tzinfo is not None and now.tzinfo is not None:
        now = now.astimezone(dt.tzinfo)

    if dt.date() == now.date():
        return f"today at {format_clock(dt)}"
    if dt.date() == (now + timedelta(days=1)).date():
        return f"tomorrow at {format_clock(dt)}"
    return f"{dt:%a, %b} {dt.day} at {format_clock(dt)}"


def format_user_reminder(reminder: Reminder) -> str:
    return f"⏰ **Reminder:** {reminder.content}"


def format_reminder_batch(reminders: list[Reminder]) -> str:
    """One message for several reminders missed while offline."""
    lines = [f"⏰ **{len(reminders)} Reminders** (from while I was offline):"]
    lines.extend(f"• {r.content}" for r in reminders)
    return "\n".join(lines)


def format_meeting_reminder(event: CalendarEvent, minutes_until: float) -> str:
    mins = round(minutes_until)
    msg = f"📅 **Heads up!** You have a meeting in {mins} minute{'' if mins == 1 else 's'}:\n"
    msg += f"**{event.title}**"

    if event.location:
        msg += f"\n📍 {event.location}"

    if event.conference_url:
        msg += f"\n🔗 [Join meeting]({event.conference_url})"

    return msg


def format_reminder_list(reminders: list[Reminder], now: Optional[datetime] = None) -> str:
    """Pending reminders as a bulleted list, soonest first."""
    if not reminders:
        return "No pending reminders."

    lines = ["**Pending reminders:**"]
    for r in sorted(reminders, key=lambda r: r.due_at):
        lines.append(f"• {r.content} - {format_reminder_time(r.due_at, now)}")
    return "\n".join(lines)
