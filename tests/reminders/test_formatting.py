"""Tests for reminder message and time formatting."""

from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from domains.reminders.formatting import (
    format_clock,
    format_meeting_reminder,
    format_reminder_batch,
    format_reminder_list,
    format_reminder_time,
    format_time,
)
from domains.reminders.types import CalendarEvent, Reminder

NOW = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


def reminder(content: str, due_at: datetime) -> Reminder:
    return Reminder(
        id=content, user_id="42", content=content, due_at=due_at,
        created_at=NOW, created_by="assistant",
    )


class TestClock:

    @pytest.mark.parametrize("hour,minute,expected", [
        (0, 0, "12:00 AM"),
        (9, 5, "9:05 AM"),
        (12, 0, "12:00 PM"),
        (17, 30, "5:30 PM"),
        (23, 59, "11:59 PM"),
    ])
    def test_twelve_hour(self, hour, minute, expected):
        assert format_clock(NOW.replace(hour=hour, minute=minute)) == expected

    def test_format_time(self):
        assert format_time(NOW) == "Tue, Mar 10, 2:00 PM"


class TestReminderTime:
    """Relative day wording."""

    def test_today(self):
        assert format_reminder_time(NOW.replace(hour=17), NOW) == "today at 5:00 PM"

    def test_tomorrow(self):
        assert format_reminder_time(NOW.replace(hour=9) + timedelta(days=1), NOW) == "tomorrow at 9:00 AM"

    def test_later(self):
        assert format_reminder_time(NOW.replace(hour=9) + timedelta(days=2), NOW) == "Thu, Mar 12 at 9:00 AM"

    @freeze_time("2026-03-10 14:00:00")
    def test_defaults_to_current_time(self):
        assert format_reminder_time(NOW.replace(hour=17)) == "today at 5:00 PM"

    def test_compares_in_target_timezone(self):
        # 02:00 UTC on the 11th is still the 10th in UTC-5
        tz = timezone(timedelta(hours=-5))
        due = datetime(2026, 3, 10, 21, 0, tzinfo=tz)
        assert format_reminder_time(due, NOW) == "today at 9:00 PM"


class TestMessages:
    """Delivered message bodies."""

    def test_meeting_singular(self):
        event = CalendarEvent(title="1:1", start_time=NOW)
        assert format_meeting_reminder(event, 1.2) == (
            "📅 **Heads up!** You have a meeting in 1 minute:\n**1:1**"
        )

    def test_meeting_rounds_minutes(self):
        event = CalendarEvent(title="Standup", start_time=NOW)
        assert "in 15 minutes" in format_meeting_reminder(event, 14.6)

    def test_meeting_extras(self):
        event = CalendarEvent(
            title="Standup", start_time=NOW, location="Room 4",
            conference_url="https://meet.example/abc",
        )
        message = format_meeting_reminder(event, 10)
        assert message.endswith("\n📍 Room 4\n🔗 [Join meeting](https://meet.example/abc)")

    def test_batch(self):
        message = format_reminder_batch([reminder("a", NOW), reminder("b", NOW)])
        assert message == "⏰ **2 Reminders** (from while I was offline):\n• a\n• b"

    def test_list_empty(self):
        assert format_reminder_list([], NOW) == "No pending reminders."
