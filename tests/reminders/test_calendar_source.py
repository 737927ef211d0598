"""Tests for the HTTP calendar source, using httpx.MockTransport."""

from datetime import timedelta

import httpx
import pytest

from conftest import NOON
from domains.reminders.calendar import HttpCalendarSource

API_BASE = "http://calendar.test/"

EVENTS = [
    {
        "id": "evt-1",
        "summary": "Standup",
        "start": "2026-03-10T12:10:00+00:00",
        "end": "2026-03-10T12:25:00+00:00",
        "location": "Room 4",
        "hangoutLink": "https://meet.example/abc",
    },
    {"id": "evt-2", "summary": "Holiday", "start": "2026-03-10", "end": "2026-03-11"},
    {"id": "evt-3", "summary": "Later", "start": "2026-03-10T15:00:00+00:00"},
    {"id": "evt-4", "summary": "Earlier", "start": "2026-03-10T11:00:00+00:00"},
    {"id": "evt-5", "start": "2026-03-10T12:45:00"},
]


def make_source(handler) -> HttpCalendarSource:
    return HttpCalendarSource(API_BASE, transport=httpx.MockTransport(handler), clock=lambda: NOON)


class TestGetUpcomingEvents:
    """Fetching and mapping events."""

    @pytest.mark.asyncio
    async def test_requests_date_range(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"events": []})

        await make_source(handler).get_upcoming_events(1)

        [request] = seen
        assert request.url.path == "/calendar/range"
        assert request.url.params["start_date"] == "2026-03-10"
        assert request.url.params["end_date"] == "2026-03-10"

    @pytest.mark.asyncio
    async def test_only_timed_events_in_window(self):
        source = make_source(lambda request: httpx.Response(200, json={"events": EVENTS}))

        events = await source.get_upcoming_events(1)

        assert [e.id for e in events] == ["evt-1", "evt-5"]

    @pytest.mark.asyncio
    async def test_maps_fields(self):
        source = make_source(lambda request: httpx.Response(200, json={"events": EVENTS}))

        standup, untitled = await source.get_upcoming_events(1)

        assert standup.title == "Standup"
        assert standup.start_time == NOON + timedelta(minutes=10)
        assert standup.end_time == NOON + timedelta(minutes=25)
        assert standup.location == "Room 4"
        assert standup.conference_url == "https://meet.example/abc"
        assert untitled.title == "(No title)"
        # Naive times are read in the clock's timezone
        assert untitled.start_time == NOON + timedelta(minutes=45)
        assert untitled.end_time is None

    @pytest.mark.asyncio
    async def test_wider_window(self):
        source = make_source(lambda request: httpx.Response(200, json={"events": EVENTS}))
        events = await source.get_upcoming_events(4)
        assert [e.id for e in events] == ["evt-1", "evt-3", "evt-5"]

    @pytest.mark.asyncio
    async def test_bad_times_skipped(self):
        bad = [{"id": "evt-9", "summary": "Broken", "start": "2026-99-99T99:00:00"}]
        source = make_source(lambda request: httpx.Response(200, json={"events": bad}))
        assert await source.get_upcoming_events(1) == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        source = make_source(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(httpx.HTTPStatusError):
            await source.get_upcoming_events(1)

    @pytest.mark.asyncio
    async def test_feeds_engine_nudges(self, make_engine, delivery):
        source = make_source(lambda request: httpx.Response(200, json={"events": EVENTS}))
        engine = make_engine(events=source.get_upcoming_events)
        engine.register_user("42")

        await engine.tick()

        [call] = delivery.await_args_list
        assert "**Standup**" in call.args[1]
        assert "[Join meeting](https://meet.example/abc)" in call.args[1]
