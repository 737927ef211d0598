"""Calendar collaborator backed by the calendar HTTP API.

The API proxies Google Calendar and returns events for a date range:
    GET {api_base}/calendar/range?start_date=YYYY-MM-DD&end_date=YYYY-MM-DD
    -> {"events": [{"id", "summary", "start", "end", "location", ...}]}
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import httpx
from dateutil.parser import isoparse

from logger import logger
from . import config
from .types import CalendarEvent


class HttpCalendarSource:
    """Fetches upcoming events for meeting nudges."""

    def __init__(
        self,
        api_base: str,
        timeout: float = config.CALENDAR_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the calendar source.

        Args:
            api_base: Root URL of the calendar API
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
            clock: Returns the current time (tests)
        """
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_upcoming_events(self, within_hours: float) -> list[CalendarEvent]:
        """Timed events starting between now and now + within_hours.

        Raises:
            httpx.HTTPError: If the API is unreachable or returns an error
        """
        now = self._clock()
        until = now + timedelta(hours=within_hours)

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            response = await client.get(
                f"{self.api_base}/calendar/range",
                params={
                    "start_date": now.strftime("%Y-%m-%d"),
                    "end_date": until.strftime("%Y-%m-%d"),
                },
            )
            response.raise_for_status()
            data = response.json()

        events = []
        for raw in data.get("events", []):
            event = _to_event(raw, now.tzinfo)
            if event and now <= event.start_time <= until:
                events.append(event)

        logger.debug(f"Calendar returned {len(events)} events in the next {within_hours}h")
        return events


def _to_event(raw: dict, default_tz) -> Optional[CalendarEvent]:
    """Map an API event to CalendarEvent. All-day events (date only) are skipped."""
    start = raw.get("start") or ""
    if "T" not in start:
        return None

    try:
        start_time = _aware(isoparse(start), default_tz)
        end = raw.get("end") or ""
        end_time = _aware(isoparse(end), default_tz) if "T" in end else None
    except ValueError:
        logger.warning(f"Skipping calendar event with bad times: {raw.get('id')}")
        return None

    return CalendarEvent(
        id=raw.get("id") or None,
        title=raw.get("summary") or "(No title)",
        start_time=start_time,
        end_time=end_time,
        location=raw.get("location") or None,
        conference_url=raw.get("conference_url") or raw.get("hangoutLink") or None,
        description=raw.get("description") or None,
    )


def _aware(dt: datetime, default_tz) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=default_tz)
