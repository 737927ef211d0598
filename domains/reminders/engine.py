"""Reminder engine - periodic tick that fires user reminders and meeting nudges.

Each tick walks the registered users one at a time:
1. User reminders that are due are delivered (held back during quiet hours).
   A reminder is only marked fired once delivery succeeded, so failures
   are retried on the next tick.
2. Calendar events starting within the user's lead time get a one-off
   meeting nudge. Nudges ignore quiet hours and are not retried.

Ticks never overlap: a tick that starts while another is still running
is skipped.
"""

import inspect
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from logger import logger
from . import config
from .formatting import format_meeting_reminder, format_reminder_batch, format_user_reminder
from .store import ReminderStorage
from .time_parser import parse_reminder_time, resolve_timezone
from .types import (
    CalendarEvent,
    CalendarQuery,
    DeliveryCallback,
    NudgeState,
    Reminder,
    ReminderEngineConfig,
    ReminderKind,
    ReminderSettings,
)

TICK_JOB_ID = "reminder_engine_tick"


class ReminderEngine:
    """Schedules and delivers reminders for registered users."""

    def __init__(
        self,
        on_reminder: DeliveryCallback,
        get_upcoming_events: Optional[CalendarQuery] = None,
        engine_config: Optional[ReminderEngineConfig] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        storage: Optional[ReminderStorage] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """Initialize the engine.

        Args:
            on_reminder: Async delivery callback; must raise if not delivered
            get_upcoming_events: Calendar query (hours -> events), sync or async
            engine_config: Engine settings (defaults from domain config)
            scheduler: Shared APScheduler instance; a private one is created if omitted
            storage: Reminder store (defaults to files under engine_config.save_path);
                its defaults for new users take engine_config.meeting_reminder_minutes
            clock: Returns the current time (for tests)
        """
        self.config = engine_config or ReminderEngineConfig()
        self.on_reminder = on_reminder
        self.get_upcoming_events = get_upcoming_events
        self.tz = resolve_timezone(self.config.timezone)
        self.storage = storage or ReminderStorage(self.config.save_path)
        # New users get the engine's lead time, whoever built the storage
        self.storage.default_settings = ReminderSettings(
            meeting_reminder_minutes=self.config.meeting_reminder_minutes,
            enabled=self.storage.default_settings.enabled,
        )
        self._clock = clock

        self.scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._job = None

        self._registered_users: set[str] = set()
        self._nudge_state: dict[str, NudgeState] = {}
        self._tick_running = False
        self._first_tick = True

    def now(self) -> datetime:
        if self._clock:
            return self._clock().astimezone(self.tz)
        return datetime.now(self.tz)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._job is not None

    @property
    def tick_in_progress(self) -> bool:
        return self._tick_running

    def start(self) -> None:
        """Run a tick now and every check_interval_seconds after.

        Must be called with an asyncio event loop running.
        """
        if self._job is not None:
            return

        if self.scheduler is None:
            self.scheduler = AsyncIOScheduler(timezone=self.tz)

        self._first_tick = True
        # A second instance may start while one runs; the tick guard skips it
        self._job = self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.config.check_interval_seconds),
            id=TICK_JOB_ID,
            name="Reminder engine tick",
            next_run_time=datetime.now(self.tz),
            max_instances=2,
            coalesce=True,
            replace_existing=True,
        )

        if self._owns_scheduler and not self.scheduler.running:
            self.scheduler.start()

        logger.info(f"Reminder engine started (checking every {self.config.check_interval_seconds}s)")

    def stop(self) -> None:
        """Stop scheduling ticks. A tick already running is left to finish.

        The scheduler itself keeps running; shutting it down would cancel
        the in-flight tick.
        """
        if self._job is None:
            return

        try:
            self._job.remove()
        except Exception as e:
            logger.warning(f"Reminder tick job already gone: {e}")
        self._job = None

        logger.info("Reminder engine stopped")

    # =========================================================================
    # User registration
    # =========================================================================

    def register_user(self, user_id: str) -> None:
        user_id = str(user_id)
        self._registered_users.add(user_id)
        if user_id not in self._nudge_state:
            self._nudge_state[user_id] = NudgeState(last_check=self.now())

    def unregister_user(self, user_id: str) -> None:
        user_id = str(user_id)
        self._registered_users.discard(user_id)
        self._nudge_state.pop(user_id, None)
        self.storage.evict(user_id)

    @property
    def registered_users(self) -> set[str]:
        return set(self._registered_users)

    def get_nudge_state(self, user_id: str) -> Optional[NudgeState]:
        return self._nudge_state.get(str(user_id))

    # =========================================================================
    # Tick
    # =========================================================================

    async def tick(self, now: Optional[datetime] = None) -> bool:
        """Evaluate every registered user once.

        Returns:
            False if skipped because another tick was still running
        """
        if self._tick_running:
            logger.info("Reminder tick already running, skipping")
            return False

        self._tick_running = True
        now = now or self.now()

        try:
            # Snapshot so (un)registration mid-tick doesn't affect this pass
            for user_id in list(self._registered_users):
                try:
                    if not self.storage.get_settings(user_id).enabled:
                        continue
                    await self.check_user_reminders(user_id, now, batch_overdue=self._first_tick)
                    # Meetings always surface, even in quiet hours
                    await self.check_calendar_nudges(user_id, now)
                except Exception as e:
                    logger.error(f"Reminder tick failed for user {user_id}: {e}")
        finally:
            self._first_tick = False
            self._tick_running = False

        return True

    # =========================================================================
    # User reminders
    # =========================================================================

    async def check_user_reminders(
        self,
        user_id: str,
        now: datetime,
        batch_overdue: bool = False
    ) -> int:
        """Deliver due reminders for one user.

        Args:
            user_id: User to check
            now: Current time
            batch_overdue: Combine long-overdue reminders into one message
                (used on the first tick after start)

        Returns:
            Number of reminders marked fired
        """
        if self.is_quiet_hours(now):
            return 0

        overdue = [r for r in self.storage.get_pending_reminders(user_id) if r.due_at <= now]
        if not overdue:
            return 0

        fired = 0
        if batch_overdue and len(overdue) > 1:
            cutoff = now - timedelta(minutes=config.OVERDUE_BATCH_MINUTES)
            very_overdue = [r for r in overdue if r.due_at < cutoff]

            if len(very_overdue) > 1:
                fired += await self._deliver_batch(user_id, very_overdue, now)
                batched_ids = {r.id for r in very_overdue}
                overdue = [r for r in overdue if r.id not in batched_ids]

        for reminder in overdue:
            try:
                await self.on_reminder(
                    user_id, format_user_reminder(reminder), ReminderKind.USER, reminder.created_by
                )
            except Exception as e:
                logger.warning(f"Failed to deliver reminder '{reminder.content}' for user {user_id}, will retry: {e}")
                continue

            self.storage.mark_fired(user_id, reminder.id, now)
            fired += 1
            logger.info(f"Fired reminder '{reminder.content}' for user {user_id}")

        return fired

    async def _deliver_batch(self, user_id: str, reminders: list[Reminder], now: datetime) -> int:
        """Send several overdue reminders as one message; all or nothing."""
        try:
            await self.on_reminder(
                user_id, format_reminder_batch(reminders), ReminderKind.USER, config.DEFAULT_AGENT_ID
            )
        except Exception as e:
            logger.warning(f"Failed to deliver batch of {len(reminders)} reminders for user {user_id}, will retry: {e}")
            return 0

        for reminder in reminders:
            self.storage.mark_fired(user_id, reminder.id, now)
        logger.info(f"Batched {len(reminders)} overdue reminders for user {user_id}")
        return len(reminders)

    def is_quiet_hours(self, now: datetime) -> bool:
        hour = now.astimezone(self.tz).hour
        start, end = self.config.quiet_hours_start, self.config.quiet_hours_end

        # Overnight window, e.g. 22:00 - 08:00
        if start > end:
            return hour >= start or hour < end

        return start <= hour < end

    # =========================================================================
    # Calendar nudges
    # =========================================================================

    async def check_calendar_nudges(self, user_id: str, now: datetime) -> int:
        """Send meeting heads-ups for one user.

        Returns:
            Number of nudges attempted
        """
        state = self._nudge_state.get(user_id)
        if state is None or self.get_upcoming_events is None:
            return 0

        events = self.get_upcoming_events(config.CALENDAR_LOOKAHEAD_HOURS)
        if inspect.isawaitable(events):
            events = await events
        events = list(events or [])

        lead_minutes = self.storage.get_settings(user_id).meeting_reminder_minutes
        sent = 0

        for event in events:
            start = self._aware(event.start_time)
            minutes_until = (start - now).total_seconds() / 60
            key = self.event_key(event)

            if not 0 < minutes_until <= lead_minutes or key in state.notified_event_ids:
                continue

            # Recorded before sending: a failed nudge is not retried
            state.notified_event_ids.add(key)
            sent += 1
            try:
                await self.on_reminder(
                    user_id,
                    format_meeting_reminder(event, minutes_until),
                    ReminderKind.MEETING,
                    config.DEFAULT_AGENT_ID,
                )
                logger.info(f"Meeting reminder: '{event.title}' in {round(minutes_until)}min for user {user_id}")
            except Exception as e:
                logger.error(f"Failed to deliver meeting reminder '{event.title}' for user {user_id}: {e}")

        # Forget events that have passed or been cancelled
        current_keys = {self.event_key(e) for e in events}
        state.notified_event_ids &= current_keys
        state.last_check = now

        return sent

    def event_key(self, event: CalendarEvent) -> str:
        return f"{event.id or event.title}-{self._aware(event.start_time).isoformat()}"

    def _aware(self, dt: datetime) -> datetime:
        if dt.tzinfo is None:
            return dt.replace(tzinfo=self.tz)
        return dt

    # =========================================================================
    # Public API - user reminders
    # =========================================================================

    def create_reminder(
        self,
        user_id: str,
        content: str,
        time_input: str,
        agent_id: str = config.DEFAULT_AGENT_ID
    ) -> tuple[Reminder, str]:
        """Parse time_input and store a new reminder.

        Returns:
            (reminder, human-readable interpretation of the time)
        """
        user_id = str(user_id)
        now = self.now()
        parsed = parse_reminder_time(time_input, self.config.timezone, now=now)

        reminder = Reminder(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content=content.strip(),
            due_at=parsed.date,
            created_at=now,
            created_by=agent_id,
        )
        self.storage.add_reminder(user_id, reminder)

        logger.info(f"Created reminder '{reminder.content}' for user {user_id} at {reminder.due_at.isoformat()} ({parsed.confidence.value})")
        return reminder, parsed.interpretation

    def get_reminders(self, user_id: str) -> list[Reminder]:
        """Pending (unfired) reminders."""
        return self.storage.get_pending_reminders(str(user_id))

    def cancel_reminder(self, user_id: str, reminder_id: str) -> bool:
        cancelled = self.storage.cancel_reminder(str(user_id), reminder_id)
        if cancelled:
            logger.info(f"Cancelled reminder {reminder_id} for user {user_id}")
        return cancelled

    def cancel_reminder_by_content(self, user_id: str, search_term: str) -> Optional[Reminder]:
        """Cancel the first pending reminder whose content matches search_term."""
        user_id = str(user_id)
        reminder = self.storage.find_reminder_by_content(user_id, search_term)
        if reminder:
            self.cancel_reminder(user_id, reminder.id)
        return reminder

    def cleanup_old_reminders(self, days_old: int = config.RETENTION_DAYS) -> int:
        """Retention pass over every known user.

        Returns:
            Total reminders removed
        """
        user_ids = set(self.storage.get_all_user_ids()) | self._registered_users
        now = self.now()
        removed = sum(
            self.storage.cleanup_old_reminders(user_id, days_old, now=now)
            for user_id in sorted(user_ids)
        )
        if removed:
            logger.info(f"Removed {removed} fired reminders older than {days_old} days")
        return removed

    # =========================================================================
    # Settings
    # =========================================================================

    def set_meeting_reminder_minutes(self, user_id: str, minutes: int) -> None:
        self.storage.update_settings(str(user_id), meeting_reminder_minutes=minutes)

    def get_meeting_reminder_minutes(self, user_id: str) -> int:
        return self.storage.get_settings(str(user_id)).meeting_reminder_minutes

    def set_enabled(self, user_id: str, enabled: bool) -> None:
        self.storage.update_settings(str(user_id), enabled=enabled)
