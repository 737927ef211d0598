"""File-per-user persistence for reminders.

Each user's reminders and settings live in {save_path}/{user_id}.json.
Loaded stores are cached in memory; every write rewrites the full file.
Read and write failures are logged, never raised: a corrupt file is
replaced by an empty store, and after a failed write the cache stays
authoritative until a later write succeeds. Single unreadable reminder
records are dropped and the rest of the file is kept.
"""

import json
import os
import re
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from logger import logger
from .types import Reminder, ReminderSettings, UserReminders

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class ReminderStorage:
    """JSON file store with an in-memory cache, keyed by user id."""

    def __init__(self, base_path: Path, default_settings: Optional[ReminderSettings] = None):
        """Initialize storage.

        Args:
            base_path: Directory holding one JSON file per user
            default_settings: Settings given to users without a saved file
        """
        self.base_path = Path(base_path).expanduser()
        self.default_settings = default_settings or ReminderSettings()
        self._cache: dict[str, UserReminders] = {}
        self._dirty: set[str] = set()  # users whose last write failed
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _file_path(self, user_id: str) -> Path:
        return self.base_path / f"{_UNSAFE_CHARS.sub('_', str(user_id))}.json"

    def _empty(self) -> UserReminders:
        return UserReminders(
            reminders=[],
            settings=ReminderSettings(**vars(self.default_settings)),
        )

    # =========================================================================
    # Load / Save
    # =========================================================================

    def load(self, user_id: str) -> UserReminders:
        """Return the user's store, reading from disk on first access."""
        user_id = str(user_id)
        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        file_path = self._file_path(user_id)
        if not file_path.exists():
            store = self._empty()
            self._cache[user_id] = store
            return store

        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
            store = UserReminders(
                reminders=self._load_reminders(data.get("reminders") or [], file_path),
                settings=ReminderSettings.from_dict(
                    data.get("settings") or {}, self.default_settings
                ),
            )
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Failed to load reminders from {file_path}, starting empty: {e}")
            self._set_aside(file_path)
            store = self._empty()

        self._cache[user_id] = store
        return store

    def _load_reminders(self, records: list, file_path: Path) -> list[Reminder]:
        """Parse stored records, dropping any that are unreadable."""
        reminders = []
        for record in records:
            try:
                reminders.append(Reminder.from_dict(record))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Dropping unreadable reminder in {file_path}: {e}")

        if len(reminders) < len(records):
            self._set_aside(file_path)
        return reminders

    def save(self, user_id: str, store: UserReminders) -> bool:
        """Cache the store and write it to disk.

        Returns:
            True if the file was written
        """
        user_id = str(user_id)
        self._cache[user_id] = store
        file_path = self._file_path(user_id)

        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=self.base_path, prefix=f".{file_path.stem}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(store.to_dict(), f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, file_path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to save reminders to {file_path}: {e}")
            self._dirty.add(user_id)
            return False

        self._dirty.discard(user_id)
        return True

    def evict(self, user_id: str) -> bool:
        """Drop a user from the cache. Users with unsaved changes are kept.

        Returns:
            True if the user is no longer cached
        """
        user_id = str(user_id)
        if user_id in self._dirty:
            return False
        self._cache.pop(user_id, None)
        return True

    def _set_aside(self, file_path: Path) -> None:
        """Keep a copy of an unreadable file before it gets overwritten."""
        try:
            shutil.copyfile(file_path, file_path.with_name(file_path.name + ".corrupt"))
        except OSError as e:
            logger.warning(f"Could not back up corrupt reminder file {file_path}: {e}")

    # =========================================================================
    # Reminder operations
    # =========================================================================

    def add_reminder(self, user_id: str, reminder: Reminder) -> None:
        store = self.load(user_id)
        store.reminders.append(reminder)
        self.save(user_id, store)

    def get_reminders(self, user_id: str) -> list[Reminder]:
        """All reminders, fired ones included."""
        return self.load(user_id).reminders

    def get_pending_reminders(self, user_id: str) -> list[Reminder]:
        return [r for r in self.load(user_id).reminders if not r.fired]

    def mark_fired(self, user_id: str, reminder_id: str, now: Optional[datetime] = None) -> bool:
        """Flag a reminder as delivered.

        Returns:
            True if the reminder exists
        """
        store = self.load(user_id)
        for reminder in store.reminders:
            if reminder.id == reminder_id:
                reminder.fired = True
                reminder.fired_at = now or datetime.now(timezone.utc)
                self.save(user_id, store)
                return True
        return False

    def cancel_reminder(self, user_id: str, reminder_id: str) -> bool:
        """Delete a reminder by id.

        Returns:
            True if a reminder was removed
        """
        store = self.load(user_id)
        for i, reminder in enumerate(store.reminders):
            if reminder.id == reminder_id:
                del store.reminders[i]
                self.save(user_id, store)
                return True
        return False

    def find_reminder_by_content(self, user_id: str, search_term: str) -> Optional[Reminder]:
        """First unfired reminder whose content contains search_term (case-insensitive)."""
        needle = search_term.lower()
        for reminder in self.load(user_id).reminders:
            if not reminder.fired and needle in reminder.content.lower():
                return reminder
        return None

    # =========================================================================
    # Settings
    # =========================================================================

    def get_settings(self, user_id: str) -> ReminderSettings:
        return self.load(user_id).settings

    def update_settings(self, user_id: str, **updates) -> ReminderSettings:
        """Merge updates into the user's settings, e.g. enabled=False."""
        store = self.load(user_id)
        for key, value in updates.items():
            if not hasattr(store.settings, key):
                raise AttributeError(f"Unknown reminder setting: {key}")
            setattr(store.settings, key, value)
        self.save(user_id, store)
        return store.settings

    # =========================================================================
    # Cleanup
    # =========================================================================

    def cleanup_old_reminders(
        self,
        user_id: str,
        days_old: int = 7,
        now: Optional[datetime] = None
    ) -> int:
        """Drop fired reminders older than days_old. Unfired ones always stay.

        Returns:
            Number of reminders removed
        """
        store = self.load(user_id)
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days_old)

        before = len(store.reminders)
        store.reminders = [
            r for r in store.reminders
            if not r.fired or (r.fired_at is not None and r.fired_at > cutoff)
        ]
        removed = before - len(store.reminders)

        if removed:
            self.save(user_id, store)
        return removed

    # =========================================================================
    # All users
    # =========================================================================

    def get_all_user_ids(self) -> list[str]:
        """Users with a reminder file on disk."""
        try:
            return sorted(p.stem for p in self.base_path.glob("*.json"))
        except OSError as e:
            logger.error(f"Failed to list reminder files in {self.base_path}: {e}")
            return []
