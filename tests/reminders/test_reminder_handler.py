"""Tests for the chat reminder intent handler."""

from datetime import timedelta

import pytest

from conftest import NOON
from domains.reminders.handler import handle_reminder_intent, split_reminder_request


class TestSplitRequest:
    """Separating the task from the time phrase."""

    @pytest.mark.parametrize("text,expected", [
        ("remind me to call mom at 5pm", ("call mom", "at 5pm")),
        ("remind me in 30 minutes to stretch", ("stretch", "in 30 minutes")),
        ("Remind me to take out the trash tomorrow morning.", ("take out the trash", "tomorrow morning")),
        ("remind me to call mom tomorrow at 9am", ("call mom", "tomorrow at 9am")),
        ("remind me tonight to lock the door", ("lock the door", "tonight")),
        ("remind me today night to lock the door", ("lock the door", "today night")),
        ("remind me to feed the cat today evening", ("feed the cat", "today evening")),
        ("remind me water the plants in 2 hours", ("water the plants", "in 2 hours")),
    ])
    def test_splits(self, text, expected):
        assert split_reminder_request(text) == expected

    def test_no_time_phrase(self):
        assert split_reminder_request("remind me to call mom") is None


class TestHandleIntent:
    """Replies to reminder messages."""

    @pytest.mark.asyncio
    async def test_creates_reminder(self, make_engine, storage):
        engine = make_engine()

        reply = await handle_reminder_intent("remind me to call mom at 5pm", 42, engine)

        assert reply.startswith('✓ Reminder set: "call mom" - ')
        [reminder] = storage.get_reminders("42")
        assert reminder.due_at == NOON.replace(hour=17)
        assert reminder.created_by == "assistant"

    @pytest.mark.asyncio
    async def test_registers_author(self, make_engine):
        engine = make_engine()
        await handle_reminder_intent("remind me in 30 minutes to stretch", "42", engine)
        assert "42" in engine.registered_users

    @pytest.mark.asyncio
    async def test_relative_reply(self, make_engine):
        engine = make_engine()
        reply = await handle_reminder_intent("remind me in 30 minutes to stretch", "42", engine)
        assert reply == '✓ Reminder set: "stretch" - In 30 minutes (Tue, Mar 10, 12:30 PM)'

    @pytest.mark.asyncio
    async def test_agent_credited(self, make_engine, storage):
        engine = make_engine()
        await handle_reminder_intent("remind me in 5 minutes to stretch", "42", engine, agent_id="coach")
        assert storage.get_reminders("42")[0].created_by == "coach"

    @pytest.mark.asyncio
    async def test_missing_time_asks(self, make_engine, storage):
        engine = make_engine()
        reply = await handle_reminder_intent("remind me to call mom", "42", engine)
        assert reply.startswith("When should I remind you?")
        assert storage.get_reminders("42") == []

    @pytest.mark.asyncio
    async def test_list_empty(self, make_engine):
        engine = make_engine()
        assert await handle_reminder_intent("list reminders", "42", engine) == "No pending reminders."

    @pytest.mark.asyncio
    async def test_list_sorted(self, make_engine):
        engine = make_engine()
        engine.create_reminder("42", "later", "tomorrow morning")
        engine.create_reminder("42", "soon", "at 5pm")

        reply = await handle_reminder_intent("My Reminders", "42", engine)

        assert reply == (
            "**Pending reminders:**\n"
            "• soon - today at 5:00 PM\n"
            "• later - tomorrow at 9:00 AM"
        )

    @pytest.mark.asyncio
    async def test_cancel(self, make_engine):
        engine = make_engine()
        engine.create_reminder("42", "call mom", "at 5pm")

        reply = await handle_reminder_intent("cancel reminder mom", "42", engine)

        assert reply == '✓ Cancelled reminder: "call mom"'
        assert engine.get_reminders("42") == []

    @pytest.mark.asyncio
    async def test_cancel_no_match(self, make_engine):
        engine = make_engine()
        reply = await handle_reminder_intent("cancel reminder: dentist", "42", engine)
        assert reply == 'No pending reminder found matching "dentist"'

    @pytest.mark.asyncio
    async def test_cancel_needs_term(self, make_engine):
        engine = make_engine()
        reply = await handle_reminder_intent("cancel reminder", "42", engine)
        assert reply.startswith("Which reminder?")

    @pytest.mark.asyncio
    async def test_other_messages_ignored(self, make_engine):
        engine = make_engine()
        assert await handle_reminder_intent("what's the weather?", "42", engine) is None

    @pytest.mark.asyncio
    async def test_users_isolated(self, make_engine):
        engine = make_engine()
        await handle_reminder_intent("remind me in 1 hour to stretch", "42", engine)
        assert await handle_reminder_intent("list reminders", "7", engine) == "No pending reminders."

    @pytest.mark.asyncio
    async def test_created_reminder_fires(self, make_engine, delivery, clock):
        engine = make_engine()
        await handle_reminder_intent("remind me in 30 minutes to stretch", "42", engine)

        await engine.tick()
        delivery.assert_not_awaited()

        clock.now = NOON + timedelta(minutes=30)
        await engine.tick()
        assert delivery.await_args.args[1] == "⏰ **Reminder:** stretch"
