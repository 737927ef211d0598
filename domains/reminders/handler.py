"""Reminder intent handler for chat messages.

Understands:
- "remind me to call mom at 5pm" / "remind me in 30 minutes to stretch"
- "list reminders"
- "cancel reminder call mom"
"""

import re
from typing import Optional

from logger import logger
from .engine import ReminderEngine
from .formatting import format_reminder_list

_CLOCK = r"\d{1,2}(?::\d{2})?\s*(?:am|pm)?"
TIME_PHRASE = (
    r"(?:in\s+\d+\s*(?:minutes?|mins?|hours?|hrs?|days?)"
    rf"|tomorrow(?:\s+(?:morning|afternoon|evening|night))?(?:\s+at\s+{_CLOCK})?"
    rf"|(?:today|tonight)(?:\s+(?:morning|afternoon|evening|night))?(?:\s+at\s+{_CLOCK})?"
    rf"|at\s+{_CLOCK})"
)

# "remind me to X <time>"
TASK_FIRST = re.compile(
    rf"^remind\s+me\s+(?:to\s+)?(?P<task>.+?)\s+(?P<time>{TIME_PHRASE})[.!]?$",
    re.IGNORECASE,
)
# "remind me <time> to X"
TIME_FIRST = re.compile(
    rf"^remind\s+me\s+(?P<time>{TIME_PHRASE})\s+(?:to\s+)?(?P<task>.+?)[.!]?$",
    re.IGNORECASE,
)

LIST_COMMANDS = {"list reminders", "show reminders", "my reminders", "reminders"}


def split_reminder_request(text: str) -> Optional[tuple[str, str]]:
    """Split "remind me ..." into (task, time expression).

    Returns:
        (task, time) or None if no time phrase was found
    """
    text = text.strip()
    for pattern in (TIME_FIRST, TASK_FIRST):
        match = pattern.match(text)
        if match:
            task = match.group("task").strip()
            if task:
                return task, match.group("time").strip()
    return None


async def handle_reminder_intent(
    content: str,
    user_id: str,
    engine: ReminderEngine,
    agent_id: Optional[str] = None
) -> Optional[str]:
    """Handle reminder-related requests.

    Args:
        content: Message content
        user_id: Author's user ID
        engine: Reminder engine
        agent_id: Persona credited as the reminder's creator

    Returns:
        Reply text if handled, None if not a reminder request
    """
    user_id = str(user_id)
    content_lower = content.lower().strip()

    if content_lower in LIST_COMMANDS:
        return format_reminder_list(engine.get_reminders(user_id), engine.now())

    if content_lower.startswith("cancel reminder"):
        search = content.strip()[len("cancel reminder"):].strip(" :-")
        if not search:
            return "Which reminder? Try `cancel reminder call mom`."
        cancelled = engine.cancel_reminder_by_content(user_id, search)
        if cancelled:
            return f"✓ Cancelled reminder: \"{cancelled.content}\""
        return f"No pending reminder found matching \"{search}\""

    if not content_lower.startswith("remind me"):
        return None

    request = split_reminder_request(content)
    if not request:
        return "When should I remind you? Try `remind me to call mom at 5pm` or `remind me in 30 minutes to stretch`."

    task, time_input = request
    # Make sure the engine will check this user
    engine.register_user(user_id)
    if agent_id:
        reminder, interpretation = engine.create_reminder(user_id, task, time_input, agent_id)
    else:
        reminder, interpretation = engine.create_reminder(user_id, task, time_input)

    logger.info(f"Reminder intent from {user_id}: '{task}' / '{time_input}'")
    return f"✓ Reminder set: \"{reminder.content}\" - {interpretation}"
