"""Discord reminder bot - main entry point.

Hosts the reminder engine: user reminders set from chat, calendar meeting
nudges, and a daily retention pass, all on one APScheduler instance.
"""

import time

import discord
from discord.ext import commands
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from logger import logger
from config import DISCORD_TOKEN, REMINDER_CHANNEL_ID, REMINDER_USER_IDS, CALENDAR_API_BASE
from domains.reminders import (
    DiscordDelivery,
    HttpCalendarSource,
    ReminderEngine,
    ReminderEngineConfig,
    handle_reminder_intent,
)
from domains.reminders.config import RETENTION_DAYS

# Initialize bot
intents = discord.Intents.default()
intents.message_content = True
bot = commands.Bot(command_prefix="/", intents=intents)

# Initialize scheduler
scheduler = AsyncIOScheduler()

# Message deduplication: track recently processed message IDs
_processed_messages: dict[int, float] = {}  # message_id -> timestamp
MESSAGE_DEDUP_SECONDS = 5

calendar = HttpCalendarSource(CALENDAR_API_BASE) if CALENDAR_API_BASE else None

engine = ReminderEngine(
    on_reminder=DiscordDelivery(bot, REMINDER_CHANNEL_ID),
    get_upcoming_events=calendar.get_upcoming_events if calendar else None,
    engine_config=ReminderEngineConfig(),
    scheduler=scheduler,
)


def register_reminder_cleanup(scheduler: AsyncIOScheduler, engine: ReminderEngine) -> None:
    """Drop old fired reminders every night at 03:00."""
    scheduler.add_job(
        engine.cleanup_old_reminders,
        'cron',
        args=[RETENTION_DAYS],
        hour=3,
        minute=0,
        timezone=engine.tz,
        id="reminder_cleanup",
        replace_existing=True
    )


@bot.event
async def on_ready():
    """Called when bot is connected and ready."""
    logger.info(f"Logged in as {bot.user}")

    # Users with saved reminders plus any configured ones
    for user_id in set(engine.storage.get_all_user_ids()) | set(REMINDER_USER_IDS):
        engine.register_user(user_id)
    logger.info(f"Registered {len(engine.registered_users)} reminder users")

    if not calendar:
        logger.warning("CALENDAR_API_BASE not set, meeting nudges disabled")

    register_reminder_cleanup(scheduler, engine)

    # on_ready fires again after reconnects
    if not scheduler.running:
        scheduler.start()
    engine.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")


@bot.event
async def on_message(message):
    """Handle incoming messages."""
    # Ignore bot messages
    if message.author.bot:
        return

    # Message deduplication - prevent processing same message twice
    now = time.time()
    if message.id in _processed_messages:
        logger.debug(f"Skipping duplicate message {message.id}")
        return
    _processed_messages[message.id] = now
    cutoff = now - MESSAGE_DEDUP_SECONDS * 2
    for k in [k for k, v in _processed_messages.items() if v < cutoff]:
        del _processed_messages[k]

    try:
        response = await handle_reminder_intent(message.content, message.author.id, engine)
    except Exception as e:
        logger.error(f"Reminder intent failed: {e}")
        response = f"Failed to handle reminder: {e}"

    if response:
        await message.channel.send(response)


@bot.event
async def on_error(event, *args, **kwargs):
    """Handle errors."""
    logger.error(f"Bot error in {event}: {args}")


def main():
    """Entry point."""
    if not DISCORD_TOKEN:
        logger.error("DISCORD_TOKEN not set")
        return

    logger.info("Starting reminder bot...")
    bot.run(DISCORD_TOKEN)


if __name__ == "__main__":
    main()
