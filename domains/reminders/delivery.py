"""Discord delivery for reminder messages.

Reminders go to a configured channel with a user mention, or as a direct
message when no channel is configured. Any failure raises so the engine
can retry the reminder on its next tick.
"""

from typing import Optional

import discord

from logger import logger
from .types import ReminderKind

MAX_MESSAGE_LENGTH = 2000


class DeliveryError(Exception):
    """The reminder could not be handed to Discord."""


class DiscordDelivery:
    """Delivery callback for ReminderEngine."""

    def __init__(self, bot: discord.Client, channel_id: int = 0):
        """Initialize delivery.

        Args:
            bot: Discord bot instance
            channel_id: Channel to post reminders in (0 = direct message)
        """
        self.bot = bot
        self.channel_id = channel_id

    async def __call__(
        self,
        user_id: str,
        message: str,
        kind: ReminderKind,
        agent_id: Optional[str] = None
    ) -> None:
        target = await self._resolve_target(user_id)

        if self.channel_id:
            message = f"<@{user_id}> {message}"

        for i in range(0, len(message), MAX_MESSAGE_LENGTH):
            await target.send(message[i:i + MAX_MESSAGE_LENGTH])

        logger.debug(f"Delivered {kind.value} reminder to user {user_id} (agent {agent_id})")

    async def _resolve_target(self, user_id: str) -> discord.abc.Messageable:
        try:
            if self.channel_id:
                target = self.bot.get_channel(self.channel_id)
                if target is None:
                    target = await self.bot.fetch_channel(self.channel_id)
            else:
                target = self.bot.get_user(int(user_id))
                if target is None:
                    target = await self.bot.fetch_user(int(user_id))
        except (discord.NotFound, ValueError) as e:
            raise DeliveryError(f"No reminder target for user {user_id}: {e}") from e

        if target is None:
            raise DeliveryError(f"No reminder target for user {user_id}")
        return target
