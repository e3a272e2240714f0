"""Telegram notification adapter for Saved Messages.

Formats a Markdown message and sends it to the user's Saved Messages through
an authorized Telethon client.
"""

from __future__ import annotations

from datetime import datetime, timezone

from telethon import errors

from feedrules.adapters.notification_formatting import format_notification
from feedrules.core.errors import NotificationError


class TelegramSavedMessagesNotifier:
    """Notifier adapter that sends messages to the user's Saved Messages."""

    def __init__(self, client) -> None:
        self._client = client

    async def notify(self, message: str) -> None:
        """Send the formatted notification to Saved Messages."""

        text = format_notification(message, datetime.now(timezone.utc), mode="markdown")
        try:
            await self._client.send_message("me", text, parse_mode="Markdown")
        except (errors.RPCError, ConnectionError) as e:
            raise NotificationError(f"Saved Messages delivery failed: {e}") from e
