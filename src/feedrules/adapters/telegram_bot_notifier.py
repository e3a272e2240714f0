"""Telegram Bot API notifier.

Delivers automation notifications to a bot chat. The Bot API answers with
``{"ok": false, "description": ...}`` on logical failures, which is treated
the same as a transport error.
"""

from __future__ import annotations

import asyncio
import json
import urllib.error
import urllib.request
from datetime import datetime, timezone
from typing import Any

from feedrules.adapters.notification_formatting import format_notification
from feedrules.core.errors import NotificationError

API_BASE = "https://api.telegram.org"


class TelegramBotNotifier:
    """NotifierPort adapter for ``sendMessage`` on the Bot API."""

    def __init__(self, bot_token: str, chat_id: str, timeout_seconds: float = 10) -> None:
        self._url = f"{API_BASE}/bot{bot_token}/sendMessage"
        self._chat_id = chat_id
        self._timeout = timeout_seconds

    def _call(self, body: dict[str, Any]) -> dict[str, Any]:
        request = urllib.request.Request(
            self._url,
            data=json.dumps(body).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace")
            raise NotificationError(f"Bot API returned {e.code}: {detail}") from e
        except (urllib.error.URLError, OSError) as e:
            raise NotificationError(f"Bot API unreachable: {e}") from e

        try:
            answer = json.loads(raw or b"{}")
        except ValueError as e:
            raise NotificationError("Bot API sent an unreadable answer") from e
        if answer.get("ok") is False:
            raise NotificationError(f"Bot API refused the message: {answer.get('description', 'unknown error')}")
        return answer

    async def notify(self, message: str) -> None:
        text = format_notification(message, datetime.now(timezone.utc), mode="html")
        body = {
            "chat_id": self._chat_id,
            "text": text,
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        await asyncio.to_thread(self._call, body)
