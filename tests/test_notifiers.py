from __future__ import annotations

import asyncio
import json
import urllib.request

import pytest

from feedrules.adapters.console import LoggingNotifier, LoggingRefresher
from feedrules.adapters.telegram_bot_notifier import TelegramBotNotifier
from feedrules.adapters.telegram_notifier import TelegramSavedMessagesNotifier
from feedrules.core.errors import NotificationError


class FakeClient:
    def __init__(self, error: Exception | None = None) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.error = error

    async def send_message(self, entity: str, text: str, parse_mode: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append((entity, text, parse_mode))


def test_saved_messages_notifier_sends_markdown() -> None:
    client = FakeClient()
    asyncio.run(TelegramSavedMessagesNotifier(client).notify("Rule *hit*"))

    ((entity, text, parse_mode),) = client.sent
    assert entity == "me"
    assert parse_mode == "Markdown"
    assert r"Rule \*hit\*" in text


def test_saved_messages_notifier_wraps_connection_errors() -> None:
    notifier = TelegramSavedMessagesNotifier(FakeClient(error=ConnectionError("down")))
    with pytest.raises(NotificationError):
        asyncio.run(notifier.notify("x"))


class BotResponse:
    def __init__(self, body: bytes = b'{"ok": true}') -> None:
        self.body = body

    def __enter__(self) -> "BotResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def read(self) -> bytes:
        return self.body


def test_bot_notifier_posts_html(monkeypatch) -> None:
    requests = []

    def fake_urlopen(request, timeout):
        requests.append(request)
        return BotResponse()

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    asyncio.run(TelegramBotNotifier("TOKEN", "42").notify("a < b"))

    (request,) = requests
    assert request.full_url == "https://api.telegram.org/botTOKEN/sendMessage"
    payload = json.loads(request.data)
    assert payload["chat_id"] == "42"
    assert payload["parse_mode"] == "HTML"
    assert "a &lt; b" in payload["text"]


def test_bot_notifier_rejects_refused_messages(monkeypatch) -> None:
    answer = b'{"ok": false, "description": "chat not found"}'
    monkeypatch.setattr(urllib.request, "urlopen", lambda request, timeout: BotResponse(answer))
    with pytest.raises(NotificationError, match="chat not found"):
        asyncio.run(TelegramBotNotifier("TOKEN", "42").notify("x"))


def test_bot_notifier_wraps_transport_errors(monkeypatch) -> None:
    def fake_urlopen(request, timeout):
        raise OSError("unreachable")

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    with pytest.raises(NotificationError):
        asyncio.run(TelegramBotNotifier("TOKEN", "42").notify("x"))


def test_logging_adapters(caplog) -> None:
    caplog.set_level("DEBUG")
    asyncio.run(LoggingNotifier().notify("hello"))
    refresher = LoggingRefresher()
    refresher.request_refresh()
    refresher.request_refresh()

    assert refresher.requests == 2
    assert "Notification: hello" in caplog.text
