from __future__ import annotations

import asyncio
import json
import urllib.request

import pytest

from feedrules.adapters.webhook import HttpWebhook
from feedrules.core.config import WebhookConfig
from feedrules.core.errors import WebhookError


class FakeResponse:
    def __init__(self, status: int) -> None:
        self.status = status

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info) -> None:
        return None


@pytest.fixture
def captured(monkeypatch):
    calls = []
    status = [204]

    def fake_urlopen(request, timeout):
        calls.append((request, timeout))
        return FakeResponse(status[0])

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return calls, status


def test_posts_json_payload(captured) -> None:
    calls, _ = captured
    webhook = HttpWebhook(WebhookConfig(timeout_seconds=3))

    asyncio.run(webhook.post("https://hooks.example/in", {"rule": "r", "target": {"guid": "a"}}))

    ((request, timeout),) = calls
    assert timeout == 3
    assert request.get_method() == "POST"
    assert request.get_header("Content-type") == "application/json"
    assert json.loads(request.data) == {"rule": "r", "target": {"guid": "a"}}


def test_non_2xx_status_raises(captured) -> None:
    _, status = captured
    status[0] = 302
    with pytest.raises(WebhookError):
        asyncio.run(HttpWebhook(WebhookConfig()).post("https://hooks.example/in", {}))


def test_malformed_url_raises_webhook_error() -> None:
    with pytest.raises(WebhookError):
        asyncio.run(HttpWebhook(WebhookConfig()).post("not a url", {}))
