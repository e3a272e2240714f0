"""HTTP webhook adapter.

Posts the automation payload as JSON. The request is blocking, so it runs
in a worker thread with a bounded timeout to keep the scheduled scan moving.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from feedrules.core.config import WebhookConfig
from feedrules.core.errors import WebhookError

LOGGER = logging.getLogger(__name__)


class HttpWebhook:
    """WebhookPort adapter built on urllib."""

    def __init__(self, config: WebhookConfig) -> None:
        self._timeout = config.timeout_seconds

    def _post_blocking(self, url: str, payload: dict[str, Any]) -> int:
        data = json.dumps(payload, default=str).encode("utf-8")
        try:
            request = urllib.request.Request(url, data=data, method="POST")
            request.add_header("Content-Type", "application/json")
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                return response.status
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace")
            raise WebhookError(f"Webhook error {e.code}: {body}") from e
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise WebhookError(f"Webhook transport error: {e}") from e

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        """POST ``payload`` to ``url``; raises WebhookError unless 2xx."""

        status = await asyncio.to_thread(self._post_blocking, url, payload)
        if not 200 <= status < 300:
            raise WebhookError(f"Webhook answered with status {status}")
        LOGGER.debug("Webhook %s answered %s", url, status)
