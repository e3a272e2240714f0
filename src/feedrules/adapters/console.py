"""Log-based notifier and refresh adapters for headless runs."""

from __future__ import annotations

import logging

LOGGER = logging.getLogger(__name__)


class LoggingNotifier:
    """NotifierPort adapter that writes notifications to the log."""

    async def notify(self, message: str) -> None:
        LOGGER.info("Notification: %s", message)


class LoggingRefresher:
    """RefreshPort adapter that counts and logs refresh requests."""

    def __init__(self) -> None:
        self.requests = 0

    def request_refresh(self) -> None:
        self.requests += 1
        LOGGER.debug("Refresh requested (%s so far)", self.requests)
