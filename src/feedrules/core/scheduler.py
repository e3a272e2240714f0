"""Periodic trigger for the ``scheduled`` event."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from feedrules.core.config import SchedulerConfig
from feedrules.core.processor import AutomationProcessor

LOGGER = logging.getLogger(__name__)


class ScheduledScanner:
    """Runs one scan shortly after start, then one per interval."""

    def __init__(self, processor: AutomationProcessor, config: SchedulerConfig) -> None:
        self._processor = processor
        self._config = config
        self._task: Optional[asyncio.Task] = None
        self.running = False

    async def run(self) -> None:
        self.running = True
        LOGGER.info("Scheduler started (interval=%ss)", self._config.interval_seconds)
        await asyncio.sleep(self._config.initial_delay_seconds)
        while self.running:
            try:
                await self._processor.run_scheduled_scan()
            except Exception:
                # Keep the timer alive; the next tick retries.
                LOGGER.exception("Error in scheduled scan")
            await asyncio.sleep(self._config.interval_seconds)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        LOGGER.info("Stopping scheduler...")
        self.running = False
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
