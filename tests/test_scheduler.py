from __future__ import annotations

import asyncio

from feedrules.core.config import SchedulerConfig
from feedrules.core.scheduler import ScheduledScanner


class FakeProcessor:
    def __init__(self, fail_first: bool = False) -> None:
        self.scans = 0
        self.fail_first = fail_first

    async def run_scheduled_scan(self) -> int:
        self.scans += 1
        if self.fail_first and self.scans == 1:
            raise RuntimeError("store offline")
        return 0


async def _run_until(scanner: ScheduledScanner, processor: FakeProcessor, scans: int) -> None:
    scanner.start()
    for _ in range(200):
        if processor.scans >= scans:
            break
        await asyncio.sleep(0.01)
    await scanner.stop()


def test_scanner_repeats_until_stopped() -> None:
    processor = FakeProcessor()
    scanner = ScheduledScanner(processor, SchedulerConfig(interval_seconds=0.01, initial_delay_seconds=0))

    asyncio.run(_run_until(scanner, processor, 3))

    assert processor.scans >= 3
    assert scanner.running is False


def test_scanner_survives_a_failing_scan() -> None:
    processor = FakeProcessor(fail_first=True)
    scanner = ScheduledScanner(processor, SchedulerConfig(interval_seconds=0.01, initial_delay_seconds=0))

    asyncio.run(_run_until(scanner, processor, 2))

    assert processor.scans >= 2


def test_start_is_idempotent_while_running() -> None:
    async def scenario() -> None:
        scanner = ScheduledScanner(FakeProcessor(), SchedulerConfig(initial_delay_seconds=60))
        first = scanner.start()
        assert scanner.start() is first
        await scanner.stop()
        assert first.cancelled()

    asyncio.run(scenario())
