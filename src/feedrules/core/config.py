"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SchedulerConfig:
    """Periodic scan settings for the ``scheduled`` event."""

    enabled: bool = True
    interval_seconds: float = 60 * 60
    initial_delay_seconds: float = 5


@dataclass(frozen=True)
class WebhookConfig:
    """Outbound webhook settings consumed by the webhook adapter."""

    timeout_seconds: float = 10
