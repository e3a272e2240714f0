"""Engine-level error types.

Parse problems inside rule values never raise; only I/O with external
collaborators and blocking edit-time validation surface as exceptions.
"""

from __future__ import annotations


class AutomationError(Exception):
    """Base class for errors raised by the automation engine."""


class EntityAccessError(AutomationError):
    """Loading or saving an article/feed through the entity store failed."""


class RuleStoreError(AutomationError):
    """Loading or saving the persisted rule list failed."""


class RuleValidationError(AutomationError):
    """A rule cannot be saved because it fails blocking validation."""

    def __init__(self, messages: list[str]) -> None:
        super().__init__("; ".join(messages))
        self.messages = list(messages)


class NotificationError(AutomationError):
    """A notifier adapter could not deliver a message."""


class WebhookError(AutomationError):
    """A webhook call failed or answered with a non-2xx status."""
