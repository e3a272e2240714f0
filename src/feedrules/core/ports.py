"""Ports (interfaces) used by the core engine.

Ports define the minimal contracts for the host's entity store, the rule
store and the notification/refresh/webhook surfaces so that the core can be
reused with different backends.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from feedrules.core.models import Article, Feed


class EntityStorePort(Protocol):
    """Article and feed access. Failures are raised as EntityAccessError."""

    async def get_article(self, guid: str) -> Optional[Article]:
        ...

    async def get_feed(self, feed_id: str) -> Optional[Feed]:
        ...

    async def get_all_feeds(self) -> list[Feed]:
        ...

    async def get_articles_by_feed(self, scope: str) -> list[Article]:
        ...

    async def save_article(self, article: Article) -> None:
        ...

    async def save_feed(self, feed: Feed) -> None:
        ...


class RuleStorePort(Protocol):
    """Persistence of the ordered rule list in its raw dict form."""

    async def load_rules(self) -> list[dict[str, Any]]:
        ...

    async def save_rules(self, rules: list[dict[str, Any]]) -> None:
        ...


class NotifierPort(Protocol):
    """Transient user notification surface."""

    async def notify(self, message: str) -> None:
        ...


class RefreshPort(Protocol):
    """Fire-and-forget hint that views should re-read entities."""

    def request_refresh(self) -> None:
        ...


class WebhookPort(Protocol):
    """Outbound JSON POST. Raises WebhookError on failure."""

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        ...
