from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from feedrules.core.engine import AutomationEngine, build_engine
from feedrules.core.errors import EntityAccessError, RuleStoreError
from feedrules.core.models import Article, Feed

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeEntityStore:
    def __init__(self) -> None:
        self.articles: dict[str, Article] = {}
        self.feeds: dict[str, Feed] = {}
        self.saved_articles: list[Article] = []
        self.saved_feeds: list[Feed] = []
        self.failing_guids: set[str] = set()
        self.scans = 0

    def add_article(self, article: Article) -> None:
        self.articles[article.guid] = article

    def add_feed(self, feed: Feed) -> None:
        self.feeds[feed.id] = feed

    async def get_article(self, guid: str) -> Optional[Article]:
        if guid in self.failing_guids:
            raise EntityAccessError(f"cannot load {guid}")
        article = self.articles.get(guid)
        return Article(**vars(article)) if article else None

    async def get_feed(self, feed_id: str) -> Optional[Feed]:
        feed = self.feeds.get(feed_id)
        if feed is None:
            return None
        return Feed(id=feed.id, title=feed.title, url=feed.url, tags=list(feed.tags), added_at=feed.added_at)

    async def get_all_feeds(self) -> list[Feed]:
        return [await self.get_feed(feed_id) for feed_id in self.feeds]

    async def get_articles_by_feed(self, scope: str) -> list[Article]:
        self.scans += 1
        return [
            Article(**vars(article))
            for article in self.articles.values()
            if scope == "all" or article.feed_id == scope
        ]

    async def save_article(self, article: Article) -> None:
        if article.guid in self.failing_guids:
            raise EntityAccessError(f"cannot save {article.guid}")
        self.articles[article.guid] = article
        self.saved_articles.append(article)

    async def save_feed(self, feed: Feed) -> None:
        self.feeds[feed.id] = feed
        self.saved_feeds.append(feed)


class FakeRuleStore:
    def __init__(self, rules: Optional[list[dict[str, Any]]] = None) -> None:
        self.rules = list(rules or [])
        self.saves = 0
        self.fail_on_save = False

    async def load_rules(self) -> list[dict[str, Any]]:
        return list(self.rules)

    async def save_rules(self, rules: list[dict[str, Any]]) -> None:
        if self.fail_on_save:
            raise RuleStoreError("disk full")
        self.rules = list(rules)
        self.saves += 1


class FakeNotifier:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.messages: list[str] = []
        self.error = error

    async def notify(self, message: str) -> None:
        if self.error is not None:
            raise self.error
        self.messages.append(message)


class FakeRefresher:
    def __init__(self) -> None:
        self.requests = 0

    def request_refresh(self) -> None:
        self.requests += 1


class FakeWebhook:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.error = error

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        self.calls.append((url, payload))
        if self.error is not None:
            raise self.error


class Harness:
    """Engine wired to in-memory fakes with a frozen clock."""

    def __init__(self, rules: Optional[list[dict[str, Any]]] = None) -> None:
        self.entities = FakeEntityStore()
        self.rule_store = FakeRuleStore(rules)
        self.notifier = FakeNotifier()
        self.refresher = FakeRefresher()
        self.webhook = FakeWebhook()
        counter = itertools.count(1)
        self.engine: AutomationEngine = build_engine(
            entities=self.entities,
            rule_store=self.rule_store,
            notifier=self.notifier,
            refresher=self.refresher,
            webhook=self.webhook,
            clock=lambda: NOW,
            id_factory=lambda: f"id-{next(counter)}",
        )

    async def load(self) -> "Harness":
        await self.engine.rule_book.load()
        return self


@pytest.fixture
def harness_factory():
    def factory(rules: Optional[list[dict[str, Any]]] = None) -> Harness:
        return Harness(rules)

    return factory


def make_rule(
    name: str = "rule",
    event: str = "new_article",
    conditions: Optional[list[dict[str, Any]]] = None,
    actions: Optional[list[dict[str, Any]]] = None,
    match_type: str = "all",
    rule_id: Optional[str] = None,
    **extra: Any,
) -> dict[str, Any]:
    raw = {
        "id": rule_id or f"rule-{name}",
        "name": name,
        "event": event,
        "matchType": match_type,
        "conditions": conditions or [],
        "actions": actions or [],
    }
    raw.update(extra)
    return raw


@pytest.fixture
def rule():
    return make_rule
