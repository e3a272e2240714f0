"""Core trigger dispatch.

This module is integration-agnostic. It adapts the three trigger shapes
(a batch of fetched articles, a single entity event, the scheduled scan)
into evaluator calls and only relies on ports for persistence and refresh.

Failures while processing one target are logged and never stop the rest of
a batch or scan.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from feedrules.core.definitions import (
    ARTICLE_FAVORITED,
    ARTICLE_READ,
    FEED_ADDED,
    FEED_TAG_ADDED,
    NEW_ARTICLE,
    SCHEDULED,
)
from feedrules.core.errors import AutomationError
from feedrules.core.models import ARTICLE, FEED, Article, Feed
from feedrules.core.ports import EntityStorePort, RefreshPort
from feedrules.core.rule_book import RuleBook
from feedrules.core.rules_engine import RuleEvaluator

LOGGER = logging.getLogger(__name__)

ALL_ARTICLES = "all"


class AutomationProcessor:
    """Orchestrates evaluation, persistence and refresh for every trigger."""

    def __init__(
        self,
        evaluator: RuleEvaluator,
        rule_book: RuleBook,
        entities: EntityStorePort,
        refresher: RefreshPort,
    ) -> None:
        self._evaluator = evaluator
        self._rule_book = rule_book
        self._entities = entities
        self._refresher = refresher

    async def process_articles(self, articles: list[Article], event_type: str = NEW_ARTICLE) -> list[Article]:
        """Run rules over a freshly fetched batch, replacing items in place.

        Nothing is persisted here; the host pipeline stores the batch itself.
        """

        rules = self._rule_book.snapshot()
        if not rules:
            return articles

        for index, article in enumerate(articles):
            try:
                result = await self._evaluator.apply_rules(article, ARTICLE, event_type, rules=rules)
            except AutomationError:
                LOGGER.exception("Failed to apply %s rules to article %s", event_type, article.guid)
                continue
            articles[index] = result.target
        return articles

    async def process_article_event(self, guid: str, event_type: str) -> bool:
        """Evaluate one stored article; persist and refresh only when modified."""

        try:
            article = await self._entities.get_article(guid)
            if article is None:
                LOGGER.debug("Article %s not found for %s", guid, event_type)
                return False
            result = await self._evaluator.apply_rules(article, ARTICLE, event_type)
            if not result.modified:
                return False
            await self._entities.save_article(result.target)
        except AutomationError:
            LOGGER.exception("Failed to process %s for article %s", event_type, guid)
            return False
        self._refresher.request_refresh()
        return True

    async def process_feed_event(
        self,
        feed: Feed,
        event_type: str,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Evaluate one feed; persist and refresh only when modified."""

        try:
            result = await self._evaluator.apply_rules(feed, FEED, event_type, extra_context)
            if not result.modified:
                return False
            await self._entities.save_feed(result.target)
        except AutomationError:
            LOGGER.exception("Failed to process %s for feed %s", event_type, feed.id)
            return False
        self._refresher.request_refresh()
        return True

    async def on_article_favorited(self, guid: str, favorite: bool = True) -> bool:
        if not favorite:
            return False
        return await self.process_article_event(guid, ARTICLE_FAVORITED)

    async def on_article_read(self, guid: str) -> bool:
        return await self.process_article_event(guid, ARTICLE_READ)

    async def on_feed_added(self, feed: Feed) -> bool:
        return await self.process_feed_event(feed, FEED_ADDED)

    async def on_feed_tag_added(self, feed_id: str, tag: str) -> bool:
        try:
            feed = await self._entities.get_feed(feed_id)
        except AutomationError:
            LOGGER.exception("Failed to load feed %s", feed_id)
            return False
        if feed is None:
            return False
        return await self.process_feed_event(feed, FEED_TAG_ADDED, {"tag": tag})

    async def handle_host_event(self, name: str, payload: dict[str, Any]) -> bool:
        """Route a host lifecycle event by name; unknown names are ignored."""

        if name == "article-favorited":
            return await self.on_article_favorited(str(payload["guid"]), bool(payload.get("favorite", True)))
        if name == "article-read":
            return await self.on_article_read(str(payload["guid"]))
        if name == "feed-added":
            feed = payload["feed"]
            if not isinstance(feed, Feed):
                feed = Feed.from_dict(feed)
            return await self.on_feed_added(feed)
        if name == "feed-tag-added":
            return await self.on_feed_tag_added(str(payload["feedId"]), str(payload["tag"]))
        LOGGER.debug("Ignoring host event %s", name)
        return False

    async def run_scheduled_scan(self) -> int:
        """Evaluate ``scheduled`` rules over every article; return saved count.

        A single refresh is requested after the whole scan.
        """

        rules = self._rule_book.snapshot()
        if not any(rule.event == SCHEDULED and rule.enabled for rule in rules):
            return 0

        try:
            articles = await self._entities.get_articles_by_feed(ALL_ARTICLES)
        except AutomationError:
            LOGGER.exception("Scheduled scan could not load articles")
            return 0

        modified_count = 0
        for article in articles:
            try:
                result = await self._evaluator.apply_rules(article, ARTICLE, SCHEDULED, rules=rules)
                if not result.modified:
                    continue
                await self._entities.save_article(result.target)
            except AutomationError:
                LOGGER.exception("Scheduled scan failed for article %s", article.guid)
                continue
            modified_count += 1

        if modified_count:
            self._refresher.request_refresh()
        LOGGER.info("Scheduled scan complete: articles=%s, modified=%s", len(articles), modified_count)
        return modified_count
