"""Built-in event catalog and registry bootstrap."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from feedrules.core.actions import builtin_actions
from feedrules.core.conditions import Clock, builtin_conditions
from feedrules.core.models import ARTICLE, FEED
from feedrules.core.ports import EntityStorePort, NotifierPort, RefreshPort, WebhookPort
from feedrules.core.registry import AutomationRegistry, EventDefinition

NEW_ARTICLE = "new_article"
ARTICLE_FAVORITED = "article_favorited"
ARTICLE_READ = "article_read"
FEED_ADDED = "feed_added"
FEED_TAG_ADDED = "feed_tag_added"
SCHEDULED = "scheduled"

BUILTIN_EVENTS = (
    EventDefinition(NEW_ARTICLE, "New Article Fetched", ARTICLE),
    EventDefinition(ARTICLE_FAVORITED, "Article Favorited", ARTICLE),
    EventDefinition(ARTICLE_READ, "Article Read", ARTICLE),
    EventDefinition(FEED_ADDED, "Feed Added", FEED),
    EventDefinition(FEED_TAG_ADDED, "Tag Added to Feed", FEED),
    EventDefinition(SCHEDULED, "Scheduled Time (Hourly)", ARTICLE),
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def register_definitions(
    registry: AutomationRegistry,
    entities: EntityStorePort,
    notifier: NotifierPort,
    refresher: RefreshPort,
    webhook: WebhookPort,
    clock: Optional[Clock] = None,
) -> AutomationRegistry:
    """Register every built-in event, condition and action on ``registry``."""

    for event in BUILTIN_EVENTS:
        registry.register_event(event)
    for condition in builtin_conditions(entities, clock or utc_now):
        registry.register_condition(condition)
    for action in builtin_actions(entities, notifier, refresher, webhook):
        registry.register_action(action)
    return registry
