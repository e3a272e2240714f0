"""Built-in action definitions.

Every action reports ``modified=True`` only when it actually changed a field
of the rule's own target. Mutations that land on another entity (the owning
feed of an article) are persisted here and followed by a refresh request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Optional

from feedrules.core.errors import NotificationError
from feedrules.core.models import (
    ARTICLE,
    FEED,
    ActionResult,
    Article,
    Feed,
    Target,
    target_type_of,
)
from feedrules.core.ports import EntityStorePort, NotifierPort, RefreshPort, WebhookPort
from feedrules.core.registry import ActionDefinition
from feedrules.core.values import parse_tag_list

LOGGER = logging.getLogger(__name__)

ALL_TARGETS = frozenset({ARTICLE, FEED})
ARTICLE_ONLY = frozenset({ARTICLE})

NOT_MODIFIED = ActionResult(modified=False)
MODIFIED = ActionResult(modified=True)


def discard(target: Target, value: str, extra_context, rule_name: str, event_type: str) -> ActionResult:
    if not isinstance(target, Article) or target.discarded:
        return NOT_MODIFIED
    target.discarded = True
    return MODIFIED


def mark_read(target: Target, value: str, extra_context, rule_name: str, event_type: str) -> ActionResult:
    if not isinstance(target, Article) or (target.read and target.reading_progress == 1):
        return NOT_MODIFIED
    target.reading_progress = 1
    target.read = True
    return MODIFIED


def favorite(target: Target, value: str, extra_context, rule_name: str, event_type: str) -> ActionResult:
    if not isinstance(target, Article) or target.favorite:
        return NOT_MODIFIED
    target.favorite = True
    return MODIFIED


def _with_tags_added(tags: list[str], new_tags: list[str]) -> list[str]:
    result = list(tags)
    present = {tag.lower() for tag in result}
    for tag in new_tags:
        if tag.lower() not in present:
            result.append(tag)
            present.add(tag.lower())
    return result


def _with_tags_removed(tags: list[str], old_tags: list[str]) -> list[str]:
    removed = {tag.lower() for tag in old_tags}
    return [tag for tag in tags if tag.lower() not in removed]


def _make_feed_tag_action(
    entities: EntityStorePort,
    refresher: RefreshPort,
    change: Callable[[list[str], list[str]], list[str]],
) -> Callable[..., Any]:
    """Build an action that rewrites the tags of a feed target or an article's feed."""

    async def execute(
        target: Target,
        value: str,
        extra_context: Optional[dict[str, Any]],
        rule_name: str,
        event_type: str,
    ) -> ActionResult:
        tags = parse_tag_list(value)
        if not tags:
            return NOT_MODIFIED

        if isinstance(target, Feed):
            updated = change(target.tags or [], tags)
            if updated == (target.tags or []):
                return NOT_MODIFIED
            # New list; the caller's feed still holds the old one.
            target.tags = updated
            return MODIFIED

        if not target.feed_id:
            return NOT_MODIFIED
        feed = await entities.get_feed(target.feed_id)
        if feed is None:
            LOGGER.debug("Feed %s not found for rule %s", target.feed_id, rule_name)
            return NOT_MODIFIED
        updated = change(feed.tags or [], tags)
        if updated == (feed.tags or []):
            return NOT_MODIFIED
        feed.tags = updated
        await entities.save_feed(feed)
        refresher.request_refresh()
        LOGGER.info("Rule %s updated tags of feed %s", rule_name, feed.id)
        # The article itself is unchanged.
        return NOT_MODIFIED

    return execute


def make_notify(notifier: NotifierPort) -> Callable[..., Any]:
    async def notify(
        target: Target,
        value: str,
        extra_context: Optional[dict[str, Any]],
        rule_name: str,
        event_type: str,
    ) -> ActionResult:
        try:
            await notifier.notify(value or f"Automation: {rule_name} triggered")
        except NotificationError as exc:
            LOGGER.warning("Notification failed for rule %s: %s", rule_name, exc)
        return NOT_MODIFIED

    return notify


def make_trigger_webhook(webhook: WebhookPort) -> Callable[..., Any]:
    async def trigger_webhook(
        target: Target,
        value: str,
        extra_context: Optional[dict[str, Any]],
        rule_name: str,
        event_type: str,
    ) -> ActionResult:
        url = (value or "").strip()
        if not url:
            LOGGER.warning("Rule %s has a webhook action without a URL", rule_name)
            return NOT_MODIFIED

        payload = {
            "event": event_type,
            "rule": rule_name,
            "targetType": target_type_of(target),
            "target": target.to_dict(),
            "extraContext": dict(extra_context or {}),
        }
        # Webhook failures never abort the rule or the surrounding batch.
        try:
            await webhook.post(url, payload)
        except Exception as exc:
            LOGGER.warning("Webhook failed for rule %s (%s): %s", rule_name, url, exc)
        return NOT_MODIFIED

    return trigger_webhook


def builtin_actions(
    entities: EntityStorePort,
    notifier: NotifierPort,
    refresher: RefreshPort,
    webhook: WebhookPort,
) -> list[ActionDefinition]:
    """Return the built-in actions in their default registration order."""

    return [
        ActionDefinition("discard", "Discard Article", discard, ARTICLE_ONLY),
        ActionDefinition("mark_read", "Mark as Read", mark_read, ARTICLE_ONLY),
        ActionDefinition("favorite", "Mark as Favorite", favorite, ARTICLE_ONLY),
        ActionDefinition(
            "add_tag",
            "Add Tag to Feed",
            _make_feed_tag_action(entities, refresher, _with_tags_added),
            ALL_TARGETS,
        ),
        ActionDefinition(
            "remove_tag",
            "Remove Tag from Feed",
            _make_feed_tag_action(entities, refresher, _with_tags_removed),
            ALL_TARGETS,
        ),
        ActionDefinition("notify", "Show Notification", make_notify(notifier), ALL_TARGETS),
        ActionDefinition(
            "trigger_webhook",
            "Trigger Webhook",
            make_trigger_webhook(webhook),
            ALL_TARGETS,
        ),
    ]
