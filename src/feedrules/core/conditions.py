"""Built-in condition definitions.

| Condition         | Targets        | Value                     | Match context   |
|-------------------|----------------|---------------------------|-----------------|
| always            | article, feed  | -                         | -               |
| title_contains    | article, feed  | substring                 | lowered value   |
| content_contains  | article        | substring                 | lowered value   |
| url_contains      | article, feed  | substring                 | lowered value   |
| feed_is           | article        | feed id                   | -               |
| has_media         | article        | -                         | -               |
| has_tag           | article, feed  | JSON array or single tag  | -               |
| date_check        | article, feed  | operator:operand          | -               |

New conditions are added by registering more definitions, never by
touching the evaluator.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import datetime
from typing import Any, Optional

from feedrules.core.models import (
    ARTICLE,
    FEED,
    Article,
    Feed,
    MatchResult,
    Target,
    date_of,
    parse_datetime,
    title_of,
    url_of,
)
from feedrules.core.ports import EntityStorePort
from feedrules.core.registry import ConditionDefinition
from feedrules.core.values import parse_int, parse_tag_list, split_operator

LOGGER = logging.getLogger(__name__)

ALL_TARGETS = frozenset({ARTICLE, FEED})
ARTICLE_ONLY = frozenset({ARTICLE})

SECONDS_PER_DAY = 24 * 60 * 60

Clock = Callable[[], datetime]


def _contains(haystack: str, value: Optional[str]) -> MatchResult:
    needle = (value or "").lower()
    is_match = needle in haystack.lower()
    return MatchResult(is_match=is_match, match_context=needle if is_match else "")


def always(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    return MatchResult(is_match=True)


def title_contains(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    return _contains(title_of(target), value)


def content_contains(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    if not isinstance(target, Article):
        return MatchResult(is_match=False)
    return _contains(f"{target.content or ''} {target.snippet or ''}", value)


def url_contains(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    return _contains(url_of(target), value)


def feed_is(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    feed_id = getattr(target, "feed_id", None)
    return MatchResult(is_match=feed_id is not None and feed_id == value)


def has_media(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
    return MatchResult(is_match=bool(getattr(target, "media_type", None)))


def make_has_tag(entities: EntityStorePort) -> Callable[..., Any]:
    """Build ``has_tag``; articles are checked against their owning feed's tags."""

    async def has_tag(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
        tags: list[str] = []
        if isinstance(target, Feed):
            tags = target.tags or []
        elif target.feed_id:
            feed = await entities.get_feed(target.feed_id)
            if feed:
                tags = feed.tags or []

        present = {tag.lower() for tag in tags}
        required = parse_tag_list(value)
        return MatchResult(is_match=any(tag.lower() in present for tag in required))

    return has_tag


def _day_difference(now: datetime, then: datetime) -> int:
    return math.ceil(abs((now - then).total_seconds()) / SECONDS_PER_DAY)


def make_date_check(clock: Clock) -> Callable[..., Any]:
    """Build ``date_check`` around an injectable clock.

    Operators:
    - ``more_recent_than:N``: whole-day difference <= N
    - ``older_than:N``: whole-day difference > N
    - ``before:DATE`` / ``after:DATE``: comparison with an absolute date
    """

    def date_check(target: Target, value: str, extra_context: Optional[dict[str, Any]]) -> MatchResult:
        # Naive datetimes count as UTC, the same rule parse_datetime applies.
        now = parse_datetime(clock())
        operator, operand = split_operator(value)
        target_date = parse_datetime(date_of(target)) or now

        if operator in ("more_recent_than", "older_than"):
            days = parse_int(operand)
            if days is None:
                return MatchResult(is_match=False)
            difference = _day_difference(now, target_date)
            if operator == "more_recent_than":
                return MatchResult(is_match=difference <= days)
            return MatchResult(is_match=difference > days)

        if operator in ("before", "after"):
            compare_date = parse_datetime(operand)
            if compare_date is None:
                return MatchResult(is_match=False)
            if operator == "before":
                return MatchResult(is_match=target_date < compare_date)
            return MatchResult(is_match=target_date > compare_date)

        LOGGER.debug("Unknown date_check operator %r", operator)
        return MatchResult(is_match=False)

    return date_check


def builtin_conditions(entities: EntityStorePort, clock: Clock) -> list[ConditionDefinition]:
    """Return the built-in conditions in their default registration order."""

    return [
        ConditionDefinition("always", "Always (No Condition)", always, ALL_TARGETS),
        ConditionDefinition("title_contains", "Title Contains", title_contains, ALL_TARGETS),
        ConditionDefinition("content_contains", "Content Contains", content_contains, ARTICLE_ONLY),
        ConditionDefinition("url_contains", "URL Contains", url_contains, ALL_TARGETS),
        ConditionDefinition("feed_is", "Feed Is", feed_is, ARTICLE_ONLY),
        ConditionDefinition("has_media", "Has Media (Audio/Video)", has_media, ARTICLE_ONLY),
        ConditionDefinition("has_tag", "Has Tag", make_has_tag(entities), ALL_TARGETS),
        ConditionDefinition("date_check", "Date Check", make_date_check(clock), ALL_TARGETS),
    ]
