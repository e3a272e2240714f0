"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any storage- or host-specific record types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal, Optional, Union

ARTICLE = "article"
FEED = "feed"
TARGET_TYPES = (ARTICLE, FEED)

TargetType = Literal["article", "feed"]

MATCH_ALL = "all"
MATCH_ANY = "any"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Coerce a stored date into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (a trailing ``Z`` included) and epoch
    milliseconds. Returns None for empty or unparseable values.
    """

    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class Article:
    """An article as handed over by the host repository."""

    guid: str
    feed_id: Optional[str] = None
    title: str = ""
    link: str = ""
    content: str = ""
    snippet: str = ""
    pub_date: Optional[datetime] = None
    media_type: Optional[str] = None
    discarded: bool = False
    read: bool = False
    reading_progress: float = 0.0
    favorite: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        guid = _pick(data, "guid", "id")
        if not guid:
            raise ValueError("article is missing a guid")
        feed_id = _pick(data, "feedId", "feed_id")
        return cls(
            guid=str(guid),
            feed_id=str(feed_id) if feed_id is not None else None,
            title=_pick(data, "title", default=""),
            link=_pick(data, "link", "url", default=""),
            content=_pick(data, "content", default=""),
            snippet=_pick(data, "snippet", default=""),
            pub_date=parse_datetime(_pick(data, "pubDate", "pub_date")),
            media_type=_pick(data, "mediaType", "media_type"),
            discarded=bool(_pick(data, "discarded", default=False)),
            read=bool(_pick(data, "read", default=False)),
            reading_progress=float(_pick(data, "readingProgress", "reading_progress", default=0.0)),
            favorite=bool(_pick(data, "favorite", default=False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "guid": self.guid,
            "feedId": self.feed_id,
            "title": self.title,
            "link": self.link,
            "content": self.content,
            "snippet": self.snippet,
            "pubDate": _format_datetime(self.pub_date),
            "mediaType": self.media_type,
            "discarded": self.discarded,
            "read": self.read,
            "readingProgress": self.reading_progress,
            "favorite": self.favorite,
        }


@dataclass
class Feed:
    """A subscribed feed. Tags are kept in insertion order."""

    id: str
    title: str = ""
    url: str = ""
    tags: list[str] = field(default_factory=list)
    added_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Feed":
        feed_id = _pick(data, "id")
        if not feed_id:
            raise ValueError("feed is missing an id")
        return cls(
            id=str(feed_id),
            title=_pick(data, "title", default=""),
            url=_pick(data, "url", default=""),
            tags=[str(tag) for tag in _pick(data, "tags", default=[])],
            added_at=parse_datetime(_pick(data, "addedAt", "added_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "tags": list(self.tags),
            "addedAt": _format_datetime(self.added_at),
        }


Target = Union[Article, Feed]


def target_type_of(target: Target) -> str:
    return FEED if isinstance(target, Feed) else ARTICLE


def title_of(target: Target) -> str:
    return target.title or ""


def url_of(target: Target) -> str:
    if isinstance(target, Feed):
        return target.url or ""
    return target.link or ""


def date_of(target: Target) -> Optional[datetime]:
    if isinstance(target, Feed):
        return target.added_at
    return target.pub_date


@dataclass(frozen=True)
class RuleCondition:
    """One condition row of a rule, referencing a condition definition id."""

    id: str
    field: str
    invert: bool = False
    value: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "field": self.field, "invert": self.invert, "value": self.value}


@dataclass(frozen=True)
class RuleAction:
    """One action row of a rule, referencing an action definition id."""

    id: str
    type: str
    value: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "value": self.value}


@dataclass(frozen=True)
class Rule:
    """Persisted, user-authored automation rule."""

    id: str
    name: str
    event: str
    match_type: str = MATCH_ALL
    conditions: tuple[RuleCondition, ...] = ()
    actions: tuple[RuleAction, ...] = ()
    enabled: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "event": self.event,
            "matchType": self.match_type,
            "conditions": [condition.to_dict() for condition in self.conditions],
            "actions": [action.to_dict() for action in self.actions],
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class MatchResult:
    """Outcome of a single condition evaluation."""

    is_match: bool
    match_context: str = ""


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a single action; ``modified`` refers to the rule's target only."""

    modified: bool = False


@dataclass(frozen=True)
class EvaluationResult:
    """Working copy after all matching rules ran."""

    target: Target
    modified: bool
    matched_rules: tuple[str, ...] = ()
