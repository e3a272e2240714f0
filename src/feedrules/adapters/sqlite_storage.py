"""SQLite storage adapter.

Implements the core EntityStorePort and RuleStorePort using a simple SQLite
database. Calls are blocking; the async signatures only satisfy the ports.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Any, Optional

from feedrules.core.errors import EntityAccessError, RuleStoreError
from feedrules.core.models import Article, Feed, parse_datetime

ALL_ARTICLES = "all"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the entity and rule store contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - articles: one row per article, keyed by guid
        - feeds: one row per feed; tags are a JSON array
        - rules: the ordered rule list, one JSON payload per position
        """

        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS articles (
                    guid TEXT PRIMARY KEY,
                    feed_id TEXT,
                    title TEXT,
                    link TEXT,
                    content TEXT,
                    snippet TEXT,
                    pub_date TIMESTAMP,
                    media_type TEXT,
                    discarded INTEGER NOT NULL DEFAULT 0,
                    read INTEGER NOT NULL DEFAULT 0,
                    reading_progress REAL NOT NULL DEFAULT 0,
                    favorite INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS feeds (
                    id TEXT PRIMARY KEY,
                    title TEXT,
                    url TEXT,
                    tags TEXT NOT NULL DEFAULT '[]',
                    added_at TIMESTAMP
                )
                """
            )
            # position keeps the user's ordering; evaluation is strictly list order.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rules (
                    position INTEGER PRIMARY KEY,
                    payload TEXT NOT NULL
                )
                """
            )

    # Articles

    @staticmethod
    def _article_from_row(row: sqlite3.Row) -> Article:
        return Article(
            guid=row["guid"],
            feed_id=row["feed_id"],
            title=row["title"] or "",
            link=row["link"] or "",
            content=row["content"] or "",
            snippet=row["snippet"] or "",
            pub_date=parse_datetime(row["pub_date"]),
            media_type=row["media_type"],
            discarded=bool(row["discarded"]),
            read=bool(row["read"]),
            reading_progress=float(row["reading_progress"]),
            favorite=bool(row["favorite"]),
        )

    async def get_article(self, guid: str) -> Optional[Article]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM articles WHERE guid = ?", (guid,)).fetchone()
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to load article {guid}: {exc}") from exc
        return self._article_from_row(row) if row else None

    async def get_articles_by_feed(self, scope: str) -> list[Article]:
        """Return articles of one feed, or every article for scope ``all``."""

        try:
            with self._connect() as conn:
                if scope == ALL_ARTICLES:
                    rows = conn.execute("SELECT * FROM articles ORDER BY rowid").fetchall()
                else:
                    rows = conn.execute(
                        "SELECT * FROM articles WHERE feed_id = ? ORDER BY rowid",
                        (scope,),
                    ).fetchall()
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to load articles for {scope}: {exc}") from exc
        return [self._article_from_row(row) for row in rows]

    async def save_article(self, article: Article) -> None:
        """Upsert an article by guid."""

        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO articles (
                        guid, feed_id, title, link, content, snippet, pub_date,
                        media_type, discarded, read, reading_progress, favorite
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(guid) DO UPDATE SET
                        feed_id = excluded.feed_id,
                        title = excluded.title,
                        link = excluded.link,
                        content = excluded.content,
                        snippet = excluded.snippet,
                        pub_date = excluded.pub_date,
                        media_type = excluded.media_type,
                        discarded = excluded.discarded,
                        read = excluded.read,
                        reading_progress = excluded.reading_progress,
                        favorite = excluded.favorite
                    """,
                    (
                        article.guid,
                        article.feed_id,
                        article.title,
                        article.link,
                        article.content,
                        article.snippet,
                        _iso(article.pub_date),
                        article.media_type,
                        int(article.discarded),
                        int(article.read),
                        article.reading_progress,
                        int(article.favorite),
                    ),
                )
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to save article {article.guid}: {exc}") from exc

    # Feeds

    @staticmethod
    def _feed_from_row(row: sqlite3.Row) -> Feed:
        try:
            tags = json.loads(row["tags"] or "[]")
        except ValueError:
            tags = []
        return Feed(
            id=row["id"],
            title=row["title"] or "",
            url=row["url"] or "",
            tags=[str(tag) for tag in tags] if isinstance(tags, list) else [],
            added_at=parse_datetime(row["added_at"]),
        )

    async def get_feed(self, feed_id: str) -> Optional[Feed]:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT * FROM feeds WHERE id = ?", (feed_id,)).fetchone()
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to load feed {feed_id}: {exc}") from exc
        return self._feed_from_row(row) if row else None

    async def get_all_feeds(self) -> list[Feed]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT * FROM feeds ORDER BY rowid").fetchall()
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to load feeds: {exc}") from exc
        return [self._feed_from_row(row) for row in rows]

    async def save_feed(self, feed: Feed) -> None:
        """Upsert a feed by id."""

        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO feeds (id, title, url, tags, added_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        title = excluded.title,
                        url = excluded.url,
                        tags = excluded.tags,
                        added_at = excluded.added_at
                    """,
                    (feed.id, feed.title, feed.url, json.dumps(list(feed.tags)), _iso(feed.added_at)),
                )
        except sqlite3.Error as exc:
            raise EntityAccessError(f"Failed to save feed {feed.id}: {exc}") from exc

    # Rules

    async def load_rules(self) -> list[dict[str, Any]]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT payload FROM rules ORDER BY position").fetchall()
        except sqlite3.Error as exc:
            raise RuleStoreError(f"Failed to load rules: {exc}") from exc
        rules: list[dict[str, Any]] = []
        for row in rows:
            try:
                rules.append(json.loads(row["payload"]))
            except ValueError:
                continue
        return rules

    async def save_rules(self, rules: list[dict[str, Any]]) -> None:
        """Replace the stored rule list in one transaction."""

        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM rules")
                conn.executemany(
                    "INSERT INTO rules (position, payload) VALUES (?, ?)",
                    [(position, json.dumps(rule)) for position, rule in enumerate(rules)],
                )
        except sqlite3.Error as exc:
            raise RuleStoreError(f"Failed to save rules: {exc}") from exc
