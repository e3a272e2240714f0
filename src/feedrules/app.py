"""Application entry point for the feedrules automation engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv

from feedrules import settings
from feedrules.adapters.console import LoggingNotifier, LoggingRefresher
from feedrules.adapters.sqlite_storage import SQLiteStorage
from feedrules.adapters.telegram_bot_notifier import TelegramBotNotifier
from feedrules.adapters.telegram_notifier import TelegramSavedMessagesNotifier
from feedrules.adapters.webhook import HttpWebhook
from feedrules.client import build_client
from feedrules.core.config import SchedulerConfig, WebhookConfig
from feedrules.core.engine import AutomationEngine, build_engine
from feedrules.core.errors import AutomationError, RuleValidationError
from feedrules.core.models import Article, Feed
from feedrules.core.rules_engine import build_rules
from feedrules.core.scheduler import ScheduledScanner

NAME = "FEEDRULES"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/feedrules.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


async def _build_notifier():
    """Select the notification adapter; returns (notifier, telegram client or None)."""

    if settings.NOTIFICATION_METHOD == "bot":
        load_dotenv()
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        notifier = TelegramBotNotifier(bot_token=bot_token, chat_id=str(settings.BOT_CHAT_ID))
        return notifier, None
    if settings.NOTIFICATION_METHOD == "saved_messages":
        client = build_client()
        await client.start()
        return TelegramSavedMessagesNotifier(client), client
    if settings.NOTIFICATION_METHOD == "log":
        return LoggingNotifier(), None
    raise RuntimeError("notification_method must be 'log', 'bot' or 'saved_messages'")


class _Session:
    """Engine plus the resources it holds open for one CLI command."""

    def __init__(self, storage: SQLiteStorage, engine: AutomationEngine, refresher: LoggingRefresher, client) -> None:
        self.storage = storage
        self.engine = engine
        self.refresher = refresher
        self.client = client

    async def close(self) -> None:
        if self.client is not None:
            await self.client.disconnect()


async def _open_session() -> _Session:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    notifier, client = await _build_notifier()
    LOGGER.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)
    refresher = LoggingRefresher()
    engine = build_engine(
        entities=storage,
        rule_store=storage,
        notifier=notifier,
        refresher=refresher,
        webhook=HttpWebhook(WebhookConfig(timeout_seconds=settings.WEBHOOK_TIMEOUT_SECONDS)),
    )
    await engine.rule_book.load()
    return _Session(storage, engine, refresher, client)


def _read_json_list(path: str) -> list[dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON object or array")
    return data


async def _run_async() -> None:
    session = await _open_session()
    config = SchedulerConfig(
        enabled=settings.SCHEDULER_ENABLED,
        interval_seconds=settings.SCHEDULER_INTERVAL_SECONDS,
        initial_delay_seconds=settings.SCHEDULER_INITIAL_DELAY_SECONDS,
    )
    if not config.enabled:
        LOGGER.info("Scheduler is disabled; nothing to run")
        await session.close()
        return

    scanner = ScheduledScanner(session.engine.processor, config)
    LOGGER.info("Engine ready. Running scheduled scans...")
    try:
        await scanner.start()
    finally:
        await scanner.stop()
        await session.close()


async def _scan_async() -> None:
    session = await _open_session()
    try:
        modified = await session.engine.processor.run_scheduled_scan()
        print(f"Scheduled scan modified {modified} article(s)")
    finally:
        await session.close()


async def _ingest_async(path: str) -> None:
    session = await _open_session()
    try:
        articles = [Article.from_dict(item) for item in _read_json_list(path)]
        processed = await session.engine.processor.process_articles(articles)
        for article in processed:
            await session.storage.save_article(article)
        discarded = sum(1 for article in processed if article.discarded)
        print(f"Ingested {len(processed)} article(s), {discarded} discarded")
    finally:
        await session.close()


async def _feeds_import_async(path: str) -> None:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    feeds = [Feed.from_dict(item) for item in _read_json_list(path)]
    for feed in feeds:
        await storage.save_feed(feed)
    print(f"Imported {len(feeds)} feed(s)")


async def _event_async(args: argparse.Namespace) -> None:
    if args.name.startswith("article-") and not args.guid:
        raise ValueError(f"{args.name} requires --guid")
    if args.name.startswith("feed-") and not args.feed_id:
        raise ValueError(f"{args.name} requires --feed-id")
    if args.name == "feed-tag-added" and not args.tag:
        raise ValueError("feed-tag-added requires --tag")

    session = await _open_session()
    try:
        payload: dict[str, Any] = {"guid": args.guid, "feedId": args.feed_id, "tag": args.tag}
        if args.name == "article-favorited":
            payload["favorite"] = not args.unfavorite
        if args.name == "feed-added":
            feed = await session.storage.get_feed(args.feed_id)
            if feed is None:
                print(f"Feed {args.feed_id} not found")
                return
            payload["feed"] = feed
        modified = await session.engine.processor.handle_host_event(args.name, payload)
        print(f"{args.name}: {'modified' if modified else 'unchanged'}")
    finally:
        await session.close()


async def _rules_async(args: argparse.Namespace) -> None:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    engine = build_engine(
        entities=storage,
        rule_store=storage,
        notifier=LoggingNotifier(),
        refresher=LoggingRefresher(),
        webhook=HttpWebhook(WebhookConfig(timeout_seconds=settings.WEBHOOK_TIMEOUT_SECONDS)),
    )
    rule_book = engine.rule_book
    await rule_book.load()

    if args.rules_command == "import":
        rules = build_rules(_read_json_list(args.path))
        await rule_book.replace_all(rules)
        print(f"Imported {len(rules)} rule(s)")
        return
    if args.rules_command == "delete":
        deleted = await rule_book.delete_rule(args.rule_id)
        print("Deleted" if deleted else f"Rule {args.rule_id} not found")
        return
    if args.rules_command == "validate":
        for rule in rule_book.snapshot():
            validation = rule_book.validate(rule)
            status = "ok" if validation.ok else "error"
            print(f"{rule.id} {rule.name!r}: {status}")
            for message in validation.errors + validation.warnings:
                print(f"  - {message}")
        return

    rules = rule_book.snapshot()
    if not rules:
        print("No automation rules created yet.")
        return
    for rule in rules:
        disabled = "" if rule.enabled else " (disabled)"
        print(f"{rule.id} | {rule.name}{disabled} | {rule_book.describe(rule)}")


def _dispatch(args: argparse.Namespace) -> None:
    if args.command == "scan":
        asyncio.run(_scan_async())
    elif args.command == "ingest":
        asyncio.run(_ingest_async(args.path))
    elif args.command == "feeds":
        asyncio.run(_feeds_import_async(args.path))
    elif args.command == "event":
        asyncio.run(_event_async(args))
    elif args.command == "rules":
        asyncio.run(_rules_async(args))
    else:
        _print_banner()
        LOGGER.info("Starting feedrules")
        try:
            asyncio.run(_run_async())
        except KeyboardInterrupt:
            LOGGER.info("Stopped")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="feedrules")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the scheduled scanner")
    subparsers.add_parser("scan", help="Run the scheduled rules once")

    ingest = subparsers.add_parser("ingest", help="Run new_article rules over a JSON batch and store it")
    ingest.add_argument("path")

    feeds = subparsers.add_parser("feeds", help="Import feeds from a JSON file")
    feeds.add_argument("path")

    event = subparsers.add_parser("event", help="Deliver one host event")
    event.add_argument(
        "name",
        choices=["article-favorited", "article-read", "feed-added", "feed-tag-added"],
    )
    event.add_argument("--guid")
    event.add_argument("--feed-id")
    event.add_argument("--tag")
    event.add_argument("--unfavorite", action="store_true")

    rules = subparsers.add_parser("rules", help="Manage automation rules")
    rules_sub = rules.add_subparsers(dest="rules_command")
    rules_sub.add_parser("list", help="List rules in evaluation order")
    rules_sub.add_parser("validate", help="Report invalid or stale rule references")
    delete = rules_sub.add_parser("delete", help="Delete a rule by id")
    delete.add_argument("rule_id")
    import_rules = rules_sub.add_parser("import", help="Replace all rules with a JSON file")
    import_rules.add_argument("path")

    args = parser.parse_args(argv)
    _configure_logging()

    try:
        _dispatch(args)
    except RuleValidationError as exc:
        parser.exit(1, f"Rule validation failed: {exc}\n")
    except (AutomationError, OSError, ValueError) as exc:
        LOGGER.exception("Command failed")
        parser.exit(1, f"Error: {exc}\n")


if __name__ == "__main__":
    main()
