"""Wiring of registry, rule book, evaluator and processor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from feedrules.core.conditions import Clock
from feedrules.core.definitions import register_definitions
from feedrules.core.ports import EntityStorePort, NotifierPort, RefreshPort, RuleStorePort, WebhookPort
from feedrules.core.processor import AutomationProcessor
from feedrules.core.registry import AutomationRegistry
from feedrules.core.rule_book import RuleBook
from feedrules.core.rules_engine import RuleEvaluator
from feedrules.core.validation import IdFactory, generate_id


@dataclass(frozen=True)
class AutomationEngine:
    registry: AutomationRegistry
    rule_book: RuleBook
    evaluator: RuleEvaluator
    processor: AutomationProcessor


def build_engine(
    entities: EntityStorePort,
    rule_store: RuleStorePort,
    notifier: NotifierPort,
    refresher: RefreshPort,
    webhook: WebhookPort,
    clock: Optional[Clock] = None,
    id_factory: IdFactory = generate_id,
) -> AutomationEngine:
    """Build an engine with the built-in definitions registered.

    Rules are not loaded yet; call ``await engine.rule_book.load()``.
    """

    registry = register_definitions(AutomationRegistry(), entities, notifier, refresher, webhook, clock)
    rule_book = RuleBook(rule_store, registry, id_factory)
    evaluator = RuleEvaluator(registry, rule_book)
    processor = AutomationProcessor(evaluator, rule_book, entities, refresher)
    return AutomationEngine(registry, rule_book, evaluator, processor)
