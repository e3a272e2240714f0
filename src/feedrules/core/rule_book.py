"""In-memory rule list with snapshot reads and serialized writes.

Readers always get an immutable tuple, so an evaluation that started before
an edit keeps seeing the list it started with. Writers are serialized by a
lock and only swap the tuple after the store accepted the new list.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

from feedrules.core.definitions import NEW_ARTICLE
from feedrules.core.errors import RuleValidationError
from feedrules.core.models import MATCH_ALL, Rule, RuleAction, RuleCondition
from feedrules.core.ports import RuleStorePort
from feedrules.core.registry import AutomationRegistry
from feedrules.core.rules_engine import split_rules
from feedrules.core.validation import IdFactory, RuleValidation, generate_id, validate_rule

LOGGER = logging.getLogger(__name__)


class RuleBook:
    """Single-writer access to the ordered rule list."""

    def __init__(
        self,
        store: RuleStorePort,
        registry: AutomationRegistry,
        id_factory: IdFactory = generate_id,
    ) -> None:
        self._store = store
        self._registry = registry
        self._id_factory = id_factory
        self._rules: tuple[Rule, ...] = ()
        # Stored records that could not be read; written back untouched on save.
        self._unreadable: list[Any] = []
        self._lock = asyncio.Lock()

    async def load(self) -> tuple[Rule, ...]:
        """Replace the in-memory list with the stored one."""

        async with self._lock:
            raw = await self._store.load_rules()
            rules, self._unreadable = split_rules(raw or [])
            self._rules = tuple(rules)
        LOGGER.info("%s rules are loaded", len(self._rules))
        if self._unreadable:
            LOGGER.warning(
                "%s unreadable rule records are kept in the store and ignored by evaluation",
                len(self._unreadable),
            )
        return self._rules

    def snapshot(self) -> tuple[Rule, ...]:
        return self._rules

    def get(self, rule_id: str) -> Optional[Rule]:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def has_event(self, event_id: str) -> bool:
        return any(rule.event == event_id and rule.enabled for rule in self._rules)

    def new_rule(self) -> Rule:
        """Return the default draft rule (not yet stored)."""

        return Rule(
            id=self._id_factory(),
            name="New Rule",
            event=NEW_ARTICLE,
            match_type=MATCH_ALL,
            conditions=(RuleCondition(id=self._id_factory(), field="title_contains"),),
            actions=(RuleAction(id=self._id_factory(), type="discard"),),
        )

    def validate(self, rule: Rule) -> RuleValidation:
        return validate_rule(rule, self._registry)

    async def save_rule(self, rule: Rule) -> RuleValidation:
        """Append ``rule`` or replace the stored rule with the same id.

        Raises RuleValidationError when blocking validation fails; the
        returned validation carries the non-blocking warnings.
        """

        validation = self.validate(rule)
        if not validation.ok:
            raise RuleValidationError(validation.errors)

        async with self._lock:
            rules = list(self._rules)
            for index, existing in enumerate(rules):
                if existing.id == rule.id:
                    rules[index] = rule
                    break
            else:
                rules.append(rule)
            await self._commit(rules)
        for warning in validation.warnings:
            LOGGER.warning("Rule %s: %s", rule.name, warning)
        return validation

    async def delete_rule(self, rule_id: str) -> bool:
        async with self._lock:
            rules = [rule for rule in self._rules if rule.id != rule_id]
            if len(rules) == len(self._rules):
                return False
            await self._commit(rules)
        return True

    async def replace_all(self, rules: list[Rule]) -> None:
        """Store ``rules`` as the whole list; every rule must pass validation.

        Unreadable stored records are dropped as well.
        """

        errors: list[str] = []
        for rule in rules:
            validation = self.validate(rule)
            errors.extend(f"{rule.id}: {message}" for message in validation.errors)
        if errors:
            raise RuleValidationError(errors)
        async with self._lock:
            dropped = len(self._unreadable)
            await self._commit(list(rules), unreadable=[])
        if dropped:
            LOGGER.warning("Dropped %s unreadable rule records", dropped)

    async def _commit(self, rules: list[Rule], unreadable: Optional[list[Any]] = None) -> None:
        kept = self._unreadable if unreadable is None else unreadable
        await self._store.save_rules([rule.to_dict() for rule in rules] + list(kept))
        self._rules = tuple(rules)
        self._unreadable = list(kept)

    def describe(self, rule: Rule) -> str:
        """Summarize a rule as ``When <event> • N conditions • M actions``."""

        event = self._registry.get_event(rule.event)
        event_name = event.label if event else rule.event
        conditions = len(rule.conditions)
        actions = len(rule.actions)
        condition_text = f"{conditions} condition{'' if conditions == 1 else 's'}"
        action_text = f"{actions} action{'' if actions == 1 else 's'}"
        return f"When {event_name} • {condition_text} • {action_text}"
