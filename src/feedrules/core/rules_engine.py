"""Rule compilation and evaluation logic (core domain)."""

from __future__ import annotations

import copy
import inspect
import logging
from typing import TYPE_CHECKING, Any, Iterable, List, Optional, Sequence

from feedrules.core.models import (
    MATCH_ALL,
    MATCH_ANY,
    EvaluationResult,
    MatchResult,
    Rule,
    RuleAction,
    RuleCondition,
    Target,
)
from feedrules.core.registry import AutomationRegistry
from feedrules.core.templating import replace_variables

if TYPE_CHECKING:
    from feedrules.core.rule_book import RuleBook

LOGGER = logging.getLogger(__name__)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def build_rule(raw: dict) -> Rule:
    """Normalize one persisted rule record.

    Missing optional fields fall back to defaults; condition and action ids
    are derived from the rule id when absent so they stay stable.
    """

    rule_id = _text(raw.get("id"))
    if not rule_id:
        raise ValueError("rule is missing an id")
    match_type = _text(raw.get("matchType") or raw.get("match_type") or MATCH_ALL).lower()
    conditions = tuple(
        RuleCondition(
            id=_text(item.get("id")) or f"{rule_id}-condition-{index}",
            field=_text(item.get("field")),
            invert=bool(item.get("invert", False)),
            value=_text(item.get("value")),
        )
        for index, item in enumerate(raw.get("conditions") or [])
    )
    actions = tuple(
        RuleAction(
            id=_text(item.get("id")) or f"{rule_id}-action-{index}",
            type=_text(item.get("type")),
            value=_text(item.get("value")),
        )
        for index, item in enumerate(raw.get("actions") or [])
    )
    return Rule(
        id=rule_id,
        name=_text(raw.get("name")),
        event=_text(raw.get("event")),
        match_type=match_type if match_type in (MATCH_ALL, MATCH_ANY) else MATCH_ALL,
        conditions=conditions,
        actions=actions,
        enabled=bool(raw.get("enabled", True)),
    )


def split_rules(rules_config: Iterable[Any]) -> tuple[List[Rule], List[Any]]:
    """Build rules in stored order; return them with the records that cannot be read."""

    compiled: List[Rule] = []
    unreadable: List[Any] = []
    for raw in rules_config:
        try:
            compiled.append(build_rule(raw))
        except (AttributeError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping unreadable rule record: %s", exc)
            unreadable.append(raw)
    return compiled, unreadable


def build_rules(rules_config: Iterable[Any]) -> List[Rule]:
    """Build rules in stored order, skipping records that cannot be read."""

    return split_rules(rules_config)[0]


async def _resolve(value: Any) -> Any:
    # Definitions may be plain functions or coroutines.
    if inspect.isawaitable(value):
        return await value
    return value


def combine_matches(match_type: str, matches: Sequence[MatchResult]) -> tuple[bool, str]:
    """Apply the ALL/ANY combinator and pick the propagated match context.

    - ``any``: matched iff one result matched; context of the first match.
    - ``all``: matched iff every result matched; first non-empty context.
    """

    if match_type == MATCH_ANY:
        for match in matches:
            if match.is_match:
                return True, match.match_context
        return False, ""

    if not all(match.is_match for match in matches):
        return False, ""
    for match in matches:
        if match.match_context:
            return True, match.match_context
    return True, ""


class RuleEvaluator:
    """Evaluates stored rules against one target and applies their actions."""

    def __init__(self, registry: AutomationRegistry, rule_book: RuleBook) -> None:
        self._registry = registry
        self._rule_book = rule_book

    @property
    def registry(self) -> AutomationRegistry:
        return self._registry

    async def evaluate_condition(
        self,
        condition: RuleCondition,
        target: Target,
        extra_context: Optional[dict[str, Any]],
    ) -> Optional[MatchResult]:
        """Evaluate one condition; None when its definition is unknown."""

        definition = self._registry.get_condition(condition.field)
        if definition is None:
            return None
        result = await _resolve(definition.evaluate(target, condition.value, extra_context))
        if result is None:
            result = MatchResult(is_match=False)
        if condition.invert:
            # A negated match carries no meaningful substring.
            return MatchResult(is_match=not result.is_match, match_context="")
        return MatchResult(is_match=bool(result.is_match), match_context=result.match_context or "")

    async def match_rule(
        self,
        rule: Rule,
        target: Target,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> tuple[bool, str]:
        """Return (matched, match_context) for ``rule`` against ``target``."""

        if not rule.conditions:
            return True, ""

        # Every condition is awaited in list order before combining so that
        # lookups are never skipped by short-circuiting.
        matches: List[MatchResult] = []
        for condition in rule.conditions:
            result = await self.evaluate_condition(condition, target, extra_context)
            if result is None:
                LOGGER.debug("Rule %s: unknown condition %r skipped", rule.name, condition.field)
                continue
            matches.append(result)
        return combine_matches(rule.match_type, matches)

    async def run_actions(
        self,
        rule: Rule,
        target: Target,
        target_type: str,
        event_type: str,
        match_context: str,
        extra_context: Optional[dict[str, Any]] = None,
    ) -> bool:
        """Run the rule's actions sequentially; True if any modified the target."""

        modified = False
        for action in rule.actions:
            definition = self._registry.get_action(action.type)
            if definition is None:
                LOGGER.debug("Rule %s: unknown action %r skipped", rule.name, action.type)
                continue
            value = replace_variables(action.value, target, target_type, match_context, extra_context)
            result = await _resolve(definition.execute(target, value, extra_context, rule.name, event_type))
            if result is not None and result.modified:
                modified = True
        return modified

    async def apply_rules(
        self,
        target: Target,
        target_type: str,
        event_type: str,
        extra_context: Optional[dict[str, Any]] = None,
        rules: Optional[Sequence[Rule]] = None,
    ) -> EvaluationResult:
        """Apply every enabled rule bound to ``event_type`` in stored order.

        ``rules`` is an immutable snapshot; when omitted a fresh snapshot is
        taken from the rule book. The caller's ``target`` is never mutated.
        """

        snapshot = self._rule_book.snapshot() if rules is None else rules
        working_copy = copy.copy(target)
        modified = False
        matched: List[str] = []

        for rule in snapshot:
            if rule.event != event_type or not rule.enabled:
                continue
            if self._registry.get_event(rule.event) is None:
                continue

            is_match, match_context = await self.match_rule(rule, working_copy, extra_context)
            if not is_match:
                continue

            matched.append(rule.name)
            LOGGER.debug("Rule %s matched %s event", rule.name, event_type)
            if await self.run_actions(rule, working_copy, target_type, event_type, match_context, extra_context):
                modified = True

        return EvaluationResult(target=working_copy, modified=modified, matched_rules=tuple(matched))
