"""Edit-time validation and event-compatibility filtering for rules.

The evaluator tolerates stale references; this module is where they are
surfaced to whoever edits the rule list.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Callable, Optional

from feedrules.core.models import ARTICLE, MATCH_ALL, MATCH_ANY, Rule, RuleAction, RuleCondition
from feedrules.core.registry import AutomationRegistry

IdFactory = Callable[[], str]


def generate_id() -> str:
    return uuid.uuid4().hex


@dataclass
class RuleValidation:
    """Errors block saving; warnings only inform."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def target_type_for_event(event_id: str, registry: AutomationRegistry) -> str:
    event = registry.get_event(event_id)
    return event.target_type if event else ARTICLE


def validate_rule(rule: Rule, registry: AutomationRegistry) -> RuleValidation:
    result = RuleValidation()
    if not rule.name.strip():
        result.errors.append("Rule name is required")

    event = registry.get_event(rule.event)
    if event is None:
        result.warnings.append(f"Unknown event: {rule.event!r}")
    if rule.match_type not in (MATCH_ALL, MATCH_ANY):
        result.warnings.append(f"Unknown match type: {rule.match_type!r}")

    target_type = target_type_for_event(rule.event, registry)
    for condition in rule.conditions:
        definition = registry.get_condition(condition.field)
        if definition is None:
            result.warnings.append(f"Unknown condition: {condition.field!r}")
        elif event is not None and not definition.supports(target_type):
            result.warnings.append(f"Condition {condition.field!r} does not apply to {target_type}s")
    for action in rule.actions:
        definition = registry.get_action(action.type)
        if definition is None:
            result.warnings.append(f"Unknown action: {action.type!r}")
        elif event is not None and not definition.supports(target_type):
            result.warnings.append(f"Action {action.type!r} does not apply to {target_type}s")
    return result


def filter_for_event(rule: Rule, event_id: str, registry: AutomationRegistry) -> Rule:
    """Switch ``rule`` to ``event_id``, dropping incompatible rows.

    Rows referencing unknown definitions are dropped as well. When the event
    itself is unknown only the event id changes.
    """

    event = registry.get_event(event_id)
    if event is None:
        return replace(rule, event=event_id)

    conditions = tuple(
        condition
        for condition in rule.conditions
        if (definition := registry.get_condition(condition.field)) and definition.supports(event.target_type)
    )
    actions = tuple(
        action
        for action in rule.actions
        if (definition := registry.get_action(action.type)) and definition.supports(event.target_type)
    )
    return replace(rule, event=event_id, conditions=conditions, actions=actions)


def add_condition(
    rule: Rule,
    registry: AutomationRegistry,
    field_id: Optional[str] = None,
    id_factory: IdFactory = generate_id,
) -> Rule:
    """Append a condition; defaults to the first compatible definition."""

    available = registry.get_conditions(target_type_for_event(rule.event, registry))
    if field_id is None:
        if not available:
            raise ValueError(f"No conditions available for event {rule.event!r}")
        field_id = available[0].id
    condition = RuleCondition(id=id_factory(), field=field_id, invert=False, value="")
    return replace(rule, conditions=(*rule.conditions, condition))


def add_action(
    rule: Rule,
    registry: AutomationRegistry,
    type_id: Optional[str] = None,
    id_factory: IdFactory = generate_id,
) -> Rule:
    """Append an action; defaults to the first compatible definition."""

    available = registry.get_actions(target_type_for_event(rule.event, registry))
    if type_id is None:
        if not available:
            raise ValueError(f"No actions available for event {rule.event!r}")
        type_id = available[0].id
    action = RuleAction(id=id_factory(), type=type_id, value="")
    return replace(rule, actions=(*rule.actions, action))
