"""Automation registry.

Central store for the three kinds of pluggable units: events, conditions
and actions. Definitions are keyed by id; registering an id twice replaces
the earlier definition so later-loaded packs can override built-ins.

Usage:
    registry = AutomationRegistry()
    registry.register_condition(ConditionDefinition("always", "Always", evaluate=...))
    definition = registry.get_condition("always")

The registry performs no validation and no evaluation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Optional, Union

from feedrules.core.models import ActionResult, MatchResult, Target

ExtraContext = Optional[dict[str, Any]]

ConditionEvaluator = Callable[
    [Target, str, ExtraContext],
    Union[MatchResult, Awaitable[MatchResult]],
]
ActionExecutor = Callable[
    [Target, str, ExtraContext, str, str],
    Union[ActionResult, Awaitable[ActionResult]],
]


@dataclass(frozen=True)
class EventDefinition:
    id: str
    label: str
    target_type: str


@dataclass(frozen=True)
class ConditionDefinition:
    """A named predicate. Empty ``compatible_target_types`` means all types."""

    id: str
    label: str
    evaluate: ConditionEvaluator
    compatible_target_types: frozenset[str] = frozenset()

    def supports(self, target_type: str) -> bool:
        return not self.compatible_target_types or target_type in self.compatible_target_types


@dataclass(frozen=True)
class ActionDefinition:
    """A named effect. Empty ``compatible_target_types`` means all types."""

    id: str
    label: str
    execute: ActionExecutor
    compatible_target_types: frozenset[str] = frozenset()

    def supports(self, target_type: str) -> bool:
        return not self.compatible_target_types or target_type in self.compatible_target_types


class AutomationRegistry:
    """Typed key-value store with one namespace per definition kind."""

    def __init__(self) -> None:
        self._events: dict[str, EventDefinition] = {}
        self._conditions: dict[str, ConditionDefinition] = {}
        self._actions: dict[str, ActionDefinition] = {}

    # Events

    def register_event(self, definition: EventDefinition) -> None:
        self._events[definition.id] = definition

    def get_event(self, event_id: str) -> Optional[EventDefinition]:
        return self._events.get(event_id)

    def get_events(self) -> list[EventDefinition]:
        """Return events in registration order."""

        return list(self._events.values())

    # Conditions

    def register_condition(self, definition: ConditionDefinition) -> None:
        self._conditions[definition.id] = definition

    def get_condition(self, condition_id: str) -> Optional[ConditionDefinition]:
        return self._conditions.get(condition_id)

    def get_conditions(self, target_type: str) -> list[ConditionDefinition]:
        return [definition for definition in self._conditions.values() if definition.supports(target_type)]

    # Actions

    def register_action(self, definition: ActionDefinition) -> None:
        self._actions[definition.id] = definition

    def get_action(self, action_id: str) -> Optional[ActionDefinition]:
        return self._actions.get(action_id)

    def get_actions(self, target_type: str) -> list[ActionDefinition]:
        return [definition for definition in self._actions.values() if definition.supports(target_type)]
