from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from feedrules.core.errors import RuleStoreError, RuleValidationError
from feedrules.core.models import Rule, RuleAction, RuleCondition


def test_load_builds_rules_in_stored_order(harness_factory, rule) -> None:
    harness = harness_factory([rule(name="b"), rule(name="a"), {"broken": True}])
    rules = asyncio.run(harness.engine.rule_book.load())
    assert [item.name for item in rules] == ["b", "a"]
    assert harness.engine.rule_book.snapshot() is rules


def test_new_rule_defaults(harness_factory) -> None:
    draft = harness_factory().engine.rule_book.new_rule()
    assert draft == Rule(
        id="id-1",
        name="New Rule",
        event="new_article",
        match_type="all",
        conditions=(RuleCondition(id="id-2", field="title_contains"),),
        actions=(RuleAction(id="id-3", type="discard"),),
    )


def test_save_appends_then_replaces(harness_factory) -> None:
    harness = harness_factory()
    book = harness.engine.rule_book
    draft = book.new_rule()

    asyncio.run(book.save_rule(draft))
    asyncio.run(book.save_rule(replace(draft, name="Renamed")))
    asyncio.run(book.save_rule(replace(draft, id="other", name="Second")))

    assert [(item.id, item.name) for item in book.snapshot()] == [("id-1", "Renamed"), ("other", "Second")]
    assert [raw["name"] for raw in harness.rule_store.rules] == ["Renamed", "Second"]
    assert harness.rule_store.rules[0]["matchType"] == "all"
    assert harness.rule_store.saves == 3


def test_save_without_name_is_rejected(harness_factory) -> None:
    harness = harness_factory()
    book = harness.engine.rule_book
    with pytest.raises(RuleValidationError) as excinfo:
        asyncio.run(book.save_rule(replace(book.new_rule(), name="  ")))
    assert excinfo.value.messages == ["Rule name is required"]
    assert harness.rule_store.saves == 0
    assert book.snapshot() == ()


def test_save_returns_warnings_without_blocking(harness_factory) -> None:
    book = harness_factory().engine.rule_book
    draft = replace(book.new_rule(), actions=(RuleAction(id="x", type="explode"),))
    validation = asyncio.run(book.save_rule(draft))
    assert validation.ok
    assert validation.warnings == ["Unknown action: 'explode'"]
    assert book.get(draft.id) == draft


def test_snapshot_taken_before_an_edit_is_unchanged(harness_factory, rule) -> None:
    harness = harness_factory([rule(name="first")])
    book = harness.engine.rule_book
    asyncio.run(book.load())
    before = book.snapshot()

    asyncio.run(book.save_rule(replace(book.new_rule(), name="second")))

    assert [item.name for item in before] == ["first"]
    assert [item.name for item in book.snapshot()] == ["first", "second"]


def test_store_failure_keeps_previous_list(harness_factory, rule) -> None:
    harness = harness_factory([rule(name="first")])
    book = harness.engine.rule_book
    asyncio.run(book.load())
    harness.rule_store.fail_on_save = True

    with pytest.raises(RuleStoreError):
        asyncio.run(book.save_rule(replace(book.new_rule(), name="second")))
    assert [item.name for item in book.snapshot()] == ["first"]


def test_delete_rule(harness_factory, rule) -> None:
    harness = harness_factory([rule(name="keep"), rule(name="drop")])
    book = harness.engine.rule_book
    asyncio.run(book.load())

    assert asyncio.run(book.delete_rule("rule-drop")) is True
    assert asyncio.run(book.delete_rule("rule-drop")) is False
    assert [raw["id"] for raw in harness.rule_store.rules] == ["rule-keep"]
    assert harness.rule_store.saves == 1


def test_replace_all_validates_every_rule(harness_factory) -> None:
    harness = harness_factory()
    book = harness.engine.rule_book
    good = replace(book.new_rule(), name="good")
    bad = replace(book.new_rule(), name="")

    with pytest.raises(RuleValidationError) as excinfo:
        asyncio.run(book.replace_all([good, bad]))
    assert excinfo.value.messages == [f"{bad.id}: Rule name is required"]

    asyncio.run(book.replace_all([good]))
    assert book.snapshot() == (good,)


def test_has_event_ignores_disabled_rules(harness_factory, rule) -> None:
    harness = harness_factory([rule(event="scheduled", enabled=False), rule(name="x", event="article_read")])
    book = harness.engine.rule_book
    asyncio.run(book.load())
    assert book.has_event("scheduled") is False
    assert book.has_event("article_read") is True


def test_describe(harness_factory) -> None:
    book = harness_factory().engine.rule_book
    draft = book.new_rule()
    assert book.describe(draft) == "When New Article Fetched • 1 condition • 1 action"
    several = replace(draft, event="custom", conditions=(), actions=draft.actions * 2)
    assert book.describe(several) == "When custom • 0 conditions • 2 actions"


def test_unreadable_records_survive_edits(harness_factory, rule) -> None:
    harness = harness_factory([rule(name="first"), {"name": "no id"}])
    book = harness.engine.rule_book
    asyncio.run(book.load())

    asyncio.run(book.save_rule(replace(book.new_rule(), name="second")))
    assert [raw.get("id") for raw in harness.rule_store.rules] == ["rule-first", "id-1", None]
    assert harness.rule_store.rules[-1] == {"name": "no id"}

    asyncio.run(book.delete_rule("rule-first"))
    assert harness.rule_store.rules[-1] == {"name": "no id"}


def test_replace_all_drops_unreadable_records(harness_factory, rule) -> None:
    harness = harness_factory([{"name": "no id"}])
    book = harness.engine.rule_book
    asyncio.run(book.load())
    fresh = replace(book.new_rule(), name="fresh")

    asyncio.run(book.replace_all([fresh]))

    assert [raw["id"] for raw in harness.rule_store.rules] == [fresh.id]
