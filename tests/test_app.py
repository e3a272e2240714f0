from __future__ import annotations

import json
import logging

import pytest

from feedrules import app, settings


@pytest.fixture
def cli(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setattr(settings, "LOGGING", {})
    monkeypatch.setattr(settings, "NOTIFICATION_METHOD", "log")
    return tmp_path


def _write(path, data) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_rules_import_list_and_delete(cli, capsys) -> None:
    rules_file = _write(
        cli / "rules.json",
        [
            {
                "id": "r1",
                "name": "Skip weekly",
                "event": "new_article",
                "conditions": [{"field": "title_contains", "value": "weekly"}],
                "actions": [{"type": "discard"}],
            },
            {"id": "r2", "name": "Hourly", "event": "scheduled", "enabled": False},
        ],
    )

    app.main(["rules", "import", rules_file])
    app.main(["rules", "list"])
    app.main(["rules", "delete", "r2"])
    app.main(["rules", "list"])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Imported 2 rule(s)"
    assert lines[1] == "r1 | Skip weekly | When New Article Fetched • 1 condition • 1 action"
    assert lines[2] == "r2 | Hourly (disabled) | When Scheduled Time (Hourly) • 0 conditions • 0 actions"
    assert lines[3] == "Deleted"
    assert lines[4:] == ["r1 | Skip weekly | When New Article Fetched • 1 condition • 1 action"]


def test_rules_import_rejects_unnamed_rules(cli) -> None:
    rules_file = _write(cli / "rules.json", [{"id": "r1", "name": "", "event": "new_article"}])
    with pytest.raises(SystemExit) as excinfo:
        app.main(["rules", "import", rules_file])
    assert excinfo.value.code == 1


def test_ingest_applies_new_article_rules(cli, capsys) -> None:
    app.main(
        [
            "rules",
            "import",
            _write(
                cli / "rules.json",
                {
                    "id": "r1",
                    "name": "Skip weekly",
                    "event": "new_article",
                    "conditions": [{"field": "title_contains", "value": "weekly"}],
                    "actions": [{"type": "discard"}],
                },
            ),
        ]
    )
    batch = _write(cli / "batch.json", [{"guid": "1", "title": "Weekly digest"}, {"guid": "2", "title": "Daily"}])

    app.main(["ingest", batch])

    assert capsys.readouterr().out.splitlines()[-1] == "Ingested 2 article(s), 1 discarded"


def test_event_requires_identifiers(cli) -> None:
    with pytest.raises(SystemExit) as excinfo:
        app.main(["event", "article-read"])
    assert excinfo.value.code == 1


def test_redacting_formatter_masks_secrets(monkeypatch) -> None:
    monkeypatch.setenv("BOT_API", "123:secret-token")
    monkeypatch.delenv("UNSET_VAR", raising=False)
    secrets = app._collect_redaction_values({"redact": {"enabled": True, "patterns": ["BOT_API", "UNSET_VAR"]}})
    formatter = app._RedactingFormatter(secrets, fmt="%(message)s")
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "token=%s", ("123:secret-token",), None)

    assert secrets == ["123:secret-token"]
    assert formatter.format(record) == "token=***"
    assert app._collect_redaction_values({"redact": {"enabled": False, "patterns": ["BOT_API"]}}) == []
