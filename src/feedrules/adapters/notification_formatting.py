"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from datetime import datetime

DIVIDER = "──────────────"
TITLE = "Automation"


def _timestamp(sent_at: datetime) -> str:
    return sent_at.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()


def escape_md(value: str) -> str:
    for ch in r"*_[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _format_markdown(message: str, sent_at: datetime) -> str:
    """Create the Markdown body used by Saved Messages."""

    return "\n".join(
        [
            f"[{_timestamp(sent_at)}] **{TITLE}**",
            DIVIDER,
            escape_md(message),
            DIVIDER,
        ]
    )


def _format_html(message: str, sent_at: datetime) -> str:
    """Create the HTML body used by the Bot API adapter."""

    return "\n".join(
        [
            f"[{html.escape(_timestamp(sent_at))}] <b>{TITLE}</b>",
            DIVIDER,
            html.escape(message),
            DIVIDER,
        ]
    )


def format_notification(message: str, sent_at: datetime, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(message, sent_at)
    if mode == "html":
        return _format_html(message, sent_at)
    raise ValueError(f"Unsupported notification format: {mode}")
