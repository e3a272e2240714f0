"""Parsing helpers for user-supplied condition and action values.

Malformed values degrade to "nothing" instead of raising.
"""

from __future__ import annotations

import json
import re
from typing import Optional

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


def parse_tag_list(value: Optional[str]) -> list[str]:
    """Return tags from a JSON array or a single tag string."""

    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return [value]
    if isinstance(parsed, list):
        return [str(tag) for tag in parsed if tag not in (None, "")]
    if isinstance(parsed, str):
        return [parsed] if parsed else []
    return [value]


def split_operator(value: Optional[str]) -> tuple[str, str]:
    """Split ``"operator:operand"``; the operand may itself contain colons."""

    operator, _, operand = (value or "").partition(":")
    return operator.strip(), operand.strip()


def parse_int(value: Optional[str]) -> Optional[int]:
    """Read the leading integer of ``value`` (``"30d"`` -> 30); None without digits."""

    match = _LEADING_INT.match(value or "")
    return int(match.group(0)) if match else None
