"""Variable interpolation for action values.

Placeholders are replaced once per action invocation, never recursively.
Unknown placeholders are left verbatim.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from feedrules.core.models import ARTICLE, FEED, Target, title_of, url_of

CONDITION_MATCH = "{{condition.match}}"
TAG = "{{tag}}"

_PLACEHOLDER = re.compile(r"\{\{[^{}]*\}\}")


def replace_variables(
    text: Optional[str],
    target: Target,
    target_type: str,
    match_context: str,
    extra_context: Optional[dict[str, Any]],
) -> str:
    """Interpolate ``{{...}}`` variables into an action value."""

    if not text:
        return ""

    replacements = {CONDITION_MATCH: match_context or ""}
    if target_type == ARTICLE:
        replacements["{{article.title}}"] = title_of(target)
        replacements["{{article.url}}"] = url_of(target)
    elif target_type == FEED:
        replacements["{{feed.title}}"] = title_of(target)
        replacements["{{feed.url}}"] = url_of(target)
    if extra_context and extra_context.get("tag"):
        replacements[TAG] = str(extra_context["tag"])

    # re.sub walks the original text once, so substituted values are never
    # scanned for further placeholders.
    return _PLACEHOLDER.sub(lambda match: replacements.get(match.group(0), match.group(0)), text)
