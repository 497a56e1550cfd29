"""Text helpers for progress lines and commit subjects."""

from __future__ import annotations

import re

_ELLIPSIS = "..."
_WHITESPACE_PATTERN = re.compile(r"\s+")


def truncate(text: str, max_chars: int) -> str:
    """Shorten ``text`` to ``max_chars`` code points.

    An ellipsis is appended only when something was cut and the budget is
    larger than the ellipsis itself; tighter budgets hard-truncate.
    """

    if len(text) <= max_chars:
        return text
    if max_chars <= len(_ELLIPSIS):
        return text[: max(max_chars, 0)]
    return text[: max_chars - len(_ELLIPSIS)] + _ELLIPSIS


def summarize(description: str, max_chars: int) -> str:
    """Collapse a possibly multi-line description into one bounded line."""

    collapsed = _WHITESPACE_PATTERN.sub(" ", description).strip()
    return truncate(collapsed, max_chars)
