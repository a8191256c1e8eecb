"""Response content-type checks for conversion eligibility."""

from __future__ import annotations

from collections.abc import Iterable

MARKDOWN_MARKER = "text/markdown"


def is_eligible(content_type: str | None, allowed: Iterable[str]) -> bool:
    """Return True if *content_type* contains any entry of *allowed*.

    Comparison is a case-insensitive substring test, so
    ``text/html; charset=utf-8`` is eligible for ``text/html``.
    """
    if not content_type:
        return False
    lowered = content_type.lower()
    return any(item.lower() in lowered for item in allowed)


def is_markdown(content_type: str | None) -> bool:
    """Return True if the response already carries a Markdown content type."""
    return bool(content_type) and MARKDOWN_MARKER in content_type.lower()
