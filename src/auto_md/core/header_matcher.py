"""Declarative request-header matching used to spot agent clients."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

EmptyMatcherPolicy = Literal["never", "presence"]


class HeaderMatcher(BaseModel):
    """One admissible way a request header can identify an agent client.

    ``equals`` and ``includes`` compare case-insensitively.  ``matches``
    patterns are searched against the lowercased header value, so write
    them in lowercase (or compile them with ``re.IGNORECASE``).
    """

    model_config = ConfigDict(frozen=True)

    header: str = Field(min_length=1, description="Request header name")
    equals: tuple[str, ...] = Field(
        default=(), description="Exact values (case-insensitive)"
    )
    includes: tuple[str, ...] = Field(
        default=(), description="Substrings (case-insensitive)"
    )
    matches: tuple[re.Pattern[str], ...] = Field(
        default=(), description="Regex patterns searched in the lowercased value"
    )

    @property
    def is_unconstrained(self) -> bool:
        """True when no equals/includes/matches rule is declared."""
        return not (self.equals or self.includes or self.matches)


def _get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Look up *name* case-insensitively in any header mapping."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def is_match_header(
    headers: Mapping[str, str],
    matchers: Iterable[HeaderMatcher],
    empty_policy: EmptyMatcherPolicy = "never",
) -> bool:
    """Return True if any matcher is satisfied by *headers*.

    Matchers are evaluated in order and the first hit wins.  Within a
    matcher the priority is ``equals`` -> ``includes`` -> ``matches``.
    A matcher declaring no rules never matches unless *empty_policy* is
    ``"presence"``, in which case a non-empty header value is enough.
    """
    for matcher in matchers:
        value = _get_header(headers, matcher.header)
        if not value:
            continue
        lowered = value.lower()

        if any(lowered == item.lower() for item in matcher.equals):
            return True
        if any(item.lower() in lowered for item in matcher.includes):
            return True
        if any(pattern.search(lowered) for pattern in matcher.matches):
            return True

        if matcher.is_unconstrained and empty_policy == "presence":
            return True
    return False
