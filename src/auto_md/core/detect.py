"""Request classification: is the caller an agent rather than a browser?"""

from __future__ import annotations

import inspect
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Union

from aiohttp import web

from auto_md.core.header_matcher import (
    EmptyMatcherPolicy,
    HeaderMatcher,
    is_match_header,
)
from auto_md.errors import ConfigurationError

Predicate = Callable[[web.Request], Union[bool, Awaitable[bool]]]

AI_USER_AGENTS: tuple[str, ...] = (
    "Claude-User",
    "ClaudeBot",
    "Claude-Web",
    "anthropic-ai",
    "ChatGPT",
    "GPTBot",
    "OAI-SearchBot",
    "PerplexityBot",
    "Perplexity-User",
    "Google-Extended",
    "Amazonbot",
    "CCBot",
    "Bytespider",
    "cohere-ai",
    "meta-externalagent",
    "MistralAI-User",
    "YouBot",
    "DuckAssistBot",
)

DEFAULT_AGENT_MATCHERS: tuple[HeaderMatcher, ...] = (
    HeaderMatcher(header="user-agent", includes=AI_USER_AGENTS),
    HeaderMatcher(header="accept", includes=("text/markdown",)),
    HeaderMatcher(
        header="signature-agent",
        matches=(re.compile(r"(^|[\"/.])chatgpt\.com"),),
    ),
)


@dataclass(frozen=True)
class PredicateDetector:
    """Classify with a user function; it may return a bool or an awaitable."""

    predicate: Predicate


@dataclass(frozen=True)
class MatcherDetector:
    """Classify with declarative header matchers."""

    matchers: tuple[HeaderMatcher, ...] = DEFAULT_AGENT_MATCHERS
    empty_policy: EmptyMatcherPolicy = "never"


Detector = Union[PredicateDetector, MatcherDetector]


def as_detector(
    value: Detector | Predicate | Iterable[HeaderMatcher] | None,
) -> Detector:
    """Normalize the ``detect`` option into a tagged detector."""
    if value is None:
        return MatcherDetector()
    if isinstance(value, (PredicateDetector, MatcherDetector)):
        return value
    if callable(value):
        return PredicateDetector(value)
    if isinstance(value, (str, bytes)):
        raise ConfigurationError("detect must be a callable or header matchers")
    try:
        matchers = tuple(value)
    except TypeError as exc:
        raise ConfigurationError(
            f"detect must be a callable or header matchers, got {type(value).__name__}"
        ) from exc
    for matcher in matchers:
        if not isinstance(matcher, HeaderMatcher):
            raise ConfigurationError(
                f"detect matchers must be HeaderMatcher, got {type(matcher).__name__}"
            )
    return MatcherDetector(matchers=matchers)


async def classify(request: web.Request, detector: Detector) -> bool:
    """Return True if *request* should receive Markdown.

    Exceptions from a predicate propagate; the middleware decides what
    to do with them.
    """
    if isinstance(detector, PredicateDetector):
        result = detector.predicate(request)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)
    return is_match_header(
        request.headers, detector.matchers, detector.empty_policy
    )
