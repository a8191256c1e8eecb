"""Serve HTML responses as Markdown to AI agents in aiohttp apps."""

from auto_md.core.content_type import is_eligible, is_markdown
from auto_md.core.detect import (
    AI_USER_AGENTS,
    DEFAULT_AGENT_MATCHERS,
    MatcherDetector,
    PredicateDetector,
    classify,
)
from auto_md.core.header_matcher import HeaderMatcher, is_match_header
from auto_md.core.markdown_engine import MarkdownEngineConfig, convert_html_to_markdown
from auto_md.core.middleware import (
    DEFAULT_CONTENT_TYPES,
    MARKDOWN_CONTENT_TYPE,
    MARKER_HEADER,
    MARKER_VALUE,
    AutoMarkdownConfig,
    auto_markdown,
    auto_markdown_from_config,
)
from auto_md.core.utils import resolve_base_url
from auto_md.errors import AutoMarkdownError, BodyReadError, ConfigurationError

__version__ = "0.1.0"

__all__ = [
    "AI_USER_AGENTS",
    "DEFAULT_AGENT_MATCHERS",
    "DEFAULT_CONTENT_TYPES",
    "MARKDOWN_CONTENT_TYPE",
    "MARKER_HEADER",
    "MARKER_VALUE",
    "AutoMarkdownConfig",
    "AutoMarkdownError",
    "BodyReadError",
    "ConfigurationError",
    "HeaderMatcher",
    "MarkdownEngineConfig",
    "MatcherDetector",
    "PredicateDetector",
    "auto_markdown",
    "auto_markdown_from_config",
    "classify",
    "convert_html_to_markdown",
    "is_eligible",
    "is_markdown",
    "is_match_header",
    "resolve_base_url",
]
