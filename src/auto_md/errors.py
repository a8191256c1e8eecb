"""Exception types raised by auto-md."""

from __future__ import annotations


class AutoMarkdownError(Exception):
    """Base class for auto-md errors."""


class ConfigurationError(AutoMarkdownError, ValueError):
    """Invalid middleware options, raised at registration time."""


class BodyReadError(AutoMarkdownError):
    """The response body cannot be buffered for conversion."""
