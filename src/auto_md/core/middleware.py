"""aiohttp middleware that serves HTML responses as Markdown to agents.

The middleware runs after the wrapped handler.  When the request looks
like it comes from an AI client and the response is HTML, the body is
converted to Markdown and a new response replaces the original.  Any
failure along the way leaves the original response untouched.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Optional, Union

from aiohttp import hdrs, web
from aiohttp.helpers import parse_mimetype
from multidict import CIMultiDict
from pydantic import BaseModel, ConfigDict, Field, InstanceOf, ValidationError

from auto_md.core.content_type import is_eligible, is_markdown
from auto_md.core.detect import (
    MatcherDetector,
    PredicateDetector,
    as_detector,
    classify,
)
from auto_md.core.markdown_engine import MarkdownEngineConfig, convert_html_to_markdown
from auto_md.core.utils import resolve_base_url
from auto_md.errors import BodyReadError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPES: tuple[str, ...] = ("text/html", "application/xhtml+xml")
MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
MARKER_HEADER = "X-Aiohttp-Auto-Md"
MARKER_VALUE = "1"

Converter = Callable[[str], Union[str, Awaitable[str]]]
ErrorCallback = Callable[[Exception, web.Request], Optional[Awaitable[None]]]
Middleware = Callable[..., Awaitable[web.StreamResponse]]


def log_detect_error(exc: Exception, request: web.Request) -> None:
    """Default ``on_detect_error``: log and carry on."""
    logger.warning("Agent detection failed for %s: %r", request.url, exc)


def log_convert_error(exc: Exception, request: web.Request) -> None:
    """Default ``on_convert_error``: log and carry on."""
    logger.warning("Markdown conversion failed for %s: %r", request.url, exc)


class AutoMarkdownConfig(BaseModel):
    """Per-middleware settings, built once at registration time."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    detector: Union[InstanceOf[PredicateDetector], InstanceOf[MatcherDetector]] = Field(
        default_factory=MatcherDetector
    )
    markdown_options: MarkdownEngineConfig = Field(default_factory=MarkdownEngineConfig)
    converter: Optional[Converter] = None
    allowed_content_types: tuple[str, ...] = DEFAULT_CONTENT_TYPES
    response_content_type: str = Field(default=MARKDOWN_CONTENT_TYPE, min_length=1)
    on_detect_error: ErrorCallback = log_detect_error
    on_convert_error: ErrorCallback = log_convert_error

    @property
    def output_charset(self) -> str:
        mimetype = parse_mimetype(self.response_content_type)
        return mimetype.parameters.get("charset", "utf-8")


async def _notify(
    callback: ErrorCallback, exc: Exception, request: web.Request
) -> None:
    try:
        result = callback(exc, request)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("auto-md error callback raised")


def _buffer_text(response: web.StreamResponse) -> str:
    """Read the response body as text without touching the response."""
    if not isinstance(response, web.Response):
        raise BodyReadError(f"{type(response).__name__} bodies are streamed")
    if response.prepared:
        raise BodyReadError("response headers were already sent")

    encoding = response.headers.get(hdrs.CONTENT_ENCODING, "identity").lower()
    if encoding != "identity":
        raise BodyReadError(f"body is {encoding}-encoded")

    body = response.body
    if body is None:
        return ""
    if not isinstance(body, (bytes, bytearray, memoryview)):
        raise BodyReadError(f"{type(body).__name__} payloads cannot be buffered")

    charset = response.charset or "utf-8"
    try:
        return bytes(body).decode(charset)
    except (LookupError, UnicodeDecodeError) as exc:
        raise BodyReadError(f"body is not valid {charset}") from exc


async def _convert(
    text: str, request: web.Request, config: AutoMarkdownConfig
) -> str:
    if config.converter is not None:
        result = config.converter(text)
        if inspect.isawaitable(result):
            result = await result
    else:
        result = convert_html_to_markdown(
            text,
            base_url=resolve_base_url(str(request.url)),
            config=config.markdown_options,
        )
    if not isinstance(result, str):
        raise TypeError(f"converter returned {type(result).__name__}, expected str")
    return result


def _build_response(
    original: web.Response, body: bytes, config: AutoMarkdownConfig
) -> web.Response:
    headers = CIMultiDict(original.headers)
    headers[hdrs.CONTENT_TYPE] = config.response_content_type
    headers[MARKER_HEADER] = MARKER_VALUE
    headers.popall(hdrs.CONTENT_LENGTH, None)

    replacement = web.Response(
        body=body,
        status=original.status,
        reason=original.reason,
        headers=headers,
    )
    for name, morsel in original.cookies.items():
        replacement.cookies[name] = morsel
    if original.compression:
        replacement.enable_compression(original._compression_force)
    if original.chunked:
        replacement.enable_chunked_encoding()
    return replacement


async def rewrite_response(
    request: web.Request,
    response: web.StreamResponse | None,
    config: AutoMarkdownConfig,
) -> web.StreamResponse | None:
    """Return the Markdown replacement for *response*, or *response* itself."""
    if response is None:
        return response

    content_type = response.headers.get(hdrs.CONTENT_TYPE)
    if is_markdown(content_type):
        return response

    try:
        is_agent = await classify(request, config.detector)
    except Exception as exc:
        await _notify(config.on_detect_error, exc, request)
        return response
    if not is_agent:
        return response

    if not is_eligible(content_type, config.allowed_content_types):
        logger.debug("Skipping %s: content type %r not allowed", request.url, content_type)
        return response

    try:
        html = _buffer_text(response)
        markdown = await _convert(html, request, config)
        body = markdown.encode(config.output_charset)
    except Exception as exc:
        await _notify(config.on_convert_error, exc, request)
        return response

    logger.debug("Converted %s to markdown (%d bytes)", request.url, len(body))
    return _build_response(response, body, config)


def auto_markdown_from_config(config: AutoMarkdownConfig) -> Middleware:
    """Build the aiohttp middleware for an existing config."""

    @web.middleware
    async def auto_markdown_middleware(
        request: web.Request, handler: Callable[..., Awaitable[web.StreamResponse]]
    ) -> web.StreamResponse:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            replacement = await rewrite_response(request, exc, config)
            if replacement is exc:
                raise
            return replacement
        return await rewrite_response(request, response, config)

    return auto_markdown_middleware


def _markdown_settings(
    html_to_markdown: MarkdownEngineConfig | Mapping[str, Any] | Converter | None,
) -> dict[str, Any]:
    if html_to_markdown is None:
        return {}
    if isinstance(html_to_markdown, MarkdownEngineConfig):
        return {"markdown_options": html_to_markdown}
    if isinstance(html_to_markdown, Mapping):
        options = {
            key: value
            for key, value in html_to_markdown.items()
            if key not in ("base_url", "baseUrl")
        }
        return {"markdown_options": MarkdownEngineConfig(**options)}
    if callable(html_to_markdown):
        return {"converter": html_to_markdown}
    raise ConfigurationError(
        "html_to_markdown must be options or a converter function, "
        f"got {type(html_to_markdown).__name__}"
    )


def auto_markdown(
    *,
    detect: Any = None,
    html_to_markdown: MarkdownEngineConfig | Mapping[str, Any] | Converter | None = None,
    allowed_content_types: Iterable[str] | None = None,
    response_content_type: str | None = None,
    on_detect_error: ErrorCallback | None = None,
    on_convert_error: ErrorCallback | None = None,
) -> Middleware:
    """Create the auto-markdown middleware.

    Args:
        detect: A predicate ``(request) -> bool`` (sync or async), a list of
            :class:`HeaderMatcher`, or a detector.  Defaults to
            :data:`DEFAULT_AGENT_MATCHERS`.
        html_to_markdown: :class:`MarkdownEngineConfig` (or a dict of its
            fields) for the built-in converter, or a function
            ``(html) -> str`` (sync or async) replacing it entirely.
        allowed_content_types: Content types eligible for conversion,
            matched as case-insensitive substrings.
        response_content_type: Content type of converted responses.
        on_detect_error: Called as ``(exc, request)`` when detection fails.
        on_convert_error: Called as ``(exc, request)`` when reading or
            converting the body fails.

    Returns:
        A middleware for ``web.Application(middlewares=[...])``.

    Raises:
        ConfigurationError: If any option is invalid.
    """
    if isinstance(allowed_content_types, str):
        raise ConfigurationError("allowed_content_types must be a list, not a string")

    settings: dict[str, Any] = {"detector": as_detector(detect)}
    try:
        settings.update(_markdown_settings(html_to_markdown))
        if allowed_content_types is not None:
            settings["allowed_content_types"] = tuple(allowed_content_types)
        if response_content_type is not None:
            settings["response_content_type"] = response_content_type
        if on_detect_error is not None:
            settings["on_detect_error"] = on_detect_error
        if on_convert_error is not None:
            settings["on_convert_error"] = on_convert_error
        config = AutoMarkdownConfig(**settings)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

    return auto_markdown_from_config(config)
