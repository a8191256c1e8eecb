"""HTML to Markdown conversion backed by markdownify."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup
from markdownify import MarkdownConverter

from auto_md.core.markdown_engine.config import MarkdownEngineConfig
from auto_md.core.markdown_engine.sanitizer import absolutize_soup, sanitize_soup

_BLANK_RUNS = re.compile(r"\n{3,}")


def _converter_for(config: MarkdownEngineConfig) -> MarkdownConverter:
    strip = ["img"] if config.strip_images else None
    return MarkdownConverter(
        heading_style=config.heading_style.lower(),
        bullets=config.bullets,
        strip=strip,
        wrap=config.wrap,
        wrap_width=config.wrap_width,
    )


def convert_html_to_markdown(
    html: str,
    base_url: str | None = None,
    config: MarkdownEngineConfig | None = None,
) -> str:
    """Convert an HTML document or fragment to Markdown.

    Boilerplate is stripped according to *config*.  When *base_url* is
    given, relative links and image sources are resolved against it.
    """
    if not html or not html.strip():
        return ""

    cfg = config or MarkdownEngineConfig()
    soup = BeautifulSoup(html, "html.parser")
    sanitize_soup(soup, cfg)
    if base_url:
        absolutize_soup(soup, base_url)

    markdown = _converter_for(cfg).convert_soup(soup)
    return _BLANK_RUNS.sub("\n\n", markdown).strip() + "\n"
