"""Default HTML to Markdown engine: sanitize, absolutize, markdownify."""

from auto_md.core.markdown_engine.config import MarkdownEngineConfig
from auto_md.core.markdown_engine.converter import convert_html_to_markdown
from auto_md.core.markdown_engine.sanitizer import absolutize_links, sanitize_html

__all__ = [
    "MarkdownEngineConfig",
    "absolutize_links",
    "convert_html_to_markdown",
    "sanitize_html",
]
