"""Strip non-content markup before Markdown conversion."""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from auto_md.core.markdown_engine.config import MarkdownEngineConfig

_LINK_ATTRS = (("a", "href"), ("img", "src"), ("source", "src"), ("video", "src"))


def sanitize_soup(soup: BeautifulSoup, config: MarkdownEngineConfig) -> None:
    """Remove unwanted elements from *soup* in place."""
    dropped: list[str] = []
    if config.strip_scripts:
        dropped += ["script", "noscript"]
    if config.strip_styles:
        dropped.append("style")
    if config.strip_nav:
        dropped.append("nav")
    if config.strip_footer:
        dropped.append("footer")
    if config.strip_header:
        dropped.append("header")
    # Never useful as Markdown.
    dropped += ["template", "iframe"]

    for tag in soup.find_all(dropped):
        # Nested matches go away with their parent.
        if not tag.decomposed:
            tag.decompose()

    if config.strip_cookie_banners:
        _remove_by_patterns(soup, config.cookie_banner_patterns)
    if config.strip_ads:
        _remove_by_patterns(soup, config.ad_patterns)
    if config.strip_hidden:
        _remove_hidden(soup)


def sanitize_html(html: str, config: MarkdownEngineConfig | None = None) -> str:
    """Return *html* with boilerplate elements removed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    sanitize_soup(soup, config or MarkdownEngineConfig())
    return str(soup)


def absolutize_soup(soup: BeautifulSoup, base_url: str) -> None:
    """Resolve relative link and image targets in *soup* against *base_url*."""
    for tag_name, attr in _LINK_ATTRS:
        for tag in soup.find_all(tag_name):
            value = tag.get(attr)
            if not isinstance(value, str) or not value or value.startswith("#"):
                continue
            tag[attr] = urljoin(base_url, value)


def absolutize_links(html: str, base_url: str | None) -> str:
    """Return *html* with relative href/src attributes made absolute."""
    if not html or not base_url:
        return html
    soup = BeautifulSoup(html, "html.parser")
    absolutize_soup(soup, base_url)
    return str(soup)


def _remove_hidden(soup: BeautifulSoup) -> None:
    for tag in soup.find_all(attrs={"aria-hidden": "true"}):
        if isinstance(tag, Tag) and tag.attrs is not None:
            tag.decompose()
    for tag in soup.find_all(
        attrs={
            "style": lambda v: v
            and "display:none" in str(v).replace(" ", "").lower()
        }
    ):
        if isinstance(tag, Tag) and tag.attrs is not None:
            tag.decompose()


def _remove_by_patterns(soup: BeautifulSoup, patterns: tuple[str, ...]) -> None:
    """Remove elements whose id or class contains any of *patterns*."""
    lowered = [p.lower() for p in patterns]
    for tag in soup.find_all(True):
        # Children of an already-removed parent have no attrs left.
        if not isinstance(tag, Tag) or tag.attrs is None:
            continue
        tag_id = tag.get("id", "") or ""
        tag_classes = " ".join(tag.get("class", []) or [])
        combined = f"{tag_id} {tag_classes}".lower()
        if any(pattern in combined for pattern in lowered):
            tag.decompose()
