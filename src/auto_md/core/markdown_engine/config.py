"""Options for the default HTML to Markdown conversion."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class MarkdownEngineConfig(BaseModel):
    """Options for the default converter.

    The base URL is not an option here; the middleware derives it from
    the request.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    strip_scripts: bool = Field(
        default=True, description="Drop <script> and <noscript> elements"
    )
    strip_styles: bool = Field(
        default=True, description="Drop <style> elements"
    )
    strip_nav: bool = Field(
        default=False, description="Drop <nav> elements"
    )
    strip_footer: bool = Field(
        default=False, description="Drop <footer> elements"
    )
    strip_header: bool = Field(
        default=False, description="Drop <header> elements"
    )
    strip_hidden: bool = Field(
        default=True, description="Drop aria-hidden and display:none elements"
    )
    strip_cookie_banners: bool = Field(
        default=False, description="Drop elements whose id/class looks like a consent banner"
    )
    strip_ads: bool = Field(
        default=False, description="Drop elements whose id/class looks like an ad slot"
    )
    strip_images: bool = Field(
        default=False, description="Omit images from the Markdown output"
    )
    cookie_banner_patterns: tuple[str, ...] = (
        "cookie",
        "consent",
        "gdpr",
        "privacy-banner",
        "cc-banner",
    )
    ad_patterns: tuple[str, ...] = (
        "ad-",
        "ads-",
        "advert",
        "banner-ad",
        "google_ads",
        "sponsored",
        "gpt-ad",
    )
    heading_style: Literal["ATX", "ATX_CLOSED", "UNDERLINED"] = Field(
        default="ATX", description="markdownify heading style"
    )
    bullets: str = Field(
        default="-", min_length=1, description="Bullet characters by nesting depth"
    )
    wrap: bool = Field(default=False, description="Hard-wrap paragraphs")
    wrap_width: int = Field(default=80, gt=0)
