"""Small URL helpers."""

from __future__ import annotations

from urllib.parse import urlparse, urlunparse


def resolve_base_url(url: str) -> str | None:
    """Return the canonical absolute form of *url*, or None.

    Only URLs with both a scheme and a host are accepted; relative paths
    and garbage resolve to None instead of raising.
    """
    try:
        parsed = urlparse(url)
        _ = parsed.port  # rejects malformed ports such as ":abc"
    except (AttributeError, TypeError, ValueError):
        return None

    if not parsed.scheme or not parsed.netloc or not parsed.hostname:
        return None

    path = parsed.path or "/"
    return urlunparse(
        (
            parsed.scheme.lower(),
            parsed.netloc,
            path,
            parsed.params,
            parsed.query,
            parsed.fragment,
        )
    )
