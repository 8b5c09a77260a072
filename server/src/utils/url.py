"""
URL helpers for request-path extraction and script URL checks.
"""

from __future__ import annotations

from urllib import parse


def extract_path(url: str) -> str:
    """Return the path component of a full URL or bare path.

    Scheme, host, query string and fragment are dropped.  Falls
    back to ``"/"`` when the input cannot be parsed or has no path.

    Args:
        url: Something like ``"https://example.com/shop?x=1"``
            or ``"/shop"``.

    Returns:
        The path, e.g. ``"/shop"``.
    """
    if not isinstance(url, str):
        return "/"
    try:
        path = parse.urlsplit(url).path
    except ValueError:
        return "/"
    return path or "/"


def is_http_url(value: object) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not isinstance(value, str):
        return False
    try:
        parsed = parse.urlsplit(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
