"""URL helpers for captured events."""

from __future__ import annotations

import re
from urllib.parse import urlsplit

_HOST_RE = re.compile(r"https?://([^/]+)")


def extract_domain(url: str) -> str:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        host = None
    if host:
        return host
    match = _HOST_RE.search(url or "")
    return match.group(1) if match else url


def is_capture_endpoint(url: str, method: str = "POST") -> bool:
    """Whether a request looks like a posthog-js gzip batch upload."""
    if method.upper() != "POST":
        return False
    return "/e" in url and "compression=gzip-js" in url
