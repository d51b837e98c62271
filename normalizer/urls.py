"""
URL canonicalization and duplicate detection.

``normalize_url`` is an equality key only, never a display value. CDNs
rehost the same asset under different hosts and paths with the filename
unchanged, so ``is_duplicate`` also compares long filenames.
"""

import re
from typing import Iterable
from urllib.parse import urlencode, urljoin, urlsplit, parse_qsl


# Sizing / tracking / cache-busting query parameters ignored for equality
STRIP_PARAMS = {
    "w", "h", "width", "height", "size", "quality", "q", "auto", "fit",
    "crop", "format", "fm", "fl", "dpr", "cs", "cb", "v", "token", "sig",
    "signature", "hash", "ref", "source", "resize", "strip", "compress",
}

MIN_FILENAME_LENGTH = 10

# Hosts that only serve search-engine thumbnail proxies
THUMBNAIL_PROXY_TOKENS = (
    "gstatic.com",
    "google.com/images",
    "encrypted-tbn",
    "googleusercontent.com",
)

IMAGE_REJECT_TOKENS = (
    "data:",
    ".svg",
    "favicon",
    "pixel",
    "tracking",
    "1x1",
    "spacer",
    "blank.",
    "placeholder",
)

AD_TOKEN_RE = re.compile(
    r"\b(ad[sv]?|tracker|pixel|beacon|analytics|pop(?:up|under)|banner)\b",
    re.IGNORECASE,
)


def _keep_param(name: str) -> bool:
    name = name.lower()
    return name not in STRIP_PARAMS and not name.startswith("utm_")


def normalize_url(url: str) -> str:
    """
    Canonical comparison key for a URL.

    Lower-cases, drops known sizing/tracking parameters and trailing
    slashes, keeps the remaining query in order and drops the fragment.
    """
    try:
        parts = urlsplit(url.strip())
    except (ValueError, AttributeError):
        return (url or "").lower()
    if not parts.scheme or not parts.netloc:
        return url.lower()

    query = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if _keep_param(k)
    ]
    path = parts.path.rstrip("/")
    search = f"?{urlencode(query)}" if query else ""
    return f"{parts.scheme}://{parts.netloc}{path}{search}".lower()


def extract_filename(url: str) -> str:
    """Last path segment, lower-cased. Empty string on parse failure."""
    try:
        path = urlsplit(url).path
    except (ValueError, AttributeError):
        return ""
    return path.split("/")[-1].lower()


def is_duplicate(candidate: str, existing: Iterable[str]) -> bool:
    """
    True when ``candidate`` matches any URL in ``existing`` either by
    normalized URL or by a shared filename longer than 10 characters.
    """
    normalized = normalize_url(candidate)
    filename = extract_filename(candidate)
    long_name = len(filename) > MIN_FILENAME_LENGTH

    for other in existing:
        if normalize_url(other) == normalized:
            return True
        if long_name and extract_filename(other) == filename:
            return True
    return False


def hostname(url: str) -> str:
    """Hostname without a leading ``www.``; empty string if unparseable."""
    try:
        host = urlsplit(url).hostname or ""
    except (ValueError, AttributeError):
        return ""
    return host[4:] if host.startswith("www.") else host


def resolve_url(src: str, base_url: str) -> str:
    """
    Resolve ``src`` against the page it was found on.

    Protocol-relative references become https; anything unresolvable
    becomes an empty string.
    """
    src = (src or "").strip()
    if not src:
        return ""
    if src.startswith("//"):
        return "https:" + src
    if src.startswith("http://") or src.startswith("https://"):
        return src
    if src.startswith(("javascript:", "mailto:", "tel:", "data:", "blob:")):
        return ""
    try:
        resolved = urljoin(base_url, src)
    except ValueError:
        return ""
    return resolved if resolved.startswith("http") else ""


def is_valid_image_url(src: str) -> bool:
    """Filter out pixels, placeholders, inline data, icons and thumbnail proxies."""
    if not src or not src.startswith("http"):
        return False
    lower = src.lower()
    if any(token in lower for token in IMAGE_REJECT_TOKENS):
        return False
    if any(token in lower for token in THUMBNAIL_PROXY_TOKENS):
        return False
    return True


def is_ad_url(url: str) -> bool:
    """Ad, tracker and analytics heuristics shared by the video pipeline."""
    lower = url.lower()
    if AD_TOKEN_RE.search(lower):
        return True
    return "spacer" in lower or "blank." in lower or "1x1" in lower


def make_favicon(url: str) -> str:
    host = hostname(url)
    if not host:
        return ""
    return f"https://www.google.com/s2/favicons?domain={host}&sz=16"
