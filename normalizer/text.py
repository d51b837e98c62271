"""
Text hygiene for scraped titles and snippets.
"""

import html
import re

from .urls import hostname


TAG_RE = re.compile(r"<[^>]*>")

# "stackexchange.comhttps://stackexchange.com/..." style artefacts
GLUED_HOST_RE = re.compile(r"^([a-zA-Z0-9.-]+\.[a-z]{2,})(https?://.*)", re.IGNORECASE)

BARE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


def decode_entities(text: str) -> str:
    """Decode HTML character references (``&amp;``, ``&#39;``, ``&nbsp;`` ...)."""
    if not text:
        return ""
    return html.unescape(text).replace("\xa0", " ")


def strip_tags(markup: str) -> str:
    """Remove tags, decode entities and trim."""
    if not markup:
        return ""
    return decode_entities(TAG_RE.sub("", markup)).strip()


def is_glued_host(title: str) -> bool:
    """True for titles like ``example.comhttps://example.com/page``."""
    return bool(GLUED_HOST_RE.match(title or ""))


def is_bare_url(title: str) -> bool:
    return bool(BARE_URL_RE.match(title or ""))


def clean_title(title: str, url: str) -> str:
    """
    Decode entities and repair the two common title artefacts.

    A hostname glued onto a URL, or a bare URL, is replaced by the
    hostname it points at. An empty title falls back to the hostname of
    the result URL itself.
    """
    clean = decode_entities(title or "").strip()

    glued = GLUED_HOST_RE.match(clean)
    if glued:
        clean = hostname(glued.group(2)) or glued.group(1)

    if BARE_URL_RE.match(clean):
        clean = hostname(clean) or clean

    if not clean:
        clean = hostname(url) or url
    return clean


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()

