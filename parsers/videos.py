"""
Video source extraction from arbitrary pages.

Strategies run in a fixed order and emit ``VideoCandidate`` items (plus
``PosterHint`` markers from linked data). A single collector decodes
escapes, resolves, filters ads and dedups every candidate before it is
inserted, so the ad filter never runs as a post-pass.
"""

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import unquote

from models.schema import VideoRecord
from normalizer.urls import is_ad_url, resolve_url
from .strategies import Document, try_build

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20

IFRAME_TYPE = "iframe"

TYPE_ORDER = {
    "video/mp4": 0,
    "video/webm": 1,
    "application/x-mpegURL": 2,
    "application/dash+xml": 3,
}
UNKNOWN_TYPE_RANK = 5
IFRAME_RANK = 10

# extension regex -> MIME-like type, checked in order
EXTENSION_TYPES = (
    (re.compile(r"\.mp4", re.IGNORECASE), "video/mp4"),
    (re.compile(r"\.webm", re.IGNORECASE), "video/webm"),
    (re.compile(r"\.m3u8", re.IGNORECASE), "application/x-mpegURL"),
    (re.compile(r"\.mpd", re.IGNORECASE), "application/dash+xml"),
    (re.compile(r"\.flv", re.IGNORECASE), "video/x-flv"),
    (re.compile(r"\.ogg", re.IGNORECASE), "video/ogg"),
    (re.compile(r"\.mov", re.IGNORECASE), "video/quicktime"),
    (re.compile(r"\.avi", re.IGNORECASE), "video/x-msvideo"),
    (re.compile(r"\.ts\b", re.IGNORECASE), "video/mp2t"),
)

QUALITY_RE = re.compile(r"(\d{3,4})p")
VIDEO_EXT_RE = re.compile(r"\.(?:mp4|webm|m3u8|mpd|flv)", re.IGNORECASE)

ESCAPES = (
    (re.compile(r"\\u002F", re.IGNORECASE), "/"),
    (re.compile(r"\\u0026", re.IGNORECASE), "&"),
    (re.compile(r"\\u003d", re.IGNORECASE), "="),
    (re.compile(r"\\/"), "/"),
    (re.compile(r"&amp;"), "&"),
)

META_PROPERTIES = (
    "og:video",
    "og:video:url",
    "og:video:secure_url",
    "twitter:player",
    "twitter:player:stream",
)

DATA_ATTR_RE = re.compile(
    r"data-(src|source|video[-_]?(?:url|src|file|mp4|webm|hls)|file[-_]?url|stream[-_]?url|mp4|hls|dash)"
    r"=[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)
# generic attributes that are usually lazy-loaded images unless they carry a video extension
GENERIC_DATA_ATTRS = {"src", "source"}

SCRIPT_PATTERNS = (
    # player config keys: video_url = "...", videoUrl: "..."
    re.compile(
        r"(?:video_url|videoUrl|video_file|videoFile|file_url|fileUrl|mp4_url|mp4Url|source_url|sourceUrl"
        r"|stream_url|streamUrl|hls_url|hlsUrl|dash_url|dashUrl|media_url|mediaUrl|content_url|contentUrl"
        r"|download_url|downloadUrl|playback_url|playbackUrl|video_src|videoSrc)"
        r"\s*[:=]\s*[\"']([^\"'\s][^\"']*?)[\"']",
        re.IGNORECASE,
    ),
    # JSON keys whose value carries a video extension
    re.compile(
        r"[\"'](?:file|src|source|url|mp4|mp4_url|video|video_url|stream|hls|dash|media|contentUrl|videoUrl"
        r"|playUrl|play_url)[\"']\s*:\s*[\"']([^\"'\s][^\"']*?\.(?:mp4|webm|m3u8|mpd|flv|ogg|mov|avi|ts)"
        r"(?:\?[^\"']*)?)[\"']",
        re.IGNORECASE,
    ),
    # src/href/url/file assignments with a video extension
    re.compile(
        r"(?:src|href|url|file)\s*[:=]\s*[\"']([^\"'\s]+\.(?:mp4|webm|m3u8|mpd|flv|ogg|mov)(?:\?[^\"']*)?)[\"']",
        re.IGNORECASE,
    ),
    # percent-encoded values: video_url=https%3A%2F%2F...
    re.compile(
        r"(?:video_url|file_url|source|src|mp4|stream|media)=([a-zA-Z0-9%]+(?:%2F|%3A)[a-zA-Z0-9%./_\-?&=+]+)",
        re.IGNORECASE,
    ),
    # flashvars.video_url = "..." / flashvars = {file: "..."}
    re.compile(
        r"flashvars\s*(?:\.\s*\w+\s*=|=\s*\{[^}]*?)[\"']?(?:video_url|file|flv_url|mp4_url)[\"']?"
        r"\s*[:=]\s*[\"']([^\"']+)[\"']",
        re.IGNORECASE,
    ),
    # jwplayer / flowplayer / videojs: .setup({ file: "..." })
    re.compile(
        r"(?:setup|config|options|settings|player|init)\s*\(\s*\{[\s\S]{0,2000}?[\"'](?:file|src|source|url|mp4|video)[\"']"
        r"\s*:\s*[\"']([^\"']+\.(?:mp4|webm|m3u8|mpd)[^\"']*)[\"']",
        re.IGNORECASE,
    ),
    # sources: [{ src: "...", type: "..." }]
    re.compile(
        r"sources\s*:\s*\[[\s\S]{0,3000}?[\"']?(?:src|file|url)[\"']?\s*:\s*[\"']([^\"']+\.(?:mp4|webm|m3u8|mpd)[^\"']*)[\"']",
        re.IGNORECASE,
    ),
    # any quoted absolute URL with a video extension
    re.compile(r"[\"'](https?://[^\"'\s]+\.(?:mp4|webm|m3u8|mpd)(?:\?[^\"'\s]*)?)[\"']", re.IGNORECASE),
)

SCRIPT_URL_RE = re.compile(r"(https?://[^\s\"'<>\\]+\.(?:mp4|webm|m3u8|mpd)(?:\?[^\s\"'<>\\]*)?)", re.IGNORECASE)
ATOB_RE = re.compile(r"atob\s*\(\s*[\"']([A-Za-z0-9+/=]{20,})[\"']\s*\)")
DECODED_VIDEO_RE = re.compile(r"https?://.*\.(?:mp4|webm|m3u8|mpd)", re.IGNORECASE)
ANALYTICS_SCRIPT_RE = re.compile(
    r"google-analytics|googletagmanager|facebook\.net|twitter\.com/oct|hotjar|segment\.io",
    re.IGNORECASE,
)
MIN_SCRIPT_LENGTH = 10
MAX_SCRIPT_LENGTH = 100_000

EMBED_HOST_RE = re.compile(
    r"youtube\.com/embed|youtu\.be|player\.vimeo|dailymotion\.com/embed|streamable\.com|vidyard|wistia"
    r"|brightcove|jwplatform|bitchute\.com/embed|rumble\.com/embed",
    re.IGNORECASE,
)
GENERIC_EMBED_RE = re.compile(r"\b(embed|player|video|watch|play)\b", re.IGNORECASE)
EMBED_EXCLUDE_RE = re.compile(r"\b(ad|banner|widget|social|comment|chat)\b", re.IGNORECASE)


@dataclass
class VideoCandidate:
    url: str
    type: Optional[str] = None
    quality: Optional[str] = None
    poster: Optional[str] = None


@dataclass
class PosterHint:
    """Poster for the most recently inserted candidate, if it has none."""
    poster: str


Emitted = Union[VideoCandidate, PosterHint]


def decode_escapes(url: str) -> str:
    for pattern, replacement in ESCAPES:
        url = pattern.sub(replacement, url)
    return url


def infer_type(url: str) -> Optional[str]:
    for pattern, mime in EXTENSION_TYPES:
        if pattern.search(url):
            return mime
    return None


def infer_quality(url: str) -> Optional[str]:
    match = QUALITY_RE.search(url)
    return f"{match.group(1)}p" if match else None


def _quality_value(quality: Optional[str]) -> int:
    match = re.match(r"\s*(\d+)", quality or "")
    return int(match.group(1)) if match else 0


def _type_rank(video: VideoRecord) -> int:
    if video.type == IFRAME_TYPE:
        return IFRAME_RANK
    return TYPE_ORDER.get(video.type or "", UNKNOWN_TYPE_RANK)


def sort_videos(videos: Iterable[VideoRecord]) -> List[VideoRecord]:
    """
    Order direct sources by container preference, then quality descending.

    The sort is stable, so equal-rank sources keep discovery order. Iframe
    embeds always come after direct sources.
    """
    return sorted(videos, key=lambda v: (_type_rank(v), -_quality_value(v.quality)))


# ------------------------------------------------------------------
# Strategies
# ------------------------------------------------------------------

def meta_videos(doc: Document) -> List[Emitted]:
    found: List[Emitted] = []
    for node in doc.tree.css("meta[content]"):
        attrs = node.attributes
        key = (attrs.get("property") or attrs.get("name") or "").lower()
        if key in META_PROPERTIES:
            found.append(VideoCandidate(attrs.get("content") or ""))
    return found


def video_elements(doc: Document) -> List[Emitted]:
    found: List[Emitted] = []
    for video in doc.tree.css("video"):
        poster = video.attributes.get("poster")
        poster = resolve_url(poster, doc.base_url) if poster else None
        src = video.attributes.get("src")
        if src:
            found.append(VideoCandidate(src, poster=poster or None))
        for source in video.css("source[src]"):
            found.append(
                VideoCandidate(
                    source.attributes.get("src") or "",
                    type=source.attributes.get("type") or None,
                    poster=poster or None,
                )
            )
    # standalone <source> tags; ones inside <video> are already seen
    for source in doc.tree.css("source[src]"):
        found.append(VideoCandidate(source.attributes.get("src") or "", type=source.attributes.get("type") or None))
    return found


def data_attr_videos(doc: Document) -> List[Emitted]:
    found: List[Emitted] = []
    for match in DATA_ATTR_RE.finditer(doc.raw):
        attr, value = match.group(1).lower(), match.group(2)
        if attr in GENERIC_DATA_ATTRS and not VIDEO_EXT_RE.search(value):
            continue
        found.append(VideoCandidate(value))
    return found


def _walk_video_ld(obj, found: List[Emitted]) -> None:
    if isinstance(obj, list):
        for item in obj:
            _walk_video_ld(item, found)
        return
    if not isinstance(obj, dict):
        return
    if obj.get("@type") in ("VideoObject", "Video"):
        for key in ("contentUrl", "embedUrl", "url"):
            if isinstance(obj.get(key), str):
                found.append(VideoCandidate(obj[key]))
        thumb = obj.get("thumbnailUrl")
        if isinstance(thumb, list):
            thumb = thumb[0] if thumb else None
        if isinstance(thumb, str) and thumb:
            found.append(PosterHint(thumb))
    for value in obj.values():
        if isinstance(value, (dict, list)):
            _walk_video_ld(value, found)


def json_ld_videos(doc: Document) -> List[Emitted]:
    found: List[Emitted] = []
    for node in doc.tree.css('script[type="application/ld+json"]'):
        try:
            data = json.loads(node.text() or "")
        except ValueError:
            continue
        _walk_video_ld(data, found)
    return found


def _decode_base64(token: str) -> str:
    try:
        return base64.b64decode(token).decode("utf-8", errors="ignore")
    except (binascii.Error, ValueError):
        return ""


def script_videos(doc: Document) -> List[Emitted]:
    """Inline-script pattern battery, then a per-script scan for obfuscated URLs."""
    found: List[Emitted] = []
    for pattern in SCRIPT_PATTERNS:
        for match in pattern.finditer(doc.raw):
            candidate = match.group(1)
            if "%2F" in candidate or "%3A" in candidate:
                candidate = unquote(candidate)
            found.append(VideoCandidate(candidate))

    for node in doc.tree.css("script"):
        content = node.text() or ""
        if not MIN_SCRIPT_LENGTH <= len(content) <= MAX_SCRIPT_LENGTH:
            continue
        if ANALYTICS_SCRIPT_RE.search(content):
            continue
        for match in SCRIPT_URL_RE.finditer(content):
            found.append(VideoCandidate(match.group(1)))
        for match in ATOB_RE.finditer(content):
            decoded = _decode_base64(match.group(1))
            if DECODED_VIDEO_RE.search(decoded):
                found.append(VideoCandidate(decoded))
    return found


def is_video_embed(src: str) -> bool:
    if EMBED_HOST_RE.search(src):
        return True
    return bool(GENERIC_EMBED_RE.search(src)) and not EMBED_EXCLUDE_RE.search(src)


def iframe_embeds(doc: Document) -> List[Emitted]:
    found: List[Emitted] = []
    for node in doc.tree.css("iframe[src]"):
        src = resolve_url(node.attributes.get("src") or "", doc.base_url)
        if src and is_video_embed(src.lower()):
            found.append(VideoCandidate(src, type=IFRAME_TYPE))
    return found


STRATEGIES = (
    meta_videos,
    video_elements,
    data_attr_videos,
    json_ld_videos,
    script_videos,
    iframe_embeds,
)


def build_video(
    raw_url: str,
    base_url: str = "",
    type: Optional[str] = None,
    quality: Optional[str] = None,
    poster: Optional[str] = None,
) -> Optional[VideoRecord]:
    """Decode, resolve and ad-filter one candidate; ``None`` if rejected."""
    if not raw_url or not isinstance(raw_url, str):
        return None
    url = resolve_url(decode_escapes(raw_url), base_url)
    if not url or is_ad_url(url):
        return None
    return try_build(
        VideoRecord,
        url=url,
        type=type or infer_type(url),
        quality=quality or infer_quality(url),
        poster=poster,
    )


class _Collector:
    def __init__(self, base_url: str):
        self.base_url = base_url
        self.direct: List[VideoRecord] = []
        self.embeds: List[VideoRecord] = []
        self.seen = set()
        self._last: Optional[VideoRecord] = None

    def add(self, candidate: VideoCandidate) -> None:
        record = build_video(
            candidate.url,
            self.base_url,
            type=candidate.type,
            quality=candidate.quality,
            poster=candidate.poster,
        )
        if record is None or record.url in self.seen:
            return
        self.seen.add(record.url)
        if record.type == IFRAME_TYPE:
            self.embeds.append(record)
            return
        self.direct.append(record)
        self._last = record

    def backfill_poster(self, hint: PosterHint) -> None:
        if self._last is not None and not self._last.poster:
            self._last.poster = resolve_url(hint.poster, self.base_url) or None


class VideoExtractor:
    """
    Collect playable sources and embed players from a page.

    Usage:
        videos = VideoExtractor().extract(html, "https://example.com/watch/1")
    """

    def __init__(self, strategies: Sequence = STRATEGIES):
        self.strategies = strategies

    def extract(self, raw: str, base_url: str = "", limit: int = DEFAULT_LIMIT) -> List[VideoRecord]:
        if not raw:
            return []
        doc = Document(raw, base_url=base_url)
        collector = _Collector(base_url)

        for strategy in self.strategies:
            try:
                emitted = strategy(doc)
            except Exception as e:
                logger.debug("Video strategy %s failed: %s", strategy.__name__, e)
                continue
            for item in emitted:
                if isinstance(item, PosterHint):
                    collector.backfill_poster(item)
                else:
                    collector.add(item)

        videos = sort_videos(collector.direct)[:limit]
        for embed in collector.embeds:
            if len(videos) >= limit:
                break
            videos.append(embed)
        logger.debug(
            "Extracted %d direct and %d embedded videos from %s",
            len(collector.direct), len(collector.embeds), base_url or "<inline>",
        )
        return videos
