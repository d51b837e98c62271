"""
Image extraction for content pages, image search surfaces and booru APIs.

Page mode accumulates across complementary patterns (a page can expose
the same gallery through og:image, srcset and lazy-load attributes at
once). Search surfaces and APIs are single-pattern per format, with Bing
carrying a second metadata layout as a fallback.
"""

import html as html_lib
import json
import logging
import re
from typing import Iterator, List, Optional, Tuple

from models.enums import ImageFormat
from models.schema import ImageRecord
from normalizer.urls import is_valid_image_url, normalize_url, resolve_url
from .strategies import Document, accumulate, first_present, try_build

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20

MIN_DIMENSION = 80
MIN_SEARCH_DIMENSION = 150
BING_MIN_PRIMARY = 5
GOOGLE_SOURCE_WINDOW = 2000

LAZY_ATTRS = ("data-src", "data-original", "data-lazy-src", "data-full", "data-image", "data-bg")
JSON_LD_IMAGE_KEYS = ("image", "thumbnailUrl", "contentUrl")

BACKGROUND_RE = re.compile(r"background-image:\s*url\(\s*[\"']?([^\"')]+)[\"']?\s*\)", re.IGNORECASE)
BING_M_RE = re.compile(r"\bm=[\"'](\{[^\"']*?murl[^\"']*?\})[\"']", re.IGNORECASE)
BING_IUSC_RE = re.compile(r"\biusc=[\"'](\{[^\"']*?\})[\"']", re.IGNORECASE)
GOOGLE_ARRAY_RE = re.compile(
    r"\[\"(https?://[^\"]+\.(?:jpg|jpeg|png|webp|gif)[^\"]*)\",\s*(\d+),\s*(\d+)\]",
    re.IGNORECASE,
)
GOOGLE_SOURCE_RE = re.compile(r"\[\"(https?://(?!encrypted-tbn)[^\"]{10,})\"")
IMAGE_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)", re.IGNORECASE)


def _int_attr(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    match = re.match(r"\s*(\d+)", value)
    return int(match.group(1)) if match else None


def _image(src: str, doc: Document, alt: str = "") -> Optional[ImageRecord]:
    url = resolve_url(src, doc.base_url)
    if not url:
        return None
    return try_build(ImageRecord, url=url, alt=alt or "", source=doc.base_url)


def _collect(doc: Document, sources: Iterator[Tuple[str, str]]) -> List[ImageRecord]:
    records = []
    for src, alt in sources:
        record = _image(src, doc, alt)
        if record:
            records.append(record)
    return records


# ------------------------------------------------------------------
# Page mode
# ------------------------------------------------------------------

def og_image(doc: Document) -> List[ImageRecord]:
    def sources():
        for node in doc.tree.css('meta[property="og:image"], meta[property="og:image:url"]'):
            yield node.attributes.get("content") or "", ""
    return _collect(doc, sources())


def best_srcset_entry(srcset: str) -> str:
    """Highest-resolution candidate of a ``srcset`` attribute (``w`` or ``x`` descriptors)."""
    best_url, best_score = "", -1.0
    for entry in srcset.split(","):
        parts = entry.strip().split()
        if not parts:
            continue
        score = 1.0
        if len(parts) > 1:
            descriptor = parts[1].lower()
            try:
                score = float(descriptor[:-1]) if descriptor[-1] in "wx" else 1.0
            except ValueError:
                score = 1.0
        if score > best_score:
            best_url, best_score = parts[0], score
    return best_url


def srcset_images(doc: Document) -> List[ImageRecord]:
    def sources():
        for node in doc.tree.css("[srcset]"):
            yield best_srcset_entry(node.attributes.get("srcset") or ""), node.attributes.get("alt") or ""
    return _collect(doc, sources())


def lazy_images(doc: Document) -> List[ImageRecord]:
    def sources():
        selector = ", ".join(f"[{attr}]" for attr in LAZY_ATTRS)
        for node in doc.tree.css(selector):
            for attr in LAZY_ATTRS:
                value = node.attributes.get(attr)
                if value:
                    yield value, node.attributes.get("alt") or ""
    return _collect(doc, sources())


def background_images(doc: Document) -> List[ImageRecord]:
    return _collect(doc, ((m.group(1), "") for m in BACKGROUND_RE.finditer(doc.raw)))


def img_elements(doc: Document) -> List[ImageRecord]:
    """``<img>`` tags, skipping declared-small images and logo/icon files."""
    def sources():
        for node in doc.tree.css("img[src]"):
            attrs = node.attributes
            src = attrs.get("src") or ""
            lower = src.lower()
            if "logo" in lower or "icon" in lower:
                continue
            width = _int_attr(attrs.get("width"))
            height = _int_attr(attrs.get("height"))
            if (width is not None and width < MIN_DIMENSION) or (
                height is not None and height < MIN_DIMENSION
            ):
                continue
            yield src, attrs.get("alt") or ""
    return _collect(doc, sources())


def _walk_json_ld(obj) -> Iterator[str]:
    if isinstance(obj, list):
        for item in obj:
            yield from _walk_json_ld(item)
        return
    if not isinstance(obj, dict):
        return
    for key, value in obj.items():
        if key in JSON_LD_IMAGE_KEYS and isinstance(value, str):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, str) and item.startswith("http"):
                    yield item
                else:
                    yield from _walk_json_ld(item)
        elif isinstance(value, dict):
            yield from _walk_json_ld(value)


def json_ld_images(doc: Document) -> List[ImageRecord]:
    def sources():
        for node in doc.tree.css('script[type="application/ld+json"]'):
            try:
                data = json.loads(node.text() or "")
            except ValueError:
                continue
            for src in _walk_json_ld(data):
                yield src, ""
    return _collect(doc, sources())


PAGE_STRATEGIES = (
    og_image,
    srcset_images,
    lazy_images,
    background_images,
    img_elements,
    json_ld_images,
)


# ------------------------------------------------------------------
# Image search surfaces
# ------------------------------------------------------------------

def _attr_json(raw: str) -> Optional[dict]:
    try:
        data = json.loads(html_lib.unescape(raw))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def bing_metadata(doc: Document, query: str = "") -> List[ImageRecord]:
    """
    Bing image tiles carry JSON metadata in an ``m`` attribute (``murl`` is
    the full image). Older layouts only expose ``iusc`` metadata
    (``oi``/``an``/``pi``); that layer is read when the first yields
    fewer than five images.
    """
    records: List[ImageRecord] = []
    seen = set()
    for match in BING_M_RE.finditer(doc.raw):
        data = _attr_json(match.group(1))
        if not data or not data.get("murl"):
            continue
        record = try_build(
            ImageRecord,
            url=data["murl"],
            alt=data.get("t") or query,
            source=first_present(data, ("purl", "rurl")) or "",
        )
        if record and record.url not in seen:
            seen.add(record.url)
            records.append(record)

    if len(records) < BING_MIN_PRIMARY:
        for match in BING_IUSC_RE.finditer(doc.raw):
            data = _attr_json(match.group(1))
            if not data or not data.get("oi"):
                continue
            record = try_build(
                ImageRecord,
                url=data["oi"],
                alt=data.get("an") or query,
                source=data.get("pi") or "",
            )
            if record and record.url not in seen:
                seen.add(record.url)
                records.append(record)
    return records


def google_source_page(raw: str, image_url: str) -> str:
    """The nearest preceding non-image URL in the result blob, or the image origin."""
    idx = raw.find(image_url[:60])
    if idx > 0:
        window = raw[max(0, idx - GOOGLE_SOURCE_WINDOW):idx]
        candidates = GOOGLE_SOURCE_RE.findall(window)
        if candidates and not IMAGE_EXT_RE.search(candidates[-1]):
            return candidates[-1]
    match = re.match(r"(https?://[^/]+)", image_url)
    return match.group(1) if match else ""


def google_arrays(doc: Document, query: str = "") -> List[ImageRecord]:
    """``["https://.../full.jpg", 1200, 800]`` triples embedded in Google's result scripts."""
    records: List[ImageRecord] = []
    seen = set()
    for match in GOOGLE_ARRAY_RE.finditer(doc.raw):
        width, height = int(match.group(2)), int(match.group(3))
        if width < MIN_SEARCH_DIMENSION or height < MIN_SEARCH_DIMENSION:
            continue
        url = match.group(1).replace("\\u003d", "=").replace("\\u0026", "&")
        if url in seen or not is_valid_image_url(url):
            continue
        record = try_build(
            ImageRecord,
            url=url,
            alt=query,
            source=google_source_page(doc.raw, match.group(1)),
        )
        if record:
            seen.add(url)
            records.append(record)
    return records


# ------------------------------------------------------------------
# Booru JSON APIs
# ------------------------------------------------------------------

def _tag_alt(tags, fallback: str) -> str:
    if isinstance(tags, str):
        tags = tags.split()
    if not isinstance(tags, list):
        return fallback
    return ", ".join(str(t) for t in tags[:5]) or fallback


def _booru_records(posts, url_paths, tag_path, source_fmt: str, query: str) -> List[ImageRecord]:
    records: List[ImageRecord] = []
    if not isinstance(posts, list):
        return records
    for post in posts:
        url = first_present(post, url_paths)
        if not url:
            continue
        record = try_build(
            ImageRecord,
            url=url,
            alt=_tag_alt(first_present(post, (tag_path,)), query),
            source=source_fmt.format(id=post.get("id", "")),
        )
        if record:
            records.append(record)
    return records


def gelbooru_posts(doc: Document, query: str = "") -> List[ImageRecord]:
    payload = doc.payload
    posts = payload.get("post") if isinstance(payload, dict) else payload
    return _booru_records(
        posts,
        ("file_url", "sample_url"),
        "tags",
        "https://gelbooru.com/index.php?page=post&s=view&id={id}",
        query,
    )


def danbooru_posts(doc: Document, query: str = "") -> List[ImageRecord]:
    return _booru_records(
        doc.payload,
        ("file_url", "large_file_url", "sample_url"),
        "tag_string_general",
        "https://danbooru.donmai.us/posts/{id}",
        query,
    )


def e621_posts(doc: Document, query: str = "") -> List[ImageRecord]:
    payload = doc.payload
    posts = payload.get("posts") if isinstance(payload, dict) else None
    return _booru_records(
        posts,
        (("file", "url"), ("sample", "url"), ("preview", "url")),
        ("tags", "general"),
        "https://e621.net/posts/{id}",
        query,
    )


class ImageExtractor:
    """
    Extract ``ImageRecord`` items from raw markup or JSON.

    ``source_url`` is the page address for page mode; for search surfaces
    and APIs it is unused and ``query`` supplies the fallback alt text.
    """

    SEARCH_STRATEGIES = {
        ImageFormat.BING_IMAGES: bing_metadata,
        ImageFormat.GOOGLE_IMAGES: google_arrays,
        ImageFormat.GELBOORU_JSON: gelbooru_posts,
        ImageFormat.DANBOORU_JSON: danbooru_posts,
        ImageFormat.E621_JSON: e621_posts,
    }

    def extract(
        self,
        raw: str,
        fmt: ImageFormat = ImageFormat.PAGE,
        source_url: str = "",
        limit: int = DEFAULT_LIMIT,
        query: str = "",
    ) -> List[ImageRecord]:
        if not raw:
            return []
        fmt = ImageFormat(fmt)
        doc = Document(raw, base_url=source_url)

        if fmt is ImageFormat.PAGE:
            return accumulate(PAGE_STRATEGIES, doc, key=lambda r: normalize_url(r.url), limit=limit)

        strategy = self.SEARCH_STRATEGIES[fmt]
        try:
            records = strategy(doc, query)
        except Exception as e:
            logger.debug("Image strategy %s failed: %s", fmt.value, e)
            return []
        return records[:limit]


def extract_page_images(raw: str, source_url: str, limit: int = DEFAULT_LIMIT) -> List[ImageRecord]:
    return ImageExtractor().extract(raw, ImageFormat.PAGE, source_url, limit)

