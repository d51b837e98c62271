"""
Booru-style image board APIs (Gelbooru, Danbooru, e621).

Mainstream image search filters tag-oriented art boards heavily, so when
a query names one of these boards the image aggregator asks their JSON
APIs directly before touching general search.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List

from models.enums import ImageFormat
from models.schema import ImageRecord
from parsers.images import ImageExtractor
from .base import HttpSource

logger = logging.getLogger(__name__)

BOORU_TIMEOUT_S = 8.0

BOORU_QUERY_RE = re.compile(r"\b(booru|gelbooru|danbooru|safebooru|e621)\b", re.IGNORECASE)

# board names and filler words that are not tags
TAG_NOISE_RE = re.compile(
    r"\b(booru|gelbooru|danbooru|safebooru|e621|images?|pics?|pictures?|photos?|show\s*me|send\s*me|of|on|from)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class BooruProvider:
    name: str
    api_url: str
    fmt: ImageFormat
    limit: int = 20
    user_agent: str = ""


BOORU_PROVIDERS: Dict[str, BooruProvider] = {
    "gelbooru": BooruProvider(
        name="gelbooru",
        api_url="https://gelbooru.com/index.php?page=dapi&s=post&q=index&json=1",
        fmt=ImageFormat.GELBOORU_JSON,
    ),
    "danbooru": BooruProvider(
        name="danbooru",
        api_url="https://danbooru.donmai.us/posts.json",
        fmt=ImageFormat.DANBOORU_JSON,
    ),
    "e621": BooruProvider(
        name="e621",
        api_url="https://e621.net/posts.json",
        fmt=ImageFormat.E621_JSON,
        # e621 rejects requests without a descriptive agent
        user_agent="image-aggregator/1.0 (search-core)",
    ),
}


def names_booru(query: str) -> bool:
    """True when the query explicitly targets a booru board."""
    return bool(BOORU_QUERY_RE.search(query or ""))


def booru_tags(query: str) -> str:
    """Reduce a free-text query to space-separated, lower-case tags."""
    cleaned = TAG_NOISE_RE.sub(" ", query or "")
    return " ".join(cleaned.lower().split())


class BooruClient(HttpSource):
    """Query one board's JSON API for tagged posts."""

    def __init__(self, provider: BooruProvider, config=None, client=None):
        super().__init__(config, client)
        self.provider = provider

    async def search_images(self, tags: str) -> List[ImageRecord]:
        if not tags:
            return []
        headers = {"Accept": "application/json"}
        if self.provider.user_agent:
            headers["User-Agent"] = self.provider.user_agent

        response = await self._get(
            self.provider.api_url,
            params={"limit": str(self.provider.limit), "tags": tags},
            headers=headers,
            timeout=BOORU_TIMEOUT_S,
        )
        if not response.is_success:
            logger.info("%s API returned HTTP %d", self.provider.name, response.status_code)
            return []

        records = ImageExtractor().extract(
            response.text,
            self.provider.fmt,
            limit=self.provider.limit,
            query=tags,
        )
        logger.debug("%s returned %d images for %r", self.provider.name, len(records), tags)
        return records
