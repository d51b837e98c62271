"""
Direct page and image-search fetch helpers used by the media aggregators.

Unlike the engine adapters these return records (or raw text) rather than
``EngineResponse``; a failing fetch yields ``None`` / ``[]`` or raises an
httpx error that the aggregator's per-strategy guard absorbs.
"""

import logging
from typing import List, Optional

from models.enums import ImageFormat
from models.schema import ImageRecord
from parsers.images import ImageExtractor
from parsers.search_results import decode_ddg_url
from parsers.strategies import Document
from .base import HttpSource

logger = logging.getLogger(__name__)

BING_IMAGES_URL = "https://www.bing.com/images/search"
GOOGLE_SEARCH_URL = "https://www.google.com/search"
DDG_HTML_URL = "https://html.duckduckgo.com/html/"

MEDIA_TIMEOUT_S = 8.0
DDG_TIMEOUT_S = 6.0


class PageFetcher(HttpSource):
    """Fetch pages and image-search surfaces, extracting images where asked."""

    async def fetch(self, url: str, timeout: Optional[float] = None, **params) -> Optional[str]:
        """Body text on 2xx, ``None`` otherwise."""
        response = await self._get(url, params=params or None, timeout=timeout)
        if not response.is_success:
            logger.debug("GET %s returned HTTP %d", url, response.status_code)
            return None
        return response.text

    async def page_images(self, url: str, limit: int = 20) -> List[ImageRecord]:
        """Single-page image scrape."""
        html = await self.fetch(url, timeout=self.config.timeout_s)
        if not html:
            return []
        return ImageExtractor().extract(html, ImageFormat.PAGE, source_url=url, limit=limit)

    async def bing_images(self, query: str, limit: int = 20) -> List[ImageRecord]:
        html = await self.fetch(
            BING_IMAGES_URL, timeout=MEDIA_TIMEOUT_S, q=query, form="HDRSC2", first="1"
        )
        if not html:
            return []
        return ImageExtractor().extract(html, ImageFormat.BING_IMAGES, limit=limit, query=query)

    async def google_images(self, query: str, limit: int = 20) -> List[ImageRecord]:
        html = await self.fetch(GOOGLE_SEARCH_URL, timeout=MEDIA_TIMEOUT_S, q=query, tbm="isch", hl="en")
        if not html:
            return []
        return ImageExtractor().extract(html, ImageFormat.GOOGLE_IMAGES, limit=limit, query=query)

    async def ddg_result_urls(self, query: str, limit: int = 10) -> List[str]:
        """
        Result page URLs from DuckDuckGo's HTML endpoint, for search-then-scrape.

        Search engine and video-site links are skipped; they carry no images
        worth scraping.
        """
        html = await self.fetch(DDG_HTML_URL, timeout=DDG_TIMEOUT_S, q=query)
        if not html:
            return []

        urls: List[str] = []
        for a in Document(html).soup.select("a.result__a[href]"):
            if len(urls) >= limit:
                break
            url = decode_ddg_url(a["href"])
            if not url.startswith("http") or "youtube.com" in url or "google.com" in url:
                continue
            if url not in urls:
                urls.append(url)
        return urls
