"""
Image aggregation: booru APIs, image search surfaces and search-then-scrape.

Two tiers. The booru tier only runs for queries that name a booru board;
when it alone yields enough images the general tier is skipped. The
general tier runs Bing Images, a DuckDuckGo search-then-scrape pass and
Google Images concurrently, merged in that priority order.
"""

import asyncio
import logging
from typing import List, Optional

import httpx

from connectors.booru import BOORU_PROVIDERS, BooruClient, booru_tags, names_booru
from connectors.page_scrape import PageFetcher
from models.schema import ImageRecord
from normalizer.urls import hostname

from .config import SearchConfig
from .fanout import FanOutAggregator, FanOutStrategy, merge_unique

logger = logging.getLogger(__name__)

# Result pages on these hosts are scraped first
IMAGE_SITE_DOMAINS = (
    "wallpapers.com", "wallpaperswide.com", "wallpaperflare.com", "wallpaperaccess.com",
    "wallhaven.cc", "alphacoders.com", "wall.alphacoders.com",
    "pinterest.com", "pinterest.co", "pin.it",
    "deviantart.com", "artstation.com",
    "flickr.com", "500px.com", "unsplash.com", "pexels.com", "pixabay.com",
    "zerochan.net", "danbooru.donmai.us", "gelbooru.com", "safebooru.org",
    "imgur.com", "i.imgur.com",
    "fandom.com", "fandomwire.com",
    "screenrant.com", "cbr.com",
    "hdqwalls.com", "uhdpaper.com", "4kwallpapers.com",
)

SCRAPE_RESULT_URLS = 10
SCRAPE_IMAGE_SITE_PAGES = 5
SCRAPE_OTHER_PAGES = 3
SCRAPE_IMAGES_PER_PAGE = 6


def is_image_site(url: str) -> bool:
    host = hostname(url)
    return bool(host) and any(host == d or host.endswith("." + d) for d in IMAGE_SITE_DOMAINS)


def pick_scrape_targets(urls: List[str]) -> List[str]:
    """Image-hosting pages first (up to 5), then up to 3 others."""
    image_sites = [u for u in urls if is_image_site(u)]
    others = [u for u in urls if not is_image_site(u)]
    return image_sites[:SCRAPE_IMAGE_SITE_PAGES] + others[:SCRAPE_OTHER_PAGES]


class ImageAggregator:
    """
    Query-driven image discovery.

    Usage:
        images = await ImageAggregator().aggregate("mountain lake wallpaper")
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or SearchConfig.from_env()
        self.fetcher = PageFetcher(self.config, client)
        self.boorus = [BooruClient(p, self.config, client) for p in BOORU_PROVIDERS.values()]

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def bing_images(self, query: str) -> List[ImageRecord]:
        return await self.fetcher.bing_images(query, limit=self.config.image_strategy_cap)

    async def google_images(self, query: str) -> List[ImageRecord]:
        return await self.fetcher.google_images(query, limit=self.config.image_strategy_cap)

    async def search_then_scrape(self, query: str) -> List[ImageRecord]:
        """Scrape images from the top DuckDuckGo result pages."""
        urls = await self.fetcher.ddg_result_urls(query, limit=SCRAPE_RESULT_URLS)
        targets = pick_scrape_targets(urls)
        if not targets:
            return []

        pages = await asyncio.gather(
            *(self.fetcher.page_images(u, limit=SCRAPE_IMAGES_PER_PAGE) for u in targets),
            return_exceptions=True,
        )

        records: List[ImageRecord] = []
        seen = set()
        for target, page in zip(targets, pages):
            if isinstance(page, BaseException):
                logger.debug("Scrape of %s failed: %s", target, page)
                continue
            for record in page:
                if len(records) >= self.config.image_strategy_cap:
                    return records
                if record.url not in seen:
                    seen.add(record.url)
                    records.append(record)
        return records

    def booru_tier(self) -> FanOutAggregator[ImageRecord]:
        return FanOutAggregator(
            [FanOutStrategy(b.provider.name, b.search_images) for b in self.boorus],
            cap=self.config.image_strategy_cap,
            timeout_s=self.config.aggregator_timeout_s,
        )

    def general_tier(self) -> FanOutAggregator[ImageRecord]:
        return FanOutAggregator(
            [
                FanOutStrategy("bing-images", self.bing_images),
                FanOutStrategy("search-scrape", self.search_then_scrape),
                FanOutStrategy("google-images", self.google_images),
            ],
            cap=self.config.image_result_cap,
            timeout_s=self.config.aggregator_timeout_s,
            strategy_cap=self.config.image_strategy_cap,
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def aggregate(self, query: str) -> List[ImageRecord]:
        query = (query or "").strip()
        if not query:
            return []

        booru_records: List[ImageRecord] = []
        if names_booru(query):
            tags = booru_tags(query)
            if tags:
                booru_records = await self.booru_tier().aggregate(tags)
                logger.info("[images] booru APIs found %d images for %r", len(booru_records), query)
            if len(booru_records) >= self.config.image_short_circuit:
                return booru_records[: self.config.image_result_cap]

        general = await self.general_tier().collect(query)
        images = merge_unique([booru_records, *general], self.config.image_result_cap)
        logger.info("[images] %d images for %r", len(images), query)
        return images

    async def aggregate_page(self, url: str) -> List[ImageRecord]:
        """Single-page mode: images found on ``url`` only."""
        single = FanOutAggregator(
            [FanOutStrategy("page", lambda u: self.fetcher.page_images(u, limit=self.config.image_result_cap))],
            cap=self.config.image_result_cap,
            timeout_s=self.config.aggregator_timeout_s,
        )
        return await single.aggregate(url)


async def aggregate_images(
    query: Optional[str] = None,
    page_url: Optional[str] = None,
    config: Optional[SearchConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[ImageRecord]:
    """
    Images for a query, or from a single page when ``page_url`` is given.

    Raises:
        ValueError: If neither a query nor a page URL is given
    """
    aggregator = ImageAggregator(config, client)
    if page_url:
        return await aggregator.aggregate_page(page_url)
    if query:
        return await aggregator.aggregate(query)
    raise ValueError("aggregate_images needs a query or a page_url")
