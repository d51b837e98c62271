"""
Connectors package initialization.
"""

from .base import EngineAdapter, HttpSource
from .registry import (
    get_registry,
    register_adapter,
    build_cascade,
)
from .render_api import RenderApiAdapter
from .serper import SerperAdapter
from .duckduckgo import DuckDuckGoAdapter
from .bing_scrape import BingScrapeAdapter
from .google_scrape import GoogleScrapeAdapter
from .browser_search import BrowserSearchAdapter
from .booru import BooruClient, BOORU_PROVIDERS, names_booru, booru_tags
from .page_scrape import PageFetcher

__all__ = [
    "EngineAdapter",
    "HttpSource",
    "get_registry",
    "register_adapter",
    "build_cascade",
    "RenderApiAdapter",
    "SerperAdapter",
    "DuckDuckGoAdapter",
    "BingScrapeAdapter",
    "GoogleScrapeAdapter",
    "BrowserSearchAdapter",
    "BooruClient",
    "BOORU_PROVIDERS",
    "names_booru",
    "booru_tags",
    "PageFetcher",
]
