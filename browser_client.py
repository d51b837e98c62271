"""
Browser Client: Playwright-based rendering for JS-heavy search and video pages.

Provides:
  - Browser pool management (one browser per event loop, page semaphore)
  - Reconnection when the browser dies or a remote endpoint drops
  - Resource blocking (images, fonts, trackers) for search rendering
  - Media request/response interception for video discovery
  - Generic consent handler for cookie banners

Usage:
    # Fetch a rendered page
    page = await fetch_rendered("https://www.google.com/search?q=example")

    # Capture media requests while a player loads
    capture = await capture_media_responses("https://example.com/watch/1")
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse

from playwright.async_api import (
    async_playwright,
    Browser,
    BrowserContext,
    Page,
    Request,
    Response,
    Route,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------

@dataclass
class BrowserConfig:
    """Browser client configuration."""

    enabled: bool = True
    browser_type: str = "chromium"  # chromium | firefox | webkit
    headless: bool = True
    max_concurrent_pages: int = 3
    timeout_ms: int = 45000
    navigation_timeout_ms: int = 20000
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    locale: str = "en-US"
    # connect to a remote browser (e.g. browserless) instead of launching one
    ws_endpoint: str = ""

    # Resource blocking
    block_images: bool = True
    block_fonts: bool = True
    block_media: bool = True
    block_trackers: bool = True

    @classmethod
    def from_env(cls) -> BrowserConfig:
        """Load configuration from environment variables."""
        return cls(
            enabled=os.getenv("PLAYWRIGHT_ENABLED", "true").lower() == "true",
            browser_type=os.getenv("PLAYWRIGHT_BROWSER", "chromium"),
            headless=os.getenv("PLAYWRIGHT_HEADLESS", "true").lower() == "true",
            max_concurrent_pages=int(os.getenv("PLAYWRIGHT_MAX_PAGES", "3")),
            timeout_ms=int(os.getenv("PLAYWRIGHT_TIMEOUT", "45000")),
            ws_endpoint=os.getenv("PLAYWRIGHT_WS_ENDPOINT", ""),
        )


# ------------------------------------------------------------------
# Data models
# ------------------------------------------------------------------

@dataclass
class RenderedPage:
    """Result of fetching a rendered page."""

    url: str
    content: str  # HTML content
    status_code: int  # 0 when navigation produced no response
    retrieved_at: datetime


@dataclass
class CapturedMedia:
    """Media URL observed on the wire while a page loaded."""

    url: str
    origin: str  # "request" | "response"
    content_type: str = ""
    resource_type: str = ""


@dataclass
class MediaCapture:
    """Network-level media plus the DOM after the player initialised."""

    url: str
    media: List[CapturedMedia]
    content: str
    title: str = ""


# ------------------------------------------------------------------
# Browser Pool (one browser per event loop)
# ------------------------------------------------------------------

class BrowserPool:
    """
    Manages a single browser instance with per-request contexts.

    One pool per running event loop. Initialisation is guarded by a lock so
    concurrent first callers do not launch two browsers; a disconnected
    browser is relaunched (or reconnected) on the next ``get_instance``.
    """

    _instances: Dict[asyncio.AbstractEventLoop, 'BrowserPool'] = {}
    _init_locks: Dict[asyncio.AbstractEventLoop, asyncio.Lock] = {}

    def __init__(self, config: BrowserConfig):
        self.config = config
        self._browser: Optional[Browser] = None
        self._playwright = None
        self._contexts: List[BrowserContext] = []
        self._semaphore = asyncio.Semaphore(config.max_concurrent_pages)
        self._rate_limiters: Dict[str, float] = {}  # domain -> last_request_time

    @classmethod
    async def get_instance(cls, config: Optional[BrowserConfig] = None) -> 'BrowserPool':
        """Get or create the pool for the current event loop."""
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            raise RuntimeError("BrowserPool must be used within a running event loop")

        # Closed loops can't be awaited on; just forget them
        for loop in list(cls._instances.keys()):
            if loop.is_closed():
                cls._instances.pop(loop, None)
                cls._init_locks.pop(loop, None)

        lock = cls._init_locks.setdefault(current_loop, asyncio.Lock())
        async with lock:
            instance = cls._instances.get(current_loop)
            if instance is None:
                instance = BrowserPool(config or BrowserConfig.from_env())
                await instance._initialize()
                cls._instances[current_loop] = instance
            elif instance.config.enabled and not instance.is_healthy():
                logger.warning("Browser disconnected, relaunching")
                await instance.reset()

        return instance

    async def _initialize(self):
        """Launch a local browser, or connect to ``ws_endpoint`` when set."""
        if not self.config.enabled:
            return

        self._playwright = await async_playwright().start()

        if self.config.browser_type == "firefox":
            browser_type = self._playwright.firefox
        elif self.config.browser_type == "webkit":
            browser_type = self._playwright.webkit
        else:
            browser_type = self._playwright.chromium

        try:
            if self.config.ws_endpoint:
                logger.info("Connecting to remote browser at %s", self.config.ws_endpoint)
                self._browser = await browser_type.connect(self.config.ws_endpoint)
            else:
                self._browser = await browser_type.launch(
                    headless=self.config.headless,
                    args=["--no-sandbox", "--disable-dev-shm-usage"] if self.config.browser_type == "chromium" else None,
                )
        except Exception:
            # the driver process outlives a failed launch unless stopped
            await self._playwright.stop()
            self._playwright = None
            raise

    def is_healthy(self) -> bool:
        """True when a browser exists and is still connected."""
        return self._browser is not None and self._browser.is_connected()

    async def reset(self):
        """Tear down and relaunch the browser."""
        await self.close()
        self._browser = None
        self._playwright = None
        await self._initialize()

    async def close(self):
        """Close browser and cleanup."""
        for ctx in list(self._contexts):
            try:
                await ctx.close()
            except Exception as e:
                logger.debug("Context close failed: %s", e)
        self._contexts.clear()

        if self._browser:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("Browser close failed: %s", e)
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.debug("Playwright stop failed: %s", e)

    @classmethod
    async def close_all(cls):
        """Close the pool belonging to the current loop."""
        # Pools on other loops can only be closed from inside those loops.
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        instance = cls._instances.pop(current_loop, None)
        if instance is not None:
            await instance.close()

    @asynccontextmanager
    async def acquire_session(self):
        """Yield a fresh page in its own context, bounded by the page semaphore."""
        if not self.config.enabled or not self._browser:
            raise RuntimeError("Browser not initialized or disabled")

        async with self._semaphore:
            context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                locale=self.config.locale,
                viewport={"width": 1280, "height": 800},
            )
            context.set_default_timeout(self.config.timeout_ms)
            context.set_default_navigation_timeout(self.config.navigation_timeout_ms)

            self._contexts.append(context)
            page = await context.new_page()

            try:
                yield page
            finally:
                await page.close()
                await context.close()
                self._contexts.remove(context)

    async def rate_limit(self, url: str, delay: float = 1.0):
        """Enforce per-domain rate limiting."""
        domain = urlparse(url).netloc

        last_request = self._rate_limiters.get(domain, 0)
        elapsed = time.time() - last_request

        if elapsed < delay:
            await asyncio.sleep(delay - elapsed)

        self._rate_limiters[domain] = time.time()


# ------------------------------------------------------------------
# Resource blocking
# ------------------------------------------------------------------

TRACKER_DOMAINS = {
    "google-analytics.com",
    "googletagmanager.com",
    "facebook.net",
    "doubleclick.net",
    "analytics.google.com",
    "hotjar.com",
    "mixpanel.com",
    "segment.io",
}


async def _block_resources(route: Route, request: Request, config: BrowserConfig):
    """Route handler to block unwanted resources."""
    resource_type = request.resource_type
    url = request.url.lower()

    if config.block_images and resource_type == "image":
        await route.abort()
        return
    if config.block_fonts and resource_type == "font":
        await route.abort()
        return
    if config.block_media and resource_type == "media":
        await route.abort()
        return

    if config.block_trackers:
        for tracker in TRACKER_DOMAINS:
            if tracker in url:
                await route.abort()
                return

    await route.continue_()


# ------------------------------------------------------------------
# Consent handler
# ------------------------------------------------------------------

CONSENT_BUTTON_PATTERNS = [
    "accept all",
    "allow all",
    "i agree",
    "accept",
    "agree",
    "consent",
]


async def _handle_consent(page: Page) -> bool:
    """
    Try to dismiss cookie consent banners.

    Returns True if consent button found and clicked.
    """
    for pattern in CONSENT_BUTTON_PATTERNS:
        try:
            selector = f"button:has-text('{pattern}'), a:has-text('{pattern}')"
            button = page.locator(selector).first

            if await button.count() > 0:
                await button.click(timeout=2000)
                await page.wait_for_timeout(500)
                return True
        except Exception:
            continue

    return False


# ------------------------------------------------------------------
# Media interception
# ------------------------------------------------------------------

MEDIA_RESOURCE_TYPES = {"media", "xhr", "fetch", "other"}
MEDIA_URL_RE = re.compile(r"\.(?:mp4|webm|m3u8|mpd|flv|ts)\b", re.IGNORECASE)
MEDIA_ACCEPT_RE = re.compile(r"video/|mpegurl|dash", re.IGNORECASE)
MEDIA_CONTENT_TYPE_RE = re.compile(r"video/|mpegurl|dash\+xml|octet-stream", re.IGNORECASE)

PLAY_SELECTORS = [
    "video",
    ".play-button",
    ".vjs-big-play-button",
    ".jw-icon-display",
    "[class*='play']",
    "[aria-label*='play']",
    "[title*='play']",
    ".fp-play",
    ".plyr__control--overlaid",
    ".video-play-button",
    "button[class*='play']",
    "div[class*='play']",
]


def is_media_request(url: str, resource_type: str, accept: str = "") -> bool:
    if resource_type not in MEDIA_RESOURCE_TYPES:
        return False
    return bool(MEDIA_URL_RE.search(url) or MEDIA_ACCEPT_RE.search(accept or ""))


def is_media_response(content_type: str) -> bool:
    return bool(MEDIA_CONTENT_TYPE_RE.search(content_type or ""))


async def _click_play(page: Page, timeout_ms: int = 2000) -> bool:
    """
    Click the first play control found; players often defer loading until then.

    ``timeout_ms`` bounds the whole search, not each selector.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_ms / 1000
    for selector in PLAY_SELECTORS:
        remaining_ms = int((deadline - loop.time()) * 1000)
        if remaining_ms <= 0:
            break
        try:
            element = page.locator(selector).first
            if await element.count() > 0:
                await element.click(timeout=remaining_ms)
                return True
        except Exception:
            continue
    return False


# ------------------------------------------------------------------
# Main API functions
# ------------------------------------------------------------------

async def fetch_rendered(
    url: str,
    *,
    timeout_ms: Optional[int] = None,
    config: Optional[BrowserConfig] = None,
) -> RenderedPage:
    """
    Fetch a page with browser rendering, dismissing cookie banners.

    Args:
        url: URL to fetch
        timeout_ms: Override default navigation timeout
        config: Browser configuration (uses env defaults if None)

    Returns:
        RenderedPage with content and HTTP status

    Raises:
        RuntimeError: If browser disabled
    """
    cfg = config or BrowserConfig.from_env()
    pool = await BrowserPool.get_instance(cfg)

    await pool.rate_limit(url)

    async with pool.acquire_session() as page:
        await page.route("**/*", lambda route, request: _block_resources(route, request, cfg))

        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=timeout_ms or cfg.navigation_timeout_ms,
        )

        # best effort; many pages never go fully idle
        try:
            await page.wait_for_load_state("networkidle", timeout=5000)
        except Exception:
            pass

        await _handle_consent(page)

        content = await page.content()

        return RenderedPage(
            url=url,
            content=content,
            status_code=response.status if response else 0,
            retrieved_at=datetime.now(timezone.utc),
        )


async def capture_media_responses(
    url: str,
    *,
    timeout_ms: Optional[int] = None,
    settle_ms: int = 3000,
    click_timeout_ms: int = 2000,
    after_click_ms: int = 2000,
    config: Optional[BrowserConfig] = None,
) -> MediaCapture:
    """
    Load a page, watch the network for media, poke the player, return both
    the captured media URLs and the rendered DOM.

    Navigation waits for ``domcontentloaded`` only: players and ad beacons
    keep the network busy, and ``settle_ms`` is what gives them time to
    request media. Worst case the call spends ``timeout_ms`` (default
    ``navigation_timeout_ms``) plus ``settle_ms``, ``click_timeout_ms`` and
    ``after_click_ms``.

    Media is never blocked here: the requests themselves are the signal.
    """
    cfg = config or BrowserConfig.from_env()
    pool = await BrowserPool.get_instance(cfg)

    captured: List[CapturedMedia] = []
    seen = set()

    def on_request(request: Request):
        accept = request.headers.get("accept", "")
        if request.url not in seen and is_media_request(request.url, request.resource_type, accept):
            seen.add(request.url)
            captured.append(CapturedMedia(request.url, "request", resource_type=request.resource_type))

    def on_response(response: Response):
        content_type = response.headers.get("content-type", "")
        if response.url not in seen and is_media_response(content_type):
            seen.add(response.url)
            captured.append(
                CapturedMedia(response.url, "response", content_type=content_type.split(";")[0].strip())
            )

    await pool.rate_limit(url)

    async with pool.acquire_session() as page:
        page.on("request", on_request)
        page.on("response", on_response)

        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=timeout_ms or cfg.navigation_timeout_ms,
            )
        except Exception as e:
            # slow pages still leave useful requests behind
            logger.debug("Navigation to %s did not finish: %s", url, e)

        await page.wait_for_timeout(settle_ms)
        if await _click_play(page, click_timeout_ms):
            await page.wait_for_timeout(after_click_ms)

        content = await page.content()
        title = await page.title()

    logger.info("Captured %d media requests on %s", len(captured), url)
    return MediaCapture(url=url, media=captured, content=content, title=title)


# ------------------------------------------------------------------
# Cleanup
# ------------------------------------------------------------------

async def cleanup_browser():
    """Close the browser belonging to the current event loop."""
    await BrowserPool.close_all()
