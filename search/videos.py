"""
Video discovery on a single page.

Strategies, in priority order:

1. network capture: media requests/responses seen while a browser loads
   the page and a play button is clicked
2. static HTML: the pipeline in ``parsers.videos`` over a plain GET
3. rendered DOM: the same pipeline over the DOM after scripts ran

Strategies 1 and 3 share one browser page load per call and exist only
when the browser is enabled.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

import httpx

from connectors.page_scrape import PageFetcher
from models.schema import VideoRecord
from parsers.videos import VideoExtractor, build_video, sort_videos

from .config import SearchConfig
from .fanout import FanOutAggregator, FanOutStrategy

logger = logging.getLogger(__name__)

# only the content types that name a format; octet-stream is left to inference
TYPED_MEDIA_PREFIXES = ("video/", "application/x-mpegurl", "application/vnd.apple.mpegurl", "application/dash+xml")

# waits inside one browser capture at the default 20 s strategy budget
CAPTURE_SETTLE_MS = 3000
CAPTURE_CLICK_MS = 2000
CAPTURE_AFTER_CLICK_MS = 2000
# browser launch, rate limit and DOM read
CAPTURE_OVERHEAD_MS = 3000
CAPTURE_FIXED_MS = CAPTURE_SETTLE_MS + CAPTURE_CLICK_MS + CAPTURE_AFTER_CLICK_MS + CAPTURE_OVERHEAD_MS


def capture_timings(budget_ms: int) -> Dict[str, int]:
    """
    Keyword arguments for ``capture_media_responses`` whose waits add up
    to less than ``budget_ms``.

    Budgets of at least twice the fixed waits keep those waits and give the
    rest to navigation; smaller budgets shrink every wait in proportion.
    """
    if budget_ms >= 2 * CAPTURE_FIXED_MS:
        return {
            "timeout_ms": budget_ms - CAPTURE_FIXED_MS,
            "settle_ms": CAPTURE_SETTLE_MS,
            "click_timeout_ms": CAPTURE_CLICK_MS,
            "after_click_ms": CAPTURE_AFTER_CLICK_MS,
        }
    scale = max(budget_ms, 0) / (2 * CAPTURE_FIXED_MS)
    return {
        # playwright reads a zero timeout as "no timeout"
        "timeout_ms": max(1, int(CAPTURE_FIXED_MS * scale)),
        "settle_ms": int(CAPTURE_SETTLE_MS * scale),
        "click_timeout_ms": int(CAPTURE_CLICK_MS * scale),
        "after_click_ms": int(CAPTURE_AFTER_CLICK_MS * scale),
    }


class VideoJob:
    """
    Per-call state shared by the strategies: the page URL and a lazily
    started browser capture awaited by whichever strategy needs it first.
    """

    def __init__(self, page_url: str, capture: Optional[Callable[[str], Awaitable]] = None):
        self.page_url = page_url
        self._capture = capture
        self._task: Optional[asyncio.Future] = None

    async def capture(self):
        if self._capture is None:
            raise RuntimeError("Browser capture is not available")
        if self._task is None:
            self._task = asyncio.ensure_future(self._capture(self.page_url))
        # a strategy timing out must not cancel the load its sibling awaits
        return await asyncio.shield(self._task)

    async def close(self):
        """Cancel a capture nobody awaits any more and collect its outcome."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)


def media_type(content_type: str) -> Optional[str]:
    lower = (content_type or "").lower()
    if lower.startswith(TYPED_MEDIA_PREFIXES):
        return content_type
    return None


class VideoAggregator:
    """
    Usage:
        videos = await VideoAggregator().aggregate("https://example.com/watch/1")
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        browser_config=None,
    ):
        self.config = config or SearchConfig.from_env()
        self.fetcher = PageFetcher(self.config, client)
        self.extractor = VideoExtractor()
        if browser_config is None:
            from browser_client import BrowserConfig
            browser_config = BrowserConfig.from_env()
        self.browser_config = browser_config

    @property
    def browser_enabled(self) -> bool:
        return bool(self.browser_config and self.browser_config.enabled)

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def network_capture(self, job: VideoJob) -> List[VideoRecord]:
        capture = await job.capture()
        videos = []
        seen = set()
        for media in capture.media:
            record = build_video(media.url, job.page_url, type=media_type(media.content_type))
            if record is not None and record.url not in seen:
                seen.add(record.url)
                videos.append(record)
        return sort_videos(videos)[: self.config.video_result_cap]

    async def static_html(self, job: VideoJob) -> List[VideoRecord]:
        html = await self.fetcher.fetch(job.page_url, timeout=self.config.timeout_s)
        if not html:
            return []
        return self.extractor.extract(html, job.page_url, limit=self.config.video_result_cap)

    async def rendered_dom(self, job: VideoJob) -> List[VideoRecord]:
        capture = await job.capture()
        return self.extractor.extract(capture.content, job.page_url, limit=self.config.video_result_cap)

    def strategies(self) -> List[FanOutStrategy[VideoRecord]]:
        strategies = [FanOutStrategy("static-html", self.static_html)]
        if self.browser_enabled:
            strategies.insert(0, FanOutStrategy("network-capture", self.network_capture))
            strategies.append(FanOutStrategy("rendered-dom", self.rendered_dom))
        return strategies

    async def _capture(self, url: str):
        from browser_client import capture_media_responses

        return await capture_media_responses(
            url,
            config=self.browser_config,
            **capture_timings(self.config.aggregator_timeout_ms),
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def aggregate(self, page_url: str) -> List[VideoRecord]:
        if not page_url:
            return []
        job = VideoJob(page_url, self._capture if self.browser_enabled else None)
        fan_out = FanOutAggregator(
            self.strategies(),
            cap=self.config.video_result_cap,
            timeout_s=self.config.aggregator_timeout_s,
        )
        try:
            videos = await fan_out.aggregate(job)
        finally:
            await job.close()
        logger.info("[videos] %d videos on %s", len(videos), page_url)
        return videos


async def aggregate_videos(
    page_url: str,
    config: Optional[SearchConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
    browser_config=None,
) -> List[VideoRecord]:
    """Playable sources and embeds found on ``page_url``."""
    return await VideoAggregator(config, client, browser_config).aggregate(page_url)
