"""
Browser-rendered Google search, the last level of the cascade.

Two sub-strategies:
  1. ScraperAPI rendering proxy (``SCRAPER_API_KEY``): residential IPs,
     no local browser needed
  2. Playwright via ``browser_client`` (local launch or remote
     ``PLAYWRIGHT_WS_ENDPOINT``)

The browser only runs when the proxy is unconfigured or was refused
(auth or rate limit); a proxy that worked but found nothing is final.
"""

import logging
from typing import Optional

import httpx

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter, looks_blocked
from .google_scrape import GOOGLE_SEARCH_URL, google_params

logger = logging.getLogger(__name__)

SCRAPER_API_URL = "https://api.scraperapi.com/"
PROXY_EXTRA_TIMEOUT_S = 5.0
BROWSER_FALLBACK_STATUSES = {0, 401, 403, 429}


def _with_params(base: str, params: dict) -> str:
    return str(httpx.URL(base, params=params))


class BrowserSearchAdapter(EngineAdapter):
    name = "browser"
    error_prefix = "BROWSER"

    def __init__(self, config=None, client=None, browser_config=None):
        super().__init__(config, client)
        if browser_config is None:
            from browser_client import BrowserConfig
            browser_config = BrowserConfig.from_env()
        self.browser_config = browser_config

    @property
    def is_configured(self) -> bool:
        return bool(self.config.scraper_api_key) or self.browser_config.enabled

    @property
    def not_configured_message(self) -> str:
        return "Neither SCRAPER_API_KEY nor a Playwright browser configured, browser search unavailable"

    async def _search(self, query: str) -> EngineResponse:
        proxy: Optional[EngineResponse] = None
        if self.config.scraper_api_key:
            proxy = await self._scraper_api(query)
            if proxy.results or proxy.status not in BROWSER_FALLBACK_STATUSES:
                return proxy
            logger.info("ScraperAPI refused (%s), trying Playwright", proxy.error)

        if not self.browser_config.enabled:
            return proxy or EngineResponse(status=0, error=self.not_configured_message)

        rendered = await self._playwright(query)
        if rendered.results or proxy is None:
            return rendered
        # keep the most descriptive failure
        return EngineResponse(
            status=rendered.status or proxy.status,
            error=rendered.error or proxy.error,
        )

    # ------------------------------------------------------------------
    # Sub-strategies
    # ------------------------------------------------------------------

    async def _scraper_api(self, query: str) -> EngineResponse:
        target = _with_params(GOOGLE_SEARCH_URL, google_params(query))
        response = await self._get(
            SCRAPER_API_URL,
            params={
                "api_key": self.config.scraper_api_key,
                "url": target,
                "render": "true",
                "country_code": "us",
            },
            timeout=self.config.timeout_s + PROXY_EXTRA_TIMEOUT_S,
        )
        if response.status_code in (401, 403):
            return EngineResponse(
                status=response.status_code,
                error=f"ScraperAPI authentication failed (HTTP {response.status_code}), check SCRAPER_API_KEY",
            )
        if response.status_code == 429:
            return EngineResponse(status=429, error="ScraperAPI rate limit exceeded")
        if not response.is_success:
            return self._http_failure(response, "ScraperAPI")

        html = response.text
        results = SearchResultExtractor().extract(html, SearchFormat.GOOGLE_RENDERED)
        if not results and looks_blocked(html):
            return EngineResponse(
                status=403, error="ScraperAPI returned a Google captcha page, proxy IP may be flagged"
            )
        return self._results(results, "ScraperAPI returned HTML but no extractable Google results")

    async def _playwright(self, query: str) -> EngineResponse:
        from browser_client import fetch_rendered
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        url = _with_params(GOOGLE_SEARCH_URL, google_params(query))
        try:
            page = await fetch_rendered(
                url,
                timeout_ms=self.config.timeout_ms,
                config=self.browser_config,
            )
        except PlaywrightTimeoutError as e:
            return EngineResponse(status=408, error=f"Browser search timed out: {e}")
        except RuntimeError as e:
            return EngineResponse(status=0, error=f"Browser unavailable: {e}")
        except Exception as e:
            logger.warning("Browser search crashed: %s", e)
            return EngineResponse(status=0, error=f"Browser search error: {e}")

        results = SearchResultExtractor().extract(page.content, SearchFormat.GOOGLE_RENDERED)
        if not results and looks_blocked(page.content):
            return EngineResponse(status=403, error="Browser search encountered a Google captcha")
        if not results and page.status_code >= 400:
            return EngineResponse(
                status=page.status_code,
                error=f"Browser search got HTTP {page.status_code} from Google",
            )
        return self._results(results, "Browser loaded the page but found no search result elements")
