"""
Base classes for search engine adapters and media fetch helpers.

Every adapter turns a query into an ``EngineResponse`` and never raises:
network failures map to status 0, timeouts to 408, and unconfigured
adapters answer immediately with status 0 and a "not configured" message.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Dict, List, Optional
import logging

import httpx

from models.schema import EngineResponse, SearchResult

if TYPE_CHECKING:
    from search.config import SearchConfig

logger = logging.getLogger(__name__)


BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

# Markers of an interstitial served instead of results
BLOCKED_MARKERS = ("unusual traffic", "captcha", "sorry/index", "anomaly-modal", "/anomaly.js")


def looks_blocked(html: str) -> bool:
    lower = html.lower()
    return any(marker in lower for marker in BLOCKED_MARKERS)


class HttpSource:
    """
    Shared HTTP plumbing for adapters and fetch helpers.

    An ``httpx.AsyncClient`` may be injected (tests use
    ``httpx.MockTransport``); otherwise one is created per call.
    """

    def __init__(
        self,
        config: Optional["SearchConfig"] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if config is None:
            from search.config import SearchConfig
            config = SearchConfig.from_env()
        self.config = config
        self._client = client

    @asynccontextmanager
    async def http(self):
        """Yield the injected client, or a short-lived one."""
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.config.timeout_s,
            headers={"User-Agent": self.config.user_agent},
        ) as client:
            yield client

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        merged = {"User-Agent": self.config.user_agent, **BROWSER_HEADERS}
        if headers:
            merged.update(headers)
        async with self.http() as client:
            return await client.get(
                url,
                params=params,
                headers=merged,
                timeout=timeout or self.config.timeout_s,
            )


class EngineAdapter(HttpSource, ABC):
    """
    Abstract base class for search engine adapters.

    Subclasses implement ``_search``; the public ``search`` wrapper maps
    configuration gaps and httpx failures onto ``EngineResponse``.
    """

    #: engine name as it appears in the attempt log and SEARCH_ENGINES
    name: str = ""
    #: prefix of classified error codes, e.g. ``SERPER`` -> ``SERPER_TIMEOUT``
    error_prefix: str = ""

    @property
    def is_configured(self) -> bool:
        """Whether the adapter has the credentials/endpoints it needs."""
        return True

    @property
    def not_configured_message(self) -> str:
        return f"{self.name} not configured"

    async def search(self, query: str) -> EngineResponse:
        if not self.is_configured:
            return EngineResponse(status=0, error=self.not_configured_message)
        try:
            return await self._search(query)
        except httpx.TimeoutException:
            return EngineResponse(
                status=408,
                error=f"{self.name} timed out after {self.config.timeout_ms}ms",
            )
        except httpx.HTTPError as e:
            return EngineResponse(
                status=0,
                error=f"{self.name} network error: {str(e) or type(e).__name__}",
            )

    @abstractmethod
    async def _search(self, query: str) -> EngineResponse:
        """Provider-specific search implementation."""
        ...

    def _http_failure(self, response: httpx.Response, label: str = "") -> EngineResponse:
        return EngineResponse(
            status=response.status_code,
            error=f"{label or self.name} returned HTTP {response.status_code}",
        )

    def _results(self, results: List[SearchResult], empty_message: str) -> EngineResponse:
        """200 response, with ``empty_message`` when nothing was extracted."""
        if not results:
            return EngineResponse(status=200, error=empty_message)
        return EngineResponse(results=results, status=200)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
