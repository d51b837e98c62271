"""
DuckDuckGo HTML scrape adapter.

Tries the lite endpoint, then the two HTML endpoints. A bot wall on any
endpoint is remembered so an all-blocked run reports bot detection
rather than plain emptiness.
"""

import logging
from typing import Optional

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter, looks_blocked

logger = logging.getLogger(__name__)

DDG_ENDPOINTS = (
    "https://lite.duckduckgo.com/lite/",
    "https://html.duckduckgo.com/html/",
    "https://duckduckgo.com/html/",
)


class DuckDuckGoAdapter(EngineAdapter):
    name = "duckduckgo"
    error_prefix = "DDG"

    async def _search(self, query: str) -> EngineResponse:
        extractor = SearchResultExtractor()
        last_failure: Optional[EngineResponse] = None

        for endpoint in DDG_ENDPOINTS:
            response = await self._get(
                endpoint,
                params={"q": query},
                headers={"Referer": "https://duckduckgo.com/"},
            )
            if not response.is_success:
                last_failure = self._http_failure(response, "DuckDuckGo")
                logger.debug("DuckDuckGo %s returned HTTP %d", endpoint, response.status_code)
                continue

            html = response.text
            results = extractor.extract(html, SearchFormat.DUCKDUCKGO)
            if results:
                return EngineResponse(results=results, status=200)

            if looks_blocked(html):
                last_failure = EngineResponse(
                    status=403, error="DuckDuckGo bot detection (anomaly page)"
                )

        return last_failure or EngineResponse(
            status=200, error="DuckDuckGo returned HTML but no extractable results"
        )
