"""
Direct Google HTML scrape; no key needed, but rate-limited quickly.
"""

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter, looks_blocked

GOOGLE_SEARCH_URL = "https://www.google.com/search"


def google_params(query: str) -> dict:
    return {"q": query, "hl": "en", "num": "15"}


class GoogleScrapeAdapter(EngineAdapter):
    name = "google"
    error_prefix = "GOOGLE"

    async def _search(self, query: str) -> EngineResponse:
        response = await self._get(
            GOOGLE_SEARCH_URL,
            params=google_params(query),
            headers={"Referer": "https://www.google.com/"},
        )
        if not response.is_success:
            return self._http_failure(response, "Google")

        html = response.text
        if looks_blocked(html):
            return EngineResponse(status=429, error="Google bot detection triggered (unusual traffic)")

        results = SearchResultExtractor().extract(html, SearchFormat.GOOGLE)
        return self._results(results, "Google returned HTML but no extractable results")
