"""
Bing HTML scrape adapter.
"""

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter

BING_SEARCH_URL = "https://www.bing.com/search"


class BingScrapeAdapter(EngineAdapter):
    name = "bing"
    error_prefix = "BING"

    async def _search(self, query: str) -> EngineResponse:
        response = await self._get(
            BING_SEARCH_URL,
            params={"q": query},
            headers={"Referer": "https://www.bing.com/"},
        )
        if not response.is_success:
            return self._http_failure(response, "Bing")

        results = SearchResultExtractor().extract(response.text, SearchFormat.BING)
        return self._results(results, "Bing returned HTML but no extractable results")
