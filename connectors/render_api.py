"""
Adapter for the standalone rendering search API (``SEARCH_API_URL``).

The service runs its own multi-engine scrape behind ``GET /search?q=`` and
answers ``{"results": [{title, url, snippet}], "engine": ..., "error"?}``.
"""

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter

# the remote service may itself fall back to a browser
EXTRA_TIMEOUT_S = 10.0


class RenderApiAdapter(EngineAdapter):
    name = "render-api"
    error_prefix = "RENDER"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.search_api_url)

    @property
    def not_configured_message(self) -> str:
        return "SEARCH_API_URL not configured, skipping render API"

    async def _search(self, query: str) -> EngineResponse:
        response = await self._get(
            f"{self.config.search_api_url}/search",
            params={"q": query},
            headers={"Accept": "application/json"},
            timeout=self.config.timeout_s + EXTRA_TIMEOUT_S,
        )
        if not response.is_success:
            return self._http_failure(response, "Render search API")

        results = SearchResultExtractor().extract(response.text, SearchFormat.RENDER_API)
        if results:
            return EngineResponse(results=results, status=200)

        try:
            remote_error = response.json().get("error")
        except (ValueError, AttributeError):
            remote_error = None
        return EngineResponse(status=200, error=remote_error or "Render search API returned no results")
