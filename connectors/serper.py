"""
Serper.dev Google Search API adapter (``SERPER_API_KEY``).
"""

from models.enums import SearchFormat
from models.schema import EngineResponse
from parsers.search_results import SearchResultExtractor
from .base import EngineAdapter

SERPER_URL = "https://google.serper.dev/search"


class SerperAdapter(EngineAdapter):
    """Structured JSON results; the most reliable level when a key is present."""

    name = "serper"
    error_prefix = "SERPER"

    @property
    def is_configured(self) -> bool:
        return bool(self.config.serper_api_key)

    @property
    def not_configured_message(self) -> str:
        return "SERPER_API_KEY not configured, skipping Serper"

    async def _search(self, query: str) -> EngineResponse:
        async with self.http() as client:
            response = await client.post(
                SERPER_URL,
                json={"q": query, "num": self.config.max_results},
                headers={
                    "X-API-KEY": self.config.serper_api_key,
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout_s,
            )

        if response.status_code in (401, 403):
            return EngineResponse(
                status=response.status_code,
                error=f"Serper API authentication failed (HTTP {response.status_code}), check SERPER_API_KEY",
            )
        if response.status_code == 429:
            return EngineResponse(status=429, error="Serper API rate limit exceeded")
        if not response.is_success:
            return self._http_failure(response, "Serper API")

        results = SearchResultExtractor().extract(
            response.text, SearchFormat.SERPER, limit=self.config.max_results
        )
        return self._results(results, "Serper API returned 200 but no organic results")
