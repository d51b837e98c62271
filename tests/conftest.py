"""
Shared fixtures for the search core tests.
"""

from typing import Callable, Dict

import httpx
import pytest

from search.config import SearchConfig


@pytest.fixture
def config() -> SearchConfig:
    """Fast, fully configured settings; no real waits."""
    return SearchConfig(
        engines=["duckduckgo", "bing", "google"],
        timeout_ms=2000,
        max_retries=3,
        backoff_base_ms=1000,
        backoff_max_ms=15000,
        level_pause_ms=200,
        search_api_url="https://render.example.com",
        serper_api_key="test-key",
        aggregator_timeout_ms=2000,
    )


def mock_client(routes: Dict[str, Callable[[httpx.Request], httpx.Response]]) -> httpx.AsyncClient:
    """
    AsyncClient whose requests are answered by ``routes`` keyed on
    ``host + path``; anything unrouted gets a 404.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        key = f"{request.url.host}{request.url.path}"
        route = routes.get(key)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_client():
    return mock_client
