"""
Search configuration loaded from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_ENGINES = "render-api,serper,duckduckgo,bing,google,browser"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name) or default
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


@dataclass
class SearchConfig:
    """
    Tunables for the search cascade and the media aggregators.

    All durations are in milliseconds.
    """

    engines: List[str] = field(default_factory=lambda: DEFAULT_ENGINES.split(","))
    timeout_ms: int = 10000
    max_results: int = 10
    max_retries: int = 3
    backoff_base_ms: int = 1000
    backoff_max_ms: int = 15000
    level_pause_ms: int = 200

    search_api_url: str = ""
    serper_api_key: str = ""
    scraper_api_key: str = ""
    user_agent: str = USER_AGENT

    image_result_cap: int = 20
    image_strategy_cap: int = 20
    image_short_circuit: int = 12
    video_result_cap: int = 20
    aggregator_timeout_ms: int = 20000

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000

    @property
    def aggregator_timeout_s(self) -> float:
        return self.aggregator_timeout_ms / 1000

    @classmethod
    def from_env(cls) -> SearchConfig:
        """Load configuration from environment variables."""
        return cls(
            engines=_env_list("SEARCH_ENGINES", DEFAULT_ENGINES),
            timeout_ms=_env_int("SEARCH_TIMEOUT", 10000),
            max_results=_env_int("SEARCH_MAX_RESULTS", 10),
            max_retries=_env_int("SEARCH_MAX_RETRIES", 3),
            backoff_base_ms=_env_int("SEARCH_BACKOFF_BASE", 1000),
            backoff_max_ms=_env_int("SEARCH_BACKOFF_MAX", 15000),
            level_pause_ms=_env_int("SEARCH_LEVEL_PAUSE", 200),
            search_api_url=os.getenv("SEARCH_API_URL", "").rstrip("/"),
            serper_api_key=os.getenv("SERPER_API_KEY", ""),
            scraper_api_key=os.getenv("SCRAPER_API_KEY", ""),
            image_result_cap=_env_int("IMAGE_RESULT_CAP", 20),
            image_strategy_cap=_env_int("IMAGE_STRATEGY_CAP", 20),
            image_short_circuit=_env_int("IMAGE_SHORT_CIRCUIT", 12),
            video_result_cap=_env_int("VIDEO_RESULT_CAP", 20),
            aggregator_timeout_ms=_env_int("AGGREGATOR_TIMEOUT", 20000),
        )
