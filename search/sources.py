"""
Source list builder: cascade search results shaped as citation cards.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlsplit

from models.schema import SearchResult
from normalizer.text import clean_title, decode_entities
from normalizer.urls import make_favicon

from .config import SearchConfig
from .orchestrator import FallbackOrchestrator

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10


def host_path_key(url: str) -> str:
    """``host + path``; identical pages reached through different queries share a key."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    return f"{parts.hostname or ''}{parts.path}"


def to_sources(results: Iterable[SearchResult], limit: int = DEFAULT_LIMIT) -> List[Dict[str, str]]:
    """Deduplicate by host and path, clean titles and attach favicons."""
    sources: List[Dict[str, str]] = []
    seen = set()
    for r in results:
        if len(sources) >= limit:
            break
        key = host_path_key(r.url)
        if key in seen:
            continue
        seen.add(key)
        sources.append({
            "url": r.url,
            "title": clean_title(r.title, r.url),
            "snippet": decode_entities(r.snippet or ""),
            "favicon": make_favicon(r.url),
        })
    return sources


async def build_sources(
    query: str,
    limit: int = DEFAULT_LIMIT,
    config: Optional[SearchConfig] = None,
    orchestrator: Optional[FallbackOrchestrator] = None,
) -> Dict[str, Any]:
    """
    Run the search cascade and return ``{"sources": [...], "query": query}``.
    """
    if orchestrator is None:
        from connectors.registry import build_cascade

        cfg = config or SearchConfig.from_env()
        orchestrator = FallbackOrchestrator(build_cascade(cfg), cfg)

    outcome = await orchestrator.execute_search(query)
    sources = to_sources(outcome.results, limit)
    logger.info(
        "[sources] %d results via %s in %dms",
        len(sources), outcome.log.resolved_by or "none", outcome.log.total_time_ms,
    )
    return {"sources": sources, "query": query}
