"""
Adapter registry: maps engine names to adapter classes and builds the
search cascade from configuration.
"""

from typing import Dict, List, Optional, Type

import httpx

from .base import EngineAdapter
from .bing_scrape import BingScrapeAdapter
from .browser_search import BrowserSearchAdapter
from .duckduckgo import DuckDuckGoAdapter
from .google_scrape import GoogleScrapeAdapter
from .render_api import RenderApiAdapter
from .serper import SerperAdapter


class AdapterRegistry:
    """Registry for all available engine adapters."""

    def __init__(self):
        self._adapters: Dict[str, Type[EngineAdapter]] = {}

    def register(self, adapter_cls: Type[EngineAdapter]):
        """
        Register an adapter class under its ``name``.

        Args:
            adapter_cls: EngineAdapter subclass to register
        """
        if not adapter_cls.name:
            raise ValueError(f"{adapter_cls.__name__} has no engine name")
        self._adapters[adapter_cls.name] = adapter_cls

    def get(self, name: str) -> Optional[Type[EngineAdapter]]:
        return self._adapters.get(name)

    def list_engines(self) -> List[str]:
        return list(self._adapters)

    def build(
        self,
        names: List[str],
        config=None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> List[EngineAdapter]:
        """
        Instantiate adapters in cascade order.

        Raises:
            ValueError: If a name is not registered or the list is empty
        """
        if not names:
            raise ValueError("Search cascade needs at least one engine")
        unknown = [n for n in names if n not in self._adapters]
        if unknown:
            raise ValueError(
                f"Unknown search engine(s): {', '.join(unknown)}. "
                f"Available: {', '.join(self.list_engines())}"
            )
        return [self._adapters[n](config=config, client=client) for n in names]


# Global registry instance
_registry = AdapterRegistry()

for _cls in (
    RenderApiAdapter,
    SerperAdapter,
    DuckDuckGoAdapter,
    BingScrapeAdapter,
    GoogleScrapeAdapter,
    BrowserSearchAdapter,
):
    _registry.register(_cls)


def get_registry() -> AdapterRegistry:
    """Get the global adapter registry."""
    return _registry


def register_adapter(adapter_cls: Type[EngineAdapter]):
    """Register an adapter with the global registry."""
    _registry.register(adapter_cls)


def build_cascade(config, client: Optional[httpx.AsyncClient] = None) -> List[EngineAdapter]:
    """Adapters for ``config.engines``, in order."""
    return _registry.build(config.engines, config=config, client=client)
