"""
Concurrent fan-out over independent extraction strategies.

All strategies start at once and settle independently; a strategy that
raises or overruns the deadline contributes nothing. Results are merged
in the order the strategies were configured, never in completion order.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from normalizer.urls import is_duplicate

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class FanOutStrategy(Generic[R]):
    """A named coroutine function producing records that carry a ``url``."""

    name: str
    run: Callable[[Any], Awaitable[List[R]]]


def merge_unique(groups: Sequence[Sequence[R]], cap: int) -> List[R]:
    """
    Walk ``groups`` in order and keep each record whose URL is not a
    duplicate of an already kept one, stopping at ``cap``.
    """
    merged: List[R] = []
    seen: List[str] = []
    for group in groups:
        for record in group:
            if len(merged) >= cap:
                return merged
            if is_duplicate(record.url, seen):
                continue
            merged.append(record)
            seen.append(record.url)
    return merged


class FanOutAggregator(Generic[R]):
    """
    Run strategies concurrently and merge their isolated results.

    Args:
        strategies: Strategies in priority order
        cap: Maximum number of merged records
        timeout_s: Deadline applied to each strategy
        strategy_cap: Optional per-strategy truncation
    """

    def __init__(
        self,
        strategies: Sequence[FanOutStrategy[R]],
        cap: int = 20,
        timeout_s: float = 20.0,
        strategy_cap: Optional[int] = None,
    ):
        self.strategies = list(strategies)
        self.cap = cap
        self.timeout_s = timeout_s
        self.strategy_cap = strategy_cap

    async def _settle(self, strategy: FanOutStrategy[R], arg: Any) -> List[R]:
        try:
            records = await asyncio.wait_for(strategy.run(arg), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            logger.warning("Strategy %s timed out after %.1fs", strategy.name, self.timeout_s)
            return []
        except Exception as e:
            logger.warning("Strategy %s failed: %s: %s", strategy.name, type(e).__name__, e)
            return []

        records = list(records or [])
        if self.strategy_cap is not None:
            records = records[: self.strategy_cap]
        logger.debug("Strategy %s produced %d records", strategy.name, len(records))
        return records

    async def collect(self, arg: Any) -> List[List[R]]:
        """Per-strategy results, in configured order."""
        if not self.strategies:
            return []
        return list(await asyncio.gather(*(self._settle(s, arg) for s in self.strategies)))

    async def aggregate(self, arg: Any) -> List[R]:
        return merge_unique(await self.collect(arg), self.cap)
