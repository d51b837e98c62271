"""
Search fallback orchestrator.

Runs engine adapters as an ordered cascade. Each level gets a retry budget
with exponential backoff; structurally hopeless failures (missing
configuration, rejected credentials) escalate at once. The first level
that returns any results wins and the complete attempt log travels with
the answer.

The control flow is an explicit state machine:

    ATTEMPT(level, retry) -> SUCCESS | RETRY | ESCALATE | EXHAUSTED

with every decision made by the pure function ``next_transition``.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from connectors.base import EngineAdapter
from models.schema import (
    EngineResponse,
    OrchestratorResult,
    SearchAttempt,
    SearchError,
)

from .classifier import classify_error, is_retryable
from .config import SearchConfig
from .search_log import SearchLogger

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# State machine
# ------------------------------------------------------------------

class Transition(str, Enum):
    SUCCESS = "success"
    RETRY = "retry"
    ESCALATE = "escalate"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Step:
    """Next state; ``level``/``retry`` address the next attempt."""

    transition: Transition
    level: int
    retry: int


def next_transition(
    level: int,
    retry: int,
    *,
    has_results: bool,
    retryable: bool,
    levels: int,
    max_retries: int,
) -> Step:
    """
    Transition table of the cascade.

    ``level`` and ``retry`` are zero-based and describe the attempt that
    just finished. Retries are level-local: escalation resets the count.
    """
    if has_results:
        return Step(Transition.SUCCESS, level, retry)
    if retryable and retry + 1 < max_retries:
        return Step(Transition.RETRY, level, retry + 1)
    if level + 1 < levels:
        return Step(Transition.ESCALATE, level + 1, 0)
    return Step(Transition.EXHAUSTED, level, retry)


def backoff_delay_ms(
    retry: int,
    base_ms: int,
    cap_ms: int,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Delay before retry ``retry`` (1-based): ``base * 2^(n-1)`` plus up to
    half of ``base`` of jitter, capped at ``cap_ms``. No delay for ``retry < 1``.
    """
    if retry < 1:
        return 0.0
    exponential = base_ms * (2 ** (retry - 1))
    jitter = rng() * 0.5 * base_ms
    return min(exponential + jitter, cap_ms)


# ------------------------------------------------------------------
# Orchestrator
# ------------------------------------------------------------------

class FallbackOrchestrator:
    """
    Sequential search cascade over a list of adapters.

    Usage:
        orchestrator = FallbackOrchestrator(build_cascade(config), config)
        outcome = await orchestrator.execute_search("golden retriever puppies")

    ``sleep``, ``rng`` and ``clock`` are injectable so tests can run the
    cascade without waiting and with deterministic jitter.
    """

    def __init__(
        self,
        adapters: Sequence[EngineAdapter],
        config: Optional[SearchConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.adapters: List[EngineAdapter] = list(adapters)
        self.config = config or SearchConfig.from_env()
        self._sleep = sleep
        self._rng = rng
        self._clock = clock

    async def _attempt(self, adapter: EngineAdapter, query: str) -> EngineResponse:
        """Call one adapter; any exception becomes a status-0 response."""
        try:
            return await adapter.search(query)
        except Exception as e:
            logger.warning("Adapter %s raised %s: %s", adapter.name, type(e).__name__, e)
            return EngineResponse(status=0, error=f"{adapter.name} failed: {str(e) or type(e).__name__}")

    async def execute_search(self, query: str) -> OrchestratorResult:
        log = SearchLogger(query, clock=self._clock)
        if not self.adapters:
            return OrchestratorResult(results=[], log=log.failure(None))

        max_retries = max(1, self.config.max_retries)
        last_error: Optional[SearchError] = None
        level, retry = 0, 0

        while True:
            adapter = self.adapters[level]

            started = self._clock()
            response = await self._attempt(adapter, query)
            elapsed_ms = int((self._clock() - started) * 1000)

            has_results = bool(response.results)
            code = None if has_results else classify_error(response, adapter.error_prefix)

            log.log_attempt(
                SearchAttempt(
                    engine=adapter.name,
                    success=has_results,
                    status=response.status,
                    response_time_ms=elapsed_ms,
                    retry_count=retry,
                    error=None if has_results else (response.error or code),
                )
            )

            if not has_results:
                last_error = SearchError(
                    code=code,
                    message=response.error or code,
                    source=adapter.name,
                    fallback_level=level + 1,
                )

            step = next_transition(
                level,
                retry,
                has_results=has_results,
                retryable=has_results or is_retryable(code),
                levels=len(self.adapters),
                max_retries=max_retries,
            )

            if step.transition is Transition.SUCCESS:
                return OrchestratorResult(
                    results=response.results,
                    log=log.success(adapter.name, len(response.results)),
                )

            if step.transition is Transition.EXHAUSTED:
                return OrchestratorResult(results=[], log=log.failure(last_error))

            if step.transition is Transition.RETRY:
                delay_ms = backoff_delay_ms(
                    step.retry,
                    self.config.backoff_base_ms,
                    self.config.backoff_max_ms,
                    self._rng,
                )
                logger.info(
                    "[search][%s] %s, retry %d/%d in %.0fms",
                    adapter.name, code, step.retry, max_retries - 1, delay_ms,
                )
                await self._sleep(delay_ms / 1000)
            else:
                logger.info(
                    "[search] escalating %s -> %s after %s",
                    adapter.name, self.adapters[step.level].name, code,
                )
                if self.config.level_pause_ms > 0:
                    await self._sleep(self.config.level_pause_ms / 1000)

            level, retry = step.level, step.retry


async def execute_search(query: str, config: Optional[SearchConfig] = None) -> OrchestratorResult:
    """Run the configured cascade (``SEARCH_ENGINES``) for ``query``."""
    from connectors.registry import build_cascade

    cfg = config or SearchConfig.from_env()
    return await FallbackOrchestrator(build_cascade(cfg), cfg).execute_search(query)
