"""
Structured attempt log for one search cascade run.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from models.schema import SearchAttempt, SearchError, SearchLogEntry

logger = logging.getLogger(__name__)


class SearchLogger:
    """
    Collects ``SearchAttempt`` records in call order and produces the final
    ``SearchLogEntry``. Also mirrors every event to the module logger.
    """

    def __init__(self, query: str, clock: Callable[[], float] = time.monotonic):
        self.query = query
        self._clock = clock
        self._start = clock()
        self._attempts: List[SearchAttempt] = []

    @property
    def attempts(self) -> List[SearchAttempt]:
        return list(self._attempts)

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._start) * 1000)

    def log_attempt(self, attempt: SearchAttempt) -> None:
        self._attempts.append(attempt)
        mark = "✓" if attempt.success else "✗"
        logger.info(
            "[search][%s] %s status=%d time=%dms (retry %d)%s",
            attempt.engine,
            mark,
            attempt.status,
            attempt.response_time_ms,
            attempt.retry_count,
            f' err="{attempt.error}"' if attempt.error else "",
        )

    def success(self, engine: str, result_count: int) -> SearchLogEntry:
        entry = SearchLogEntry(
            success=True,
            query=self.query,
            total_time_ms=self.elapsed_ms(),
            resolved_by=engine,
            attempts=self.attempts,
        )
        logger.info(
            "[search] ✓ resolved by %s with %d results in %dms after %d attempt(s)",
            engine, result_count, entry.total_time_ms, len(self._attempts),
        )
        return entry

    def failure(self, error: Optional[SearchError]) -> SearchLogEntry:
        entry = SearchLogEntry(
            success=False,
            query=self.query,
            total_time_ms=self.elapsed_ms(),
            error=error,
            attempts=self.attempts,
        )
        logger.error(
            "[search] ✗ all engines exhausted for %r in %dms: %s",
            self.query,
            entry.total_time_ms,
            f"{error.code} ({error.message})" if error else "no engines configured",
        )
        return entry
