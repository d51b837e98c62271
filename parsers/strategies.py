"""
Strategy drivers shared by the extraction pipelines.

A strategy is a plain function ``(doc) -> list``. Pipelines keep their
strategies in ordered lists and hand them to one of two drivers:

  - ``first_non_empty``: stop at the first strategy that yields anything
    (search results: competing patterns for the same markup)
  - ``accumulate``: run every strategy, appending unseen records up to a
    cap (images, videos: complementary patterns on the same page)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Hashable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from bs4 import BeautifulSoup
from selectolax.parser import HTMLParser

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class Document:
    """Raw payload plus lazily-built parse trees."""

    raw: str
    base_url: str = ""
    _tree: Optional[HTMLParser] = field(default=None, repr=False)
    _soup: Optional[BeautifulSoup] = field(default=None, repr=False)
    _payload: Any = field(default=_MISSING, repr=False)

    @property
    def tree(self) -> HTMLParser:
        if self._tree is None:
            self._tree = HTMLParser(self.raw or "")
        return self._tree

    @property
    def soup(self) -> BeautifulSoup:
        if self._soup is None:
            self._soup = BeautifulSoup(self.raw or "", "html.parser")
        return self._soup

    @property
    def payload(self) -> Any:
        """Decoded JSON body, or ``None`` if the raw text is not JSON."""
        if self._payload is _MISSING:
            try:
                self._payload = json.loads(self.raw) if self.raw else None
            except (ValueError, TypeError):
                self._payload = None
        return self._payload


Strategy = Callable[[Document], List[T]]


def first_non_empty(strategies: Sequence[Strategy], doc: Document) -> List[T]:
    """Run strategies in order; return the first non-empty result."""
    for strategy in strategies:
        try:
            records = strategy(doc)
        except Exception as e:
            logger.debug("Strategy %s failed: %s", strategy.__name__, e)
            continue
        if records:
            return records
    return []


def accumulate(
    strategies: Sequence[Strategy],
    doc: Document,
    key: Callable[[T], Hashable],
    limit: int,
) -> List[T]:
    """Run every strategy, appending records with an unseen key until ``limit``."""
    collected: List[T] = []
    seen = set()
    for strategy in strategies:
        if len(collected) >= limit:
            break
        try:
            records = strategy(doc)
        except Exception as e:
            logger.debug("Strategy %s failed: %s", strategy.__name__, e)
            continue
        for record in records:
            if len(collected) >= limit:
                break
            k = key(record)
            if k in seen:
                continue
            seen.add(k)
            collected.append(record)
    return collected


def first_present(obj: Any, paths: Iterable[Tuple[str, ...] | str]) -> Optional[Any]:
    """
    First non-empty value among several optional field paths.

    ``paths`` is an ordered list of keys (``"file_url"``) or nested key
    tuples (``("file", "url")``).
    """
    if not isinstance(obj, dict):
        return None
    for path in paths:
        if isinstance(path, str):
            path = (path,)
        value: Any = obj
        for part in path:
            if not isinstance(value, dict):
                value = None
                break
            value = value.get(part)
        if value:
            return value
    return None


def try_build(factory: Callable[..., T], **kwargs) -> Optional[T]:
    """Construct a record, returning ``None`` if validation rejects it."""
    try:
        return factory(**kwargs)
    except ValueError:
        return None
