"""
Search module: the engine fallback cascade, the error taxonomy and the
concurrent image/video aggregators.
"""

from .config import SearchConfig
from .classifier import classify_error, is_retryable
from .orchestrator import (
    FallbackOrchestrator,
    Transition,
    next_transition,
    backoff_delay_ms,
    execute_search,
)
from .fanout import FanOutAggregator, FanOutStrategy, merge_unique
from .images import ImageAggregator, aggregate_images
from .videos import VideoAggregator, aggregate_videos
from .sources import build_sources

__all__ = [
    "SearchConfig",
    "classify_error",
    "is_retryable",
    "FallbackOrchestrator",
    "Transition",
    "next_transition",
    "backoff_delay_ms",
    "execute_search",
    "FanOutAggregator",
    "FanOutStrategy",
    "merge_unique",
    "ImageAggregator",
    "aggregate_images",
    "VideoAggregator",
    "aggregate_videos",
    "build_sources",
]
