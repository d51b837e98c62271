"""
Models package initialization.
"""

from .enums import ErrorReason, SearchFormat, ImageFormat
from .schema import (
    SearchResult,
    ImageRecord,
    VideoRecord,
    EngineResponse,
    SearchAttempt,
    SearchError,
    SearchLogEntry,
    OrchestratorResult,
)

__all__ = [
    "ErrorReason",
    "SearchFormat",
    "ImageFormat",
    "SearchResult",
    "ImageRecord",
    "VideoRecord",
    "EngineResponse",
    "SearchAttempt",
    "SearchError",
    "SearchLogEntry",
    "OrchestratorResult",
]
