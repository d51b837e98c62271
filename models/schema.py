"""
Pydantic data models for search results, media records and the attempt log.

Every record is created fresh per request and lives only for the duration
of one orchestration or aggregation call.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from normalizer.text import decode_entities
from normalizer.urls import is_ad_url, is_valid_image_url


class SearchResult(BaseModel):
    """Single search hit produced by an engine adapter."""
    title: str = Field(..., description="Entity-decoded result title")
    url: str = Field(..., description="Absolute, scheme-qualified result URL")
    snippet: str = Field("", description="Result snippet (may be empty)")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Title must survive entity decoding."""
        cleaned = decode_entities(v).strip()
        if not cleaned:
            raise ValueError("title must be non-empty")
        return cleaned

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject relative and empty URLs."""
        v = (v or "").strip()
        parts = urlsplit(v)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"URL must be absolute: {v!r}")
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Golden Retriever Puppies for Sale",
                "url": "https://www.example.com/puppies",
                "snippet": "Find healthy golden retriever puppies near you.",
            }
        }
    )


class ImageRecord(BaseModel):
    """Image discovered on a page or through an image search surface."""
    url: str = Field(..., description="Direct image URL")
    alt: str = Field("", description="Alt text or descriptive tags")
    source: str = Field("", description="Page the image was found on (may be empty)")

    @field_validator("url")
    @classmethod
    def validate_image_url(cls, v: str) -> str:
        if not is_valid_image_url(v):
            raise ValueError(f"Rejected image URL: {v!r}")
        return v


class VideoRecord(BaseModel):
    """Playable video source or embeddable player discovered on a page."""
    url: str = Field(..., description="Video file, manifest or embed URL")
    type: Optional[str] = Field(None, description="MIME-like type, or 'iframe' for embeds")
    quality: Optional[str] = Field(None, description="Resolution token, e.g. '1080p'")
    poster: Optional[str] = Field(None, description="Poster image URL")

    @field_validator("url")
    @classmethod
    def validate_video_url(cls, v: str) -> str:
        if not v or is_ad_url(v):
            raise ValueError(f"Rejected video URL: {v!r}")
        return v


class EngineResponse(BaseModel):
    """
    Outcome of one engine adapter invocation.

    ``status`` is synthetic: 0 for network-layer failure (or an adapter that
    is not configured), 408 for timeouts, the HTTP status otherwise.
    """
    results: List[SearchResult] = Field(default_factory=list)
    status: int = Field(0, description="Synthetic status code")
    error: Optional[str] = Field(None, description="Human-readable failure reason")

    model_config = ConfigDict(frozen=True)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SearchAttempt(_CamelModel):
    """One entry of the attempt log, appended once per adapter call."""
    engine: str
    success: bool
    status: int
    response_time_ms: int
    retry_count: int = 0
    error: Optional[str] = None


class SearchError(_CamelModel):
    """Last classified failure of an exhausted cascade."""
    code: str
    message: str
    source: str
    fallback_level: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SearchLogEntry(_CamelModel):
    """Full audit trail of one cascade run."""
    success: bool
    query: str
    total_time_ms: int
    resolved_by: Optional[str] = None
    error: Optional[SearchError] = None
    attempts: List[SearchAttempt] = Field(default_factory=list)


class OrchestratorResult(BaseModel):
    """Return value of ``execute_search``."""
    results: List[SearchResult] = Field(default_factory=list)
    log: SearchLogEntry

    model_config = ConfigDict(frozen=True)

    def to_json(self) -> Dict[str, Any]:
        """Serialize for a JSON response body."""
        return {
            "results": [r.model_dump(mode="json") for r in self.results],
            "log": self.log.to_json(),
        }
