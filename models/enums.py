"""
Enumerations for search, image and video aggregation models.
"""

from enum import Enum


class ErrorReason(str, Enum):
    """Reason half of a canonical ``{PREFIX}_{REASON}`` error code."""
    AUTH_FAILED = "AUTH_FAILED"
    CAPTCHA = "CAPTCHA"
    BOT_DETECTION = "BOT_DETECTION"
    RATE_LIMITED = "RATE_LIMITED"
    TIMEOUT = "TIMEOUT"
    EMPTY_RESULTS = "EMPTY_RESULTS"
    UNAVAILABLE = "UNAVAILABLE"
    HTTP_ERROR = "HTTP_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class SearchFormat(str, Enum):
    """Source-format tag understood by the search result extractor."""
    DUCKDUCKGO = "duckduckgo"
    GOOGLE = "google"
    GOOGLE_RENDERED = "google_rendered"
    BING = "bing"
    RENDER_API = "render_api"
    SERPER = "serper"


class ImageFormat(str, Enum):
    """Source-format tag understood by the image extractor."""
    PAGE = "page"
    BING_IMAGES = "bing_images"
    GOOGLE_IMAGES = "google_images"
    GELBOORU_JSON = "gelbooru_json"
    DANBOORU_JSON = "danbooru_json"
    E621_JSON = "e621_json"
