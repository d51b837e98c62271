"""
Normalizer package initialization.
"""

from .urls import (
    normalize_url,
    extract_filename,
    is_duplicate,
    hostname,
    resolve_url,
    is_valid_image_url,
    is_ad_url,
    make_favicon,
)
from .text import decode_entities, strip_tags, clean_title

__all__ = [
    "normalize_url",
    "extract_filename",
    "is_duplicate",
    "hostname",
    "resolve_url",
    "is_valid_image_url",
    "is_ad_url",
    "make_favicon",
    "decode_entities",
    "strip_tags",
    "clean_title",
]
