"""
Extraction pipelines: raw engine markup/JSON in, validated records out.
"""

from .strategies import Document, accumulate, first_non_empty, first_present, try_build
from .search_results import SearchResultExtractor, decode_ddg_url
from .images import ImageExtractor, extract_page_images
from .videos import VideoExtractor, build_video, sort_videos

__all__ = [
    "Document",
    "accumulate",
    "first_non_empty",
    "first_present",
    "try_build",
    "SearchResultExtractor",
    "decode_ddg_url",
    "ImageExtractor",
    "extract_page_images",
    "VideoExtractor",
    "build_video",
    "sort_videos",
]
