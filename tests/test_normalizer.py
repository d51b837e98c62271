"""
Tests for URL canonicalization and text hygiene.
"""

import pytest

from normalizer.text import clean_title, decode_entities, strip_tags
from normalizer.urls import (
    extract_filename,
    hostname,
    is_ad_url,
    is_duplicate,
    is_valid_image_url,
    make_favicon,
    normalize_url,
    resolve_url,
)


URLS = [
    "https://Example.com/Images/Photo.JPG?w=300&utm_source=feed#top",
    "https://example.com/a/?id=5&w=10&page=2",
    "https://cdn.example.com/img/lake.jpg?width=800&height=600&format=webp",
    "https://example.com/search?q=golden+retriever&tab=images",
    "https://example.com/",
    "not a url",
    "",
]


class TestNormalizeUrl:

    def test_drops_sizing_and_tracking_params(self):
        assert normalize_url(
            "https://Example.com/Images/Photo.JPG?w=300&utm_source=feed#top"
        ) == "https://example.com/images/photo.jpg"

    def test_keeps_other_params_in_order(self):
        assert normalize_url("https://example.com/a/?id=5&w=10&page=2") == "https://example.com/a?id=5&page=2"

    def test_param_names_case_insensitive(self):
        assert normalize_url("https://example.com/x.png?W=10&UTM_Campaign=y") == "https://example.com/x.png"

    def test_trailing_slash(self):
        assert normalize_url("https://example.com/gallery/") == normalize_url("https://example.com/gallery")

    @pytest.mark.parametrize("url", URLS)
    def test_idempotent(self, url):
        once = normalize_url(url)
        assert normalize_url(once) == once

    def test_unparseable_is_lowercased(self):
        assert normalize_url("Not A URL") == "not a url"


class TestIsDuplicate:

    def test_same_normalized_url(self):
        assert is_duplicate(
            "https://example.com/photo.jpg?w=200",
            ["https://EXAMPLE.com/photo.jpg?w=800"],
        )

    def test_shared_long_filename_across_hosts(self):
        a = "https://cdn1.example.com/a/golden_retriever_01.jpg"
        b = "https://images.other.net/x/y/golden_retriever_01.jpg"
        assert is_duplicate(a, [b])
        assert is_duplicate(b, [a])

    def test_short_filename_not_enough(self):
        a = "https://one.example.com/a.jpg"
        b = "https://two.example.com/a.jpg"
        assert not is_duplicate(a, [b])
        assert not is_duplicate(b, [a])

    @pytest.mark.parametrize("a,b", [
        ("https://x.com/p/sunset_over_lake.png", "https://y.org/q/sunset_over_lake.png"),
        ("https://x.com/p/one.png", "https://x.com/p/one.png?utm_medium=social"),
        ("https://x.com/p/one.png", "https://x.com/p/two.png"),
        ("https://x.com/media/clip_1080p.mp4", "https://y.com/clip_1080p.mp4"),
    ])
    def test_symmetric(self, a, b):
        assert is_duplicate(a, [b]) == is_duplicate(b, [a])

    def test_empty_existing(self):
        assert not is_duplicate("https://x.com/p/one.png", [])


class TestUrlHelpers:

    def test_extract_filename(self):
        assert extract_filename("https://x.com/a/B/Photo.JPG?x=1") == "photo.jpg"
        assert extract_filename("https://x.com/") == ""

    def test_hostname_strips_www(self):
        assert hostname("https://www.Example.com/page") == "example.com"
        assert hostname("garbage") == ""

    @pytest.mark.parametrize("src,base,expected", [
        ("//cdn.example.com/a.jpg", "https://example.com/", "https://cdn.example.com/a.jpg"),
        ("/img/a.jpg", "https://example.com/page/1", "https://example.com/img/a.jpg"),
        ("b.jpg", "https://example.com/dir/page", "https://example.com/dir/b.jpg"),
        ("https://other.com/c.jpg", "https://example.com/", "https://other.com/c.jpg"),
        ("javascript:void(0)", "https://example.com/", ""),
        ("", "https://example.com/", ""),
    ])
    def test_resolve_url(self, src, base, expected):
        assert resolve_url(src, base) == expected

    def test_resolve_without_base(self):
        assert resolve_url("/img/a.jpg", "") == ""

    @pytest.mark.parametrize("url,valid", [
        ("https://example.com/photos/lake.jpg", True),
        ("data:image/png;base64,AAAA", False),
        ("https://example.com/logo.svg", False),
        ("https://example.com/favicon.ico", False),
        ("https://example.com/img/placeholder.png", False),
        ("https://encrypted-tbn0.gstatic.com/images?q=tbn:abc", False),
        ("/relative/lake.jpg", False),
    ])
    def test_is_valid_image_url(self, url, valid):
        assert is_valid_image_url(url) == valid

    @pytest.mark.parametrize("url,is_ad", [
        ("https://ads.example.com/preroll.mp4", True),
        ("https://example.com/ad/clip.mp4", True),
        ("https://example.com/analytics/beacon.js", True),
        ("https://cdn.example.com/media/clip.mp4", False),
        ("https://example.com/uploads/adventure.mp4", False),
    ])
    def test_is_ad_url(self, url, is_ad):
        assert is_ad_url(url) == is_ad

    def test_make_favicon(self):
        assert make_favicon("https://www.example.com/x") == (
            "https://www.google.com/s2/favicons?domain=example.com&sz=16"
        )
        assert make_favicon("nonsense") == ""


class TestText:

    def test_decode_entities(self):
        assert decode_entities("Tom &amp; Jerry&#39;s &quot;Show&quot;") == 'Tom & Jerry\'s "Show"'
        assert decode_entities("a&nbsp;b") == "a b"
        assert decode_entities("") == ""

    def test_strip_tags(self):
        assert strip_tags("  <b>Bold</b> &amp; <i>italic</i> ") == "Bold & italic"

    def test_clean_title_glued_host(self):
        assert clean_title(
            "stackexchange.comhttps://stackexchange.com/questions/1",
            "https://stackexchange.com/questions/1",
        ) == "stackexchange.com"

    def test_clean_title_bare_url(self):
        assert clean_title("https://www.example.com/page", "https://www.example.com/page") == "example.com"

    def test_clean_title_empty_falls_back_to_host(self):
        assert clean_title("", "https://www.foo.org/x") == "foo.org"

    def test_clean_title_keeps_normal_titles(self):
        assert clean_title("Golden Retriever &amp; Puppies", "https://x.com") == "Golden Retriever & Puppies"
