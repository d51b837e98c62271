"""
Tests for image extraction: page mode, image search surfaces and booru APIs.
"""

import html
import json

from models.enums import ImageFormat
from parsers.images import ImageExtractor, best_srcset_entry, extract_page_images, google_source_page


PAGE_URL = "https://wallpapers.example.com/gallery/lakes"


class TestSrcset:

    def test_width_descriptors(self):
        srcset = "small.jpg 320w, large.jpg 1280w, medium.jpg 640w"
        assert best_srcset_entry(srcset) == "large.jpg"

    def test_density_descriptors(self):
        assert best_srcset_entry("a.jpg 1x, b.jpg 2x") == "b.jpg"

    def test_no_descriptor(self):
        assert best_srcset_entry("only.jpg") == "only.jpg"


class TestPageMode:

    def test_accumulates_across_patterns(self):
        page = """
        <html><head>
          <meta property="og:image" content="https://cdn.example.com/og/mountain_lake_cover.jpg">
          <script type="application/ld+json">
            {"@type": "ImageObject", "contentUrl": "https://cdn.example.com/ld/frozen_lake_sunrise.jpg"}
          </script>
        </head><body>
          <img srcset="/img/lake-small.jpg 320w, /img/lake-large.jpg 1600w" alt="Lake">
          <div data-src="//cdn.example.com/lazy/alpine_meadow.jpg"></div>
          <div style="background-image: url('/bg/forest_path_hero.jpg')"></div>
          <img src="/img/boat.jpg" alt="Boat on the lake">
          <img src="/img/site-logo.png">
          <img src="/img/tiny.jpg" width="40" height="40">
          <img src="data:image/gif;base64,R0lGOD">
        </body></html>
        """
        images = extract_page_images(page, PAGE_URL)
        urls = [i.url for i in images]

        assert urls == [
            "https://cdn.example.com/og/mountain_lake_cover.jpg",
            "https://wallpapers.example.com/img/lake-large.jpg",
            "https://cdn.example.com/lazy/alpine_meadow.jpg",
            "https://wallpapers.example.com/bg/forest_path_hero.jpg",
            "https://wallpapers.example.com/img/boat.jpg",
            "https://cdn.example.com/ld/frozen_lake_sunrise.jpg",
        ]
        boat = images[4]
        assert boat.alt == "Boat on the lake"
        assert boat.source == PAGE_URL

    def test_limit_and_dedup(self):
        tags = "".join(f'<img src="/photos/p{i}.jpg">' for i in range(30))
        page = f'<meta property="og:image" content="/photos/p0.jpg">{tags}'
        images = ImageExtractor().extract(page, ImageFormat.PAGE, source_url=PAGE_URL, limit=20)
        assert len(images) == 20
        assert len({i.url for i in images}) == 20

    def test_empty_page(self):
        assert extract_page_images("", PAGE_URL) == []


def bing_tile(meta: dict, attr: str = "m") -> str:
    return f'<a class="iusc" {attr}="{html.escape(json.dumps(meta), quote=True)}"></a>'


class TestBingImages:

    def test_m_metadata(self):
        page = "".join(
            bing_tile({"murl": f"https://img.example.com/full/lake_{i}.jpg", "purl": f"https://site{i}.com/", "t": f"Lake {i}"})
            for i in range(6)
        )
        images = ImageExtractor().extract(page, ImageFormat.BING_IMAGES, query="lakes")
        assert len(images) == 6
        assert images[0].url == "https://img.example.com/full/lake_0.jpg"
        assert images[0].alt == "Lake 0"
        assert images[0].source == "https://site0.com/"

    def test_iusc_fallback_when_few(self):
        page = bing_tile({"murl": "https://img.example.com/full/one.jpg"}) + bing_tile(
            {"oi": "https://img.example.com/full/two.jpg", "pi": "https://two.com/"}, attr="iusc"
        )
        images = ImageExtractor().extract(page, ImageFormat.BING_IMAGES, query="lakes")
        assert [i.url for i in images] == [
            "https://img.example.com/full/one.jpg",
            "https://img.example.com/full/two.jpg",
        ]
        assert images[0].alt == "lakes"
        assert images[1].source == "https://two.com/"

    def test_garbage(self):
        assert ImageExtractor().extract('<a m="{not json murl}"></a>', ImageFormat.BING_IMAGES) == []


class TestGoogleImages:

    def test_arrays_with_size_filter(self):
        raw = (
            '["https://www.nationalparks.example/lakes/crater-lake",'
            '["https://photos.example.com/crater_lake.jpg",1600,1067],'
            '["https://photos.example.com/thumb_small.jpg",120,90],'
            '["https://encrypted-tbn0.gstatic.com/images/abc.jpg",400,300]'
        )
        images = ImageExtractor().extract(raw, ImageFormat.GOOGLE_IMAGES, query="crater lake")
        assert [i.url for i in images] == ["https://photos.example.com/crater_lake.jpg"]
        assert images[0].alt == "crater lake"
        assert images[0].source == "https://www.nationalparks.example/lakes/crater-lake"

    def test_source_falls_back_to_origin(self):
        raw = '["https://photos.example.com/a/big_image.png",800,600]'
        assert google_source_page(raw, "https://photos.example.com/a/big_image.png") == "https://photos.example.com"


class TestBooru:

    def test_gelbooru_wrapped_posts(self):
        raw = json.dumps({"post": [
            {"id": 11, "file_url": "https://img.gelbooru.com/images/aa/bb/first_post_image.jpg", "tags": "a b c d e f g"},
            {"id": 12, "sample_url": "https://img.gelbooru.com/samples/cc/dd/second_post.jpg", "tags": ""},
            {"id": 13},
        ]})
        images = ImageExtractor().extract(raw, ImageFormat.GELBOORU_JSON, query="cat_ears")
        assert len(images) == 2
        assert images[0].alt == "a, b, c, d, e"
        assert images[0].source == "https://gelbooru.com/index.php?page=post&s=view&id=11"
        assert images[1].url.endswith("second_post.jpg")
        assert images[1].alt == "cat_ears"

    def test_danbooru_field_order(self):
        raw = json.dumps([
            {"id": 5, "large_file_url": "https://cdn.donmai.us/sample/x.jpg", "file_url": "https://cdn.donmai.us/original/x.png",
             "tag_string_general": "sky cloud"},
        ])
        images = ImageExtractor().extract(raw, ImageFormat.DANBOORU_JSON)
        assert images[0].url == "https://cdn.donmai.us/original/x.png"
        assert images[0].alt == "sky, cloud"
        assert images[0].source == "https://danbooru.donmai.us/posts/5"

    def test_e621_nested_paths(self):
        raw = json.dumps({"posts": [
            {"id": 7, "file": {"url": None}, "sample": {"url": "https://static1.e621.net/data/sample/ab/cd/abcd.jpg"},
             "tags": {"general": ["wolf", "snow"]}},
        ]})
        images = ImageExtractor().extract(raw, ImageFormat.E621_JSON)
        assert images[0].url == "https://static1.e621.net/data/sample/ab/cd/abcd.jpg"
        assert images[0].alt == "wolf, snow"

    def test_malformed_payload(self):
        assert ImageExtractor().extract("{oops", ImageFormat.DANBOORU_JSON) == []
