"""
Tests for video source extraction.
"""

import base64

from models.schema import VideoRecord
from parsers.videos import (
    VideoExtractor,
    build_video,
    decode_escapes,
    infer_quality,
    infer_type,
    is_video_embed,
    sort_videos,
)

PAGE = "https://videos.example.com/watch/42"


class TestHelpers:

    def test_decode_escapes(self):
        assert decode_escapes(r"https:\/\/cdn.example.com/v.mp4?a=1&b=2") == (
            "https://cdn.example.com/v.mp4?a=1&b=2"
        )

    def test_infer_type_and_quality(self):
        assert infer_type("https://x.com/v_1080p.mp4") == "video/mp4"
        assert infer_type("https://x.com/master.m3u8?token=1") == "application/x-mpegURL"
        assert infer_type("https://x.com/page") is None
        assert infer_quality("https://x.com/v_1080p.mp4") == "1080p"
        assert infer_quality("https://x.com/v.mp4") is None

    def test_build_video_rejects_ads(self):
        assert build_video("https://ads.example.com/preroll.mp4") is None
        assert build_video("") is None
        video = build_video("/media/clip_720p.webm", PAGE)
        assert video.url == "https://videos.example.com/media/clip_720p.webm"
        assert video.type == "video/webm"
        assert video.quality == "720p"

    def test_sort_videos(self):
        videos = [
            VideoRecord(url="https://x.com/embed/1", type="iframe"),
            VideoRecord(url="https://x.com/a.m3u8", type="application/x-mpegURL"),
            VideoRecord(url="https://x.com/a_480p.mp4", type="video/mp4", quality="480p"),
            VideoRecord(url="https://x.com/a_1080p.mp4", type="video/mp4", quality="1080p"),
            VideoRecord(url="https://x.com/a.webm", type="video/webm"),
            VideoRecord(url="https://x.com/stream", type="video/x-unknown"),
        ]
        assert [v.url for v in sort_videos(videos)] == [
            "https://x.com/a_1080p.mp4",
            "https://x.com/a_480p.mp4",
            "https://x.com/a.webm",
            "https://x.com/a.m3u8",
            "https://x.com/stream",
            "https://x.com/embed/1",
        ]

    def test_is_video_embed(self):
        assert is_video_embed("https://www.youtube.com/embed/abc")
        assert is_video_embed("https://cdn.example.com/player/123")
        assert not is_video_embed("https://social.example.com/widget/player")
        assert not is_video_embed("https://example.com/comments")


class TestVideoExtractor:

    def test_single_video_with_ad_script(self):
        page = """
        <video src="https://cdn.example.com/media/clip_720p.mp4"></video>
        <script>var ad = {src: "https://ads.example.com/ad/preroll.mp4"};</script>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert len(videos) == 1
        assert videos[0].url == "https://cdn.example.com/media/clip_720p.mp4"
        assert videos[0].type == "video/mp4"
        assert videos[0].quality == "720p"

    def test_video_element_sources_and_poster(self):
        page = """
        <video poster="/posters/p1.jpg">
          <source src="/media/movie.webm" type="video/webm">
          <source src="/media/movie_1080p.mp4" type="video/mp4">
        </video>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert [v.url for v in videos] == [
            "https://videos.example.com/media/movie_1080p.mp4",
            "https://videos.example.com/media/movie.webm",
        ]
        assert all(v.poster == "https://videos.example.com/posters/p1.jpg" for v in videos)

    def test_meta_and_embeds_after_direct(self):
        page = """
        <meta property="og:video" content="https://cdn.example.com/og/trailer.mp4">
        <iframe src="https://www.youtube.com/embed/xyz"></iframe>
        <iframe src="https://example.com/newsletter-signup"></iframe>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert [(v.url, v.type) for v in videos] == [
            ("https://cdn.example.com/og/trailer.mp4", "video/mp4"),
            ("https://www.youtube.com/embed/xyz", "iframe"),
        ]

    def test_json_ld_poster_backfill(self):
        page = """
        <script type="application/ld+json">
        {"@type": "VideoObject", "contentUrl": "https://cdn.example.com/ld/episode.mp4",
         "thumbnailUrl": ["https://cdn.example.com/ld/episode.jpg"]}
        </script>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert videos[0].url == "https://cdn.example.com/ld/episode.mp4"
        assert videos[0].poster == "https://cdn.example.com/ld/episode.jpg"

    def test_poster_backfill_keeps_existing(self):
        page = """
        <video src="https://cdn.example.com/v/main.mp4" poster="https://cdn.example.com/v/own.jpg"></video>
        <script type="application/ld+json">
        {"@type": "VideoObject", "thumbnailUrl": "https://cdn.example.com/v/other.jpg"}
        </script>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert videos[0].poster == "https://cdn.example.com/v/own.jpg"

    def test_player_config_in_script(self):
        page = """
        <script>
          jwplayer("player").setup({
            "file": "https:\\/\\/stream.example.com\\/hls\\/master.m3u8",
            "image": "/thumb.jpg"
          });
        </script>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert videos[0].url == "https://stream.example.com/hls/master.m3u8"
        assert videos[0].type == "application/x-mpegURL"

    def test_data_attributes(self):
        page = """
        <div data-video-url="https://cdn.example.com/data/clip.mp4"></div>
        <div data-src="https://cdn.example.com/images/lazy_photo.jpg"></div>
        """
        videos = VideoExtractor().extract(page, PAGE)
        assert [v.url for v in videos] == ["https://cdn.example.com/data/clip.mp4"]

    def test_atob_obfuscated_source(self):
        hidden = base64.b64encode(b"https://cdn.example.com/hidden/secret_clip.mp4").decode()
        page = f'<script>var player = new Player(); player.load(atob("{hidden}"));</script>'
        videos = VideoExtractor().extract(page, PAGE)
        assert [v.url for v in videos] == ["https://cdn.example.com/hidden/secret_clip.mp4"]

    def test_analytics_scripts_skipped(self):
        page = """
        <script>
          // https://www.googletagmanager.com/gtm.js
          var x = "https://cdn.example.com/tracked/file.mp4?x=1 ";
        </script>
        """
        # only the per-script scan sees unquoted-trailing URLs; it skips analytics scripts
        assert VideoExtractor().extract(page, PAGE) == []

    def test_limit(self):
        sources = "".join(f'<source src="/media/part{i}.mp4" type="video/mp4">' for i in range(30))
        videos = VideoExtractor().extract(f"<video>{sources}</video>", PAGE, limit=20)
        assert len(videos) == 20

    def test_empty(self):
        assert VideoExtractor().extract("", PAGE) == []
