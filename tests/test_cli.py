"""
Tests for the command-line entry point.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from models.schema import ImageRecord, OrchestratorResult, SearchLogEntry, SearchResult
from search.__main__ import build_parser, main


class TestParser:

    def test_sources_limit(self):
        args = build_parser().parse_args(["sources", "python asyncio", "--limit", "3"])
        assert (args.command, args.query, args.limit) == ("sources", "python asyncio", 3)

    def test_images_needs_query_or_page(self):
        with pytest.raises(SystemExit):
            main(["images"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestMain:

    def test_search_prints_log(self, capsys):
        outcome = OrchestratorResult(
            results=[SearchResult(title="Golden", url="https://dogs.example.com/golden")],
            log=SearchLogEntry(success=True, query="golden", total_time_ms=5, resolved_by="bing"),
        )
        with patch("search.__main__.execute_search", AsyncMock(return_value=outcome)):
            assert main(["search", "golden"]) == 0

        payload = json.loads(capsys.readouterr().out)
        assert payload["log"]["resolvedBy"] == "bing"
        assert payload["results"][0]["url"] == "https://dogs.example.com/golden"

    def test_images_page_mode(self, capsys):
        images = [ImageRecord(url="https://cdn.example.com/og/harbour_cover.jpg")]
        fake = AsyncMock(return_value=images)
        with patch("search.__main__.aggregate_images", fake):
            main(["images", "--page", "https://photos.example.com/harbour"])

        fake.assert_awaited_once_with(page_url="https://photos.example.com/harbour")
        payload = json.loads(capsys.readouterr().out)
        assert payload["images"][0]["url"] == "https://cdn.example.com/og/harbour_cover.jpg"
