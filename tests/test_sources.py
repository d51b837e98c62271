"""
Tests for the citation source list builder.
"""

import pytest

from models.schema import OrchestratorResult, SearchLogEntry, SearchResult
from search.sources import build_sources, host_path_key, to_sources


def result(title: str, url: str, snippet: str = "") -> SearchResult:
    return SearchResult(title=title, url=url, snippet=snippet)


class StubOrchestrator:
    def __init__(self, results):
        self.results = results
        self.queries = []

    async def execute_search(self, query: str) -> OrchestratorResult:
        self.queries.append(query)
        log = SearchLogEntry(success=bool(self.results), query=query, total_time_ms=12,
                             resolved_by="duckduckgo" if self.results else None)
        return OrchestratorResult(results=self.results, log=log)


class TestToSources:

    def test_dedup_by_host_and_path(self):
        sources = to_sources([
            result("Puppies", "https://www.example.com/puppies?utm_source=a"),
            result("Puppies again", "https://www.example.com/puppies?ref=b"),
            result("Care guide", "https://www.example.com/care"),
        ])
        assert [s["url"] for s in sources] == [
            "https://www.example.com/puppies?utm_source=a",
            "https://www.example.com/care",
        ]

    def test_shape(self):
        [source] = to_sources([result("Tom &amp; Jerry", "https://cartoons.example.com/tj", "Cat &amp; mouse")])
        assert source == {
            "url": "https://cartoons.example.com/tj",
            "title": "Tom & Jerry",
            "snippet": "Cat & mouse",
            "favicon": "https://www.google.com/s2/favicons?domain=cartoons.example.com&sz=16",
        }

    def test_bare_url_title_becomes_hostname(self):
        [source] = to_sources([result("https://www.akc.org/dog-breeds/golden-retriever/", "https://www.akc.org/x")])
        assert source["title"] == "akc.org"

    def test_limit(self):
        results = [result(f"Page {i}", f"https://site{i}.example.com/") for i in range(15)]
        assert len(to_sources(results, limit=4)) == 4

    def test_host_path_key(self):
        assert host_path_key("https://Example.com/a/b?x=1#top") == "example.com/a/b"


@pytest.mark.asyncio
class TestBuildSources:

    async def test_wraps_cascade_results(self):
        stub = StubOrchestrator([result("Golden retrievers", "https://dogs.example.com/golden")])
        payload = await build_sources("golden retriever", limit=5, orchestrator=stub)

        assert stub.queries == ["golden retriever"]
        assert payload["query"] == "golden retriever"
        assert [s["title"] for s in payload["sources"]] == ["Golden retrievers"]

    async def test_exhausted_cascade_gives_empty_list(self):
        payload = await build_sources("nothing", orchestrator=StubOrchestrator([]))
        assert payload == {"sources": [], "query": "nothing"}
