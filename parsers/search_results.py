"""
Search result extraction for scraped engine pages and search API payloads.

Each source format has an ordered list of strategies; the first strategy
that yields at least one result wins. Engine markup drifts, so every
format carries a looser fallback behind its primary pattern.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence
from urllib.parse import parse_qs, unquote, urlsplit

from models.enums import SearchFormat
from models.schema import SearchResult
from normalizer.text import clean_title, collapse_whitespace, is_bare_url, is_glued_host
from .strategies import Document, Strategy, first_non_empty, first_present, try_build

logger = logging.getLogger(__name__)

MAX_RESULTS = 25

# Links that point back at the engine itself rather than a result
SELF_LINK_TOKENS = ("google.com", "youtube.com/results", "duckduckgo.com")

SNIPPET_SELECTORS = "[data-sncf], .VwiC3b, .IsZvec"


def _text(node) -> str:
    if node is None:
        return ""
    return collapse_whitespace(node.get_text(" "))


def _is_self_link(url: str) -> bool:
    host_and_path = url.split("://", 1)[-1].lower()
    return any(token in host_and_path for token in SELF_LINK_TOKENS)


def _result(title: str, url: str, snippet: str = "") -> Optional[SearchResult]:
    return try_build(SearchResult, title=title, url=url, snippet=snippet)


def decode_ddg_url(raw: str) -> str:
    """Unwrap DuckDuckGo's ``/l/?uddg=`` redirect links."""
    try:
        decoded = unquote(raw.replace("&amp;", "&"))
        if decoded.startswith("/"):
            target = parse_qs(urlsplit(f"https://duckduckgo.com{decoded}").query).get("uddg")
            return target[0] if target else raw
        if decoded.startswith("http"):
            return decoded
    except ValueError:
        pass
    return raw


# ------------------------------------------------------------------
# DuckDuckGo
# ------------------------------------------------------------------

def ddg_links_with_snippets(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for a in doc.soup.select("a.result__a"):
        if len(results) >= MAX_RESULTS:
            break
        container = a.find_parent(class_="result")
        snippet_node = (
            container.select_one(".result__snippet") if container is not None
            else a.find_next(class_="result__snippet")
        )
        if snippet_node is None:
            continue
        url = decode_ddg_url(a.get("href", ""))
        if not url.startswith("http"):
            continue
        r = _result(_text(a), url, _text(snippet_node))
        if r:
            results.append(r)
    return results


def ddg_links_only(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for a in doc.soup.select("a.result__a"):
        if len(results) >= MAX_RESULTS:
            break
        url = decode_ddg_url(a.get("href", ""))
        if url.startswith("http"):
            r = _result(_text(a), url)
            if r:
                results.append(r)
    return results


def ddg_lite_links(doc: Document) -> List[SearchResult]:
    """lite.duckduckgo.com renders results as table rows of ``a.result-link``."""
    results: List[SearchResult] = []
    for a in doc.soup.select("a.result-link"):
        if len(results) >= MAX_RESULTS:
            break
        url = decode_ddg_url(a.get("href", ""))
        if not url.startswith("http"):
            continue
        snippet = ""
        row = a.find_parent("tr")
        if row is not None:
            snippet_row = row.find_next_sibling("tr")
            if snippet_row is not None:
                snippet = _text(snippet_row.select_one(".result-snippet"))
        r = _result(_text(a), url, snippet)
        if r:
            results.append(r)
    return results


# ------------------------------------------------------------------
# Google
# ------------------------------------------------------------------

def google_redirect_links(doc: Document) -> List[SearchResult]:
    """``<a href="/url?q=REAL_URL&..."><h3>Title</h3></a>``"""
    results: List[SearchResult] = []
    for a in doc.soup.select('a[href^="/url?q="]'):
        if len(results) >= MAX_RESULTS:
            break
        h3 = a.find("h3")
        if h3 is None:
            continue
        target = parse_qs(urlsplit(a["href"]).query).get("q")
        if not target or not target[0].startswith("http"):
            continue
        url = target[0]
        if _is_self_link(url):
            continue
        r = _result(_text(h3), url)
        if r:
            results.append(r)
    return results


def google_cite_headings(doc: Document) -> List[SearchResult]:
    """
    Pair independently matched ``<cite>`` and ``<h3>`` elements.

    Used when link wrapping differs from the redirect layout. Titles that
    are bare URLs or a hostname glued onto a URL are replaced by the
    hostname they point at.
    """
    cites = [_text(c) for c in doc.soup.find_all("cite")]
    titles = [_text(h) for h in doc.soup.find_all("h3")]

    results: List[SearchResult] = []
    for cite, title in zip(cites, titles):
        if len(results) >= MAX_RESULTS:
            break
        # breadcrumb cites: "https://example.com › docs › page"
        url = cite.split(" ")[0].strip()
        if not url:
            continue
        if not url.startswith("http"):
            url = "https://" + url
        if not title:
            continue
        if is_bare_url(title) or is_glued_host(title):
            title = clean_title(title, url)
        r = _result(title, url)
        if r:
            results.append(r)
    return results


def google_rendered_blocks(doc: Document) -> List[SearchResult]:
    """Result blocks of a browser-rendered Google page (``#search .g``)."""
    results: List[SearchResult] = []
    for block in doc.soup.select("#search .g"):
        if len(results) >= MAX_RESULTS:
            break
        a = block.select_one("a[href]")
        h3 = block.find("h3")
        if a is None or h3 is None:
            continue
        url = a.get("href", "")
        if not url.startswith("http") or _is_self_link(url):
            continue
        r = _result(_text(h3), url, _text(block.select_one(SNIPPET_SELECTORS)))
        if r:
            results.append(r)
    return results


# ------------------------------------------------------------------
# Bing
# ------------------------------------------------------------------

def _bing_link(block):
    return block.select_one("h2 a[href^=http]") or block.select_one("a[href^=http]")


def bing_algo_with_snippets(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for block in doc.soup.select("li.b_algo"):
        if len(results) >= MAX_RESULTS:
            break
        a = _bing_link(block)
        p = block.find("p")
        if a is None or p is None:
            continue
        r = _result(_text(a), a["href"], _text(p))
        if r:
            results.append(r)
    return results


def bing_algo_links(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for block in doc.soup.select("li.b_algo"):
        if len(results) >= MAX_RESULTS:
            break
        a = _bing_link(block)
        if a is not None:
            r = _result(_text(a), a["href"])
            if r:
                results.append(r)
    return results


# ------------------------------------------------------------------
# JSON APIs
# ------------------------------------------------------------------

def _json_items(payload, key: str) -> list:
    if not isinstance(payload, dict):
        return []
    items = payload.get(key)
    return items if isinstance(items, list) else []


def render_api_results(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for item in _json_items(doc.payload, "results")[:MAX_RESULTS]:
        if not isinstance(item, dict):
            continue
        r = _result(
            item.get("title") or "",
            item.get("url") or "",
            item.get("snippet") or "",
        )
        if r:
            results.append(r)
    return results


def serper_organic(doc: Document) -> List[SearchResult]:
    results: List[SearchResult] = []
    for item in _json_items(doc.payload, "organic")[:MAX_RESULTS]:
        url = first_present(item, ("link", "url"))
        if not url:
            continue
        r = _result(
            item.get("title") or "",
            url,
            first_present(item, ("snippet", "description")) or "",
        )
        if r:
            results.append(r)
    return results


class SearchResultExtractor:
    """
    Turn a raw engine response into ``SearchResult`` records.

    Usage:
        results = SearchResultExtractor().extract(html, SearchFormat.DUCKDUCKGO)
    """

    STRATEGIES: Dict[SearchFormat, Sequence[Strategy]] = {
        SearchFormat.DUCKDUCKGO: (ddg_links_with_snippets, ddg_links_only, ddg_lite_links),
        SearchFormat.GOOGLE: (google_redirect_links, google_cite_headings),
        SearchFormat.GOOGLE_RENDERED: (
            google_rendered_blocks,
            google_redirect_links,
            google_cite_headings,
        ),
        SearchFormat.BING: (bing_algo_with_snippets, bing_algo_links),
        SearchFormat.RENDER_API: (render_api_results,),
        SearchFormat.SERPER: (serper_organic,),
    }

    def extract(
        self,
        raw: str,
        fmt: SearchFormat,
        limit: int = MAX_RESULTS,
    ) -> List[SearchResult]:
        strategies = self.STRATEGIES.get(SearchFormat(fmt))
        if not strategies or not raw:
            return []
        results = first_non_empty(strategies, Document(raw))
        logger.debug("Extracted %d %s results", len(results), SearchFormat(fmt).value)
        return results[:limit]
