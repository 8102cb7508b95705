from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Set
from urllib.parse import parse_qs, quote_plus, urlparse

from bs4 import BeautifulSoup

from errors import MalformedResponse
from response import parse_response
from service import FetchService

logger = logging.getLogger(__name__)

SEARCH_BASE_URL = "https://duckduckgo.com"
_SKIPPED_SUFFIXES = (".jpg", ".png", ".gif")


@dataclass
class SearchResult:
    """Normalized representation of a search hit."""

    title: str
    url: str
    snippet: str


class SearchClient:
    """Runs a DuckDuckGo HTML search through the fetch service and scrapes its links."""

    def __init__(
        self,
        service: FetchService,
        *,
        url_template: str = "https://html.duckduckgo.com/html/?q={query}",
        max_results: int = 10,
    ) -> None:
        self._service = service
        self._url_template = url_template
        self._max_results = max_results

    def build_search_url(self, term: str) -> str:
        return self._url_template.format(query=quote_plus(term))

    async def search(self, term: str) -> List[SearchResult]:
        """Execute the search and return unique results in page order."""
        search_url = self.build_search_url(term)
        fetched = await self._service.fetch_raw(search_url)
        try:
            response = parse_response(fetched.payload)
        except MalformedResponse:
            logger.warning("Search response was malformed", extra={"term": term})
            return []

        if response.status_code != 200:
            logger.warning(
                "Search request failed",
                extra={"term": term, "status_line": response.status_line},
            )
        results = self.parse_results(response.text)
        if not results:
            logger.info("Search returned no results", extra={"term": term})
        return results

    async def open_result(self, result: SearchResult, *, use_cache: bool = True) -> str:
        return await self._service.fetch_and_extract(result.url, use_cache=use_cache)

    def parse_results(self, html: str) -> List[SearchResult]:
        soup = BeautifulSoup(html, "html.parser")
        seen: Set[str] = set()
        results: List[SearchResult] = []

        for link in soup.select("a.result__a"):
            title = link.get_text(strip=True)
            url = self._normalize_url(link.get("href") or "")
            if not url or not title or url in seen:
                continue
            container = link.find_parent("div", class_="result")
            snippet_tag = None
            if container is not None:
                snippet_tag = container.select_one(".result__snippet")
            snippet = snippet_tag.get_text(" ", strip=True) if snippet_tag else ""
            seen.add(url)
            results.append(SearchResult(title=title, url=url, snippet=snippet))
            if len(results) >= self._max_results:
                return results

        if results:
            return results

        # The result markup changes from time to time; fall back to any
        # external-looking anchor with a reasonable title.
        for link in soup.find_all("a", href=True):
            href = link["href"]
            title = link.get_text(strip=True)
            if (
                href.startswith("#")
                or href.startswith("javascript:")
                or href.lower().endswith(_SKIPPED_SUFFIXES)
                or len(title) < 5
            ):
                continue
            url = self._normalize_url(href)
            if not url or url in seen:
                continue
            seen.add(url)
            results.append(SearchResult(title=title, url=url, snippet=""))
            if len(results) >= self._max_results:
                break
        return results

    def _normalize_url(self, raw_url: str) -> str:
        if not raw_url:
            return ""
        # DuckDuckGo often returns protocol-relative links
        if raw_url.startswith("//"):
            raw_url = "https:" + raw_url
        elif raw_url.startswith("/"):
            raw_url = SEARCH_BASE_URL + raw_url
        parsed = urlparse(raw_url)
        if parsed.netloc.endswith("duckduckgo.com") and parsed.path.startswith("/l/"):
            params = parse_qs(parsed.query)
            uddg = params.get("uddg")
            if uddg:
                return uddg[0]
        if not raw_url.startswith("http"):
            raw_url = f"{SEARCH_BASE_URL}/{raw_url}"
        return raw_url
