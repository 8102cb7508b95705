from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import pytest

from redirects import FetchedResponse
from search_client import SearchClient, SearchResult

MOCKS = Path(__file__).parent / "mocks"


def html_response(body: str, status: str = "200 OK") -> bytes:
    head = f"HTTP/1.1 {status}\r\nContent-Type: text/html; charset=utf-8\r\n\r\n"
    return head.encode() + body.encode("utf-8")


class StubService:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload
        self.raw_calls: List[str] = []
        self.extract_calls: List[Tuple[str, bool]] = []

    async def fetch_raw(self, url: str, *, accept: Optional[str] = None) -> FetchedResponse:
        self.raw_calls.append(url)
        return FetchedResponse(url=url, final_url=url, payload=self._payload)

    async def fetch_and_extract(self, url: str, *, use_cache: bool = True) -> str:
        self.extract_calls.append((url, use_cache))
        return f"text of {url}"


@pytest.mark.asyncio
async def test_duckduckgo_html_parsing() -> None:
    sample_html = (MOCKS / "duckduckgo_results.html").read_text(encoding="utf-8")
    service = StubService(html_response(sample_html))
    client = SearchClient(service)  # type: ignore[arg-type]

    results = await client.search("Current weather in London")

    assert service.raw_calls == [
        "https://html.duckduckgo.com/html/?q=Current+weather+in+London"
    ]
    assert len(results) == 2
    first, second = results

    assert first.title == "London Weather"
    assert first.url == "https://weather.example.com/london"
    assert "Current weather" in first.snippet

    assert second.title == "London Weather News"
    assert second.url == "https://news.example.com/london-weather"
    assert second.snippet == "Rain expected over the weekend."


@pytest.mark.asyncio
async def test_generic_anchor_fallback() -> None:
    sample_html = (MOCKS / "generic_links.html").read_text(encoding="utf-8")
    client = SearchClient(StubService(html_response(sample_html)))  # type: ignore[arg-type]

    results = await client.search("guide")

    assert [item.url for item in results] == [
        "https://docs.example.com/guide",
        "https://duckduckgo.com/about",
        "https://duckduckgo.com/settings",
    ]


@pytest.mark.asyncio
async def test_results_are_capped() -> None:
    links = "".join(
        f'<div class="result"><a class="result__a" href="https://site{index}.example.com/">'
        f"Result number {index}</a></div>"
        for index in range(15)
    )
    client = SearchClient(StubService(html_response(links)), max_results=10)  # type: ignore[arg-type]

    results = await client.search("many")

    assert len(results) == 10
    assert results[-1].url == "https://site9.example.com/"


@pytest.mark.asyncio
async def test_malformed_search_response_returns_nothing() -> None:
    client = SearchClient(StubService(b"HTTP/1.1 200 OK"))  # type: ignore[arg-type]
    assert await client.search("anything") == []


@pytest.mark.asyncio
async def test_open_result_fetches_the_result_url() -> None:
    service = StubService(html_response(""))
    client = SearchClient(service)  # type: ignore[arg-type]
    result = SearchResult(title="Doc", url="https://docs.example.com/guide", snippet="")

    text = await client.open_result(result, use_cache=False)

    assert text == "text of https://docs.example.com/guide"
    assert service.extract_calls == [("https://docs.example.com/guide", False)]


def test_search_url_is_encoded() -> None:
    client = SearchClient(
        StubService(b""),  # type: ignore[arg-type]
        url_template="https://duckduckgo.com/html/?q={query}",
    )
    assert client.build_search_url("c++ & rust") == "https://duckduckgo.com/html/?q=c%2B%2B+%26+rust"
