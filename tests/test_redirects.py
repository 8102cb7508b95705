from __future__ import annotations

from typing import Dict, List

import pytest

from errors import FetchError, RedirectLoop, TooManyRedirects
from redirects import RedirectController
from url_resolver import RequestTarget


def redirect(location: str, status: str = "302 Found") -> bytes:
    return f"HTTP/1.1 {status}\r\nLocation: {location}\r\nContent-Length: 0\r\n\r\n".encode()


def ok(body: str = "<p>done</p>") -> bytes:
    return f"HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n\r\n{body}".encode()


class StubTransport:
    def __init__(self, routes: Dict[str, bytes]) -> None:
        self._routes = routes
        self.calls: List[str] = []
        self.accepts: List[str] = []

    async def send(self, target: RequestTarget, accept: str) -> bytes:
        self.calls.append(target.url)
        self.accepts.append(accept)
        return self._routes[target.url]


def chain(length: int) -> Dict[str, bytes]:
    routes = {
        f"https://x.com/{index}": redirect(f"/{index + 1}") for index in range(length)
    }
    routes[f"https://x.com/{length}"] = ok()
    return routes


@pytest.mark.asyncio
async def test_non_redirect_response_is_returned_as_is() -> None:
    transport = StubTransport({"https://x.com/": ok("hello")})
    controller = RedirectController(transport)

    fetched = await controller.fetch("https://x.com", "text/html")

    assert fetched.payload == ok("hello")
    assert fetched.final_url == "https://x.com/"
    assert fetched.hops == []
    assert transport.calls == ["https://x.com/"]


@pytest.mark.asyncio
@pytest.mark.parametrize("length", [1, 2, 3, 4, 5])
async def test_chains_up_to_the_ceiling_succeed(length: int) -> None:
    transport = StubTransport(chain(length))
    controller = RedirectController(transport)

    fetched = await controller.fetch("https://x.com/0", "text/html")

    assert fetched.final_url == f"https://x.com/{length}"
    assert len(fetched.hops) == length
    assert len(transport.calls) == length + 1


@pytest.mark.asyncio
@pytest.mark.parametrize("length", [6, 9])
async def test_chains_over_the_ceiling_fail(length: int) -> None:
    transport = StubTransport(chain(length))
    controller = RedirectController(transport)

    with pytest.raises(TooManyRedirects):
        await controller.fetch("https://x.com/0", "text/html")
    assert len(transport.calls) == 6


@pytest.mark.asyncio
async def test_revisited_url_is_a_loop() -> None:
    transport = StubTransport(
        {
            "https://a.com/": redirect("https://b.com/"),
            "https://b.com/": redirect("https://a.com/", status="301 Moved Permanently"),
        }
    )
    controller = RedirectController(transport)

    with pytest.raises(RedirectLoop):
        await controller.fetch("https://a.com/", "text/html")
    assert transport.calls == ["https://a.com/", "https://b.com/"]


@pytest.mark.asyncio
async def test_self_redirect_is_a_loop() -> None:
    transport = StubTransport({"https://a.com/x": redirect("x", status="307 Temporary Redirect")})
    controller = RedirectController(transport)

    with pytest.raises(RedirectLoop):
        await controller.fetch("https://a.com/x", "text/html")


@pytest.mark.asyncio
async def test_redirect_without_location_ends_the_fetch() -> None:
    payload = b"HTTP/1.1 302 Found\r\nContent-Type: text/html\r\n\r\n<p>moved</p>"
    transport = StubTransport({"https://a.com/": payload})
    controller = RedirectController(transport)

    fetched = await controller.fetch("https://a.com/", "text/html")
    assert fetched.payload == payload


@pytest.mark.asyncio
async def test_other_statuses_are_not_followed() -> None:
    payload = b"HTTP/1.1 303 See Other\r\nLocation: /elsewhere\r\n\r\n"
    transport = StubTransport({"https://a.com/": payload})

    fetched = await RedirectController(transport).fetch("https://a.com/", "text/html")
    assert fetched.payload == payload
    assert transport.calls == ["https://a.com/"]


@pytest.mark.asyncio
async def test_state_is_reset_between_fetches() -> None:
    transport = StubTransport(chain(5))
    controller = RedirectController(transport)

    await controller.fetch("https://x.com/0", "text/html")
    fetched = await controller.fetch("https://x.com/0", "text/html")

    assert fetched.final_url == "https://x.com/5"


@pytest.mark.asyncio
async def test_relative_hops_and_accept_header_are_carried() -> None:
    transport = StubTransport(
        {
            "https://x.com/a/b?q=1": redirect("c"),
            "https://x.com/a/c": ok('{"a":1}'),
        }
    )
    controller = RedirectController(transport, max_redirects=1)

    fetched = await controller.fetch("https://x.com/a/b?q=1", "application/json")

    assert fetched.hops == ["https://x.com/a/c"]
    assert transport.accepts == ["application/json", "application/json"]


@pytest.mark.asyncio
async def test_unparseable_location_raises_fetch_error() -> None:
    transport = StubTransport({"https://x.com/": redirect("http://[bad/")})
    controller = RedirectController(transport)

    with pytest.raises(FetchError):
        await controller.fetch("https://x.com/", "text/html")

    assert transport.calls == ["https://x.com/"]
