from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from errors import MalformedURL

DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_PREFIX = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


@dataclass(frozen=True)
class RequestTarget:
    """Parsed components of an http(s) URL."""

    scheme: str
    host: str
    port: int
    path: str = "/"
    query: Optional[str] = None

    @property
    def origin(self) -> str:
        return f"{self.scheme}://{self.host_header}"

    @property
    def request_path(self) -> str:
        if self.query:
            return f"{self.path}?{self.query}"
        return self.path

    @property
    def host_header(self) -> str:
        # IPv6 literals need brackets wherever a port may follow.
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port == DEFAULT_PORTS[self.scheme]:
            return host
        return f"{host}:{self.port}"

    @property
    def url(self) -> str:
        return self.origin + self.request_path


def parse_url(url: str) -> RequestTarget:
    """Split an absolute http(s) URL into a RequestTarget."""
    url = (url or "").strip()
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
        port = parts.port
    except ValueError as exc:
        raise MalformedURL(f"Invalid URL {url!r}: {exc}") from exc
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise MalformedURL(f"Unsupported or missing scheme in URL: {url!r}")
    if not hostname:
        raise MalformedURL(f"Missing host in URL: {url!r}")

    return RequestTarget(
        scheme=scheme,
        host=hostname,
        port=port or DEFAULT_PORTS[scheme],
        path=parts.path or "/",
        query=parts.query or None,
    )


def resolve_redirect(base: RequestTarget, location: str) -> RequestTarget:
    """Resolve a Location header value against the URL that produced it."""
    location = location.strip()

    if location.startswith("//"):
        return parse_url(f"{base.scheme}:{location}")

    # Absolute path and absolute URL must be told apart before falling back
    # to directory-relative resolution.
    if location.startswith("/"):
        return parse_url(base.origin + location)

    if _SCHEME_PREFIX.match(location):
        return parse_url(location)

    slash = base.path.rfind("/")
    directory = base.path[: slash + 1] if slash >= 0 else "/"
    return parse_url(base.origin + directory + location)
