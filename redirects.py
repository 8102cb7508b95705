from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Set

from errors import RedirectLoop, TooManyRedirects
from response import find_header, parse_status_code, peek_head
from telemetry import Telemetry
from url_resolver import RequestTarget, parse_url, resolve_redirect

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5
REDIRECT_STATUSES = frozenset({301, 302, 307, 308})


class Transport(Protocol):
    async def send(self, target: RequestTarget, accept: str) -> bytes:
        ...


@dataclass
class RedirectState:
    """Hop tracking for one top-level fetch. Never shared between fetches."""

    visited: Set[str] = field(default_factory=set)
    hop_count: int = 0


@dataclass
class FetchedResponse:
    """Final response of a fetch together with the chain that led to it."""

    url: str
    final_url: str
    payload: bytes
    hops: List[str] = field(default_factory=list)


class RedirectController:
    """Drives the transport through a bounded redirect chain."""

    def __init__(
        self,
        transport: Transport,
        *,
        max_redirects: int = MAX_REDIRECTS,
        telemetry: Optional[Telemetry] = None,
    ) -> None:
        self._transport = transport
        self._max_redirects = max_redirects
        self._telemetry = telemetry

    async def fetch(self, url: str, accept: str) -> FetchedResponse:
        """Request url, following redirects until a non-redirect response."""
        state = RedirectState()
        target = parse_url(url)
        hops: List[str] = []

        while True:
            current = target.url
            if current in state.visited:
                raise RedirectLoop(f"Redirect loop detected at {current}")
            state.visited.add(current)

            payload = await self._transport.send(target, accept)
            location = self._redirect_location(payload)
            if location is None:
                return FetchedResponse(url=url, final_url=current, payload=payload, hops=hops)

            if state.hop_count >= self._max_redirects:
                raise TooManyRedirects(
                    f"Too many redirects (max: {self._max_redirects})"
                )
            target = resolve_redirect(target, location)
            state.hop_count += 1
            hops.append(target.url)
            if self._telemetry:
                self._telemetry.record_redirect()
            logger.info(
                "Following redirect #%d to: %s",
                state.hop_count,
                target.url,
                extra={"from_url": current},
            )

    @staticmethod
    def _redirect_location(payload: bytes) -> Optional[str]:
        status_line, headers = peek_head(payload)
        if parse_status_code(status_line) not in REDIRECT_STATUSES:
            return None
        location = find_header(headers, "Location")
        return location or None
