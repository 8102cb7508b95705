from __future__ import annotations

import logging
from typing import Optional

from cache import ContentCache
from errors import MalformedResponse
from redirects import FetchedResponse, RedirectController
from reducer import reduce_content
from response import RawResponse, parse_response
from telemetry import Telemetry

logger = logging.getLogger(__name__)

INVALID_RESPONSE_TEXT = "Invalid response format"
HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml"


class FetchService:
    """Coordinator for cache lookups, redirect-aware fetching and reduction."""

    def __init__(
        self,
        *,
        controller: RedirectController,
        telemetry: Telemetry,
        cache: Optional[ContentCache] = None,
        default_accept: str = HTML_ACCEPT,
        json_accept: str = "application/json",
    ) -> None:
        self._controller = controller
        self._telemetry = telemetry
        self._cache = cache
        self._default_accept = default_accept
        self._json_accept = json_accept

    async def fetch_raw(self, url: str, *, accept: Optional[str] = None) -> FetchedResponse:
        """Fetch url without reduction or caching; each call is an independent fetch."""
        with self._telemetry.measure_fetch():
            return await self._controller.fetch(url, accept or self._default_accept)

    async def fetch_and_extract(
        self,
        url: str,
        *,
        accept: Optional[str] = None,
        use_cache: bool = True,
    ) -> str:
        """Return the extracted text for url, consulting the cache first."""
        if self._cache and use_cache:
            cached = self._cache.get(url)
            self._telemetry.record_cache_lookup(hit=cached is not None)
            if cached is not None:
                logger.info("Returning cached response for: %s", url)
                return cached

        fetched = await self.fetch_raw(url, accept=accept)
        response = _parse_or_none(fetched)
        if response is None:
            return INVALID_RESPONSE_TEXT

        # Servers that answer the HTML Accept with JSON get asked again for JSON
        # explicitly, as a fresh fetch with its own redirect state.
        if accept is None and is_json(response.content_type) and not is_json(self._default_accept):
            logger.info("Re-requesting %s with Accept: %s", url, self._json_accept)
            fetched = await self.fetch_raw(url, accept=self._json_accept)
            response = _parse_or_none(fetched)
            if response is None:
                return INVALID_RESPONSE_TEXT

        text = reduce_content(response.text, response.content_type)
        logger.debug(
            "Extracted text",
            extra={
                "url": url,
                "final_url": fetched.final_url,
                "status_line": response.status_line,
                "content_type": response.content_type,
                "hops": len(fetched.hops),
            },
        )

        if self._cache and use_cache:
            try:
                self._cache.put(url, text)
            except OSError as exc:
                logger.warning("Failed to save cache: %s", exc)
        return text


def is_json(media_types: Optional[str]) -> bool:
    """True when any entry of a Content-Type or Accept value is a JSON type."""
    for part in (media_types or "").split(","):
        media_type = part.split(";", 1)[0].strip().lower()
        if media_type == "application/json" or media_type.endswith("+json"):
            return True
    return False


def _parse_or_none(fetched: FetchedResponse) -> Optional[RawResponse]:
    try:
        return parse_response(fetched.payload)
    except MalformedResponse:
        logger.warning("Response from %s has no header/body boundary", fetched.final_url)
        return None
