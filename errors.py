from __future__ import annotations


class FetchError(RuntimeError):
    """Base class for failures that terminate a single fetch."""


class MalformedURL(FetchError):
    """Raised when a URL has no usable http(s) scheme or host."""


class TransportError(FetchError):
    """Raised when connecting, the TLS handshake, writing or reading fails."""


class TransportTimeout(TransportError):
    """Raised when a request does not complete within the configured timeout."""


class RedirectLoop(FetchError):
    """Raised when a redirect chain revisits a URL."""


class TooManyRedirects(FetchError):
    """Raised when a redirect chain exceeds the hop ceiling."""


class MalformedResponse(FetchError):
    """Raised when a response has no header/body boundary."""
