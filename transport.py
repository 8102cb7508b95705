from __future__ import annotations

import asyncio
import logging
import ssl
from typing import Optional

import httpx

from errors import TransportError, TransportTimeout
from url_resolver import RequestTarget

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.9"
READ_CHUNK_SIZE = 4096


def build_request(
    target: RequestTarget,
    accept: str,
    *,
    user_agent: str = DEFAULT_USER_AGENT,
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE,
) -> bytes:
    """Serialise a GET request for the target."""
    lines = [
        f"GET {target.request_path} HTTP/1.1",
        f"Host: {target.host_header}",
        f"User-Agent: {user_agent}",
        f"Accept: {accept}",
        f"Accept-Language: {accept_language}",
        "Connection: close",
    ]
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")


class SocketTransport:
    """Sends one GET per connection over a raw (optionally TLS) stream."""

    def __init__(
        self,
        *,
        timeout_seconds: Optional[float] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        accept_language: str = DEFAULT_ACCEPT_LANGUAGE,
        verify_tls: bool = True,
    ) -> None:
        self._timeout = timeout_seconds or None
        self._user_agent = user_agent
        self._accept_language = accept_language
        self._ssl_context = ssl.create_default_context()
        if not verify_tls:
            self._ssl_context.check_hostname = False
            self._ssl_context.verify_mode = ssl.CERT_NONE

    async def send(self, target: RequestTarget, accept: str) -> bytes:
        """Return the full raw response, read until the peer closes."""
        try:
            return await asyncio.wait_for(self._exchange(target, accept), self._timeout)
        except asyncio.TimeoutError as exc:
            raise TransportTimeout(
                f"Request to {target.url} timed out after {self._timeout}s"
            ) from exc
        except OSError as exc:
            raise TransportError(f"Request to {target.url} failed: {exc}") from exc

    async def _exchange(self, target: RequestTarget, accept: str) -> bytes:
        tls = target.scheme == "https"
        reader, writer = await asyncio.open_connection(
            target.host,
            target.port,
            ssl=self._ssl_context if tls else None,
            server_hostname=target.host if tls else None,
        )
        try:
            writer.write(
                build_request(
                    target,
                    accept,
                    user_agent=self._user_agent,
                    accept_language=self._accept_language,
                )
            )
            await writer.drain()

            buffer = bytearray()
            while True:
                chunk = await reader.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                buffer.extend(chunk)
            logger.debug("Read %d bytes from %s", len(buffer), target.origin)
            return bytes(buffer)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("Error while closing connection to %s: %s", target.origin, exc)

    async def close(self) -> None:
        return None


class HttpxTransport:
    """Same contract as SocketTransport, backed by httpx with redirects disabled."""

    def __init__(
        self,
        *,
        timeout_seconds: Optional[float] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        accept_language: str = DEFAULT_ACCEPT_LANGUAGE,
        verify_tls: bool = True,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._timeout = timeout_seconds or None
        if client is not None:
            self._client = client
            return
        headers = {
            "User-Agent": user_agent,
            "Accept-Language": accept_language,
            "Connection": "close",
        }
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers,
            follow_redirects=False,
            verify=verify_tls,
        )

    async def send(self, target: RequestTarget, accept: str) -> bytes:
        try:
            response = await self._client.get(target.url, headers={"Accept": accept})
        except httpx.TimeoutException as exc:
            raise TransportTimeout(
                f"Request to {target.url} timed out after {self._timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {target.url} failed: {exc}") from exc
        return serialize_response(response)

    async def close(self) -> None:
        await self._client.aclose()


def serialize_response(response: httpx.Response) -> bytes:
    """Rebuild raw HTTP bytes from an httpx response.

    httpx has already decoded any transfer/content encoding, so those
    headers are dropped to keep the body consistent with the head.
    """
    status_line = f"{response.http_version} {response.status_code} {response.reason_phrase}"
    lines = [status_line]
    for name, value in response.headers.multi_items():
        if name.lower() in {"transfer-encoding", "content-encoding", "content-length"}:
            continue
        lines.append(f"{name}: {value}")
    head = ("\r\n".join(lines) + "\r\n\r\n").encode("iso-8859-1", errors="replace")
    return head + response.content
