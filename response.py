from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from errors import MalformedResponse

HEADER_BOUNDARY = b"\r\n\r\n"

Headers = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class RawResponse:
    """Status line, ordered headers and body of a single HTTP response."""

    status_line: str
    headers: Headers
    body: bytes

    @property
    def status_code(self) -> Optional[int]:
        return parse_status_code(self.status_line)

    @property
    def content_type(self) -> Optional[str]:
        return extract_content_type(self.headers)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> Optional[str]:
        return find_header(self.headers, name)


def split_response(raw: bytes) -> Tuple[str, bytes]:
    """Separate the header block from the body at the first blank line."""
    boundary = raw.find(HEADER_BOUNDARY)
    if boundary == -1:
        raise MalformedResponse("Invalid response format")
    head = raw[:boundary].decode("iso-8859-1")
    return head, raw[boundary + len(HEADER_BOUNDARY):]


def parse_head(head: str) -> Tuple[str, Headers]:
    lines = head.split("\r\n")
    status_line = lines[0].strip() if lines else ""
    headers: List[Tuple[str, str]] = []
    for line in lines[1:]:
        if not line:
            break
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers.append((name.strip(), value.strip()))
    return status_line, tuple(headers)


def peek_head(raw: bytes) -> Tuple[str, Headers]:
    """Read the status line and headers without requiring a complete response."""
    boundary = raw.find(HEADER_BOUNDARY)
    head = raw if boundary == -1 else raw[:boundary]
    return parse_head(head.decode("iso-8859-1"))


def parse_response(raw: bytes) -> RawResponse:
    head, body = split_response(raw)
    status_line, headers = parse_head(head)
    transfer_encoding = find_header(headers, "Transfer-Encoding") or ""
    if "chunked" in transfer_encoding.lower():
        body = decode_chunked(body)
    return RawResponse(status_line=status_line, headers=headers, body=body)


def parse_status_code(status_line: str) -> Optional[int]:
    parts = status_line.split(None, 2)
    if len(parts) < 2 or not parts[0].upper().startswith("HTTP/"):
        return None
    try:
        return int(parts[1])
    except ValueError:
        return None


def find_header(headers: Iterable[Tuple[str, str]], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return None


def extract_content_type(headers: Iterable[Tuple[str, str]]) -> Optional[str]:
    """Return the media type of the Content-Type header, without parameters."""
    value = find_header(headers, "Content-Type")
    if value is None:
        return None
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type or None


def decode_chunked(body: bytes) -> bytes:
    """Reassemble a chunked transfer-encoded body.

    A truncated stream keeps whatever complete data arrived; the peer closing
    the connection early is not treated as an error here.
    """
    decoded = bytearray()
    position = 0
    while True:
        line_end = body.find(b"\r\n", position)
        if line_end == -1:
            break
        size_field = body[position:line_end].split(b";", 1)[0].strip()
        try:
            size = int(size_field, 16)
        except ValueError:
            break
        if size == 0:
            break
        start = line_end + 2
        decoded.extend(body[start:start + size])
        position = start + size + 2
    return bytes(decoded)
