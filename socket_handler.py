"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass

from config import (
    LINGER_TIMEOUT_SECS,
    MAX_BODY_BYTES,
    MAX_HEADER_BYTES,
    MAX_REQUEST_BYTES,
    MAX_REQUEST_LINE_BYTES,
    READ_CHUNK_SIZE,
)
from response import HTTPResponse

MAX_CHUNK_LINE_BYTES = 1024


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when socket bytes do not form a complete HTTP request."""


class URITooLongError(HTTPReadError):
    """Raised when the request line exceeds MAX_REQUEST_LINE_BYTES."""


class HeaderTooLargeError(HTTPReadError):
    """Raised when HTTP headers exceed configured maximum size."""


class PayloadTooLargeError(HTTPReadError):
    """Raised when request body exceeds configured maximum size."""


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""


@dataclass(slots=True)
class RequestHeadInfo:
    header_end_index: int
    expected_body_length: int
    uses_chunked_transfer: bool

    @property
    def body_start(self) -> int:
        return self.header_end_index + 4


def _header_values(header_bytes: bytes | bytearray) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in header_bytes.decode("iso-8859-1").split("\r\n")[1:]:
        if not line:
            continue
        if ":" not in line:
            raise MalformedRequestError("Malformed header while reading request")
        name, value = line.split(":", 1)
        values[name.strip().lower()] = value.strip()
    return values


def _content_length(raw_value: str) -> int:
    try:
        parsed_length = int(raw_value)
    except ValueError as exc:
        raise MalformedRequestError("Invalid Content-Length header") from exc
    if parsed_length < 0:
        raise MalformedRequestError("Negative Content-Length header")
    if parsed_length > MAX_BODY_BYTES:
        raise PayloadTooLargeError("Body exceeded MAX_BODY_BYTES")
    return parsed_length


class ChunkedBodyScanner:
    """Walks a chunked body as it arrives, resuming where the last feed stopped."""

    def __init__(self, body_start: int) -> None:
        self.position = body_start
        self.decoded_size = 0
        self.in_trailers = False

    def _next_line_end(self, buffer: bytes | bytearray) -> int:
        line_end = buffer.find(b"\r\n", self.position)
        if line_end == -1 and len(buffer) - self.position > MAX_CHUNK_LINE_BYTES:
            raise MalformedRequestError("Chunk size or trailer line too long")
        return line_end

    def feed(self, buffer: bytes | bytearray) -> int | None:
        """Return the end offset of the complete request, or None for more bytes."""
        while True:
            line_end = self._next_line_end(buffer)
            if line_end == -1:
                return None

            if self.in_trailers:
                if line_end == self.position:
                    return line_end + 2
                self.position = line_end + 2
                continue

            size_token = bytes(buffer[self.position : line_end]).split(b";", 1)[0].strip()
            try:
                chunk_size = int(size_token, 16)
            except ValueError as exc:
                raise MalformedRequestError("Malformed chunk size") from exc

            if chunk_size == 0:
                self.in_trailers = True
                self.position = line_end + 2
                continue

            if self.decoded_size + chunk_size > MAX_BODY_BYTES:
                raise PayloadTooLargeError("Decoded chunked body exceeded MAX_BODY_BYTES")
            data_end = line_end + 2 + chunk_size
            if len(buffer) < data_end + 2:
                return None
            if buffer[data_end : data_end + 2] != b"\r\n":
                raise MalformedRequestError("Chunk missing CRLF terminator")
            self.decoded_size += chunk_size
            self.position = data_end + 2


def inspect_http_request_head(
    buffer: bytes | bytearray, scan_from: int = 0
) -> RequestHeadInfo | None:
    """Inspect request headers from an in-memory buffer, if complete.

    ``scan_from`` skips bytes already known not to hold the blank line that
    ends the header section.
    """
    if len(buffer) > MAX_REQUEST_BYTES:
        raise PayloadTooLargeError("Request exceeded MAX_REQUEST_BYTES")

    if buffer.find(b"\r\n", 0, MAX_REQUEST_LINE_BYTES + 2) == -1:
        if len(buffer) > MAX_REQUEST_LINE_BYTES:
            raise URITooLongError("Request line exceeded MAX_REQUEST_LINE_BYTES")

    header_end_index = buffer.find(b"\r\n\r\n", scan_from)
    if header_end_index == -1:
        if len(buffer) > MAX_HEADER_BYTES:
            raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")
        return None

    if header_end_index + 4 > MAX_HEADER_BYTES:
        raise HeaderTooLargeError("Headers exceeded MAX_HEADER_BYTES")

    headers = _header_values(buffer[:header_end_index])
    uses_chunked_transfer = "chunked" in headers.get("transfer-encoding", "").lower()
    if uses_chunked_transfer and "content-length" in headers:
        raise MalformedRequestError("Content-Length cannot be combined with chunked transfer")

    expected_body_length = 0
    if not uses_chunked_transfer and "content-length" in headers:
        expected_body_length = _content_length(headers["content-length"])

    return RequestHeadInfo(
        header_end_index=header_end_index,
        expected_body_length=expected_body_length,
        uses_chunked_transfer=uses_chunked_transfer,
    )


def _request_length(
    buffer: bytes | bytearray,
    head_info: RequestHeadInfo,
    chunked: ChunkedBodyScanner | None,
) -> int | None:
    if chunked is not None:
        return chunked.feed(buffer)
    request_length = head_info.body_start + head_info.expected_body_length
    if len(buffer) < request_length:
        return None
    return request_length


def extract_http_request_message(buffer: bytes) -> tuple[bytes, bytes] | None:
    """Split one complete HTTP request off the front of ``buffer``."""
    head_info = inspect_http_request_head(buffer)
    if head_info is None:
        return None

    chunked = ChunkedBodyScanner(head_info.body_start) if head_info.uses_chunked_transfer else None
    request_length = _request_length(buffer, head_info, chunked)
    if request_length is None:
        return None
    return buffer[:request_length], buffer[request_length:]


def read_http_request_message(
    client_socket: socket.socket,
    initial_buffer: bytes = b"",
    *,
    request_timeout: float | None = None,
) -> tuple[bytes, bytes]:
    """Read one HTTP/1.1 request and return (request_bytes, leftover_bytes).

    ``request_timeout`` bounds the whole read, not each ``recv``, so a client
    trickling bytes cannot hold the connection open. Returns empty bytes
    when the peer closes, or times out, before sending anything.
    """
    buffer = bytearray(initial_buffer)
    socket_timeout = client_socket.gettimeout()
    deadline = None if request_timeout is None else time.monotonic() + request_timeout
    head_info: RequestHeadInfo | None = None
    chunked: ChunkedBodyScanner | None = None
    scan_from = 0

    try:
        while True:
            if head_info is None:
                head_info = inspect_http_request_head(buffer, scan_from)
                if head_info is None:
                    # A terminator may straddle the next recv.
                    scan_from = max(0, len(buffer) - 3)
                elif head_info.uses_chunked_transfer:
                    chunked = ChunkedBodyScanner(head_info.body_start)

            if head_info is not None:
                request_length = _request_length(buffer, head_info, chunked)
                if request_length is not None:
                    return bytes(buffer[:request_length]), bytes(buffer[request_length:])

            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    if not buffer:
                        return b"", b""
                    raise SocketTimeoutError("Request not received within the deadline")
                client_socket.settimeout(
                    remaining if socket_timeout is None else min(remaining, socket_timeout)
                )

            try:
                chunk = client_socket.recv(READ_CHUNK_SIZE)
            except socket.timeout as exc:
                if not buffer:
                    return b"", b""
                raise SocketTimeoutError("Timed out waiting for request bytes") from exc

            if not chunk:
                if not buffer:
                    return b"", b""
                raise MalformedRequestError("Connection closed before request completed")

            buffer.extend(chunk)
    finally:
        if deadline is not None:
            client_socket.settimeout(socket_timeout)


def write_http_response_message(
    client_socket: socket.socket,
    response: HTTPResponse,
    *,
    head_only: bool = False,
) -> int:
    """Write a serialized response and return the number of bytes sent."""
    payload = response.to_bytes(head_only=head_only)
    client_socket.sendall(payload)
    return len(payload)


def linger_close(client_socket: socket.socket, timeout: float = LINGER_TIMEOUT_SECS) -> None:
    """Half-close and drain unread bytes so an error response is not lost to a reset."""
    deadline = time.monotonic() + timeout
    try:
        client_socket.shutdown(socket.SHUT_WR)
        client_socket.settimeout(timeout)
        while time.monotonic() < deadline and client_socket.recv(READ_CHUNK_SIZE):
            pass
    except OSError:
        return
