"""Unit tests for HTTP request parsing."""

import pytest

from request import HTTPRequest, HTTPRequestParseError


def test_parse_get_strips_query_string() -> None:
    raw = (
        b"GET /blog/post?ref=home#top HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"User-Agent: pytest\r\n"
        b"\r\n"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "GET"
    assert request.path == "/blog/post"
    assert request.raw_target == "/blog/post?ref=home#top"
    assert request.http_version == "HTTP/1.1"
    assert request.headers["user-agent"] == "pytest"
    assert request.keep_alive is True


def test_parse_accepts_any_method_token() -> None:
    raw = b"purge /index.html HTTP/1.1\r\nHost: localhost\r\n\r\n"

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "PURGE"
    assert request.is_head is False


def test_parse_absolute_form_target_uses_path() -> None:
    raw = b"GET http://example.com/assets/app.js HTTP/1.1\r\nHost: example.com\r\n\r\n"

    assert HTTPRequest.from_bytes(raw).path == "/assets/app.js"


def test_parse_ignores_body() -> None:
    raw = (
        b"POST /submit HTTP/1.1\r\n"
        b"Host: localhost\r\n"
        b"Content-Length: 9\r\n"
        b"\r\n"
        b"name=test"
    )

    request = HTTPRequest.from_bytes(raw)

    assert request.method == "POST"
    assert request.path == "/submit"


@pytest.mark.parametrize(
    ("version", "connection", "expected"),
    [
        ("HTTP/1.1", None, True),
        ("HTTP/1.1", "close", False),
        ("HTTP/1.0", None, False),
        ("HTTP/1.0", "keep-alive", True),
    ],
)
def test_keep_alive_follows_version_and_connection_header(
    version: str, connection: str | None, expected: bool
) -> None:
    header = f"Connection: {connection}\r\n" if connection else ""
    raw = f"GET / {version}\r\nHost: localhost\r\n{header}\r\n".encode("ascii")

    assert HTTPRequest.from_bytes(raw).keep_alive is expected


def test_parse_invalid_request_line_raises_value_error() -> None:
    raw = b"BROKEN-LINE\r\nHost: localhost\r\n\r\n"

    with pytest.raises(ValueError, match="Invalid request line"):
        HTTPRequest.from_bytes(raw)


def test_parse_unsupported_version_carries_505() -> None:
    raw = b"GET / HTTP/2.0\r\nHost: localhost\r\n\r\n"

    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == 505


def test_parse_overlong_target_carries_414() -> None:
    raw = b"GET /" + b"a" * 9000 + b" HTTP/1.1\r\nHost: localhost\r\n\r\n"

    with pytest.raises(HTTPRequestParseError) as exc_info:
        HTTPRequest.from_bytes(raw)

    assert exc_info.value.status_code == 414


def test_parse_malformed_header_raises() -> None:
    raw = b"GET / HTTP/1.1\r\nno-colon-here\r\n\r\n"

    with pytest.raises(HTTPRequestParseError, match="Malformed header line"):
        HTTPRequest.from_bytes(raw)
