"""Path sanitization and content-type helpers shared across server modules."""

import posixpath
from pathlib import Path
from types import MappingProxyType
from urllib.parse import unquote

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES = MappingProxyType(
    {
        ".html": "text/html; charset=utf-8",
        ".js": "text/javascript; charset=utf-8",
        ".css": "text/css; charset=utf-8",
        ".json": "application/json; charset=utf-8",
        ".svg": "image/svg+xml",
        ".png": "image/png",
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".gif": "image/gif",
        ".webp": "image/webp",
        ".ico": "image/x-icon",
        ".ttf": "font/ttf",
        ".woff": "font/woff",
        ".woff2": "font/woff2",
        ".txt": "text/plain; charset=utf-8",
        ".xml": "application/xml; charset=utf-8",
    }
)


class PathNormalizationError(ValueError):
    """Raised when a request path cannot be confined to the document root."""


def get_content_type(file_path: Path) -> str:
    return CONTENT_TYPES.get(file_path.suffix.lower(), DEFAULT_CONTENT_TYPE)


def normalize_request_path(request_path: str) -> str:
    """Return ``request_path`` as a root-relative path without leading separators.

    The path is percent-decoded first so encoded separators and dot segments
    are normalized like literal ones. Backslashes count as separators.
    Paths that would climb above the root, contain NUL bytes, or do not
    decode as UTF-8 raise PathNormalizationError. An empty string means the
    root itself.
    """
    try:
        decoded = unquote(request_path, errors="strict")
    except UnicodeDecodeError as exc:
        raise PathNormalizationError("request path is not valid UTF-8") from exc

    if "\x00" in decoded:
        raise PathNormalizationError("request path contains a NUL byte")

    relative = posixpath.normpath(decoded.replace("\\", "/").lstrip("/") or ".")
    if relative == ".." or relative.startswith("../"):
        raise PathNormalizationError("request path escapes the document root")

    return posixpath.normpath("/" + relative).lstrip("/")


def safe_join(document_root: Path, request_path: str) -> Path | None:
    """Join a request path onto the document root, or None if it escapes."""
    try:
        relative = normalize_request_path(request_path)
    except PathNormalizationError:
        return None

    candidate = document_root.joinpath(relative) if relative else document_root
    try:
        candidate.relative_to(document_root)
    except ValueError:
        return None

    return candidate
