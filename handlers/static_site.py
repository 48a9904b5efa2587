"""Static site request handler: sanitize, resolve, read, and type the response."""

import logging
import os
from pathlib import Path

from config import ServerConfig
from resolver import (
    Fallback,
    NotFound,
    Primary,
    Rejected,
    ResolvedTarget,
    fallback_target,
    resolve_target,
)
from response import HTTPResponse
from utils import get_content_type

logger = logging.getLogger(__name__)

TEXT_PLAIN = "text/plain; charset=utf-8"
MISSING_ERRORS = (FileNotFoundError, IsADirectoryError, NotADirectoryError)


def read_file(file_path: Path) -> bytes:
    """Read a whole file, never more than the size reported by fstat."""
    with file_path.open("rb") as file_obj:
        size = os.fstat(file_obj.fileno()).st_size
        return file_obj.read(size)


def _plain(status_code: int, body: str) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        headers={"Content-Type": TEXT_PLAIN},
        body=body,
    )


def _file_response(file_path: Path, body: bytes) -> HTTPResponse:
    return HTTPResponse(
        status_code=200,
        headers={"Content-Type": get_content_type(file_path)},
        body=body,
    )


def _serve_fallback(target: Fallback | NotFound) -> HTTPResponse:
    if isinstance(target, NotFound):
        return _plain(404, "Not Found")
    try:
        body = read_file(target.path)
    except MISSING_ERRORS:
        return _plain(404, "Not Found")
    return _file_response(target.path, body)


def serve_target(document_root: Path, target: ResolvedTarget) -> HTTPResponse:
    if isinstance(target, Rejected):
        return _plain(400, "Bad Request")

    if isinstance(target, Primary):
        try:
            body = read_file(target.path)
        except OSError as exc:
            logger.debug("primary read failed for %s: %s", target.path, exc)
            return _serve_fallback(fallback_target(document_root))
        return _file_response(target.path, body)

    return _serve_fallback(target)


def handle(request_path: str, config: ServerConfig) -> HTTPResponse:
    """Serve one request path from the configured document root.

    Paths that escape the root get 400. Directories are served through
    their ``index.html``. Anything unreadable falls back to the root
    ``index.html`` so client-side routes work, and 404 is returned only
    when that is missing too. Other failures become a bare 500.
    """
    try:
        target = resolve_target(config.document_root, request_path)
        return serve_target(config.document_root, target)
    except Exception:
        logger.exception("Unhandled error serving %r", request_path)
        return _plain(500, "Internal Server Error")
