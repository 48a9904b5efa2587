"""Request path to file resolution for the static site."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from config import INDEX_FILE
from utils import safe_join


@dataclass(frozen=True, slots=True)
class Rejected:
    """The request path escapes the document root or cannot be normalized."""


@dataclass(frozen=True, slots=True)
class Primary:
    path: Path


@dataclass(frozen=True, slots=True)
class Fallback:
    path: Path


@dataclass(frozen=True, slots=True)
class NotFound:
    """Neither the requested file nor the root index exists."""


ResolvedTarget = Rejected | Primary | Fallback | NotFound


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def resolve_candidate(document_root: Path, request_path: str) -> Path | None:
    """Sanitize the request path and apply the directory-to-index rule."""
    candidate = safe_join(document_root, request_path)
    if candidate is None:
        return None
    if _is_dir(candidate):
        return candidate / INDEX_FILE
    return candidate


def resolve_target(document_root: Path, request_path: str) -> ResolvedTarget:
    candidate = resolve_candidate(document_root, request_path)
    if candidate is None:
        return Rejected()
    if _is_file(candidate):
        return Primary(candidate)
    return fallback_target(document_root)


def fallback_target(document_root: Path) -> Fallback | NotFound:
    index_path = document_root / INDEX_FILE
    if _is_file(index_path):
        return Fallback(index_path)
    return NotFound()
