"""Unit tests for request path sanitization and content-type lookup."""

from pathlib import Path

import pytest

from utils import (
    CONTENT_TYPES,
    DEFAULT_CONTENT_TYPE,
    PathNormalizationError,
    get_content_type,
    normalize_request_path,
    safe_join,
)

HOSTILE_PATHS = [
    "/../etc/passwd",
    "/blog/../../etc/passwd",
    "/../../../../../../etc/shadow",
    "..",
    "../",
    "/./../secret",
    "/%2e%2e/%2e%2e/etc/passwd",
    "/%2E%2E%2Fetc%2Fpasswd",
    "/blog/..%2f..%2fetc/passwd",
    "/..\\..\\windows\\win.ini",
    "/%5c..%5c..%5csecret",
    "//etc/passwd",
    "///etc//passwd",
    "/etc/passwd",
    "/a/b/../../../c",
    "/%00index.html",
    "/index.html%00.png",
    "/%ff%fe",
    "",
    "/",
]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/", ""),
        ("", ""),
        ("/index.html", "index.html"),
        ("/blog/", "blog"),
        ("/blog/./post/../index.html", "blog/index.html"),
        ("//assets///app.js", "assets/app.js"),
        ("/blog/../index.html", "index.html"),
        ("/fonts/Inter%20Var.woff2", "fonts/Inter Var.woff2"),
        ("/a%2fb", "a/b"),
    ],
)
def test_normalize_request_path(raw: str, expected: str) -> None:
    assert normalize_request_path(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "/..",
        "/blog/../../etc/passwd",
        "/%2e%2e/secret",
        "/a/..%5c..%5csecret",
        "/%00",
        "/%c3%28",
    ],
)
def test_normalize_request_path_rejects_escapes_and_garbage(raw: str) -> None:
    with pytest.raises(PathNormalizationError):
        normalize_request_path(raw)


@pytest.mark.parametrize("raw", HOSTILE_PATHS)
def test_safe_join_never_leaves_document_root(tmp_path: Path, raw: str) -> None:
    root = tmp_path.resolve()

    joined = safe_join(root, raw)

    if joined is not None:
        assert joined == root or root in joined.parents
        assert str(joined).startswith(str(root))


def test_safe_join_treats_absolute_looking_input_as_root_relative(tmp_path: Path) -> None:
    root = tmp_path.resolve()

    assert safe_join(root, "//etc/passwd") == root / "etc" / "passwd"
    assert safe_join(root, "/") == root


def test_safe_join_rejects_traversal(tmp_path: Path) -> None:
    assert safe_join(tmp_path.resolve(), "/blog/../../etc/passwd") is None


@pytest.mark.parametrize(("extension", "content_type"), sorted(CONTENT_TYPES.items()))
def test_get_content_type_uses_table(extension: str, content_type: str) -> None:
    assert get_content_type(Path(f"asset{extension}")) == content_type
    assert get_content_type(Path(f"ASSET{extension.upper()}")) == content_type


def test_get_content_type_defaults_to_octet_stream() -> None:
    assert get_content_type(Path("archive.bin")) == DEFAULT_CONTENT_TYPE
    assert get_content_type(Path("LICENSE")) == "application/octet-stream"


def test_content_type_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        CONTENT_TYPES[".exe"] = "application/x-msdownload"  # type: ignore[index]
