"""Unit tests for primary/fallback target resolution."""

from pathlib import Path

import pytest

from resolver import Fallback, NotFound, Primary, Rejected, resolve_candidate, resolve_target


@pytest.fixture
def site(tmp_path: Path) -> Path:
    root = tmp_path.resolve()
    (root / "index.html").write_text("root")
    (root / "blog").mkdir()
    (root / "blog" / "index.html").write_text("blog-index")
    (root / "assets").mkdir()
    (root / "assets" / "app.js").write_text("console.log('hi')")
    (root / "empty").mkdir()
    return root


def test_existing_file_is_primary(site: Path) -> None:
    assert resolve_target(site, "/assets/app.js") == Primary(site / "assets" / "app.js")


def test_directory_resolves_to_its_index(site: Path) -> None:
    assert resolve_target(site, "/blog/") == Primary(site / "blog" / "index.html")
    assert resolve_target(site, "/blog") == Primary(site / "blog" / "index.html")


def test_root_resolves_to_root_index(site: Path) -> None:
    assert resolve_target(site, "/") == Primary(site / "index.html")


def test_missing_path_falls_back_to_root_index(site: Path) -> None:
    assert resolve_target(site, "/does/not/exist") == Fallback(site / "index.html")


def test_directory_without_index_falls_back(site: Path) -> None:
    assert resolve_candidate(site, "/empty") == site / "empty" / "index.html"
    assert resolve_target(site, "/empty/") == Fallback(site / "index.html")


def test_missing_path_without_root_index_is_not_found(tmp_path: Path) -> None:
    assert resolve_target(tmp_path.resolve(), "/nope") == NotFound()


def test_escaping_path_is_rejected(site: Path) -> None:
    assert resolve_target(site, "/blog/../../etc/passwd") == Rejected()
    assert resolve_candidate(site, "/%2e%2e/%2e%2e/etc/passwd") is None
