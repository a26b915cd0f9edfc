"""Unit tests for path resolution and MIME lookup."""

import os
from pathlib import Path

import pytest

from utils import DEFAULT_CONTENT_TYPE, PathTraversalError, get_content_type, resolve_static_file


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("index.html", "text/html"),
        ("INDEX.HTML", "text/html"),
        ("site.CSS", "text/css"),
        ("app.js", "text/javascript"),
        ("logo.Png", "image/png"),
        ("notes.txt", DEFAULT_CONTENT_TYPE),
        ("Makefile", DEFAULT_CONTENT_TYPE),
        (".html", DEFAULT_CONTENT_TYPE),
    ],
)
def test_get_content_type(name: str, expected: str) -> None:
    assert get_content_type(Path("/srv") / name) == expected


def test_root_path_resolves_to_default_document(tmp_path: Path) -> None:
    assert resolve_static_file("/", tmp_path) == (tmp_path / "index.html").resolve()
    assert resolve_static_file("/", tmp_path, "home.html") == (tmp_path / "home.html").resolve()


def test_nested_path_resolves_under_root(tmp_path: Path) -> None:
    resolved = resolve_static_file("/assets/css/site.css", tmp_path)

    assert resolved == (tmp_path / "assets" / "css" / "site.css").resolve()


def test_percent_encoded_path_is_decoded(tmp_path: Path) -> None:
    resolved = resolve_static_file("/my%20file.txt", tmp_path)

    assert resolved.name == "my file.txt"


def test_dot_segments_that_stay_inside_root_are_allowed(tmp_path: Path) -> None:
    resolved = resolve_static_file("/a/../b.css", tmp_path)

    assert resolved == (tmp_path / "b.css").resolve()


@pytest.mark.parametrize(
    "request_path",
    [
        "/../secret.txt",
        "/a/../../secret.txt",
        "/%2e%2e/secret.txt",
        "/..%2fsecret.txt",
        "/%2E%2E/%2E%2E/etc/passwd",
        "/./../secret.txt",
        "/index.html%00.png",
        "index.html",
    ],
)
def test_traversal_attempts_are_rejected(tmp_path: Path, request_path: str) -> None:
    root = tmp_path / "public"
    root.mkdir()

    with pytest.raises(PathTraversalError):
        resolve_static_file(request_path, root)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlink_out_of_root_is_rejected(tmp_path: Path) -> None:
    root = tmp_path / "public"
    root.mkdir()
    (tmp_path / "secret.txt").write_text("top secret")
    (root / "link.txt").symlink_to(tmp_path / "secret.txt")

    with pytest.raises(PathTraversalError):
        resolve_static_file("/link.txt", root)
