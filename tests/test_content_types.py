"""Unit tests for the extension to MIME type table."""

from pathlib import Path

import pytest

from content_types import CONTENT_TYPES, DEFAULT_CONTENT_TYPE, content_type_for, lookup


@pytest.mark.parametrize(
    ("extension", "expected"),
    [
        ("html", "text/html"),
        ("css", "text/css"),
        ("js", "text/javascript"),
        ("json", "application/json"),
        ("png", "image/png"),
        ("jpg", "image/jpeg"),
        ("jpeg", "image/jpeg"),
        ("gif", "image/gif"),
        ("svg", "image/svg+xml"),
        ("webp", "image/webp"),
        ("woff", "font/woff"),
        ("woff2", "font/woff2"),
        ("ico", "image/x-icon"),
        ("txt", "text/plain"),
    ],
)
def test_lookup_known_extensions(extension: str, expected: str) -> None:
    assert lookup(extension) == expected


@pytest.mark.parametrize("extension", ["", "xyz", "tar.gz", " ", "exe"])
def test_lookup_unknown_extensions_default_to_octet_stream(extension: str) -> None:
    assert lookup(extension) == DEFAULT_CONTENT_TYPE == "application/octet-stream"


def test_lookup_normalizes_case_and_leading_dot() -> None:
    assert lookup(".CSS") == "text/css"
    assert lookup("Png") == "image/png"


def test_content_type_for_defaults_to_html_without_suffix() -> None:
    assert content_type_for(Path("pages/about")) == "text/html"
    assert content_type_for("static/app.js") == "text/javascript"


def test_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        CONTENT_TYPES["css"] = "text/plain"  # type: ignore[index]
