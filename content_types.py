"""Extension to MIME type table used for the Content-Type response header."""

from pathlib import PurePath
from types import MappingProxyType

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES: MappingProxyType[str, str] = MappingProxyType(
    {
        # documents and text
        "html": "text/html",
        "htm": "text/html",
        "css": "text/css",
        "js": "text/javascript",
        "mjs": "text/javascript",
        "json": "application/json",
        "map": "application/json",
        "xml": "application/xml",
        "txt": "text/plain",
        "csv": "text/csv",
        "md": "text/markdown",
        "pdf": "application/pdf",
        # images
        "png": "image/png",
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "gif": "image/gif",
        "svg": "image/svg+xml",
        "webp": "image/webp",
        "avif": "image/avif",
        "bmp": "image/bmp",
        "ico": "image/x-icon",
        # fonts
        "woff": "font/woff",
        "woff2": "font/woff2",
        "ttf": "font/ttf",
        "otf": "font/otf",
        # media
        "mp3": "audio/mpeg",
        "mp4": "video/mp4",
        "webm": "video/webm",
        # misc
        "wasm": "application/wasm",
        "zip": "application/zip",
    }
)


def lookup(extension: str) -> str:
    """Return the MIME type for ``extension``; never raises."""
    normalized = extension.strip().lstrip(".").lower()
    return CONTENT_TYPES.get(normalized, DEFAULT_CONTENT_TYPE)


def content_type_for(path: str | PurePath) -> str:
    # Pages targets always end up as .html, so a bare name is treated as one.
    suffix = PurePath(path).suffix
    return lookup(suffix or "html")
