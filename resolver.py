"""Request path classification and traversal-safe filesystem resolution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from config import ServerConfig

INDEX_PAGE = "index.html"
PAGE_EXTENSION = "html"


class Root(Enum):
    PAGES = "pages"
    STATIC = "static"


class RoutingError(Exception):
    """Base class for failures that map onto an HTTP error status."""

    status_code: int = 500

    def __init__(self, message: str, *, request_path: str | None = None) -> None:
        super().__init__(message)
        self.request_path = request_path


class InvalidPathError(RoutingError):
    """Raised for malformed request paths and attempts to leave a root."""

    status_code = 400


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    root: Root
    relative_path: str
    absolute_path: Path

    @property
    def extension(self) -> str:
        return self.absolute_path.suffix.lstrip(".").lower()


def normalize_request_path(request_path: str) -> str:
    """Return the decoded, slash-trimmed relative path for ``request_path``.

    Query strings and fragments are dropped. Empty and ``.`` segments are
    collapsed; ``..`` segments and NUL bytes are rejected outright.
    """
    path = request_path.split("#", 1)[0].split("?", 1)[0]
    if not path:
        raise InvalidPathError("empty request path", request_path=request_path)

    decoded = unquote(path)
    if "\x00" in decoded:
        raise InvalidPathError("null byte in request path", request_path=request_path)
    if not decoded.startswith("/"):
        raise InvalidPathError("request path must start with '/'", request_path=request_path)

    segments = decoded.replace("\\", "/").split("/")
    if ".." in segments:
        raise InvalidPathError("parent segment in request path", request_path=request_path)

    return "/".join(segment for segment in segments if segment not in ("", "."))


def classify(relative_path: str) -> Root:
    """Pick the content root from the extension of the final path segment."""
    if not relative_path:
        return Root.PAGES
    extension = PurePosixPath(relative_path).suffix.lstrip(".").lower()
    if not extension or extension == PAGE_EXTENSION:
        return Root.PAGES
    return Root.STATIC


def resolve(request_path: str, config: ServerConfig) -> ResolvedTarget:
    """Map a request path to a file path inside the pages or static root.

    Existence is not checked here. Raises InvalidPathError when the path is
    malformed or its canonical form falls outside the chosen root, which also
    covers symlinks pointing elsewhere.
    """
    relative_path = normalize_request_path(request_path) or INDEX_PAGE
    root = classify(relative_path)

    if root is Root.PAGES:
        if not PurePosixPath(relative_path).suffix:
            relative_path = f"{relative_path}.{PAGE_EXTENSION}"
        root_dir = config.pages_root
    else:
        root_dir = config.static_root

    try:
        canonical_root = root_dir.resolve()
        candidate = (canonical_root / relative_path).resolve()
    except (OSError, RuntimeError) as exc:
        # symlink loops surface here
        raise InvalidPathError(f"cannot canonicalize path: {exc}", request_path=request_path) from exc

    if candidate == canonical_root or not candidate.is_relative_to(canonical_root):
        raise InvalidPathError("resolved path escapes its root", request_path=request_path)

    return ResolvedTarget(root=root, relative_path=relative_path, absolute_path=candidate)
