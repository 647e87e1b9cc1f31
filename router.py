"""Request routing: resolve a path, read the file, build the response."""

from __future__ import annotations

import logging

from config import ServerConfig
from content_types import content_type_for
from resolver import InvalidPathError, ResolvedTarget, RoutingError, resolve
from response import HTTPResponse, text_response

logger = logging.getLogger(__name__)

NOT_FOUND_PAGE = "not-found.html"


class NotFoundError(RoutingError):
    """Raised when the resolved target is missing or not a regular file."""

    status_code = 404


class IoFailureError(RoutingError):
    """Raised when an existing target cannot be read."""

    status_code = 500


def read_target(target: ResolvedTarget) -> bytes:
    path = target.absolute_path
    try:
        if not path.is_file():
            raise NotFoundError(f"no regular file at {path}")
        return path.read_bytes()
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError) as exc:
        # removed or replaced between the check and the read
        raise NotFoundError(f"no regular file at {path}") from exc
    except OSError as exc:
        raise IoFailureError(f"failed to read {path}: {exc}") from exc


class RequestRouter:
    """Turns request paths into responses for one immutable ServerConfig."""

    def __init__(self, config: ServerConfig) -> None:
        self.config = config

    def handle(self, request_path: str) -> HTTPResponse:
        try:
            target = resolve(request_path, self.config)
        except InvalidPathError as exc:
            logger.warning("Rejected request path %r: %s", request_path, exc)
            return text_response(400)

        try:
            body = read_target(target)
        except NotFoundError:
            logger.debug("Not found: %s -> %s", request_path, target.absolute_path)
            return self._not_found()
        except IoFailureError:
            logger.exception("Failed to serve %s", request_path)
            return text_response(500)

        return HTTPResponse(
            status_code=200,
            headers={"Content-Type": content_type_for(target.absolute_path)},
            body=body,
        )

    def _not_found(self) -> HTTPResponse:
        custom_page = self.config.pages_root / NOT_FOUND_PAGE
        try:
            if custom_page.is_file():
                return HTTPResponse(
                    status_code=404,
                    headers={"Content-Type": "text/html"},
                    body=custom_page.read_bytes(),
                )
        except OSError:
            logger.exception("Failed to read custom not-found page %s", custom_page)
        return text_response(404)


def handle(request_path: str, config: ServerConfig) -> HTTPResponse:
    return RequestRouter(config).handle(request_path)
