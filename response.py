"""HTTP response model and serializer."""

from __future__ import annotations

from dataclasses import dataclass, field
from email.utils import formatdate

from config import SERVER_NAME

REASON_PHRASES: dict[int, str] = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    408: "Request Timeout",
    413: "Payload Too Large",
    414: "URI Too Long",
    431: "Request Header Fields Too Large",
    500: "Internal Server Error",
    501: "Not Implemented",
    503: "Service Unavailable",
    505: "HTTP Version Not Supported",
}

PLAIN_TEXT = "text/plain; charset=utf-8"


@dataclass(slots=True)
class HTTPResponse:
    status_code: int
    reason_phrase: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | str = b""
    should_close: bool = False
    content_length_override: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.body, str):
            self.body = self.body.encode("utf-8")

    @property
    def reason(self) -> str:
        return self.reason_phrase or REASON_PHRASES.get(self.status_code, "Unknown")

    def head_bytes(self) -> bytes:
        """Serialize the status line and headers, including the blank line."""
        headers = dict(self.headers)
        headers.setdefault("Date", formatdate(timeval=None, localtime=False, usegmt=True))
        headers.setdefault("Server", SERVER_NAME)
        headers.setdefault("Content-Type", PLAIN_TEXT)

        content_length = self.content_length_override
        if content_length is None:
            content_length = len(self.body)
        headers["Content-Length"] = str(content_length)
        if self.should_close:
            headers["Connection"] = "close"

        lines = [f"HTTP/1.1 {self.status_code} {self.reason}"]
        lines.extend(f"{key}: {value}" for key, value in headers.items())
        return "\r\n".join(lines).encode("iso-8859-1") + b"\r\n\r\n"

    def to_bytes(self) -> bytes:
        """Serialize the response into HTTP/1.1 wire format bytes."""
        return self.head_bytes() + self.body

    def without_body(self) -> HTTPResponse:
        """Return the HEAD form of this response: same headers, no payload."""
        return HTTPResponse(
            status_code=self.status_code,
            reason_phrase=self.reason_phrase,
            headers=dict(self.headers),
            body=b"",
            should_close=self.should_close,
            content_length_override=len(self.body),
        )


def text_response(
    status_code: int,
    body: str | None = None,
    *,
    should_close: bool = False,
) -> HTTPResponse:
    """Build a plain-text response, defaulting the body to the reason phrase."""
    reason = REASON_PHRASES.get(status_code, "Unknown")
    return HTTPResponse(
        status_code=status_code,
        headers={"Content-Type": PLAIN_TEXT},
        body=body if body is not None else reason,
        should_close=should_close,
    )
