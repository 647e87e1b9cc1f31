"""Socket-level integration tests for the site server."""

import json
import logging
import socket
import threading
import time
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from config import ServerConfig
from server import HTTPServer


@pytest.fixture
def site(tmp_path: Path) -> ServerConfig:
    pages = tmp_path / "pages"
    static = tmp_path / "static"
    (static / "css").mkdir(parents=True)
    pages.mkdir()
    (pages / "index.html").write_bytes(b"<h1>Home</h1>")
    (pages / "about.html").write_bytes(b"<h1>About</h1>")
    (static / "css" / "style.css").write_bytes(b"h1 { color: green; }")
    (tmp_path / "secret.txt").write_bytes(b"top secret")
    return ServerConfig(pages_dir=str(pages), static_dir=str(static))


def _start_server(server: HTTPServer) -> threading.Thread:
    thread = threading.Thread(target=server.start, daemon=True)
    thread.start()

    deadline = time.time() + 3
    while server.port == 0 and time.time() < deadline:
        time.sleep(0.01)

    if server.port == 0:
        raise RuntimeError("Server did not bind to a port")
    return thread


def _stop_server(server: HTTPServer, thread: threading.Thread) -> None:
    server.stop()
    thread.join(timeout=2.0)


@pytest.fixture
def running(site: ServerConfig) -> Iterator[HTTPServer]:
    server = HTTPServer(site, port=0, worker_count=4)
    thread = _start_server(server)
    yield server
    _stop_server(server, thread)


def _request(target: str, method: str = "GET", extra: str = "") -> bytes:
    return (
        f"{method} {target} HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n{extra}\r\n"
    ).encode("latin-1")


def _send_raw(server: HTTPServer, payload: bytes) -> bytes:
    with socket.create_connection((server.host, server.port), timeout=2.0) as client:
        client.sendall(payload)
        chunks = []
        while True:
            try:
                chunk = client.recv(4096)
            except ConnectionResetError:
                # rejected clients may be reset after the response is sent
                break
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def _split(raw_response: bytes) -> tuple[str, dict[str, str], bytes]:
    head, body = raw_response.split(b"\r\n\r\n", 1)
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, value = line.split(":", 1)
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


def test_about_page_over_the_wire(running: HTTPServer) -> None:
    status, headers, body = _split(_send_raw(running, _request("/about")))

    assert status == "HTTP/1.1 200 OK"
    assert headers["content-type"] == "text/html"
    assert headers["content-length"] == str(len(b"<h1>About</h1>"))
    assert body == b"<h1>About</h1>"


def test_static_asset_over_the_wire(running: HTTPServer) -> None:
    status, headers, body = _split(_send_raw(running, _request("/css/style.css?v=2")))

    assert status == "HTTP/1.1 200 OK"
    assert headers["content-type"] == "text/css"
    assert body == b"h1 { color: green; }"


def test_traversal_is_rejected_with_400(running: HTTPServer) -> None:
    for target in ("/../../etc/passwd", "/../secret.txt", "/%2e%2e/secret.txt"):
        status, _headers, body = _split(_send_raw(running, _request(target)))
        assert status == "HTTP/1.1 400 Bad Request"
        assert b"top secret" not in body


def test_missing_page_is_404(running: HTTPServer) -> None:
    status, _headers, body = _split(_send_raw(running, _request("/nope")))

    assert status == "HTTP/1.1 404 Not Found"
    assert body == b"Not Found"


def test_head_returns_headers_without_body(running: HTTPServer) -> None:
    status, headers, body = _split(_send_raw(running, _request("/about", method="HEAD")))

    assert status == "HTTP/1.1 200 OK"
    assert headers["content-length"] == str(len(b"<h1>About</h1>"))
    assert body == b""


def test_other_methods_are_treated_as_reads(running: HTTPServer) -> None:
    status, _headers, body = _split(
        _send_raw(running, _request("/", method="POST", extra="Content-Length: 0\r\n"))
    )

    assert status == "HTTP/1.1 200 OK"
    assert body == b"<h1>Home</h1>"


def test_keep_alive_serves_multiple_requests(running: HTTPServer) -> None:
    first = b"GET /about HTTP/1.1\r\nHost: localhost\r\n\r\n"
    second = _request("/css/style.css")

    response = _send_raw(running, first + second)

    assert response.count(b"HTTP/1.1 200 OK") == 2
    assert b"Connection: keep-alive" in response
    assert response.endswith(b"h1 { color: green; }")


def test_malformed_request_returns_400(running: HTTPServer) -> None:
    response = _send_raw(running, b"NOT-HTTP\r\n\r\n")

    assert response.startswith(b"HTTP/1.1 400 Bad Request")


def test_unknown_method_returns_501(running: HTTPServer) -> None:
    response = _send_raw(running, _request("/", method="BREW"))

    assert response.startswith(b"HTTP/1.1 501 Not Implemented")


def test_concurrent_requests(running: HTTPServer) -> None:
    targets = ["/", "/about", "/css/style.css", "/missing"] * 5

    with ThreadPoolExecutor(max_workers=10) as executor:
        responses = list(executor.map(lambda t: _send_raw(running, _request(t)), targets))

    statuses = [response.split(b"\r\n", 1)[0] for response in responses]
    assert statuses.count(b"HTTP/1.1 200 OK") == 15
    assert statuses.count(b"HTTP/1.1 404 Not Found") == 5


def test_json_access_log(site: ServerConfig, caplog: pytest.LogCaptureFixture) -> None:
    server = HTTPServer(site, port=0, log_format="json")
    thread = _start_server(server)
    try:
        with caplog.at_level(logging.INFO, logger="server"):
            _send_raw(server, _request("/about"))
            deadline = time.time() + 2
            while '"path": "/about"' not in caplog.text and time.time() < deadline:
                time.sleep(0.01)
    finally:
        _stop_server(server, thread)

    events = [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "server" and record.getMessage().startswith("{")
    ]
    assert {"path": "/about", "status": 200, "method": "GET"}.items() <= events[0].items()


def test_unsupported_log_format_is_rejected(site: ServerConfig) -> None:
    with pytest.raises(ValueError, match="Unsupported log format"):
        HTTPServer(site, log_format="xml")


class SlowHTTPServer(HTTPServer):
    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        time.sleep(0.3)
        super()._handle_client(client_socket, address)


def test_server_returns_503_when_queue_is_saturated(site: ServerConfig) -> None:
    server = SlowHTTPServer(site, port=0, worker_count=1, request_queue_size=1)
    thread = _start_server(server)
    try:
        with ThreadPoolExecutor(max_workers=4) as executor:
            responses = list(executor.map(lambda _: _send_raw(server, _request("/")), range(4)))
    finally:
        _stop_server(server, thread)

    assert any(response.startswith(b"HTTP/1.1 503 Service Unavailable") for response in responses)
