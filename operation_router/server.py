"""HTTP adapter serving a single API route with the standard library server."""

from __future__ import annotations

import asyncio
import json
import socketserver
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

import structlog

from .negotiation import primary_type
from .pipeline import ApiRoute
from .transport import Request, Response

LOGGER = structlog.get_logger("operation_router")


class ThreadedHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True


def _flatten_query(raw_query: str) -> dict[str, str | list[str]]:
    parsed = parse_qs(raw_query, keep_blank_values=True)
    return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}


def parse_body(content_type: str | None, raw: bytes) -> Any:
    """Turn raw request bytes into the value handed to validation and handlers."""

    if not raw:
        return None
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        # Undecodable bytes reach schemas exactly as sent.
        return raw
    media_type = primary_type(content_type)
    if media_type is None:
        return text
    if media_type == "application/json" or media_type.endswith("+json"):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            # Left as text so schema validation reports it.
            return text
    if media_type == "application/x-www-form-urlencoded":
        return _flatten_query(text)
    return text


def content_length(value: str | None) -> int | None:
    """Parse a Content-Length header; ``None`` when it is not a non-negative integer."""

    if value is None or not value.strip():
        return 0
    try:
        length = int(value.strip())
    except ValueError:
        return None
    if length < 0:
        return None
    return length


def _default_content_type(body: Any) -> str:
    if isinstance(body, bytes):
        return "application/octet-stream"
    if isinstance(body, str):
        return "text/plain; charset=utf-8"
    return "application/json"


def build_request(method: str, target: str, headers: dict[str, str], raw_body: bytes) -> Request:
    url = urlsplit(target)
    content_type = next((value for key, value in headers.items() if key.lower() == "content-type"), None)
    return Request(
        method=method,
        path=url.path or "/",
        headers=headers,
        body=parse_body(content_type, raw_body),
        query=_flatten_query(url.query),
    )


class RouteServer:
    """Runs one HTTP server instance dispatching every request to ``route``."""

    def __init__(self, route: ApiRoute, host: str = "127.0.0.1", port: int = 8000) -> None:
        self._route = route
        self._host = host
        self._port = port
        self._httpd: ThreadedHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._logger = LOGGER.bind(methods=route.allowed_methods)

    @property
    def server_address(self) -> tuple[str, int]:
        if self._httpd is None:
            return self._host, self._port
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        self._logger.info("server_starting", host=self._host, port=self._port)
        httpd = ThreadedHTTPServer((self._host, self._port), self._build_handler_factory())
        self._httpd = httpd
        self._thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        self._thread.start()
        self._ready.set()
        host, port = self.server_address
        self._logger = self._logger.bind(host=host, port=port)
        self._logger.info("server_started")

    def stop(self) -> None:
        if not self._httpd:
            return
        self._logger.info("server_stopping")
        try:
            self._httpd.shutdown()
            self._httpd.server_close()
        finally:
            if self._thread:
                self._thread.join(timeout=2)
            self._httpd = None
            self._ready.clear()
        self._logger.info("server_stopped")

    def wait_until_ready(self, timeout: float = 1.0) -> bool:
        return self._ready.wait(timeout=timeout)

    def serve_forever(self) -> None:
        """Start and block until interrupted."""

        self.start()
        try:
            while self._thread is not None and self._thread.is_alive():
                self._thread.join(timeout=0.5)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    def __enter__(self) -> "RouteServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - context helper
        self.stop()

    def _build_handler_factory(self) -> type[BaseHTTPRequestHandler]:
        route = self._route
        handler_logger = self._logger

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:  # pragma: no cover - avoid stderr
                handler_logger.debug("http_trace", client_ip=self.client_address[0], message=format % args)

            def do_GET(self) -> None:  # noqa: N802 (BaseHTTPRequestHandler requirement)
                self._handle()

            def do_POST(self) -> None:  # noqa: N802
                self._handle()

            def do_PUT(self) -> None:  # noqa: N802
                self._handle()

            def do_DELETE(self) -> None:  # noqa: N802
                self._handle()

            def do_PATCH(self) -> None:  # noqa: N802
                self._handle()

            def do_HEAD(self) -> None:  # noqa: N802
                self._handle(head_only=True)

            def do_OPTIONS(self) -> None:  # noqa: N802
                self._handle()

            def _handle(self, *, head_only: bool = False) -> None:
                length = content_length(self.headers.get("Content-Length"))
                if length is None:
                    handler_logger.warning(
                        "request_bad_content_length",
                        method=self.command,
                        content_length=self.headers.get("Content-Length"),
                    )
                    response = Response().set_status(HTTPStatus.BAD_REQUEST)
                    response.json({"message": "Invalid Content-Length header."})
                    self.close_connection = True
                    self._write(response, head_only=head_only)
                    return
                raw_body = self.rfile.read(length)
                request = build_request(
                    self.command,
                    self.path,
                    {key: value for key, value in self.headers.items()},
                    raw_body,
                )
                response = Response()
                try:
                    asyncio.run(route(request, response))
                except Exception:  # pragma: no cover - dispatch handles its own faults
                    handler_logger.exception("request_failed", method=request.method, path=request.path)
                    response = Response()
                    response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
                    response.json({"message": route.config.error_messages.unexpected_error})
                self._write(response, head_only=head_only)

            def _write(self, response: Response, *, head_only: bool) -> None:
                body = response.render()
                self.send_response(response.status_code)
                for key, value in response.headers.items():
                    if key.lower() != "content-length":
                        self.send_header(key, value)
                if body and response.get_header("Content-Type") is None:
                    self.send_header("Content-Type", _default_content_type(response.body))
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                if not head_only:
                    self.wfile.write(body)

        return Handler
