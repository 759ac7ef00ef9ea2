from __future__ import annotations

import json
import socket
from http.client import HTTPConnection

import pytest

from operation_router.pipeline import api_route
from operation_router.server import RouteServer, build_request, content_length, parse_body
from sample_routes import operations


@pytest.fixture
def server():
    runner = RouteServer(api_route(operations), host="127.0.0.1", port=0)
    runner.start()
    assert runner.wait_until_ready()
    try:
        yield runner
    finally:
        runner.stop()


def _request(server: RouteServer, method: str, path: str, body=None, headers=None):
    host, port = server.server_address
    connection = HTTPConnection(host, port, timeout=2)
    payload = json.dumps(body).encode("utf-8") if body is not None else None
    connection.request(method, path, body=payload, headers=headers or {})
    response = connection.getresponse()
    raw = response.read()
    connection.close()
    return response, raw


def test_serves_validated_query_and_middleware_options(server: RouteServer) -> None:
    response, raw = _request(
        server,
        "GET",
        "/items?limit=1",
        headers={"X-Request-Id": "req-1"},
    )

    assert response.status == 200
    assert json.loads(raw) == {"items": [{"name": "widget", "quantity": 3}], "requestId": "req-1"}


def test_serves_created_item(server: RouteServer) -> None:
    response, raw = _request(
        server,
        "POST",
        "/items",
        body={"name": "gadget"},
        headers={"Content-Type": "application/json; charset=utf-8"},
    )

    assert response.status == 201
    assert response.getheader("Content-Type") == "application/json"
    assert json.loads(raw) == {"name": "gadget", "quantity": 1}


def test_rejects_invalid_body(server: RouteServer) -> None:
    response, raw = _request(server, "POST", "/items", body={"quantity": "lots"}, headers={"Content-Type": "application/json"})

    payload = json.loads(raw)
    assert response.status == 400
    assert payload["message"] == "Invalid request body."
    assert {tuple(error["path"]) for error in payload["errors"]} == {("name",), ("quantity",)}


def test_missing_handler_and_unknown_method(server: RouteServer) -> None:
    missing, missing_raw = _request(server, "DELETE", "/items/1")
    rejected, _ = _request(server, "PATCH", "/items/1")

    assert missing.status == 501
    assert json.loads(missing_raw) == {"message": "Not implemented."}
    assert rejected.status == 405
    assert rejected.getheader("Allow") == "GET, POST, DELETE"


def test_head_omits_body(server: RouteServer) -> None:
    response, raw = _request(server, "HEAD", "/items")

    assert response.status == 405
    assert raw == b""


def test_parse_body_by_content_type() -> None:
    assert parse_body("application/json", b'{"a": 1}') == {"a": 1}
    assert parse_body("application/problem+json", b"[1]") == [1]
    assert parse_body("application/json", b"{broken") == "{broken"
    assert parse_body("application/x-www-form-urlencoded", b"a=1&b=2&b=3") == {"a": "1", "b": ["2", "3"]}
    assert parse_body("text/plain", b"hello") == "hello"
    assert parse_body(None, b"") is None


def test_build_request_splits_query() -> None:
    request = build_request("get", "/things?tag=a&tag=b&page=2", {"Content-Type": "application/json"}, b"")

    assert request.path == "/things"
    assert request.query == {"tag": ["a", "b"], "page": "2"}
    assert request.body is None


@pytest.mark.parametrize("length", ["-1", "abc"])
def test_rejects_invalid_content_length(server: RouteServer, length: str) -> None:
    host, port = server.server_address
    with socket.create_connection((host, port), timeout=2) as sock:
        sock.sendall(
            f"POST /items HTTP/1.1\r\nHost: {host}\r\nContent-Type: application/json\r\n"
            f"Content-Length: {length}\r\n\r\n".encode("ascii")
        )
        reply = b""
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            reply += chunk

    status_line, _, rest = reply.partition(b"\r\n")
    assert status_line.startswith(b"HTTP/1.") and b" 400 " in status_line
    assert json.loads(rest.split(b"\r\n\r\n", 1)[1]) == {"message": "Invalid Content-Length header."}


def test_content_length_parsing() -> None:
    assert content_length(None) == 0
    assert content_length("12") == 12
    assert content_length(" 0 ") == 0
    assert content_length("-1") is None
    assert content_length("abc") is None


def test_undecodable_body_is_kept_as_bytes() -> None:
    assert parse_body("application/json", b"\xff\xfe{") == b"\xff\xfe{"
    assert parse_body("text/plain", "café".encode("utf-8")) == "café"
