"""Request and response objects handed to middleware and handlers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


@dataclass
class Request:
    method: str
    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    query: dict[str, str | list[str]] = field(default_factory=dict)
    validated_body: Any = None
    validated_query: Any = None

    def header(self, name: str, default: str | None = None) -> str | None:
        """Case-insensitive header lookup."""

        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    @property
    def content_type(self) -> str | None:
        return self.header("Content-Type")


@runtime_checkable
class ResponseSink(Protocol):
    """Capabilities the dispatch pipeline needs from a response."""

    def is_committed(self) -> bool: ...

    def set_status(self, status: int) -> Any: ...

    def set_header(self, name: str, value: str) -> Any: ...

    def write_body(self, body: Any, content_type: str | None = None) -> Any: ...


class Response:
    """In-memory response sink rendered by the HTTP adapter."""

    def __init__(self) -> None:
        self.status_code = 200
        self.headers: dict[str, str] = {}
        self.body: Any = None
        self._status_set = False
        self._body_written = False

    def is_committed(self) -> bool:
        return self._status_set or self._body_written

    def set_status(self, status: int) -> "Response":
        self.status_code = int(status)
        self._status_set = True
        return self

    def set_header(self, name: str, value: str) -> "Response":
        for key in list(self.headers):
            if key.lower() == name.lower():
                del self.headers[key]
        self.headers[name] = value
        return self

    def get_header(self, name: str) -> str | None:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def write_body(self, body: Any, content_type: str | None = None) -> "Response":
        if content_type and self.get_header("Content-Type") is None:
            self.set_header("Content-Type", content_type)
        self.body = body
        self._body_written = True
        return self

    def json(self, payload: Any) -> "Response":
        return self.write_body(payload, "application/json")

    def render(self) -> bytes:
        """Serialize the body for the wire."""

        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, BaseModel):
            return self.body.model_dump_json().encode("utf-8")
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body, default=str).encode("utf-8")
