"""Failure taxonomy of the dispatch pipeline and its mapping to HTTP responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Literal, Sequence

from .models import ErrorMessages, FieldError
from .transport import ResponseSink


class OperationError(RuntimeError):
    """Base class for failures converted into error responses."""

    status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR


class RoutingError(OperationError):
    """No operation is registered for the request method."""

    status = HTTPStatus.METHOD_NOT_ALLOWED

    def __init__(self, method: str, allowed_methods: Sequence[str]) -> None:
        super().__init__(f"No operation registered for {method}")
        self.method = method
        self.allowed_methods = list(allowed_methods)


class HandlerNotImplementedError(OperationError):
    """The operation has no handler or the handler produced no response."""

    status = HTTPStatus.NOT_IMPLEMENTED


class UnsupportedMediaTypeError(OperationError):
    status = HTTPStatus.UNSUPPORTED_MEDIA_TYPE

    def __init__(self, content_type: str | None, expected: str) -> None:
        super().__init__(f"Content type {content_type!r} does not match {expected!r}")
        self.content_type = content_type
        self.expected = expected


class RequestValidationError(OperationError):
    """Request body or query parameters failed schema validation."""

    status = HTTPStatus.BAD_REQUEST

    def __init__(self, location: Literal["body", "query"], errors: Sequence[FieldError]) -> None:
        super().__init__(f"Invalid request {location}")
        self.location = location
        self.errors = list(errors)


class UnexpectedError(OperationError):
    """Middleware or handler raised an exception."""

    status = HTTPStatus.INTERNAL_SERVER_ERROR


@dataclass(frozen=True)
class ErrorResponse:
    status: int
    body: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)

    def write_to(self, response: ResponseSink) -> None:
        response.set_status(self.status)
        for name, value in self.headers.items():
            response.set_header(name, value)
        response.write_body(self.body, "application/json")


class ErrorNormalizer:
    """Maps pipeline failures to status codes and configured messages."""

    def __init__(self, messages: ErrorMessages | None = None) -> None:
        self._messages = messages or ErrorMessages()

    @property
    def messages(self) -> ErrorMessages:
        return self._messages

    def normalize(self, error: OperationError) -> ErrorResponse:
        messages = self._messages
        if isinstance(error, RoutingError):
            return ErrorResponse(
                status=error.status,
                body={"message": messages.method_not_allowed},
                headers={"Allow": ", ".join(error.allowed_methods)},
            )
        if isinstance(error, HandlerNotImplementedError):
            return ErrorResponse(status=error.status, body={"message": messages.not_implemented})
        if isinstance(error, UnsupportedMediaTypeError):
            return ErrorResponse(status=error.status, body={"message": messages.invalid_media_type})
        if isinstance(error, RequestValidationError):
            message = messages.invalid_request_body if error.location == "body" else messages.invalid_query_parameters
            return ErrorResponse(
                status=error.status,
                body={
                    "message": message,
                    "errors": [item.model_dump(mode="json") for item in error.errors],
                },
            )
        # Internal detail never reaches the client.
        return ErrorResponse(status=HTTPStatus.INTERNAL_SERVER_ERROR, body={"message": messages.unexpected_error})
