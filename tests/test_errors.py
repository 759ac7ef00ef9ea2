from __future__ import annotations

from operation_router.constants import DEFAULT_ERRORS
from operation_router.errors import (
    ErrorNormalizer,
    HandlerNotImplementedError,
    RequestValidationError,
    RoutingError,
    UnexpectedError,
    UnsupportedMediaTypeError,
)
from operation_router.models import ErrorMessages, FieldError
from operation_router.transport import Response


def test_routing_error_sets_allow_header() -> None:
    result = ErrorNormalizer().normalize(RoutingError("PATCH", ["GET", "POST"]))

    assert result.status == 405
    assert result.headers == {"Allow": "GET, POST"}
    assert result.body == {"message": DEFAULT_ERRORS["methodNotAllowed"]}


def test_status_and_default_messages() -> None:
    normalizer = ErrorNormalizer()

    assert normalizer.normalize(HandlerNotImplementedError("x")).status == 501
    assert normalizer.normalize(UnsupportedMediaTypeError("text/xml", "application/json")).body == {
        "message": DEFAULT_ERRORS["invalidMediaType"]
    }
    unexpected = normalizer.normalize(UnexpectedError("database password is hunter2"))
    assert unexpected.status == 500
    assert unexpected.body == {"message": DEFAULT_ERRORS["unexpectedError"]}


def test_validation_errors_choose_message_by_location() -> None:
    errors = [FieldError(path=["foo"], message="Field required")]
    normalizer = ErrorNormalizer(ErrorMessages(invalidQueryParameters="Bad query."))

    body = normalizer.normalize(RequestValidationError("body", errors)).body
    query = normalizer.normalize(RequestValidationError("query", errors)).body

    assert body == {
        "message": DEFAULT_ERRORS["invalidRequestBody"],
        "errors": [{"path": ["foo"], "message": "Field required"}],
    }
    assert query["message"] == "Bad query."


def test_write_to_commits_response() -> None:
    response = Response()

    ErrorNormalizer().normalize(RoutingError("PUT", ["GET"])).write_to(response)

    assert response.is_committed()
    assert response.status_code == 405
    assert response.get_header("allow") == "GET"
    assert response.get_header("Content-Type") == "application/json"
