"""Adapter around pydantic validation returning results as data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .models import FieldError


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one value against a schema."""

    valid: bool
    value: Any = None
    errors: list[FieldError] = field(default_factory=list)

    def error_payload(self) -> list[dict[str, Any]]:
        return [error.model_dump(mode="json") for error in self.errors]


def _adapter(schema: Any) -> TypeAdapter:
    if isinstance(schema, TypeAdapter):
        return schema
    return TypeAdapter(schema)


def validate(schema: Any, value: Any) -> ValidationResult:
    """Validate ``value`` against ``schema`` without raising on invalid data.

    A missing schema always validates and passes the value through untouched.
    On failure every pydantic error becomes one :class:`FieldError`, keeping
    pydantic's ordering.
    """

    if schema is None:
        return ValidationResult(valid=True, value=value)
    try:
        parsed = _adapter(schema).validate_python(value)
    except ValidationError as exc:
        errors = [
            FieldError(path=list(detail["loc"]), message=detail["msg"])
            for detail in exc.errors(include_url=False)
        ]
        return ValidationResult(valid=False, errors=errors)
    return ValidationResult(valid=True, value=parsed)


def json_schema(schema: Any) -> dict[str, Any] | None:
    """Return the JSON schema describing ``schema`` or ``None`` when absent."""

    if schema is None:
        return None
    return _adapter(schema).json_schema()
