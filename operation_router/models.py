"""Pydantic models for error payloads and route configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_ERRORS


class FieldError(BaseModel):
    """Single schema violation reported back to the client."""

    path: list[str | int] = Field(default_factory=list)
    message: str


class ErrorMessages(BaseModel):
    """Messages used in error responses, overridable per route."""

    model_config = ConfigDict(populate_by_name=True)

    not_implemented: str = Field(DEFAULT_ERRORS["notImplemented"], alias="notImplemented")
    method_not_allowed: str = Field(DEFAULT_ERRORS["methodNotAllowed"], alias="methodNotAllowed")
    invalid_media_type: str = Field(DEFAULT_ERRORS["invalidMediaType"], alias="invalidMediaType")
    invalid_request_body: str = Field(DEFAULT_ERRORS["invalidRequestBody"], alias="invalidRequestBody")
    invalid_query_parameters: str = Field(
        DEFAULT_ERRORS["invalidQueryParameters"], alias="invalidQueryParameters"
    )
    unexpected_error: str = Field(DEFAULT_ERRORS["unexpectedError"], alias="unexpectedError")


class RouteConfig(BaseModel):
    """Top-level configuration consumed by an API route."""

    model_config = ConfigDict(populate_by_name=True)

    error_messages: ErrorMessages = Field(default_factory=ErrorMessages, alias="errorMessages")
    validate_responses: bool = Field(False, alias="validateResponses")

    def as_serializable(self) -> dict[str, object]:
        """Return a JSON/YAML friendly payload using the configuration file spelling."""

        return self.model_dump(mode="json", by_alias=True)
