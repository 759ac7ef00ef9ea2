"""HTTP methods and default error messages shared by every route."""

from __future__ import annotations

from typing import Literal

ValidMethod = Literal["GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH"]

VALID_METHODS: tuple[str, ...] = ("GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH")

# Keys follow the spelling used in configuration files.
DEFAULT_ERRORS: dict[str, str] = {
    "notImplemented": "Not implemented.",
    "methodNotAllowed": "Method not allowed.",
    "invalidMediaType": "Invalid media type.",
    "invalidRequestBody": "Invalid request body.",
    "invalidQueryParameters": "Invalid query parameters.",
    "unexpectedError": "An unknown error occurred, trying again might help.",
}
