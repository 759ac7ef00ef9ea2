"""Fluent, immutable builder for API route operations."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from .constants import VALID_METHODS
from .negotiation import content_type_matches
from .transport import Request, ResponseSink
from .validation import json_schema

# Middleware returns ``None`` (options unchanged), a new options value, or
# writes to the response sink to end the request.
Middleware = Callable[[Request, ResponseSink, Any], Union[Any, Awaitable[Any]]]
Handler = Callable[[Request, ResponseSink, Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class InputContract:
    """Expected request content type plus optional body and query schemas."""

    content_type: str | None = None
    body: Any = None
    query: Any = None


@dataclass(frozen=True)
class OutputContract:
    """Documented response shape for one status code and content type."""

    status: int
    content_type: str
    schema: Any = None


def _coerce_output(output: OutputContract | Mapping[str, Any]) -> OutputContract:
    if isinstance(output, OutputContract):
        return output
    content_type = output.get("content_type", output.get("contentType"))
    if content_type is None:
        raise ValueError("Output contracts require a content type")
    return OutputContract(status=int(output["status"]), content_type=content_type, schema=output.get("schema"))


@dataclass(frozen=True)
class Operation:
    """Method, input contract, middleware chain and handler for one request type.

    Every builder step returns a new ``Operation``; operations derived from a
    shared base never see each other's additions.
    """

    method: str
    input_contract: InputContract | None = None
    output_contracts: tuple[OutputContract, ...] = ()
    middleware_chain: tuple[Middleware, ...] = ()
    handler_fn: Handler | None = field(default=None)

    def input(
        self,
        content_type: str | None = None,
        *,
        body: Any = None,
        query: Any = None,
    ) -> "Operation":
        """Replace the input contract.

        Without a ``content_type`` the request media type is not checked, which
        suits query-only operations such as ``GET``.
        """

        if content_type is not None and not content_type.strip():
            raise ValueError("Input content type must not be blank")
        return replace(self, input_contract=InputContract(content_type=content_type, body=body, query=query))

    def outputs(self, outputs: Iterable[OutputContract | Mapping[str, Any]]) -> "Operation":
        """Replace the documented outputs."""

        return replace(self, output_contracts=tuple(_coerce_output(output) for output in outputs))

    def middleware(self, fn: Middleware) -> "Operation":
        if not callable(fn):
            raise TypeError("Middleware must be callable")
        return replace(self, middleware_chain=(*self.middleware_chain, fn))

    def handler(self, fn: Handler | None = None) -> "Operation":
        """Set the terminal handler; calling without a function leaves it unset."""

        if fn is not None and not callable(fn):
            raise TypeError("Handler must be callable")
        return replace(self, handler_fn=fn)

    @property
    def implemented(self) -> bool:
        return self.handler_fn is not None

    def output_for(self, status: int, content_type: str | None = None) -> OutputContract | None:
        """Return the first declared output matching ``status`` (and content type when given)."""

        for output in self.output_contracts:
            if output.status != status:
                continue
            if content_type is None or content_type_matches(content_type, output.content_type):
                return output
        return None

    def describe(self) -> dict[str, Any]:
        """Static description of the operation with JSON schemas."""

        contract = self.input_contract
        return {
            "method": self.method,
            "input": None
            if contract is None
            else {
                "contentType": contract.content_type,
                "body": json_schema(contract.body),
                "query": json_schema(contract.query),
            },
            "outputs": [
                {
                    "status": output.status,
                    "contentType": output.content_type,
                    "schema": json_schema(output.schema),
                }
                for output in self.output_contracts
            ],
            "middleware": len(self.middleware_chain),
            "implemented": self.implemented,
        }


def operation(method: str) -> Operation:
    """Start an operation for ``method`` (case-insensitive)."""

    normalized = str(method).upper()
    if normalized not in VALID_METHODS:
        raise ValueError(f"Unsupported HTTP method: {method}")
    return Operation(method=normalized)
