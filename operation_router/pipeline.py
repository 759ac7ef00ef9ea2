"""Dispatch pipeline resolving, validating and executing route operations."""

from __future__ import annotations

import inspect
from dataclasses import replace
from typing import Any, Callable, Mapping

import structlog

from .errors import (
    ErrorNormalizer,
    HandlerNotImplementedError,
    OperationError,
    RequestValidationError,
    RoutingError,
    UnexpectedError,
    UnsupportedMediaTypeError,
)
from .models import RouteConfig
from .negotiation import content_type_matches
from .operations import Operation
from .transport import Request, ResponseSink
from .validation import validate

LOGGER = structlog.get_logger("operation_router")

ErrorLogger = Callable[[str], Any]


def default_log_error(message: str) -> None:
    """Default diagnostic sink for faults raised by middleware or handlers."""

    LOGGER.error("unexpected_error", detail=message)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class ApiRoute:
    """Dispatches requests to the operation registered for their method.

    Operations are looked up by method on every call; the registry itself is
    copied on construction and never modified afterwards. ``dispatch`` writes
    every outcome into the response sink and never raises.
    """

    def __init__(
        self,
        operations: Mapping[str, Operation],
        *,
        config: RouteConfig | None = None,
        log_error: ErrorLogger | None = None,
    ) -> None:
        self._operations: dict[str, Operation] = dict(operations)
        self._config = config or RouteConfig()
        self._normalizer = ErrorNormalizer(self._config.error_messages)
        self._log_error = log_error or default_log_error
        self._logger = LOGGER.bind(operations=list(self._operations))

    @property
    def operations(self) -> dict[str, Operation]:
        return dict(self._operations)

    @property
    def config(self) -> RouteConfig:
        return self._config

    @property
    def allowed_methods(self) -> list[str]:
        """Distinct methods across the registry in registration order."""

        methods: list[str] = []
        for candidate in self._operations.values():
            if candidate.method not in methods:
                methods.append(candidate.method)
        return methods

    async def __call__(self, request: Request, response: ResponseSink) -> None:
        await self.dispatch(request, response)

    async def dispatch(self, request: Request, response: ResponseSink) -> None:
        method = str(request.method or "").upper()
        request_logger = self._logger.bind(method=method, path=request.path)

        try:
            name, selected = self._select(method, request_logger)
        except OperationError as error:
            self._reject(error, response, request_logger)
            return

        request_logger = request_logger.bind(operation=name)
        try:
            request = self._validate_input(selected, request)
        except OperationError as error:
            self._reject(error, response, request_logger)
            return
        except Exception as exc:
            self._fail(name, exc, response, request_logger)
            return

        request_logger.info("request_dispatched")
        try:
            await self._execute(selected, request, response, request_logger)
        except Exception as exc:
            self._fail(name, exc, response, request_logger)
            return

        if not response.is_committed():
            self._reject(HandlerNotImplementedError(f"Operation {name!r} produced no response"), response, request_logger)
            return

        if self._config.validate_responses:
            try:
                self._check_response(selected, response, request_logger)
            except Exception:
                request_logger.exception("response_check_failed")
        request_logger.info("request_completed", status=getattr(response, "status_code", None))

    def _select(self, method: str, request_logger: Any) -> tuple[str, Operation]:
        matches = [(name, candidate) for name, candidate in self._operations.items() if candidate.method == method]
        if not matches:
            raise RoutingError(method, self.allowed_methods)
        if len(matches) > 1:
            request_logger.warning("duplicate_method_operations", operations=[name for name, _ in matches])
        name, selected = matches[0]
        if selected.handler_fn is None:
            raise HandlerNotImplementedError(f"Operation {name!r} has no handler")
        return name, selected

    def _validate_input(self, selected: Operation, request: Request) -> Request:
        contract = selected.input_contract
        if contract is None:
            return request

        if not content_type_matches(request.content_type, contract.content_type):
            raise UnsupportedMediaTypeError(request.content_type, contract.content_type)

        updates: dict[str, Any] = {}
        if contract.body is not None:
            result = validate(contract.body, request.body)
            if not result.valid:
                raise RequestValidationError("body", result.errors)
            updates["validated_body"] = result.value
        if contract.query is not None:
            result = validate(contract.query, request.query)
            if not result.valid:
                raise RequestValidationError("query", result.errors)
            updates["validated_query"] = result.value
        if not updates:
            return request
        return replace(request, **updates)

    async def _execute(
        self,
        selected: Operation,
        request: Request,
        response: ResponseSink,
        request_logger: Any,
    ) -> None:
        options: Any = {}
        for index, middleware in enumerate(selected.middleware_chain):
            if response.is_committed():
                request_logger.debug("middleware_short_circuit", index=index)
                return
            result = await _resolve(middleware(request, response, options))
            if response.is_committed():
                request_logger.debug("middleware_short_circuit", index=index + 1)
                return
            if result is not None and result is not response:
                options = result

        if response.is_committed():
            return
        await _resolve(selected.handler_fn(request, response, options))

    def _fail(self, name: str, exc: Exception, response: ResponseSink, request_logger: Any) -> None:
        """Report a fault to the diagnostic sink and answer 500 unless a response is already committed."""

        try:
            self._log_error(f"Unexpected error in operation {name!r}: {type(exc).__name__}: {exc}")
        except Exception:
            request_logger.exception("log_error_failed", error=str(exc))
        if response.is_committed():
            request_logger.warning("fault_after_response_committed", error=str(exc))
            return
        self._reject(UnexpectedError(str(exc)), response, request_logger)

    def _reject(self, error: OperationError, response: ResponseSink, request_logger: Any) -> None:
        error_response = self._normalizer.normalize(error)
        request_logger.warning("request_rejected", status=int(error_response.status), reason=str(error))
        error_response.write_to(response)

    def _check_response(self, selected: Operation, response: ResponseSink, request_logger: Any) -> None:
        if not selected.output_contracts:
            return
        status = getattr(response, "status_code", None)
        get_header = getattr(response, "get_header", None)
        content_type = get_header("Content-Type") if callable(get_header) else None
        output = selected.output_for(status, content_type) if status is not None else None
        if output is None:
            request_logger.warning("response_status_undeclared", status=status, content_type=content_type)
            return
        result = validate(output.schema, getattr(response, "body", None))
        if not result.valid:
            request_logger.warning(
                "response_schema_mismatch",
                status=status,
                errors=result.error_payload(),
            )


def api_route(
    operations: Mapping[str, Operation],
    *,
    config: RouteConfig | None = None,
    log_error: ErrorLogger | None = None,
) -> ApiRoute:
    """Build an :class:`ApiRoute` from named operations."""

    return ApiRoute(operations, config=config, log_error=log_error)


async def dispatch(
    registry: Mapping[str, Operation],
    request: Request,
    response: ResponseSink,
    *,
    config: RouteConfig | None = None,
    log_error: ErrorLogger | None = None,
) -> None:
    """Resolve and execute the operation of ``registry`` matching ``request``."""

    await ApiRoute(registry, config=config, log_error=log_error).dispatch(request, response)
