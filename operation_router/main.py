"""Entry point for the operation-router CLI."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

if __package__ in {None, ""}:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "operation_router"

from .config import ConfigError, load_config
from .logging_utils import configure_logging
from .loader import load_target
from .output_config import get_log_format
from .pipeline import ApiRoute
from .server import RouteServer

app = typer.Typer(help="Describe and serve schema-validated API routes.")

SUPPORTED_FORMATS = {"text", "json"}


def _load_route(target: str, search_path: Optional[Path], config_path: Optional[Path] = None) -> ApiRoute:
    config = None
    if config_path is not None:
        try:
            config = load_config(config_path)
        except ConfigError as exc:
            raise typer.BadParameter(str(exc)) from exc
    try:
        return load_target(target, search_path=search_path, config=config)
    except (ImportError, AttributeError, TypeError, ValueError) as exc:
        raise typer.BadParameter(f"Cannot load {target}: {exc}") from exc


def _describe_lines(route: ApiRoute) -> list[str]:
    lines = [f"[operation-router] allowed methods: {', '.join(route.allowed_methods) or '(none)'}"]
    for name, operation in route.operations.items():
        lines.append(f"  - {name}: {operation.method}")
        if operation.input_contract is not None:
            contract = operation.input_contract
            checks = [label for label, schema in (("body", contract.body), ("query", contract.query)) if schema is not None]
            lines.append(f"      input: {contract.content_type or 'any content type'} (validates {', '.join(checks) or 'nothing'})")
        for output in operation.output_contracts:
            lines.append(f"      output: {output.status} {output.content_type}")
        lines.append(f"      middleware: {len(operation.middleware_chain)}")
        if not operation.implemented:
            lines.append("      handler: missing")
    return lines


@app.command()
def describe(
    target: str = typer.Argument(..., help="Route as module:attribute (ApiRoute or mapping of operations)."),
    format: str = typer.Option("text", "--format", "-f", help="Output format: text (default) or json."),
    search_path: Optional[Path] = typer.Option(None, help="Directory prepended to sys.path before importing."),
) -> None:
    """Print the static description of every operation of a route."""

    fmt = format.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise typer.BadParameter("Format must be 'text' or 'json'")

    route = _load_route(target, search_path)
    if fmt == "json":
        payload = {name: operation.describe() for name, operation in route.operations.items()}
        typer.echo(json.dumps(payload, indent=2))
        return
    for line in _describe_lines(route):
        typer.echo(line)


@app.command()
def serve(
    target: str = typer.Argument(..., help="Route as module:attribute (ApiRoute or mapping of operations)."),
    host: str = typer.Option("127.0.0.1", help="Bind host."),
    port: int = typer.Option(8000, min=1, max=65535, help="Bind port."),
    config: Optional[Path] = typer.Option(None, exists=True, readable=True, help="Route configuration YAML/JSON."),
    search_path: Optional[Path] = typer.Option(None, help="Directory prepended to sys.path before importing."),
    log_level: str = typer.Option("INFO", help="Log level."),
    log_format: Optional[str] = typer.Option(None, help="Log format: console, plain or json."),
) -> None:
    """Serve a route over HTTP until interrupted."""

    logger = configure_logging(log_level, get_log_format(log_format))
    route = _load_route(target, search_path, config)
    logger.info("cli_serve", target=target, host=host, port=port)
    RouteServer(route, host=host, port=port).serve_forever()


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
