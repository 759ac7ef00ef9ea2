"""Import routes referenced as ``package.module:attribute``."""

from __future__ import annotations

import importlib
import sys
from collections.abc import Mapping
from pathlib import Path

from .models import RouteConfig
from .operations import Operation
from .pipeline import ApiRoute


def load_target(target: str, *, search_path: Path | None = None, config: RouteConfig | None = None) -> ApiRoute:
    """Resolve ``target`` to an :class:`ApiRoute`.

    The attribute may be an ``ApiRoute`` or a mapping of operation names to
    operations. A ``config`` only applies when a new route is built from a
    mapping.
    """

    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ValueError(f"Target {target!r} must use the module:attribute format")

    if search_path is not None:
        path_str = str(search_path)
        if path_str not in sys.path:
            sys.path.insert(0, path_str)

    module = importlib.import_module(module_name)
    value = module
    for part in attribute.split("."):
        value = getattr(value, part, None)
        if value is None:
            raise AttributeError(f"Attribute {attribute} not found in {module_name}")

    if isinstance(value, ApiRoute):
        return value
    if isinstance(value, Mapping) and value and all(isinstance(item, Operation) for item in value.values()):
        return ApiRoute(value, config=config)
    raise TypeError(f"{target} is neither an ApiRoute nor a mapping of operations")
