"""Loading of route configuration files."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RouteConfig


class ConfigError(ValueError):
    """Raised when a configuration file cannot be turned into a RouteConfig."""


def load_config(path: Path) -> RouteConfig:
    """Load and validate a YAML or JSON route configuration file."""

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            payload = json.loads(text)
        else:
            payload = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Config file {path} could not be parsed: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    try:
        return RouteConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Config file {path} is invalid: {exc}") from exc
