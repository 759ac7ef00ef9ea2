"""Log format selection for the operation-router CLI."""

import os
from typing import Literal

LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "OPERATION_ROUTER_LOG_FORMAT"

_ALIASES: dict[str, LogFormat] = {
    "json": "json",
    "plain": "plain",
    "console": "console",
    "rich": "console",
    "auto": "console",
}


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """
    Resolve the log format with priority: CLI parameter > environment variable > console.

    ``rich`` and ``auto`` are accepted as aliases of ``console``; unknown values
    fall through to the next source.
    """
    for candidate in (cli_override, os.environ.get(ENV_VAR_NAME)):
        if candidate and candidate.lower() in _ALIASES:
            return _ALIASES[candidate.lower()]
    return "console"
