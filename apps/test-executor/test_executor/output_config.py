"""Console output and log format selection."""

import os
from enum import Enum
from typing import Literal


class OutputFormat(str, Enum):
    """How the run is presented on the console."""
    AUTO = "auto"
    RICH = "rich"
    PLAIN = "plain"
    JSON = "json"


LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"


def get_output_format(cli_override: str | None = None) -> OutputFormat:
    """
    Resolve the output format with priority: CLI parameter > environment variable > auto.

    Unknown values are ignored and fall through to the next source.
    """
    for candidate in (cli_override, os.environ.get(ENV_VAR_NAME)):
        if candidate:
            try:
                return OutputFormat(candidate.lower())
            except ValueError:
                continue
    return OutputFormat.AUTO


def get_log_format(output_format: OutputFormat) -> LogFormat:
    """
    Map the console output format onto a structlog renderer:

    - auto/rich -> console (colored, rendered with rich)
    - plain -> plain (no colors)
    - json -> json
    """
    if output_format is OutputFormat.JSON:
        return "json"
    if output_format is OutputFormat.PLAIN:
        return "plain"
    return "console"
