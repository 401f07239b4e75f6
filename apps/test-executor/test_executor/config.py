"""Run configuration: file, environment and CLI overrides merged into one settings object."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .http_executor import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

ENV_BASE_URL = "FUZZ_RUNTIME_BASE_URL"
ENV_TIMEOUT = "FUZZ_RUNTIME_TIMEOUT"
DEFAULT_OUTPUT_DIR = Path("artifacts/runs")


class ConfigError(ValueError):
    """Raised when the configuration file or an override cannot be used."""


class FuzzerSettings(BaseModel):
    """Settings of one fuzzing run."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
    paths: list[str] = Field(default_factory=list)
    fuzzers: list[str] = Field(default_factory=list)
    output_dir: Path = DEFAULT_OUTPUT_DIR

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("headers", mode="before")
    @classmethod
    def _stringify_headers(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        return value

    def includes_path(self, path: str) -> bool:
        return not self.paths or path in self.paths


def load_settings(config_path: Path | None = None, **overrides: Any) -> FuzzerSettings:
    """Build settings with priority: CLI overrides > environment > config file > defaults.

    Overrides that are ``None`` or empty lists are treated as not given.
    """

    data: dict[str, Any] = {}
    if config_path is not None:
        data.update(_read_file(config_path))

    if os.getenv(ENV_BASE_URL):
        data["base_url"] = os.environ[ENV_BASE_URL]
    if os.getenv(ENV_TIMEOUT):
        data["timeout"] = os.environ[ENV_TIMEOUT]

    for key, value in overrides.items():
        if value is None or value == []:
            continue
        data[key] = value

    try:
        return FuzzerSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid fuzzer configuration: {exc}") from exc


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file {path} not found")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {path} is not valid YAML/JSON: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return raw
