"""YAML + environment variable config loader."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, cast

import yaml
from pydantic import ValidationError

from mongo_sink.config.models import SinkConfig

DEFAULTS_DIR = Path(__file__).parent / "defaults"

# Matches ${VAR} or ${VAR:-default}
_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-((?:[^}\\]|\\.)*))?}")


def _resolve_env_str(value: str) -> str:
    """Replace all ${VAR} / ${VAR:-default} references in a string."""

    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = os.environ.get(var_name)
        if env_val is not None:
            return env_val
        if default is not None:
            return default.replace("\\}", "}")
        msg = f"Environment variable '{var_name}' is not set and no default provided"
        raise ValueError(msg)

    return _ENV_PATTERN.sub(_replace, value)


def resolve_env_vars(data: Any) -> Any:
    """Recursively resolve ${VAR} and ${VAR:-default} in parsed YAML data."""
    if isinstance(data, str):
        return _resolve_env_str(data)
    if isinstance(data, dict):
        return {k: resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]
    return data


def merge_configs(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively deep-merge *overrides* into *base* (non-mutating)."""
    merged: dict[str, Any] = {**base}
    for key, value in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_configs(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    p = Path(path)
    if not p.exists():
        msg = f"Config file not found: {p}"
        raise FileNotFoundError(msg)
    try:
        with p.open() as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"Failed to parse YAML in {p}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        msg += f": {exc}"
        raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping at top level in {p}, got {type(data).__name__}"
        raise TypeError(msg)
    return cast(dict[str, Any], resolve_env_vars(data))


def load_defaults(name: str = "sink") -> dict[str, Any]:
    """Load a YAML defaults file by name from the defaults directory."""
    path = DEFAULTS_DIR / f"{name}.yaml"
    if not path.exists():
        msg = f"Defaults file '{name}' not found at {path}"
        raise FileNotFoundError(msg)
    with path.open() as f:
        return cast(dict[str, Any], resolve_env_vars(yaml.safe_load(f) or {}))


def build_sink_config(
    overrides: dict[str, Any],
    *,
    defaults: str = "sink",
) -> SinkConfig:
    """Build a validated SinkConfig by merging defaults with overrides."""
    merged = merge_configs(load_defaults(defaults), overrides)
    return SinkConfig.model_validate(merged)


def load_sink_config(path: str | Path, *, defaults: str = "sink") -> SinkConfig:
    """Load a sink config YAML and merge it over the built-in defaults."""
    overrides = load_yaml(path)
    try:
        return build_sink_config(overrides, defaults=defaults)
    except ValidationError as exc:
        msg = f"Invalid sink config ({path}):\n{exc}"
        raise ValueError(msg) from exc
