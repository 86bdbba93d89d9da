"""Configuration loading utilities for heterogeneity runs."""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

from clusterhet.core.types import HeterogeneityConfig

CONFIG_KEYS = tuple(f.name for f in dataclasses.fields(HeterogeneityConfig))


def load_json_config(path: str | Path) -> dict[str, Any]:
    """Load and validate a run config from a JSON file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    if config_path.suffix.lower() != ".json":
        raise ValueError(
            f"Unsupported config format for '{config_path}'. Use a .json config file."
        )

    try:
        with open(config_path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(
            f"Invalid JSON in config '{config_path}' at line {exc.lineno}, "
            f"column {exc.colno}: {exc.msg}"
        ) from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Invalid config root in '{config_path}': expected JSON object, got {type(data).__name__}."
        )
    return data


def config_from_dict(data: dict[str, Any]) -> HeterogeneityConfig:
    """Build a HeterogeneityConfig from the `heterogeneity` section (or the root) of a config."""
    section = data.get("heterogeneity", data)
    if not isinstance(section, dict):
        raise ValueError("Config section 'heterogeneity' must be a JSON object.")
    unknown = sorted(set(section) - set(CONFIG_KEYS))
    if unknown:
        raise ValueError(f"Unknown heterogeneity config keys: {unknown}. Allowed: {list(CONFIG_KEYS)}")
    return HeterogeneityConfig(**section)


def load_heterogeneity_config(path: str | Path) -> HeterogeneityConfig:
    return config_from_dict(load_json_config(path))
