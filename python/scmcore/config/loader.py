"""
Configuration loading and merging.

- load_config: read a single TOML configuration file
- load_config_layers: merge several files, later ones taking precedence
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from .exceptions import ConfigError
from .validation import find_unknown_keys

logger = logging.getLogger(__name__)

__all__ = [
    "KNOWN_SECTIONS",
    "deep_merge",
    "load_config",
    "load_config_layers",
]

#: Top-level tables understood by the builder
KNOWN_SECTIONS = {
    "schema",
    "model",
    "time",
    "components",
    "carbon",
    "biomes",
    "ocean",
    "forcing",
    "solver",
    "inputs",
    "constants",
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Merge `override` into a copy of `base`.

    Nested tables are merged recursively; arrays and scalars are replaced.

    Examples
    --------
    >>> deep_merge({"ocean": {"k_ao": 0.02, "k_sd": 0.01}}, {"ocean": {"k_sd": 0.05}})
    {'ocean': {'k_ao': 0.02, 'k_sd': 0.05}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Read a TOML configuration file.

    Unknown top-level tables are reported and otherwise ignored.

    Raises
    ------
    ConfigError
        If the file is not valid TOML.
    """
    path = Path(path)
    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as err:
        msg = f"Could not parse {path}: {err}"
        raise ConfigError(msg) from err

    unknown = find_unknown_keys(config, KNOWN_SECTIONS)
    if unknown:
        logger.warning(
            f"Unknown configuration keys in {path}: {', '.join(unknown)}. "
            "These will be ignored."
        )
    return config


def load_config_layers(*paths: str | Path) -> dict[str, Any]:
    """
    Read and merge several TOML files, e.g. defaults then experiment overrides.

    >>> config = load_config_layers("defaults.toml", "high-beta.toml")
    """
    if not paths:
        return {}

    result = load_config(paths[0])
    for path in paths[1:]:
        result = deep_merge(result, load_config(path))
    return result
