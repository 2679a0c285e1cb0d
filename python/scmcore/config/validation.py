"""
Validation helpers for configuration files.

- Schema version checking with semver compatibility
- Unknown key detection
- Unit string parsing
"""

from __future__ import annotations

import logging

from scmcore.units import Unit

from .exceptions import IncompatibleSchemaError, ValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "SCHEMA_VERSION",
    "check_schema_version",
    "find_unknown_keys",
    "parse_semver",
    "parse_unit",
]

#: Configuration schema version understood by this loader
SCHEMA_VERSION = "1.0.0"


def parse_semver(version: str) -> tuple[int, int, int]:
    """
    Split a ``"MAJOR.MINOR.PATCH"`` string into integers.

    Raises
    ------
    ValueError
        If `version` does not have three integer components.

    Examples
    --------
    >>> parse_semver("1.2.3")
    (1, 2, 3)
    """
    _SEMVER_PARTS = 3
    parts = version.split(".")
    if len(parts) != _SEMVER_PARTS:
        msg = f"Invalid semver format: '{version}' (expected 'MAJOR.MINOR.PATCH')"
        raise ValueError(msg)
    try:
        major, minor, patch = (int(p) for p in parts)
    except ValueError as err:
        msg = f"Invalid semver format: '{version}' (non-integer component)"
        raise ValueError(msg) from err
    return major, minor, patch


def check_schema_version(
    config_version: str, loader_version: str = SCHEMA_VERSION
) -> None:
    """
    Check that a configuration can be read by this loader.

    A different major version is an error; a newer minor version is accepted
    with a warning.

    Raises
    ------
    IncompatibleSchemaError
        If the major versions differ.
    """
    config_major, config_minor, _ = parse_semver(config_version)
    loader_major, loader_minor, _ = parse_semver(loader_version)

    if config_major != loader_major:
        raise IncompatibleSchemaError(config_version, loader_version)

    if config_minor > loader_minor:
        logger.warning(
            f"Configuration schema version {config_version} is newer than "
            f"loader version {loader_version}. Some features may not be supported."
        )


def find_unknown_keys(data: dict[str, object], known_keys: set[str]) -> list[str]:
    """
    Sorted keys of `data` that are not in `known_keys`.

    >>> find_unknown_keys({"time": 1, "tiem": 2}, {"time"})
    ['tiem']
    """
    return sorted(set(data.keys()) - known_keys)


def parse_unit(text: str) -> Unit:
    """
    Look up the `Unit` whose string form is `text`.

    Raises
    ------
    ValidationError
        If no unit has that string form.
    """
    try:
        return Unit(text)
    except ValueError as err:
        valid = ", ".join(f"'{u.value}'" for u in Unit)
        msg = f"Unknown unit '{text}'. Valid units: {valid}"
        raise ValidationError(msg) from err
