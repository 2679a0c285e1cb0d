"""
Parameter metadata for configuration dataclasses.

Fields declared with `parameter` carry their unit, a description and a hard
valid range. `validate_parameters` checks an instance against that metadata
and `check_parameters` turns any failures into a `ValidationError`.

Example:
    >>> @dataclass
    ... class OceanParameters:
    ...     k_ao: float = parameter(default=0.02, range=(0, 1), unit="1/yr")
    >>> validate_parameters(OceanParameters(k_ao=3.0))
    ["Parameter 'k_ao' value 3.0 is outside valid range [0, 1]"]
"""

from __future__ import annotations

import warnings
from dataclasses import MISSING, dataclass, field, fields
from typing import Any

from .exceptions import ValidationError

__all__ = [
    "ParameterMetadata",
    "check_parameters",
    "get_parameter_metadata",
    "parameter",
    "validate_parameters",
]


@dataclass
class ParameterMetadata:
    """Metadata for a single configuration parameter.

    Attributes
    ----------
    name : str
        Parameter name
    unit : str | None
        Unit string, matching the values of `scmcore.units.Unit`
    description : str | None
        Human-readable description
    range : tuple[float, float] | None
        Inclusive valid range. Values outside it are errors.
    choices : list[Any] | None
        Valid values for enum-like parameters
    source : str | None
        Citation for the default value
    deprecated : bool
        Whether setting this parameter emits a DeprecationWarning
    """

    name: str
    unit: str | None = None
    description: str | None = None
    range: tuple[float, float] | None = None
    choices: list[Any] | None = None
    source: str | None = None
    deprecated: bool = False


def parameter(  # noqa: PLR0913
    default: Any = MISSING,
    unit: str | None = None,
    description: str | None = None,
    range: tuple[float, float] | None = None,
    choices: list[Any] | None = None,
    source: str | None = None,
    deprecated: bool = False,
) -> Any:
    """Declare a dataclass field with parameter metadata attached.

    Fields without a `default` are required.
    """
    metadata = {
        "param": ParameterMetadata(
            name="",
            unit=unit,
            description=description,
            range=range,
            choices=choices,
            source=source,
            deprecated=deprecated,
        )
    }
    if default is MISSING:
        return field(metadata=metadata)
    return field(default=default, metadata=metadata)


def get_parameter_metadata(cls: type) -> dict[str, ParameterMetadata]:
    """Map field name to `ParameterMetadata` for every `parameter` field of `cls`.

    Examples
    --------
    >>> get_parameter_metadata(OceanParameters)["k_ao"].unit
    '1/yr'
    """
    result = {}
    for f in fields(cls):
        if "param" in f.metadata:
            meta = f.metadata["param"]
            meta.name = f.name
            result[f.name] = meta
    return result


def validate_parameters(instance: Any) -> list[str]:
    """Check the values of `instance` against their metadata.

    Returns
    -------
    list[str]
        Error messages; empty if every value is valid
    """
    errors = []
    for name, meta in get_parameter_metadata(type(instance)).items():
        value = getattr(instance, name)
        if value is None:
            continue

        if meta.deprecated:
            warnings.warn(
                f"Parameter '{name}' is deprecated", DeprecationWarning, stacklevel=3
            )

        if meta.range is not None:
            min_val, max_val = meta.range
            if value < min_val or value > max_val:
                errors.append(
                    f"Parameter '{name}' value {value} is outside valid range "
                    f"[{min_val}, {max_val}]"
                )

        if meta.choices is not None and value not in meta.choices:
            errors.append(
                f"Parameter '{name}' value {value!r} is not in valid choices: "
                f"{meta.choices}"
            )
    return errors


def check_parameters(instance: Any) -> None:
    """Raise a `ValidationError` listing every invalid value of `instance`."""
    errors = validate_parameters(instance)
    if errors:
        msg = f"Invalid {type(instance).__name__}: " + "; ".join(errors)
        raise ValidationError(msg)
