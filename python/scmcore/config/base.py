"""
Base classes for model configuration.

- TimeConfig: run period and spinup switch
- InputSpec: where an input time series comes from and what units it carries
- ModelConfig: fields shared by every model configuration
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from .exceptions import ValidationError

__all__ = ["InputSpec", "ModelConfig", "TimeConfig"]


@dataclass
class TimeConfig:
    """
    Run period.

    Parameters
    ----------
    start
        Model start date. The first year integrated is ``start + 1``.
    end
        Last date the model may be run to
    spinup
        Whether to spin the carbon cycle up before the first year

    Raises
    ------
    ValueError
        If end <= start
    """

    start: int
    end: int
    spinup: bool = False

    def __post_init__(self) -> None:
        if self.end <= self.start:
            msg = f"end ({self.end}) must be greater than start ({self.start})"
            raise ValueError(msg)

    def to_time_axis(self) -> tuple[int, int]:
        """Return the period as a ``(start, end)`` tuple."""
        return (self.start, self.end)


@dataclass
class InputSpec:
    """
    An input time series.

    Values are either given inline (`years` and `values`) or read from a
    two-column text file of ``year value`` rows.

    Parameters
    ----------
    unit
        Unit string, e.g. ``"Pg C/yr"`` or ``"ppbv CH4"``
    file
        Path to a whitespace- or comma-delimited data file. Relative paths are
        resolved against the directory of the configuration file.
    years
        Inline dates
    values
        Inline magnitudes, one per date
    required
        Whether the run must fail if the input is missing
    """

    unit: str | None = None
    file: str | None = None
    years: list[float] | None = None
    values: list[float] | None = None
    required: bool = False

    def is_complete(self) -> bool:
        """Whether a unit and one source of data are both given."""
        if self.unit is None:
            return False
        return self.file is not None or (
            self.years is not None and self.values is not None
        )

    def load(self, base_dir: str | Path | None = None) -> tuple[np.ndarray, np.ndarray]:
        """
        Read the dates and values of this input.

        Parameters
        ----------
        base_dir
            Directory that relative `file` paths are resolved against

        Returns
        -------
        tuple[np.ndarray, np.ndarray]
            ``(dates, values)``

        Raises
        ------
        ValidationError
            If the specification is incomplete or the data is malformed
        """
        if not self.is_complete():
            msg = "Input needs a unit and either a file or inline years/values"
            raise ValidationError(msg)

        if self.file is not None:
            path = Path(self.file)
            if not path.is_absolute() and base_dir is not None:
                path = Path(base_dir) / path
            delimiter = "," if path.suffix == ".csv" else None
            data = np.loadtxt(path, delimiter=delimiter, comments="#", ndmin=2)
            if data.shape[1] < 2:  # noqa: PLR2004
                msg = f"{path}: expected 'year value' columns"
                raise ValidationError(msg)
            return data[:, 0], data[:, 1]

        years = np.asarray(self.years, dtype=float)
        values = np.asarray(self.values, dtype=float)
        if years.shape != values.shape:
            msg = f"{years.size} years but {values.size} values"
            raise ValidationError(msg)
        return years, values


@dataclass
class ModelConfig:
    """
    Base model configuration.

    Parameters
    ----------
    name
        Model name
    model_type
        Type of model (e.g. ``"nbox"``)
    version
        Model version
    config_schema
        Configuration schema version
    description
        Model description
    time
        Run period
    inputs
        Input time series by capability name
    constants
        Undated inputs by capability name, as ``{"value": ..., "unit": ...}``
    base_dir
        Directory that relative input paths are resolved against
    """

    name: str
    model_type: str = ""
    version: str = "1.0.0"
    config_schema: str = "1.0.0"
    description: str = ""
    time: TimeConfig | None = None
    inputs: dict[str, InputSpec] = field(default_factory=dict)
    constants: dict[str, dict[str, float | str]] = field(default_factory=dict)
    base_dir: Path | None = None
