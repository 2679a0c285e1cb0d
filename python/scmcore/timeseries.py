"""
Time-series containers keyed by date.

`TimeSeries` maps dates to `UnitVal` and can optionally interpolate linearly
between bracketing dates. `NestedTimeSeries` maps dates to a whole mapping of
named values and is used for per-agent forcings.
"""

from __future__ import annotations

from bisect import insort
from enum import Enum, auto

import numpy as np

from scmcore.exceptions import DateConstraintError, UnitMismatchError
from scmcore.units import Unit, UnitVal

__all__ = ["InterpolationStrategy", "NestedTimeSeries", "TimeSeries"]


class InterpolationStrategy(Enum):
    """How `TimeSeries.get` treats dates without an exact entry."""

    Exact = auto()
    Linear = auto()


class TimeSeries:
    """
    Ordered mapping from date to unit-tagged value.

    All entries share one unit, fixed by the first value stored.

    Parameters
    ----------
    name
        Name used in error messages (usually the capability name)
    interpolation
        `InterpolationStrategy.Linear` allows lookups between stored dates
    """

    def __init__(
        self,
        name: str = "",
        interpolation: InterpolationStrategy = InterpolationStrategy.Exact,
    ) -> None:
        self.name = name
        self.interpolation = interpolation
        self._data: dict[float, UnitVal] = {}
        self._dates: list[float] = []
        self._units: Unit | None = None

    @property
    def units(self) -> Unit | None:
        """Unit shared by all entries, or None when empty."""
        return self._units

    def set(self, date: float, value: UnitVal) -> None:
        """Insert or replace the value at `date`."""
        date = float(date)
        if self._units is None:
            self._units = value.units
        elif value.units != self._units:
            msg = (
                f"Time series '{self.name}' holds {self._units.value!r}, "
                f"cannot store {value}"
            )
            raise UnitMismatchError(msg)
        if date not in self._data:
            insort(self._dates, date)
        self._data[date] = value

    def exists(self, date: float) -> bool:
        """Whether an entry is stored exactly at `date`."""
        return float(date) in self._data

    def covers(self, date: float) -> bool:
        """Whether `date` lies within the stored date range."""
        return bool(self._dates) and self._dates[0] <= date <= self._dates[-1]

    def get(self, date: float) -> UnitVal:
        """
        Look up the value at `date`.

        Raises
        ------
        DateConstraintError
            If there is no entry at `date` and it cannot be interpolated.
        """
        date = float(date)
        if date in self._data:
            return self._data[date]
        if self.interpolation is InterpolationStrategy.Linear and self.covers(date):
            dates = np.asarray(self._dates)
            values = np.asarray([self._data[d].magnitude for d in self._dates])
            return UnitVal(float(np.interp(date, dates, values)), self._units)
        msg = f"Time series '{self.name}' has no value for date {date}"
        raise DateConstraintError(msg)

    def first_date(self) -> float:
        """Earliest stored date."""
        if not self._dates:
            msg = f"Time series '{self.name}' is empty"
            raise DateConstraintError(msg)
        return self._dates[0]

    def last_date(self) -> float:
        """Latest stored date."""
        if not self._dates:
            msg = f"Time series '{self.name}' is empty"
            raise DateConstraintError(msg)
        return self._dates[-1]

    def truncate(self, date: float) -> None:
        """Drop every entry with a date later than `date`."""
        keep = [d for d in self._dates if d <= date]
        for d in self._dates[len(keep) :]:
            del self._data[d]
        self._dates = keep

    def dates(self) -> np.ndarray:
        """Stored dates in ascending order."""
        return np.asarray(self._dates, dtype=float)

    def values(self, units: Unit) -> np.ndarray:
        """Stored magnitudes in date order, asserting `units`."""
        return np.asarray(
            [self._data[d].value(units) for d in self._dates], dtype=float
        )

    def __len__(self) -> int:
        return len(self._dates)

    def __contains__(self, date: float) -> bool:
        return self.exists(date)

    def __repr__(self) -> str:
        return f"TimeSeries(name={self.name!r}, size={len(self)})"


class NestedTimeSeries:
    """Ordered mapping from date to a mapping of named unit-tagged values."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._data: dict[float, dict[str, UnitVal]] = {}

    def set(self, date: float, values: dict[str, UnitVal]) -> None:
        """Store a copy of `values` at `date`."""
        self._data[float(date)] = dict(values)

    def get(self, date: float) -> dict[str, UnitVal]:
        """Mapping stored at `date`."""
        date = float(date)
        if date not in self._data:
            msg = f"Time series '{self.name}' has no values for date {date}"
            raise DateConstraintError(msg)
        return self._data[date]

    def exists(self, date: float) -> bool:
        """Whether an entry is stored exactly at `date`."""
        return float(date) in self._data

    def last_date(self) -> float:
        """Latest stored date."""
        if not self._data:
            msg = f"Time series '{self.name}' is empty"
            raise DateConstraintError(msg)
        return max(self._data)

    def truncate(self, date: float) -> None:
        """Drop every entry with a date later than `date`."""
        for d in [d for d in self._data if d > date]:
            del self._data[d]

    def __len__(self) -> int:
        return len(self._data)
