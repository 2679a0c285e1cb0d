"""
Components that publish user-supplied data.

A `PrescribedComponent` serves fixed time-series and constants under arbitrary
capability names. It stands in for the temperature, atmospheric chemistry,
emissions, halocarbon and volcanic components when the carbon cycle and
forcing are run on their own.

Example
-------
>>> temperature = PrescribedComponent(
...     "temperature",
...     series={Capability.GLOBAL_TEMP: make_series(
...         Capability.GLOBAL_TEMP, [1750, 2100], [0.0, 2.0], Unit.DEGC
...     )},
... )
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import numpy as np

from scmcore.component import Component, Output, RequirementDefinition, Setting
from scmcore.exceptions import DateConstraintError, UnknownCapabilityError
from scmcore.messages import MessageData
from scmcore.timeseries import InterpolationStrategy, TimeSeries
from scmcore.units import Unit, UnitVal

__all__ = ["PrescribedComponent", "make_series"]


def make_series(
    name: str,
    dates: Iterable[float],
    values: Iterable[float],
    units: Unit,
    interpolation: InterpolationStrategy = InterpolationStrategy.Linear,
) -> TimeSeries:
    """Build a `TimeSeries` from parallel arrays of dates and magnitudes."""
    dates = np.asarray(dates, dtype=float)
    values = np.asarray(values, dtype=float)
    if dates.shape != values.shape:
        msg = f"'{name}': {dates.size} dates but {values.size} values"
        raise DateConstraintError(msg)
    series = TimeSeries(name, interpolation)
    for date, value in zip(dates, values):
        series.set(float(date), UnitVal(float(value), units))
    return series


class PrescribedComponent(Component):
    """
    Publishes fixed data under the given capability names.

    Parameters
    ----------
    name
        Component name; must be unique within a core
    series
        Dated values, keyed by capability. Dated SETDATA messages for these
        names add or replace entries.
    constants
        Undated values, keyed by capability
    """

    def __init__(
        self,
        name: str,
        series: Mapping[str, TimeSeries] | None = None,
        constants: Mapping[str, UnitVal] | None = None,
    ) -> None:
        self.component_name = name
        self.series: dict[str, TimeSeries] = dict(series or {})
        self.constants: dict[str, UnitVal] = dict(constants or {})

    def definitions(self) -> list[RequirementDefinition]:
        """Publish every series and constant; accept dated values for the series."""
        defs = super().definitions()
        for name, ts in self.series.items():
            unit = ts.units or Unit.UNDEFINED
            defs.append(Output(name, unit=unit).to_requirement())
            defs.append(Setting(name, unit=unit).to_requirement())
        for name, value in self.constants.items():
            defs.append(Output(name, unit=value.units).to_requirement())
        return defs

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name not in self.series:
            raise UnknownCapabilityError(name, self.component_name)
        if data.date is None:
            msg = f"{self.component_name}: '{name}' requires a date"
            raise DateConstraintError(msg)
        ts = self.series[name]
        expected = ts.units or Unit.UNDEFINED
        self.series[name].set(data.date, data.get_unitval(expected))

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """Value of `name` at `date`, or at the current model date if None."""
        if name in self.constants:
            return self.constants[name]
        if name not in self.series:
            raise UnknownCapabilityError(name, self.component_name)
        if date is None:
            date = self._require_core().get_current_date()
        return self.series[name].get(date)

    def run(self, run_to_date: float) -> None:
        """Nothing to compute; checks every series covers `run_to_date`."""
        for name, ts in self.series.items():
            if not ts.covers(run_to_date):
                msg = f"{self.component_name}: '{name}' does not cover {run_to_date}"
                raise DateConstraintError(msg)
