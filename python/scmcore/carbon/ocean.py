"""
Two-box ocean carbon model.

A deliberately small ocean collaborator for the land carbon kernel: a surface
box exchanging carbon with the atmosphere and a deep box exchanging carbon with
the surface. Both boxes are reported through the single ocean slot of the
solver state vector, so carbon dumped into the deep box by the atmospheric CO2
constraint stays inside the conserved total.

The atmosphere-ocean flux (Pg C/yr, positive into the ocean) is

    F = k_ao * (C_atm - C_atm0 * surface / surface0)

which vanishes at preindustrial equilibrium. Surface-deep mixing is applied at
the end of each solver step over the elapsed fraction of a year.
"""

from __future__ import annotations

import numpy as np

from scmcore.capabilities import Capability
from scmcore.carbon.base import CarbonCycleModel
from scmcore.carbon.state_vector import Pool
from scmcore.component import Output, Setting
from scmcore.exceptions import ContractViolationError, UnknownCapabilityError
from scmcore.messages import MessageData, MessageType
from scmcore.timeseries import TimeSeries
from scmcore.units import FluxPool, Unit, UnitVal

__all__ = ["SimpleOcean"]

#: Conversion from atmospheric CO2 (ppmv) to carbon mass (Pg C)
PPMVCO2_TO_PGC = 2.13


class SimpleOcean(CarbonCycleModel):
    """Surface and deep ocean carbon boxes coupled to the atmosphere."""

    component_name = "ocean"

    total = Output(Capability.OCEAN_C, unit=Unit.PGC)
    surface = Output(Capability.OCEAN_C_SURFACE, unit=Unit.PGC)
    deep = Output(Capability.OCEAN_C_DEEP, unit=Unit.PGC)
    flux = Output(Capability.OCEAN_CFLUX, unit=Unit.PGC_YR)

    surface_init = Setting(Capability.OCEAN_C_SURFACE, unit=Unit.PGC)
    deep_init = Setting(Capability.OCEAN_C_DEEP, unit=Unit.PGC)
    k_ao_setting = Setting(Capability.OCEAN_K_AO, unit=Unit.UNITLESS)
    k_sd_setting = Setting(Capability.OCEAN_K_SD, unit=Unit.UNITLESS)

    def __init__(
        self,
        surface_c: float = 900.0,
        deep_c: float = 37100.0,
        k_ao: float = 0.02,
        k_sd: float = 0.01,
    ) -> None:
        self.surface_c = FluxPool(surface_c, Unit.PGC)
        self.deep_c = FluxPool(deep_c, Unit.PGC)
        self.surface_c0 = self.surface_c
        self.deep_c0 = self.deep_c
        self.k_ao = k_ao
        self.k_sd = k_sd
        self.atmos_c0 = 0.0
        self.ode_startdate = 0.0

        self.surface_ts = TimeSeries(Capability.OCEAN_C_SURFACE)
        self.deep_ts = TimeSeries(Capability.OCEAN_C_DEEP)
        self.flux_ts = TimeSeries(Capability.OCEAN_CFLUX)

    def total_c(self) -> FluxPool:
        """Carbon in both boxes."""
        return self.surface_c + self.deep_c

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        if name == Capability.OCEAN_C_SURFACE:
            self.surface_c = FluxPool(data.get_unitval(Unit.PGC).magnitude, Unit.PGC)
            self.surface_c0 = self.surface_c
        elif name == Capability.OCEAN_C_DEEP:
            self.deep_c = FluxPool(data.get_unitval(Unit.PGC).magnitude, Unit.PGC)
            self.deep_c0 = self.deep_c
        elif name == Capability.OCEAN_K_AO:
            self.k_ao = data.get_unitval(Unit.UNITLESS).magnitude
        elif name == Capability.OCEAN_K_SD:
            self.k_sd = data.get_unitval(Unit.UNITLESS).magnitude
        else:
            raise UnknownCapabilityError(name, self.component_name)

    def send_message(
        self, message: MessageType, datum: str, info: MessageData
    ) -> UnitVal | None:
        """Handle deep-ocean dumps in addition to GETDATA / SETDATA."""
        if message is MessageType.DUMP_TO_DEEP_OCEAN:
            residual = info.get_unitval(Unit.PGC)
            self.logger.debug(f"Adding {residual} to deep ocean")
            self.deep_c = self.deep_c + residual
            if info.date is not None and self.surface_ts.exists(info.date):
                self._record_state(info.date)
            return None
        return super().send_message(message, datum, info)

    def get_data(self, name: str, date: float | None = None) -> UnitVal:  # noqa: D102
        if name == Capability.OCEAN_C:
            if date is None:
                return self.total_c()
            return self.surface_ts.get(date) + self.deep_ts.get(date)
        if name == Capability.OCEAN_C_SURFACE:
            return self.surface_c if date is None else self.surface_ts.get(date)
        if name == Capability.OCEAN_C_DEEP:
            return self.deep_c if date is None else self.deep_ts.get(date)
        if name == Capability.OCEAN_CFLUX:
            if date is None:
                date = self.flux_ts.last_date()
            return self.flux_ts.get(date)
        raise UnknownCapabilityError(name, self.component_name)

    def prepare_to_run(self) -> None:  # noqa: D102
        if self.k_ao < 0.0 or self.k_sd < 0.0:
            msg = f"{self.component_name}: exchange rates must be >= 0"
            raise ContractViolationError(msg)
        if self.surface_c0.magnitude <= 0.0 or self.deep_c0.magnitude <= 0.0:
            msg = f"{self.component_name}: initial ocean pools must be > 0"
            raise ContractViolationError(msg)
        c0 = self.core.get_data(Capability.PREINDUSTRIAL_CO2)
        self.atmos_c0 = c0.value(Unit.PPMV_CO2) * PPMVCO2_TO_PGC

    def run(self, run_to_date: float) -> None:  # noqa: D102
        pass

    def get_c_values(self, t: float, c: np.ndarray) -> None:  # noqa: D102
        c[Pool.OCEAN] = self.total_c().value(Unit.PGC)
        self.ode_startdate = t
        if not self.core.in_spinup() and not self.surface_ts.exists(t):
            self._record_state(t)

    def calcderivs(  # noqa: D102
        self, t: float, c: np.ndarray, dcdt: np.ndarray
    ) -> int:
        ratio = self.surface_c / self.surface_c0
        dcdt[Pool.OCEAN] = self.k_ao * (c[Pool.ATMOS] - self.atmos_c0 * ratio)
        return 0

    def slowparameval(self, t: float, c: np.ndarray) -> None:  # noqa: D102
        self.logger.debug(
            f"slowparameval at t={t}: surface={self.surface_c}, deep={self.deep_c}"
        )

    def stash_c_values(self, t: float, c: np.ndarray) -> None:  # noqa: D102
        yf = t - self.ode_startdate
        uptake = UnitVal(c[Pool.OCEAN], Unit.PGC) - self.total_c()
        self.surface_c = self.surface_c + uptake

        # Mixing toward the preindustrial surface/deep ratio
        ratio0 = self.surface_c0 / self.deep_c0
        imbalance = self.surface_c.magnitude - self.deep_c.magnitude * ratio0
        transfer = UnitVal(imbalance * self.k_sd * yf, Unit.PGC)
        self.surface_c = self.surface_c - transfer
        self.deep_c = self.deep_c + transfer

        if not self.core.in_spinup():
            flux = uptake.magnitude / yf if yf > 0.0 else 0.0
            self.flux_ts.set(t, UnitVal(flux, Unit.PGC_YR))
            self._record_state(t)

    def _record_state(self, t: float) -> None:
        self.surface_ts.set(t, self.surface_c)
        self.deep_ts.set(t, self.deep_c)

    def reset(self, date: float) -> None:  # noqa: D102
        if self.surface_ts.exists(date):
            self.surface_c = self.surface_ts.get(date)
            self.deep_c = self.deep_ts.get(date)
        self.surface_ts.truncate(date)
        self.deep_ts.truncate(date)
        self.flux_ts.truncate(date)
        self.logger.info(f"{self.component_name} reset to time={date}")
