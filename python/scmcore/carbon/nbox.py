"""
Multi-biome terrestrial carbon box model.

Each biome carries vegetation, detritus and soil carbon pools. Together with the
atmosphere, the ocean (owned by an external `CarbonCycleModel`) and the
geological "earth" reservoir they form the six-slot state vector integrated by
`scmcore.carbon.solver.CarbonCycleSolver`. The solver only sees aggregate land
pools; after each step the aggregate change is apportioned back to the biomes
in proportion to each biome's share of NPP + RH.

Per-biome values are set with ``"<biome>.<name>"`` (e.g. ``"tropical.beta"``);
a bare name targets the single ``"global"`` biome. Mixing ``"global"`` with any
other biome is an error.

Fluxes per biome ``b`` (Pg C/yr)::

    NPP_b      = npp_flux0_b * co2fert_b
    RH_det_b   = 0.25 * detritus_c_b * tempfertd_b
    RH_soil_b  = 0.02 * soil_c_b * tempferts_b
    litter_b   = 0.035 * veg_c_b             (f_litterd_b to detritus)
    detsoil_b  = 0.6 * detritus_c_b

where ``co2fert_b = 1 + beta_b * ln(Ca / C0)`` and the temperature factors are
``q10_rh_b ** (T / 10)``. The soil factor uses a trailing mean of the recorded
global temperature and never decreases.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from scmcore.capabilities import Capability, split_biome_setting
from scmcore.carbon.base import CarbonCycleModel
from scmcore.carbon.state_vector import Pool, aggregate, apportion
from scmcore.component import Input, Output, Setting
from scmcore.exceptions import (
    ContractViolationError,
    DateConstraintError,
    MassConservationError,
    UnknownCapabilityError,
)
from scmcore.messages import MessageData, MessageType
from scmcore.timeseries import InterpolationStrategy, TimeSeries
from scmcore.units import FluxPool, Unit, UnitVal, sum_values

__all__ = [
    "DEFAULT_BIOME",
    "MB_EPSILON",
    "PGC_TO_PPMVCO2",
    "PPMVCO2_TO_PGC",
    "Q10_TEMPLAG",
    "Q10_TEMPN",
    "SimpleNbox",
]

#: Conversion from atmospheric CO2 (ppmv) to carbon mass (Pg C)
PPMVCO2_TO_PGC = 2.13
PGC_TO_PPMVCO2 = 1.0 / PPMVCO2_TO_PGC

#: Tolerance of the mass-conservation check (Pg C)
MB_EPSILON = 0.001

#: Width and lag (years) of the temperature window driving soil respiration
Q10_TEMPN = 200
Q10_TEMPLAG = 0

#: Biome name used for single-biome configurations
DEFAULT_BIOME = "global"

DETRITUS_RESPIRATION_RATE = 0.25
SOIL_RESPIRATION_RATE = 0.02
LITTER_RATE = 0.035
DETRITUS_TO_SOIL_RATE = 0.6

DEFAULT_ALBEDO_FORCING = -0.2

# Per-biome parameters and the units they are stored in
_BIOME_POOLS: dict[str, Unit] = {
    Capability.VEG_C: Unit.PGC,
    Capability.DETRITUS_C: Unit.PGC,
    Capability.SOIL_C: Unit.PGC,
}
_BIOME_FACTORS: tuple[str, ...] = (
    Capability.BETA,
    Capability.Q10_RH,
    Capability.WARMINGFACTOR,
    Capability.F_NPPV,
    Capability.F_NPPD,
    Capability.F_LITTERD,
)

# Dated queries for these names are answered from the recorded snapshots
_STATE_NAMES: frozenset[str] = frozenset(
    (
        *_BIOME_POOLS,
        Capability.NPP,
        Capability.RH,
        Capability.ATMOSPHERIC_CO2,
        Capability.ATMOSPHERIC_C,
        Capability.EARTH_C,
    )
)


@dataclass(frozen=True)
class _Snapshot:
    """Kernel state recorded at the end of a solver step."""

    atmos_c: FluxPool
    earth_c: FluxPool
    Ca: UnitVal
    masstot: float
    veg_c: dict[str, FluxPool] = field(default_factory=dict)
    detritus_c: dict[str, FluxPool] = field(default_factory=dict)
    soil_c: dict[str, FluxPool] = field(default_factory=dict)
    co2fert: dict[str, float] = field(default_factory=dict)
    tempfertd: dict[str, float] = field(default_factory=dict)
    tempferts: dict[str, float] = field(default_factory=dict)


class SimpleNbox(CarbonCycleModel):
    """
    Terrestrial carbon-cycle kernel.

    The kernel owns the atmosphere, land and earth slots of the state vector
    and delegates the ocean slot to the component providing
    `Capability.OCEAN_C`. Its `run` only records temperature; the pools are
    advanced by the carbon-cycle solver through `get_c_values`,
    `slowparameval`, `calcderivs` and `stash_c_values`.
    """

    component_name = "simpleNbox"

    # Dependencies
    solver = Input(Capability.CARBON_CYCLE_SOLVER)
    temperature = Input(Capability.GLOBAL_TEMP, unit=Unit.DEGC)

    # Published
    ca_out = Output(Capability.ATMOSPHERIC_CO2, unit=Unit.PPMV_CO2)
    c0_out = Output(Capability.PREINDUSTRIAL_CO2, unit=Unit.PPMV_CO2)
    atmos_out = Output(Capability.ATMOSPHERIC_C, unit=Unit.PGC)
    veg_out = Output(Capability.VEG_C, unit=Unit.PGC)
    detritus_out = Output(Capability.DETRITUS_C, unit=Unit.PGC)
    soil_out = Output(Capability.SOIL_C, unit=Unit.PGC)
    earth_out = Output(Capability.EARTH_C, unit=Unit.PGC)
    npp_out = Output(Capability.NPP, unit=Unit.PGC_YR)
    rh_out = Output(Capability.RH, unit=Unit.PGC_YR)
    land_flux_out = Output(Capability.LAND_CFLUX, unit=Unit.PGC_YR)
    albedo_out = Output(Capability.RF_T_ALBEDO, unit=Unit.W_M2)
    constraint_out = Output(Capability.CO2_CONSTRAIN, unit=Unit.PPMV_CO2)
    residual_out = Output(Capability.ATMOSPHERIC_C_RESIDUAL, unit=Unit.PGC)

    # Per-biome settings
    veg_c_in = Setting(Capability.VEG_C, unit=Unit.PGC)
    detritus_c_in = Setting(Capability.DETRITUS_C, unit=Unit.PGC)
    soil_c_in = Setting(Capability.SOIL_C, unit=Unit.PGC)
    npp_flux0_in = Setting(Capability.NPP_FLUX0, unit=Unit.PGC_YR)
    beta_in = Setting(Capability.BETA, unit=Unit.UNITLESS)
    q10_rh_in = Setting(Capability.Q10_RH, unit=Unit.UNITLESS)
    warmingfactor_in = Setting(Capability.WARMINGFACTOR, unit=Unit.UNITLESS)
    f_nppv_in = Setting(Capability.F_NPPV, unit=Unit.UNITLESS)
    f_nppd_in = Setting(Capability.F_NPPD, unit=Unit.UNITLESS)
    f_litterd_in = Setting(Capability.F_LITTERD, unit=Unit.UNITLESS)

    # Global settings
    f_lucv_in = Setting(Capability.F_LUCV, unit=Unit.UNITLESS)
    f_lucd_in = Setting(Capability.F_LUCD, unit=Unit.UNITLESS)
    c0_in = Setting(Capability.PREINDUSTRIAL_CO2, unit=Unit.PPMV_CO2)
    earth_c_in = Setting(Capability.EARTH_C, unit=Unit.PGC)
    ffi_in = Setting(Capability.FFI_EMISSIONS, unit=Unit.PGC_YR)
    luc_in = Setting(Capability.LUC_EMISSIONS, unit=Unit.PGC_YR)
    constraint_in = Setting(Capability.CO2_CONSTRAIN, unit=Unit.PPMV_CO2)
    albedo_in = Setting(Capability.RF_T_ALBEDO, unit=Unit.W_M2)

    def __init__(self) -> None:
        self.biome_list: list[str] = []

        self.veg_c: dict[str, FluxPool] = {}
        self.detritus_c: dict[str, FluxPool] = {}
        self.soil_c: dict[str, FluxPool] = {}
        self.npp_flux0: dict[str, FluxPool] = {}
        self.beta: dict[str, float] = {}
        self.q10_rh: dict[str, float] = {}
        self.warmingfactor: dict[str, float] = {}
        self.f_nppv: dict[str, float] = {}
        self.f_nppd: dict[str, float] = {}
        self.f_litterd: dict[str, float] = {}

        self.co2fert: dict[str, float] = {}
        self.tempfertd: dict[str, float] = {}
        self.tempferts: dict[str, float] = {}

        self.f_lucv = 0.0
        self.f_lucd = 0.0

        self.C0 = UnitVal(0.0, Unit.PPMV_CO2)
        self.Ca = UnitVal(0.0, Unit.PPMV_CO2)
        self.atmos_c = FluxPool(0.0, Unit.PGC)
        self.earth_c = FluxPool(0.0, Unit.PGC)
        self.residual = UnitVal(0.0, Unit.PGC)
        self.atmosland_flux = UnitVal(0.0, Unit.PGC_YR)
        self.masstot = 0.0
        self.ode_startdate = 0.0
        self.in_spinup = False
        self.omodel: CarbonCycleModel | None = None

        linear = InterpolationStrategy.Linear
        self.ffi_emissions = TimeSeries(Capability.FFI_EMISSIONS, linear)
        self.luc_emissions = TimeSeries(Capability.LUC_EMISSIONS, linear)
        self.co2_constrain = TimeSeries(Capability.CO2_CONSTRAIN)
        self.ftalbedo = TimeSeries(Capability.RF_T_ALBEDO, linear)

        self.tgav_record = TimeSeries(Capability.GLOBAL_TEMP)
        self.atmosland_flux_ts = TimeSeries(Capability.LAND_CFLUX)
        self.residual_ts = TimeSeries(Capability.ATMOSPHERIC_C_RESIDUAL)
        self.tempferts_tv: dict[float, dict[str, float]] = {}
        self.snapshots: dict[float, _Snapshot] = {}

    # ------------------------------------------------------------------ biomes

    def has_biome(self, biome: str) -> bool:
        """Whether `biome` is known to the kernel."""
        return biome in self.biome_list

    def _ensure_biome(self, biome: str) -> None:
        if not self.has_biome(biome):
            self.logger.debug(f"Adding biome '{biome}'")
            self.biome_list.append(biome)

    # ------------------------------------------------------------------ messages

    def set_data(self, name: str, data: MessageData) -> None:
        """
        Accept a parameter, pool or dated input.

        Per-biome names may carry a ``"<biome>."`` prefix; dated inputs
        (emissions, CO2 constraint, albedo) require a date.
        """
        biome, param = split_biome_setting(name)

        if param in _BIOME_POOLS or param == Capability.NPP_FLUX0:
            self._require_undated(name, data)
            biome = biome or DEFAULT_BIOME
            self._ensure_biome(biome)
            if param == Capability.NPP_FLUX0:
                self.npp_flux0[biome] = FluxPool(
                    data.get_unitval(Unit.PGC_YR).magnitude, Unit.PGC_YR
                )
            else:
                pool = FluxPool(data.get_unitval(Unit.PGC).magnitude, Unit.PGC)
                self._biome_pools(param)[biome] = pool
            return

        if param in _BIOME_FACTORS:
            self._require_undated(name, data)
            biome = biome or DEFAULT_BIOME
            self._ensure_biome(biome)
            getattr(self, param)[biome] = data.get_unitval(Unit.UNITLESS).magnitude
            return

        if biome is not None:
            msg = f"{self.component_name}: '{param}' cannot be set per biome"
            raise ContractViolationError(msg)

        if name == Capability.F_LUCV:
            self._require_undated(name, data)
            self.f_lucv = data.get_unitval(Unit.UNITLESS).magnitude
        elif name == Capability.F_LUCD:
            self._require_undated(name, data)
            self.f_lucd = data.get_unitval(Unit.UNITLESS).magnitude
        elif name == Capability.PREINDUSTRIAL_CO2:
            self._require_undated(name, data)
            self.C0 = data.get_unitval(Unit.PPMV_CO2)
        elif name == Capability.EARTH_C:
            self._require_undated(name, data)
            self.earth_c = FluxPool(data.get_unitval(Unit.PGC).magnitude, Unit.PGC)
        elif name == Capability.FFI_EMISSIONS:
            self.ffi_emissions.set(
                self._require_dated(name, data), data.get_unitval(Unit.PGC_YR)
            )
        elif name == Capability.LUC_EMISSIONS:
            self.luc_emissions.set(
                self._require_dated(name, data), data.get_unitval(Unit.PGC_YR)
            )
        elif name == Capability.CO2_CONSTRAIN:
            self.co2_constrain.set(
                self._require_dated(name, data), data.get_unitval(Unit.PPMV_CO2)
            )
        elif name == Capability.RF_T_ALBEDO:
            self.ftalbedo.set(
                self._require_dated(name, data), data.get_unitval(Unit.W_M2)
            )
        else:
            raise UnknownCapabilityError(name, self.component_name)

    def _require_undated(self, name: str, data: MessageData) -> None:
        if data.date is not None:
            msg = f"{self.component_name}: '{name}' does not take a date"
            raise DateConstraintError(msg)

    def _require_dated(self, name: str, data: MessageData) -> float:
        if data.date is None:
            msg = f"{self.component_name}: '{name}' requires a date"
            raise DateConstraintError(msg)
        return float(data.date)

    def _biome_pools(self, name: str) -> dict[str, FluxPool]:
        if name == Capability.VEG_C:
            return self.veg_c
        if name == Capability.DETRITUS_C:
            return self.detritus_c
        return self.soil_c

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """
        Return a published value at `date`, or the current value if None.

        Pool names may carry a ``"<biome>."`` prefix to select one biome.
        """
        biome, param = split_biome_setting(name)
        state = None
        if date is not None and param in _STATE_NAMES:
            state = self._snapshot_at(date)

        if param in _BIOME_POOLS:
            pools = self._biome_pools(param) if state is None else getattr(state, param)
            if biome is not None:
                if biome not in pools:
                    raise UnknownCapabilityError(name, self.component_name)
                return pools[biome]
            return sum_values(pools.values(), Unit.PGC)

        if param == Capability.NPP:
            biomes = [biome] if biome is not None else self.biome_list
            return sum_values((self.npp(b, state) for b in biomes), Unit.PGC_YR)
        if param == Capability.RH:
            biomes = [biome] if biome is not None else self.biome_list
            return sum_values((self.rh(b, state) for b in biomes), Unit.PGC_YR)

        if biome is not None:
            raise UnknownCapabilityError(name, self.component_name)

        if name == Capability.ATMOSPHERIC_CO2:
            return self.Ca if state is None else state.Ca
        if name == Capability.PREINDUSTRIAL_CO2:
            return self.C0
        if name == Capability.ATMOSPHERIC_C:
            return self.atmos_c if state is None else state.atmos_c
        if name == Capability.EARTH_C:
            return self.earth_c if state is None else state.earth_c
        if name == Capability.LAND_CFLUX:
            if date is None:
                return self.atmosland_flux
            return self.atmosland_flux_ts.get(date)
        if name == Capability.ATMOSPHERIC_C_RESIDUAL:
            return self.residual if date is None else self.residual_ts.get(date)
        if name == Capability.CO2_CONSTRAIN:
            when = self._require_core().get_current_date() if date is None else date
            return self.co2_constrain.get(when)
        if name == Capability.RF_T_ALBEDO:
            when = self._require_core().get_current_date() if date is None else date
            return self.ftalbedo.get(when)

        raise UnknownCapabilityError(name, self.component_name)

    def _snapshot_at(self, date: float) -> _Snapshot:
        date = float(date)
        if date not in self.snapshots:
            msg = f"{self.component_name}: no carbon-cycle state recorded for {date}"
            raise DateConstraintError(msg)
        return self.snapshots[date]

    # ------------------------------------------------------------------ fluxes

    def npp(self, biome: str, state: _Snapshot | None = None) -> UnitVal:
        """Net primary production of `biome`."""
        co2fert = self.co2fert if state is None else state.co2fert
        return UnitVal(self.npp_flux0[biome].magnitude, Unit.PGC_YR) * co2fert.get(
            biome, 1.0
        )

    def rh_fda(self, biome: str, state: _Snapshot | None = None) -> UnitVal:
        """Heterotrophic respiration from the detritus pool of `biome`."""
        detritus = self.detritus_c if state is None else state.detritus_c
        tempfertd = self.tempfertd if state is None else state.tempfertd
        flux = UnitVal(
            detritus[biome].value(Unit.PGC) * DETRITUS_RESPIRATION_RATE, Unit.PGC_YR
        )
        return flux * tempfertd.get(biome, 1.0)

    def rh_fsa(self, biome: str, state: _Snapshot | None = None) -> UnitVal:
        """Heterotrophic respiration from the soil pool of `biome`."""
        soil = self.soil_c if state is None else state.soil_c
        tempferts = self.tempferts if state is None else state.tempferts
        flux = UnitVal(soil[biome].value(Unit.PGC) * SOIL_RESPIRATION_RATE, Unit.PGC_YR)
        return flux * tempferts.get(biome, 1.0)

    def rh(self, biome: str, state: _Snapshot | None = None) -> UnitVal:
        """Total heterotrophic respiration of `biome`."""
        return self.rh_fda(biome, state) + self.rh_fsa(biome, state)

    def sum_npp(self) -> UnitVal:
        """NPP summed across biomes."""
        return sum_values((self.npp(b) for b in self.biome_list), Unit.PGC_YR)

    def sum_rh(self) -> UnitVal:
        """RH summed across biomes."""
        return sum_values((self.rh(b) for b in self.biome_list), Unit.PGC_YR)

    def ch4_oxidation(self, t: float) -> UnitVal:
        """
        Carbon reaching the atmosphere from oxidised fossil methane.

        Not modelled; always zero.
        """
        return UnitVal(0.0, Unit.PGC_YR)

    def _emissions(self, series: TimeSeries, t: float) -> UnitVal:
        if len(series) == 0:
            return UnitVal(0.0, Unit.PGC_YR)
        return series.get(t)

    # ------------------------------------------------------------------ lifecycle

    def sanitychecks(self) -> None:
        """
        Check pool and parameter bounds.

        Raises
        ------
        ContractViolationError
            If any bound is violated.
        """
        self._check(self.atmos_c.value(Unit.PGC) > 0.0, "atmos_c pool <= 0")
        for biome in self.biome_list:
            self._check(
                self.npp_flux0[biome].magnitude >= 0.0, f"{biome}: npp_flux0 < 0"
            )
            self._check(self.f_nppv[biome] >= 0.0, f"{biome}: f_nppv < 0")
            self._check(self.f_nppd[biome] >= 0.0, f"{biome}: f_nppd < 0")
            self._check(
                self.f_nppv[biome] + self.f_nppd[biome] <= 1.0,
                f"{biome}: f_nppv + f_nppd > 1",
            )
            self._check(
                0.0 <= self.f_litterd[biome] <= 1.0, f"{biome}: f_litterd < 0 or > 1"
            )
        self._check(self.f_lucv >= 0.0, "f_lucv < 0")
        self._check(self.f_lucd >= 0.0, "f_lucd < 0")
        self._check(self.f_lucv + self.f_lucd <= 1.0, "f_lucv + f_lucd > 1")
        self._check(self.C0.value(Unit.PPMV_CO2) > 0.0, "C0 <= 0")
        self._check(self.Ca.value(Unit.PPMV_CO2) > 0.0, "Ca <= 0")

    def _check(self, condition: bool, message: str) -> None:
        if not condition:
            raise ContractViolationError(f"{self.component_name}: {message}")

    def prepare_to_run(self) -> None:  # noqa: D102
        core = self._require_core()
        self.logger.debug("prepare_to_run")

        if self.has_biome(DEFAULT_BIOME) and len(self.biome_list) > 1:
            msg = (
                f"{self.component_name}: cannot have both global and biome-specific "
                "data. Did you forget to rename the default ('global') biome?"
            )
            raise ContractViolationError(msg)
        if not self.biome_list:
            msg = f"{self.component_name}: no biomes defined"
            raise ContractViolationError(msg)

        n = len(self.biome_list)
        for label, values in (
            ("veg_c", self.veg_c),
            ("detritus_c", self.detritus_c),
            ("soil_c", self.soil_c),
            ("npp_flux0", self.npp_flux0),
        ):
            self._check(len(values) == n, f"{label} and biome_list not same size")

        for biome in self.biome_list:
            self.logger.debug(f"Checking that data for biome '{biome}' is complete")
            for label in (
                "veg_c",
                "detritus_c",
                "soil_c",
                "npp_flux0",
                "beta",
                "q10_rh",
                "f_nppv",
                "f_nppd",
                "f_litterd",
            ):
                self._check(
                    biome in getattr(self, label), f"no {biome} value for {label}"
                )
            if biome not in self.warmingfactor:
                self.logger.info(
                    f"No warmingfactor set for biome '{biome}'. "
                    "Setting to default value = 1.0"
                )
                self.warmingfactor[biome] = 1.0
            self.co2fert.setdefault(biome, 1.0)
            self.tempfertd.setdefault(biome, 1.0)
            self.tempferts.setdefault(biome, 1.0)

        omodel = core.get_component_by_capability(Capability.OCEAN_C)
        if not isinstance(omodel, CarbonCycleModel):
            msg = (
                f"{self.component_name}: ocean component '{omodel.component_name}' "
                "is not a carbon-cycle model"
            )
            raise ContractViolationError(msg)
        self.omodel = omodel

        if len(self.ftalbedo) == 0:
            albedo = UnitVal(DEFAULT_ALBEDO_FORCING, Unit.W_M2)
            self.ftalbedo.set(core.get_start_date(), albedo)
            self.ftalbedo.set(core.get_end_date(), albedo)

        c0 = self.C0.value(Unit.PPMV_CO2)
        self.Ca = UnitVal(c0, Unit.PPMV_CO2)
        self.atmos_c = FluxPool(c0 * PPMVCO2_TO_PGC, Unit.PGC)

        if len(self.co2_constrain):
            self.logger.warning(
                "Atmospheric CO2 will be constrained to user-supplied values!"
            )

        for biome in self.biome_list:
            self._check(self.beta[biome] >= 0.0, f"{biome}: beta < 0")
            self._check(self.q10_rh[biome] > 0.0, f"{biome}: q10_rh <= 0")
        self.sanitychecks()

    def run(self, run_to_date: float) -> None:
        """Record this year's global temperature; pools are advanced by the solver."""
        core = self._require_core()
        self.in_spinup = core.in_spinup()
        self.sanitychecks()
        tgav = core.get_data(Capability.GLOBAL_TEMP)
        self.tgav_record.set(run_to_date, UnitVal(tgav.value(Unit.DEGC), Unit.DEGC))

    def run_spinup(self, step: int) -> bool:
        """Spinup is driven by the solver; the kernel only checks its state."""
        self.sanitychecks()
        self.in_spinup = True
        return True

    def log_pools(self, t: float) -> None:
        """Log pool states at DEBUG level."""
        self.logger.debug(f"---- simpleNbox pool states at t={t} ----")
        self.logger.debug(f"Atmos = {self.atmos_c}")
        for biome in self.biome_list:
            self.logger.debug(
                f"{biome}\tveg_c={self.veg_c[biome]}"
                f"\tdetritus_c={self.detritus_c[biome]}"
                f"\tsoil_c={self.soil_c[biome]}"
            )
        self.logger.debug(f"Earth = {self.earth_c}")

    # ------------------------------------------------------------------ solver

    def get_c_values(self, t: float, c: np.ndarray) -> None:  # noqa: D102
        c[Pool.ATMOS] = self.atmos_c.value(Unit.PGC)
        c[Pool.VEG] = aggregate(self.veg_c)
        c[Pool.DET] = aggregate(self.detritus_c)
        c[Pool.SOIL] = aggregate(self.soil_c)
        self.omodel.get_c_values(t, c)
        c[Pool.EARTH] = self.earth_c.value(Unit.PGC)

        self.ode_startdate = t
        if not self._require_core().in_spinup() and float(t) not in self.snapshots:
            self._record_snapshot(t)

    def slowparameval(self, t: float, c: np.ndarray) -> None:
        """
        Update the CO2 fertilization and temperature factors for the coming step.

        All factors are held at 1 during spinup. The soil factor is computed
        from the mean temperature of the `Q10_TEMPN` years ending `Q10_TEMPLAG`
        years before `t` and never falls below its value at the previous step.
        """
        core = self._require_core()
        self.in_spinup = core.in_spinup()
        self.omodel.slowparameval(t, c)

        self.Ca = UnitVal(c[Pool.ATMOS] * PGC_TO_PPMVCO2, Unit.PPMV_CO2)
        for biome in self.biome_list:
            if self.in_spinup:
                self.co2fert[biome] = 1.0
            else:
                self.co2fert[biome] = 1.0 + self.beta[biome] * math.log(
                    self.Ca / self.C0
                )
            self.logger.debug(f"co2fert[{biome}] at {self.Ca} = {self.co2fert[biome]}")

        if self.in_spinup:
            for biome in self.biome_list:
                self.tempfertd[biome] = 1.0
                self.tempferts[biome] = 1.0
            return

        tgav = core.get_data(Capability.GLOBAL_TEMP).value(Unit.DEGC)
        tfs_last = self._previous_tempferts(t)

        for biome in self.biome_list:
            wf = self.warmingfactor.get(biome, 1.0)
            tgav_biome = tgav * wf
            self.tempfertd[biome] = self.q10_rh[biome] ** (tgav_biome / 10.0)

            tgav_rm = 0.0
            if t > core.get_start_date() + Q10_TEMPLAG:
                tgav_rm = self._window_mean(t) * wf
            tempferts = self.q10_rh[biome] ** (tgav_rm / 10.0)

            # The soil Q10 effect can only increase
            self.tempferts[biome] = max(tempferts, tfs_last.get(biome, tempferts))

            self.logger.debug(
                f"{biome} Tgav={tgav}, Tgav_biome={tgav_biome}, "
                f"tempfertd={self.tempfertd[biome]}, tempferts={self.tempferts[biome]}"
            )

        self.tempferts_tv[float(t)] = dict(self.tempferts)

    def _window_mean(self, t: float) -> float:
        end = int(t) - Q10_TEMPLAG
        total = 0.0
        for year in range(end - Q10_TEMPN, end):
            if self.tgav_record.exists(year):
                total += self.tgav_record.get(year).value(Unit.DEGC)
        return total / Q10_TEMPN

    def _previous_tempferts(self, t: float) -> dict[str, float]:
        earlier = [d for d in self.tempferts_tv if d < t]
        if not earlier:
            return {}
        return self.tempferts_tv[max(earlier)]

    def calcderivs(self, t: float, c: np.ndarray, dcdt: np.ndarray) -> int:
        """
        Fill `dcdt` with the pool derivatives at `t`.

        Land fluxes are computed from the kernel's pools and slow factors; the
        ocean derivative comes from the ocean model. Does not change state.
        """
        omodel_err = self.omodel.calcderivs(t, c, dcdt)
        atmosocean_flux = dcdt[Pool.OCEAN]

        npp_current = npp_fav = npp_fad = npp_fas = 0.0
        rh_fda_current = rh_fsa_current = 0.0
        litter_flux = litter_fvd = litter_fvs = 0.0
        detsoil_flux = 0.0

        for biome in self.biome_list:
            npp_biome = self.npp(biome).value(Unit.PGC_YR)
            npp_current += npp_biome
            npp_fav += npp_biome * self.f_nppv[biome]
            npp_fad += npp_biome * self.f_nppd[biome]
            npp_fas += npp_biome * (1.0 - self.f_nppv[biome] - self.f_nppd[biome])
            rh_fda_current += self.rh_fda(biome).value(Unit.PGC_YR)
            rh_fsa_current += self.rh_fsa(biome).value(Unit.PGC_YR)

            litter = self.veg_c[biome].value(Unit.PGC) * LITTER_RATE
            litter_flux += litter
            litter_fvd += litter * self.f_litterd[biome]
            litter_fvs += litter * (1.0 - self.f_litterd[biome])

            detritus = self.detritus_c[biome].value(Unit.PGC)
            detsoil_flux += detritus * DETRITUS_TO_SOIL_RATE

        rh_current = rh_fda_current + rh_fsa_current

        ffi_flux = ccs_flux = luc_current = 0.0
        if not self.in_spinup:
            totflux = self._emissions(self.ffi_emissions, t).value(Unit.PGC_YR)
            if totflux >= 0.0:
                ffi_flux = totflux
            else:
                ccs_flux = -totflux
            luc_current = self._emissions(self.luc_emissions, t).value(Unit.PGC_YR)

        luc_fva = luc_current * self.f_lucv
        luc_fda = luc_current * self.f_lucd
        luc_fsa = luc_current * (1.0 - self.f_lucv - self.f_lucd)
        ch4ox_current = self.ch4_oxidation(t).value(Unit.PGC_YR)

        dcdt[Pool.ATMOS] = (
            ffi_flux
            - ccs_flux
            + luc_current
            + ch4ox_current
            - atmosocean_flux
            - npp_current
            + rh_current
        )
        dcdt[Pool.VEG] = npp_fav - litter_flux - luc_fva
        dcdt[Pool.DET] = npp_fad + litter_fvd - detsoil_flux - rh_fda_current - luc_fda
        dcdt[Pool.SOIL] = npp_fas + litter_fvs + detsoil_flux - rh_fsa_current - luc_fsa
        dcdt[Pool.OCEAN] = atmosocean_flux
        dcdt[Pool.EARTH] = -ffi_flux + ccs_flux
        return omodel_err

    def stash_c_values(self, t: float, c: np.ndarray) -> None:
        """
        Copy the solved state back into the pools.

        Raises
        ------
        DateConstraintError
            If more than one year (or a negative time) has elapsed since the
            solver started.
        MassConservationError
            If the total carbon differs from the previous step by more than
            `MB_EPSILON`.
        """
        core = self._require_core()
        yf = t - self.ode_startdate
        if not 0.0 <= yf <= 1.0:
            msg = f"{self.component_name}: yearfraction {yf} out of bounds at t={t}"
            raise DateConstraintError(msg)

        self.logger.debug(
            f"Stashing at t={t}: atm={c[Pool.ATMOS]} veg={c[Pool.VEG]} "
            f"det={c[Pool.DET]} soil={c[Pool.SOIL]} ocean={c[Pool.OCEAN]} "
            f"earth={c[Pool.EARTH]}"
        )
        self.atmos_c = FluxPool(c[Pool.ATMOS], Unit.PGC)
        self.Ca = UnitVal(c[Pool.ATMOS] * PGC_TO_PPMVCO2, Unit.PPMV_CO2)

        npp_total = self.sum_npp()
        rh_total = self.sum_rh()
        luc = UnitVal(0.0, Unit.PGC_YR)
        if not core.in_spinup():
            luc = self._emissions(self.luc_emissions, t)
        self.atmosland_flux = npp_total - rh_total - luc

        # The solver only knows one vegetation, detritus and soil pool; the
        # change is apportioned to biomes by their share of NPP + RH
        npp_rh_total = npp_total + rh_total
        if npp_rh_total.magnitude > 0.0:
            weights = {
                b: (self.npp(b) + self.rh(b)) / npp_rh_total for b in self.biome_list
            }
        else:
            weights = {b: 1.0 / len(self.biome_list) for b in self.biome_list}
        self.veg_c, veg_delta = apportion(self.veg_c, c[Pool.VEG], weights)
        self.detritus_c, det_delta = apportion(self.detritus_c, c[Pool.DET], weights)
        self.soil_c, soil_delta = apportion(self.soil_c, c[Pool.SOIL], weights)
        self.logger.debug(
            f"veg_delta = {veg_delta}, det_delta = {det_delta}, "
            f"soil_delta = {soil_delta}"
        )

        self.omodel.stash_c_values(t, c)
        self.earth_c = FluxPool(c[Pool.EARTH], Unit.PGC)
        self.log_pools(t)

        total = float(np.sum(c))
        diff = abs(total - self.masstot)
        self.logger.debug(f"masstot = {self.masstot}, sum = {total}, diff = {diff}")
        if self.masstot > 0.0 and diff > MB_EPSILON:
            self.logger.error(f"Mass not conserved in {self.component_name}")
            self.logger.error(f"masstot = {self.masstot}, sum = {total}, diff = {diff}")
            raise MassConservationError(self.component_name, self.masstot, total)
        self.masstot = total

        if core.in_spinup() or self.co2_constrain.exists(t):
            if core.in_spinup():
                target_ppmv = self.C0.value(Unit.PPMV_CO2)
            else:
                self.logger.info("Constraining atmospheric CO2 to user-supplied value")
                target_ppmv = self.co2_constrain.get(t).value(Unit.PPMV_CO2)
            target = target_ppmv / PGC_TO_PPMVCO2

            self.residual = UnitVal(self.atmos_c.value(Unit.PGC) - target, Unit.PGC)
            self.logger.debug(
                f"{t} - have {self.atmos_c} want {target} Pg C; "
                f"residual = {self.residual}"
            )
            if self.residual.magnitude != 0.0:
                core.send_message(
                    MessageType.DUMP_TO_DEEP_OCEAN,
                    Capability.OCEAN_C,
                    MessageData(t, self.residual),
                )
            self.atmos_c = FluxPool(target, Unit.PGC)
            self.Ca = UnitVal(target_ppmv, Unit.PPMV_CO2)
        else:
            self.residual = UnitVal(0.0, Unit.PGC)

        if not core.in_spinup():
            self.atmosland_flux_ts.set(t, self.atmosland_flux)
            self.residual_ts.set(t, self.residual)
            self._record_snapshot(t)

        self.ode_startdate = t

    def _record_snapshot(self, t: float) -> None:
        self.snapshots[float(t)] = _Snapshot(
            atmos_c=self.atmos_c,
            earth_c=self.earth_c,
            Ca=self.Ca,
            masstot=self.masstot,
            veg_c=dict(self.veg_c),
            detritus_c=dict(self.detritus_c),
            soil_c=dict(self.soil_c),
            co2fert=dict(self.co2fert),
            tempfertd=dict(self.tempfertd),
            tempferts=dict(self.tempferts),
        )

    def reset(self, date: float) -> None:
        """Restore the pools recorded at `date` and drop everything later."""
        date = float(date)
        if date in self.snapshots:
            state = self.snapshots[date]
            self.atmos_c = state.atmos_c
            self.earth_c = state.earth_c
            self.Ca = state.Ca
            self.masstot = state.masstot
            self.veg_c = dict(state.veg_c)
            self.detritus_c = dict(state.detritus_c)
            self.soil_c = dict(state.soil_c)
            self.co2fert = dict(state.co2fert)
            self.tempfertd = dict(state.tempfertd)
            self.tempferts = dict(state.tempferts)
        if self.residual_ts.exists(date):
            self.residual = self.residual_ts.get(date)
        if self.atmosland_flux_ts.exists(date):
            self.atmosland_flux = self.atmosland_flux_ts.get(date)

        self.tgav_record.truncate(date)
        self.atmosland_flux_ts.truncate(date)
        self.residual_ts.truncate(date)
        self.tempferts_tv = {d: v for d, v in self.tempferts_tv.items() if d <= date}
        self.snapshots = {d: s for d, s in self.snapshots.items() if d <= date}
        self.ode_startdate = date
        self.logger.info(f"{self.component_name} reset to time={date}")
