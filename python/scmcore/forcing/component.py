"""
Radiative forcing aggregator.

Computes the forcing of each agent from the concentrations, emissions and
forcings published by other components, sums them to a total and reports
everything relative to a base year. Before the base year every forcing is
reported as zero.

Halocarbon forcings are computed by their own components under ``RF_<gas>``.
This component publishes the base-year adjusted values under ``RFADJ_<gas>``
and translates those names through `FORCING_NAME_MAP` when they are queried.
"""

from __future__ import annotations

import math

from scmcore.capabilities import (
    ADJUSTED_HALO_FORCINGS,
    FORCING_NAME_MAP,
    HALO_FORCING_NAMES,
    Capability,
)
from scmcore.component import Component, Input, Output, RequirementDefinition, Setting
from scmcore.exceptions import (
    ContractViolationError,
    DateConstraintError,
    UnknownCapabilityError,
)
from scmcore.forcing import constants as k
from scmcore.messages import MessageData
from scmcore.timeseries import InterpolationStrategy, NestedTimeSeries, TimeSeries
from scmcore.units import Unit, UnitVal, sum_values

__all__ = ["ForcingComponent", "co2_sarf", "ch4_sarf", "n2o_sarf"]


def co2_sarf(Ca: float, C0: float, Na: float) -> float:
    """
    Stratospherically adjusted CO2 forcing (W/m2).

    Parameters
    ----------
    Ca
        Atmospheric CO2 (ppmv)
    C0
        Preindustrial CO2 (ppmv)
    Na
        Atmospheric N2O (ppbv)
    """
    C_alpha_max = C0 - k.b1 / (2 * k.a1)
    n2o_alpha = k.c1 * math.sqrt(Na)
    if Ca > C_alpha_max:
        alpha_prime = k.d1 - k.b1**2 / (2 * k.a1)
    elif C0 < Ca <= C_alpha_max:
        alpha_prime = k.d1 + k.a1 * (Ca - C0) ** 2 + k.b1 * (Ca - C0)
    else:
        alpha_prime = k.d1
    return (alpha_prime + n2o_alpha) * math.log(Ca / C0)


def n2o_sarf(Ca: float, Na: float, Ma: float, N0: float) -> float:
    """Stratospherically adjusted N2O forcing (W/m2)."""
    return (k.a2 * math.sqrt(Ca) + k.b2 * math.sqrt(Na) + k.c2 * math.sqrt(Ma)) * (
        math.sqrt(Na) - math.sqrt(N0)
    )


def ch4_sarf(Ma: float, Na: float, M0: float) -> float:
    """Stratospherically adjusted CH4 forcing (W/m2)."""
    return (k.a3 * math.sqrt(Ma) + k.b3 * math.sqrt(Na) + k.d3) * (
        math.sqrt(Ma) - math.sqrt(M0)
    )


class ForcingComponent(Component):
    """
    Aggregates per-agent radiative forcing and rebases it to a base year.

    The base year defaults to one year after the model start. A user-supplied
    ``Ftot_constrain`` series replaces the summed total wherever it covers the
    current year.
    """

    component_name = "forcing"

    # Concentrations and emissions; every agent is optional
    co2 = Input(Capability.ATMOSPHERIC_CO2, unit=Unit.PPMV_CO2, required=False)
    ch4 = Input(Capability.ATMOSPHERIC_CH4, unit=Unit.PPBV_CH4, required=False)
    n2o = Input(Capability.ATMOSPHERIC_N2O, unit=Unit.PPBV_N2O, required=False)
    o3 = Input(Capability.ATMOSPHERIC_O3, unit=Unit.DU_O3, required=False)
    c0 = Input(Capability.PREINDUSTRIAL_CO2, unit=Unit.PPMV_CO2, required=False)
    m0 = Input(Capability.PREINDUSTRIAL_CH4, unit=Unit.PPBV_CH4, required=False)
    n0 = Input(Capability.PREINDUSTRIAL_N2O, unit=Unit.PPBV_N2O, required=False)
    bc = Input(Capability.EMISSIONS_BC, unit=Unit.TG, required=False)
    oc = Input(Capability.EMISSIONS_OC, unit=Unit.TG, required=False)
    so2 = Input(Capability.EMISSIONS_SO2, unit=Unit.GG_S, required=False)
    natural_so2 = Input(Capability.NATURAL_SO2, unit=Unit.GG_S, required=False)
    albedo = Input(Capability.RF_T_ALBEDO, unit=Unit.W_M2, required=False)
    volcanic = Input(Capability.VOLCANIC_SO2, unit=Unit.W_M2, required=False)

    # Published forcings
    rf_total = Output(Capability.RF_TOTAL, unit=Unit.W_M2)
    rf_baseyear = Output(Capability.RF_BASEYEAR, unit=Unit.UNITLESS)
    rf_co2 = Output(Capability.RF_CO2, unit=Unit.W_M2)
    rf_ch4 = Output(Capability.RF_CH4, unit=Unit.W_M2)
    rf_n2o = Output(Capability.RF_N2O, unit=Unit.W_M2)
    rf_h2o = Output(Capability.RF_H2O_STRAT, unit=Unit.W_M2)
    rf_o3 = Output(Capability.RF_O3_TROP, unit=Unit.W_M2)
    rf_bc = Output(Capability.RF_BC, unit=Unit.W_M2)
    rf_oc = Output(Capability.RF_OC, unit=Unit.W_M2)
    rf_so2 = Output(Capability.RF_SO2, unit=Unit.W_M2)
    rf_vol = Output(Capability.RF_VOL, unit=Unit.W_M2)

    # Parameters, published and accepted
    alpha_out = Output(Capability.ACO2, unit=Unit.W_M2)
    delta_ch4_out = Output(Capability.DELTA_CH4, unit=Unit.UNITLESS)
    delta_n2o_out = Output(Capability.DELTA_N2O, unit=Unit.UNITLESS)
    delta_co2_out = Output(Capability.DELTA_CO2, unit=Unit.UNITLESS)
    rho_bc_out = Output(Capability.RHO_BC, unit=Unit.W_M2_TG)
    rho_oc_out = Output(Capability.RHO_OC, unit=Unit.W_M2_TG)
    rho_so2_out = Output(Capability.RHO_SO2, unit=Unit.W_M2_GG)

    alpha_in = Setting(Capability.ACO2, unit=Unit.W_M2)
    delta_ch4_in = Setting(Capability.DELTA_CH4, unit=Unit.UNITLESS)
    delta_n2o_in = Setting(Capability.DELTA_N2O, unit=Unit.UNITLESS)
    delta_co2_in = Setting(Capability.DELTA_CO2, unit=Unit.UNITLESS)
    rho_bc_in = Setting(Capability.RHO_BC, unit=Unit.W_M2_TG)
    rho_oc_in = Setting(Capability.RHO_OC, unit=Unit.W_M2_TG)
    rho_so2_in = Setting(Capability.RHO_SO2, unit=Unit.W_M2_GG)
    baseyear_in = Setting(Capability.RF_BASEYEAR, unit=Unit.UNITLESS)
    ftot_constrain_in = Setting(Capability.FTOT_CONSTRAIN, unit=Unit.W_M2)

    _PARAMETER_UNITS: dict[str, Unit] = {
        Capability.ACO2: Unit.W_M2,
        Capability.DELTA_CH4: Unit.UNITLESS,
        Capability.DELTA_N2O: Unit.UNITLESS,
        Capability.DELTA_CO2: Unit.UNITLESS,
        Capability.RHO_BC: Unit.W_M2_TG,
        Capability.RHO_OC: Unit.W_M2_TG,
        Capability.RHO_SO2: Unit.W_M2_GG,
    }

    def __init__(self) -> None:
        self.baseyear = 0.0
        self.current_year = 0.0
        self.parameters: dict[str, UnitVal] = {
            Capability.ACO2: UnitVal(k.DEFAULT_ALPHA_CO2, Unit.W_M2),
            Capability.DELTA_CH4: UnitVal(k.DEFAULT_DELTA_CH4, Unit.UNITLESS),
            Capability.DELTA_N2O: UnitVal(k.DEFAULT_DELTA_N2O, Unit.UNITLESS),
            Capability.DELTA_CO2: UnitVal(k.DEFAULT_DELTA_CO2, Unit.UNITLESS),
            Capability.RHO_BC: UnitVal(k.DEFAULT_RHO_BC, Unit.W_M2_TG),
            Capability.RHO_OC: UnitVal(k.DEFAULT_RHO_OC, Unit.W_M2_TG),
            Capability.RHO_SO2: UnitVal(k.DEFAULT_RHO_SO2, Unit.W_M2_GG),
        }
        self.ftot_constrain = TimeSeries(
            Capability.RF_TOTAL, InterpolationStrategy.Linear
        )
        self.forcings_ts = NestedTimeSeries("forcings")
        self.baseyear_forcings: dict[str, UnitVal] = {}

    def definitions(self) -> list[RequirementDefinition]:
        """Add the raw and adjusted halocarbon forcings to the declared capabilities."""
        defs = super().definitions()
        defs.extend(
            Input(name, unit=Unit.W_M2, required=False).to_requirement()
            for name in HALO_FORCING_NAMES
        )
        defs.extend(
            Output(name, unit=Unit.W_M2).to_requirement()
            for name in ADJUSTED_HALO_FORCINGS
        )
        return defs

    # ------------------------------------------------------------------ messages

    def set_data(self, name: str, data: MessageData) -> None:  # noqa: D102
        self.logger.debug(f"Setting {name}[{data.date}]={data.value}")
        if name == Capability.FTOT_CONSTRAIN:
            if data.date is None:
                msg = f"{self.component_name}: '{name}' requires a date"
                raise DateConstraintError(msg)
            self.ftot_constrain.set(data.date, data.get_unitval(Unit.W_M2))
            return

        if data.date is not None:
            msg = f"{self.component_name}: '{name}' does not take a date"
            raise DateConstraintError(msg)
        if name == Capability.RF_BASEYEAR:
            self.baseyear = data.get_unitval(Unit.UNITLESS).magnitude
        elif name in self._PARAMETER_UNITS:
            self.parameters[name] = data.get_unitval(self._PARAMETER_UNITS[name])
        else:
            raise UnknownCapabilityError(name, self.component_name)

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """
        Return a forcing relative to the base year, or a parameter.

        Before the base year every forcing is zero; parameters are always
        returned as set. Adjusted halocarbon names are translated to the raw
        names the forcings are stored under.
        """
        getdate = self.current_year if date is None else float(date)

        if name == Capability.RF_BASEYEAR:
            return UnitVal(self.baseyear, Unit.UNITLESS)

        if getdate < self.baseyear:
            if name in self.parameters:
                return self.parameters[name]
            return UnitVal(0.0, Unit.W_M2)

        self.logger.debug(f"getData request, time={getdate}, baseyear={self.baseyear}")

        if name == Capability.RF_SO2:
            return UnitVal(0.0, Unit.W_M2)

        forcings = {}
        if self.forcings_ts.exists(getdate):
            forcings = self.forcings_ts.get(getdate)
        forcing_name = FORCING_NAME_MAP.get(name, name)
        if forcing_name in forcings:
            return forcings[forcing_name]
        if name in self.parameters:
            return self.parameters[name]
        if not self.forcings_ts.exists(getdate):
            msg = f"{self.component_name}: no forcings computed for {getdate}"
            raise DateConstraintError(msg)
        raise UnknownCapabilityError(name, self.component_name)

    # ------------------------------------------------------------------ lifecycle

    def prepare_to_run(self) -> None:  # noqa: D102
        core = self._require_core()
        self.logger.debug("prepare_to_run")

        if self.baseyear == 0.0:
            self.baseyear = core.get_start_date() + 1.0
        self.logger.debug(f"Base year for reporting is {self.baseyear}")
        if self.baseyear <= core.get_start_date():
            msg = (
                f"{self.component_name}: base year {self.baseyear} must be after "
                f"the model start date {core.get_start_date()}"
            )
            raise DateConstraintError(msg)

        if len(self.ftot_constrain):
            self.logger.warning(
                "Total forcing will be overwritten by user-supplied values!"
            )

        for name in (Capability.DELTA_CH4, Capability.DELTA_N2O, Capability.DELTA_CO2):
            delta = self.parameters[name].value(Unit.UNITLESS)
            if not -1.0 <= delta <= 1.0:
                msg = (
                    f"{self.component_name}: bad {name} value {delta}, "
                    "must be in [-1, 1]"
                )
                raise ContractViolationError(msg)

        self.baseyear_forcings = {}

    def run(self, run_to_date: float) -> None:
        """Compute and store the forcings for `run_to_date`."""
        self.current_year = float(run_to_date)
        if run_to_date < self.baseyear:
            self.logger.debug("not yet at baseyear")
            return

        forcings = self.absolute_forcings(run_to_date)

        total = sum_values(forcings.values(), Unit.W_M2)
        for agent, value in forcings.items():
            self.logger.debug(f"forcing {agent} in {run_to_date} is {value}")
        if self.ftot_constrain.covers(run_to_date):
            self.logger.warning("** Overwriting total forcing with user-supplied value")
            forcings[Capability.RF_TOTAL] = self.ftot_constrain.get(run_to_date)
        else:
            forcings[Capability.RF_TOTAL] = total
        self.logger.debug(f"forcing total is {forcings[Capability.RF_TOTAL]}")

        if run_to_date == self.baseyear:
            self.logger.debug("** At base year! Storing current forcing values")
            self.baseyear_forcings = dict(forcings)

        zero = UnitVal(0.0, Unit.W_M2)
        relative = {
            agent: value - self.baseyear_forcings.get(agent, zero)
            for agent, value in forcings.items()
        }
        self.forcings_ts.set(run_to_date, relative)

    def absolute_forcings(self, t: float) -> dict[str, UnitVal]:
        """
        Per-agent forcings at `t` before rebasing.

        Agents whose inputs are not provided by any component are left out.
        """
        core = self._require_core()
        forcings: dict[str, UnitVal] = {}
        p = self.parameters

        if all(
            core.check_capability(cap)
            for cap in (
                Capability.ATMOSPHERIC_CH4,
                Capability.ATMOSPHERIC_N2O,
                Capability.ATMOSPHERIC_CO2,
            )
        ):
            C0 = core.get_data(Capability.PREINDUSTRIAL_CO2).value(Unit.PPMV_CO2)
            M0 = core.get_data(Capability.PREINDUSTRIAL_CH4).value(Unit.PPBV_CH4)
            N0 = core.get_data(Capability.PREINDUSTRIAL_N2O).value(Unit.PPBV_N2O)
            Ca = core.get_data(Capability.ATMOSPHERIC_CO2, t).value(Unit.PPMV_CO2)
            Ma = core.get_data(Capability.ATMOSPHERIC_CH4, t).value(Unit.PPBV_CH4)
            Na = core.get_data(Capability.ATMOSPHERIC_N2O, t).value(Unit.PPBV_N2O)

            sarf = co2_sarf(Ca, C0, Na)
            delta = p[Capability.DELTA_CO2].value(Unit.UNITLESS)
            forcings[Capability.RF_CO2] = UnitVal(sarf * delta + sarf, Unit.W_M2)

            sarf = n2o_sarf(Ca, Na, Ma, N0)
            delta = p[Capability.DELTA_N2O].value(Unit.UNITLESS)
            forcings[Capability.RF_N2O] = UnitVal(delta * sarf + sarf, Unit.W_M2)

            sarf = ch4_sarf(Ma, Na, M0)
            delta = p[Capability.DELTA_CH4].value(Unit.UNITLESS)
            forcings[Capability.RF_CH4] = UnitVal(delta * sarf + sarf, Unit.W_M2)

            fh2o = k.H2O_STRAT_FRACTION * (
                k.H2O_STRAT_EFFICIENCY * (math.sqrt(Ma) - math.sqrt(M0))
            )
            forcings[Capability.RF_H2O_STRAT] = UnitVal(fh2o, Unit.W_M2)

        if core.check_capability(Capability.ATMOSPHERIC_O3):
            ozone = core.get_data(Capability.ATMOSPHERIC_O3, t).value(Unit.DU_O3)
            forcings[Capability.RF_O3_TROP] = UnitVal(
                k.O3_TROP_EFFICIENCY * ozone, Unit.W_M2
            )

        # Halocarbons can be disabled individually
        for name in HALO_FORCING_NAMES:
            if core.check_capability(name):
                halo = core.get_data(name, t).value(Unit.W_M2)
                forcings[name] = UnitVal(halo, Unit.W_M2)

        if all(
            core.check_capability(cap)
            for cap in (
                Capability.EMISSIONS_BC,
                Capability.EMISSIONS_OC,
                Capability.NATURAL_SO2,
                Capability.EMISSIONS_SO2,
            )
        ):
            e_bc = UnitVal(
                core.get_data(Capability.EMISSIONS_BC, t).value(Unit.TG), Unit.TG
            )
            e_oc = UnitVal(
                core.get_data(Capability.EMISSIONS_OC, t).value(Unit.TG), Unit.TG
            )
            e_so2 = UnitVal(
                core.get_data(Capability.EMISSIONS_SO2, t).value(Unit.GG_S), Unit.GG_S
            )
            forcings[Capability.RF_BC] = p[Capability.RHO_BC] * e_bc
            forcings[Capability.RF_OC] = p[Capability.RHO_OC] * e_oc
            forcings[Capability.RF_SO2] = p[Capability.RHO_SO2] * e_so2
            self.logger.debug(
                f"not included in total: NH3 {self.nh3_forcing(t)}, "
                f"aerosol-cloud {self.aerosol_cloud_forcing(t)}"
            )

        if core.check_capability(Capability.RF_T_ALBEDO):
            albedo = core.get_data(Capability.RF_T_ALBEDO, t).value(Unit.W_M2)
            forcings[Capability.RF_T_ALBEDO] = UnitVal(albedo, Unit.W_M2)

        if core.check_capability(Capability.VOLCANIC_SO2):
            volcanic = core.get_data(Capability.VOLCANIC_SO2, t).value(Unit.W_M2)
            forcings[Capability.RF_VOL] = UnitVal(volcanic, Unit.W_M2)

        return forcings

    def nh3_forcing(self, t: float) -> UnitVal:
        """
        Aerosol-radiation forcing from NH3 emissions.

        Not modelled; always zero.
        """
        return UnitVal(0.0, Unit.W_M2)

    def aerosol_cloud_forcing(self, t: float) -> UnitVal:
        """
        Effective forcing from aerosol-cloud interactions.

        Not modelled; always zero and not included in the total.
        """
        return UnitVal(0.0, Unit.W_M2)

    def reset(self, date: float) -> None:
        """Drop forcings after `date`; parameters and base-year values are kept."""
        self.current_year = float(date)
        self.forcings_ts.truncate(date)
        self.logger.info(f"{self.component_name} reset to time={date}")
