"""Tests for the simpleNbox terrestrial carbon kernel."""

from __future__ import annotations

import math

import pytest

from conftest import C0, GLOBAL_BIOME, equilibrium_pools
from scmcore.capabilities import Capability
from scmcore.carbon.nbox import PGC_TO_PPMVCO2, PPMVCO2_TO_PGC, SimpleNbox
from scmcore.carbon.state_vector import Pool, new_state_vector
from scmcore.exceptions import (
    ContractViolationError,
    DateConstraintError,
    MassConservationError,
    UnitMismatchError,
    UnknownCapabilityError,
)
from scmcore.messages import MessageData, MessageType
from scmcore.units import FluxPool, Unit, UnitVal

TWO_BIOMES = {
    "tropical": GLOBAL_BIOME,
    "boreal": {**GLOBAL_BIOME, "npp_flux0": 20.0, "beta": 0.2},
}


def _prepared(carbon_core, **kwargs):
    core = carbon_core(**kwargs)
    core.prepare()
    return core, core.get_component(SimpleNbox.component_name)


class TestSetData:
    """Tests for parameter and input handling."""

    def test_bare_names_target_global_biome(self, carbon_core):
        """Unprefixed per-biome settings create the 'global' biome."""
        core = carbon_core()
        kernel = core.get_component("simpleNbox")
        assert kernel.biome_list == ["global"]
        assert kernel.beta["global"] == 0.36
        assert isinstance(kernel.veg_c["global"], FluxPool)

    def test_prefixed_names_add_biomes(self, carbon_core):
        """'<biome>.<name>' settings create biomes in order of first use."""
        core = carbon_core(biomes=TWO_BIOMES)
        kernel = core.get_component("simpleNbox")
        assert kernel.biome_list == ["tropical", "boreal"]
        assert kernel.npp_flux0["boreal"] == FluxPool(20.0, Unit.PGC_YR)

    def test_dated_parameter_raises(self, carbon_core):
        """Parameters do not take a date."""
        core = carbon_core()
        with pytest.raises(DateConstraintError, match="does not take a date"):
            core.set_data(Capability.BETA, 0.5, 1800)

    def test_undated_emissions_raise(self, carbon_core):
        """Emissions need a date."""
        core = carbon_core()
        with pytest.raises(DateConstraintError, match="requires a date"):
            core.set_data(Capability.FFI_EMISSIONS, UnitVal(1.0, Unit.PGC_YR))

    def test_global_parameter_with_biome_raises(self, carbon_core):
        """Global parameters cannot be set per biome."""
        core = carbon_core()
        with pytest.raises(ContractViolationError, match="cannot be set per biome"):
            core.set_data("tropical.f_lucv", 0.1)

    def test_wrong_units_raise(self, carbon_core):
        """Values with defined units must match."""
        core = carbon_core()
        with pytest.raises(UnitMismatchError):
            core.set_data(Capability.VEG_C, UnitVal(500.0, Unit.PGC_YR))

    def test_unknown_name_raises(self):
        """Names the kernel does not know are rejected."""
        kernel = SimpleNbox()
        with pytest.raises(UnknownCapabilityError):
            kernel.set_data("nonsense", MessageData(None, UnitVal(1.0)))


class TestPrepare:
    """Tests for prepare_to_run checks."""

    def test_initial_atmosphere_from_c0(self, carbon_core):
        """The atmosphere starts at C0."""
        core, kernel = _prepared(carbon_core)
        assert kernel.Ca.value(Unit.PPMV_CO2) == C0
        assert kernel.atmos_c.value(Unit.PGC) == pytest.approx(C0 * PPMVCO2_TO_PGC)

    def test_default_albedo(self, carbon_core):
        """Without input, albedo forcing is -0.2 W/m2 throughout."""
        core, _ = _prepared(carbon_core)
        assert core.get_data(Capability.RF_T_ALBEDO, 1770.5).value(Unit.W_M2) == -0.2

    def test_warmingfactor_defaults_to_one(self, carbon_core):
        """A missing warming factor is set to 1."""
        _, kernel = _prepared(carbon_core)
        assert kernel.warmingfactor == {"global": 1.0}

    def test_global_mixed_with_biomes_raises(self, carbon_core):
        """'global' cannot coexist with named biomes."""
        core = carbon_core()
        core.set_data("tropical.veg_c", UnitVal(100.0, Unit.PGC))
        with pytest.raises(
            ContractViolationError, match="both global and biome-specific"
        ):
            core.prepare()

    def test_incomplete_biome_raises(self, carbon_core):
        """Every biome needs every parameter."""
        core = carbon_core(biomes=TWO_BIOMES)
        kernel = core.get_component("simpleNbox")
        del kernel.q10_rh["boreal"]
        with pytest.raises(ContractViolationError, match="no boreal value for q10_rh"):
            core.prepare()

    def test_mismatched_pool_count_raises(self, carbon_core):
        """Pool maps must have one entry per biome."""
        core = carbon_core(biomes=TWO_BIOMES)
        kernel = core.get_component("simpleNbox")
        del kernel.soil_c["tropical"]
        with pytest.raises(ContractViolationError, match="soil_c and biome_list"):
            core.prepare()

    def test_partition_fractions_checked(self, carbon_core):
        """f_nppv + f_nppd must not exceed one."""
        core = carbon_core()
        core.set_data(Capability.F_NPPD, 0.7)
        with pytest.raises(ContractViolationError, match="f_nppv \\+ f_nppd > 1"):
            core.prepare()

    def test_negative_beta_raises(self, carbon_core):
        """beta must be non-negative."""
        core = carbon_core()
        core.set_data(Capability.BETA, -0.1)
        with pytest.raises(ContractViolationError, match="beta < 0"):
            core.prepare()


class TestGetData:
    """Tests for published values."""

    def test_pools_sum_over_biomes(self, carbon_core):
        """Unprefixed pool queries sum over biomes."""
        core = carbon_core(biomes=TWO_BIOMES)
        tropical = equilibrium_pools(**TWO_BIOMES["tropical"])["veg_c"]
        boreal = equilibrium_pools(**TWO_BIOMES["boreal"])["veg_c"]
        veg = core.get_data("tropical.veg_c").value(Unit.PGC)
        assert veg == pytest.approx(tropical)
        assert core.get_data(Capability.VEG_C).value(Unit.PGC) == pytest.approx(
            tropical + boreal
        )

    def test_npp_and_rh_at_equilibrium(self, carbon_core):
        """At equilibrium RH balances NPP."""
        core, _ = _prepared(carbon_core)
        npp = core.get_data(Capability.NPP).value(Unit.PGC_YR)
        rh = core.get_data(Capability.RH).value(Unit.PGC_YR)
        assert npp == pytest.approx(50.0)
        assert rh == pytest.approx(npp)

    def test_unknown_biome_raises(self, carbon_core):
        """Queries for a biome that does not exist fail."""
        core = carbon_core()
        with pytest.raises(UnknownCapabilityError):
            core.get_data("tundra.veg_c")

    def test_unrecorded_date_raises(self, carbon_core):
        """Dated queries need a recorded state."""
        core, _ = _prepared(carbon_core)
        with pytest.raises(DateConstraintError, match="no carbon-cycle state"):
            core.get_data(Capability.ATMOSPHERIC_CO2, 1790)

    def test_inputs_readable_before_run(self, carbon_core):
        """Dated inputs do not need a recorded state."""
        core = carbon_core()
        core.set_data(Capability.CO2_CONSTRAIN, UnitVal(300.0, Unit.PPMV_CO2), 1790)
        core.prepare()
        constraint = core.get_data(Capability.CO2_CONSTRAIN, 1790)
        assert constraint.value(Unit.PPMV_CO2) == 300.0
        albedo = core.get_data(Capability.RF_T_ALBEDO, 1790)
        assert albedo.value(Unit.W_M2) == -0.2


class TestSolverInterface:
    """Tests for the methods called by the carbon-cycle solver."""

    def test_get_c_values_fills_state(self, carbon_core):
        """get_c_values aggregates the pools into the state vector."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        pools = equilibrium_pools(**GLOBAL_BIOME)
        assert c[Pool.ATMOS] == pytest.approx(C0 * PPMVCO2_TO_PGC)
        assert c[Pool.VEG] == pytest.approx(pools["veg_c"])
        assert c[Pool.SOIL] == pytest.approx(pools["soil_c"])
        assert c[Pool.OCEAN] == pytest.approx(900.0 + 37100.0)
        assert c[Pool.EARTH] == 5500.0

    def test_co2_fertilization(self, carbon_core):
        """co2fert = 1 + beta * ln(Ca / C0)."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        c[Pool.ATMOS] = 2 * C0 * PPMVCO2_TO_PGC
        kernel.slowparameval(1745, c)
        assert kernel.co2fert["global"] == pytest.approx(1 + 0.36 * math.log(2))

    def test_derivatives_zero_at_equilibrium(self, carbon_core):
        """Every derivative vanishes at equilibrium."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        kernel.slowparameval(1745, c)
        dcdt = new_state_vector()
        assert kernel.calcderivs(1745.5, c, dcdt) == 0
        assert dcdt == pytest.approx(new_state_vector(), abs=1e-10)

    def test_negative_emissions_are_ccs(self, carbon_core):
        """Negative fossil emissions move carbon from the atmosphere to the earth."""
        _, kernel = _prepared(
            carbon_core, ffi=([1745, 1800], [-2.0, -2.0])
        )
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        kernel.slowparameval(1745, c)
        dcdt = new_state_vector()
        kernel.calcderivs(1745.5, c, dcdt)
        assert dcdt[Pool.ATMOS] == pytest.approx(-2.0)
        assert dcdt[Pool.EARTH] == pytest.approx(2.0)

    def test_luc_split_across_land_pools(self, carbon_core):
        """Land-use emissions come out of vegetation, detritus and soil."""
        _, kernel = _prepared(carbon_core, luc=([1745, 1800], [1.0, 1.0]))
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        kernel.slowparameval(1745, c)
        dcdt = new_state_vector()
        kernel.calcderivs(1745.5, c, dcdt)
        assert dcdt[Pool.ATMOS] == pytest.approx(1.0)
        assert dcdt[Pool.VEG] == pytest.approx(-0.1)
        assert dcdt[Pool.DET] == pytest.approx(-0.01)
        assert dcdt[Pool.SOIL] == pytest.approx(-0.89)

    def test_yearfraction_out_of_bounds_raises(self, carbon_core):
        """A stash more than one year after the step start fails."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        with pytest.raises(DateConstraintError, match="yearfraction"):
            kernel.stash_c_values(1747, c)

    def test_mass_imbalance_raises(self, carbon_core):
        """Carbon appearing between steps is detected."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        kernel.stash_c_values(1746, c)
        c[Pool.VEG] += 1.0
        with pytest.raises(
            MassConservationError, match="mass not conserved"
        ) as excinfo:
            kernel.stash_c_values(1747, c)
        assert excinfo.value.diff == pytest.approx(1.0)

    def test_negative_pool_raises(self, carbon_core):
        """A solver result with a negative land pool is rejected."""
        _, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1745, c)
        c[Pool.DET] = -1.0
        with pytest.raises(ContractViolationError, match="cannot be negative"):
            kernel.stash_c_values(1746, c)

    def test_constraint_dumps_residual_to_deep_ocean(self, carbon_core):
        """A CO2 constraint pins the atmosphere; the excess goes to the deep ocean."""
        core = carbon_core()
        core.set_data(Capability.CO2_CONSTRAIN, UnitVal(400.0, Unit.PPMV_CO2), 1750)
        core.prepare()
        kernel = core.get_component("simpleNbox")

        c = new_state_vector()
        kernel.get_c_values(1749, c)
        c[Pool.ATMOS] = 420.0 * PPMVCO2_TO_PGC
        kernel.stash_c_values(1750, c)

        residual = 20.0 * PPMVCO2_TO_PGC
        assert kernel.Ca.value(Unit.PPMV_CO2) == 400.0
        assert kernel.atmos_c.value(Unit.PGC) == pytest.approx(400.0 * PPMVCO2_TO_PGC)
        assert core.get_data(Capability.ATMOSPHERIC_C_RESIDUAL, 1750).value(
            Unit.PGC
        ) == pytest.approx(residual)
        assert core.get_data(Capability.OCEAN_C_DEEP).value(Unit.PGC) == pytest.approx(
            37100.0 + residual
        )
        ca = core.get_data(Capability.ATMOSPHERIC_CO2, 1750)
        assert ca.value(Unit.PPMV_CO2) == 400.0

    def test_no_constraint_no_residual(self, carbon_core):
        """Without a constraint the residual is zero and the ocean is untouched."""
        core, kernel = _prepared(carbon_core)
        c = new_state_vector()
        kernel.get_c_values(1749, c)
        kernel.stash_c_values(1750, c)
        assert kernel.residual == UnitVal(0.0, Unit.PGC)
        deep = core.get_data(Capability.OCEAN_C_DEEP).value(Unit.PGC)
        assert deep == pytest.approx(37100.0)

    def test_constraint_matching_atmosphere_dumps_nothing(
        self, carbon_core, monkeypatch
    ):
        """A constraint equal to the current Ca leaves the deep ocean alone."""
        core = carbon_core()
        core.set_data(Capability.CO2_CONSTRAIN, UnitVal(C0, Unit.PPMV_CO2), 1750)
        core.prepare()
        kernel = core.get_component("simpleNbox")

        sent = []
        send_message = core.send_message

        def recording_send(message, datum, info=None):
            sent.append(message)
            return send_message(message, datum, info)

        monkeypatch.setattr(core, "send_message", recording_send)

        c = new_state_vector()
        kernel.get_c_values(1749, c)
        c[Pool.ATMOS] = C0 / PGC_TO_PPMVCO2
        kernel.stash_c_values(1750, c)

        assert kernel.residual.magnitude == 0.0
        assert MessageType.DUMP_TO_DEEP_OCEAN not in sent
        deep = core.get_data(Capability.OCEAN_C_DEEP).value(Unit.PGC)
        assert deep == pytest.approx(37100.0)
        assert kernel.Ca.value(Unit.PPMV_CO2) == C0
