"""Tests for the two-box ocean carbon model."""

from __future__ import annotations

import pytest

from conftest import C0
from scmcore.capabilities import Capability
from scmcore.carbon import SimpleOcean
from scmcore.carbon.nbox import PPMVCO2_TO_PGC
from scmcore.carbon.state_vector import Pool, new_state_vector
from scmcore.core import Core
from scmcore.exceptions import ContractViolationError, UnknownCapabilityError
from scmcore.messages import MessageData, MessageType
from scmcore.units import Unit, UnitVal


def _ocean(preindustrial, **kwargs):
    core = Core(1745, 1800)
    core.add_component(preindustrial)
    ocean = core.add_component(SimpleOcean(**kwargs))
    core.prepare()
    return core, ocean


class TestSimpleOcean:
    """Tests for SimpleOcean."""

    def test_total_is_sum_of_boxes(self, preindustrial):
        """ocean_c is surface plus deep carbon."""
        core, _ = _ocean(preindustrial)
        assert core.get_data(Capability.OCEAN_C).value(Unit.PGC) == 38000.0

    def test_atmospheric_reference_from_c0(self, preindustrial):
        """The air-sea reference state is the preindustrial atmosphere."""
        _, ocean = _ocean(preindustrial)
        assert ocean.atmos_c0 == pytest.approx(C0 * PPMVCO2_TO_PGC)

    def test_negative_rate_raises(self, preindustrial):
        """Exchange rates must be non-negative."""
        with pytest.raises(ContractViolationError, match="exchange rates"):
            _ocean(preindustrial, k_ao=-0.1)

    def test_settings(self, preindustrial):
        """Pools and rates can be set through the hub."""
        core = Core(1745, 1800)
        core.add_component(preindustrial)
        ocean = core.add_component(SimpleOcean())
        core.set_data(Capability.OCEAN_C_SURFACE, UnitVal(1000.0, Unit.PGC))
        core.set_data(Capability.OCEAN_K_SD, 0.05)
        assert ocean.surface_c0 == UnitVal(1000.0, Unit.PGC)
        assert ocean.k_sd == 0.05

    def test_uptake_follows_atmospheric_excess(self, preindustrial):
        """Air-sea flux is k_ao times the atmospheric excess over the reference."""
        _, ocean = _ocean(preindustrial)
        c = new_state_vector()
        ocean.get_c_values(1745, c)
        c[Pool.ATMOS] = ocean.atmos_c0 + 10.0
        dcdt = new_state_vector()
        assert ocean.calcderivs(1745.5, c, dcdt) == 0
        assert dcdt[Pool.OCEAN] == pytest.approx(0.2)

    def test_stash_mixes_toward_deep(self, preindustrial):
        """Uptake lands in the surface box and relaxes toward the deep box."""
        core, ocean = _ocean(preindustrial)
        c = new_state_vector()
        ocean.get_c_values(1745, c)
        c[Pool.OCEAN] += 10.0
        ocean.stash_c_values(1746, c)
        assert ocean.surface_c.value(Unit.PGC) == pytest.approx(909.9)
        assert ocean.deep_c.value(Unit.PGC) == pytest.approx(37100.1)
        assert core.get_data(Capability.OCEAN_CFLUX, 1746).value(
            Unit.PGC_YR
        ) == pytest.approx(10.0)
        assert core.get_data(Capability.OCEAN_C, 1746).value(Unit.PGC) == pytest.approx(
            38010.0
        )

    def test_dump_to_deep_ocean(self, preindustrial):
        """DUMP_TO_DEEP_OCEAN adds the residual to the deep box."""
        core, ocean = _ocean(preindustrial)
        core.send_message(
            MessageType.DUMP_TO_DEEP_OCEAN,
            Capability.OCEAN_C,
            MessageData(1750, UnitVal(-42.6, Unit.PGC)),
        )
        assert ocean.deep_c.value(Unit.PGC) == pytest.approx(37057.4)
        assert ocean.surface_c.value(Unit.PGC) == 900.0

    def test_reset_restores_boxes(self, preindustrial):
        """reset() restores the recorded boxes and drops later records."""
        _, ocean = _ocean(preindustrial)
        c = new_state_vector()
        ocean.get_c_values(1745, c)
        c[Pool.OCEAN] += 10.0
        ocean.stash_c_values(1746, c)
        ocean.reset(1745)
        assert ocean.surface_c.value(Unit.PGC) == 900.0
        assert ocean.deep_c.value(Unit.PGC) == 37100.0
        assert not ocean.flux_ts.exists(1746)

    def test_unknown_name_raises(self, preindustrial):
        """Unknown names are rejected."""
        _, ocean = _ocean(preindustrial)
        with pytest.raises(UnknownCapabilityError):
            ocean.get_data("ocean_ph")
