"""Shared fixtures for building small carbon-cycle and forcing runs."""

from __future__ import annotations

from collections.abc import Callable, Mapping

import numpy as np
import pytest

from scmcore.capabilities import Capability, biome_setting
from scmcore.carbon import CarbonCycleSolver, SimpleNbox, SimpleOcean
from scmcore.carbon.nbox import (
    DETRITUS_RESPIRATION_RATE,
    DETRITUS_TO_SOIL_RATE,
    LITTER_RATE,
    SOIL_RESPIRATION_RATE,
)
from scmcore.components import PrescribedComponent, make_series
from scmcore.core import Core
from scmcore.units import Unit, UnitVal

C0 = 277.15

GLOBAL_BIOME = {
    "npp_flux0": 50.0,
    "beta": 0.36,
    "q10_rh": 2.0,
    "f_nppv": 0.35,
    "f_nppd": 0.60,
    "f_litterd": 0.98,
}


def equilibrium_pools(
    npp_flux0: float, f_nppv: float, f_nppd: float, f_litterd: float, **_: float
) -> dict[str, float]:
    """Vegetation, detritus and soil pools with zero net flux at Ca = C0, T = 0."""
    veg = f_nppv * npp_flux0 / LITTER_RATE
    litter = LITTER_RATE * veg
    det = (npp_flux0 * f_nppd + f_litterd * litter) / (
        DETRITUS_RESPIRATION_RATE + DETRITUS_TO_SOIL_RATE
    )
    soil = (
        npp_flux0 * (1.0 - f_nppv - f_nppd)
        + (1.0 - f_litterd) * litter
        + DETRITUS_TO_SOIL_RATE * det
    ) / SOIL_RESPIRATION_RATE
    return {"veg_c": veg, "detritus_c": det, "soil_c": soil}


def build_carbon_core(  # noqa: PLR0913
    start: float = 1745.0,
    end: float = 1800.0,
    tgav: float | tuple[list[float], list[float]] = 0.0,
    biomes: Mapping[str, Mapping[str, float]] | None = None,
    earth_c: float = 5500.0,
    ffi: tuple[list[float], list[float]] | None = None,
    luc: tuple[list[float], list[float]] | None = None,
    do_spinup: bool = False,
) -> Core:
    """
    Kernel, ocean and solver driven by a prescribed temperature pathway.

    Biome pools default to their equilibrium values, so with no emissions and
    zero temperature nothing changes.
    """
    core = Core(start_date=start, end_date=end, do_spinup=do_spinup)
    core.add_component(SimpleNbox())
    core.add_component(SimpleOcean())
    core.add_component(CarbonCycleSolver())

    if isinstance(tgav, tuple):
        dates, values = tgav
    else:
        dates, values = [start, end], [tgav, tgav]
    core.add_component(
        PrescribedComponent(
            "temperature",
            series={
                Capability.GLOBAL_TEMP: make_series(
                    Capability.GLOBAL_TEMP, dates, values, Unit.DEGC
                )
            },
        )
    )

    core.set_data(Capability.PREINDUSTRIAL_CO2, UnitVal(C0, Unit.PPMV_CO2))
    core.set_data(Capability.EARTH_C, UnitVal(earth_c, Unit.PGC))
    core.set_data(Capability.F_LUCV, 0.1)
    core.set_data(Capability.F_LUCD, 0.01)

    biomes = biomes if biomes is not None else {"global": GLOBAL_BIOME}
    single_global = list(biomes) == ["global"]
    for biome, params in biomes.items():
        values = equilibrium_pools(**params) | dict(params)
        for name, value in values.items():
            setting = name if single_global else biome_setting(biome, name)
            if name in ("veg_c", "detritus_c", "soil_c"):
                core.set_data(setting, UnitVal(value, Unit.PGC))
            elif name == "npp_flux0":
                core.set_data(setting, UnitVal(value, Unit.PGC_YR))
            else:
                core.set_data(setting, value)

    if ffi is not None:
        core.set_series(Capability.FFI_EMISSIONS, *ffi, Unit.PGC_YR)
    if luc is not None:
        core.set_series(Capability.LUC_EMISSIONS, *luc, Unit.PGC_YR)
    return core


def total_carbon(core: Core, date: float) -> float:
    """Carbon summed over every reservoir at `date` (Pg C)."""
    names = (
        Capability.ATMOSPHERIC_C,
        Capability.VEG_C,
        Capability.DETRITUS_C,
        Capability.SOIL_C,
        Capability.OCEAN_C,
        Capability.EARTH_C,
    )
    return float(np.sum([core.get_data(name, date).magnitude for name in names]))


@pytest.fixture
def carbon_core() -> Callable[..., Core]:
    """Factory for carbon-cycle cores; see `build_carbon_core`."""
    return build_carbon_core


@pytest.fixture
def preindustrial() -> PrescribedComponent:
    """Publishes only the preindustrial CO2 concentration."""
    return PrescribedComponent(
        "preindustrial",
        constants={Capability.PREINDUSTRIAL_CO2: UnitVal(C0, Unit.PPMV_CO2)},
    )
