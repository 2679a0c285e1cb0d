"""Build a ready-to-run `Core` from configuration."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any

from scmcore.capabilities import Capability, biome_setting
from scmcore.components import make_series
from scmcore.core import Core
from scmcore.units import Unit, UnitVal

from .base import ModelConfig
from .exceptions import ValidationError
from .loader import load_config_layers
from .models.nbox import NboxConfig
from .registry import component_registry
from .validation import parse_unit

logger = logging.getLogger(__name__)

__all__ = ["build_core", "build_nbox_core", "load_model_config"]

#: Name of the component publishing configured inputs and constants
PRESCRIBED_NAME = "inputs"

_BIOME_UNITS = {
    Capability.VEG_C: Unit.PGC,
    Capability.DETRITUS_C: Unit.PGC,
    Capability.SOIL_C: Unit.PGC,
    Capability.NPP_FLUX0: Unit.PGC_YR,
}

_FORCING_SETTINGS = {
    "alpha": (Capability.ACO2, Unit.W_M2),
    "delta_co2": (Capability.DELTA_CO2, Unit.UNITLESS),
    "delta_ch4": (Capability.DELTA_CH4, Unit.UNITLESS),
    "delta_n2o": (Capability.DELTA_N2O, Unit.UNITLESS),
    "rho_bc": (Capability.RHO_BC, Unit.W_M2_TG),
    "rho_oc": (Capability.RHO_OC, Unit.W_M2_TG),
    "rho_so2": (Capability.RHO_SO2, Unit.W_M2_GG),
}


def load_model_config(*paths: str | Path) -> NboxConfig:
    """
    Read one or more layered TOML files into an `NboxConfig`.

    Relative input paths are resolved against the directory of the last file.
    """
    if not paths:
        msg = "At least one configuration file is required"
        raise ValidationError(msg)
    data = load_config_layers(*paths)
    return NboxConfig.from_dict(data, base_dir=Path(paths[-1]).parent)


def build_core(config: ModelConfig | dict[str, Any]) -> Core:
    """Build a core from configuration.

    Parameters
    ----------
    config
        Model configuration (ModelConfig instance or dict from TOML)

    Returns
    -------
    Core
        Core with every component attached and configured

    Raises
    ------
    ValidationError
        If model_type is unknown or configuration is invalid
    """
    if isinstance(config, dict):
        model_type = config.get("model", {}).get("type", "nbox")
    else:
        model_type = config.model_type

    if model_type == "nbox":
        return build_nbox_core(config)

    msg = f"Unknown model type: {model_type!r}"
    raise ValidationError(msg)


def build_nbox_core(config: NboxConfig | dict[str, Any]) -> Core:
    """Build the simpleNbox carbon cycle, two-box ocean, solver and forcing.

    Inputs accepted by one of those components (emissions, CO2 constraint,
    albedo, total forcing constraint) are sent to it; every other input and
    constant is published by a prescribed-data component named
    ``"inputs"``.
    """
    if isinstance(config, dict):
        config = NboxConfig.from_dict(config)
    if config.time is None:
        msg = "The [time] table is required"
        raise ValidationError(msg)

    core = Core(
        start_date=config.time.start,
        end_date=config.time.end,
        do_spinup=config.time.spinup,
    )

    params = {"ocean": asdict(config.ocean), "solver": asdict(config.solver)}
    for role, name in config.components.items():
        component = component_registry.create(role, name, **params.get(role, {}))
        logger.debug(f"{role}: {name} as '{component.component_name}'")
        core.add_component(component)

    _set_carbon_parameters(core, config)
    _set_forcing_parameters(core, config)
    _add_inputs(core, config)

    logger.info(
        f"Built '{config.name}' with {len(core.components())} components, "
        f"{config.time.start}-{config.time.end}"
    )
    return core


def _set_carbon_parameters(core: Core, config: NboxConfig) -> None:
    carbon = config.carbon
    core.set_data(Capability.PREINDUSTRIAL_CO2, UnitVal(carbon.C0, Unit.PPMV_CO2))
    core.set_data(Capability.EARTH_C, UnitVal(carbon.earth_c, Unit.PGC))
    core.set_data(Capability.F_LUCV, UnitVal(carbon.f_lucv, Unit.UNITLESS))
    core.set_data(Capability.F_LUCD, UnitVal(carbon.f_lucd, Unit.UNITLESS))

    single_global = list(config.biomes) == ["global"]
    for biome, params in config.biomes.items():
        for name, value in asdict(params).items():
            setting = name if single_global else biome_setting(biome, name)
            unit = _BIOME_UNITS.get(name, Unit.UNITLESS)
            core.set_data(setting, UnitVal(value, unit))


def _set_forcing_parameters(core: Core, config: NboxConfig) -> None:
    params = asdict(config.forcing)
    for name, (capability, unit) in _FORCING_SETTINGS.items():
        core.set_data(capability, UnitVal(params[name], unit))
    if config.forcing.baseyear is not None:
        baseyear = float(config.forcing.baseyear)
        core.set_data(Capability.RF_BASEYEAR, UnitVal(baseyear, Unit.UNITLESS))


def _add_inputs(core: Core, config: NboxConfig) -> None:
    series = {}
    for name, spec in config.inputs.items():
        if not spec.is_complete():
            if spec.required:
                msg = f"Required input '{name}' needs a unit and data"
                raise ValidationError(msg)
            logger.warning(f"Skipping incomplete input '{name}'")
            continue

        unit = parse_unit(spec.unit)
        dates, values = spec.load(config.base_dir)
        if core.check_input(name):
            core.set_series(name, dates, values, unit)
        else:
            series[name] = make_series(name, dates, values, unit)

    constants = {}
    for name, table in config.constants.items():
        try:
            value, unit = float(table["value"]), parse_unit(str(table["unit"]))
        except KeyError as err:
            msg = f"Constant '{name}' needs a value and a unit"
            raise ValidationError(msg) from err
        constants[name] = UnitVal(value, unit)

    if series or constants:
        prescribed = component_registry.create(
            "inputs",
            "PrescribedComponent",
            PRESCRIBED_NAME,
            series=series,
            constants=constants,
        )
        core.add_component(prescribed)
