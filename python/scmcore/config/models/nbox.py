"""
Parameters of the simpleNbox carbon cycle and forcing aggregator.

Defaults follow the Hector v3 global configuration; the terrestrial
parameters are described in Hartin et al. (2015).

Example
-------
    >>> config = NboxConfig(
    ...     name="rcp45",
    ...     time=TimeConfig(start=1745, end=2100),
    ...     biomes={"global": BiomeParameters(beta=0.55)},
    ... )
    >>> config.model_type
    'nbox'
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from scmcore.config.base import InputSpec, ModelConfig, TimeConfig
from scmcore.config.exceptions import ValidationError
from scmcore.config.parameters import check_parameters, parameter
from scmcore.config.validation import (
    SCHEMA_VERSION,
    check_schema_version,
    find_unknown_keys,
)

__all__ = [
    "BiomeParameters",
    "CarbonCycleParameters",
    "ForcingParameters",
    "NboxConfig",
    "OceanParameters",
    "SolverParameters",
]


@dataclass
class BiomeParameters:
    """Initial pools and response factors of one biome.

    Attributes
    ----------
    veg_c, detritus_c, soil_c : float
        Initial carbon pools (Pg C)
    npp_flux0 : float
        Preindustrial net primary production (Pg C/yr)
    beta : float
        CO2 fertilisation exponent
    q10_rh : float
        Temperature sensitivity of heterotrophic respiration
    warmingfactor : float
        Biome warming relative to the global mean
    f_nppv, f_nppd : float
        Fractions of NPP allocated to vegetation and detritus
    f_litterd : float
        Fraction of litterfall going to detritus
    """

    veg_c: float = parameter(
        default=550.0,
        unit="Pg C",
        description="Initial vegetation carbon",
        range=(0.0, 1e5),
    )
    detritus_c: float = parameter(
        default=55.0,
        unit="Pg C",
        description="Initial detritus carbon",
        range=(0.0, 1e5),
    )
    soil_c: float = parameter(
        default=1782.0, unit="Pg C", description="Initial soil carbon", range=(0.0, 1e5)
    )
    npp_flux0: float = parameter(
        default=56.2,
        unit="Pg C/yr",
        description="Preindustrial net primary production",
        range=(0.0, 1e3),
    )
    beta: float = parameter(
        default=0.36,
        unit="unitless",
        description="CO2 fertilisation exponent",
        range=(0.0, 5.0),
        source="Hartin et al. (2015)",
    )
    q10_rh: float = parameter(
        default=2.0,
        unit="unitless",
        description="Q10 of heterotrophic respiration",
        range=(0.1, 10.0),
        source="Hartin et al. (2015)",
    )
    warmingfactor: float = parameter(
        default=1.0,
        unit="unitless",
        description="Biome warming relative to the global mean",
        range=(0.0, 10.0),
    )
    f_nppv: float = parameter(
        default=0.35,
        unit="unitless",
        description="NPP fraction to vegetation",
        range=(0.0, 1.0),
    )
    f_nppd: float = parameter(
        default=0.60,
        unit="unitless",
        description="NPP fraction to detritus",
        range=(0.0, 1.0),
    )
    f_litterd: float = parameter(
        default=0.98,
        unit="unitless",
        description="Litterfall fraction to detritus",
        range=(0.0, 1.0),
    )

    def __post_init__(self) -> None:
        check_parameters(self)
        if self.f_nppv + self.f_nppd > 1.0:
            msg = f"f_nppv + f_nppd must not exceed 1, got {self.f_nppv + self.f_nppd}"
            raise ValidationError(msg)


@dataclass
class CarbonCycleParameters:
    """Global carbon-cycle parameters."""

    C0: float = parameter(
        default=277.15,
        unit="ppmv CO2",
        description="Preindustrial atmospheric CO2",
        range=(100.0, 1000.0),
    )
    earth_c: float = parameter(
        default=5500.0,
        unit="Pg C",
        description="Fossil carbon reservoir",
        range=(0.0, 1e6),
    )
    f_lucv: float = parameter(
        default=0.1,
        unit="unitless",
        description="Fraction of land-use emissions taken from vegetation",
        range=(0.0, 1.0),
    )
    f_lucd: float = parameter(
        default=0.01,
        unit="unitless",
        description="Fraction of land-use emissions taken from detritus",
        range=(0.0, 1.0),
    )

    def __post_init__(self) -> None:
        check_parameters(self)
        if self.f_lucv + self.f_lucd > 1.0:
            msg = f"f_lucv + f_lucd must not exceed 1, got {self.f_lucv + self.f_lucd}"
            raise ValidationError(msg)


@dataclass
class OceanParameters:
    """Two-box ocean parameters."""

    surface_c: float = parameter(
        default=900.0, unit="Pg C", description="Surface ocean carbon", range=(1.0, 1e5)
    )
    deep_c: float = parameter(
        default=37100.0, unit="Pg C", description="Deep ocean carbon", range=(1.0, 1e6)
    )
    k_ao: float = parameter(
        default=0.02,
        unit="1/yr",
        description="Air-sea exchange rate",
        range=(0.0, 1.0),
    )
    k_sd: float = parameter(
        default=0.01,
        unit="1/yr",
        description="Surface to deep ocean exchange rate",
        range=(0.0, 1.0),
    )

    def __post_init__(self) -> None:
        check_parameters(self)


@dataclass
class ForcingParameters:
    """Forcing aggregator parameters.

    A `baseyear` of None lets the aggregator default to the year after the
    model start.
    """

    alpha: float = parameter(
        default=5.35, unit="W/m2", description="CO2 forcing scaling", range=(0.0, 20.0)
    )
    delta_co2: float = parameter(
        default=0.05,
        unit="unitless",
        description="CO2 tropospheric adjustment",
        range=(-1.0, 1.0),
        source="IPCC AR6 7.3.2.1",
    )
    delta_ch4: float = parameter(
        default=-0.14,
        unit="unitless",
        description="CH4 tropospheric adjustment",
        range=(-1.0, 1.0),
        source="IPCC AR6 7.3.2.2",
    )
    delta_n2o: float = parameter(
        default=0.07,
        unit="unitless",
        description="N2O tropospheric adjustment",
        range=(-1.0, 1.0),
        source="IPCC AR6 7.3.2.3",
    )
    rho_bc: float = parameter(
        default=0.0508, unit="W/m2/Tg", description="BC forcing efficiency"
    )
    rho_oc: float = parameter(
        default=-0.00621, unit="W/m2/Tg", description="OC forcing efficiency"
    )
    rho_so2: float = parameter(
        default=-0.00724, unit="W/m2/Gg", description="SO2 forcing efficiency"
    )
    baseyear: int | None = parameter(default=None, description="Forcing base year")

    def __post_init__(self) -> None:
        check_parameters(self)


@dataclass
class SolverParameters:
    """Carbon-cycle ODE solver settings."""

    method: str = parameter(
        default="RK45",
        description="scipy.integrate.solve_ivp method",
        choices=["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"],
    )
    rtol: float = parameter(
        default=1e-8, description="Relative tolerance", range=(0.0, 1.0)
    )
    atol: float = parameter(
        default=1e-8, description="Absolute tolerance", range=(0.0, 1.0)
    )
    eps_spinup: float = parameter(
        default=0.001,
        unit="Pg C",
        description="Largest pool change at which spinup has converged",
        range=(0.0, 10.0),
    )

    def __post_init__(self) -> None:
        check_parameters(self)


def _component_defaults() -> dict[str, str]:
    return {
        "land": "SimpleNbox",
        "ocean": "SimpleOcean",
        "solver": "CarbonCycleSolver",
        "forcing": "ForcingComponent",
    }


def _from_table(cls: type, table: dict[str, Any], section: str) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(table) - known)
    if unknown:
        msg = f"[{section}] has unknown parameters: {', '.join(unknown)}"
        raise ValidationError(msg)
    return cls(**table)


@dataclass
class NboxConfig(ModelConfig):
    """Complete configuration of a simpleNbox carbon-cycle and forcing run.

    Attributes
    ----------
    components : dict[str, str]
        Registered component class for each role: ``land``, ``ocean``,
        ``solver`` and ``forcing``
    carbon : CarbonCycleParameters
        Global carbon-cycle parameters
    biomes : dict[str, BiomeParameters]
        Per-biome parameters. A single biome named ``"global"`` is set with
        unprefixed names.
    ocean : OceanParameters
    forcing : ForcingParameters
    solver : SolverParameters
    """

    model_type: str = "nbox"
    components: dict[str, str] = field(default_factory=_component_defaults)
    carbon: CarbonCycleParameters = field(default_factory=CarbonCycleParameters)
    biomes: dict[str, BiomeParameters] = field(
        default_factory=lambda: {"global": BiomeParameters()}
    )
    ocean: OceanParameters = field(default_factory=OceanParameters)
    forcing: ForcingParameters = field(default_factory=ForcingParameters)
    solver: SolverParameters = field(default_factory=SolverParameters)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], base_dir: str | Path | None = None
    ) -> NboxConfig:
        """
        Build a configuration from the tables of a TOML file.

        Raises
        ------
        IncompatibleSchemaError
            If the file's schema major version is not supported.
        ValidationError
            If a table holds unknown or out-of-range parameters.
        """
        schema = data.get("schema", {}).get("version", SCHEMA_VERSION)
        check_schema_version(schema)

        model = data.get("model", {})
        model_type = model.get("type", "nbox")
        if model_type != "nbox":
            msg = f"Unknown model type: {model_type!r}"
            raise ValidationError(msg)

        time = data.get("time")
        biomes = data.get("biomes") or {"global": {}}

        components = _component_defaults()
        unknown = find_unknown_keys(data.get("components", {}), set(components))
        if unknown:
            msg = f"[components] has unknown roles: {', '.join(unknown)}"
            raise ValidationError(msg)
        components.update(data.get("components", {}))

        return cls(
            name=model.get("name", "nbox"),
            version=model.get("version", "1.0.0"),
            config_schema=schema,
            description=model.get("description", ""),
            time=TimeConfig(**time) if time is not None else None,
            inputs={
                name: _from_table(InputSpec, spec, f"inputs.{name}")
                for name, spec in data.get("inputs", {}).items()
            },
            constants=dict(data.get("constants", {})),
            base_dir=Path(base_dir) if base_dir is not None else None,
            components=components,
            carbon=_from_table(CarbonCycleParameters, data.get("carbon", {}), "carbon"),
            biomes={
                biome: _from_table(BiomeParameters, table, f"biomes.{biome}")
                for biome, table in biomes.items()
            },
            ocean=_from_table(OceanParameters, data.get("ocean", {}), "ocean"),
            forcing=_from_table(ForcingParameters, data.get("forcing", {}), "forcing"),
            solver=_from_table(SolverParameters, data.get("solver", {}), "solver"),
        )
