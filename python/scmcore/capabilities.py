"""
Names of the quantities exchanged through the message hub.

Fixed capabilities are members of the `Capability` string enumeration, so they
can be used anywhere a plain capability name is expected. The halocarbon names
are generated from `HALOCARBONS`: each halocarbon component publishes its raw
forcing as ``RF_<gas>`` and the forcing aggregator publishes the base-year
adjusted value as ``RFADJ_<gas>``.
"""

from __future__ import annotations

from enum import StrEnum

__all__ = [
    "ADJUSTED_HALO_FORCINGS",
    "BIOME_SEPARATOR",
    "Capability",
    "FORCING_NAME_MAP",
    "FORCING_PARAMETERS",
    "HALOCARBONS",
    "HALO_FORCING_NAMES",
    "biome_setting",
    "split_biome_setting",
]


class Capability(StrEnum):
    """Fixed capability names."""

    # Concentrations and preindustrial values
    ATMOSPHERIC_CO2 = "Ca"
    ATMOSPHERIC_CH4 = "CH4"
    ATMOSPHERIC_N2O = "N2O"
    ATMOSPHERIC_O3 = "O3"
    PREINDUSTRIAL_CO2 = "C0"
    PREINDUSTRIAL_CH4 = "M0"
    PREINDUSTRIAL_N2O = "N0"

    # Emissions
    FFI_EMISSIONS = "ffi_emissions"
    LUC_EMISSIONS = "luc_emissions"
    EMISSIONS_BC = "BC_emissions"
    EMISSIONS_OC = "OC_emissions"
    EMISSIONS_SO2 = "SO2_emissions"
    NATURAL_SO2 = "SN"
    VOLCANIC_SO2 = "SV"

    # Climate
    GLOBAL_TEMP = "Tgav"

    # Carbon pools and fluxes
    ATMOSPHERIC_C = "atmos_c"
    VEG_C = "veg_c"
    DETRITUS_C = "detritus_c"
    SOIL_C = "soil_c"
    EARTH_C = "earth_c"
    NPP = "npp"
    RH = "rh"
    LAND_CFLUX = "atmosland_flux"
    ATMOSPHERIC_C_RESIDUAL = "atmos_c_residual"
    CO2_CONSTRAIN = "CO2_constrain"
    OCEAN_C = "ocean_c"
    OCEAN_C_SURFACE = "ocean_c_surface"
    OCEAN_C_DEEP = "ocean_c_deep"
    OCEAN_CFLUX = "atm_ocean_flux"
    CARBON_CYCLE_SOLVER = "carbon_cycle_solver"
    OCEAN_K_AO = "k_ao"
    OCEAN_K_SD = "k_sd"

    # Carbon-cycle parameters
    BETA = "beta"
    Q10_RH = "q10_rh"
    WARMINGFACTOR = "warmingfactor"
    NPP_FLUX0 = "npp_flux0"
    F_NPPV = "f_nppv"
    F_NPPD = "f_nppd"
    F_LITTERD = "f_litterd"
    F_LUCV = "f_lucv"
    F_LUCD = "f_lucd"

    # Forcings
    RF_TOTAL = "FTOT"
    RF_BASEYEAR = "baseyear"
    RF_CO2 = "FCO2"
    RF_CH4 = "FCH4"
    RF_N2O = "FN2O"
    RF_H2O_STRAT = "FH2O_strat"
    RF_O3_TROP = "FO3_trop"
    RF_BC = "FBC"
    RF_OC = "FOC"
    RF_SO2 = "FSO2"
    RF_VOL = "FVOL"
    RF_T_ALBEDO = "Ftalbedo"
    FTOT_CONSTRAIN = "Ftot_constrain"

    # Forcing parameters
    ACO2 = "alpha"
    DELTA_CH4 = "delta_ch4"
    DELTA_N2O = "delta_n2o"
    DELTA_CO2 = "delta_co2"
    RHO_BC = "rho_bc"
    RHO_OC = "rho_oc"
    RHO_SO2 = "rho_so2"


#: Scalar parameters the forcing aggregator serves alongside dated forcings
FORCING_PARAMETERS: tuple[Capability, ...] = (
    Capability.ACO2,
    Capability.DELTA_CH4,
    Capability.DELTA_N2O,
    Capability.DELTA_CO2,
    Capability.RHO_BC,
    Capability.RHO_OC,
    Capability.RHO_SO2,
)

HALOCARBONS: tuple[str, ...] = (
    "CF4",
    "C2F6",
    "HFC23",
    "HFC32",
    "HFC4310",
    "HFC125",
    "HFC134a",
    "HFC143a",
    "HFC227ea",
    "HFC245fa",
    "SF6",
    "CFC11",
    "CFC12",
    "CFC113",
    "CFC114",
    "CFC115",
    "CCl4",
    "CH3CCl3",
    "HCFC22",
    "HCFC141b",
    "HCFC142b",
    "halon1211",
    "halon1301",
    "halon2402",
    "CH3Cl",
    "CH3Br",
)

HALO_FORCING_NAMES: tuple[str, ...] = tuple(f"RF_{h}" for h in HALOCARBONS)
ADJUSTED_HALO_FORCINGS: tuple[str, ...] = tuple(f"RFADJ_{h}" for h in HALOCARBONS)

#: Adjusted halocarbon capability -> raw forcing name stored in the forcing map
FORCING_NAME_MAP: dict[str, str] = dict(
    zip(ADJUSTED_HALO_FORCINGS, HALO_FORCING_NAMES, strict=True)
)

#: Separator between biome and parameter in per-biome setting names
BIOME_SEPARATOR = "."


def biome_setting(biome: str, name: str) -> str:
    """
    Build the setting name for a per-biome parameter.

    Examples
    --------
    >>> biome_setting("tropical", "beta")
    'tropical.beta'
    """
    return f"{biome}{BIOME_SEPARATOR}{name}"


def split_biome_setting(name: str) -> tuple[str | None, str]:
    """
    Split a setting name into (biome, parameter).

    Examples
    --------
    >>> split_biome_setting("tropical.beta")
    ('tropical', 'beta')
    >>> split_biome_setting("beta")
    (None, 'beta')
    """
    if BIOME_SEPARATOR in name:
        biome, _, param = name.rpartition(BIOME_SEPARATOR)
        return biome, param
    return None, name
