"""Integration tests for simpleNbox model configuration."""

from pathlib import Path

import pytest

from conftest import total_carbon
from scmcore.capabilities import Capability
from scmcore.config import (
    BiomeParameters,
    ComponentNotFoundError,
    ComponentRoleError,
    IncompatibleSchemaError,
    InputSpec,
    NboxConfig,
    OceanParameters,
    TimeConfig,
    ValidationError,
    build_core,
    load_config,
    load_config_layers,
    load_model_config,
)
from scmcore.config.builder import PRESCRIBED_NAME
from scmcore.units import Unit

CONFIGS_DIR = Path(__file__).parent.parent / "configs" / "nbox"


def _tgav_input(start=1745, end=1800, value=0.0):
    return {"unit": "degC", "years": [start, end], "values": [value, value]}


def _minimal(**tables):
    data = {"time": {"start": 1745, "end": 1800}, "inputs": {"Tgav": _tgav_input()}}
    data.update(tables)
    return data


class TestConfigToCore:
    """Tests for the load config -> build core workflow."""

    def test_build_from_defaults_toml(self):
        """defaults.toml builds every component plus the prescribed inputs."""
        config = load_model_config(CONFIGS_DIR / "defaults.toml")
        core = build_core(config)

        names = {c.component_name for c in core.components()}
        assert names == {
            "simpleNbox",
            "ocean",
            "carbon_cycle_solver",
            "forcing",
            PRESCRIBED_NAME,
        }
        assert core.do_spinup is True
        assert core.get_start_date() == 1745.0
        assert core.get_end_date() == 2100.0

    def test_defaults_run(self):
        """The default configuration spins up and runs with carbon conserved."""
        core = build_core(load_model_config(CONFIGS_DIR / "defaults.toml"))
        core.run(1800)

        ca = core.get_data(Capability.ATMOSPHERIC_CO2, 1800).value(Unit.PPMV_CO2)
        assert 277.15 < ca < 290.0
        assert total_carbon(core, 1800) == pytest.approx(total_carbon(core, 1745), abs=1e-3)

    def test_build_from_layered_config(self):
        """Tuning files override only the parameters they name."""
        config = load_model_config(
            CONFIGS_DIR / "defaults.toml",
            CONFIGS_DIR / "tuning" / "high-beta.toml",
        )
        assert config.name == "nbox-high-beta"
        assert config.biomes["global"].beta == 0.7
        assert config.biomes["global"].q10_rh == 2.0
        assert config.ocean.k_sd == 0.005
        assert config.ocean.k_ao == 0.02

        core = build_core(config)
        assert core.get_component("ocean").k_sd == 0.005

    def test_build_from_typed_config(self):
        """An NboxConfig built in Python produces a runnable core."""
        config = NboxConfig(
            name="typed",
            time=TimeConfig(start=1745, end=1760),
            inputs={"Tgav": InputSpec(unit="degC", years=[1745, 1760], values=[0.0, 0.0])},
            ocean=OceanParameters(k_ao=0.03),
        )
        core = build_core(config)
        core.run(1750)
        assert core.get_component("ocean").k_ao == 0.03
        assert core.get_data(Capability.ATMOSPHERIC_CO2, 1750).magnitude > 0.0

    def test_build_from_dict(self):
        """A plain dict, as read from TOML, can be built directly."""
        core = build_core(_minimal(solver={"method": "DOP853"}))
        assert core.get_component("carbon_cycle_solver").method == "DOP853"

    def test_carbon_parameters_reach_kernel(self):
        """Carbon and forcing parameters are sent to their components."""
        core = build_core(
            _minimal(
                carbon={"C0": 280.0, "earth_c": 6000.0},
                forcing={"baseyear": 1760, "delta_co2": 0.0},
            )
        )
        assert core.get_data(Capability.PREINDUSTRIAL_CO2).value(Unit.PPMV_CO2) == 280.0
        assert core.get_data(Capability.EARTH_C).value(Unit.PGC) == 6000.0
        assert core.get_data(Capability.RF_BASEYEAR).magnitude == 1760.0
        assert core.get_data(Capability.DELTA_CO2).value(Unit.UNITLESS) == 0.0

    def test_multiple_biomes(self):
        """Named biomes are set with biome-prefixed names."""
        core = build_core(
            _minimal(
                biomes={
                    "tropical": {"veg_c": 300.0, "npp_flux0": 30.0},
                    "boreal": {"veg_c": 250.0, "npp_flux0": 26.2},
                }
            )
        )
        assert core.get_data("tropical.veg_c").value(Unit.PGC) == 300.0
        assert core.get_data("boreal.veg_c").value(Unit.PGC) == 250.0
        assert core.get_data(Capability.VEG_C).value(Unit.PGC) == 550.0

    def test_components_are_pluggable(self):
        """Component roles name classes in the registry."""
        with pytest.raises(ComponentNotFoundError, match="'LayeredOcean' not found"):
            build_core(_minimal(components={"ocean": "LayeredOcean"}))

    def test_component_must_fit_role(self):
        """The ocean role needs a carbon-cycle model."""
        with pytest.raises(ComponentRoleError, match="as the ocean component"):
            build_core(_minimal(components={"ocean": "ForcingComponent"}))

    def test_unknown_component_role(self):
        """Only the land, ocean, solver and forcing roles can be configured."""
        with pytest.raises(ValidationError, match="unknown roles: atmosphere"):
            build_core(_minimal(components={"atmosphere": "SimpleOcean"}))


class TestInputs:
    """Tests for input and constant handling."""

    def test_inputs_routed(self):
        """Accepted inputs go to their component; others are published."""
        core = build_core(
            _minimal(
                inputs={
                    "Tgav": _tgav_input(value=0.5),
                    "ffi_emissions": {
                        "unit": "Pg C/yr",
                        "years": [1745, 1800],
                        "values": [1.0, 2.0],
                    },
                }
            )
        )
        assert core.get_component_by_capability("Tgav").component_name == PRESCRIBED_NAME
        kernel = core.get_component("simpleNbox")
        assert kernel.ffi_emissions.get(1800).value(Unit.PGC_YR) == 2.0
        assert core.get_data(Capability.GLOBAL_TEMP, 1770).value(Unit.DEGC) == 0.5

    def test_input_from_file(self, tmp_path):
        """Input files are resolved against the configuration's directory."""
        (tmp_path / "tgav.csv").write_text("# year, degC\n1745, 0.0\n1800, 1.0\n")
        (tmp_path / "run.toml").write_text(
            """
[time]
start = 1745
end = 1800

[inputs.Tgav]
unit = "degC"
file = "tgav.csv"
"""
        )
        core = build_core(load_model_config(tmp_path / "run.toml"))
        assert core.get_data(Capability.GLOBAL_TEMP, 1772.5).value(
            Unit.DEGC
        ) == pytest.approx(0.5)

    def test_constants_published(self):
        """Constants are published with their units."""
        core = build_core(
            _minimal(constants={"M0": {"value": 731.41, "unit": "ppbv CH4"}})
        )
        assert core.get_data("M0").value(Unit.PPBV_CH4) == 731.41

    def test_constant_needs_unit(self):
        """Constants without a unit are rejected."""
        with pytest.raises(ValidationError, match="Constant 'M0'"):
            build_core(_minimal(constants={"M0": {"value": 731.41}}))

    def test_unknown_unit(self):
        """Unknown unit strings are rejected."""
        inputs = {"Tgav": {"unit": "K", "years": [1745, 1800], "values": [0, 0]}}
        with pytest.raises(ValidationError, match="Unknown unit 'K'"):
            build_core(_minimal(inputs=inputs))

    def test_required_input_missing_data(self):
        """A required input without data is an error."""
        inputs = {"Tgav": {"unit": "degC", "required": True}}
        with pytest.raises(ValidationError, match="Required input 'Tgav'"):
            build_core(_minimal(inputs=inputs))

    def test_optional_incomplete_input_skipped(self, caplog):
        """An optional input without data is skipped with a warning."""
        inputs = {"Tgav": _tgav_input(), "luc_emissions": {"unit": "Pg C/yr"}}
        core = build_core(_minimal(inputs=inputs))
        assert "luc_emissions" in caplog.text
        assert len(core.get_component("simpleNbox").luc_emissions) == 0

    def test_unknown_input_field(self):
        """Input tables only take the known fields."""
        inputs = {"Tgav": {**_tgav_input(), "scale": 2.0}}
        with pytest.raises(ValidationError, match=r"\[inputs.Tgav\] has unknown parameters"):
            build_core(_minimal(inputs=inputs))


class TestConfigValidation:
    """Tests for rejected configurations."""

    def test_unknown_parameter(self):
        """Misspelt parameters are reported with their table."""
        with pytest.raises(ValidationError, match=r"\[ocean\] has unknown parameters: k_xx"):
            build_core(_minimal(ocean={"k_xx": 0.1}))

    def test_out_of_range_parameter(self):
        """Out-of-range values are rejected when the config is read."""
        with pytest.raises(ValidationError, match="outside valid range"):
            build_core(_minimal(biomes={"global": {"beta": -1.0}}))

    def test_unknown_model_type(self):
        """Only nbox models can be built."""
        with pytest.raises(ValidationError, match="Unknown model type"):
            build_core(_minimal(model={"type": "two-layer"}))

    def test_incompatible_schema(self):
        """A newer schema major version is refused."""
        with pytest.raises(IncompatibleSchemaError):
            build_core(_minimal(schema={"version": "2.0.0"}))

    def test_missing_time(self):
        """A run period is required."""
        with pytest.raises(ValidationError, match=r"\[time\]"):
            build_core({"inputs": {"Tgav": _tgav_input()}})

    def test_no_files(self):
        """load_model_config needs at least one file."""
        with pytest.raises(ValidationError):
            load_model_config()

    def test_typed_biome_validation(self):
        """BiomeParameters validates on construction."""
        with pytest.raises(ValidationError, match="f_nppv"):
            BiomeParameters(f_nppv=0.9, f_nppd=0.2)


class TestLayeredConfigMerge:
    """Tests for layered configuration merging."""

    def test_override_specific_params(self):
        """Override files only change what they name."""
        base = load_config(CONFIGS_DIR / "defaults.toml")
        layered = load_config_layers(
            CONFIGS_DIR / "defaults.toml",
            CONFIGS_DIR / "tuning" / "high-beta.toml",
        )
        assert layered["biomes"]["global"]["beta"] == 0.7
        assert layered["biomes"]["global"]["soil_c"] == base["biomes"]["global"]["soil_c"]
        assert layered["inputs"] == base["inputs"]
        assert layered["time"] == base["time"]
