"""
File-based configuration of model runs.

- TOML configuration files, layered from defaults to experiment overrides
- Parameter metadata with range validation
- A registry of component classes that files can name

Example:
    >>> from scmcore.config import build_core, load_model_config
    >>> config = load_model_config("configs/nbox/defaults.toml")
    >>> with build_core(config) as core:
    ...     core.run(2100)
"""

from __future__ import annotations

from .base import InputSpec, ModelConfig, TimeConfig
from .builder import build_core, build_nbox_core, load_model_config
from .exceptions import (
    ComponentNotFoundError,
    ComponentRoleError,
    ConfigError,
    IncompatibleSchemaError,
    ValidationError,
)
from .loader import deep_merge, load_config, load_config_layers
from .models import (
    BiomeParameters,
    CarbonCycleParameters,
    ForcingParameters,
    NboxConfig,
    OceanParameters,
    SolverParameters,
)
from .parameters import (
    ParameterMetadata,
    check_parameters,
    get_parameter_metadata,
    parameter,
    validate_parameters,
)
from .registry import ComponentRegistry, component_registry, register_component
from .validation import SCHEMA_VERSION, check_schema_version, parse_unit

__all__ = [
    "SCHEMA_VERSION",
    "BiomeParameters",
    "CarbonCycleParameters",
    "ComponentNotFoundError",
    "ComponentRegistry",
    "ComponentRoleError",
    "ConfigError",
    "ForcingParameters",
    "IncompatibleSchemaError",
    "InputSpec",
    "ModelConfig",
    "NboxConfig",
    "OceanParameters",
    "ParameterMetadata",
    "SolverParameters",
    "TimeConfig",
    "ValidationError",
    "build_core",
    "build_nbox_core",
    "check_parameters",
    "check_schema_version",
    "component_registry",
    "deep_merge",
    "get_parameter_metadata",
    "load_config",
    "load_config_layers",
    "load_model_config",
    "parameter",
    "parse_unit",
    "register_component",
    "validate_parameters",
]
