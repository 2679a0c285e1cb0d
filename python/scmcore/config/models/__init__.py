"""
Model-specific configuration classes.

- nbox: simpleNbox carbon cycle with the two-box ocean and forcing aggregator
"""

from __future__ import annotations

from scmcore.config.models.nbox import (
    BiomeParameters,
    CarbonCycleParameters,
    ForcingParameters,
    NboxConfig,
    OceanParameters,
    SolverParameters,
)

__all__ = [
    "BiomeParameters",
    "CarbonCycleParameters",
    "ForcingParameters",
    "NboxConfig",
    "OceanParameters",
    "SolverParameters",
]
