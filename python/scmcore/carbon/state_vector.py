"""
The flat carbon state vector shared with the ODE solver.

The solver sees six unitless slots. The land slots are aggregates of the
per-biome pools; after each solver step the aggregate change is apportioned
back to the biomes. Keeping both directions here makes this module the
conservation boundary between the kernel and the solver.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import IntEnum

import numpy as np

from scmcore.units import FluxPool, Unit, UnitVal, sum_values

__all__ = ["N_POOLS", "Pool", "aggregate", "apportion", "new_state_vector"]


class Pool(IntEnum):
    """Fixed slot positions in the state vector."""

    ATMOS = 0
    VEG = 1
    DET = 2
    SOIL = 3
    OCEAN = 4
    EARTH = 5


N_POOLS = len(Pool)


def new_state_vector() -> np.ndarray:
    """Zero-filled state (or derivative) vector."""
    return np.zeros(N_POOLS, dtype=float)


def aggregate(pools: Mapping[str, FluxPool]) -> float:
    """Sum per-biome pools to the magnitude stored in a land slot (Pg C)."""
    return sum_values(pools.values(), Unit.PGC).value(Unit.PGC)


def apportion(
    pools: Mapping[str, FluxPool],
    new_total: float,
    weights: Mapping[str, float],
) -> tuple[dict[str, FluxPool], UnitVal]:
    """
    Distribute the change in an aggregate land pool across biomes.

    Parameters
    ----------
    pools
        Current per-biome pools
    new_total
        Aggregate value returned by the solver (Pg C)
    weights
        Per-biome share of the change; should sum to one

    Returns
    -------
    tuple[dict[str, FluxPool], UnitVal]
        Updated per-biome pools and the aggregate delta that was distributed
    """
    delta = UnitVal(new_total, Unit.PGC) - sum_values(pools.values(), Unit.PGC)
    updated = {biome: pool + delta * weights[biome] for biome, pool in pools.items()}
    return updated, delta
