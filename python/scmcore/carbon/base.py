"""Interface shared by components whose pools are integrated by the carbon solver."""

from __future__ import annotations

from abc import abstractmethod

import numpy as np

from scmcore.carbon.state_vector import N_POOLS
from scmcore.component import Component

__all__ = ["CarbonCycleModel"]


class CarbonCycleModel(Component):
    """
    A component that exposes carbon pools to the ODE solver.

    The solver calls, for every step, `slowparameval` once, `calcderivs` any
    number of times at dates of its choosing, and `stash_c_values` once at the
    end of the step. `calcderivs` must not change the component's state.
    """

    def ncpool(self) -> int:
        """Number of slots in the state vector."""
        return N_POOLS

    @abstractmethod
    def get_c_values(self, t: float, c: np.ndarray) -> None:
        """Fill the slots this model owns in `c` from its pools."""

    @abstractmethod
    def calcderivs(self, t: float, c: np.ndarray, dcdt: np.ndarray) -> int:
        """Fill the derivatives of the slots this model owns; return 0 on success."""

    @abstractmethod
    def slowparameval(self, t: float, c: np.ndarray) -> None:
        """Update parameters held constant through a solver step."""

    @abstractmethod
    def stash_c_values(self, t: float, c: np.ndarray) -> None:
        """Copy solved slots back into the model's pools."""
