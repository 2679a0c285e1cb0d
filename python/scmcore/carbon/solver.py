"""
ODE driver for the carbon cycle.

Each model year the solver asks the carbon-cycle kernel for its pools, lets it
update its slow parameters, integrates the pool derivatives over the year with
`scipy.integrate.solve_ivp` and hands the result back to be stashed.
"""

from __future__ import annotations

import numpy as np
from scipy.integrate import solve_ivp

from scmcore.capabilities import Capability
from scmcore.carbon.base import CarbonCycleModel
from scmcore.carbon.state_vector import new_state_vector
from scmcore.component import Component, Input, Output
from scmcore.exceptions import (
    ContractViolationError,
    SolverError,
    UnknownCapabilityError,
)
from scmcore.units import Unit, UnitVal

__all__ = ["CarbonCycleSolver"]


class CarbonCycleSolver(Component):
    """
    Integrates the carbon-cycle kernel one year at a time.

    The kernel is the component providing `Capability.ATMOSPHERIC_C`; it must
    be a `CarbonCycleModel`.

    Parameters
    ----------
    method
        Integration method passed to `solve_ivp`
    rtol
        Relative tolerance
    atol
        Absolute tolerance (Pg C)
    eps_spinup
        Spinup has converged once no pool changes by more than this over a step
    """

    component_name = "carbon_cycle_solver"

    temperature = Input(Capability.GLOBAL_TEMP, unit=Unit.DEGC, required=False)
    solver = Output(Capability.CARBON_CYCLE_SOLVER, unit=Unit.UNITLESS)

    def __init__(
        self,
        method: str = "RK45",
        rtol: float = 1e-8,
        atol: float = 1e-8,
        eps_spinup: float = 0.001,
    ) -> None:
        self.method = method
        self.rtol = rtol
        self.atol = atol
        self.eps_spinup = eps_spinup
        self.cmodel: CarbonCycleModel | None = None
        self.t = 0.0

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """Report the date the solver has integrated to."""
        if name == Capability.CARBON_CYCLE_SOLVER:
            return UnitVal(self.t, Unit.UNITLESS)
        raise UnknownCapabilityError(name, self.component_name)

    def prepare_to_run(self) -> None:  # noqa: D102
        core = self._require_core()
        cmodel = core.get_component_by_capability(Capability.ATMOSPHERIC_C)
        if not isinstance(cmodel, CarbonCycleModel):
            msg = (
                f"{self.component_name}: '{cmodel.component_name}' is not a "
                "carbon-cycle model"
            )
            raise ContractViolationError(msg)
        self.cmodel = cmodel
        self.t = core.get_start_date()

    def _derivs(self, t: float, y: np.ndarray) -> np.ndarray:
        dcdt = new_state_vector()
        status = self.cmodel.calcderivs(t, y, dcdt)
        if status != 0:
            msg = f"{self.component_name}: calcderivs returned status {status} at t={t}"
            raise SolverError(msg)
        return dcdt

    def _step(self, t0: float, t1: float) -> tuple[np.ndarray, np.ndarray]:
        """Integrate from `t0` to `t1`, returning the initial and final state."""
        c = new_state_vector()
        self.cmodel.get_c_values(t0, c)
        self.cmodel.slowparameval(t0, c)

        result = solve_ivp(
            fun=self._derivs,
            t_span=(t0, t1),
            y0=c,
            method=self.method,
            rtol=self.rtol,
            atol=self.atol,
        )
        if not result.success:
            msg = (
                f"{self.component_name}: integration from {t0} to {t1} failed: "
                f"{result.message}"
            )
            raise SolverError(msg)

        final = np.asarray(result.y[:, -1], dtype=float)
        self.cmodel.stash_c_values(t1, final)
        return c, final

    def run(self, run_to_date: float) -> None:
        """Integrate the year ending at `run_to_date`."""
        t0 = float(run_to_date) - 1.0
        self.logger.debug(f"Integrating carbon cycle from {t0} to {run_to_date}")
        self._step(t0, float(run_to_date))
        self.t = float(run_to_date)

    def run_spinup(self, step: int) -> bool:
        """Integrate one pseudo-year; converged when no pool moves by `eps_spinup`."""
        before, _ = self._step(float(step - 1), float(step))
        after = new_state_vector()
        self.cmodel.get_c_values(float(step), after)
        change = float(np.max(np.abs(after - before)))
        self.logger.debug(f"Spinup step {step}: largest pool change {change}")
        converged = change < self.eps_spinup
        if converged:
            self.t = self._require_core().get_start_date()
        return converged

    def reset(self, date: float) -> None:  # noqa: D102
        self.t = float(date)
        self.logger.info(f"{self.component_name} reset to time={date}")
