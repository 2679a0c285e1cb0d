"""
Exceptions raised by the scmcore model core.

All model errors are fatal: they are raised at the innermost point that detects
the problem and are never caught inside the core.

- ModelError: Base exception for all model errors
- ContractViolationError: An invariant or sanity check failed
- UnknownCapabilityError: A message refers to a name nobody provides or accepts
- MassConservationError: Carbon mass changed between solver frames
- DateConstraintError: A date is out of range, missing or not allowed
- UnitMismatchError: Arithmetic on values with incompatible units
- SolverError: The ODE integrator failed
"""

from __future__ import annotations

__all__ = [
    "ContractViolationError",
    "DateConstraintError",
    "MassConservationError",
    "ModelError",
    "SolverError",
    "UnitMismatchError",
    "UnknownCapabilityError",
]


class ModelError(Exception):
    """Base exception for all model errors."""

    pass


class ContractViolationError(ModelError):
    """
    Raised when an invariant fails.

    This includes negative pools, out-of-range partition fractions and
    inconsistent biome data.
    """

    pass


class UnknownCapabilityError(ModelError):
    """
    Raised when a capability or variable name is not recognised.

    Parameters
    ----------
    name
        The capability or variable name.
    component
        Name of the component (or hub) that rejected the name.
    """

    def __init__(self, name: str, component: str = "core") -> None:
        """
        Initialize the exception.

        Parameters
        ----------
        name
            Name that was not recognised.
        component
            Where the lookup failed.
        """
        super().__init__(f"{component}: unknown capability or variable '{name}'")
        self.name = name
        self.component = component


class MassConservationError(ModelError):
    """
    Raised when the total carbon in the solver state vector changes.

    Parameters
    ----------
    component
        Name of the component performing the check.
    masstot
        Total mass recorded at the previous stash.
    total
        Total mass of the current state vector.
    """

    def __init__(self, component: str, masstot: float, total: float) -> None:
        """
        Initialize the exception.

        Parameters
        ----------
        component
            Component name.
        masstot
            Previous total mass (Pg C).
        total
            Current total mass (Pg C).
        """
        diff = abs(total - masstot)
        super().__init__(
            f"{component}: mass not conserved "
            f"(masstot = {masstot}, sum = {total}, diff = {diff})"
        )
        self.component = component
        self.masstot = masstot
        self.total = total
        self.diff = diff


class DateConstraintError(ModelError):
    """Raised when a date is out of range, required but absent, or not allowed."""

    pass


class UnitMismatchError(ModelError):
    """Raised for arithmetic or comparisons between incompatible units."""

    pass


class SolverError(ModelError):
    """Raised when the carbon-cycle integrator fails to complete a step."""

    pass
