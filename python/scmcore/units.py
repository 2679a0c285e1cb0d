"""
Unit-tagged scalars.

A `UnitVal` pairs a magnitude with a `Unit` tag drawn from a fixed set. The
arithmetic operators check the tags so that, for example, adding a
concentration to a forcing fails loudly instead of producing a number.
`FluxPool` is a `UnitVal` that can never be negative and is used for carbon
pools whose mass is tracked for conservation.

Example
-------
>>> from scmcore.units import FluxPool, Unit, UnitVal
>>> veg = FluxPool(550.0, Unit.PGC)
>>> veg + UnitVal(-50.0, Unit.PGC)
FluxPool(500.0, Unit.PGC)
>>> veg.value(Unit.PGC)
550.0
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from numbers import Real

from scmcore.exceptions import ContractViolationError, UnitMismatchError

__all__ = ["FluxPool", "Unit", "UnitVal", "sum_values"]


class Unit(Enum):
    """Units understood by the model core."""

    W_M2 = "W/m2"
    PPMV_CO2 = "ppmv CO2"
    PPBV_CH4 = "ppbv CH4"
    PPBV_N2O = "ppbv N2O"
    PGC = "Pg C"
    PGC_YR = "Pg C/yr"
    GG_S = "Gg S"
    TG = "Tg"
    W_M2_TG = "W/m2/Tg"
    W_M2_GG = "W/m2/Gg"
    DEGC = "degC"
    DU_O3 = "DU O3"
    UNITLESS = "unitless"
    UNDEFINED = "(undefined)"


# (left, right) -> product unit; looked up in both orders
_PRODUCTS: dict[tuple[Unit, Unit], Unit] = {
    (Unit.W_M2_TG, Unit.TG): Unit.W_M2,
    (Unit.W_M2_GG, Unit.GG_S): Unit.W_M2,
}


def _product_unit(left: Unit, right: Unit) -> Unit:
    if left == Unit.UNITLESS:
        return right
    if right == Unit.UNITLESS:
        return left
    if (left, right) in _PRODUCTS:
        return _PRODUCTS[(left, right)]
    if (right, left) in _PRODUCTS:
        return _PRODUCTS[(right, left)]
    msg = f"Cannot multiply {left.value} by {right.value}"
    raise UnitMismatchError(msg)


class UnitVal:
    """
    A number carrying a unit tag.

    Parameters
    ----------
    value
        Magnitude.
    units
        Unit tag. Defaults to the undefined sentinel, which is resolved when the
        value is handed to a component expecting a specific unit.
    """

    __slots__ = ("_units", "_value")

    def __init__(self, value: float = 0.0, units: Unit = Unit.UNDEFINED) -> None:
        self._value = float(value)
        self._units = units

    @property
    def units(self) -> Unit:
        """Unit tag of this value."""
        return self._units

    @property
    def magnitude(self) -> float:
        """Magnitude without a unit check."""
        return self._value

    def value(self, units: Unit) -> float:
        """
        Return the magnitude, asserting the unit.

        Raises
        ------
        UnitMismatchError
            If `units` is not the unit of this value.
        """
        if units != self._units:
            msg = (
                f"Expected units {units.value!r} but value {self} "
                f"has {self._units.value!r}"
            )
            raise UnitMismatchError(msg)
        return self._value

    def _make(self, value: float, units: Unit) -> UnitVal:
        return type(self)(value, units)

    def _require_same_units(self, other: UnitVal, op: str) -> None:
        if self._units != other._units:
            msg = f"Cannot {op} {self} and {other}: units differ"
            raise UnitMismatchError(msg)

    def __add__(self, other: object) -> UnitVal:
        if not isinstance(other, UnitVal):
            return NotImplemented
        self._require_same_units(other, "add")
        return self._make(self._value + other._value, self._units)

    def __sub__(self, other: object) -> UnitVal:
        if not isinstance(other, UnitVal):
            return NotImplemented
        self._require_same_units(other, "subtract")
        return self._make(self._value - other._value, self._units)

    def __mul__(self, other: object) -> UnitVal:
        if isinstance(other, UnitVal):
            return UnitVal(
                self._value * other._value, _product_unit(self._units, other._units)
            )
        if isinstance(other, Real):
            return self._make(self._value * float(other), self._units)
        return NotImplemented

    def __rmul__(self, other: object) -> UnitVal:
        if isinstance(other, Real):
            return self._make(self._value * float(other), self._units)
        return NotImplemented

    def __truediv__(self, other: object) -> UnitVal | float:
        if isinstance(other, UnitVal):
            self._require_same_units(other, "divide")
            return self._value / other._value
        if isinstance(other, Real):
            return self._make(self._value / float(other), self._units)
        return NotImplemented

    def __neg__(self) -> UnitVal:
        return UnitVal(-self._value, self._units)

    def __abs__(self) -> UnitVal:
        return self._make(abs(self._value), self._units)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnitVal):
            return NotImplemented
        return self._units == other._units and self._value == other._value

    def __hash__(self) -> int:
        return hash((self._value, self._units))

    def __lt__(self, other: UnitVal) -> bool:
        self._require_same_units(other, "compare")
        return self._value < other._value

    def __le__(self, other: UnitVal) -> bool:
        self._require_same_units(other, "compare")
        return self._value <= other._value

    def __gt__(self, other: UnitVal) -> bool:
        self._require_same_units(other, "compare")
        return self._value > other._value

    def __ge__(self, other: UnitVal) -> bool:
        self._require_same_units(other, "compare")
        return self._value >= other._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r}, Unit.{self._units.name})"

    def __str__(self) -> str:
        return f"{self._value} {self._units.value}"


class FluxPool(UnitVal):
    """
    A non-negative unit-tagged value.

    Arithmetic with a `FluxPool` on the left returns a `FluxPool`, so an update
    that would drive a pool below zero raises immediately.

    Raises
    ------
    ContractViolationError
        If the value is negative.
    """

    __slots__ = ()

    def __init__(self, value: float = 0.0, units: Unit = Unit.PGC) -> None:
        super().__init__(value, units)
        if self._value < 0.0:
            msg = f"Flux pool cannot be negative: {self}"
            raise ContractViolationError(msg)


def sum_values(values: Iterable[UnitVal], units: Unit) -> UnitVal:
    """Sum unit-tagged values, starting from zero in `units`."""
    total = UnitVal(0.0, units)
    for v in values:
        total = total + v
    return total
