"""Message kinds and payloads routed by the hub."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from scmcore.exceptions import ContractViolationError, UnitMismatchError
from scmcore.units import Unit, UnitVal

__all__ = ["MessageData", "MessageType"]


class MessageType(Enum):
    """Kinds of message a component can receive."""

    GETDATA = "getdata"
    SETDATA = "setdata"
    DUMP_TO_DEEP_OCEAN = "dump_to_deep_ocean"


@dataclass(frozen=True)
class MessageData:
    """
    Payload of a hub message.

    Parameters
    ----------
    date
        Date the message refers to; None means "no date" (parameters) or
        "current date" (queries)
    value
        Value carried by SETDATA and DUMP_TO_DEEP_OCEAN messages
    """

    date: float | None = None
    value: UnitVal | None = None

    def get_unitval(self, expected: Unit) -> UnitVal:
        """
        Return the carried value in `expected` units.

        A value with undefined units adopts `expected`; any other unit must
        match exactly.

        Raises
        ------
        ContractViolationError
            If the message carries no value.
        UnitMismatchError
            If the value has different, defined units.
        """
        if self.value is None:
            msg = "Message carries no value"
            raise ContractViolationError(msg)
        if self.value.units is Unit.UNDEFINED:
            return UnitVal(self.value.magnitude, expected)
        if self.value.units is not expected:
            msg = f"Expected a value in {expected.value!r}, got {self.value}"
            raise UnitMismatchError(msg)
        return self.value
