"""
Base class for model components

Components exchange data only through the message hub (`scmcore.core.Core`).
Each component declares, as class attributes, the capabilities it consumes,
publishes and accepts; the hub uses these declarations to route messages and to
order components at run time.

Example
-------
```python
from scmcore.capabilities import Capability
from scmcore.component import Component, Input, Output, Setting
from scmcore.units import Unit, UnitVal

class Doubler(Component):
    component_name = "doubler"

    # Consumed from another component
    temperature = Input(Capability.GLOBAL_TEMP, unit=Unit.DEGC)

    # Published to other components
    doubled = Output("doubled_temperature", unit=Unit.DEGC)

    # Accepted through SETDATA
    factor = Setting("doubling_factor", unit=Unit.UNITLESS)

    def get_data(self, name, date=None):
        t = self.core.get_data(Capability.GLOBAL_TEMP, date)
        return t * 2.0
```
"""

from __future__ import annotations

import logging
from abc import ABCMeta
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, ClassVar

from scmcore.exceptions import ContractViolationError, UnknownCapabilityError
from scmcore.messages import MessageData, MessageType
from scmcore.units import Unit, UnitVal

if TYPE_CHECKING:
    from scmcore.core import Core

__all__ = [
    "Component",
    "ComponentMeta",
    "Input",
    "Output",
    "RequirementDefinition",
    "RequirementType",
    "Setting",
]


class RequirementType(Enum):
    """How a component relates to a capability."""

    Input = auto()
    Output = auto()
    Setting = auto()


@dataclass(frozen=True)
class RequirementDefinition:
    """A single capability requirement of a component."""

    name: str
    unit: Unit
    requirement_type: RequirementType
    required: bool = True


@dataclass(frozen=True)
class Input:
    """Declare a capability consumed from another component.

    Parameters
    ----------
    name
        The capability name (e.g., ``Capability.GLOBAL_TEMP``)
    unit
        Expected unit
    required
        If False, the component checks for a provider before asking and the hub
        does not fail when none is registered
    """

    name: str
    unit: Unit = Unit.UNDEFINED
    required: bool = True

    def to_requirement(self) -> RequirementDefinition:
        """Convert to a RequirementDefinition."""
        return RequirementDefinition(
            self.name, self.unit, RequirementType.Input, self.required
        )


@dataclass(frozen=True)
class Output:
    """Declare a capability published by the component.

    Parameters
    ----------
    name
        The capability name (e.g., ``Capability.RF_TOTAL``)
    unit
        Unit of the published value
    """

    name: str
    unit: Unit = Unit.UNDEFINED

    def to_requirement(self) -> RequirementDefinition:
        """Convert to a RequirementDefinition."""
        return RequirementDefinition(self.name, self.unit, RequirementType.Output)


@dataclass(frozen=True)
class Setting:
    """Declare a name the component accepts through SETDATA.

    Parameters
    ----------
    name
        The input name (e.g., ``Capability.DELTA_CO2``)
    unit
        Unit the value is stored in
    """

    name: str
    unit: Unit = Unit.UNDEFINED

    def to_requirement(self) -> RequirementDefinition:
        """Convert to a RequirementDefinition."""
        return RequirementDefinition(self.name, self.unit, RequirementType.Setting)


class ComponentMeta(ABCMeta):
    """
    Metaclass for Component that collects capability declarations.

    Input, Output and Setting class attributes (including inherited ones) are
    gathered into ``_component_inputs``, ``_component_outputs`` and
    ``_component_settings``.
    """

    def __new__(  # noqa: D102
        mcs,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ) -> ComponentMeta:
        inputs: dict[str, Input] = {}
        outputs: dict[str, Output] = {}
        settings: dict[str, Setting] = {}

        for base in bases:
            if hasattr(base, "_component_inputs"):
                inputs.update(base._component_inputs)
            if hasattr(base, "_component_outputs"):
                outputs.update(base._component_outputs)
            if hasattr(base, "_component_settings"):
                settings.update(base._component_settings)

        for attr_name, attr_value in list(namespace.items()):
            if isinstance(attr_value, Input):
                inputs[attr_name] = attr_value
            elif isinstance(attr_value, Output):
                outputs[attr_name] = attr_value
            elif isinstance(attr_value, Setting):
                settings[attr_name] = attr_value

        namespace["_component_inputs"] = inputs
        namespace["_component_outputs"] = outputs
        namespace["_component_settings"] = settings

        return super().__new__(mcs, name, bases, namespace, **kwargs)


class Component(metaclass=ComponentMeta):
    """Base class for components attached to a `Core`.

    Subclasses declare their capabilities with `Input`, `Output` and `Setting`
    class attributes and implement `get_data`, `set_data` and `run`. The hub
    calls the lifecycle methods in this order: `init`, any number of
    `set_data`, `prepare_to_run`, `run_spinup` (optional), `run` once per year,
    `reset` (optional), `shut_down`.
    """

    component_name: ClassVar[str] = "component"

    # These are populated by the metaclass
    _component_inputs: ClassVar[dict[str, Input]] = {}
    _component_outputs: ClassVar[dict[str, Output]] = {}
    _component_settings: ClassVar[dict[str, Setting]] = {}

    core: Core | None = None
    logger: logging.Logger | None = None

    def definitions(self) -> list[RequirementDefinition]:
        """Return the capability requirements of this component.

        Built from the Input, Output and Setting class attributes; subclasses
        with dynamically named capabilities extend the list.
        """
        defs: list[RequirementDefinition] = []

        for inp in self._component_inputs.values():
            defs.append(inp.to_requirement())

        for out in self._component_outputs.values():
            defs.append(out.to_requirement())

        for setting in self._component_settings.values():
            defs.append(setting.to_requirement())

        return defs

    def init(self, core: Core) -> None:
        """Attach to `core`, open the component logger and register requirements."""
        self.core = core
        self.logger = logging.getLogger(f"scmcore.{self.component_name}")
        self.logger.debug(f"hello {self.component_name}")

        for definition in self.definitions():
            if definition.requirement_type is RequirementType.Output:
                core.register_capability(definition.name, self.component_name)
            elif definition.requirement_type is RequirementType.Input:
                core.register_dependency(
                    definition.name, self.component_name, definition.required
                )
            else:
                core.register_input(definition.name, self.component_name)

    def send_message(
        self, message: MessageType, datum: str, info: MessageData
    ) -> UnitVal | None:
        """Dispatch a hub message to `get_data` or `set_data`."""
        if message is MessageType.GETDATA:
            return self.get_data(datum, info.date)
        if message is MessageType.SETDATA:
            self.set_data(datum, info)
            return None
        msg = f"{self.component_name}: caller sent unknown message {message!r}"
        raise ContractViolationError(msg)

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """Return the value of capability `name` at `date` (current if None)."""
        raise UnknownCapabilityError(name, self.component_name)

    def set_data(self, name: str, data: MessageData) -> None:
        """Accept an input value."""
        raise UnknownCapabilityError(name, self.component_name)

    def prepare_to_run(self) -> None:
        """One-time validation after all inputs are set."""
        pass

    def run(self, run_to_date: float) -> None:
        """Advance the component to `run_to_date`."""
        raise NotImplementedError("Subclasses must implement run()")

    def run_spinup(self, step: int) -> bool:
        """Take one spinup step; return True once this component has converged."""
        return True

    def reset(self, date: float) -> None:
        """Return to the state at `date`, dropping later outputs."""
        pass

    def shut_down(self) -> None:
        """Release the hub reference."""
        if self.logger is not None:
            self.logger.debug(f"goodbye {self.component_name}")
        self.core = None

    def _require_core(self) -> Core:
        if self.core is None:
            msg = f"{self.component_name}: component is not attached to a core"
            raise ContractViolationError(msg)
        return self.core
