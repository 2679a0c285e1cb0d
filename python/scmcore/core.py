"""
Message hub and capability registry.

The `Core` owns the components of a model run. Components register the
capabilities they publish, depend on and accept; the core resolves a run order
from the dependencies and routes GETDATA / SETDATA / DUMP_TO_DEEP_OCEAN
messages by capability name.

Example
-------
>>> with Core(start_date=1750, end_date=2100) as core:
...     core.add_component(PrescribedComponent("temperature", series={...}))
...     core.add_component(SimpleNbox())
...     core.run(2000)
...     ca = core.get_data(Capability.ATMOSPHERIC_CO2, 2000)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from graphlib import CycleError, TopologicalSorter
from numbers import Real
from typing import TYPE_CHECKING

import numpy as np

from scmcore.capabilities import split_biome_setting
from scmcore.exceptions import (
    ContractViolationError,
    DateConstraintError,
    ModelError,
    UnknownCapabilityError,
)
from scmcore.messages import MessageData, MessageType
from scmcore.units import Unit, UnitVal

if TYPE_CHECKING:
    from collections.abc import Iterable
    from types import TracebackType

    from scmcore.component import Component

logger = logging.getLogger(__name__)

__all__ = ["Core", "MessageData", "MessageType"]


class Core:
    """
    Message hub for a single model run.

    Parameters
    ----------
    start_date
        Model start date; the first year run is ``start_date + 1``
    end_date
        Last date the model may be run to
    do_spinup
        Whether `run` spins the model up before the first year
    max_spinup_steps
        Spinup fails if components have not converged after this many steps
    """

    def __init__(
        self,
        start_date: float = 1745.0,
        end_date: float = 2300.0,
        do_spinup: bool = False,
        max_spinup_steps: int = 2000,
    ) -> None:
        if end_date <= start_date:
            msg = f"end ({end_date}) must be greater than start ({start_date})"
            raise DateConstraintError(msg)
        self._start_date = float(start_date)
        self._end_date = float(end_date)
        self._current_date = float(start_date)
        self.do_spinup = do_spinup
        self.max_spinup_steps = max_spinup_steps

        self._components: dict[str, Component] = {}
        self._capabilities: dict[str, str] = {}
        self._dependencies: dict[str, dict[str, bool]] = defaultdict(dict)
        self._inputs: dict[str, list[str]] = defaultdict(list)
        self._run_order: list[str] = []

        self._prepared = False
        self._spun_up = False
        self._in_spinup = False
        self._shut_down = False

    # ------------------------------------------------------------------ registry

    def add_component(self, component: Component) -> Component:
        """Attach `component` and let it register its capabilities."""
        name = component.component_name
        if name in self._components:
            msg = f"A component named '{name}' is already attached"
            raise ContractViolationError(msg)
        if self._prepared:
            msg = f"Cannot add component '{name}' after the core is prepared"
            raise ContractViolationError(msg)
        self._components[name] = component
        component.init(self)
        logger.debug(f"Added component {name}")
        return component

    def register_capability(self, name: str, component_name: str) -> None:
        """Record `component_name` as the provider of capability `name`."""
        provider = self._capabilities.get(name)
        if provider is not None and provider != component_name:
            msg = (
                f"Capability '{name}' is provided by '{provider}'; "
                f"'{component_name}' cannot also provide it"
            )
            raise ContractViolationError(msg)
        self._capabilities[name] = component_name

    def register_dependency(
        self, name: str, component_name: str, required: bool = True
    ) -> None:
        """Record that `component_name` consumes capability `name`."""
        self._dependencies[component_name][name] = required

    def register_input(self, name: str, component_name: str) -> None:
        """Record that `component_name` accepts SETDATA messages for `name`."""
        if component_name not in self._inputs[name]:
            self._inputs[name].append(component_name)

    def check_capability(self, name: str) -> bool:
        """Whether any component provides capability `name`."""
        return name in self._capabilities

    def check_input(self, name: str) -> bool:
        """Whether any component accepts SETDATA messages for `name`."""
        return bool(self._inputs.get(name))

    def get_component(self, component_name: str) -> Component:
        """Return the attached component called `component_name`."""
        if component_name not in self._components:
            raise UnknownCapabilityError(component_name)
        return self._components[component_name]

    def get_component_by_capability(self, name: str) -> Component:
        """Return the component providing capability `name`."""
        if name not in self._capabilities:
            raise UnknownCapabilityError(name)
        return self._components[self._capabilities[name]]

    def components(self) -> list[Component]:
        """Attached components, in run order once the core is prepared."""
        if self._run_order:
            return [self._components[n] for n in self._run_order]
        return list(self._components.values())

    # ------------------------------------------------------------------ messages

    def send_message(
        self,
        message: MessageType,
        datum: str,
        info: MessageData | None = None,
    ) -> UnitVal | None:
        """
        Route a message to the component(s) responsible for `datum`.

        GETDATA and DUMP_TO_DEEP_OCEAN go to the provider of `datum`; SETDATA
        goes to every component that registered `datum` as an input. Per-biome
        settings (``"<biome>.<name>"``) are routed by their parameter name.
        """
        info = info if info is not None else MessageData()

        if message is MessageType.SETDATA:
            targets = self._inputs.get(datum)
            if not targets:
                _, param = split_biome_setting(datum)
                targets = self._inputs.get(param)
            if not targets:
                raise UnknownCapabilityError(datum)
            for component_name in targets:
                self._components[component_name].send_message(message, datum, info)
            return None

        if message in (MessageType.GETDATA, MessageType.DUMP_TO_DEEP_OCEAN):
            name = datum
            if name not in self._capabilities:
                _, name = split_biome_setting(datum)
            provider = self.get_component_by_capability(name)
            return provider.send_message(message, datum, info)

        msg = f"Unknown message type {message!r}"
        raise ContractViolationError(msg)

    def get_data(self, name: str, date: float | None = None) -> UnitVal:
        """Shortcut for a GETDATA message."""
        value = self.send_message(MessageType.GETDATA, name, MessageData(date))
        if value is None:
            msg = f"Provider of '{name}' returned no value"
            raise ContractViolationError(msg)
        return value

    def set_data(
        self, name: str, value: UnitVal | float, date: float | None = None
    ) -> None:
        """Shortcut for a SETDATA message; plain numbers carry undefined units."""
        if isinstance(value, Real):
            value = UnitVal(float(value), Unit.UNDEFINED)
        self.send_message(MessageType.SETDATA, name, MessageData(date, value))

    def set_series(
        self,
        name: str,
        dates: Iterable[float],
        values: Iterable[float],
        units: Unit = Unit.UNDEFINED,
    ) -> None:
        """Send one dated SETDATA message per (date, value) pair."""
        for date, value in zip(dates, values, strict=True):
            self.set_data(name, UnitVal(float(value), units), float(date))

    def get_timeseries(self, name: str, dates: Iterable[float]) -> np.ndarray:
        """Collect the magnitudes of capability `name` at `dates`."""
        return np.asarray(
            [self.get_data(name, float(d)).magnitude for d in dates], dtype=float
        )

    # ------------------------------------------------------------------ time

    @staticmethod
    def undefined_index() -> None:
        """Sentinel date meaning "no date"."""
        return None

    def in_spinup(self) -> bool:
        """Whether the model is currently spinning up."""
        return self._in_spinup

    def get_start_date(self) -> float:
        """Model start date."""
        return self._start_date

    def get_end_date(self) -> float:
        """Model end date."""
        return self._end_date

    def get_current_date(self) -> float:
        """Last date the model has been run to."""
        return self._current_date

    # ------------------------------------------------------------------ lifecycle

    def prepare(self) -> None:
        """
        Resolve the run order and prepare every component.

        Raises
        ------
        UnknownCapabilityError
            If a required dependency has no provider.
        ContractViolationError
            If the dependencies form a cycle.
        """
        if self._prepared:
            return

        graph: dict[str, set[str]] = {name: set() for name in self._components}
        for component_name, deps in self._dependencies.items():
            for capability, required in deps.items():
                provider = self._capabilities.get(capability)
                if provider is None:
                    if required:
                        raise UnknownCapabilityError(capability, component_name)
                    logger.debug(
                        f"{component_name}: optional dependency '{capability}' "
                        "has no provider"
                    )
                    continue
                if provider != component_name:
                    graph[component_name].add(provider)

        try:
            self._run_order = list(TopologicalSorter(graph).static_order())
        except CycleError as err:
            msg = f"Component dependencies form a cycle: {err.args[1]}"
            raise ContractViolationError(msg) from err
        logger.info(f"Component run order: {', '.join(self._run_order)}")

        for component in self.components():
            component.prepare_to_run()
        self._prepared = True

    def run_spinup(self) -> int:
        """
        Spin the model up until every component reports convergence.

        Returns
        -------
        int
            Number of spinup steps taken.

        Raises
        ------
        ModelError
            If the components have not converged after `max_spinup_steps`.
        """
        self.prepare()
        self._in_spinup = True
        try:
            for step in range(1, self.max_spinup_steps + 1):
                converged = [c.run_spinup(step) for c in self.components()]
                if all(converged):
                    logger.info(f"Spinup converged after {step} steps")
                    self._spun_up = True
                    return step
        finally:
            self._in_spinup = False

        msg = f"Spinup did not converge after {self.max_spinup_steps} steps"
        raise ModelError(msg)

    def run(self, run_to_date: float | None = None) -> None:
        """
        Run every component year by year up to `run_to_date` (default: end date).

        Raises
        ------
        DateConstraintError
            If `run_to_date` is before the current date or after the end date.
        """
        self.prepare()
        if self.do_spinup and not self._spun_up:
            self.run_spinup()

        target = self._end_date if run_to_date is None else float(run_to_date)
        if target < self._current_date or target > self._end_date:
            msg = (
                f"Cannot run to {target}: current date is {self._current_date}, "
                f"end date is {self._end_date}"
            )
            raise DateConstraintError(msg)

        t = self._current_date + 1.0
        while t <= target:
            for component in self.components():
                component.run(t)
            self._current_date = t
            t += 1.0
        logger.debug(f"Model run to {self._current_date}")

    def reset(self, date: float) -> None:
        """
        Return every component to its state at `date`.

        Raises
        ------
        DateConstraintError
            If `date` is before the start date or after the current date.
        """
        if date < self._start_date or date > self._current_date:
            msg = (
                f"Cannot reset to {date}: must lie between the start date "
                f"{self._start_date} and the current date {self._current_date}"
            )
            raise DateConstraintError(msg)
        for component in self.components():
            component.reset(float(date))
        self._current_date = float(date)
        logger.info(f"Core reset to {date}")

    def shut_down(self) -> None:
        """Shut down every component; safe to call more than once."""
        if self._shut_down:
            return
        self._shut_down = True
        for component in reversed(self.components()):
            component.shut_down()
        logger.debug("Core shut down")

    def __enter__(self) -> Core:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shut_down()
