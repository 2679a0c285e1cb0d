"""
Component classes that configuration files can name, grouped by role.

A run is assembled from one component per role. The ``[components]`` table of
a configuration file picks the registered class for each role, and the
registry checks that the class can fill it: the land and ocean roles need a
`CarbonCycleModel`, since the solver integrates their pools.

Example:
    >>> @register_component("PrescribedOcean")
    ... class PrescribedOcean(CarbonCycleModel):
    ...     ...
    >>> component_registry.create("ocean", "PrescribedOcean")
    <PrescribedOcean ...>
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from scmcore.carbon import CarbonCycleModel, CarbonCycleSolver, SimpleNbox, SimpleOcean
from scmcore.component import Component
from scmcore.components import PrescribedComponent
from scmcore.forcing import ForcingComponent

from .exceptions import ComponentNotFoundError, ComponentRoleError, ValidationError

__all__ = [
    "ROLE_BASES",
    "ComponentRegistry",
    "component_registry",
    "register_component",
]

#: Base class a component must derive from to fill each role
ROLE_BASES: dict[str, type[Component]] = {
    "land": CarbonCycleModel,
    "ocean": CarbonCycleModel,
    "solver": CarbonCycleSolver,
    "forcing": Component,
    "inputs": PrescribedComponent,
}


def _check_role(role: str) -> type[Component]:
    if role not in ROLE_BASES:
        roles = ", ".join(f"'{r}'" for r in ROLE_BASES)
        msg = f"Unknown component role '{role}'. Roles are: {roles}"
        raise ValidationError(msg)
    return ROLE_BASES[role]


class ComponentRegistry:
    """Maps the names used in configuration files to `Component` subclasses."""

    def __init__(self) -> None:
        self._registry: dict[str, type[Component]] = {}

    def register(self, name: str, component_class: type[Component]) -> None:
        """
        Register `component_class` under `name`.

        Raises
        ------
        TypeError
            If `component_class` is not a `Component` subclass.
        ValueError
            If the name is already registered with a different class.
        """
        is_component = isinstance(component_class, type) and issubclass(
            component_class, Component
        )
        if not is_component:
            msg = f"Cannot register {component_class!r} as '{name}': not a Component"
            raise TypeError(msg)
        if self._registry.get(name, component_class) is not component_class:
            msg = f"Component '{name}' is already registered with a different class"
            raise ValueError(msg)
        self._registry[name] = component_class

    def get(self, name: str, role: str | None = None) -> type[Component]:
        """
        Look up a component class, optionally checking it can fill `role`.

        Raises
        ------
        ComponentNotFoundError
            If nothing is registered under `name`.
        ComponentRoleError
            If the class does not derive from the role's base class.
        """
        base = _check_role(role) if role is not None else Component
        if name not in self._registry:
            raise ComponentNotFoundError(name, self.list(role), role)
        component_class = self._registry[name]
        if not issubclass(component_class, base):
            raise ComponentRoleError(name, role, base.__name__)
        return component_class

    def create(self, role: str, name: str, *args: Any, **kwargs: Any) -> Component:
        """Instantiate the class registered as `name` to fill `role`."""
        return self.get(name, role)(*args, **kwargs)

    def list(self, role: str | None = None) -> list[str]:
        """Registered names, sorted; only those able to fill `role` if given."""
        base = _check_role(role) if role is not None else Component
        return sorted(n for n, c in self._registry.items() if issubclass(c, base))

    def is_registered(self, name: str) -> bool:
        """Whether `name` is registered."""
        return name in self._registry


component_registry = ComponentRegistry()


def register_component(name: str) -> Callable[[type[Component]], type[Component]]:
    """Class decorator registering the class in `component_registry`."""

    def decorator(cls: type[Component]) -> type[Component]:
        component_registry.register(name, cls)
        return cls

    return decorator


for _component in (
    SimpleNbox,
    SimpleOcean,
    CarbonCycleSolver,
    ForcingComponent,
    PrescribedComponent,
):
    component_registry.register(_component.__name__, _component)
