"""
Errors raised while reading configuration files and assembling a run.

`ConfigError` derives from `scmcore.exceptions.ModelError`, so a caller can
catch any failure of a configured run with one except clause.

- ValidationError: bad units, unknown or out-of-range parameters, missing tables
- IncompatibleSchemaError: the file's schema major version is not supported
- ComponentNotFoundError: a ``[components]`` entry names an unregistered class
- ComponentRoleError: the named class cannot fill its role
"""

from __future__ import annotations

from scmcore.exceptions import ModelError

__all__ = [
    "ComponentNotFoundError",
    "ComponentRoleError",
    "ConfigError",
    "IncompatibleSchemaError",
    "ValidationError",
]


class ConfigError(ModelError):
    """Base exception for configuration errors."""


class ValidationError(ConfigError):
    """A configuration value or table is invalid."""


class IncompatibleSchemaError(ConfigError):
    """
    The configuration's schema version has a different major version.

    Attributes
    ----------
    config_version
        Version declared in the ``[schema]`` table.
    loader_version
        Version this loader reads.
    """

    def __init__(self, config_version: str, loader_version: str) -> None:
        super().__init__(
            f"Incompatible schema version: config has version {config_version}, "
            f"but loader supports version {loader_version}"
        )
        self.config_version = config_version
        self.loader_version = loader_version


class ComponentNotFoundError(ConfigError):
    """
    No component class is registered under the requested name.

    Attributes
    ----------
    name
        The requested name.
    available
        Registered names able to fill `role` (all names if no role was given).
    role
        The role the component was wanted for, if any.
    """

    def __init__(
        self, name: str, available: list[str], role: str | None = None
    ) -> None:
        wanted = f"Component '{name}' not found"
        if role is not None:
            wanted += f" for the {role} role"
        if available:
            names = ", ".join(f"'{c}'" for c in sorted(available))
            super().__init__(f"{wanted}. Available components: {names}")
        elif role is None:
            super().__init__(f"{wanted}. No components are registered.")
        else:
            super().__init__(f"{wanted}. No registered component can fill it.")
        self.name = name
        self.available = available
        self.role = role


class ComponentRoleError(ValidationError):
    """
    A registered component class cannot fill the role it was configured for.

    Attributes
    ----------
    name
        Registered name of the class.
    role
        The role from the ``[components]`` table.
    required
        Name of the base class the role needs.
    """

    def __init__(self, name: str, role: str, required: str) -> None:
        super().__init__(
            f"Component '{name}' cannot be used as the {role} component: "
            f"it is not a {required}"
        )
        self.name = name
        self.role = role
        self.required = required
