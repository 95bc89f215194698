"""
Exceptions raised while reading nbox configuration.

- ConfigError: Base exception for all config errors
- ValidationError: Malformed values, missing required fields
- IncompatibleSchemaError: Schema version mismatch
- ComponentNotFoundError: Section does not name a known component
- InputFileError: A configuration or data file cannot be read
"""

from __future__ import annotations

from nbox.exceptions import NboxError

__all__ = [
    "ComponentNotFoundError",
    "ConfigError",
    "IncompatibleSchemaError",
    "InputFileError",
    "ValidationError",
]


class ConfigError(NboxError):
    """Base exception for all configuration errors."""


class ValidationError(ConfigError):
    """
    Raised for validation failures.

    This includes malformed dates, values that are not numbers and
    out-of-range settings.
    """


class IncompatibleSchemaError(ConfigError):
    """
    Raised when a configuration file uses an incompatible schema version.

    Parameters
    ----------
    config_version
        The version string from the configuration file.
    loader_version
        The version string supported by this loader.
    """

    def __init__(self, config_version: str, loader_version: str) -> None:
        message = (
            f"Incompatible schema version: config has version {config_version}, "
            f"but loader supports version {loader_version}"
        )
        super().__init__(message)
        self.config_version = config_version
        self.loader_version = loader_version


class ComponentNotFoundError(ConfigError):
    """
    Raised when a requested component is not known.

    Parameters
    ----------
    name
        The component name that was not found.
    available
        Names of the known components.
    """

    def __init__(self, name: str, available: list[str]) -> None:
        if not available:
            message = f"Component '{name}' not found. No components are registered."
        else:
            available_str = ", ".join(f"'{c}'" for c in sorted(available))
            message = (
                f"Component '{name}' not found. Available components: {available_str}"
            )
        super().__init__(message)
        self.name = name
        self.available = available


class InputFileError(ConfigError, OSError):
    """
    Raised when an input file is missing or unreadable.

    Parameters
    ----------
    path
        Path of the offending file.
    reason
        What went wrong.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Cannot read '{path}': {reason}")
        self.path = path
        self.reason = reason
