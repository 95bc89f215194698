"""
nbox configuration layer.

Supports:
- TOML config files, optionally layered (defaults -> experiment overrides)
- INI files with ``name[date]`` entries and ``csv:`` table references
- Structured parameter metadata with validation

Every reader produces :class:`Setting` tuples which :func:`build_core` routes
through the core's message bus.

Example:
    >>> from nbox.config import load_core
    >>> core = load_core("configs/nbox_default.toml")
    >>> core.run()
"""

from __future__ import annotations

from .base import CoreConfig, Setting, SolverConfig
from .builder import DEFAULT_COMPONENTS, build_core, load_core
from .csv_table import read_csv_table
from .exceptions import (
    ComponentNotFoundError,
    ConfigError,
    IncompatibleSchemaError,
    InputFileError,
    ValidationError,
)
from .ini import read_ini
from .loader import (
    config_to_settings,
    deep_merge,
    load_config,
    load_config_layers,
    read_toml,
)
from .parameters import (
    ParameterMetadata,
    get_parameter_metadata,
    parameter,
    validate_parameters,
)
from .registry import ComponentRegistry, component_registry, register_component
from .validation import SCHEMA_VERSION, check_schema_version

__all__ = [
    "DEFAULT_COMPONENTS",
    "SCHEMA_VERSION",
    "ComponentNotFoundError",
    "ComponentRegistry",
    "ConfigError",
    "CoreConfig",
    "IncompatibleSchemaError",
    "InputFileError",
    "ParameterMetadata",
    "Setting",
    "SolverConfig",
    "ValidationError",
    "build_core",
    "check_schema_version",
    "component_registry",
    "config_to_settings",
    "deep_merge",
    "get_parameter_metadata",
    "load_config",
    "load_config_layers",
    "load_core",
    "parameter",
    "read_csv_table",
    "read_ini",
    "read_toml",
    "register_component",
    "validate_parameters",
]
