"""
TOML configuration loading for nbox.

- load_config: Load a single TOML configuration file
- load_config_layers: Merge multiple config files (layered configuration)
- config_to_settings: Flatten a loaded configuration into settings
- read_toml: Both steps at once

Layout of a configuration file:

.. code-block:: toml

    [schema]
    version = "1.0.0"

    [core]
    startDate = 1745
    endDate = 2100

    [simpleNbox]
    C0 = 277.15
    ffi_emissions = "csv:emissions.csv"

    [simpleNbox.Ca_constrain]   # table of dates: a time series
    1990 = 350.0

    [simpleNbox.forest]         # any other table: a biome
    veg_c = 400.0
"""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path
from typing import Any

from .base import Setting
from .csv_table import CSV_PREFIX, read_csv_table
from .exceptions import InputFileError, ValidationError
from .registry import CORE_SECTION, component_registry
from .validation import check_schema_version, find_unknown_keys

logger = logging.getLogger(__name__)

__all__ = [
    "config_to_settings",
    "deep_merge",
    "load_config",
    "load_config_layers",
    "read_toml",
]

SCHEMA_KEY = "schema"


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Nested dicts are merged recursively. Lists and other values are replaced
    (not concatenated). Override values take precedence.

    Examples
    --------
    >>> base = {"simpleNbox": {"beta": 0.36, "q10_rh": 2.0}}
    >>> override = {"simpleNbox": {"beta": 0.5}}
    >>> deep_merge(base, override)
    {'simpleNbox': {'beta': 0.5, 'q10_rh': 2.0}}
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_tables(data: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    resolved: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            resolved[key] = _resolve_tables(value, base_dir)
        elif isinstance(value, str) and value.startswith(CSV_PREFIX):
            table = Path(value[len(CSV_PREFIX) :].strip())
            if not table.is_absolute():
                table = base_dir / table
            resolved[key] = f"{CSV_PREFIX}{table}"
        else:
            resolved[key] = value
    return resolved


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Load a single TOML configuration file.

    ``csv:`` references are made absolute relative to the file's directory,
    so configurations from different directories can be layered.

    Raises
    ------
    InputFileError
        If the file does not exist
    ValidationError
        If the file is not valid TOML
    IncompatibleSchemaError
        If the file declares an incompatible schema version
    """
    from nbox import components  # noqa: F401, PLC0415

    path = Path(path)
    if not path.is_file():
        raise InputFileError(str(path), "file not found")

    try:
        with path.open("rb") as f:
            config = tomllib.load(f)
    except tomllib.TOMLDecodeError as err:
        msg = f"Invalid TOML in {path}: {err}"
        raise ValidationError(msg) from err

    schema = config.get(SCHEMA_KEY, {})
    if "version" in schema:
        check_schema_version(str(schema["version"]))

    known_top_level = {SCHEMA_KEY, CORE_SECTION, *component_registry.list()}
    unknown = find_unknown_keys(config, known_top_level)
    if unknown:
        logger.warning(
            f"Unknown configuration keys in {path}: {', '.join(unknown)}. "
            "These will be ignored."
        )
        for key in unknown:
            del config[key]

    return _resolve_tables(config, path.parent)


def load_config_layers(*paths: str | Path) -> dict[str, Any]:
    """
    Load and merge multiple TOML configuration files.

    Later files override earlier ones. Nested dictionaries are merged
    recursively.
    """
    if not paths:
        return {}

    result = load_config(paths[0])
    for path in paths[1:]:
        result = deep_merge(result, load_config(path))
    return result


def _is_date_table(table: dict[str, Any]) -> bool:
    if not table:
        return False
    try:
        for key in table:
            float(key)
    except ValueError:
        return False
    return True


def _scalar(section: str, name: str, value: Any) -> str | float:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        return value
    msg = f"Unsupported value for {section}.{name}: {value!r}"
    raise ValidationError(msg)


def _flatten(section: str, name: str, value: Any) -> list[Setting]:
    if isinstance(value, str) and value.startswith(CSV_PREFIX):
        return read_csv_table(value[len(CSV_PREFIX) :], section, name)

    if isinstance(value, dict):
        if _is_date_table(value):
            return [
                Setting(section, name, float(date), _scalar(section, name, v))
                for date, v in sorted(value.items(), key=lambda kv: float(kv[0]))
            ]
        settings = []
        for key, sub in value.items():
            settings.extend(_flatten(section, f"{name}.{key}", sub))
        return settings

    return [Setting(section, name, None, _scalar(section, name, value))]


def config_to_settings(config: dict[str, Any]) -> list[Setting]:
    """
    Flatten a configuration dictionary into settings.

    Parameters
    ----------
    config
        Configuration as returned by :func:`load_config`

    Returns
    -------
    list[Setting]
        Settings in section order. Date tables become dated settings, other
        nested tables become biome-qualified names.
    """
    settings: list[Setting] = []
    for section, entries in config.items():
        if section == SCHEMA_KEY:
            continue
        if not isinstance(entries, dict):
            msg = f"Top-level key '{section}' must be a table"
            raise ValidationError(msg)
        for name, value in entries.items():
            settings.extend(_flatten(section, name, value))
    return settings


def read_toml(*paths: str | Path) -> list[Setting]:
    """Load one or more layered TOML files and flatten them into settings."""
    settings = config_to_settings(load_config_layers(*paths))
    logger.info(f"Read {len(settings)} settings from {', '.join(map(str, paths))}")
    return settings
