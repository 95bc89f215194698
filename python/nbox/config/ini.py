"""
Reader for INI-style configuration files.

Each section names a component (or ``core`` for run settings). Three kinds of
entry are understood:

.. code-block:: ini

    [simpleNbox]
    beta = 0.36                          ; scalar value
    Ca_constrain[1990] = 350.0           ; dated value
    ffi_emissions = csv:emissions.csv    ; table relative to this file
"""

from __future__ import annotations

import configparser
import logging
import re
from pathlib import Path

from .base import Setting
from .csv_table import CSV_PREFIX, read_csv_table
from .exceptions import InputFileError, ValidationError

logger = logging.getLogger(__name__)

__all__ = ["parse_key", "read_ini"]

_KEY_RE = re.compile(r"^(?P<name>[^\[\]]+?)\s*(?:\[(?P<date>[^\[\]]+)\])?$")


def parse_key(key: str) -> tuple[str, float | None]:
    """
    Split an entry key into variable name and optional date.

    Examples
    --------
    >>> parse_key("Ca_constrain[1990]")
    ('Ca_constrain', 1990.0)
    >>> parse_key("forest.veg_c")
    ('forest.veg_c', None)
    """
    match = _KEY_RE.match(key.strip())
    if match is None:
        msg = f"Malformed key '{key}'"
        raise ValidationError(msg)

    date_str = match.group("date")
    if date_str is None:
        return match.group("name"), None
    try:
        return match.group("name"), float(date_str)
    except ValueError:
        msg = f"Malformed date '{date_str}' in key '{key}'"
        raise ValidationError(msg) from None


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":  # noqa: PLR2004
        return value[1:-1]
    return value


def read_ini(path: str | Path) -> list[Setting]:
    """
    Read every setting from an INI file.

    Parameters
    ----------
    path
        Path to the INI file

    Returns
    -------
    list[Setting]
        Settings in file order, with ``csv:`` entries expanded into one
        dated setting per table row

    Raises
    ------
    InputFileError
        If the file (or a referenced table) cannot be read
    ValidationError
        If an entry is malformed
    """
    path = Path(path)
    if not path.is_file():
        raise InputFileError(str(path), "file not found")

    parser = configparser.ConfigParser(
        interpolation=None,
        comment_prefixes=(";", "#"),
        inline_comment_prefixes=(";",),
    )
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    try:
        with path.open(encoding="utf-8") as fh:
            parser.read_file(fh)
    except configparser.Error as err:
        msg = f"Cannot parse {path}: {err}"
        raise ValidationError(msg) from err

    settings: list[Setting] = []
    for section in parser.sections():
        for key, raw in parser.items(section):
            name, date = parse_key(key)
            value = _unquote(raw)
            if value.startswith(CSV_PREFIX):
                if date is not None:
                    msg = f"Dated entry '{key}' in [{section}] cannot refer to a table"
                    raise ValidationError(msg)
                table = path.parent / value[len(CSV_PREFIX) :].strip()
                settings.extend(read_csv_table(table, section, name))
            else:
                settings.append(Setting(section, name, date, value))

    logger.info(f"Read {len(settings)} settings from {path}")
    return settings
