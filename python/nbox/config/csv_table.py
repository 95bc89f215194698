"""
Reader for time-series tables referenced from configuration files.

A table is a CSV file whose first column holds dates and whose remaining
columns hold one variable each. Lines starting with ``;`` are comments.

.. code-block:: text

    ; historical emissions
    Date,ffi_emissions,luc_emissions
    1745,0.0,0.08
    1746,0.0,0.09
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from .base import Setting
from .exceptions import InputFileError, ValidationError

logger = logging.getLogger(__name__)

__all__ = ["CSV_PREFIX", "read_csv_table"]

CSV_PREFIX = "csv:"


def _select_column(table: pd.DataFrame, name: str, path: Path) -> pd.Series:
    # Biome-qualified names may use a table keyed by the bare variable name
    bare = name.rsplit(".", 1)[-1]
    for candidate in (name, bare):
        if candidate in table.columns:
            return table[candidate]
    if len(table.columns) == 1:
        return table.iloc[:, 0]
    msg = f"Column '{name}' not found in {path} (columns: {list(table.columns)})"
    raise ValidationError(msg)


def read_csv_table(path: str | Path, section: str, name: str) -> list[Setting]:
    """
    Read the time series of one variable from a CSV table.

    Parameters
    ----------
    path
        Path to the CSV file
    section
        Section the variable belongs to
    name
        Variable name. Selects the column of the same name; a table with a
        single data column is used whatever its header.

    Returns
    -------
    list[Setting]
        One dated setting per row with a value, in date order

    Raises
    ------
    InputFileError
        If the file cannot be read
    ValidationError
        If the column is missing or a date is not numeric
    """
    path = Path(path)
    if not path.is_file():
        raise InputFileError(str(path), "file not found")

    try:
        table = pd.read_csv(path, comment=";", index_col=0, skipinitialspace=True)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as err:
        raise InputFileError(str(path), str(err)) from err

    column = _select_column(table, name, path).dropna()
    try:
        dates = pd.to_numeric(column.index)
    except (TypeError, ValueError) as err:
        msg = f"Non-numeric date in {path}"
        raise ValidationError(msg) from err

    settings = [
        Setting(section, name, float(date), float(value))
        for date, value in sorted(zip(dates, column.to_numpy(), strict=True))
    ]
    logger.debug(f"Read {len(settings)} values of {section}.{name} from {path}")
    return settings
