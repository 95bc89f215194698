"""
Tabular output of recorded model state.

Every output-enabled component reports its recorded dates and a
:class:`~nbox.components.base.Snapshot` per date. These are collected into a
long-format :class:`pandas.DataFrame` with one row per value.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import pandas as pd

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["OUTPUT_COLUMNS", "snapshots_to_frame", "write_outputstream"]

OUTPUT_COLUMNS = ["run_name", "year", "component", "variable", "value", "units"]


def snapshots_to_frame(core: Core) -> pd.DataFrame:
    """
    Collect the recorded state of every output-enabled component.

    Parameters
    ----------
    core
        A core that has been run

    Returns
    -------
    pd.DataFrame
        Long-format table with columns :data:`OUTPUT_COLUMNS`, sorted by
        component and year
    """
    rows = []
    for component in core.components():
        if not (component.enabled and component.output_enabled):
            continue
        for date in component.recorded_dates():
            snapshot = component.snapshot(date)
            for variable, value in snapshot.values.items():
                rows.append(
                    (
                        core.config.run_name,
                        snapshot.date,
                        snapshot.component,
                        str(variable),
                        value.value,
                        str(value.units),
                    )
                )

    frame = pd.DataFrame(rows, columns=OUTPUT_COLUMNS)
    return frame.sort_values(["component", "year"], kind="stable").reset_index(
        drop=True
    )


def write_outputstream(core: Core, path: str | Path) -> Path:
    """
    Write the recorded state of a run to a CSV file.

    Returns
    -------
    Path
        The file written
    """
    path = Path(path)
    frame = snapshots_to_frame(core)
    frame.to_csv(path, index=False)
    logger.info(f"Wrote {len(frame)} rows to {path}")
    return path
