"""
nbox: a reduced-complexity carbon cycle model.

A biome-partitioned terrestrial carbon model and a single-box ocean are
coupled through a shared carbon state vector, integrated one year at a time
and wired together by a core message bus.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from nbox.exceptions import NboxError
from nbox.units import Unit, UnitVal

try:
    __version__ = version("nbox")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = ["NboxError", "Unit", "UnitVal", "__version__"]
