"""
Model components.

Importing this package registers every built-in component with
:data:`nbox.config.registry.component_registry` under its section name.
"""

from __future__ import annotations

from .base import CarbonCycleModel, CarbonPool, Component, Snapshot
from .ocean import OceanCarbonBox
from .simple_nbox import SimpleNbox
from .solver import CarbonCycleSolver
from .temperature import PrescribedTemperature

__all__ = [
    "CarbonCycleModel",
    "CarbonCycleSolver",
    "CarbonPool",
    "Component",
    "OceanCarbonBox",
    "PrescribedTemperature",
    "SimpleNbox",
    "Snapshot",
]
