"""
Model-specific parameter classes.

- simple_nbox: terrestrial carbon model
- ocean: single-box ocean carbon model
"""

from __future__ import annotations

from nbox.config.models.ocean import OceanParameters
from nbox.config.models.simple_nbox import (
    BiomeParameters,
    LandUseParameters,
    NboxSettings,
)

__all__ = ["BiomeParameters", "LandUseParameters", "NboxSettings", "OceanParameters"]
