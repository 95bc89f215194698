"""
Parameters of the terrestrial carbon model.

The dataclasses here document units, defaults and valid ranges. The model
stores parameters per biome in plain dictionaries and uses this metadata to
fill defaults and check ranges.

Example
-------
    >>> from nbox.config.models.simple_nbox import NboxSettings
    >>> NboxSettings().f_pf_static
    0.4
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from nbox.config.exceptions import ValidationError
from nbox.config.parameters import parameter, validate_parameters

__all__ = ["BiomeParameters", "LandUseParameters", "NboxSettings"]


@dataclass
class BiomeParameters:
    """Per-biome parameters of the terrestrial carbon model.

    Attributes
    ----------
    npp_flux0 : float
        Preindustrial net primary production (PgC/yr)
    beta : float
        CO2 fertilization strength
    q10_rh : float
        Temperature sensitivity of heterotrophic respiration
    f_nppv : float
        Fraction of NPP going to vegetation
    f_nppd : float
        Fraction of NPP going to detritus
    f_litterd : float
        Fraction of litter going to detritus (the rest goes to soil)
    warmingfactor : float
        Biome temperature relative to the global mean
    rh_ch4_frac : float
        Fraction of heterotrophic respiration released as CH4
    """

    npp_flux0: float = parameter(
        unit="PgC/yr",
        description="Preindustrial net primary production",
        range=(0.0, math.inf),
    )
    beta: float = parameter(
        description="CO2 fertilization strength",
        range=(0.0, math.inf),
    )
    q10_rh: float = parameter(
        description="Respiration change per 10 degC of warming",
        range=(0.0, math.inf),
    )
    f_nppv: float = parameter(
        description="Fraction of NPP to vegetation",
        range=(0.0, 1.0),
    )
    f_nppd: float = parameter(
        description="Fraction of NPP to detritus",
        range=(0.0, 1.0),
    )
    f_litterd: float = parameter(
        description="Fraction of litter to detritus",
        range=(0.0, 1.0),
    )
    warmingfactor: float = parameter(
        default=1.0,
        description="Biome warming relative to global mean temperature",
        range=(0.0, math.inf),
    )
    rh_ch4_frac: float = parameter(
        default=0.0,
        description="Fraction of heterotrophic respiration emitted as CH4",
        range=(0.0, 1.0),
    )


@dataclass
class LandUseParameters:
    """Global land-use change partitioning.

    Attributes
    ----------
    f_lucv : float
        Fraction of land-use emissions taken from vegetation
    f_lucd : float
        Fraction of land-use emissions taken from detritus
    """

    f_lucv: float = parameter(
        description="Fraction of land-use change flux from vegetation",
        range=(0.0, 1.0),
    )
    f_lucd: float = parameter(
        description="Fraction of land-use change flux from detritus",
        range=(0.0, 1.0),
    )


@dataclass
class NboxSettings:
    """Structural settings of the terrestrial carbon model.

    These are fixed for the lifetime of a model instance and are passed to
    its constructor rather than through the message bus.

    Attributes
    ----------
    f_pf_static : float
        Fraction of thawed permafrost carbon that stays out of the active cycle
    pf_mu : float
        Log-scale mean of the permafrost thaw distribution (degC)
    pf_sigma : float
        Log-scale standard deviation of the permafrost thaw distribution
    q10_templag : int
        Lag (years) of the temperature window driving soil respiration
    q10_tempn : int
        Length (years) of the temperature window driving soil respiration
    """

    f_pf_static: float = parameter(
        default=0.4,
        description="Static fraction of thawed permafrost",
        range=(0.0, 1.0),
    )
    pf_mu: float = parameter(
        default=1.258,
        unit="degC",
        description="Permafrost thaw log-normal mean",
    )
    pf_sigma: float = parameter(
        default=0.618,
        description="Permafrost thaw log-normal standard deviation",
        range=(1e-9, math.inf),
    )
    q10_templag: int = parameter(
        default=0,
        unit="yr",
        description="Lag of the soil respiration temperature window",
        range=(0, 10_000),
    )
    q10_tempn: int = parameter(
        default=200,
        unit="yr",
        description="Length of the soil respiration temperature window",
        range=(1, 10_000),
    )

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        errors = validate_parameters(self)
        if errors:
            msg = f"Invalid parameters: {errors}"
            raise ValidationError(msg)
