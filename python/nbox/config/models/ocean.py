"""Parameters of the single-box ocean carbon model."""

from __future__ import annotations

import math
from dataclasses import dataclass

from nbox.config.exceptions import ValidationError
from nbox.config.parameters import parameter, validate_parameters

__all__ = ["OceanParameters"]


@dataclass
class OceanParameters:
    """Ocean carbon box parameters.

    Attributes
    ----------
    uptake_rate : float
        Fraction of the atmospheric excess over preindustrial taken up per year
    ocean_c : float
        Initial ocean carbon pool (PgC)
    """

    uptake_rate: float = parameter(
        default=0.01,
        unit="1/yr",
        description="Atmosphere to ocean exchange rate on excess carbon",
        range=(0.0, 10.0),
    )
    ocean_c: float = parameter(
        default=38000.0,
        unit="PgC",
        description="Initial ocean carbon",
        range=(0.0, math.inf),
    )

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        errors = validate_parameters(self)
        if errors:
            msg = f"Invalid parameters: {errors}"
            raise ValidationError(msg)
