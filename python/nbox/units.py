"""
Unit-tagged scalar values.

A :class:`UnitVal` pairs a float with a :class:`Unit`. Addition, subtraction
and comparison require both operands to share the same unit; scaling by a
plain number keeps the unit. Mixing units raises
:class:`~nbox.exceptions.UnitMismatchError`.

Examples
--------
>>> from nbox.units import Unit, UnitVal
>>> veg = UnitVal(550.0, Unit.PGC)
>>> (veg + UnitVal(10.0, Unit.PGC)).value
560.0
>>> UnitVal(588.071, Unit.PGC).convert(Unit.PPMV_CO2).units
<Unit.PPMV_CO2: 'ppmv CO2'>
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import StrEnum

from nbox.exceptions import UnitMismatchError

__all__ = [
    "PGC_TO_PPMVCO2",
    "PPMVCO2_TO_PGC",
    "Unit",
    "UnitVal",
]

# Mass of carbon in the atmosphere per ppmv of CO2
PPMVCO2_TO_PGC = 2.1305
PGC_TO_PPMVCO2 = 1.0 / PPMVCO2_TO_PGC


class Unit(StrEnum):
    """Units understood by the model."""

    PGC = "PgC"
    PGC_YR = "PgC/yr"
    PPMV_CO2 = "ppmv CO2"
    W_M2 = "W/m2"
    DEGC = "degC"
    UNITLESS = "unitless"


_CONVERSIONS: dict[tuple[Unit, Unit], float] = {
    (Unit.PGC, Unit.PPMV_CO2): PGC_TO_PPMVCO2,
    (Unit.PPMV_CO2, Unit.PGC): PPMVCO2_TO_PGC,
}


@dataclass(frozen=True, slots=True)
class UnitVal:
    """
    A value with physical units.

    Parameters
    ----------
    value
        Magnitude of the value
    units
        Units of ``value``
    """

    value: float
    units: Unit = Unit.UNITLESS

    def value_in(self, units: Unit) -> float:
        """
        Return the magnitude, checking that it is expressed in ``units``.

        Raises
        ------
        UnitMismatchError
            If ``units`` differs from the units of this value
        """
        if units != self.units:
            msg = f"Expected a value in {units}, got {self}"
            raise UnitMismatchError(msg)
        return self.value

    def convert(self, units: Unit) -> UnitVal:
        """
        Convert to another unit.

        Only physically compatible pairs are supported (currently PgC and
        ppmv CO2).

        Raises
        ------
        UnitMismatchError
            If no conversion between the two units exists
        """
        if units == self.units:
            return self
        try:
            factor = _CONVERSIONS[(self.units, units)]
        except KeyError:
            msg = f"Cannot convert {self.units} to {units}"
            raise UnitMismatchError(msg) from None
        return UnitVal(self.value * factor, units)

    def _check(self, other: object, op: str) -> UnitVal:
        if not isinstance(other, UnitVal):
            msg = f"Cannot {op} {self} and {other!r}: both operands need units"
            raise UnitMismatchError(msg)
        if other.units != self.units:
            msg = f"Cannot {op} {self} and {other}: units differ"
            raise UnitMismatchError(msg)
        return other

    def __add__(self, other: UnitVal) -> UnitVal:
        other = self._check(other, "add")
        return UnitVal(self.value + other.value, self.units)

    def __sub__(self, other: UnitVal) -> UnitVal:
        other = self._check(other, "subtract")
        return UnitVal(self.value - other.value, self.units)

    def __neg__(self) -> UnitVal:
        return UnitVal(-self.value, self.units)

    def __abs__(self) -> UnitVal:
        return UnitVal(abs(self.value), self.units)

    def __mul__(self, other: float) -> UnitVal:
        if isinstance(other, UnitVal) or not isinstance(other, numbers.Real):
            return NotImplemented
        return UnitVal(self.value * float(other), self.units)

    __rmul__ = __mul__

    def __truediv__(self, other: float | UnitVal) -> UnitVal | float:
        if isinstance(other, UnitVal):
            # A ratio of like quantities is a plain number
            other = self._check(other, "divide")
            return self.value / other.value
        if not isinstance(other, numbers.Real):
            return NotImplemented
        return UnitVal(self.value / float(other), self.units)

    def __lt__(self, other: UnitVal) -> bool:
        return self.value < self._check(other, "compare").value

    def __le__(self, other: UnitVal) -> bool:
        return self.value <= self._check(other, "compare").value

    def __gt__(self, other: UnitVal) -> bool:
        return self.value > self._check(other, "compare").value

    def __ge__(self, other: UnitVal) -> bool:
        return self.value >= self._check(other, "compare").value

    def __str__(self) -> str:
        return f"{self.value:g} {self.units}"
