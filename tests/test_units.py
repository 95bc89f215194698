"""
Unit tests for nbox.units module.

Tests unit-tagged arithmetic, comparison and conversion.
"""

from __future__ import annotations

import pytest

from nbox.exceptions import NboxError, UnitMismatchError
from nbox.units import PGC_TO_PPMVCO2, PPMVCO2_TO_PGC, Unit, UnitVal


class TestArithmetic:
    """Tests for UnitVal arithmetic."""

    def test_add_same_units(self):
        """Values with the same units add."""
        total = UnitVal(550.0, Unit.PGC) + UnitVal(10.0, Unit.PGC)
        assert total == UnitVal(560.0, Unit.PGC)

    def test_subtract_and_negate(self):
        """Subtraction and negation keep the units."""
        diff = UnitVal(5.0, Unit.PGC_YR) - UnitVal(7.0, Unit.PGC_YR)
        assert diff == UnitVal(-2.0, Unit.PGC_YR)
        assert -diff == UnitVal(2.0, Unit.PGC_YR)
        assert abs(diff) == UnitVal(2.0, Unit.PGC_YR)

    def test_add_mismatched_units(self):
        """Adding different units raises UnitMismatchError."""
        with pytest.raises(UnitMismatchError, match="units differ"):
            UnitVal(1.0, Unit.PGC) + UnitVal(1.0, Unit.PPMV_CO2)

    def test_add_plain_number(self):
        """A plain number cannot be added to a value with units."""
        with pytest.raises(UnitMismatchError, match="both operands need units"):
            UnitVal(1.0, Unit.PGC) + 1.0

    def test_scale(self):
        """Scaling by a number keeps the units."""
        assert UnitVal(2.0, Unit.PGC) * 3 == UnitVal(6.0, Unit.PGC)
        assert 0.5 * UnitVal(2.0, Unit.PGC) == UnitVal(1.0, Unit.PGC)
        assert UnitVal(6.0, Unit.PGC) / 3.0 == UnitVal(2.0, Unit.PGC)

    def test_ratio_is_plain(self):
        """Dividing like quantities gives a plain float."""
        ratio = UnitVal(350.0, Unit.PPMV_CO2) / UnitVal(280.0, Unit.PPMV_CO2)
        assert isinstance(ratio, float)
        assert ratio == pytest.approx(1.25)

    def test_multiply_values(self):
        """Two unit values cannot be multiplied."""
        with pytest.raises(TypeError):
            UnitVal(1.0, Unit.PGC) * UnitVal(1.0, Unit.PGC)

    def test_compare(self):
        """Comparison needs matching units."""
        assert UnitVal(1.0, Unit.PGC) < UnitVal(2.0, Unit.PGC)
        assert UnitVal(2.0, Unit.PGC) >= UnitVal(2.0, Unit.PGC)
        with pytest.raises(UnitMismatchError):
            _ = UnitVal(1.0, Unit.PGC) < UnitVal(2.0, Unit.DEGC)


class TestConversion:
    """Tests for UnitVal conversion."""

    def test_constants(self):
        """The two carbon factors are reciprocal."""
        assert PPMVCO2_TO_PGC == 2.1305
        assert PGC_TO_PPMVCO2 * PPMVCO2_TO_PGC == pytest.approx(1.0)

    def test_pgc_to_ppmv(self):
        """Atmospheric carbon converts to a concentration."""
        ca = UnitVal(277.15 * PPMVCO2_TO_PGC, Unit.PGC).convert(Unit.PPMV_CO2)
        assert ca.units == Unit.PPMV_CO2
        assert ca.value == pytest.approx(277.15)

    def test_identity(self):
        """Converting to the same unit returns the value unchanged."""
        val = UnitVal(1.0, Unit.DEGC)
        assert val.convert(Unit.DEGC) is val

    def test_incompatible(self):
        """Unrelated units cannot be converted."""
        with pytest.raises(UnitMismatchError, match="Cannot convert"):
            UnitVal(1.0, Unit.DEGC).convert(Unit.PGC)

    def test_value_in(self):
        """value_in checks the units before unwrapping."""
        assert UnitVal(3.0, Unit.W_M2).value_in(Unit.W_M2) == 3.0
        with pytest.raises(UnitMismatchError, match="Expected a value in"):
            UnitVal(3.0, Unit.W_M2).value_in(Unit.PGC)

    def test_error_hierarchy(self):
        """Unit errors are model errors."""
        assert issubclass(UnitMismatchError, NboxError)

    def test_str(self):
        """Values print with their units."""
        assert str(UnitVal(2.5, Unit.DEGC)) == "2.5 degC"
