"""
Unit tests for nbox.config.base module.

Tests the Setting tuple and the core and solver settings dataclasses.
"""

from __future__ import annotations

import pytest

from nbox.config.base import CoreConfig, Setting, SolverConfig
from nbox.config.exceptions import ValidationError
from nbox.units import Unit, UnitVal


class TestSetting:
    """Tests for Setting named tuple."""

    def test_to_message_string(self):
        """A raw string stays a string payload."""
        message = Setting("simpleNbox", "beta", None, "0.36").to_message()
        assert message.value_str == "0.36"
        assert message.date is None

    def test_to_message_number_dated(self):
        """A number becomes a unitless value, keeping the date."""
        message = Setting("simpleNbox", "Ca_constrain", 1990.0, 350.0).to_message()
        assert message.value_unitval == UnitVal(350.0, Unit.UNITLESS)
        assert message.date == 1990.0


class TestCoreConfig:
    """Tests for CoreConfig dataclass."""

    def test_defaults(self):
        """Defaults cover the usual historical plus future run."""
        config = CoreConfig()
        assert config.start_date == 1745.0
        assert config.end_date == 2300.0
        assert config.do_spinup is True
        assert config.max_spinup == 2000

    def test_end_before_start(self):
        """The end date must come after the start date."""
        with pytest.raises(ValidationError, match="endDate .* must be greater than"):
            CoreConfig(start_date=2000.0, end_date=1900.0)

    def test_check_after_change(self):
        """check() catches settings changed after construction."""
        config = CoreConfig()
        config.end_date = config.start_date
        with pytest.raises(ValidationError):
            config.check()

    def test_max_spinup_range(self):
        """max_spinup must be at least one."""
        with pytest.raises(ValidationError, match="max_spinup"):
            CoreConfig(max_spinup=0)


class TestSolverConfig:
    """Tests for SolverConfig dataclass."""

    def test_defaults(self):
        """Default tolerances and step size."""
        config = SolverConfig()
        assert config.eps_abs == 1e-6
        assert config.eps_rel == 1e-6
        assert config.dt == 0.6
        assert config.eps_spinup == 0.001
        assert config.method == "RK45"

    def test_unknown_method(self):
        """Only solve_ivp methods are accepted."""
        with pytest.raises(ValidationError, match="method"):
            SolverConfig(method="Euler")

    def test_step_too_large(self):
        """The initial step cannot exceed one year."""
        with pytest.raises(ValidationError, match="dt"):
            SolverConfig(dt=2.0)
