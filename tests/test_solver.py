"""
Unit tests for nbox.components.solver module.

Tests integrator settings and how the solver drives the carbon models.
"""

from __future__ import annotations

import pytest

from nbox.components import CarbonCycleSolver, Component
from nbox.config import CoreConfig, Setting, SolverConfig
from nbox.config.exceptions import ValidationError
from nbox.core import Core
from nbox.exceptions import SolverError, UnknownVariableError
from nbox.messages import MessageData
from nbox.units import Unit, UnitVal


class TestSolverSettings:
    """Tests for solver settings."""

    def test_set_and_get(self, core):
        """Tolerances are set through the bus."""
        core.set_data("carbon-cycle-solver", "eps_abs", MessageData.of("1e-8"))
        solver = core.get_component("carbon-cycle-solver")
        assert solver.config.eps_abs == 1e-8
        assert solver.get_data("eps_abs") == UnitVal(1e-8, Unit.UNITLESS)

    def test_unknown_setting(self, core):
        """Unknown settings are rejected."""
        with pytest.raises(UnknownVariableError, match="Could not parse var: tol"):
            core.set_data("carbon-cycle-solver", "tol", MessageData.of(1.0))

    def test_checked_before_run(self, make_core):
        """Out-of-range settings are caught when preparing."""
        core = make_core([Setting("carbon-cycle-solver", "dt", None, 5.0)])
        with pytest.raises(ValidationError, match="dt"):
            core.prepare_to_run()

    def test_needs_carbon_model(self):
        """The provider of atmos_c must be a carbon cycle model."""

        class Atmosphere(Component):
            name = "atmosphere"

            def init(self, core):
                super().init(core)
                core.register_capability("atmos_c", self.name)

        core = Core(CoreConfig(start_date=1745.0, end_date=1750.0, do_spinup=False))
        core.add_component(Atmosphere())
        core.add_component(CarbonCycleSolver(SolverConfig()))
        with pytest.raises(ValidationError, match="not a carbon cycle model"):
            core.prepare_to_run()


class TestIntegration:
    """Tests for stepping the carbon models."""

    def test_counts_evaluations(self, core):
        """Derivative evaluations are counted."""
        core.run(until=1750)
        solver = core.get_component("carbon-cycle-solver")
        assert solver.nfev > 0
        core.shut_down()

    def test_failed_derivatives(self, core, nbox, monkeypatch):
        """A failing derivative evaluation aborts the run."""
        monkeypatch.setattr(nbox, "calc_derivs", lambda t, c, dcdt: 1)
        with pytest.raises(SolverError, match="status 1"):
            core.run(until=1746)
        assert not core.running

    def test_other_methods(self, make_core):
        """Any solve_ivp method gives the same equilibrium."""
        core = make_core()
        solver = core.get_component("carbon-cycle-solver")
        solver.config.method = "LSODA"
        core.run(until=1760)
        assert core.get_data("Ca", 1760).value == pytest.approx(277.15, abs=1e-6)
