"""
ODE driver for the carbon cycle.

Each annual step the solver asks the terrestrial model (which delegates to
the ocean model) to evaluate its slow parameters, packs the carbon state
vector, integrates it with :func:`scipy.integrate.solve_ivp` and hands the
final state back to be stashed and recorded.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from scipy.integrate import solve_ivp

from nbox.components.base import CarbonCycleModel, Component
from nbox.config.base import SolverConfig
from nbox.config.exceptions import ValidationError
from nbox.config.registry import register_component
from nbox.datum import Datum
from nbox.exceptions import NboxError, SolverError, UnknownVariableError
from nbox.messages import MessageData
from nbox.units import Unit, UnitVal

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["CarbonCycleSolver"]

_SETTINGS = (Datum.EPS_ABS, Datum.EPS_REL, Datum.DT, Datum.EPS_SPINUP)


@register_component("carbon-cycle-solver")
class CarbonCycleSolver(Component):
    """
    Integrates the carbon state vector from one year to the next.

    Parameters
    ----------
    config
        Integrator tolerances, initial step and spin-up threshold
    """

    def __init__(self, config: SolverConfig | None = None) -> None:
        super().__init__()
        self.config = config if config is not None else SolverConfig()
        self.model: CarbonCycleModel | None = None
        self.c: npt.NDArray[np.float64] = np.zeros(CarbonCycleModel.ncpool)
        self.nfev = 0

    def init(self, core: Core) -> None:  # noqa: D102
        super().init(core)
        core.register_dependency(Datum.ATMOS_C, self.name)

    def set_data(self, var_name: str, data: MessageData) -> None:
        """Set an integrator setting (``eps_abs``, ``eps_rel``, ``dt``, ``eps_spinup``)."""
        try:
            if var_name not in _SETTINGS:
                msg = f"Unknown variable '{var_name}' for {self.name}"
                raise UnknownVariableError(msg)
            value = data.get_unitval(Unit.UNITLESS).value
            setattr(self.config, str(var_name), value)
        except NboxError as err:
            raise err.rewrap(f"Could not parse var: {var_name}") from err

    def get_data(self, var_name: str, date: float | None = None) -> UnitVal:
        """Return an integrator setting."""
        if var_name not in _SETTINGS:
            msg = f"Caller is requesting unknown variable '{var_name}' from {self.name}"
            raise UnknownVariableError(msg)
        return UnitVal(getattr(self.config, str(var_name)), Unit.UNITLESS)

    def prepare_to_run(self) -> None:
        """
        Check the settings and find the carbon model to integrate.

        Raises
        ------
        ValidationError
            If a setting is out of range
        NboxError
            If the provider of ``atmos_c`` is not a carbon cycle model
        """
        self.config.check()
        model = self.core.get_component_by_capability(Datum.ATMOS_C)
        if not isinstance(model, CarbonCycleModel):
            msg = f"'{model.name}' provides atmos_c but is not a carbon cycle model"
            raise ValidationError(msg)
        self.model = model
        logger.debug(
            f"Integrating {model.name} with {self.config.method} "
            f"(eps_abs={self.config.eps_abs}, eps_rel={self.config.eps_rel})"
        )

    def _model(self) -> CarbonCycleModel:
        if self.model is None:
            msg = f"{self.name} has no carbon model; call prepare_to_run first"
            raise NboxError(msg)
        return self.model

    def _derivs(self, t: float, c: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        dcdt = np.zeros_like(c)
        status = self._model().calc_derivs(t, c, dcdt)
        if status != 0:
            msg = f"Derivative evaluation failed at t={t} with status {status}"
            raise SolverError(msg)
        return dcdt

    def _step(self, t: float, t_end: float) -> None:
        """Integrate the carbon state from ``t`` to ``t_end`` and stash the result."""
        model = self._model()
        model.get_c_values(t, self.c)
        model.slow_param_eval(t, self.c)

        sol = solve_ivp(
            self._derivs,
            (t, t_end),
            self.c,
            method=self.config.method,
            rtol=self.config.eps_rel,
            atol=self.config.eps_abs,
            first_step=min(self.config.dt, t_end - t),
        )
        self.nfev += sol.nfev
        if sol.status != 0:
            msg = f"Integration from {t} to {t_end} failed: {sol.message}"
            raise SolverError(msg)

        self.c = np.array(sol.y[:, -1])
        model.stash_c_values(t_end, self.c)

    def run(self, date: float) -> None:
        """Integrate over the year ending at ``date`` and record the state."""
        self._step(date - 1.0, date)
        self._model().record_state(date)

    def run_spinup(self, step: int) -> bool:
        """
        Take one spin-up step.

        Returns
        -------
        bool
            Whether every pool changed by less than ``eps_spinup``
        """
        model = self._model()
        before = np.zeros_like(self.c)
        model.get_c_values(step - 1.0, before)
        self._step(step - 1.0, float(step))
        after = np.zeros_like(self.c)
        model.get_c_values(float(step), after)

        change = np.abs(after - before)
        converged = bool(np.all(change < self.config.eps_spinup))
        logger.debug(f"Spin-up step {step}: largest pool change {change.max()}")
        return converged

    def record_initial_state(self, date: float) -> None:
        """Record the state the historical run starts from."""
        model = self._model()
        model.get_c_values(date, self.c)
        model.record_state(date)

    def reset(self, date: float) -> None:  # noqa: D102
        self._model().get_c_values(date, self.c)

    def shut_down(self) -> None:  # noqa: D102
        logger.debug(f"{self.name}: {self.nfev} derivative evaluations")
