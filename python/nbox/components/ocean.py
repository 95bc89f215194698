"""
Single-box ocean carbon model.

The ocean owns the ``OCEAN`` slot of the carbon state vector. It takes up a
fixed fraction of the atmospheric carbon in excess of the preindustrial
level each year and absorbs any carbon removed from the atmosphere to meet a
prescribed concentration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from nbox.components.base import CarbonCycleModel, CarbonPool, Snapshot
from nbox.config.models.ocean import OceanParameters
from nbox.config.registry import register_component
from nbox.datum import Datum
from nbox.exceptions import (
    DateRequirementError,
    NboxError,
    NegativePoolError,
    ParameterRangeError,
    UnknownVariableError,
)
from nbox.messages import MessageData, MessageKind
from nbox.timeseries import TimeSeries
from nbox.units import Unit, UnitVal

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["OceanCarbonBox"]


@register_component("ocean")
class OceanCarbonBox(CarbonCycleModel):
    """
    Well-mixed ocean carbon pool.

    ``atm_ocean_flux = uptake_rate * (atmos_c - C0)`` with ``C0`` expressed in
    PgC. Positive fluxes move carbon into the ocean.

    Parameters
    ----------
    parameters
        Uptake rate and initial ocean pool
    """

    def __init__(self, parameters: OceanParameters | None = None) -> None:
        super().__init__()
        parameters = parameters if parameters is not None else OceanParameters()
        self.uptake_rate = parameters.uptake_rate
        self.ocean_c = UnitVal(parameters.ocean_c, Unit.PGC)
        self.atm_ocean_flux = UnitVal(0.0, Unit.PGC_YR)
        self.dumped_c = UnitVal(0.0, Unit.PGC)
        self._c0_pgc = 0.0

        self.ocean_c_ts: TimeSeries[UnitVal] = TimeSeries("ocean_c")
        self.atm_ocean_flux_ts: TimeSeries[UnitVal] = TimeSeries("atm_ocean_flux")
        self.dumped_c_ts: TimeSeries[UnitVal] = TimeSeries("dumped_c")

    def init(self, core: Core) -> None:  # noqa: D102
        super().init(core)
        core.register_capability(Datum.OCEAN_C, self.name)
        core.register_capability(Datum.ATM_OCEAN_FLUX, self.name)
        core.register_capability(Datum.UPTAKE_RATE, self.name)
        core.register_input(Datum.OCEAN_C, self.name)
        core.register_input(Datum.UPTAKE_RATE, self.name)

    def send_message(
        self, kind: MessageKind, datum: str, info: MessageData
    ) -> UnitVal | None:
        """Handle bus messages, including transfers to the deep ocean."""
        if kind == MessageKind.DUMP_TO_DEEP_OCEAN:
            self.dump(info.get_unitval(Unit.PGC))
            return None
        return super().send_message(kind, datum, info)

    def dump(self, amount: UnitVal) -> None:
        """Move ``amount`` of carbon (signed) from the atmosphere into the ocean."""
        logger.debug(f"Receiving {amount} into the deep ocean")
        self.ocean_c = self.ocean_c + amount
        self.dumped_c = self.dumped_c + amount

    def set_data(self, var_name: str, data: MessageData) -> None:
        """Set ``ocean_c`` (PgC) or ``uptake_rate`` (1/yr); neither takes a date."""
        try:
            if data.date is not None:
                msg = f"A date is not allowed for '{var_name}'"
                raise DateRequirementError(msg)
            match var_name:
                case Datum.OCEAN_C:
                    self.ocean_c = data.get_unitval(Unit.PGC)
                case Datum.UPTAKE_RATE:
                    self.uptake_rate = data.get_unitval(Unit.UNITLESS).value
                case _:
                    msg = f"Unknown variable '{var_name}' for {self.name}"
                    raise UnknownVariableError(msg)
        except NboxError as err:
            raise err.rewrap(f"Could not parse var: {var_name}") from err

    def get_data(self, var_name: str, date: float | None = None) -> UnitVal:
        """Return ``ocean_c``, ``atm_ocean_flux`` or ``uptake_rate``."""
        match var_name:
            case Datum.OCEAN_C:
                return self.ocean_c if date is None else self.ocean_c_ts.get(date)
            case Datum.ATM_OCEAN_FLUX:
                if date is None:
                    return self.atm_ocean_flux
                return self.atm_ocean_flux_ts.get(date)
            case Datum.UPTAKE_RATE:
                if date is not None:
                    msg = f"Date not allowed for '{var_name}'"
                    raise DateRequirementError(msg)
                return UnitVal(self.uptake_rate, Unit.UNITLESS)
        msg = f"Caller is requesting unknown variable '{var_name}' from {self.name}"
        raise UnknownVariableError(msg)

    def _update_c0(self) -> None:
        c0 = self.core.get_data(Datum.C0)
        self._c0_pgc = c0.convert(Unit.PGC).value

    def _flux(self, atmos: float) -> float:
        return self.uptake_rate * (atmos - self._c0_pgc)

    def prepare_to_run(self) -> None:  # noqa: D102
        if self.uptake_rate < 0.0:
            msg = f"uptake_rate < 0 ({self.uptake_rate})"
            raise ParameterRangeError(msg)
        self._update_c0()

    def get_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:  # noqa: D102
        c[CarbonPool.OCEAN] = self.ocean_c.value

    def calc_derivs(
        self, t: float, c: npt.NDArray[np.float64], dcdt: npt.NDArray[np.float64]
    ) -> int:
        """Write the atmosphere to ocean flux into the ocean slot of ``dcdt``."""
        dcdt[CarbonPool.OCEAN] = self._flux(c[CarbonPool.ATMOS])
        return 0

    def slow_param_eval(self, t: float, c: npt.NDArray[np.float64]) -> None:  # noqa: D102
        self._update_c0()

    def stash_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:  # noqa: D102
        self.ocean_c = UnitVal(float(c[CarbonPool.OCEAN]), Unit.PGC)
        self.atm_ocean_flux = UnitVal(self._flux(c[CarbonPool.ATMOS]), Unit.PGC_YR)
        if self.ocean_c.value < 0.0:
            msg = f"ocean_c pool < 0 at t={t} ({self.ocean_c})"
            raise NegativePoolError(msg)

    def record_state(self, t: float) -> None:  # noqa: D102
        self.ocean_c_ts.set(t, self.ocean_c)
        self.atm_ocean_flux_ts.set(t, self.atm_ocean_flux)
        self.dumped_c_ts.set(t, self.dumped_c)

    def reset(self, date: float) -> None:  # noqa: D102
        self.ocean_c = self.ocean_c_ts.get(date)
        self.atm_ocean_flux = self.atm_ocean_flux_ts.get(date)
        self.dumped_c = self.dumped_c_ts.get(date)
        for series in (self.ocean_c_ts, self.atm_ocean_flux_ts, self.dumped_c_ts):
            series.truncate(date)
        logger.info(f"{self.name} reset to time = {date}")

    def recorded_dates(self) -> list[float]:  # noqa: D102
        return self.ocean_c_ts.dates()

    def snapshot(self, date: float) -> Snapshot:  # noqa: D102
        return Snapshot(
            self.name,
            date,
            {
                Datum.OCEAN_C: self.ocean_c_ts.get(date),
                Datum.ATM_OCEAN_FLUX: self.atm_ocean_flux_ts.get(date),
                "dumped_c": self.dumped_c_ts.get(date),
            },
        )
