"""
Prescribed global mean temperature.

Stands in for a climate model: ``Tgav`` is read from a dated series set in
the ``temperature`` section and advanced once per year by the core.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from nbox.components.base import Component, Snapshot
from nbox.config.registry import register_component
from nbox.datum import Datum
from nbox.exceptions import DateRequirementError, NboxError, UnknownVariableError
from nbox.messages import MessageData
from nbox.timeseries import TimeSeries
from nbox.units import Unit, UnitVal

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["PrescribedTemperature"]


@register_component("temperature")
class PrescribedTemperature(Component):
    """
    Global mean temperature anomaly from a prescribed series.

    Dates between samples are interpolated and dates outside the series take
    the nearest sample. Without any samples the temperature is zero.
    """

    def __init__(self) -> None:
        super().__init__()
        self.tgav_input: TimeSeries[UnitVal] = TimeSeries(
            "Tgav", allow_interp=True, allow_partial_interp=True
        )
        self.tgav_ts: TimeSeries[UnitVal] = TimeSeries("Tgav")
        self.tgav = UnitVal(0.0, Unit.DEGC)

    def init(self, core: Core) -> None:  # noqa: D102
        super().init(core)
        core.register_capability(Datum.TGAV, self.name)
        core.register_input(Datum.TGAV, self.name)

    def set_data(self, var_name: str, data: MessageData) -> None:
        """Set a ``Tgav`` sample (a date is required)."""
        try:
            if var_name != Datum.TGAV:
                msg = f"Unknown variable '{var_name}' for {self.name}"
                raise UnknownVariableError(msg)
            if data.date is None:
                msg = f"A date is required for '{var_name}'"
                raise DateRequirementError(msg)
            self.tgav_input.set(data.date, data.get_unitval(Unit.DEGC))
        except NboxError as err:
            raise err.rewrap(f"Could not parse var: {var_name}") from err

    def get_data(self, var_name: str, date: float | None = None) -> UnitVal:
        """Return the current temperature, or the one recorded at ``date``."""
        if var_name != Datum.TGAV:
            msg = f"Caller is requesting unknown variable '{var_name}' from {self.name}"
            raise UnknownVariableError(msg)
        if date is None:
            return self.tgav
        return self.tgav_ts.get(date)

    def _prescribed(self, date: float) -> UnitVal:
        if not len(self.tgav_input):
            return UnitVal(0.0, Unit.DEGC)
        return self.tgav_input.get(date)

    def prepare_to_run(self) -> None:  # noqa: D102
        if not len(self.tgav_input):
            logger.info("No Tgav given, using 0 degC throughout")
        self.tgav = self._prescribed(self.core.config.start_date)

    def record_initial_state(self, date: float) -> None:  # noqa: D102
        self.tgav = self._prescribed(date)
        self.tgav_ts.set(date, self.tgav)

    def run(self, date: float) -> None:  # noqa: D102
        self.tgav = self._prescribed(date)
        self.tgav_ts.set(date, self.tgav)

    def reset(self, date: float) -> None:  # noqa: D102
        self.tgav = self.tgav_ts.get(date)
        self.tgav_ts.truncate(date)
        logger.info(f"{self.name} reset to time = {date}")

    def recorded_dates(self) -> list[float]:  # noqa: D102
        return self.tgav_ts.dates()

    def snapshot(self, date: float) -> Snapshot:  # noqa: D102
        return Snapshot(self.name, date, {Datum.TGAV: self.tgav_ts.get(date)})
