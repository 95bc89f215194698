"""
Component contracts.

:class:`Component` is what the core talks to: it registers capabilities,
answers bus messages and takes part in the run loop. :class:`CarbonCycleModel`
adds the contract shared by every model that owns slots of the carbon state
vector integrated by the solver.
"""

from __future__ import annotations

import abc
import weakref
from dataclasses import dataclass, field
from enum import IntEnum
from typing import TYPE_CHECKING, ClassVar

import numpy as np
import numpy.typing as npt

from nbox.exceptions import NboxError
from nbox.messages import MessageData, MessageKind
from nbox.units import UnitVal

if TYPE_CHECKING:
    from nbox.core import Core

__all__ = ["CarbonCycleModel", "CarbonPool", "Component", "Snapshot"]


class CarbonPool(IntEnum):
    """Index of each pool in the carbon state vector."""

    ATMOS = 0
    VEG = 1
    DET = 2
    SOIL = 3
    OCEAN = 4
    EARTH = 5
    PERMAFROST = 6


@dataclass
class Snapshot:
    """
    Plain record of a component's state at one date.

    Attributes
    ----------
    component
        Name of the component
    date
        Date of the record
    values
        Variable name (biome-qualified where relevant) to value
    """

    component: str
    date: float
    values: dict[str, UnitVal] = field(default_factory=dict)


class Component:
    """
    Base class for everything attached to a :class:`~nbox.core.Core`.

    Subclasses set :attr:`name` (the configuration section) and override the
    hooks they need. The component keeps only a weak reference to its core.
    """

    name: ClassVar[str] = ""

    def __init__(self) -> None:
        self._core_ref: weakref.ReferenceType[Core] | None = None
        self.enabled = True
        self.output_enabled = True

    @property
    def core(self) -> Core:
        """The core this component is attached to."""
        core = self._core_ref() if self._core_ref is not None else None
        if core is None:
            msg = f"Component '{self.name}' is not attached to a core"
            raise NboxError(msg)
        return core

    def init(self, core: Core) -> None:
        """Attach to ``core`` and register capabilities and dependencies."""
        self._core_ref = weakref.ref(core)

    def send_message(
        self, kind: MessageKind, datum: str, info: MessageData
    ) -> UnitVal | None:
        """Handle a message routed to this component by the core."""
        if kind == MessageKind.GET_DATA:
            return self.get_data(datum, info.date)
        if kind == MessageKind.SET_DATA:
            self.set_data(datum, info)
            return None
        msg = f"Component '{self.name}' cannot handle message '{kind}'"
        raise NboxError(msg)

    def set_data(self, var_name: str, data: MessageData) -> None:
        """Set a variable from a message."""
        raise NotImplementedError

    def get_data(self, var_name: str, date: float | None = None) -> UnitVal:
        """Return a variable, at ``date`` or (when undated) its current value."""
        raise NotImplementedError

    def prepare_to_run(self) -> None:
        """Check inputs and fill defaults before the first step."""

    def run(self, date: float) -> None:
        """Advance to ``date``."""

    def run_spinup(self, step: int) -> bool:
        """Take one spin-up step and report whether this component has converged."""
        return True

    def record_initial_state(self, date: float) -> None:
        """Record the state at the start of the historical run."""

    def reset(self, date: float) -> None:
        """Restore the state recorded at ``date`` and drop anything later."""

    def shut_down(self) -> None:
        """Release resources at the end of a run."""

    def recorded_dates(self) -> list[float]:
        """Dates for which :meth:`snapshot` can report state."""
        return []

    def snapshot(self, date: float) -> Snapshot:
        """Return the recorded state at ``date``."""
        return Snapshot(self.name, date)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, enabled={self.enabled})"


class CarbonCycleModel(Component, abc.ABC):
    """
    A component owning slots of the carbon state vector.

    The solver drives every carbon model through the same sequence each step:
    :meth:`slow_param_eval`, :meth:`get_c_values`, any number of
    :meth:`calc_derivs` calls, :meth:`stash_c_values` and finally
    :meth:`record_state`. ``calc_derivs`` must not change stored state.
    """

    ncpool: ClassVar[int] = len(CarbonPool)

    @abc.abstractmethod
    def get_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """Write this model's pools into its slots of ``c`` (in place)."""

    @abc.abstractmethod
    def calc_derivs(
        self, t: float, c: npt.NDArray[np.float64], dcdt: npt.NDArray[np.float64]
    ) -> int:
        """
        Write derivatives for this model's slots of ``dcdt``.

        Returns
        -------
        int
            Zero on success, nonzero to abort the integration
        """

    @abc.abstractmethod
    def stash_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """Take the integrated pools at ``t`` back into model state."""

    @abc.abstractmethod
    def slow_param_eval(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """Update parameters that stay fixed over one solver step."""

    @abc.abstractmethod
    def record_state(self, t: float) -> None:
        """Snapshot the current state at ``t`` so it can be restored by :meth:`reset`."""
