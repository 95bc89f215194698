"""
Base configuration types for nbox.

- Setting: one ``(section, name, date, value)`` entry read from a file
- CoreConfig: run settings owned by the core
- SolverConfig: integrator settings owned by the carbon-cycle solver
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

from nbox.messages import MessageData
from nbox.units import UnitVal

from .exceptions import ValidationError
from .parameters import parameter, validate_parameters

__all__ = ["CoreConfig", "Setting", "SolverConfig"]


class Setting(NamedTuple):
    """
    A single configuration entry.

    Parameters
    ----------
    section
        Component section the entry belongs to (``core`` for run settings)
    name
        Variable name, optionally biome-qualified (``forest.veg_c``)
    date
        Date of a time-series entry, or None for an undated value
    value
        Raw value as read from the file
    """

    section: str
    name: str
    date: float | None
    value: str | float | UnitVal

    def to_message(self) -> MessageData:
        """Wrap the value in a bus message."""
        return MessageData.of(self.value, self.date)


@dataclass
class CoreConfig:
    """
    Run settings.

    Parameters
    ----------
    run_name
        Label of the run, used in output
    start_date
        First date of the historical run (after spin-up)
    end_date
        Last date of the run
    do_spinup
        Equilibrate the carbon cycle before ``start_date``
    max_spinup
        Maximum number of spin-up steps before giving up

    Raises
    ------
    ValidationError
        If ``end_date`` is not after ``start_date``
    """

    run_name: str = "default"
    start_date: float = parameter(default=1745.0, unit="yr", description="Start year")
    end_date: float = parameter(default=2300.0, unit="yr", description="End year")
    do_spinup: bool = True
    max_spinup: int = parameter(
        default=2000,
        description="Maximum number of spin-up steps",
        range=(1, 1_000_000),
    )

    def __post_init__(self) -> None:
        """Validate the run settings."""
        self.check()

    def check(self) -> None:
        """
        Validate the run settings.

        Called again before a run because individual settings can change after
        construction.
        """
        if self.end_date <= self.start_date:
            msg = (
                f"endDate ({self.end_date}) must be greater than "
                f"startDate ({self.start_date})"
            )
            raise ValidationError(msg)
        errors = validate_parameters(self)
        if errors:
            msg = f"Invalid core settings: {errors}"
            raise ValidationError(msg)


@dataclass
class SolverConfig:
    """
    Integrator settings for the carbon cycle.

    Parameters
    ----------
    eps_abs
        Absolute tolerance of the integrator
    eps_rel
        Relative tolerance of the integrator
    dt
        Initial step size tried by the integrator
    eps_spinup
        Largest per-step pool change (PgC) at which spin-up counts as converged
    method
        ``scipy.integrate.solve_ivp`` method name
    """

    eps_abs: float = parameter(
        default=1e-6,
        description="Absolute tolerance of the integrator",
        range=(0.0, 1.0),
    )
    eps_rel: float = parameter(
        default=1e-6,
        description="Relative tolerance of the integrator",
        range=(0.0, 1.0),
    )
    dt: float = parameter(
        default=0.6,
        unit="yr",
        description="Initial integrator step size",
        range=(1e-6, 1.0),
    )
    eps_spinup: float = parameter(
        default=0.001,
        unit="PgC",
        description="Spin-up convergence threshold on per-step pool change",
        range=(0.0, 1000.0),
    )
    method: str = parameter(
        default="RK45",
        description="Integration method",
        choices=["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"],
    )

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        self.check()

    def check(self) -> None:
        """Validate the solver settings."""
        errors = validate_parameters(self)
        if errors:
            msg = f"Invalid solver settings: {errors}"
            raise ValidationError(msg)
