"""
Exceptions raised by the nbox carbon-cycle core.

Every error kind the model can signal has its own class, rooted at
:class:`NboxError`:

- UnitMismatchError: arithmetic or conversion between incompatible units
- TimeseriesIndexError: a time series cannot answer a query for a date
- UnknownDatumError: no component provides the requested capability
- UnknownVariableError: a component does not know the variable name
- DuplicateCapabilityError: two components claim the same capability
- CircularDependencyError: component dependencies form a cycle
- BiomeConflictError: biome list and requested biome disagree
- DateRequirementError: a date was given where forbidden (or missing where required)
- PartitionSumError: flux partition fractions add up to more than one
- NegativePoolError: a carbon pool dropped below zero
- MassNotConservedError: the global carbon budget does not close
"""

from __future__ import annotations

__all__ = [
    "BiomeConflictError",
    "CircularDependencyError",
    "DateRequirementError",
    "DuplicateCapabilityError",
    "MassNotConservedError",
    "NboxError",
    "NegativePoolError",
    "ParameterRangeError",
    "PartitionSumError",
    "RegistryFrozenError",
    "SolverError",
    "SpinupError",
    "TimeseriesIndexError",
    "UnitMismatchError",
    "UnknownDatumError",
    "UnknownVariableError",
]


class NboxError(Exception):
    """Base exception for all model errors."""

    def rewrap(self, context: str) -> NboxError:
        """
        Return a copy of this error with ``context`` prefixed to its message.

        The copy keeps the class (and therefore the error kind) and any
        attributes of the original.

        Parameters
        ----------
        context
            Text to put in front of the original message

        Returns
        -------
        NboxError
            New exception instance of the same type
        """
        cls = type(self)
        wrapped = cls.__new__(cls)
        wrapped.__dict__.update(self.__dict__)
        wrapped.args = (f"{context}: {self}",)
        return wrapped


class UnitMismatchError(NboxError):
    """Raised when values with incompatible units are combined."""


class TimeseriesIndexError(NboxError, IndexError):
    """Raised when a time series has no value for the requested date."""


class UnknownDatumError(NboxError):
    """Raised when no component provides a requested capability."""


class UnknownVariableError(NboxError):
    """Raised when a component is asked for a variable it does not handle."""


class DuplicateCapabilityError(NboxError):
    """Raised when a capability is registered by more than one component."""


class CircularDependencyError(NboxError):
    """Raised when component dependencies cannot be ordered."""


class BiomeConflictError(NboxError):
    """
    Raised for inconsistent biome usage.

    Examples are mixing the ``global`` biome with named biomes, querying a
    biome that does not exist or creating a biome twice.
    """


class DateRequirementError(NboxError):
    """Raised when a date is missing for a dated variable or given for a scalar."""


class PartitionSumError(NboxError):
    """Raised when partition fractions sum to more than one."""


class NegativePoolError(NboxError):
    """Raised when a carbon pool becomes negative."""


class MassNotConservedError(NboxError):
    """Raised when the total carbon in the system drifts."""


class ParameterRangeError(NboxError):
    """Raised when a model parameter falls outside its valid range."""


class SolverError(NboxError):
    """Raised when the ODE integration fails or is aborted."""


class SpinupError(NboxError):
    """Raised when spin-up does not converge within the allowed steps."""


class RegistryFrozenError(NboxError):
    """Raised when the core registry is modified after the model is prepared."""
