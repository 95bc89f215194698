"""
Date-indexed series of model values.

:class:`TimeSeries` maps dates to samples. A sample may be a float, a
:class:`~nbox.units.UnitVal` or a mapping of biome name to either of those.
Two policies control what happens when a date is not stored:

- ``allow_interp``: linear interpolation between the neighbouring dates
- ``allow_partial_interp``: clamp to the first/last sample outside the stored range

:class:`BiomeTimeSeries` adds operations that add, remove or rename a biome
in every stored sample.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterator, Mapping
from typing import Any, Generic, TypeVar

from nbox.exceptions import BiomeConflictError, TimeseriesIndexError

__all__ = ["BiomeTimeSeries", "TimeSeries"]

T = TypeVar("T")


def _lerp(lo: Any, hi: Any, frac: float) -> Any:
    """Linearly interpolate between two samples of the same shape."""
    if isinstance(lo, Mapping):
        return {key: _lerp(lo[key], hi[key], frac) for key in lo}
    return lo + (hi - lo) * frac


def _copy(sample: Any) -> Any:
    if isinstance(sample, Mapping):
        return dict(sample)
    return sample


class TimeSeries(Generic[T]):
    """
    Ordered mapping of date to value.

    Parameters
    ----------
    name
        Name used in error messages
    allow_interp
        Interpolate linearly between stored dates
    allow_partial_interp
        Return the nearest endpoint for dates outside the stored range

    Examples
    --------
    >>> ts = TimeSeries("emissions", allow_interp=True)
    >>> ts.set(2000, 1.0)
    >>> ts.set(2010, 2.0)
    >>> ts.get(2005)
    1.5
    """

    def __init__(
        self,
        name: str = "",
        allow_interp: bool = False,
        allow_partial_interp: bool = False,
    ) -> None:
        self.name = name
        self.allow_interp = allow_interp
        self.allow_partial_interp = allow_partial_interp
        self._data: dict[float, T] = {}
        self._dates: list[float] = []

    def set(self, date: float, value: T) -> None:
        """Store ``value`` at ``date``, replacing any existing sample."""
        date = float(date)
        if date not in self._data:
            bisect.insort(self._dates, date)
        self._data[date] = _copy(value)

    def get(self, date: float) -> T:
        """
        Return the value at ``date``.

        Raises
        ------
        TimeseriesIndexError
            If the series is empty, or ``date`` is not stored and the
            interpolation policies do not cover it
        """
        if not self._dates:
            msg = f"Time series '{self.name}' is empty (requested {date})"
            raise TimeseriesIndexError(msg)

        date = float(date)
        if date in self._data:
            return _copy(self._data[date])

        first, last = self._dates[0], self._dates[-1]
        if first < date < last:
            if self.allow_interp:
                i = bisect.bisect_left(self._dates, date)
                d_lo, d_hi = self._dates[i - 1], self._dates[i]
                frac = (date - d_lo) / (d_hi - d_lo)
                return _lerp(self._data[d_lo], self._data[d_hi], frac)
        elif self.allow_partial_interp:
            return _copy(self._data[first] if date < first else self._data[last])

        msg = (
            f"Date {date} not available in time series '{self.name}' "
            f"(range {first} to {last})"
        )
        raise TimeseriesIndexError(msg)

    def at(self, date: float) -> T:
        """Return the sample stored exactly at ``date`` (no interpolation)."""
        date = float(date)
        if date not in self._data:
            msg = f"Date {date} not stored in time series '{self.name}'"
            raise TimeseriesIndexError(msg)
        return _copy(self._data[date])

    def exists(self, date: float) -> bool:
        """Check whether a sample is stored exactly at ``date``."""
        return float(date) in self._data

    __contains__ = exists

    def first_date(self) -> float:
        """Return the earliest stored date."""
        if not self._dates:
            msg = f"Time series '{self.name}' is empty"
            raise TimeseriesIndexError(msg)
        return self._dates[0]

    def last_date(self) -> float:
        """Return the latest stored date."""
        if not self._dates:
            msg = f"Time series '{self.name}' is empty"
            raise TimeseriesIndexError(msg)
        return self._dates[-1]

    def dates(self) -> list[float]:
        """Return the stored dates in ascending order."""
        return list(self._dates)

    def size(self) -> int:
        """Return the number of stored samples."""
        return len(self._dates)

    def __len__(self) -> int:
        return len(self._dates)

    def items(self) -> Iterator[tuple[float, T]]:
        """Iterate over ``(date, sample)`` pairs in date order."""
        for date in self._dates:
            yield date, _copy(self._data[date])

    def truncate(self, date: float) -> None:
        """Remove every sample stored after ``date``."""
        keep = bisect.bisect_right(self._dates, float(date))
        for dropped in self._dates[keep:]:
            del self._data[dropped]
        del self._dates[keep:]

    def clear(self) -> None:
        """Remove all samples."""
        self._data.clear()
        self._dates.clear()

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(name={self.name!r}, size={len(self)}, "
            f"allow_interp={self.allow_interp}, "
            f"allow_partial_interp={self.allow_partial_interp})"
        )


class BiomeTimeSeries(TimeSeries[dict[str, Any]]):
    """
    Time series whose samples map biome name to value.

    The biome operations check every sample before changing any of them, so
    a failed call leaves the history untouched.
    """

    def add_biome(self, biome: str, value: Any) -> None:
        """Add ``biome`` with ``value`` to every stored sample."""
        for date, sample in self._data.items():
            if biome in sample:
                msg = f"Biome '{biome}' already present in '{self.name}' at {date}"
                raise BiomeConflictError(msg)
        for sample in self._data.values():
            sample[biome] = value

    def remove_biome(self, biome: str) -> None:
        """Drop ``biome`` from every stored sample."""
        for date, sample in self._data.items():
            if biome not in sample:
                msg = f"Biome '{biome}' missing from '{self.name}' at {date}"
                raise BiomeConflictError(msg)
        for sample in self._data.values():
            del sample[biome]

    def rename_biome(self, old: str, new: str) -> None:
        """Re-key ``old`` as ``new`` in every stored sample."""
        for date, sample in self._data.items():
            if old not in sample or new in sample:
                msg = (
                    f"Cannot rename biome '{old}' to '{new}' "
                    f"in '{self.name}' at {date}"
                )
                raise BiomeConflictError(msg)
        for sample in self._data.values():
            sample[new] = sample.pop(old)

    def discard_biome(self, biome: str) -> None:
        """Drop ``biome`` from every sample that has it."""
        for sample in self._data.values():
            sample.pop(biome, None)
