"""
Message envelopes passed over the core bus.

A message carries either a raw string (as read from a configuration file) or
a unit-tagged value, plus an optional date. Components turn the payload into
the value they need with :meth:`MessageData.get_unitval`,
:meth:`MessageData.get_bool` or :meth:`MessageData.get_str`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from nbox.exceptions import NboxError
from nbox.units import Unit, UnitVal

__all__ = ["MessageData", "MessageKind"]

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


class MessageKind(StrEnum):
    """Kinds of message routed by the core."""

    GET_DATA = "getData"
    SET_DATA = "setData"
    DUMP_TO_DEEP_OCEAN = "deepOceanCarbonDump"


@dataclass(frozen=True)
class MessageData:
    """
    Payload of a bus message.

    Parameters
    ----------
    value_str
        Raw string value, usually straight from a configuration file
    value_unitval
        Value with units, used when components talk to each other
    date
        Date the value applies to. ``None`` means the value is undated.
    """

    value_str: str | None = None
    value_unitval: UnitVal | None = None
    date: float | None = None

    @classmethod
    def of(
        cls, value: str | float | UnitVal | None = None, date: float | None = None
    ) -> MessageData:
        """
        Wrap ``value`` in a message.

        Strings are kept as raw strings, plain numbers become unitless values.
        """
        if value is None or isinstance(value, str):
            return cls(value_str=value, date=date)
        if isinstance(value, UnitVal):
            return cls(value_unitval=value, date=date)
        return cls(value_unitval=UnitVal(float(value)), date=date)

    @property
    def is_dated(self) -> bool:
        """Whether the message carries a date."""
        return self.date is not None

    def get_unitval(self, expected: Unit) -> UnitVal:
        """
        Return the payload as a value in ``expected`` units.

        A unit-tagged payload is converted where a conversion exists. Unitless
        numbers and raw strings are taken to be in ``expected`` units.

        Raises
        ------
        UnitMismatchError
            If the payload has units that cannot be converted
        NboxError
            If the raw string is not a number
        """
        if self.value_unitval is not None:
            val = self.value_unitval
            if val.units == Unit.UNITLESS:
                return UnitVal(val.value, expected)
            return val.convert(expected)

        if self.value_str is None:
            msg = "Message carries no value"
            raise NboxError(msg)
        try:
            number = float(self.value_str)
        except ValueError:
            msg = f"Cannot interpret '{self.value_str}' as a number"
            raise NboxError(msg) from None
        return UnitVal(number, expected)

    def get_bool(self) -> bool:
        """Return the payload as a boolean flag."""
        if self.value_unitval is not None:
            return self.value_unitval.value != 0
        text = (self.value_str or "").strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        msg = f"Cannot interpret '{self.value_str}' as a boolean"
        raise NboxError(msg)

    def get_str(self) -> str:
        """Return the payload as a string."""
        if self.value_str is not None:
            return self.value_str
        if self.value_unitval is not None:
            return str(self.value_unitval)
        return ""
