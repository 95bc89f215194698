"""
Parameter metadata for nbox configuration dataclasses.

Fields declared with :func:`parameter` carry their unit, a description and
an optional hard range or set of choices. The same metadata validates
configuration objects when they are built and drives the range checks the
terrestrial model runs every step.

Example:
    >>> from dataclasses import dataclass
    >>> from nbox.config.parameters import parameter, validate_parameters
    >>>
    >>> @dataclass
    ... class OceanSettings:
    ...     uptake_rate: float = parameter(default=0.01, range=(0, 1), unit="1/yr")
    >>>
    >>> errors = validate_parameters(OceanSettings(uptake_rate=2.0))
    >>> len(errors)
    1
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields, replace
from typing import Any

__all__ = [
    "ParameterMetadata",
    "check_value",
    "get_parameter_metadata",
    "parameter",
    "validate_parameters",
]

_METADATA_KEY = "param"


@dataclass(frozen=True)
class ParameterMetadata:
    """Unit, description and allowed values of one parameter.

    Attributes
    ----------
    name : str
        Field name, filled in by :func:`get_parameter_metadata`
    unit : str | None
        Physical unit (e.g. "PgC/yr", "ppmv CO2")
    description : str | None
        One-line description
    range : tuple[float, float] | None
        Inclusive (min, max) bounds
    choices : list[Any] | None
        Allowed values for enum-like parameters
    source : str | None
        Where the default value comes from
    """

    name: str = ""
    unit: str | None = None
    description: str | None = None
    range: tuple[float, float] | None = None
    choices: list[Any] | None = None
    source: str | None = None


def parameter(  # noqa: PLR0913
    default: Any = MISSING,
    unit: str | None = None,
    description: str | None = None,
    range: tuple[float, float] | None = None,
    choices: list[Any] | None = None,
    source: str | None = None,
) -> Any:
    """Declare a dataclass field that carries :class:`ParameterMetadata`.

    Leaving out ``default`` makes the field required.
    """
    meta = ParameterMetadata(
        unit=unit,
        description=description,
        range=range,
        choices=choices,
        source=source,
    )
    if default is MISSING:
        return field(metadata={_METADATA_KEY: meta})
    return field(default=default, metadata={_METADATA_KEY: meta})


def get_parameter_metadata(cls: type) -> dict[str, ParameterMetadata]:
    """Return the metadata of every parameter field of ``cls``, by name.

    Examples
    --------
    >>> from nbox.config.models.simple_nbox import BiomeParameters
    >>> get_parameter_metadata(BiomeParameters)["npp_flux0"].unit
    'PgC/yr'
    """
    return {
        f.name: replace(f.metadata[_METADATA_KEY], name=f.name)
        for f in fields(cls)
        if _METADATA_KEY in f.metadata
    }


def check_value(meta: ParameterMetadata, value: Any) -> str | None:
    """Check one value against its metadata.

    Returns
    -------
    str | None
        Error message, or None if the value is acceptable
    """
    if meta.range is not None:
        low, high = meta.range
        if not low <= value <= high:
            return (
                f"Parameter '{meta.name}' value {value} is outside valid range "
                f"[{low}, {high}]"
            )
    if meta.choices is not None and value not in meta.choices:
        return (
            f"Parameter '{meta.name}' value {value!r} is not in valid choices: "
            f"{meta.choices}"
        )
    return None


def validate_parameters(instance: Any) -> list[str]:
    """Check every parameter field of a dataclass instance.

    Returns
    -------
    list[str]
        One message per invalid field, empty when all are valid
    """
    checks = (
        check_value(meta, getattr(instance, name))
        for name, meta in get_parameter_metadata(type(instance)).items()
    )
    return [error for error in checks if error is not None]
