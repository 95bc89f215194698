"""
Terrestrial carbon model with biome-partitioned pools.

The model tracks the atmosphere, the fossil reservoir (``earth_c``) and, per
biome, vegetation, detritus, soil and permafrost carbon. The solver only sees
one aggregate slot per land pool; after each step the change in every
aggregate is shared out between biomes in proportion to their NPP plus
heterotrophic respiration.

Variables are set with plain names (``veg_c``) in single-biome mode or
biome-qualified names (``forest.veg_c``) once named biomes exist. The first
qualified name replaces the default ``global`` biome.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import MISSING, dataclass, fields
from enum import Enum, auto
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from nbox.components.base import CarbonCycleModel, CarbonPool, Snapshot
from nbox.config.exceptions import ValidationError
from nbox.config.models.simple_nbox import (
    BiomeParameters,
    LandUseParameters,
    NboxSettings,
)
from nbox.config.parameters import check_value, get_parameter_metadata
from nbox.config.registry import register_component
from nbox.datum import Datum
from nbox.exceptions import (
    BiomeConflictError,
    DateRequirementError,
    MassNotConservedError,
    NboxError,
    NegativePoolError,
    ParameterRangeError,
    PartitionSumError,
    UnknownVariableError,
)
from nbox.messages import MessageData, MessageKind
from nbox.stats import plnorm
from nbox.timeseries import BiomeTimeSeries, TimeSeries
from nbox.units import PGC_TO_PPMVCO2, PPMVCO2_TO_PGC, Unit, UnitVal

if TYPE_CHECKING:
    from nbox.core import Core

logger = logging.getLogger(__name__)

__all__ = ["DEFAULT_BIOME", "MB_EPSILON", "SimpleNbox"]

DEFAULT_BIOME = "global"
BIOME_SEPARATOR = "."

# Largest tolerated drift in total system carbon (PgC)
MB_EPSILON = 1e-3

# Turnover rates (1/yr)
DETRITUS_RH_RATE = 0.25
SOIL_RH_RATE = 0.02
LITTER_RATE = 0.035
DETRITUS_SOIL_RATE = 0.6

DEFAULT_ALBEDO = -0.2


class DateRule(Enum):
    """Whether a variable takes a date when set."""

    REQUIRED = auto()
    FORBIDDEN = auto()
    OPTIONAL = auto()


class Scope(Enum):
    """Whether a variable is global or held per biome."""

    GLOBAL = auto()
    BIOME = auto()


@dataclass(frozen=True)
class VariableSpec:
    """Units, date rule and scope of a settable variable."""

    units: Unit
    date: DateRule
    scope: Scope


_INPUTS: dict[Datum, VariableSpec] = {
    Datum.ATMOS_C: VariableSpec(Unit.PGC, DateRule.FORBIDDEN, Scope.GLOBAL),
    Datum.C0: VariableSpec(Unit.PPMV_CO2, DateRule.FORBIDDEN, Scope.GLOBAL),
    Datum.CA: VariableSpec(Unit.PPMV_CO2, DateRule.FORBIDDEN, Scope.GLOBAL),
    Datum.VEG_C: VariableSpec(Unit.PGC, DateRule.OPTIONAL, Scope.BIOME),
    Datum.DETRITUS_C: VariableSpec(Unit.PGC, DateRule.OPTIONAL, Scope.BIOME),
    Datum.SOIL_C: VariableSpec(Unit.PGC, DateRule.OPTIONAL, Scope.BIOME),
    Datum.PERMAFROST_C: VariableSpec(Unit.PGC, DateRule.OPTIONAL, Scope.BIOME),
    Datum.FTALBEDO: VariableSpec(Unit.W_M2, DateRule.REQUIRED, Scope.GLOBAL),
    Datum.FFI_EMISSIONS: VariableSpec(Unit.PGC_YR, DateRule.REQUIRED, Scope.GLOBAL),
    Datum.LUC_EMISSIONS: VariableSpec(Unit.PGC_YR, DateRule.REQUIRED, Scope.GLOBAL),
    Datum.CA_CONSTRAIN: VariableSpec(Unit.PPMV_CO2, DateRule.REQUIRED, Scope.GLOBAL),
    Datum.F_LUCV: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.GLOBAL),
    Datum.F_LUCD: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.GLOBAL),
    Datum.NPP_FLUX0: VariableSpec(Unit.PGC_YR, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.BETA: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.Q10_RH: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.WARMINGFACTOR: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.F_NPPV: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.F_NPPD: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.F_LITTERD: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
    Datum.RH_CH4_FRAC: VariableSpec(Unit.UNITLESS, DateRule.FORBIDDEN, Scope.BIOME),
}

_CAPABILITIES = (
    Datum.CA,
    Datum.ATMOS_C,
    Datum.C0,
    Datum.FTALBEDO,
    Datum.ATM_LAND_FLUX,
    Datum.VEG_C,
    Datum.DETRITUS_C,
    Datum.SOIL_C,
    Datum.PERMAFROST_C,
    Datum.NPP_FLUX0,
    Datum.NPP,
    Datum.RH,
    Datum.RH_DETRITUS,
    Datum.RH_SOIL,
    Datum.RH_CH4,
    Datum.F_FROZEN,
    Datum.EARTH_C,
    Datum.ATMOS_C_RESIDUAL,
    Datum.FFI_EMISSIONS,
    Datum.LUC_EMISSIONS,
    Datum.CA_CONSTRAIN,
    Datum.BETA,
    Datum.Q10_RH,
    Datum.WARMINGFACTOR,
    Datum.F_NPPV,
    Datum.F_NPPD,
    Datum.F_LITTERD,
    Datum.RH_CH4_FRAC,
    Datum.F_LUCV,
    Datum.F_LUCD,
    Datum.CO2FERT,
    Datum.DETRITUS_TEMPFERT,
    Datum.SOIL_TEMPFERT,
)

# Per-biome parameters held as plain floats
_FLOAT_PARAMS = (
    Datum.BETA,
    Datum.Q10_RH,
    Datum.WARMINGFACTOR,
    Datum.F_NPPV,
    Datum.F_NPPD,
    Datum.F_LITTERD,
    Datum.RH_CH4_FRAC,
)

_BIOME_META = get_parameter_metadata(BiomeParameters)
_LUC_META = get_parameter_metadata(LandUseParameters)

# Biome parameters that may be left unset
_PARAM_DEFAULTS = {
    Datum(f.name): f.default
    for f in fields(BiomeParameters)
    if f.default is not MISSING
}


def sum_map(pool: dict[str, UnitVal]) -> UnitVal:
    """
    Sum a biome map of values.

    Raises
    ------
    BiomeConflictError
        If the map is empty
    """
    if not pool:
        msg = "Cannot sum an empty biome map"
        raise BiomeConflictError(msg)
    values = iter(pool.values())
    total = next(values)
    for value in values:
        total = total + value
    return total


@register_component("simpleNbox")
class SimpleNbox(CarbonCycleModel):
    """
    Biome-partitioned land carbon model coupled to an ocean model.

    Parameters
    ----------
    settings
        Structural settings (permafrost thaw curve, soil temperature window)
    """

    def __init__(self, settings: NboxSettings | None = None) -> None:
        super().__init__()
        self.settings = settings if settings is not None else NboxSettings()
        self.biome_list: list[str] = [DEFAULT_BIOME]

        # Pools
        self.atmos_c = UnitVal(0.0, Unit.PGC)
        self.earth_c = UnitVal(0.0, Unit.PGC)
        self.veg_c: dict[str, UnitVal] = {}
        self.detritus_c: dict[str, UnitVal] = {}
        self.soil_c: dict[str, UnitVal] = {}
        self.permafrost_c: dict[str, UnitVal] = {}

        # Concentrations
        self.C0: UnitVal | None = None
        self.Ca = UnitVal(0.0, Unit.PPMV_CO2)
        self.residual = UnitVal(0.0, Unit.PGC)

        # Parameters
        self.npp_flux0: dict[str, UnitVal] = {}
        self.params: dict[Datum, dict[str, float]] = {p: {} for p in _FLOAT_PARAMS}
        self.f_lucv: float | None = None
        self.f_lucd: float | None = None

        # Slow parameters
        self.co2fert: dict[str, float] = {DEFAULT_BIOME: 1.0}
        self.tempfertd: dict[str, float] = {DEFAULT_BIOME: 1.0}
        self.tempferts: dict[str, float] = {DEFAULT_BIOME: 1.0}
        self.f_frozen: dict[str, float] = {DEFAULT_BIOME: 1.0}
        self.new_thaw: dict[str, float] = {DEFAULT_BIOME: 0.0}

        # Recorded fluxes
        self.npp_veg: dict[str, UnitVal] = {}
        self.rh_det: dict[str, UnitVal] = {}
        self.rh_soil: dict[str, UnitVal] = {}

        # Inputs
        self.ffi_emissions: TimeSeries[UnitVal] = TimeSeries(
            "ffi_emissions", allow_interp=True
        )
        self.luc_emissions: TimeSeries[UnitVal] = TimeSeries(
            "luc_emissions", allow_interp=True
        )
        self.Ftalbedo: TimeSeries[UnitVal] = TimeSeries("Ftalbedo", allow_interp=True)
        self.Ca_constrain: TimeSeries[UnitVal] = TimeSeries(
            "Ca_constrain", allow_interp=True
        )

        # History
        self.earth_c_ts: TimeSeries[UnitVal] = TimeSeries("earth_c")
        self.atmos_c_ts: TimeSeries[UnitVal] = TimeSeries("atmos_c")
        self.Ca_ts: TimeSeries[UnitVal] = TimeSeries("Ca")
        self.residual_ts: TimeSeries[UnitVal] = TimeSeries("atmos_c_residual")
        self.tgav_record: TimeSeries[float] = TimeSeries(
            "Tgav_record", allow_interp=True, allow_partial_interp=True
        )
        self.veg_c_tv = BiomeTimeSeries("veg_c")
        self.detritus_c_tv = BiomeTimeSeries("detritus_c")
        self.soil_c_tv = BiomeTimeSeries("soil_c")
        self.permafrost_c_tv = BiomeTimeSeries("permafrost_c")
        self.npp_veg_tv = BiomeTimeSeries("npp")
        self.rh_det_tv = BiomeTimeSeries("rh_detritus")
        self.rh_soil_tv = BiomeTimeSeries("rh_soil")
        self.tempfertd_tv = BiomeTimeSeries("detritus_tempfert")
        self.tempferts_tv = BiomeTimeSeries("soil_tempfert")
        self.f_frozen_tv = BiomeTimeSeries("f_frozen")

        self.masstot: float | None = None
        self.ode_start_date: float | None = None
        self.omodel: CarbonCycleModel | None = None

        self._setters: dict[Datum, Callable[[str, UnitVal, float | None], None]] = {
            Datum.ATMOS_C: self._set_atmos_c,
            Datum.C0: self._set_c0_input,
            Datum.CA: self._set_c0_input,
            Datum.VEG_C: self._set_veg_c,
            Datum.DETRITUS_C: self._set_detritus_c,
            Datum.SOIL_C: self._set_soil_c,
            Datum.PERMAFROST_C: self._set_permafrost_c,
            Datum.FTALBEDO: self._set_series(self.Ftalbedo),
            Datum.FFI_EMISSIONS: self._set_series(self.ffi_emissions),
            Datum.LUC_EMISSIONS: self._set_series(self.luc_emissions),
            Datum.CA_CONSTRAIN: self._set_series(self.Ca_constrain),
            Datum.F_LUCV: self._set_f_lucv,
            Datum.F_LUCD: self._set_f_lucd,
            Datum.NPP_FLUX0: self._set_npp_flux0,
        }
        for param in _FLOAT_PARAMS:
            self._setters[param] = self._set_param(param)

    # Registration and messaging

    def init(self, core: Core) -> None:  # noqa: D102
        super().init(core)
        for datum in _CAPABILITIES:
            core.register_capability(datum, self.name)
        core.register_dependency(Datum.ATM_OCEAN_FLUX, self.name)
        core.register_dependency(Datum.TGAV, self.name)
        for datum in _INPUTS:
            if datum not in (Datum.ATMOS_C, Datum.CA):
                core.register_input(datum, self.name)

    @property
    def in_spinup(self) -> bool:
        """Whether the core is currently spinning up."""
        return self.core.in_spinup

    def has_biome(self, biome: str) -> bool:
        """Check whether ``biome`` is in the biome list."""
        return biome in self.biome_list

    def _split_name(self, var_name: str) -> tuple[str, str]:
        parts = var_name.split(BIOME_SEPARATOR)
        if len(parts) > 2:  # noqa: PLR2004
            msg = f"At most one '{BIOME_SEPARATOR}' is allowed in '{var_name}'"
            raise UnknownVariableError(msg)
        if len(parts) == 2:  # noqa: PLR2004
            return parts[0], parts[1]
        return DEFAULT_BIOME, var_name

    def _lookup(self, name: str) -> Datum:
        try:
            return Datum(name)
        except ValueError:
            msg = f"Unknown variable '{name}' for {self.name}"
            raise UnknownVariableError(msg) from None

    def set_data(self, var_name: str, data: MessageData) -> None:
        """
        Set a variable from a message.

        Raises
        ------
        NboxError
            Any error is re-raised as the same kind with the variable name
            prepended
        """
        try:
            biome, name = self._split_name(var_name)
            datum = self._lookup(name)
            rule = _INPUTS.get(datum)
            if rule is None:
                msg = f"Variable '{name}' of {self.name} cannot be set"
                raise UnknownVariableError(msg)

            if rule.date is DateRule.REQUIRED and data.date is None:
                msg = f"A date is required for '{name}'"
                raise DateRequirementError(msg)
            if rule.date is DateRule.FORBIDDEN and data.date is not None:
                msg = f"A date is not allowed for '{name}'"
                raise DateRequirementError(msg)

            if rule.scope is Scope.GLOBAL:
                if biome != DEFAULT_BIOME:
                    msg = f"'{name}' is global and cannot be set for biome '{biome}'"
                    raise BiomeConflictError(msg)
            else:
                biome = self._resolve_biome_for_set(biome, name)

            value = data.get_unitval(rule.units)
            logger.debug(f"Setting {biome}.{name}[{data.date}] = {value}")
            self._setters[datum](biome, value, data.date)
        except NboxError as err:
            raise err.rewrap(f"Could not parse var: {var_name}") from err

    def _resolve_biome_for_set(self, biome: str, name: str) -> str:
        if biome == DEFAULT_BIOME:
            if not self.has_biome(DEFAULT_BIOME):
                msg = (
                    f"'{name}' needs a biome qualifier: the model has biomes "
                    f"{self.biome_list}"
                )
                raise BiomeConflictError(msg)
            return biome

        if self._has_started():
            # Pools, maps and history already exist for every biome
            if self.has_biome(DEFAULT_BIOME):
                msg = (
                    f"Cannot set '{biome}.{name}' after the model has started: "
                    f"rename the '{DEFAULT_BIOME}' biome first"
                )
                raise BiomeConflictError(msg)
            if not self.has_biome(biome):
                self.create_biome(biome)
            return biome

        if self.has_biome(DEFAULT_BIOME):
            logger.debug(
                f"Removing biome '{DEFAULT_BIOME}': global and biome-specific "
                "data cannot be mixed"
            )
            self.biome_list.remove(DEFAULT_BIOME)
            self._discard_biome(DEFAULT_BIOME)
        if not self.has_biome(biome):
            logger.debug(f"Adding biome '{biome}' to the biome list")
            self.biome_list.append(biome)
            self._init_slow_params(biome)
        return biome

    def _set_atmos_c(self, biome: str, value: UnitVal, date: float | None) -> None:
        self.set_c0(value.value_in(Unit.PGC) * PGC_TO_PPMVCO2)

    def _set_c0_input(self, biome: str, value: UnitVal, date: float | None) -> None:
        self.set_c0(value.value_in(Unit.PPMV_CO2))

    def _set_pool(
        self,
        pool: dict[str, UnitVal],
        history: BiomeTimeSeries,
        biome: str,
        value: UnitVal,
        date: float | None,
    ) -> None:
        # Undated values only change the current state; a later reset
        # restores from history
        pool[biome] = value
        if date is not None:
            history.set(date, pool)

    def _set_veg_c(self, biome: str, value: UnitVal, date: float | None) -> None:
        self._set_pool(self.veg_c, self.veg_c_tv, biome, value, date)

    def _set_detritus_c(self, biome: str, value: UnitVal, date: float | None) -> None:
        self._set_pool(self.detritus_c, self.detritus_c_tv, biome, value, date)

    def _set_soil_c(self, biome: str, value: UnitVal, date: float | None) -> None:
        self._set_pool(self.soil_c, self.soil_c_tv, biome, value, date)

    def _set_permafrost_c(
        self, biome: str, value: UnitVal, date: float | None
    ) -> None:
        if date is not None:
            # Keep total mass: the fossil reservoir absorbs the difference
            previous = self.permafrost_c_tv.get(date)[biome]
            self.earth_c = self.earth_c_ts.get(date) + (previous - value)
            self.earth_c_ts.set(date, self.earth_c)
        self._set_pool(self.permafrost_c, self.permafrost_c_tv, biome, value, date)

    def _set_series(
        self, series: TimeSeries[UnitVal]
    ) -> Callable[[str, UnitVal, float | None], None]:
        def setter(biome: str, value: UnitVal, date: float | None) -> None:
            if date is None:
                msg = "A date is required"
                raise DateRequirementError(msg)
            series.set(date, value)

        return setter

    def _set_f_lucv(self, biome: str, value: UnitVal, date: float | None) -> None:
        self.f_lucv = value.value_in(Unit.UNITLESS)

    def _set_f_lucd(self, biome: str, value: UnitVal, date: float | None) -> None:
        self.f_lucd = value.value_in(Unit.UNITLESS)

    def _set_npp_flux0(self, biome: str, value: UnitVal, date: float | None) -> None:
        self.npp_flux0[biome] = value

    def _set_param(self, param: Datum) -> Callable[[str, UnitVal, float | None], None]:
        def setter(biome: str, value: UnitVal, date: float | None) -> None:
            self.params[param][biome] = value.value_in(Unit.UNITLESS)

        return setter

    def set_c0(self, newc0: float) -> None:
        """
        Set the preindustrial CO2 concentration (ppmv).

        Once the total system mass is known it is adjusted by the change in
        atmospheric carbon, so runs need a reset before continuing.
        """
        if self.masstot is not None and self.C0 is not None:
            massdiff = (newc0 - self.C0.value) * PPMVCO2_TO_PGC
            self.masstot += massdiff
            logger.debug(f"massdiff = {massdiff}, new masstot = {self.masstot}")
        self.C0 = UnitVal(newc0, Unit.PPMV_CO2)

    def _require_c0(self) -> UnitVal:
        if self.C0 is None:
            msg = "Preindustrial CO2 (C0 or atmos_c) has not been set"
            raise ValidationError(msg)
        return self.C0

    def _luc_fractions(self) -> tuple[float, float]:
        if self.f_lucv is None or self.f_lucd is None:
            msg = "Land-use change fractions (f_lucv, f_lucd) have not been set"
            raise ValidationError(msg)
        return self.f_lucv, self.f_lucd

    # Parameter accessors

    def beta(self, biome: str) -> float:
        """CO2 fertilization strength of ``biome``."""
        return self.params[Datum.BETA][biome]

    def q10_rh(self, biome: str) -> float:
        """Q10 of heterotrophic respiration in ``biome``."""
        return self.params[Datum.Q10_RH][biome]

    def warmingfactor(self, biome: str) -> float:
        """Warming of ``biome`` relative to the global mean."""
        factors = self.params[Datum.WARMINGFACTOR]
        if biome in factors:
            return factors[biome]
        return factors.get(DEFAULT_BIOME, 1.0)

    def f_nppv(self, biome: str) -> float:  # noqa: D102
        return self.params[Datum.F_NPPV][biome]

    def f_nppd(self, biome: str) -> float:  # noqa: D102
        return self.params[Datum.F_NPPD][biome]

    def f_litterd(self, biome: str) -> float:  # noqa: D102
        return self.params[Datum.F_LITTERD][biome]

    def rh_ch4_frac(self, biome: str) -> float:  # noqa: D102
        return self.params[Datum.RH_CH4_FRAC][biome]

    # Fluxes

    def calc_co2fert(self, biome: str, date: float | None = None) -> float:
        """CO2 fertilization factor from the current (or recorded) concentration."""
        ca = self.Ca if date is None else self.Ca_ts.get(date)
        return 1.0 + self.beta(biome) * math.log(ca / self._require_c0())

    def npp(self, biome: str, date: float | None = None) -> UnitVal:
        """Net primary production of ``biome``."""
        if date is None:
            return self.npp_flux0[biome] * self.co2fert[biome]
        return self.npp_flux0[biome] * self.calc_co2fert(biome, date)

    def sum_npp(self, date: float | None = None) -> UnitVal:
        """Net primary production over all biomes."""
        total = UnitVal(0.0, Unit.PGC_YR)
        for biome in self.biome_list:
            total = total + self.npp(biome, date)
        return total

    def _det_resp(self, biome: str) -> float:
        return (
            self.detritus_c[biome].value * DETRITUS_RH_RATE * self.tempfertd[biome]
        )

    def _soil_resp(self, biome: str) -> float:
        return self.soil_c[biome].value * SOIL_RH_RATE * self.tempferts[biome]

    def rh_fda(self, biome: str) -> UnitVal:
        """Detritus respiration released as CO2."""
        frac = self.rh_ch4_frac(biome)
        return UnitVal(self._det_resp(biome) * (1.0 - frac), Unit.PGC_YR)

    def rh_fda_ch4(self, biome: str) -> UnitVal:
        """Detritus respiration released as CH4."""
        return UnitVal(self._det_resp(biome) * self.rh_ch4_frac(biome), Unit.PGC_YR)

    def rh_fsa(self, biome: str) -> UnitVal:
        """Soil respiration released as CO2."""
        frac = self.rh_ch4_frac(biome)
        return UnitVal(self._soil_resp(biome) * (1.0 - frac), Unit.PGC_YR)

    def rh_fsa_ch4(self, biome: str) -> UnitVal:
        """Soil respiration released as CH4."""
        return UnitVal(self._soil_resp(biome) * self.rh_ch4_frac(biome), Unit.PGC_YR)

    def rh(self, biome: str) -> UnitVal:
        """Heterotrophic respiration (CO2 part) of ``biome``."""
        return self.rh_fda(biome) + self.rh_fsa(biome)

    def rh_ch4(self, biome: str) -> UnitVal:
        """Heterotrophic respiration (CH4 part) of ``biome``."""
        return self.rh_fda_ch4(biome) + self.rh_fsa_ch4(biome)

    def sum_rh(self) -> UnitVal:
        """CO2 heterotrophic respiration over all biomes."""
        total = UnitVal(0.0, Unit.PGC_YR)
        for biome in self.biome_list:
            total = total + self.rh(biome)
        return total

    def sum_rh_ch4(self) -> UnitVal:
        """CH4 heterotrophic respiration over all biomes."""
        total = UnitVal(0.0, Unit.PGC_YR)
        for biome in self.biome_list:
            total = total + self.rh_ch4(biome)
        return total

    # Data access

    def get_data(self, var_name: str, date: float | None = None) -> UnitVal:  # noqa: PLR0911, PLR0912
        """
        Return a variable, at ``date`` or (undated) its current value.

        Biome variables asked for without a qualifier are summed over all
        biomes.

        Raises
        ------
        UnknownVariableError
            If the variable is not provided by this model
        DateRequirementError
            If a date is given where not allowed, or missing where required
        BiomeConflictError
            If the requested biome does not exist
        """
        biome, name = self._split_name(var_name)
        datum = self._lookup(name)
        qualified = biome != DEFAULT_BIOME
        if qualified and not self.has_biome(biome):
            msg = (
                f"Biome '{biome}' missing from biome list while retrieving "
                f"'{var_name}'"
            )
            raise BiomeConflictError(msg)

        match datum:
            case Datum.ATMOS_C:
                return self._current_or_dated(self.atmos_c, self.atmos_c_ts, date)
            case Datum.CA:
                return self._current_or_dated(self.Ca, self.Ca_ts, date)
            case Datum.ATMOS_C_RESIDUAL:
                return self._current_or_dated(self.residual, self.residual_ts, date)
            case Datum.EARTH_C:
                return self._current_or_dated(self.earth_c, self.earth_c_ts, date)
            case Datum.C0:
                self._forbid_date(name, date)
                return self._require_c0()
            case Datum.ATM_LAND_FLUX:
                return self._atm_land_flux(date)
            case Datum.FTALBEDO | Datum.FFI_EMISSIONS | Datum.LUC_EMISSIONS:
                return self._input_series(datum).get(self._require_date(name, date))
            case Datum.CA_CONSTRAIN:
                return self.Ca_constrain.get(self._require_date(name, date))
            case Datum.F_LUCV | Datum.F_LUCD:
                self._forbid_date(name, date)
                value = self.f_lucv if datum == Datum.F_LUCV else self.f_lucd
                if value is None:
                    msg = f"'{name}' has not been set"
                    raise UnknownVariableError(msg)
                return UnitVal(value, Unit.UNITLESS)
            case Datum.NPP_FLUX0:
                self._forbid_date(name, date)
                return self._from_map(self.npp_flux0, biome, name)
            case _ if datum in self.params:
                self._forbid_date(name, date)
                value = self._from_map(self.params[datum], biome, name)
                return UnitVal(value, Unit.UNITLESS)
            case Datum.VEG_C:
                return self._pool(self.veg_c, self.veg_c_tv, biome, date)
            case Datum.DETRITUS_C:
                return self._pool(self.detritus_c, self.detritus_c_tv, biome, date)
            case Datum.SOIL_C:
                return self._pool(self.soil_c, self.soil_c_tv, biome, date)
            case Datum.PERMAFROST_C:
                return self._pool(
                    self.permafrost_c, self.permafrost_c_tv, biome, date
                )
            case Datum.NPP:
                return self._pool(self.npp_veg, self.npp_veg_tv, biome, date)
            case Datum.RH_DETRITUS:
                return self._pool(self.rh_det, self.rh_det_tv, biome, date)
            case Datum.RH_SOIL:
                return self._pool(self.rh_soil, self.rh_soil_tv, biome, date)
            case Datum.RH:
                return self._pool(self.rh_det, self.rh_det_tv, biome, date) + (
                    self._pool(self.rh_soil, self.rh_soil_tv, biome, date)
                )
            case Datum.RH_CH4:
                self._forbid_date(name, date)
                if qualified:
                    return self.rh_ch4(biome)
                return self.sum_rh_ch4()
            case Datum.CO2FERT:
                value = self._from_map(self.co2fert, biome, name)
                if date is not None:
                    value = self.calc_co2fert(self._single_biome(biome, name), date)
                return UnitVal(value, Unit.UNITLESS)
            case Datum.DETRITUS_TEMPFERT:
                return self._factor(self.tempfertd, self.tempfertd_tv, biome, name, date)
            case Datum.SOIL_TEMPFERT:
                return self._factor(self.tempferts, self.tempferts_tv, biome, name, date)
            case Datum.F_FROZEN:
                return self._factor(self.f_frozen, self.f_frozen_tv, biome, name, date)

        msg = f"Caller is requesting unknown variable '{var_name}' from {self.name}"
        raise UnknownVariableError(msg)

    def _input_series(self, datum: Datum) -> TimeSeries[UnitVal]:
        return {
            Datum.FTALBEDO: self.Ftalbedo,
            Datum.FFI_EMISSIONS: self.ffi_emissions,
            Datum.LUC_EMISSIONS: self.luc_emissions,
        }[datum]

    @staticmethod
    def _current_or_dated(
        current: UnitVal, history: TimeSeries[UnitVal], date: float | None
    ) -> UnitVal:
        return current if date is None else history.get(date)

    @staticmethod
    def _forbid_date(name: str, date: float | None) -> None:
        if date is not None:
            msg = f"Date not allowed for '{name}'"
            raise DateRequirementError(msg)

    @staticmethod
    def _require_date(name: str, date: float | None) -> float:
        if date is None:
            msg = f"Date required for '{name}'"
            raise DateRequirementError(msg)
        return date

    def _single_biome(self, biome: str, name: str) -> str:
        if biome == DEFAULT_BIOME and not self.has_biome(DEFAULT_BIOME):
            msg = f"'{name}' needs a biome qualifier: the model has {self.biome_list}"
            raise BiomeConflictError(msg)
        return biome

    def _from_map(self, values: dict, biome: str, name: str):  # noqa: ANN202
        biome = self._single_biome(biome, name)
        try:
            return values[biome]
        except KeyError:
            msg = f"No value of '{name}' for biome '{biome}'"
            raise BiomeConflictError(msg) from None

    def _pool(
        self,
        current: dict[str, UnitVal],
        history: BiomeTimeSeries,
        biome: str,
        date: float | None,
    ) -> UnitVal:
        values = current if date is None else history.get(date)
        if biome == DEFAULT_BIOME and not self.has_biome(DEFAULT_BIOME):
            return sum_map(values)
        try:
            return values[biome]
        except KeyError:
            msg = f"No value for biome '{biome}' in '{history.name}'"
            raise BiomeConflictError(msg) from None

    def _factor(
        self,
        current: dict[str, float],
        history: BiomeTimeSeries,
        biome: str,
        name: str,
        date: float | None,
    ) -> UnitVal:
        values = current if date is None else history.get(date)
        return UnitVal(self._from_map(values, biome, name), Unit.UNITLESS)

    def _atm_land_flux(self, date: float | None) -> UnitVal:
        if date is None:
            luc_date = self.ode_start_date
            npp = self.sum_npp()
            rh = self.sum_rh() + self.sum_rh_ch4()
        else:
            luc_date = date
            npp = sum_map(self.npp_veg_tv.get(date))
            rh = sum_map(self.rh_det_tv.get(date)) + sum_map(self.rh_soil_tv.get(date))
        luc = self._input_or_zero(self.luc_emissions, luc_date, Unit.PGC_YR)
        return npp - rh - luc

    @staticmethod
    def _input_or_zero(
        series: TimeSeries[UnitVal], date: float | None, units: Unit
    ) -> UnitVal:
        if date is None or not len(series):
            return UnitVal(0.0, units)
        if not series.first_date() <= date <= series.last_date():
            return UnitVal(0.0, units)
        return series.get(date)

    # Checks

    def sanity_checks(self) -> None:
        """
        Check pool signs, partition sums and parameter ranges.

        Raises
        ------
        NegativePoolError
            If a pool is negative (or the atmosphere is not positive)
        PartitionSumError
            If ``f_nppv + f_nppd`` or ``f_lucv + f_lucd`` exceeds one
        ParameterRangeError
            If a parameter is outside its valid range
        """
        if self.atmos_c.value <= 0.0:
            msg = f"atmos_c pool <= 0 ({self.atmos_c})"
            raise NegativePoolError(msg)

        pools = (
            ("veg_c", self.veg_c),
            ("detritus_c", self.detritus_c),
            ("soil_c", self.soil_c),
            ("permafrost_c", self.permafrost_c),
        )
        for biome in self.biome_list:
            for name, pool in pools:
                if pool[biome].value < 0.0:
                    msg = f"{name} pool < 0 in biome '{biome}' ({pool[biome]})"
                    raise NegativePoolError(msg)

            self._check_range(_BIOME_META["npp_flux0"], self.npp_flux0[biome].value)
            for param in _FLOAT_PARAMS:
                self._check_range(_BIOME_META[param], self.params[param][biome])

            if self.f_nppv(biome) + self.f_nppd(biome) > 1.0:
                msg = f"f_nppv + f_nppd > 1 in biome '{biome}'"
                raise PartitionSumError(msg)

        f_lucv, f_lucd = self._luc_fractions()
        self._check_range(_LUC_META["f_lucv"], f_lucv)
        self._check_range(_LUC_META["f_lucd"], f_lucd)
        if f_lucv + f_lucd > 1.0:
            msg = "f_lucv + f_lucd > 1"
            raise PartitionSumError(msg)

        if self._require_c0().value <= 0.0:
            msg = f"C0 <= 0 ({self.C0})"
            raise ParameterRangeError(msg)
        if self.Ca.value <= 0.0:
            msg = f"Ca <= 0 ({self.Ca})"
            raise ParameterRangeError(msg)

    @staticmethod
    def _check_range(meta, value: float) -> None:  # noqa: ANN001
        error = check_value(meta, value)
        if error is not None:
            raise ParameterRangeError(error)

    def _check_biome_map(self, name: str, values: dict) -> None:
        if not values:
            msg = f"No value set for '{name}'"
            raise ValidationError(msg)
        missing = [b for b in self.biome_list if b not in values]
        extra = [b for b in values if b not in self.biome_list]
        if missing or extra:
            msg = (
                f"'{name}' does not match the biome list {self.biome_list} "
                f"(missing: {missing}, unexpected: {extra})"
            )
            raise BiomeConflictError(msg)

    def log_pools(self, t: float) -> None:
        """Log the current pool states."""
        if not logger.isEnabledFor(logging.DEBUG):
            return
        logger.debug(f"---- {self.name} pool states at t={t} ----")
        logger.debug(f"Atmos = {self.atmos_c}")
        for biome in self.biome_list:
            logger.debug(
                f"{biome}: veg_c={self.veg_c[biome]} "
                f"detritus_c={self.detritus_c[biome]} soil_c={self.soil_c[biome]} "
                f"permafrost_c={self.permafrost_c[biome]}"
            )
        logger.debug(f"Earth = {self.earth_c}")

    # Run loop

    def prepare_to_run(self) -> None:
        """
        Check the configuration, fill defaults and set the initial atmosphere.

        Raises
        ------
        BiomeConflictError
            If global and biome data are mixed or a biome map is incomplete
        ValidationError
            If a required value was never set
        ParameterRangeError
            If ``beta`` is negative or ``q10_rh`` is not positive
        """
        logger.debug(f"Preparing {self.name}")
        if self.has_biome(DEFAULT_BIOME) and len(self.biome_list) > 1:
            msg = (
                "Cannot have both global and biome-specific data. "
                f"Did you forget to rename the default ('{DEFAULT_BIOME}') biome?"
            )
            raise BiomeConflictError(msg)

        for biome in self.biome_list:
            if biome not in self.permafrost_c:
                logger.info(f"No permafrost_c for biome '{biome}', using 0")
                self.permafrost_c[biome] = UnitVal(0.0, Unit.PGC)
            for param, default in _PARAM_DEFAULTS.items():
                if biome not in self.params[param]:
                    logger.info(
                        f"No {param} set for biome '{biome}', using default {default}"
                    )
                    self.params[param][biome] = default
            self._init_slow_params(biome)

        for name, values in (
            ("veg_c", self.veg_c),
            ("detritus_c", self.detritus_c),
            ("soil_c", self.soil_c),
            ("permafrost_c", self.permafrost_c),
            ("npp_flux0", self.npp_flux0),
            *((str(p), self.params[p]) for p in _FLOAT_PARAMS),
        ):
            self._check_biome_map(name, values)
        for name, value in (("f_lucv", self.f_lucv), ("f_lucd", self.f_lucd)):
            if value is None:
                msg = f"No value set for '{name}'"
                raise ValidationError(msg)

        omodel = self.core.get_component_by_capability(Datum.OCEAN_C)
        if not isinstance(omodel, CarbonCycleModel):
            msg = f"Ocean component '{omodel.name}' is not a carbon cycle model"
            raise NboxError(msg)
        self.omodel = omodel

        config = self.core.config
        if not len(self.Ftalbedo):
            logger.info(f"No albedo forcing given, using {DEFAULT_ALBEDO} W/m2")
            albedo = UnitVal(DEFAULT_ALBEDO, Unit.W_M2)
            self.Ftalbedo.set(config.start_date, albedo)
            self.Ftalbedo.set(config.end_date, albedo)
        for series in (self.ffi_emissions, self.luc_emissions):
            if not len(series):
                logger.info(f"No {series.name} given, using zero")
                zero = UnitVal(0.0, Unit.PGC_YR)
                series.set(config.start_date, zero)
                series.set(config.end_date, zero)

        c0 = self._require_c0().value
        self.Ca = UnitVal(c0, Unit.PPMV_CO2)
        self.atmos_c = UnitVal(c0 * PPMVCO2_TO_PGC, Unit.PGC)

        if len(self.Ca_constrain):
            self.Ca_constrain.allow_partial_interp = True
            logger.warning("Atmospheric CO2 will be constrained to user-supplied values!")

        for biome in self.biome_list:
            if self.beta(biome) < 0.0:
                msg = f"beta < 0 in biome '{biome}'"
                raise ParameterRangeError(msg)
            if self.q10_rh(biome) <= 0.0:
                msg = f"q10_rh <= 0 in biome '{biome}'"
                raise ParameterRangeError(msg)

        self.tgav_record.set(config.start_date, self._current_tgav())
        self.sanity_checks()

    def _current_tgav(self) -> float:
        return self.core.get_data(Datum.TGAV).value_in(Unit.DEGC)

    def run(self, date: float) -> None:
        """Record this year's temperature; the solver does the integration."""
        self.sanity_checks()
        self.tgav_record.set(date, self._current_tgav())

    def run_spinup(self, step: int) -> bool:  # noqa: D102
        self.sanity_checks()
        return True

    def get_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """Pack the pools into the state vector and mark the start of a step."""
        c[CarbonPool.ATMOS] = self.atmos_c.value
        c[CarbonPool.VEG] = sum_map(self.veg_c).value
        c[CarbonPool.DET] = sum_map(self.detritus_c).value
        c[CarbonPool.SOIL] = sum_map(self.soil_c).value
        self._ocean().get_c_values(t, c)
        c[CarbonPool.EARTH] = self.earth_c.value
        c[CarbonPool.PERMAFROST] = sum_map(self.permafrost_c).value
        self.ode_start_date = t

    def _ocean(self) -> CarbonCycleModel:
        if self.omodel is None:
            msg = f"{self.name} has no ocean model; call prepare_to_run first"
            raise NboxError(msg)
        return self.omodel

    def calc_derivs(  # noqa: PLR0914
        self, t: float, c: npt.NDArray[np.float64], dcdt: npt.NDArray[np.float64]
    ) -> int:
        """
        Compute pool derivatives at ``t``.

        Land fluxes use the pools stored at the start of the step; only the
        ocean flux responds to the atmosphere in ``c``.
        """
        omodel_err = self._ocean().calc_derivs(t, c, dcdt)
        atmosocean_flux = dcdt[CarbonPool.OCEAN]

        npp_current = npp_fav = npp_fad = npp_fas = 0.0
        rh_fda_current = rh_fsa_current = 0.0
        rh_fda_ch4_current = rh_fsa_ch4_current = 0.0
        litter_flux = litter_fvd = litter_fvs = 0.0
        detsoil_flux = 0.0

        for biome in self.biome_list:
            npp_biome = self.npp(biome).value
            f_nppv, f_nppd = self.f_nppv(biome), self.f_nppd(biome)
            npp_current += npp_biome
            npp_fav += npp_biome * f_nppv
            npp_fad += npp_biome * f_nppd
            npp_fas += npp_biome * (1.0 - f_nppv - f_nppd)

            rh_fda_current += self.rh_fda(biome).value
            rh_fsa_current += self.rh_fsa(biome).value
            rh_fda_ch4_current += self.rh_fda_ch4(biome).value
            rh_fsa_ch4_current += self.rh_fsa_ch4(biome).value

            litter = self.veg_c[biome].value * LITTER_RATE
            litter_flux += litter
            litter_fvd += litter * self.f_litterd(biome)
            litter_fvs += litter * (1.0 - self.f_litterd(biome))

            detsoil_flux += self.detritus_c[biome].value * DETRITUS_SOIL_RATE

        rh_current = rh_fda_current + rh_fsa_current
        rh_ch4_current = rh_fda_ch4_current + rh_fsa_ch4_current

        ffi_current = luc_current = 0.0
        permafrost_thaw = 0.0
        if not self.in_spinup:
            ffi_current = self.ffi_emissions.get(t).value_in(Unit.PGC_YR)
            luc_current = self.luc_emissions.get(t).value_in(Unit.PGC_YR)
            static = self.settings.f_pf_static
            for biome in self.biome_list:
                permafrost_thaw += (
                    self.permafrost_c[biome].value
                    * self.new_thaw[biome]
                    * (1.0 - static)
                )

        f_lucv, f_lucd = self._luc_fractions()
        luc_fva = luc_current * f_lucv
        luc_fda = luc_current * f_lucd
        luc_fsa = luc_current * (1.0 - f_lucv - f_lucd)

        # Oxidized methane of fossil origin has no input channel yet
        ch4ox_current = 0.0

        # Both CO2 and CH4 respiration go to the atmosphere to close the budget
        dcdt[CarbonPool.ATMOS] = (
            ffi_current
            + luc_current
            + ch4ox_current
            - atmosocean_flux
            - npp_current
            + rh_ch4_current
            + rh_current
        )
        dcdt[CarbonPool.VEG] = npp_fav - litter_flux - luc_fva
        dcdt[CarbonPool.DET] = (
            npp_fad
            + litter_fvd
            - detsoil_flux
            - rh_fda_current
            - rh_fda_ch4_current
            - luc_fda
        )
        dcdt[CarbonPool.SOIL] = (
            npp_fas
            + litter_fvs
            + detsoil_flux
            + permafrost_thaw
            - rh_fsa_current
            - rh_fsa_ch4_current
            - luc_fsa
        )
        dcdt[CarbonPool.OCEAN] = atmosocean_flux
        dcdt[CarbonPool.EARTH] = -ffi_current
        dcdt[CarbonPool.PERMAFROST] = -permafrost_thaw
        return omodel_err

    def slow_param_eval(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """
        Update the CO2 and temperature factors for the step starting at ``t``.

        During spin-up every factor is pinned to one and no permafrost thaws.
        """
        self._ocean().slow_param_eval(t, c)
        self.Ca = UnitVal(c[CarbonPool.ATMOS] * PGC_TO_PPMVCO2, Unit.PPMV_CO2)

        if self.in_spinup:
            for biome in self.biome_list:
                self.co2fert[biome] = 1.0
                self.tempfertd[biome] = 1.0
                self.tempferts[biome] = 1.0
                self.f_frozen[biome] = 1.0
                self.new_thaw[biome] = 0.0
            return

        for biome in self.biome_list:
            self.co2fert[biome] = self.calc_co2fert(biome)
            logger.debug(f"co2fert[{biome}] at {self.Ca} = {self.co2fert[biome]}")

        tgav = self._current_tgav()
        start = self.core.config.start_date
        settings = self.settings

        # Previous values of the sticky soil factor
        tfs_last = self.tempferts_tv.at(t) if t > start else {}

        for biome in self.biome_list:
            wf = self.warmingfactor(biome)
            tgav_biome = tgav * wf
            q10 = self.q10_rh(biome)
            self.tempfertd[biome] = q10 ** (tgav_biome / 10.0)

            self.new_thaw[biome] = 0.0
            if self.permafrost_c[biome].value > 0.0:
                f_frozen_current = plnorm(
                    tgav_biome, settings.pf_mu, settings.pf_sigma, lower_tail=False
                )
                self.new_thaw[biome] = self.f_frozen[biome] - f_frozen_current
                self.f_frozen[biome] = f_frozen_current

            # Soil responds to the mean temperature of a lagged window
            tgav_rm = 0.0
            if t > start + settings.q10_templag:
                first = int(t - settings.q10_templag - settings.q10_tempn)
                last = int(t - settings.q10_templag)
                for year in range(first, last):
                    tgav_rm += self.tgav_record.get(year) * wf
                tgav_rm /= settings.q10_tempn

            tempferts = q10 ** (tgav_rm / 10.0)
            self.tempferts[biome] = max(tempferts, tfs_last.get(biome, 0.0))
            logger.debug(
                f"{biome}: Tgav={tgav}, Tgav_biome={tgav_biome}, "
                f"tempfertd={self.tempfertd[biome]}, tempferts={self.tempferts[biome]}"
            )

    def stash_c_values(self, t: float, c: npt.NDArray[np.float64]) -> None:
        """
        Take the integrated pools back, share land changes between biomes and
        check that total mass is conserved.

        Raises
        ------
        MassNotConservedError
            If the state vector total drifts from the initial total
        """
        if self.ode_start_date is not None:
            yf = t - self.ode_start_date
            if not 0.0 <= yf <= 1.0:
                msg = f"Year fraction {yf} out of bounds at t={t}"
                raise NboxError(msg)

        logger.debug(
            f"Stashing at t={t}: "
            + ", ".join(f"{pool.name.lower()}={c[pool]}" for pool in CarbonPool)
        )
        self.log_pools(t)

        self.atmos_c = UnitVal(float(c[CarbonPool.ATMOS]), Unit.PGC)

        npp_rh_total = (self.sum_npp() + self.sum_rh()).value
        permafrost_total = sum_map(self.permafrost_c).value
        veg_delta = c[CarbonPool.VEG] - sum_map(self.veg_c).value
        det_delta = c[CarbonPool.DET] - sum_map(self.detritus_c).value
        soil_delta = c[CarbonPool.SOIL] - sum_map(self.soil_c).value
        permafrost_delta = c[CarbonPool.PERMAFROST] - permafrost_total
        logger.debug(
            f"veg_delta={veg_delta}, det_delta={det_delta}, "
            f"soil_delta={soil_delta}, permafrost_delta={permafrost_delta}"
        )

        nbiome = len(self.biome_list)
        for biome in self.biome_list:
            if npp_rh_total > 0.0:
                wt = (self.npp(biome) + self.rh(biome)).value / npp_rh_total
            else:
                wt = 1.0 / nbiome
            wt_pf = (
                self.permafrost_c[biome].value / permafrost_total
                if permafrost_total > 0.0
                else 0.0
            )
            logger.debug(f"Biome {biome} weight = {wt}, permafrost weight = {wt_pf}")
            self.veg_c[biome] = UnitVal(
                self.veg_c[biome].value + veg_delta * wt, Unit.PGC
            )
            self.detritus_c[biome] = UnitVal(
                self.detritus_c[biome].value + det_delta * wt, Unit.PGC
            )
            self.soil_c[biome] = UnitVal(
                self.soil_c[biome].value + soil_delta * wt, Unit.PGC
            )
            self.permafrost_c[biome] = UnitVal(
                self.permafrost_c[biome].value + permafrost_delta * wt_pf, Unit.PGC
            )

        self._ocean().stash_c_values(t, c)
        self.earth_c = UnitVal(float(c[CarbonPool.EARTH]), Unit.PGC)
        self.log_pools(t)

        total = float(np.sum(c[: self.ncpool]))
        if self.masstot is None:
            self.masstot = total
        else:
            diff = abs(total - self.masstot)
            logger.debug(f"masstot = {self.masstot}, sum = {total}, diff = {diff}")
            if diff > MB_EPSILON:
                logger.error(
                    f"Mass not conserved in {self.name}: masstot = {self.masstot}, "
                    f"sum = {total}, diff = {diff}"
                )
                msg = f"Mass not conserved at t={t} (drift {diff} PgC)"
                raise MassNotConservedError(msg)

        self.Ca = UnitVal(self.atmos_c.value * PGC_TO_PPMVCO2, Unit.PPMV_CO2)
        self._reconcile_constraint(t)
        self.ode_start_date = t
        self.sanity_checks()

    def _reconcile_constraint(self, t: float) -> None:
        constrained = len(self.Ca_constrain) and t <= self.Ca_constrain.last_date()
        if not (self.in_spinup or constrained):
            self.residual = UnitVal(0.0, Unit.PGC)
            return

        if self.in_spinup:
            target = self._require_c0()
        else:
            logger.debug(f"Constraining atmospheric CO2 to user-supplied value at {t}")
            target = self.Ca_constrain.get(t)
        target_atmos = UnitVal(target.value_in(Unit.PPMV_CO2) * PPMVCO2_TO_PGC, Unit.PGC)

        self.residual = self.atmos_c - target_atmos
        logger.debug(
            f"{t}: have {self.atmos_c}, want {target_atmos}; "
            f"sending residual of {self.residual} to deep ocean"
        )
        self.core.send_message(
            MessageKind.DUMP_TO_DEEP_OCEAN,
            Datum.OCEAN_C,
            MessageData(value_unitval=self.residual),
        )
        self.atmos_c = self.atmos_c - self.residual
        self.Ca = UnitVal(self.atmos_c.value * PGC_TO_PPMVCO2, Unit.PPMV_CO2)

    def record_state(self, t: float) -> None:
        """Record pools, fluxes and slow parameters at ``t``."""
        self.earth_c_ts.set(t, self.earth_c)
        self.atmos_c_ts.set(t, self.atmos_c)
        self.Ca_ts.set(t, self.Ca)

        self.veg_c_tv.set(t, self.veg_c)
        self.detritus_c_tv.set(t, self.detritus_c)
        self.soil_c_tv.set(t, self.soil_c)
        self.permafrost_c_tv.set(t, self.permafrost_c)

        zero = UnitVal(0.0, Unit.PGC_YR)
        for biome in self.biome_list:
            if self.in_spinup:
                self.npp_veg[biome] = self.rh_det[biome] = self.rh_soil[biome] = zero
            else:
                self.npp_veg[biome] = self.npp(biome)
                self.rh_det[biome] = self.rh_fda(biome) + self.rh_fda_ch4(biome)
                self.rh_soil[biome] = self.rh_fsa(biome) + self.rh_fsa_ch4(biome)
        self.npp_veg_tv.set(t, self.npp_veg)
        self.rh_det_tv.set(t, self.rh_det)
        self.rh_soil_tv.set(t, self.rh_soil)

        self.residual_ts.set(t, self.residual)
        self.tempfertd_tv.set(t, self.tempfertd)
        self.tempferts_tv.set(t, self.tempferts)
        self.f_frozen_tv.set(t, self.f_frozen)

        self._ocean().record_state(t)

    def reset(self, date: float) -> None:
        """Restore the state recorded at ``date`` and truncate all history."""
        self.earth_c = self.earth_c_ts.get(date)
        self.atmos_c = self.atmos_c_ts.get(date)
        self.Ca = self.Ca_ts.get(date)

        self.veg_c = self.veg_c_tv.get(date)
        self.detritus_c = self.detritus_c_tv.get(date)
        self.soil_c = self.soil_c_tv.get(date)
        self.permafrost_c = self.permafrost_c_tv.get(date)
        self.npp_veg = self.npp_veg_tv.get(date)
        self.rh_det = self.rh_det_tv.get(date)
        self.rh_soil = self.rh_soil_tv.get(date)

        self.residual = self.residual_ts.get(date)
        self.tempferts = self.tempferts_tv.get(date)
        self.tempfertd = self.tempfertd_tv.get(date)
        self.f_frozen = self.f_frozen_tv.get(date)

        for biome in self.biome_list:
            self.co2fert[biome] = 1.0 if self.in_spinup else self.calc_co2fert(biome)
            self.new_thaw[biome] = 0.0

        for series in self._all_series():
            series.truncate(date)
        self.ode_start_date = date
        logger.info(f"{self.name} reset to time = {date}")

    def _all_series(self) -> list[TimeSeries]:
        return [
            self.earth_c_ts,
            self.atmos_c_ts,
            self.Ca_ts,
            self.residual_ts,
            self.tgav_record,
            *self._biome_series(),
        ]

    def _biome_series(self) -> list[BiomeTimeSeries]:
        return [
            self.veg_c_tv,
            self.detritus_c_tv,
            self.soil_c_tv,
            self.permafrost_c_tv,
            self.npp_veg_tv,
            self.rh_det_tv,
            self.rh_soil_tv,
            self.tempfertd_tv,
            self.tempferts_tv,
            self.f_frozen_tv,
        ]

    def _biome_maps(self) -> list[dict]:
        return [
            self.veg_c,
            self.detritus_c,
            self.soil_c,
            self.permafrost_c,
            self.npp_flux0,
            self.npp_veg,
            self.rh_det,
            self.rh_soil,
            self.co2fert,
            self.tempfertd,
            self.tempferts,
            self.f_frozen,
            self.new_thaw,
            *self.params.values(),
        ]

    # Biome lifecycle

    def _init_slow_params(self, biome: str) -> None:
        self.co2fert.setdefault(biome, 1.0)
        self.tempfertd.setdefault(biome, 1.0)
        self.tempferts.setdefault(biome, 1.0)
        self.f_frozen.setdefault(biome, 1.0)
        self.new_thaw.setdefault(biome, 0.0)

    def _discard_biome(self, biome: str) -> None:
        for values in self._biome_maps():
            values.pop(biome, None)
        for series in self._biome_series():
            series.discard_biome(biome)

    def _has_started(self) -> bool:
        core = self._core_ref() if self._core_ref is not None else None
        return (core is not None and core.prepared) or len(self.atmos_c_ts) > 0

    def _check_not_running(self, action: str) -> None:
        core = self._core_ref() if self._core_ref is not None else None
        if core is not None and core.running:
            msg = f"Cannot {action} while the model is running"
            raise BiomeConflictError(msg)

    def create_biome(self, biome: str) -> None:
        """
        Add a biome with empty pools.

        The new biome gets zero pools (and zero history at every recorded
        date) and copies the parameters of the most recently added biome. With
        no biome left it starts from the parameter defaults.

        Raises
        ------
        BiomeConflictError
            If the biome exists or the model is running
        """
        self._check_not_running(f"create biome '{biome}'")
        if self.has_biome(biome):
            msg = f"Biome '{biome}' is already in the biome list"
            raise BiomeConflictError(msg)
        if BIOME_SEPARATOR in biome:
            msg = f"Biome name '{biome}' cannot contain '{BIOME_SEPARATOR}'"
            raise BiomeConflictError(msg)
        logger.debug(f"Creating biome '{biome}'")

        zero_c = UnitVal(0.0, Unit.PGC)
        zero_flux = UnitVal(0.0, Unit.PGC_YR)
        for pool, history in (
            (self.veg_c, self.veg_c_tv),
            (self.detritus_c, self.detritus_c_tv),
            (self.soil_c, self.soil_c_tv),
            (self.permafrost_c, self.permafrost_c_tv),
        ):
            pool[biome] = zero_c
            history.add_biome(biome, zero_c)
        for flux, history in (
            (self.npp_veg, self.npp_veg_tv),
            (self.rh_det, self.rh_det_tv),
            (self.rh_soil, self.rh_soil_tv),
        ):
            flux[biome] = zero_flux
            history.add_biome(biome, zero_flux)
        self.npp_flux0[biome] = zero_flux

        self._init_slow_params(biome)
        for history in (self.tempfertd_tv, self.tempferts_tv, self.f_frozen_tv):
            history.add_biome(biome, 1.0)

        if self.biome_list:
            last_biome = self.biome_list[-1]
            for values in self.params.values():
                if last_biome in values:
                    values[biome] = values[last_biome]
        else:
            # Nothing to copy from; required parameters must be set
            for param, default in _PARAM_DEFAULTS.items():
                self.params[param][biome] = default

        self.biome_list.append(biome)
        logger.debug(f"Finished creating biome '{biome}'")

    def delete_biome(self, biome: str) -> None:
        """
        Remove a biome with all its parameters, pools and history.

        Raises
        ------
        BiomeConflictError
            If the biome does not exist or the model is running
        """
        self._check_not_running(f"delete biome '{biome}'")
        if not self.has_biome(biome):
            msg = f"Biome '{biome}' not found in the biome list"
            raise BiomeConflictError(msg)
        logger.debug(f"Deleting biome '{biome}'")

        for history in self._biome_series():
            history.remove_biome(biome)
        for values in self._biome_maps():
            values.pop(biome, None)
        self.biome_list.remove(biome)
        logger.debug(f"Finished deleting biome '{biome}'")

    def rename_biome(self, oldname: str, newname: str) -> None:
        """
        Rename a biome, keeping its parameters, pools and history.

        The renamed biome moves to the end of the biome list.

        Raises
        ------
        BiomeConflictError
            If ``oldname`` is missing, ``newname`` exists or the model is running
        """
        self._check_not_running(f"rename biome '{oldname}'")
        if not self.has_biome(oldname):
            msg = f"Biome '{oldname}' not found in the biome list"
            raise BiomeConflictError(msg)
        if self.has_biome(newname):
            msg = f"Biome '{newname}' already exists in the biome list"
            raise BiomeConflictError(msg)
        if BIOME_SEPARATOR in newname:
            msg = f"Biome name '{newname}' cannot contain '{BIOME_SEPARATOR}'"
            raise BiomeConflictError(msg)
        logger.debug(f"Renaming biome '{oldname}' to '{newname}'")

        for history in self._biome_series():
            history.rename_biome(oldname, newname)
        for values in self._biome_maps():
            if oldname in values:
                values[newname] = values.pop(oldname)
        self.biome_list.remove(oldname)
        self.biome_list.append(newname)
        logger.debug(f"Done renaming biome '{oldname}' to '{newname}'")

    # Output

    def recorded_dates(self) -> list[float]:  # noqa: D102
        return self.atmos_c_ts.dates()

    def snapshot(self, date: float) -> Snapshot:
        """Return pools and fluxes recorded at ``date``."""
        values: dict[str, UnitVal] = {
            Datum.ATMOS_C: self.atmos_c_ts.get(date),
            Datum.CA: self.Ca_ts.get(date),
            Datum.EARTH_C: self.earth_c_ts.get(date),
            Datum.ATMOS_C_RESIDUAL: self.residual_ts.get(date),
        }
        multi = not self.has_biome(DEFAULT_BIOME)
        for datum, history in (
            (Datum.VEG_C, self.veg_c_tv),
            (Datum.DETRITUS_C, self.detritus_c_tv),
            (Datum.SOIL_C, self.soil_c_tv),
            (Datum.PERMAFROST_C, self.permafrost_c_tv),
            (Datum.NPP, self.npp_veg_tv),
            (Datum.RH_DETRITUS, self.rh_det_tv),
            (Datum.RH_SOIL, self.rh_soil_tv),
        ):
            sample = history.get(date)
            values[datum] = sum_map(sample)
            if multi:
                for biome, value in sample.items():
                    values[f"{biome}{BIOME_SEPARATOR}{datum}"] = value
        values[Datum.RH] = values[Datum.RH_DETRITUS] + values[Datum.RH_SOIL]
        values[Datum.ATM_LAND_FLUX] = self._atm_land_flux(date)
        for datum, units in (
            (Datum.FFI_EMISSIONS, Unit.PGC_YR),
            (Datum.LUC_EMISSIONS, Unit.PGC_YR),
            (Datum.FTALBEDO, Unit.W_M2),
        ):
            values[datum] = self._input_or_zero(self._input_series(datum), date, units)
        return Snapshot(self.name, date, values)
