"""Shared fixtures: cores configured with the reference land carbon setup."""

from __future__ import annotations

from collections.abc import Callable, Iterable

import pytest

from nbox.config import CoreConfig, Setting, build_core
from nbox.core import Core

C0 = 277.15

# Per-biome parameters of the reference single-biome setup
BIOME_PARAMS = {
    "npp_flux0": 50.0,
    "beta": 0.36,
    "q10_rh": 2.0,
    "f_nppv": 0.35,
    "f_nppd": 0.60,
    "f_litterd": 0.98,
}

# Turnover rates of the land model (1/yr)
LITTER_RATE = 0.035
DETRITUS_RH_RATE = 0.25
DETRITUS_SOIL_RATE = 0.6
SOIL_RH_RATE = 0.02


def equilibrium_pools(
    npp: float, f_nppv: float, f_nppd: float, f_litterd: float
) -> dict[str, float]:
    """Pools at which a biome with no CO2 or temperature forcing is in balance."""
    veg = npp * f_nppv / LITTER_RATE
    litter = veg * LITTER_RATE
    det = (npp * f_nppd + litter * f_litterd) / (DETRITUS_RH_RATE + DETRITUS_SOIL_RATE)
    soil = (
        npp * (1.0 - f_nppv - f_nppd)
        + litter * (1.0 - f_litterd)
        + det * DETRITUS_SOIL_RATE
    ) / SOIL_RH_RATE
    return {"veg_c": veg, "detritus_c": det, "soil_c": soil}


EQUILIBRIUM = equilibrium_pools(50.0, 0.35, 0.60, 0.98)


def reference_settings(
    pools: dict[str, float] | None = None, permafrost: float = 0.0
) -> list[Setting]:
    """Settings of the single-biome reference setup."""
    pools = pools if pools is not None else EQUILIBRIUM
    values = {
        "C0": C0,
        **pools,
        "permafrost_c": permafrost,
        **BIOME_PARAMS,
        "f_lucv": 0.1,
        "f_lucd": 0.01,
    }
    return [Setting("simpleNbox", name, None, value) for name, value in values.items()]


def series(section: str, name: str, points: dict[float, float]) -> list[Setting]:
    """Dated settings of one variable."""
    return [Setting(section, name, date, value) for date, value in points.items()]


@pytest.fixture
def make_core() -> Callable[..., Core]:
    """Factory for cores built from the reference setup plus extra settings."""

    def factory(
        extra: Iterable[Setting] = (),
        start: float = 1745.0,
        end: float = 2000.0,
        spinup: bool = False,
        base: Iterable[Setting] | None = None,
    ) -> Core:
        settings = list(reference_settings() if base is None else base)
        settings.extend(extra)
        config = CoreConfig(start_date=start, end_date=end, do_spinup=spinup)
        return build_core(settings, config)

    return factory


@pytest.fixture
def core(make_core) -> Core:
    """An unprepared core with the reference setup."""
    return make_core()


@pytest.fixture
def nbox(core):
    """The land carbon model of :func:`core`."""
    return core.get_component("simpleNbox")
