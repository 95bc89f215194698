"""
Names of the data exchanged over the core bus.

Configuration files and bus messages refer to variables by these strings.
Inside the model the :class:`Datum` members are used instead of bare strings.
"""

from __future__ import annotations

from enum import StrEnum

__all__ = ["Datum"]


class Datum(StrEnum):
    """Variable and capability names."""

    # core
    RUN_NAME = "run_name"
    START_DATE = "startDate"
    END_DATE = "endDate"
    DO_SPINUP = "do_spinup"
    MAX_SPINUP = "max_spinup"
    ENABLED = "enabled"
    OUTPUT = "output"

    # solver
    EPS_ABS = "eps_abs"
    EPS_REL = "eps_rel"
    DT = "dt"
    EPS_SPINUP = "eps_spinup"

    # climate
    TGAV = "Tgav"
    FTALBEDO = "Ftalbedo"

    # ocean
    ATM_OCEAN_FLUX = "atm_ocean_flux"
    OCEAN_C = "ocean_c"
    UPTAKE_RATE = "uptake_rate"

    # terrestrial pools and concentrations
    CA = "Ca"
    C0 = "C0"
    ATMOS_C = "atmos_c"
    ATMOS_C_RESIDUAL = "atmos_c_residual"
    EARTH_C = "earth_c"
    VEG_C = "veg_c"
    DETRITUS_C = "detritus_c"
    SOIL_C = "soil_c"
    PERMAFROST_C = "permafrost_c"

    # terrestrial fluxes
    ATM_LAND_FLUX = "atm_land_flux"
    NPP = "npp"
    RH = "rh"
    RH_DETRITUS = "rh_detritus"
    RH_SOIL = "rh_soil"
    RH_CH4 = "rh_ch4"

    # drivers
    FFI_EMISSIONS = "ffi_emissions"
    LUC_EMISSIONS = "luc_emissions"
    CA_CONSTRAIN = "Ca_constrain"

    # terrestrial parameters
    NPP_FLUX0 = "npp_flux0"
    BETA = "beta"
    Q10_RH = "q10_rh"
    WARMINGFACTOR = "warmingfactor"
    F_NPPV = "f_nppv"
    F_NPPD = "f_nppd"
    F_LITTERD = "f_litterd"
    F_LUCV = "f_lucv"
    F_LUCD = "f_lucd"
    RH_CH4_FRAC = "rh_ch4_frac"

    # slow parameters
    CO2FERT = "co2fert"
    DETRITUS_TEMPFERT = "detritus_tempfert"
    SOIL_TEMPFERT = "soil_tempfert"
    F_FROZEN = "f_frozen"
