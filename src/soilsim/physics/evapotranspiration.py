"""
FAO-56 Penman-Monteith reference evapotranspiration.

Produces the daily ET driving series consumed by the bucket model. All
functions accept scalars or numpy arrays and broadcast like numpy ufuncs.

References:
- Allen, R.G., Pereira, L.S., Raes, D., & Smith, M. (1998). Crop
  Evapotranspiration - Guidelines for computing crop water requirements.
  FAO Irrigation and Drainage Paper 56.
"""

import logging
from typing import Union

import numpy as np
import pandas as pd

from soilsim.core.constants import (
    LATENT_HEAT_VAPORIZATION,
    PSYCHROMETRIC_COEFFICIENT,
    SEA_LEVEL_PRESSURE_KPA,
    STANDARD_TEMPERATURE_K,
    TETENS_A,
    TETENS_B,
    TETENS_E0,
)
from soilsim.core.exceptions import ErrorContext, InvalidInputError
from soilsim.core.types import FloatArray

logger = logging.getLogger(__name__)

ArrayLike = Union[float, FloatArray]

# Columns expected by reference_et_series
WEATHER_COLUMNS = ("temp", "rh", "u2", "net_radiation", "soil_heat_flux")


def atmospheric_pressure(elevation_m: ArrayLike) -> ArrayLike:
    """Atmospheric pressure (kPa) from elevation (FAO-56 Eq. 7)"""
    return SEA_LEVEL_PRESSURE_KPA * (
        (STANDARD_TEMPERATURE_K - 0.0065 * np.asarray(elevation_m)) / STANDARD_TEMPERATURE_K
    ) ** 5.26


def psychrometric_constant(elevation_m: ArrayLike) -> ArrayLike:
    """γ (kPa/°C), FAO-56 Eq. 8"""
    return PSYCHROMETRIC_COEFFICIENT * atmospheric_pressure(elevation_m) / LATENT_HEAT_VAPORIZATION


def saturation_vapor_pressure(temp: ArrayLike) -> ArrayLike:
    """e°(T) in kPa (FAO-56 Eq. 11)"""
    temp = np.asarray(temp, dtype=np.float64)
    return TETENS_E0 * np.exp(TETENS_A * temp / (temp + TETENS_B))


def vapor_pressure_slope(temp: ArrayLike) -> ArrayLike:
    """Δ, slope of the saturation vapour pressure curve (kPa/°C, FAO-56 Eq. 13)"""
    temp = np.asarray(temp, dtype=np.float64)
    return 4098 * saturation_vapor_pressure(temp) / (temp + TETENS_B) ** 2


def penman_monteith_et0(
    temp: ArrayLike,
    rh: ArrayLike,
    u2: ArrayLike,
    net_radiation: ArrayLike,
    soil_heat_flux: ArrayLike,
    elevation_m: float = 0.0
) -> ArrayLike:
    """
    Reference evapotranspiration ET₀ (mm/day) with FAO-56 Penman-Monteith.

    Args:
        temp: Mean daily air temperature (°C)
        rh: Mean daily relative humidity (%)
        u2: Mean daily wind speed at 2 m (m/s)
        net_radiation: Net radiation at the crop surface (MJ/m²/day)
        soil_heat_flux: Soil heat flux density (MJ/m²/day)
        elevation_m: Site elevation above sea level (m)

    Returns:
        ET₀ (mm/day), a float for scalar inputs or an array otherwise
    """
    arrays = np.broadcast_arrays(
        *(np.asarray(v, dtype=np.float64) for v in (temp, rh, u2, net_radiation, soil_heat_flux))
    )
    temp, rh, u2, rn, g = arrays
    _validate_weather(temp, rh, u2, rn, g, elevation_m)

    gamma = psychrometric_constant(elevation_m)
    es = saturation_vapor_pressure(temp)
    ea = (rh / 100) * es
    vpd = es - ea
    delta = vapor_pressure_slope(temp)

    numerator = 0.408 * delta * (rn - g) + gamma * (900 / (temp + 273)) * u2 * vpd
    denominator = delta + gamma * (1 + 0.34 * u2)
    et0 = numerator / denominator

    if et0.ndim == 0:
        return float(et0)
    return et0


def reference_et_series(weather: pd.DataFrame, elevation_m: float = 0.0) -> pd.Series:
    """
    Daily ET₀ for a weather table.

    Args:
        weather: DataFrame with columns temp, rh, u2, net_radiation, soil_heat_flux
        elevation_m: Site elevation (m)

    Returns:
        Series named "ET" aligned with the weather index
    """
    missing = [c for c in WEATHER_COLUMNS if c not in weather.columns]
    if missing:
        raise InvalidInputError(
            f"Weather table is missing columns: {missing}",
            ErrorContext(component="evapotranspiration", operation="reference_et_series")
        )

    et0 = penman_monteith_et0(
        weather["temp"].to_numpy(dtype=np.float64),
        weather["rh"].to_numpy(dtype=np.float64),
        weather["u2"].to_numpy(dtype=np.float64),
        weather["net_radiation"].to_numpy(dtype=np.float64),
        weather["soil_heat_flux"].to_numpy(dtype=np.float64),
        elevation_m=elevation_m,
    )
    series = pd.Series(np.atleast_1d(et0), index=weather.index, name="ET")

    n_negative = int((series < 0).sum())
    if n_negative:
        logger.warning("%d days with negative ET0 (net condensation)", n_negative)

    return series


def _validate_weather(temp, rh, u2, rn, g, elevation_m) -> None:
    context = ErrorContext(component="evapotranspiration", operation="penman_monteith_et0")
    for name, values in (("temp", temp), ("rh", rh), ("u2", u2),
                         ("net_radiation", rn), ("soil_heat_flux", g)):
        if not np.all(np.isfinite(values)):
            raise InvalidInputError(f"{name} contains non-finite values", context)
    if not np.isfinite(elevation_m):
        raise InvalidInputError("elevation_m must be finite", context)
    if np.any((rh < 0) | (rh > 100)):
        raise InvalidInputError("rh must lie within [0, 100] %", context)
    if np.any(u2 < 0):
        raise InvalidInputError("u2 must be non-negative", context)
    if np.any(temp <= -TETENS_B):
        raise InvalidInputError(f"temp must exceed {-TETENS_B} °C", context)
