"""
Physical constants, default values, and system-wide constants.
"""
from typing import Dict, Final

# Unit conversions
MM_PER_M: Final[float] = 1000.0

# Explicit forward-time centered-space scheme is stable for alpha <= 0.5
FTCS_STABILITY_LIMIT: Final[float] = 0.5

# Minimum depth nodes for the heat profile (surface, one interior, bottom)
MIN_HEAT_NODES: Final[int] = 3

# FAO-56 Penman-Monteith constants (Allen et al., 1998)
LATENT_HEAT_VAPORIZATION: Final[float] = 2.45  # MJ/kg
PSYCHROMETRIC_COEFFICIENT: Final[float] = 0.00163  # kPa/°C per kPa/(MJ/kg)
SEA_LEVEL_PRESSURE_KPA: Final[float] = 101.3
STANDARD_TEMPERATURE_K: Final[float] = 293.0
TETENS_A: Final[float] = 17.27
TETENS_B: Final[float] = 237.3  # °C
TETENS_E0: Final[float] = 0.6108  # kPa

# Root finder defaults
ROOT_FINDER_DEFAULTS: Final[Dict[str, float]] = {
    "xtol": 1e-14,
    "rtol": 1e-12,
    "max_iterations": 100,
    "max_bracket_expansions": 200,
    "bracket_growth": 2.0,
}
