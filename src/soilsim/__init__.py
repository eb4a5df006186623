"""Stateful soil-physics simulators: bucket water balance, Green-Ampt infiltration, soil heat conduction."""
from soilsim.core.exceptions import (
    SoilSimError,
    InvalidInputError,
    NumericalError,
    ConvergenceError,
    StabilityWarning,
)
from soilsim.physics import (
    MoistureBalanceSimulator,
    InfiltrationSolver,
    HeatProfileSimulator,
)

__version__ = "0.1.0"

__all__ = [
    "SoilSimError",
    "InvalidInputError",
    "NumericalError",
    "ConvergenceError",
    "StabilityWarning",
    "MoistureBalanceSimulator",
    "InfiltrationSolver",
    "HeatProfileSimulator",
    "__version__",
]
