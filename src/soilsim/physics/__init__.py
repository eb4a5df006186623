"""Physics modules for soil water and heat simulation."""
from soilsim.physics.numerical_solver import (
    RootFinder,
    RootFinderConfig,
    RootResult,
)
from soilsim.physics.water_balance import (
    MoistureBalanceSimulator,
    BucketParameters,
    BucketState,
    BalanceResult,
    soil_moisture_balance,
)
from soilsim.physics.infiltration import (
    InfiltrationSolver,
    InfiltrationParameters,
    GreenAmptSolution,
    green_ampt_infiltration,
)
from soilsim.physics.heat_conduction import (
    HeatProfileSimulator,
    HeatProfileParameters,
    TemperatureGrid,
    soil_temperature_profile,
)
from soilsim.physics.evapotranspiration import (
    penman_monteith_et0,
    reference_et_series,
)

__all__ = [
    "RootFinder",
    "RootFinderConfig",
    "RootResult",
    # Bucket model
    "MoistureBalanceSimulator",
    "BucketParameters",
    "BucketState",
    "BalanceResult",
    "soil_moisture_balance",
    # Green-Ampt
    "InfiltrationSolver",
    "InfiltrationParameters",
    "GreenAmptSolution",
    "green_ampt_infiltration",
    # Heat conduction
    "HeatProfileSimulator",
    "HeatProfileParameters",
    "TemperatureGrid",
    "soil_temperature_profile",
    # Driving series
    "penman_monteith_et0",
    "reference_et_series",
]
