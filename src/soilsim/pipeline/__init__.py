"""
soilsim Pipeline Module.

Runs independent simulation scenarios in parallel.
"""
from soilsim.pipeline.batch import (
    BatchRunner,
    MoistureScenario,
    HeatScenario,
    ScenarioOutcome,
)

__all__ = [
    "BatchRunner",
    "MoistureScenario",
    "HeatScenario",
    "ScenarioOutcome",
]
