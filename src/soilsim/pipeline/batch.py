"""
Batch runner for independent simulation scenarios.

Each scenario owns its inputs and output, so scenarios run on a thread pool
without synchronization. A failing scenario is reported in its outcome and
never aborts the rest of the batch. Scenarios still unfinished when the
batch timeout expires are reported as failed.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from soilsim.core.config import SoilSimConfig
from soilsim.core.exceptions import ErrorContext, SoilSimError, handle_exception
from soilsim.core.types import DrivingSeries, ParameterMapping, TemperatureC
from soilsim.physics.heat_conduction import HeatProfileSimulator, TemperatureGrid
from soilsim.physics.infiltration import InfiltrationParameters, InfiltrationSolver
from soilsim.physics.water_balance import (
    BalanceResult, BucketParameters, MoistureBalanceSimulator
)


@dataclass(frozen=True)
class MoistureScenario:
    """Inputs for one bucket-model run"""
    precipitation: DrivingSeries
    evapotranspiration: DrivingSeries
    parameters: Union[BucketParameters, ParameterMapping]


@dataclass(frozen=True)
class HeatScenario:
    """Inputs for one heat-profile run"""
    initial_temp: Union[TemperatureC, DrivingSeries]
    surface_series: DrivingSeries
    diffusivity: float
    dt: float
    dz: float
    n_nodes: int


@dataclass(frozen=True)
class ScenarioOutcome:
    """Result or error of one scenario"""
    scenario_id: str
    result: Any = None
    error: Optional[SoilSimError] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchRunner:
    """
    Runs many independent scenarios in parallel.
    """

    def __init__(self, config: Optional[SoilSimConfig] = None):
        self.config = config or SoilSimConfig()
        self.logger = logging.getLogger("soilsim.pipeline.batch")

        self.moisture_simulator = MoistureBalanceSimulator()
        self.infiltration_solver = InfiltrationSolver.from_config(self.config)
        self.heat_simulator = HeatProfileSimulator.from_config(self.config)

    def run(
        self,
        tasks: Mapping[str, Callable[[], Any]],
        max_workers: Optional[int] = None
    ) -> Dict[str, ScenarioOutcome]:
        """
        Execute zero-argument callables concurrently.

        Args:
            tasks: Scenario id to callable
            max_workers: Overrides the configured worker count

        Returns:
            Scenario id to ScenarioOutcome, in the order of tasks
        """
        max_workers = max_workers or self.config.batch.max_workers
        outcomes: Dict[str, ScenarioOutcome] = {}

        if not tasks:
            return outcomes

        timeout = self.config.batch.timeout_seconds
        executor = ThreadPoolExecutor(max_workers=max_workers)
        timed_out = False
        try:
            future_to_id = {
                executor.submit(self._timed, task): scenario_id
                for scenario_id, task in tasks.items()
            }

            try:
                for future in as_completed(future_to_id, timeout=timeout):
                    scenario_id = future_to_id[future]
                    try:
                        result, elapsed_ms = future.result()
                        outcomes[scenario_id] = ScenarioOutcome(
                            scenario_id=scenario_id, result=result, elapsed_ms=elapsed_ms
                        )
                        self.logger.debug(f"Scenario {scenario_id} finished in {elapsed_ms:.1f}ms")
                    except Exception as e:
                        self._record_failure(outcomes, scenario_id, e)
            except FuturesTimeoutError as e:
                timed_out = True
                for future, scenario_id in future_to_id.items():
                    if scenario_id not in outcomes:
                        future.cancel()
                        self._record_failure(outcomes, scenario_id, e)
        finally:
            # Do not wait on scenarios still running past the timeout
            executor.shutdown(wait=not timed_out, cancel_futures=timed_out)

        n_failed = sum(1 for o in outcomes.values() if not o.ok)
        self.logger.info(f"Batch finished: {len(outcomes) - n_failed} ok, {n_failed} failed")

        return {scenario_id: outcomes[scenario_id] for scenario_id in tasks}

    def run_moisture_balance(
        self,
        scenarios: Mapping[str, MoistureScenario],
        max_workers: Optional[int] = None
    ) -> Dict[str, ScenarioOutcome]:
        """Bucket-model runs; each result is a BalanceResult"""
        def make_task(scenario: MoistureScenario) -> Callable[[], BalanceResult]:
            return lambda: self.moisture_simulator.simulate(
                scenario.precipitation, scenario.evapotranspiration, scenario.parameters
            )

        return self.run({sid: make_task(s) for sid, s in scenarios.items()}, max_workers)

    def run_infiltration(
        self,
        scenarios: Mapping[str, Union[InfiltrationParameters, ParameterMapping]],
        max_workers: Optional[int] = None
    ) -> Dict[str, ScenarioOutcome]:
        """Green-Ampt solves; each result is a GreenAmptSolution"""
        def make_task(params) -> Callable[[], Any]:
            return lambda: self.infiltration_solver.solution(params)

        return self.run({sid: make_task(p) for sid, p in scenarios.items()}, max_workers)

    def run_heat_profiles(
        self,
        scenarios: Mapping[str, HeatScenario],
        max_workers: Optional[int] = None
    ) -> Dict[str, ScenarioOutcome]:
        """Heat-profile runs; each result is a TemperatureGrid"""
        def make_task(scenario: HeatScenario) -> Callable[[], TemperatureGrid]:
            return lambda: self.heat_simulator.simulate(
                scenario.initial_temp, scenario.surface_series, scenario.diffusivity,
                scenario.dt, scenario.dz, scenario.n_nodes
            )

        return self.run({sid: make_task(s) for sid, s in scenarios.items()}, max_workers)

    def _record_failure(
        self,
        outcomes: Dict[str, ScenarioOutcome],
        scenario_id: str,
        exc: Exception
    ) -> None:
        error = handle_exception(exc, ErrorContext(component="BatchRunner", operation=scenario_id))
        self.logger.error(f"Scenario {scenario_id} failed: {error}")
        outcomes[scenario_id] = ScenarioOutcome(scenario_id=scenario_id, error=error)

    @staticmethod
    def _timed(task: Callable[[], Any]):
        start_time = datetime.now()
        result = task()
        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        return result, elapsed_ms
