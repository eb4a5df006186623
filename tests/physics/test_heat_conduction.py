"""
Tests for the explicit finite-difference soil heat conduction scheme.
"""
import logging

import numpy as np
import pandas as pd
import pytest

from soilsim.core.config import SoilSimConfig
from soilsim.core.exceptions import InvalidInputError, StabilityWarning
from soilsim.physics.heat_conduction import (
    HeatProfileParameters,
    HeatProfileSimulator,
    TemperatureGrid,
    soil_temperature_profile,
)


@pytest.fixture
def simulator():
    return HeatProfileSimulator()


@pytest.fixture
def diurnal_run():
    """Reference run: alpha = 2e-7 * 3600 / 0.1² = 0.072"""
    return {
        "initial_temp": 10.0,
        "surface_series": [15.0, 16.0, 15.5],
        "diffusivity": 2e-7,
        "dt": 3600.0,
        "dz": 0.1,
        "n_nodes": 10,
    }


class TestHeatProfileSimulator:

    def test_reference_scenario(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)
        T = grid.temperatures

        assert isinstance(grid, TemperatureGrid)
        assert grid.shape == (10, 3)
        assert T[0, 1] == 15.0
        assert T[9, 2] == T[8, 2]

    def test_module_function_returns_array(self, diurnal_run):
        T = soil_temperature_profile(
            diurnal_run["initial_temp"], diurnal_run["surface_series"],
            diurnal_run["diffusivity"], diurnal_run["dt"], diurnal_run["dz"],
            diurnal_run["n_nodes"],
        )
        assert isinstance(T, np.ndarray)
        assert T.shape == (10, 3)
        assert T[0, 1] == 15.0

    def test_initial_column(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)
        np.testing.assert_array_equal(grid.temperatures[:, 0], np.full(10, 10.0))

    def test_surface_follows_series(self, simulator, diurnal_run):
        series = [15.0, 16.0, 15.5, 14.0, 12.5]
        grid = simulator.simulate(**{**diurnal_run, "surface_series": series})
        for j in range(len(series) - 1):
            assert grid.temperatures[0, j + 1] == series[j]

    def test_bottom_boundary_insulated(self, simulator, diurnal_run):
        series = list(15 + 5 * np.sin(np.linspace(0, 4 * np.pi, 48)))
        grid = simulator.simulate(**{**diurnal_run, "surface_series": series})
        T = grid.temperatures
        for j in range(1, T.shape[1]):
            assert T[-1, j] == T[-2, j]

    def test_interior_update(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)
        T = grid.temperatures
        alpha = 0.072

        # Column 1: surface still 10 in column 0, so the profile is flat
        assert T[1, 1] == pytest.approx(10.0)
        # Column 2 sees the 15 °C surface from column 1
        assert T[1, 2] == pytest.approx(10.0 + alpha * (10.0 - 20.0 + 15.0))
        assert T[2, 2] == pytest.approx(10.0)

    def test_interior_reads_previous_column_only(self, simulator, diurnal_run):
        initial = np.linspace(20.0, 5.0, 10)
        grid = simulator.simulate(**{**diurnal_run, "initial_temp": initial})
        T = grid.temperatures
        alpha = grid.stability_factor

        for j in range(T.shape[1] - 1):
            expected = T[1:-1, j] + alpha * (T[2:, j] - 2 * T[1:-1, j] + T[:-2, j])
            np.testing.assert_allclose(T[1:-1, j + 1], expected, rtol=0, atol=1e-12)

    def test_uniform_profile_stays_uniform(self, simulator, diurnal_run):
        grid = simulator.simulate(**{**diurnal_run, "surface_series": [10.0] * 20})
        np.testing.assert_allclose(grid.temperatures, 10.0)

    def test_vector_initial_profile(self, simulator, diurnal_run):
        initial = np.arange(10, dtype=float)
        grid = simulator.simulate(**{**diurnal_run, "initial_temp": initial})
        np.testing.assert_array_equal(grid.temperatures[:, 0], initial)

    def test_initial_profile_length_mismatch(self, simulator, diurnal_run):
        with pytest.raises(InvalidInputError, match="nodes"):
            simulator.simulate(**{**diurnal_run, "initial_temp": [10.0] * 9})

    def test_single_step_series(self, simulator, diurnal_run):
        grid = simulator.simulate(**{**diurnal_run, "surface_series": [15.0]})
        assert grid.shape == (10, 1)
        np.testing.assert_array_equal(grid.temperatures[:, 0], 10.0)

    @pytest.mark.parametrize("update", [
        {"n_nodes": 2},
        {"dt": 0.0},
        {"dz": -0.1},
        {"diffusivity": 0.0},
        {"surface_series": []},
        {"surface_series": [15.0, float("nan")]},
        {"initial_temp": float("inf")},
    ])
    def test_invalid_inputs(self, simulator, diurnal_run, update):
        with pytest.raises(InvalidInputError):
            simulator.simulate(**{**diurnal_run, **update})

    def test_runs_are_independent(self, simulator, diurnal_run):
        first = simulator.simulate(**diurnal_run)
        second = simulator.simulate(**diurnal_run)
        assert first.temperatures is not second.temperatures
        np.testing.assert_array_equal(first.temperatures, second.temperatures)


class TestStability:

    def test_stable_run_has_no_warnings(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)
        assert grid.stability_factor == pytest.approx(0.072)
        assert grid.is_stable
        assert grid.warnings == ()

    def test_unstable_run_is_flagged_not_aborted(self, simulator, diurnal_run, caplog):
        # alpha = 2e-7 * 36000 / 0.01 = 0.72
        run = {**diurnal_run, "dt": 36000.0}
        with caplog.at_level(logging.WARNING, logger="soilsim"):
            grid = simulator.simulate(**run)

        assert grid.shape == (10, 3)
        assert not grid.is_stable
        assert len(grid.warnings) == 1
        warning = grid.warnings[0]
        assert isinstance(warning, StabilityWarning)
        assert warning.stability_factor == pytest.approx(0.72)
        assert warning.limit == 0.5
        assert "Stability criterion" in caplog.text

    def test_limit_exactly_met_is_stable(self, simulator):
        params = HeatProfileParameters(diffusivity=0.5, dt=1.0, dz=1.0, n_nodes=5)
        assert params.stability_factor == 0.5
        assert simulator.check_stability(params) is None

    def test_configured_limit(self, diurnal_run):
        config = SoilSimConfig()
        config.heat.stability_limit = 0.05
        grid = HeatProfileSimulator.from_config(config).simulate(**diurnal_run)
        assert not grid.is_stable
        assert grid.warnings[0].limit == 0.05

    def test_invalid_limit(self):
        with pytest.raises(InvalidInputError):
            HeatProfileSimulator(stability_limit=0.0)


class TestTemperatureGrid:

    def test_axes_and_frame(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)

        np.testing.assert_allclose(grid.depths, np.arange(10) * 0.1)
        np.testing.assert_allclose(grid.times, [0.0, 3600.0, 7200.0])
        np.testing.assert_array_equal(grid.surface, grid.temperatures[0])
        np.testing.assert_array_equal(grid.bottom, grid.temperatures[-1])
        assert grid[0, 1] == 15.0

        frame = grid.to_frame()
        assert isinstance(frame, pd.DataFrame)
        assert frame.shape == (10, 3)
        assert frame.index.name == "depth_m"

    def test_array_protocol(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)
        np.testing.assert_array_equal(np.asarray(grid), grid.temperatures)

    def test_grid_is_read_only(self, simulator, diurnal_run):
        grid = simulator.simulate(**diurnal_run)

        with pytest.raises(ValueError):
            grid.temperatures[1, 1] = 99.0

        copied = np.array(grid)
        copied[1, 1] = 99.0
        assert grid.temperatures[1, 1] != 99.0

        matrix = soil_temperature_profile(10.0, [15.0, 16.0, 15.5], 2e-7, 3600.0, 0.1, 10)
        matrix[1, 1] = 99.0
        assert matrix[1, 1] == 99.0
