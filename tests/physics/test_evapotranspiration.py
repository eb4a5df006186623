"""
Tests for FAO-56 Penman-Monteith reference evapotranspiration.
"""
import numpy as np
import pandas as pd
import pytest

from soilsim.core.exceptions import InvalidInputError
from soilsim.physics.evapotranspiration import (
    atmospheric_pressure,
    penman_monteith_et0,
    reference_et_series,
    saturation_vapor_pressure,
)
from soilsim.physics.water_balance import MoistureBalanceSimulator


@pytest.fixture
def summer_day():
    return {"temp": 20.0, "rh": 60.0, "u2": 2.0, "net_radiation": 15.0,
            "soil_heat_flux": 2.0}


@pytest.fixture
def weather_week():
    return pd.DataFrame(
        {
            "temp": [18.0, 21.0, 24.0, 22.0, 19.0, 17.0, 20.0],
            "rh": [70.0, 60.0, 50.0, 55.0, 65.0, 80.0, 60.0],
            "u2": [1.5, 2.0, 2.5, 2.0, 1.0, 3.0, 2.0],
            "net_radiation": [12.0, 15.0, 18.0, 16.0, 10.0, 8.0, 15.0],
            "soil_heat_flux": [1.0, 2.0, 2.0, 1.5, 0.5, 0.0, 2.0],
        },
        index=pd.date_range("2021-07-01", periods=7, freq="D"),
    )


class TestPenmanMonteith:

    def test_plausible_range(self, summer_day):
        et0 = penman_monteith_et0(**summer_day, elevation_m=100.0)
        assert isinstance(et0, float)
        assert 0 < et0 < 10
        assert et0 == pytest.approx(4.48, rel=1e-2)

    def test_helpers(self):
        assert atmospheric_pressure(0.0) == pytest.approx(101.3)
        assert atmospheric_pressure(1000.0) < atmospheric_pressure(0.0)
        # FAO-56 Annex 2: e°(20 °C) = 2.338 kPa
        assert saturation_vapor_pressure(20.0) == pytest.approx(2.338, abs=1e-3)

    def test_array_inputs(self, summer_day):
        temps = np.array([10.0, 20.0, 30.0])
        et0 = penman_monteith_et0(temps, 60.0, 2.0, 15.0, 2.0)
        assert et0.shape == (3,)
        assert np.all(np.diff(et0) > 0)

    def test_more_energy_more_et(self, summer_day):
        low = penman_monteith_et0(**{**summer_day, "net_radiation": 8.0})
        high = penman_monteith_et0(**{**summer_day, "net_radiation": 20.0})
        assert high > low

    def test_drier_air_more_et(self, summer_day):
        humid = penman_monteith_et0(**{**summer_day, "rh": 90.0})
        dry = penman_monteith_et0(**{**summer_day, "rh": 30.0})
        assert dry > humid

    @pytest.mark.parametrize("update", [
        {"rh": 120.0},
        {"rh": -5.0},
        {"u2": -1.0},
        {"temp": float("nan")},
        {"temp": -300.0},
    ])
    def test_invalid_inputs(self, summer_day, update):
        with pytest.raises(InvalidInputError):
            penman_monteith_et0(**{**summer_day, **update})


class TestReferenceEtSeries:

    def test_series_aligned_with_weather(self, weather_week):
        et = reference_et_series(weather_week, elevation_m=250.0)
        assert isinstance(et, pd.Series)
        assert et.name == "ET"
        assert et.index.equals(weather_week.index)
        assert np.all(et > 0)

    def test_missing_column(self, weather_week):
        with pytest.raises(InvalidInputError, match="missing columns"):
            reference_et_series(weather_week.drop(columns=["u2"]))

    def test_drives_bucket_model(self, weather_week):
        et = reference_et_series(weather_week)
        precip = np.array([0.0, 12.0, 0.0, 0.0, 25.0, 3.0, 0.0])
        result = MoistureBalanceSimulator().simulate(
            precip, et.to_numpy(),
            {"fc": 0.32, "wp": 0.12, "zr": 0.4, "initial_moisture": 0.25},
        )
        assert len(result) == 7
        assert np.all(result.soil_moisture >= 0.12)
        assert np.all(result.soil_moisture <= 0.32)
