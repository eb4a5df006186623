"""
Daily single-bucket soil water balance, inspired by FAO-56.

Storage is tracked in depth units (mm) over the root zone and reported back
as volumetric water content. Each day t > 1 is driven by the precipitation
and ET of day t - 1, so the first day is the initial condition and the last
entries of the driving series never reach the bucket.

After every update the bucket is clamped: water above field capacity leaves
as runoff, and storage below the wilting point is raised to it. The second
clamp adds water that no flux accounts for; the amount is reported in
BalanceResult.deficit_fill_mm rather than hidden.
"""
import logging
from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from soilsim.core.constants import MM_PER_M
from soilsim.core.exceptions import ErrorContext, InvalidInputError
from soilsim.core.types import DrivingSeries, FloatArray, ParameterMapping
from soilsim.core.validation import as_driving_series, build_parameters

logger = logging.getLogger(__name__)


class BucketParameters(BaseModel):
    """Static soil parameters for the bucket model"""
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    field_capacity: float = Field(
        ..., gt=0, le=1, validation_alias=AliasChoices("field_capacity", "fc"),
        description="Field capacity (m³/m³)"
    )
    wilting_point: float = Field(
        ..., ge=0, lt=1, validation_alias=AliasChoices("wilting_point", "wp"),
        description="Wilting point (m³/m³)"
    )
    root_depth: float = Field(
        ..., gt=0, validation_alias=AliasChoices("root_depth", "zr"),
        description="Rooting depth (m)"
    )
    initial_moisture: float = Field(
        ..., ge=0, description="Soil moisture on day 1 (m³/m³)"
    )

    @model_validator(mode="after")
    def check_capacity_ordering(self):
        """Field capacity must sit above the wilting point and bound the initial state"""
        if self.field_capacity <= self.wilting_point:
            raise ValueError(
                f"field_capacity ({self.field_capacity}) must exceed "
                f"wilting_point ({self.wilting_point})"
            )
        if self.initial_moisture > self.field_capacity:
            raise ValueError(
                f"initial_moisture ({self.initial_moisture}) exceeds "
                f"field_capacity ({self.field_capacity})"
            )
        return self

    @property
    def depth_factor_mm(self) -> float:
        """Multiplier converting volumetric content to mm over the root zone"""
        return self.root_depth * MM_PER_M

    @property
    def field_capacity_depth_mm(self) -> float:
        return self.field_capacity * self.depth_factor_mm

    @property
    def wilting_point_depth_mm(self) -> float:
        return self.wilting_point * self.depth_factor_mm

    @property
    def available_water_capacity_mm(self) -> float:
        """Plant available water between wilting point and field capacity (mm)"""
        return (self.field_capacity - self.wilting_point) * self.depth_factor_mm

    @property
    def initial_storage_mm(self) -> float:
        return self.initial_moisture * self.depth_factor_mm


@dataclass
class BucketState:
    """Root-zone storage for one simulation run"""
    storage_mm: float
    field_capacity_depth_mm: float
    wilting_point_depth_mm: float

    @classmethod
    def from_parameters(cls, params: BucketParameters) -> "BucketState":
        """Seed storage directly from the initial moisture, without clamping"""
        return cls(
            storage_mm=params.initial_storage_mm,
            field_capacity_depth_mm=params.field_capacity_depth_mm,
            wilting_point_depth_mm=params.wilting_point_depth_mm,
        )

    @property
    def available_water_mm(self) -> float:
        """Plant available water in mm"""
        return max(0.0, self.storage_mm - self.wilting_point_depth_mm)

    def step(self, precipitation_mm: float, et_mm: float) -> Tuple[float, float]:
        """
        Apply one day of forcing and clamp to the bucket limits.

        The excess check runs first, then the deficit check, on the same value.

        Returns:
            Tuple of (runoff_mm, deficit_fill_mm)
        """
        storage = self.storage_mm + precipitation_mm - et_mm

        runoff = 0.0
        if storage > self.field_capacity_depth_mm:
            runoff = storage - self.field_capacity_depth_mm
            storage = self.field_capacity_depth_mm

        deficit_fill = 0.0
        if storage < self.wilting_point_depth_mm:
            deficit_fill = self.wilting_point_depth_mm - storage
            storage = self.wilting_point_depth_mm

        self.storage_mm = storage
        return runoff, deficit_fill


@dataclass(frozen=True)
class BalanceResult:
    """Per-day output of a bucket run, one entry per input day"""
    day: np.ndarray
    precipitation: FloatArray
    et: FloatArray
    soil_moisture: FloatArray  # m³/m³
    runoff: FloatArray  # mm
    deficit_fill_mm: FloatArray  # mm added by the wilting-point clamp

    COLUMNS = ("Day", "Precipitation", "ET", "SoilMoisture", "Runoff")

    def __len__(self) -> int:
        return len(self.day)

    @property
    def total_runoff_mm(self) -> float:
        return float(self.runoff.sum())

    @property
    def total_deficit_fill_mm(self) -> float:
        return float(self.deficit_fill_mm.sum())

    def to_frame(self) -> pd.DataFrame:
        """Tabular form with columns Day, Precipitation, ET, SoilMoisture, Runoff"""
        return pd.DataFrame({
            "Day": self.day,
            "Precipitation": self.precipitation,
            "ET": self.et,
            "SoilMoisture": self.soil_moisture,
            "Runoff": self.runoff,
        }, columns=list(self.COLUMNS))


class MoistureBalanceSimulator:
    """
    Daily bucket-model integrator.

    Stateless between calls: every simulate() builds its own BucketState.
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def simulate(
        self,
        precip: DrivingSeries,
        et: DrivingSeries,
        params: Union[BucketParameters, ParameterMapping]
    ) -> BalanceResult:
        """
        Run the bucket model over the driving series.

        Args:
            precip: Daily precipitation (mm/day)
            et: Daily potential evapotranspiration (mm/day)
            params: BucketParameters or a mapping with field_capacity|fc,
                wilting_point|wp, root_depth|zr and initial_moisture

        Returns:
            BalanceResult with one record per input day

        Raises:
            InvalidInputError: mismatched series lengths or invalid parameters
        """
        params = build_parameters(BucketParameters, params, component="MoistureBalanceSimulator")
        precip = as_driving_series(precip, "precip", component="MoistureBalanceSimulator")
        et = as_driving_series(et, "et", component="MoistureBalanceSimulator")

        if len(precip) != len(et):
            raise InvalidInputError(
                f"precip and et must have equal length, got {len(precip)} and {len(et)}",
                ErrorContext(component="MoistureBalanceSimulator", operation="simulate",
                             details={"n_precip": len(precip), "n_et": len(et)})
            )

        n_days = len(precip)
        storage = np.zeros(n_days)
        runoff = np.zeros(n_days)
        deficit_fill = np.zeros(n_days)

        state = BucketState.from_parameters(params)
        storage[0] = state.storage_mm

        for t in range(1, n_days):
            # Day t is driven by day t - 1
            runoff[t], deficit_fill[t] = state.step(precip[t - 1], et[t - 1])
            storage[t] = state.storage_mm

        total_fill = deficit_fill.sum()
        if total_fill > 0:
            self.logger.warning(
                "Wilting-point clamp added %.3f mm over %d days",
                total_fill, int(np.count_nonzero(deficit_fill))
            )
        self.logger.debug(
            "Bucket run: %d days, runoff %.3f mm", n_days, runoff.sum()
        )

        soil_moisture = storage / params.depth_factor_mm
        # Clamped days hold exact limits in mm; drop round-off from the division
        soil_moisture[1:] = np.clip(
            soil_moisture[1:], params.wilting_point, params.field_capacity
        )

        return BalanceResult(
            day=np.arange(1, n_days + 1),
            precipitation=precip,
            et=et,
            soil_moisture=soil_moisture,
            runoff=runoff,
            deficit_fill_mm=deficit_fill,
        )


def soil_moisture_balance(
    precip: DrivingSeries,
    et: DrivingSeries,
    params: Union[BucketParameters, ParameterMapping]
) -> pd.DataFrame:
    """
    Calculate the daily soil water balance as a table.

    Returns:
        DataFrame with columns Day, Precipitation, ET, SoilMoisture, Runoff
    """
    return MoistureBalanceSimulator().simulate(precip, et, params).to_frame()
