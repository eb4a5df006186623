"""
One-dimensional soil heat conduction on a uniform depth grid.

Explicit forward-time, centered-space (FTCS) scheme:
    T[i, j+1] = T[i, j] + α (T[i+1, j] - 2 T[i, j] + T[i-1, j]),  α = D Δt / Δz²

Boundary conditions:
- Surface node (i = 0): Dirichlet, taken from the surface temperature series.
- Bottom node (i = N-1): zero flux, copied from node N-2 of the same column
  after the interior update.

The scheme is only stable for α <= 0.5. Runs above the limit still complete;
the violation is logged and attached to the result as a StabilityWarning.

References:
- Hillel, D. (1998). Environmental Soil Physics. Academic Press.
- Campbell, G.S. (1985). Soil Physics with BASIC. Elsevier.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from soilsim.core.config import SoilSimConfig
from soilsim.core.constants import FTCS_STABILITY_LIMIT, MIN_HEAT_NODES
from soilsim.core.exceptions import ErrorContext, InvalidInputError, StabilityWarning
from soilsim.core.types import DrivingSeries, FloatArray, TemperatureArray, TemperatureC
from soilsim.core.validation import as_driving_series, build_parameters, require_finite

logger = logging.getLogger(__name__)


class HeatProfileParameters(BaseModel):
    """Grid and material parameters for the heat conduction scheme"""
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    diffusivity: float = Field(
        ..., gt=0, validation_alias=AliasChoices("diffusivity", "thermal_diff"),
        description="Soil thermal diffusivity (m²/s)"
    )
    dt: float = Field(..., gt=0, description="Time step (s)")
    dz: float = Field(..., gt=0, description="Depth step (m)")
    n_nodes: int = Field(
        ..., ge=MIN_HEAT_NODES, validation_alias=AliasChoices("n_nodes", "node_count"),
        description="Number of depth nodes including both boundaries"
    )

    @property
    def stability_factor(self) -> float:
        """α = D Δt / Δz²"""
        return self.diffusivity * self.dt / self.dz ** 2


@dataclass(frozen=True)
class TemperatureGrid:
    """
    Temperature profile history.

    Rows are depth nodes (row 0 is the surface), columns are time steps
    (column 0 is the initial condition).
    """
    temperatures: TemperatureArray
    dz: float
    dt: float
    stability_factor: float
    stability_limit: float = FTCS_STABILITY_LIMIT
    warnings: Tuple[StabilityWarning, ...] = ()

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        arr = self.temperatures
        if dtype is not None:
            arr = arr.astype(dtype)
        elif copy:
            arr = arr.copy()
        return arr

    def __getitem__(self, key):
        return self.temperatures[key]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.temperatures.shape

    @property
    def is_stable(self) -> bool:
        return self.stability_factor <= self.stability_limit

    @property
    def depths(self) -> FloatArray:
        """Node depths (m)"""
        return np.arange(self.shape[0]) * self.dz

    @property
    def times(self) -> FloatArray:
        """Column times since the initial condition (s)"""
        return np.arange(self.shape[1]) * self.dt

    @property
    def surface(self) -> FloatArray:
        return self.temperatures[0]

    @property
    def bottom(self) -> FloatArray:
        return self.temperatures[-1]

    def to_frame(self) -> pd.DataFrame:
        """Grid as a DataFrame indexed by depth with one column per time"""
        frame = pd.DataFrame(
            self.temperatures,
            index=pd.Index(self.depths, name="depth_m"),
            columns=pd.Index(self.times, name="time_s"),
        )
        return frame


class HeatProfileSimulator:
    """
    Explicit finite-difference time-marcher over a 1D depth grid.

    Each simulate() call allocates its own grid; the instance keeps only the
    stability limit.
    """

    def __init__(self, stability_limit: float = FTCS_STABILITY_LIMIT):
        if stability_limit <= 0:
            raise InvalidInputError(f"stability_limit must be positive, got {stability_limit}")
        self.stability_limit = stability_limit
        self.logger = logging.getLogger(f"{__name__}.HeatProfileSimulator")

    @classmethod
    def from_config(cls, config: SoilSimConfig) -> "HeatProfileSimulator":
        return cls(stability_limit=config.heat.stability_limit)

    def check_stability(self, params: HeatProfileParameters) -> Optional[StabilityWarning]:
        """Return a warning when α exceeds the stability limit, else None"""
        alpha = params.stability_factor
        if alpha <= self.stability_limit:
            return None

        warning = StabilityWarning(
            stability_factor=alpha,
            limit=self.stability_limit,
            message=(
                f"Stability criterion not met (alpha={alpha:.4g} > "
                f"{self.stability_limit}). Results may be unstable."
            ),
        )
        self.logger.warning(warning.message)
        return warning

    def simulate(
        self,
        initial_temp: Union[TemperatureC, DrivingSeries],
        surface_series: DrivingSeries,
        diffusivity: float,
        dt: float,
        dz: float,
        n_nodes: int
    ) -> TemperatureGrid:
        """
        March the temperature profile through the surface series.

        Args:
            initial_temp: Initial temperature (°C), scalar or one value per node
            surface_series: Surface temperature for each time step (°C)
            diffusivity: Soil thermal diffusivity (m²/s)
            dt: Time step (s)
            dz: Depth step (m)
            n_nodes: Number of depth nodes

        Returns:
            TemperatureGrid of shape (n_nodes, len(surface_series)). Column j
            for j >= 1 holds the state after applying surface_series[j - 1].

        Raises:
            InvalidInputError: invalid grid parameters or initial profile length
        """
        params = build_parameters(
            HeatProfileParameters,
            {"diffusivity": diffusivity, "dt": dt, "dz": dz, "n_nodes": n_nodes},
            component="HeatProfileSimulator",
        )
        surface = as_driving_series(surface_series, "surface_series", component="HeatProfileSimulator")
        initial = self._initial_profile(initial_temp, params.n_nodes)

        warning = self.check_stability(params)
        alpha = params.stability_factor

        n_steps = len(surface)
        T = np.zeros((params.n_nodes, n_steps))
        T[:, 0] = initial

        for j in range(n_steps - 1):
            # Surface boundary (Dirichlet)
            T[0, j + 1] = surface[j]

            # Interior nodes read column j only
            T[1:-1, j + 1] = T[1:-1, j] + alpha * (
                T[2:, j] - 2 * T[1:-1, j] + T[:-2, j]
            )

            # Zero heat flux at the bottom (insulated)
            T[-1, j + 1] = T[-2, j + 1]

        T.setflags(write=False)

        self.logger.debug(
            "Heat profile: %d nodes x %d steps, alpha=%.4g",
            params.n_nodes, n_steps, alpha
        )

        return TemperatureGrid(
            temperatures=T,
            dz=params.dz,
            dt=params.dt,
            stability_factor=alpha,
            stability_limit=self.stability_limit,
            warnings=(warning,) if warning is not None else (),
        )

    def _initial_profile(
        self,
        initial_temp: Union[TemperatureC, DrivingSeries],
        n_nodes: int
    ) -> FloatArray:
        """Broadcast a scalar or check a per-node vector"""
        if np.ndim(initial_temp) == 0:
            value = require_finite(initial_temp, "initial_temp", component="HeatProfileSimulator")
            return np.full(n_nodes, value)

        profile = as_driving_series(initial_temp, "initial_temp", component="HeatProfileSimulator")
        if len(profile) != n_nodes:
            raise InvalidInputError(
                f"initial_temp has {len(profile)} values but the grid has {n_nodes} nodes",
                ErrorContext(component="HeatProfileSimulator", operation="simulate",
                             details={"initial_length": len(profile), "n_nodes": n_nodes})
            )
        return profile


def soil_temperature_profile(
    initial_temp: Union[TemperatureC, DrivingSeries],
    surface_temp_series: DrivingSeries,
    thermal_diff: float,
    dt: float,
    dz: float,
    n_nodes: int
) -> TemperatureArray:
    """
    Simulate the 1D soil temperature profile over time.

    Returns:
        Matrix of soil temperatures (n_nodes x len(surface_temp_series))
    """
    grid = HeatProfileSimulator().simulate(
        initial_temp, surface_temp_series, thermal_diff, dt, dz, n_nodes
    )
    return grid.temperatures.copy()
