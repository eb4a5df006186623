"""
Green-Ampt infiltration under ponded conditions.

Cumulative infiltration F after time t satisfies the implicit relation
    F - ψ·Δθ·ln(1 + F / (ψ·Δθ)) - K_s·t = 0
which has a single root on F > 0 whenever Δθ > 0, K_s > 0 and t > 0.
The root is found with the generic bracketing solver seeded at K_s·t,
the large-time asymptote, which always lies below the root.

Units are fixed: K_s in m/s, ψ in m, t in s, F in m.

References:
- Green, W.H. and Ampt, G.A. (1911). Studies on soil physics: I. Flow of air
  and water through soils. Journal of Agricultural Science, 4:1-24.
- Mein, R.G. and Larson, C.L. (1973). Modeling infiltration during a steady
  rain. Water Resources Research, 9(2):384-394.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from soilsim.core.config import SoilSimConfig
from soilsim.core.exceptions import NumericalError
from soilsim.core.types import DrivingSeries, FloatArray, InfiltrationM, ParameterMapping
from soilsim.core.validation import as_driving_series, build_parameters, require_finite
from soilsim.physics.numerical_solver import RootFinder, RootFinderConfig

logger = logging.getLogger(__name__)


class InfiltrationParameters(BaseModel):
    """
    Green-Ampt model parameters.

    Accepts the short names used in the literature (Ks, psi, t) as well as
    the descriptive field names.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    saturated_conductivity: float = Field(
        ..., gt=0, validation_alias=AliasChoices("saturated_conductivity", "Ks", "ks"),
        description="Saturated hydraulic conductivity (m/s)"
    )
    suction_head: float = Field(
        ..., gt=0, validation_alias=AliasChoices("suction_head", "psi"),
        description="Wetting front suction head (m, positive)"
    )
    theta_i: float = Field(..., ge=0, le=1, description="Initial water content (m³/m³)")
    theta_s: float = Field(..., gt=0, le=1, description="Saturated water content (m³/m³)")
    time: float = Field(
        0.0, ge=0, validation_alias=AliasChoices("time", "t"),
        description="Elapsed time since ponding (s)"
    )

    @model_validator(mode="after")
    def check_moisture_deficit(self):
        """The model is undefined without a moisture deficit"""
        if self.theta_s - self.theta_i <= 0:
            raise ValueError(
                f"theta_s ({self.theta_s}) must exceed theta_i ({self.theta_i})"
            )
        return self

    @property
    def delta_theta(self) -> float:
        """Moisture deficit Δθ = θ_s - θ_i (m³/m³)"""
        return self.theta_s - self.theta_i

    @property
    def sorptivity_parameter(self) -> float:
        """ψ × Δθ term (m)"""
        return self.suction_head * self.delta_theta

    @property
    def gravity_infiltration(self) -> float:
        """K_s × t, infiltration from gravity alone (m)"""
        return self.saturated_conductivity * self.time


@dataclass(frozen=True)
class GreenAmptSolution:
    """Cumulative infiltration at one instant with derived quantities"""
    cumulative_infiltration: InfiltrationM  # F (m)
    infiltration_rate: float  # f (m/s)
    wetting_front_depth: float  # F / Δθ (m)
    iterations: int


def green_ampt_residual(F: float, params: InfiltrationParameters) -> float:
    """Residual of the implicit Green-Ampt equation at F"""
    S = params.sorptivity_parameter
    return F - S * np.log1p(F / S) - params.gravity_infiltration


def green_ampt_infiltration_rate(F: float, params: InfiltrationParameters) -> float:
    """
    Infiltration rate from cumulative infiltration.

    f = K_s × [1 + (ψ × Δθ) / F]

    Returns inf at F = 0, where the wetting front has not yet formed.
    """
    if F <= 0:
        return float("inf")
    return params.saturated_conductivity * (1 + params.sorptivity_parameter / F)


class InfiltrationSolver:
    """
    Solves the implicit Green-Ampt equation for cumulative infiltration.

    Holds only the root finder, so a solver is reusable across calls and
    threads.
    """

    def __init__(self, root_finder: Optional[RootFinder] = None):
        self.root_finder = root_finder or RootFinder()
        self.logger = logging.getLogger(f"{__name__}.InfiltrationSolver")

    @classmethod
    def from_config(cls, config: SoilSimConfig) -> "InfiltrationSolver":
        """Create a solver using the configured root finder settings"""
        return cls(RootFinder(RootFinderConfig.from_settings(config.solver)))

    def solve(
        self,
        t: float,
        Ks: float,
        psi: float,
        theta_i: float,
        theta_s: float
    ) -> InfiltrationM:
        """
        Cumulative infiltration F (m) after t seconds of ponding.

        Raises:
            InvalidInputError: Δθ <= 0 or another parameter out of domain
            NumericalError: the root finder failed
        """
        params = build_parameters(
            InfiltrationParameters,
            {"t": t, "Ks": Ks, "psi": psi, "theta_i": theta_i, "theta_s": theta_s},
            component="InfiltrationSolver",
        )
        return self.solution(params).cumulative_infiltration

    def solution(
        self,
        params: Union[InfiltrationParameters, ParameterMapping]
    ) -> GreenAmptSolution:
        """Solve at params.time and report rate and wetting front depth"""
        params = build_parameters(InfiltrationParameters, params, component="InfiltrationSolver")

        # Nothing has infiltrated yet; the implicit equation is degenerate at t = 0
        if params.time == 0:
            return GreenAmptSolution(
                cumulative_infiltration=0.0,
                infiltration_rate=float("inf"),
                wetting_front_depth=0.0,
                iterations=0,
            )

        S = params.sorptivity_parameter
        gravity = params.gravity_infiltration

        # S can vanish against a large K_s·t; the first trial bound must still sit above it
        upper = gravity + S
        if upper <= gravity:
            upper = np.nextafter(gravity, np.inf)

        try:
            result = self.root_finder.solve(
                lambda F: green_ampt_residual(F, params),
                lower=gravity,
                derivative=lambda F: F / (S + F),
                upper=upper,
                initial_guess=gravity,
            )
        except NumericalError as exc:
            self.logger.error("Green-Ampt solve failed for %s: %s", params, exc)
            raise

        F = result.root
        self.logger.debug(
            "F=%.6g m after %.6g s (K_s·t=%.6g m, %d iterations)",
            F, params.time, gravity, result.iterations
        )

        return GreenAmptSolution(
            cumulative_infiltration=F,
            infiltration_rate=green_ampt_infiltration_rate(F, params),
            wetting_front_depth=F / params.delta_theta,
            iterations=result.iterations,
        )

    def cumulative_series(
        self,
        times: DrivingSeries,
        Ks: float,
        psi: float,
        theta_i: float,
        theta_s: float
    ) -> FloatArray:
        """
        Cumulative infiltration at each elapsed time.

        Each instant is solved independently; times need not be sorted.
        """
        times = as_driving_series(times, "times", component="InfiltrationSolver")
        base = build_parameters(
            InfiltrationParameters,
            {"Ks": Ks, "psi": psi, "theta_i": theta_i, "theta_s": theta_s},
            component="InfiltrationSolver",
        )

        F = np.empty_like(times)
        for idx, t in enumerate(times):
            params = build_parameters(
                InfiltrationParameters,
                {**base.model_dump(), "time": float(t)},
                component="InfiltrationSolver",
            )
            F[idx] = self.solution(params).cumulative_infiltration

        return F


def green_ampt_infiltration(
    t: float,
    Ks: float,
    psi: float,
    theta_i: float,
    theta_s: float,
    solver: Optional[InfiltrationSolver] = None
) -> InfiltrationM:
    """
    Calculate cumulative infiltration (m) after time t (s) using Green-Ampt.

    Args:
        t: Time duration of infiltration (s)
        Ks: Saturated hydraulic conductivity (m/s)
        psi: Wetting front soil suction head (m)
        theta_i: Initial soil moisture content (m³/m³)
        theta_s: Saturated soil moisture content (m³/m³)
        solver: Solver to use, a default one otherwise

    Returns:
        Cumulative infiltration F (m)
    """
    t = require_finite(t, "t", component="InfiltrationSolver")
    return (solver or InfiltrationSolver()).solve(t, Ks, psi, theta_i, theta_s)
