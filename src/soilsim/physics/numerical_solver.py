"""
Bracketing root finder for implicit scalar equations.

The solver knows nothing about soil physics: it takes a residual function,
an optional derivative, and a lower bound, and returns the root together
with iteration diagnostics. Two backends are available:

- "newton": safeguarded Newton-Raphson. A Newton step is accepted only when
  it lands strictly inside the current bracket, otherwise the bracket is
  bisected. The bracket shrinks every iteration, so the method cannot
  diverge.
- "brentq": scipy's Brent method over the same bracket.

Both fail explicitly (ConvergenceError) when the iteration budget runs out.

References:
- Press et al. (2007) Numerical Recipes, 3rd ed., section 9.4 (rtsafe)
- Brent (1973) Algorithms for Minimization without Derivatives
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

import numpy as np
from scipy.optimize import brentq

from soilsim.core.config import RootFinderSettings
from soilsim.core.constants import ROOT_FINDER_DEFAULTS
from soilsim.core.exceptions import (
    ConvergenceError, ErrorContext, InvalidInputError, NumericalError
)

logger = logging.getLogger(__name__)

ScalarFunction = Callable[[float], float]


@dataclass(frozen=True)
class RootFinderConfig:
    """Tolerances and budgets for the root finder"""
    method: str = "newton"
    xtol: float = ROOT_FINDER_DEFAULTS["xtol"]
    rtol: float = ROOT_FINDER_DEFAULTS["rtol"]
    max_iterations: int = int(ROOT_FINDER_DEFAULTS["max_iterations"])
    max_bracket_expansions: int = int(ROOT_FINDER_DEFAULTS["max_bracket_expansions"])
    bracket_growth: float = ROOT_FINDER_DEFAULTS["bracket_growth"]

    def __post_init__(self):
        if self.method not in ("newton", "brentq"):
            raise InvalidInputError(f"Unknown root finding method '{self.method}'")
        if self.xtol <= 0 or self.rtol <= 0:
            raise InvalidInputError("Root finder tolerances must be positive")
        if self.max_iterations <= 0 or self.max_bracket_expansions <= 0:
            raise InvalidInputError("Root finder budgets must be positive")
        if self.bracket_growth <= 1:
            raise InvalidInputError("bracket_growth must exceed 1")

    @classmethod
    def from_settings(cls, settings: RootFinderSettings) -> "RootFinderConfig":
        """Create solver configuration from validated settings"""
        return cls(
            method=settings.method,
            xtol=settings.xtol,
            rtol=settings.rtol,
            max_iterations=settings.max_iterations,
            max_bracket_expansions=settings.max_bracket_expansions,
            bracket_growth=settings.bracket_growth,
        )


@dataclass(frozen=True)
class RootResult:
    """Outcome of a root search"""
    root: float
    iterations: int
    function_value: float
    bracket: Tuple[float, float]
    converged: bool = True


class RootFinder:
    """
    Scalar root finder parameterized by tolerance and iteration budget.

    Instances hold only immutable configuration, so one finder can be shared
    across threads.
    """

    def __init__(self, config: Optional[RootFinderConfig] = None):
        self.config = config or RootFinderConfig()
        self.logger = logging.getLogger(f"{__name__}.RootFinder")

    def _evaluate(self, func: ScalarFunction, x: float, operation: str) -> float:
        """Evaluate func, rejecting non-finite results"""
        value = float(func(x))
        if not np.isfinite(value):
            raise NumericalError(
                f"Function value is not finite at x={x!r}",
                ErrorContext(component="RootFinder", operation=operation,
                             details={"x": x, "value": value})
            )
        return value

    def expand_bracket(
        self,
        func: ScalarFunction,
        lower: float,
        upper: Optional[float] = None
    ) -> Tuple[float, float]:
        """
        Grow the upper bound geometrically until func changes sign.

        Args:
            func: Residual function
            lower: Fixed lower bound of the search interval
            upper: First trial upper bound (defaults to lower + max(|lower|, 1))

        Returns:
            Tuple of (lower, upper) with func(lower) * func(upper) <= 0
        """
        f_lower = self._evaluate(func, lower, "expand_bracket")
        if f_lower == 0.0:
            return lower, lower

        if upper is None:
            upper = lower + max(abs(lower), 1.0)
        if upper <= lower:
            raise InvalidInputError(
                f"Upper bound {upper!r} must exceed lower bound {lower!r}",
                ErrorContext(component="RootFinder", operation="expand_bracket")
            )

        width = upper - lower
        for _ in range(self.config.max_bracket_expansions):
            f_upper = self._evaluate(func, upper, "expand_bracket")
            if np.sign(f_upper) != np.sign(f_lower):
                return lower, upper
            width *= self.config.bracket_growth
            upper = lower + width
            if not np.isfinite(upper):
                break

        raise ConvergenceError(
            f"No sign change found above {lower!r} after "
            f"{self.config.max_bracket_expansions} expansions",
            ErrorContext(component="RootFinder", operation="expand_bracket",
                         details={"lower": lower, "last_upper": upper})
        )

    def solve(
        self,
        func: ScalarFunction,
        lower: float,
        derivative: Optional[ScalarFunction] = None,
        upper: Optional[float] = None,
        initial_guess: Optional[float] = None
    ) -> RootResult:
        """
        Find a root of func at or above lower.

        Args:
            func: Residual function
            lower: Lower end of the search interval
            derivative: Derivative of func, enables Newton steps
            upper: First trial upper bound, expanded if needed
            initial_guess: Starting point for Newton iteration

        Returns:
            RootResult with the converged root
        """
        lower, upper = self.expand_bracket(func, lower, upper)
        if lower == upper:
            return RootResult(root=lower, iterations=0, function_value=0.0,
                              bracket=(lower, upper))

        if self.config.method == "brentq":
            return self._solve_brentq(func, lower, upper)
        return self._solve_newton(func, derivative, lower, upper, initial_guess)

    def _solve_brentq(self, func: ScalarFunction, lower: float, upper: float) -> RootResult:
        root, info = brentq(
            func, lower, upper,
            xtol=self.config.xtol,
            rtol=self.config.rtol,
            maxiter=self.config.max_iterations,
            full_output=True,
            disp=False,
        )
        if not info.converged:
            raise ConvergenceError(
                f"brentq did not converge after {info.iterations} iterations",
                ErrorContext(component="RootFinder", operation="brentq",
                             details={"bracket": (lower, upper), "flag": info.flag})
            )
        return RootResult(
            root=float(root),
            iterations=int(info.iterations),
            function_value=self._evaluate(func, root, "brentq"),
            bracket=(lower, upper),
        )

    def _solve_newton(
        self,
        func: ScalarFunction,
        derivative: Optional[ScalarFunction],
        lower: float,
        upper: float,
        initial_guess: Optional[float]
    ) -> RootResult:
        f_lower = self._evaluate(func, lower, "newton")

        # Orient so that func(x_neg) < 0 < func(x_pos)
        if f_lower < 0:
            x_neg, x_pos = lower, upper
        else:
            x_neg, x_pos = upper, lower

        if initial_guess is not None and lower <= initial_guess <= upper:
            x = float(initial_guess)
        else:
            x = 0.5 * (lower + upper)
        fx = self._evaluate(func, x, "newton")

        for iteration in range(1, self.config.max_iterations + 1):
            if fx == 0.0:
                return RootResult(root=x, iterations=iteration - 1,
                                  function_value=fx, bracket=(lower, upper))

            if fx < 0:
                x_neg = x
            else:
                x_pos = x

            candidate = None
            if derivative is not None:
                dfx = float(derivative(x))
                if np.isfinite(dfx) and dfx != 0.0:
                    newton_x = x - fx / dfx
                    if min(x_neg, x_pos) < newton_x < max(x_neg, x_pos):
                        candidate = newton_x
            if candidate is None:
                candidate = 0.5 * (x_neg + x_pos)

            dx = abs(candidate - x)
            x = candidate
            fx = self._evaluate(func, x, "newton")

            tolerance = self.config.xtol + self.config.rtol * abs(x)
            if dx <= tolerance or abs(x_pos - x_neg) <= tolerance:
                self.logger.debug("Converged to %r in %d iterations", x, iteration)
                return RootResult(root=x, iterations=iteration,
                                  function_value=fx, bracket=(lower, upper))

        raise ConvergenceError(
            f"Newton iteration did not converge after {self.config.max_iterations} iterations",
            ErrorContext(component="RootFinder", operation="newton",
                         details={"last_x": x, "last_value": fx,
                                  "bracket": (min(x_neg, x_pos), max(x_neg, x_pos))})
        )
