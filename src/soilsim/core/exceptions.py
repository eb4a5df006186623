"""
Custom exception hierarchy for soilsim.
Provides clear error categories and rich error information.
"""
from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Context information for errors"""
    component: Optional[str] = None
    operation: Optional[str] = None
    step: Optional[int] = None
    details: Optional[Dict[str, Any]] = None


class SoilSimError(Exception):
    """Base exception for all soilsim errors"""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        context_str = ""
        if self.context.component:
            context_str += f" [Component: {self.context.component}]"
        if self.context.operation:
            context_str += f" [Operation: {self.context.operation}]"
        if self.context.step is not None:
            context_str += f" [Step: {self.context.step}]"

        return f"{self.__class__.__name__}: {self.message}{context_str}"


# Input errors
class InvalidInputError(SoilSimError):
    """Shape mismatch or out-of-domain parameter"""
    pass


# Numerical errors
class NumericalError(SoilSimError):
    """Base class for numerical failures"""
    pass


class ConvergenceError(NumericalError):
    """Iterative method failed to converge within its budget"""
    pass


@dataclass(frozen=True)
class StabilityWarning:
    """
    Non-fatal notice that an explicit scheme exceeded its stability bound.

    Attached to simulation results instead of being raised, so callers can
    query it after the run.
    """
    stability_factor: float
    limit: float
    message: str


def handle_exception(exc: Exception, context: Optional[ErrorContext] = None) -> SoilSimError:
    """
    Wrap generic exceptions in SoilSimError hierarchy.
    Useful for catching and categorizing third-party exceptions.
    """
    if isinstance(exc, SoilSimError):
        return exc

    # Order matters: FloatingPointError is an ArithmeticError
    error_map = {
        ValueError: InvalidInputError,
        KeyError: InvalidInputError,
        TypeError: InvalidInputError,
        ArithmeticError: NumericalError,
    }

    for exc_type, soilsim_exc_type in error_map.items():
        if isinstance(exc, exc_type):
            return soilsim_exc_type(str(exc), context)

    # Default to generic SoilSimError
    return SoilSimError(str(exc), context)
