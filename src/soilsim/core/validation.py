"""
Input validators shared by the simulators.
Every failure is reported as InvalidInputError before any state is built.
"""
from typing import Any, Optional, Type, TypeVar, Union

import numpy as np
from pydantic import BaseModel, ValidationError

from soilsim.core.exceptions import ErrorContext, InvalidInputError
from soilsim.core.types import DrivingSeries, FloatArray, ParameterMapping

ModelT = TypeVar("ModelT", bound=BaseModel)


def as_driving_series(
    values: DrivingSeries,
    name: str,
    component: Optional[str] = None,
    allow_empty: bool = False
) -> FloatArray:
    """
    Convert a driving series to a read-only 1D float64 array.

    Args:
        values: Ordered sequence of values
        name: Series name used in error messages
        component: Component reported in the error context
        allow_empty: Whether a zero-length series is acceptable

    Returns:
        Copy of the series as a non-writeable array
    """
    context = ErrorContext(component=component, operation=f"validate {name}")
    try:
        series = np.array(values, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be numeric: {exc}", context) from exc

    if series.ndim != 1:
        raise InvalidInputError(
            f"{name} must be one-dimensional, got shape {series.shape}", context
        )
    if not allow_empty and series.size == 0:
        raise InvalidInputError(f"{name} must contain at least one value", context)
    if not np.all(np.isfinite(series)):
        raise InvalidInputError(f"{name} contains non-finite values", context)

    series.setflags(write=False)
    return series


def build_parameters(
    model: Type[ModelT],
    params: Union[ModelT, ParameterMapping],
    component: Optional[str] = None
) -> ModelT:
    """
    Coerce a parameter mapping into a validated pydantic model.

    Unknown and missing keys are rejected here, at construction, rather than
    at first use inside a simulation loop.
    """
    if isinstance(params, model):
        return params

    context = ErrorContext(component=component, operation=f"build {model.__name__}")
    try:
        return model.model_validate(dict(params))
    except ValidationError as exc:
        raise InvalidInputError(
            f"Invalid {model.__name__}: {_summarize(exc)}", context
        ) from exc
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid {model.__name__}: {exc}", context) from exc


def require_finite(value: Any, name: str, component: Optional[str] = None) -> float:
    """Return value as float, rejecting NaN and infinities"""
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(
            f"{name} must be a number, got {value!r}",
            ErrorContext(component=component)
        ) from exc
    if not np.isfinite(number):
        raise InvalidInputError(
            f"{name} must be finite, got {number}",
            ErrorContext(component=component)
        )
    return number


def _summarize(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "model"
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)
