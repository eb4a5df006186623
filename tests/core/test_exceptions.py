"""
Tests for the error hierarchy.
"""
import pytest

from soilsim.core.exceptions import (
    ConvergenceError,
    ErrorContext,
    InvalidInputError,
    NumericalError,
    SoilSimError,
    StabilityWarning,
    handle_exception,
)


def test_message_includes_context():
    error = InvalidInputError(
        "bad length", ErrorContext(component="HeatProfileSimulator", operation="simulate", step=3)
    )
    text = str(error)
    assert text.startswith("InvalidInputError: bad length")
    assert "[Component: HeatProfileSimulator]" in text
    assert "[Operation: simulate]" in text
    assert "[Step: 3]" in text


def test_default_context():
    error = NumericalError("diverged")
    assert error.context == ErrorContext()
    assert str(error) == "NumericalError: diverged"


def test_hierarchy():
    assert issubclass(InvalidInputError, SoilSimError)
    assert issubclass(ConvergenceError, NumericalError)
    assert not issubclass(StabilityWarning, Exception)


@pytest.mark.parametrize("exc, expected", [
    (ValueError("x"), InvalidInputError),
    (KeyError("x"), InvalidInputError),
    (TypeError("x"), InvalidInputError),
    (FloatingPointError("x"), NumericalError),
    (ZeroDivisionError("x"), NumericalError),
    (RuntimeError("x"), SoilSimError),
])
def test_handle_exception_mapping(exc, expected):
    wrapped = handle_exception(exc, ErrorContext(component="test"))
    assert type(wrapped) is expected
    assert wrapped.context.component == "test"


def test_handle_exception_passthrough():
    original = ConvergenceError("stuck")
    assert handle_exception(original) is original
