"""Fatal errors and recoverable warnings raised by penalties and engines."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import OptResult


class OptimizationError(Exception):
    """Base class for fatal conditions.

    Engines attach the last valid state as `result` before the error leaves
    `minimize`, so callers can decide whether to accept a partial result.
    """

    def __init__(self, message: str, result: OptResult | None = None) -> None:
        super().__init__(message)
        self.result = result


class ConfigurationError(OptimizationError, ValueError):
    """Invalid tuning parameters or solver options."""


class NoMinimumFound(OptimizationError, ArithmeticError):
    """Every candidate of a coordinate subproblem was non-finite."""


class StepSizeCollapse(OptimizationError, RuntimeError):
    """A line search exhausted its backtracking budget."""


class NumericalInstabilityWarning(UserWarning):
    """A recoverable numerical workaround was applied."""


class CurvaturePerturbationWarning(NumericalInstabilityWarning):
    """A subproblem was not positive definite and its curvature was raised."""


class StepSizeShrinkWarning(NumericalInstabilityWarning):
    """The proximal engine had to shrink its step size."""
