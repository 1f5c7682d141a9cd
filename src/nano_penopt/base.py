from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable

import jax
import jax.numpy as jnp

from .errors import ConfigurationError, OptimizationError
from .fit import FitFunction, as_fit_function, as_params
from .penalties import Penalty
from .types import Convergence, Labels, OptResult, Status

logger = logging.getLogger(__name__)


class Solver(ABC):
    """Abstract base class for all engines in nano-penopt."""

    def __init__(
        self,
        max_iter: int,
        tol: float = 1e-8,
        convergence: Convergence | str = Convergence.OBJECTIVE,
        verbose: bool = False,
        log_every: int = 1,
    ) -> None:
        """Initialize the solver.

        Args:
            max_iter: Maximum number of outer iterations.
            tol: Tolerance for convergence on the quantity selected by `convergence`.
            convergence: `"objective"` compares the absolute change of the
                penalized objective, `"parameters"` the largest absolute change
                of a parameter.
            verbose: Whether to log progress at INFO level during optimization.
            log_every: Log progress every N iterations when `verbose=True`.
        """
        if max_iter < 1:
            raise ConfigurationError("max_iter must be >= 1")
        if not tol >= 0:
            raise ConfigurationError("tol must be >= 0")
        if log_every < 1:
            raise ConfigurationError("log_every must be >= 1")
        try:
            convergence = Convergence(convergence)
        except ValueError:
            raise ConfigurationError(
                f"Unknown convergence criterion {convergence!r}. "
                f"Supported are: {', '.join(c.value for c in Convergence)}."
            ) from None
        self.max_iter = max_iter
        self.tol = tol
        self.convergence = convergence
        self.verbose = verbose
        self.log_every = log_every

    def _prepare(
        self,
        fun: FitFunction | Callable[..., jax.Array],
        penalty: Penalty,
        tuning: Any,
        init_params: Any,
        data: tuple[Any, ...],
        labels: Labels | None,
    ) -> tuple[FitFunction, jax.Array, list[str]]:
        """Validate the inputs of `minimize` and return fit, parameter copy and labels."""
        if not isinstance(penalty, Penalty):
            raise ConfigurationError(
                f"Expected a Penalty, got {type(penalty).__name__}."
            )
        fit = as_fit_function(fun, data)
        params = as_params(init_params)
        n_params = params.shape[0]
        if n_params == 0:
            raise ConfigurationError("Parameter vector cannot be empty")
        if labels is None:
            labels = [f"x{j}" for j in range(n_params)]
        labels = [str(label) for label in labels]
        if len(labels) != n_params:
            raise ConfigurationError(
                f"Got {len(labels)} labels for {n_params} parameters."
            )
        penalty.validate(tuning, n_params)
        return fit, params, labels

    def _has_converged(
        self,
        prev_value: float,
        value: float,
        prev_params: jax.Array,
        params: jax.Array,
    ) -> bool:
        if self.convergence is Convergence.PARAMETERS:
            change = float(jnp.max(jnp.abs(params - prev_params)))
        else:
            change = abs(prev_value - value)
        return change < self.tol

    def _log_progress(self, iteration: int, value: float, **extra: float) -> None:
        if not self.verbose or iteration % self.log_every:
            return
        details = "".join(f", {k}={v:.6e}" for k, v in extra.items())
        logger.info(
            "%s iter %4d: val=%.6e%s", type(self).__name__, iteration, value, details
        )

    @staticmethod
    def _result(
        params: jax.Array,
        value: float,
        trace: list[float],
        iterations: int,
        status: Status,
    ) -> OptResult:
        return OptResult(
            params=params,
            final_value=value,
            trace=jnp.asarray(trace),
            success=status is Status.CONVERGED,
            iterations=iterations,
            status=status,
        )

    @staticmethod
    def _fail(
        error: OptimizationError,
        status: Status,
        params: jax.Array,
        value: float,
        trace: list[float],
        iterations: int,
    ) -> OptimizationError:
        """Attach the last valid state to `error` and return it for re-raising."""
        if error.result is None:
            error.result = Solver._result(params, value, trace, iterations, status)
        return error

    @abstractmethod
    def minimize(
        self,
        fun: FitFunction | Callable[..., jax.Array],
        penalty: Penalty,
        tuning: Any,
        init_params: Any,
        data: tuple[Any, ...] = (),
        labels: Labels | None = None,
        max_iter: int | None = None,
    ) -> OptResult:
        """Minimize `fit(params) + penalty(params)`.

        Args:
            fun: A FitFunction, or a function `f(params, *data) -> scalar` that
                is differentiated with JAX.
            penalty: The penalty to add to the fit.
            tuning: Tuning record matching the penalty.
            init_params: Initial 1-D parameter vector. It is copied, never mutated.
            data: Extra arguments for `fun` when it is a plain function.
            labels: Parameter labels used in diagnostics.
            max_iter: Override the instance's max_iter.

        Returns:
            The optimization result.
        """
        pass

    def __repr__(self) -> str:
        attrs = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({attrs})"
