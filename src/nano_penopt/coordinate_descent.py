from __future__ import annotations

import logging
import math
from typing import Any, Callable

import jax
import jax.numpy as jnp

from .base import Solver
from .errors import ConfigurationError, NoMinimumFound, StepSizeCollapse
from .fit import FitFunction
from .penalties import Penalty
from .subproblem import SubproblemContext
from .tuning import CoordinateTuning
from .types import Convergence, Labels, OptResult, Status

logger = logging.getLogger(__name__)

HESSIAN_MODES = ("auto", "exact", "bfgs")

LINE_SEARCH_RTOL = 1e-12
"""Relative slack on the sufficient-decrease test, absorbing rounding near the optimum."""


def bfgs_update(hessian: jax.Array, s: jax.Array, y: jax.Array) -> jax.Array:
    """Cautious BFGS update of a Hessian approximation.

    The update is skipped when the curvature condition `y's > 0` fails, which
    keeps the approximation positive definite.

    Args:
        hessian: Current approximation.
        s: Step between the last two iterates.
        y: Difference of the gradients at the last two iterates.
    """
    sy = float(jnp.vdot(s, y))
    if not sy > 0:
        return hessian
    hs = hessian @ s
    shs = float(jnp.vdot(s, hs))
    if not shs > 0:
        return hessian
    return hessian - jnp.outer(hs, hs) / shs + jnp.outer(y, y) / sy


class CoordinateDescent(Solver):
    r"""Coordinate-descent engine with quadratic approximations (glmnet style).

    Every outer iteration builds the model

    $$Q(d) = g^\top d + \frac{1}{2} d^\top H d$$

    of the fit around the current iterate $x_k$, and minimizes
    $Q(d) + p(x_k + d)$ with cyclic coordinate sweeps in fixed index order.
    Each coordinate is updated by the penalty's exact subproblem solver while
    the other coordinates of $d$ stay at their latest value. The direction is
    then scaled by the first $t = \text{step\_shrink}^k$ satisfying

    $$F(x_k + t d) - F(x_k) \leq \sigma t \left(g^\top d + \gamma d^\top H d
    + p(x_k + d) - p(x_k)\right).$$

    $H$ is the exact Hessian of the fit function or a BFGS approximation.

    References:
        Friedman, J., Hastie, T., & Tibshirani, R. (2010). Regularization Paths for
        Generalized Linear Models via Coordinate Descent. Journal of Statistical
        Software, 33(1).
        Yuan, G.-X., Ho, C.-H., & Lin, C.-J. (2012). An improved GLMNET for
        l1-regularized logistic regression. JMLR, 13, 1999-2030.
    """

    def __init__(
        self,
        max_iter: int = 1000,
        max_inner: int = 1000,
        max_line_search: int = 500,
        inner_tol: float = 1e-10,
        step_shrink: float = 0.9,
        sigma: float = 1e-5,
        gamma: float = 0.0,
        hessian: str = "auto",
        initial_hessian: float | jax.Array = 1.0,
        **kwargs,
    ) -> None:
        """
        Args:
            max_iter: Maximum number of outer iterations.
            max_inner: Maximum number of coordinate sweeps per outer iteration.
            max_line_search: Maximum number of line-search trials.
            inner_tol: Sweeps stop once `max_j H_jj * z_j^2` falls below this value.
            step_shrink: Line-search factor in (0, 1).
            sigma: Sufficient-decrease constant in (0, 1).
            gamma: Weight of `d'Hd` in the sufficient-decrease bound, in [0, 1).
            hessian: `"exact"` uses `fit.hessian`, `"bfgs"` a BFGS approximation,
                `"auto"` the exact Hessian when the fit function provides one.
            initial_hessian: Start of the BFGS approximation, a scalar
                (multiple of the identity) or a matrix.
            **kwargs: Base solver arguments (tol, convergence, verbose, log_every).
        """
        super().__init__(max_iter, **kwargs)
        if max_inner < 1:
            raise ConfigurationError("max_inner must be >= 1")
        if max_line_search < 1:
            raise ConfigurationError("max_line_search must be >= 1")
        if not inner_tol >= 0:
            raise ConfigurationError("inner_tol must be >= 0")
        if not 0 < step_shrink < 1:
            raise ConfigurationError("step_shrink must be in (0, 1)")
        if not 0 < sigma < 1:
            raise ConfigurationError("sigma must be in (0, 1)")
        if not 0 <= gamma < 1:
            raise ConfigurationError("gamma must be in [0, 1)")
        if hessian not in HESSIAN_MODES:
            raise ConfigurationError(
                f"Unknown hessian mode {hessian!r}. "
                f"Supported are: {', '.join(HESSIAN_MODES)}."
            )
        self.max_inner = max_inner
        self.max_line_search = max_line_search
        self.inner_tol = inner_tol
        self.step_shrink = step_shrink
        self.sigma = sigma
        self.gamma = gamma
        self.hessian = hessian
        self.initial_hessian = initial_hessian

    def _use_exact_hessian(self, fit: FitFunction) -> bool:
        if self.hessian == "exact" and not fit.has_hessian:
            raise ConfigurationError(
                f"hessian='exact' requires a fit function with a Hessian; "
                f"{fit!r} has none."
            )
        return self.hessian == "exact" or (self.hessian == "auto" and fit.has_hessian)

    def _start_hessian(self, n_params: int, dtype) -> jax.Array:
        initial = jnp.asarray(self.initial_hessian, dtype=dtype)
        if initial.ndim == 0:
            return initial * jnp.eye(n_params, dtype=dtype)
        return initial

    def _step_direction(
        self,
        params: jax.Array,
        grads: jax.Array,
        hessian: jax.Array,
        penalty: Penalty,
        coords: list[CoordinateTuning],
        labels: list[str],
    ) -> list[float]:
        """Minimize the quadratic model plus penalty by cyclic coordinate sweeps."""
        x = jax.device_get(params).tolist()
        g = jax.device_get(grads).tolist()
        h = jax.device_get(hessian).tolist()
        n_params = len(x)
        direction = [0.0] * n_params
        hessian_direction = [0.0] * n_params

        for sweep in range(self.max_inner):
            largest = 0.0
            for j in range(n_params):
                ctx = SubproblemContext.build(
                    j,
                    x[j],
                    direction[j],
                    g[j],
                    hessian_direction[j],
                    h[j][j],
                    coords[j],
                )
                z = penalty.solve_subproblem(ctx, labels[j])
                if z == 0:
                    continue
                direction[j] += z
                for k in range(n_params):
                    hessian_direction[k] += h[k][j] * z
                largest = max(largest, h[j][j] * z * z)
            if largest < self.inner_tol:
                break
        logger.debug("inner loop stopped after %d sweeps", sweep + 1)
        return direction

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
        """Minimize the penalized objective by coordinate descent.

        Args:
            fun: A FitFunction, or a smooth function `f(params, *data) -> scalar`.
            penalty: Penalty with a coordinate subproblem solver.
            tuning: Tuning record matching the penalty.
            init_params: Initial 1-D parameter vector (copied).
            data: Extra arguments for `fun` when it is a plain function.
            labels: Parameter labels used in diagnostics.
            max_iter: Override the instance's max_iter.

        Returns:
            OptResult containing final parameters, final objective, trace and status.

        Raises:
            ConfigurationError: If the tuning record, options or Hessian shape
                are invalid.
            StepSizeCollapse: If the line search finds no sufficient decrease.
                The last valid iterate is attached as `error.result`.
            NoMinimumFound: If a coordinate subproblem has no finite candidate,
                usually because of a degenerate Hessian.
        """
        iterations = max_iter if max_iter is not None else self.max_iter
        if iterations < 1:
            raise ConfigurationError("max_iter must be >= 1")
        fit, params, labels = self._prepare(fun, penalty, tuning, init_params, data, labels)
        n_params = params.shape[0]
        coords = penalty.coordinate_tunings(tuning, n_params)
        exact = self._use_exact_hessian(fit)

        fit_val, grads = fit.value_and_gradient(params)
        penalty_val = penalty.value(params, tuning, labels)
        value = float(fit_val) + penalty_val
        if not math.isfinite(value):
            raise ConfigurationError(
                f"Objective is not finite at the initial parameters ({value})."
            )
        if exact:
            hessian = jnp.asarray(fit.hessian(params))
        else:
            hessian = self._start_hessian(n_params, params.dtype)
        if hessian.shape != (n_params, n_params):
            raise ConfigurationError(
                f"Hessian must have shape {(n_params, n_params)}, got {hessian.shape}."
            )

        if self.verbose:
            logger.info(
                "CoordinateDescent: n=%d, penalty=%s, hessian=%s",
                n_params,
                penalty.kind,
                "exact" if exact else "bfgs",
            )

        trace = []
        status = Status.MAX_ITERATIONS_REACHED
        done = 0

        for it in range(iterations):
            try:
                direction = self._step_direction(
                    params, grads, hessian, penalty, coords, labels
                )
            except NoMinimumFound as err:
                raise self._fail(
                    err, Status.NO_MINIMUM_FOUND, params, value, trace, done
                )
            direction = jnp.asarray(direction, dtype=params.dtype)

            decrease = (
                float(jnp.vdot(grads, direction))
                + self.gamma * float(jnp.vdot(direction, hessian @ direction))
                + penalty.value(params + direction, tuning, labels)
                - penalty_val
            )
            slack = LINE_SEARCH_RTOL * max(1.0, abs(value))
            t = 1.0
            for _ in range(self.max_line_search):
                candidate = params + t * direction
                cand_fit, cand_grads = fit.value_and_gradient(candidate)
                cand_penalty = penalty.value(candidate, tuning, labels)
                cand_value = float(cand_fit) + cand_penalty
                if (
                    math.isfinite(cand_value)
                    and cand_value - value <= self.sigma * t * decrease + slack
                ):
                    break
                logger.debug("iter %d: line search rejected t=%.6e", it, t)
                t *= self.step_shrink
            else:
                raise self._fail(
                    StepSizeCollapse(
                        f"Line search found no sufficient decrease after "
                        f"{self.max_line_search} trials in iteration {it}."
                    ),
                    Status.STEP_SIZE_COLLAPSE,
                    params,
                    value,
                    trace,
                    done,
                )

            if exact:
                hessian = jnp.asarray(fit.hessian(candidate))
            else:
                hessian = bfgs_update(hessian, candidate - params, cand_grads - grads)
            prev_params, params = params, candidate
            grads = cand_grads
            penalty_val = cand_penalty
            prev_value, value = value, cand_value
            trace.append(value)
            done = it + 1

            self._log_progress(it, value, t=t)

            if self._has_converged(prev_value, value, prev_params, params):
                if self.verbose:
                    logger.info(
                        "Converged at iteration %d (%s change < %s)",
                        it,
                        self.convergence.value,
                        self.tol,
                    )
                status = Status.CONVERGED
                break

        return self._result(params, value, trace, done, status)


def coordinate_descent(
    fun: FitFunction | Callable[..., jax.Array],
    penalty: Penalty,
    tuning: Any,
    init_params: Any,
    data: tuple[Any, ...] = (),
    *,
    labels: Labels | None = None,
    max_iter: int = 1000,
    max_inner: int = 1000,
    max_line_search: int = 500,
    inner_tol: float = 1e-10,
    hessian: str = "auto",
    initial_hessian: float | jax.Array = 1.0,
    tol: float = 1e-8,
    convergence: Convergence | str = Convergence.OBJECTIVE,
    verbose: bool = False,
) -> OptResult:
    """Run coordinate descent with quadratic approximations.

    Args:
        fun: FitFunction or smooth function `f(params, *data) -> value`.
        penalty: Penalty with a coordinate subproblem solver.
        tuning: Tuning record matching the penalty.
        init_params: Initial parameters.
        data: Tuple of extra arguments for `fun`.
        labels: Parameter labels used in diagnostics.
        max_iter: Number of outer iterations to run at most.
        max_inner: Coordinate sweeps per outer iteration at most.
        max_line_search: Line-search trials per outer iteration at most.
        inner_tol: Inner-loop tolerance.
        hessian: `"auto"`, `"exact"` or `"bfgs"`.
        initial_hessian: Start of the BFGS approximation.
        tol: Convergence tolerance.
        convergence: `"objective"` or `"parameters"`.
        verbose: Log progress during optimization.

    Returns:
        OptResult with final parameters, value, trace and status.
    """
    solver = CoordinateDescent(
        max_iter=max_iter,
        max_inner=max_inner,
        max_line_search=max_line_search,
        inner_tol=inner_tol,
        hessian=hessian,
        initial_hessian=initial_hessian,
        tol=tol,
        convergence=convergence,
        verbose=verbose,
    )
    return solver.minimize(fun, penalty, tuning, init_params, data, labels)
