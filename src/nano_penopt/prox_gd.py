from __future__ import annotations

import logging
import math
import warnings
from typing import Any, Callable

import jax
import jax.numpy as jnp

from .base import Solver
from .errors import (
    ConfigurationError,
    NoMinimumFound,
    StepSizeCollapse,
    StepSizeShrinkWarning,
)
from .fit import FitFunction
from .penalties import Penalty
from .schedulers import StepSizePolicy, as_step_policy
from .types import Convergence, Labels, OptResult, Status

logger = logging.getLogger(__name__)

MAJORIZER_RTOL = 1e-12
"""Relative slack on the majorizer test, absorbing rounding in exact fits."""


class ProxGD(Solver):
    r"""Proximal Gradient Descent (ProxGD, ISTA) engine.

    Minimizes an objective function $F$ that can be written as:

    $$F=f+p$$

    where $f$ is a smooth fit function and $p$ is a penalty exposing a
    proximal operator. The penalty may be non-convex (mcp, scad, lsp,
    capped-L1); its proximal operator is then found by region enumeration.

    The iterates are updated as follows:

    $$
    \theta_{t+1} := \operatorname{prox}_{\eta_{t}p}(\theta_{t}- \eta_{t} \nabla_\theta f(\theta_{t}))
    $$

    where $\eta_t$ starts from the step-size policy and is shrunk until the
    quadratic majorizer

    $$
    f(\theta_{t+1}) \leq f(\theta_t) + \nabla f(\theta_t)^\top(\theta_{t+1} - \theta_t)
    + \frac{1}{2\eta_t}\|\theta_{t+1} - \theta_t\|^2_2
    $$

    holds. With `accelerate=True` the gradient step is taken from the FISTA
    extrapolation point instead of $\theta_t$.

    References:
        Beck, A., & Teboulle, M. (2009). A Fast Iterative Shrinkage-Thresholding
        Algorithm for Linear Inverse Problems. SIAM Journal on Imaging Sciences,
        2(1), 183-202.
        Gong, P., Zhang, C., Lu, Z., Huang, J., & Ye, J. (2013). A General
        Iterative Shrinkage and Thresholding Algorithm for Non-convex Regularized
        Optimization Problems. ICML.
    """

    def __init__(
        self,
        step_size: float | Callable[[int], float] | StepSizePolicy = 1.0,
        max_iter: int = 10000,
        max_backtrack: int = 1000,
        accelerate: bool = False,
        **kwargs,
    ) -> None:
        r"""
        Args:
            step_size: Step-size input. Can be a float (`ConstantStep`), a
                callable `schedule(iteration) -> step`, or a StepSizePolicy.
            max_iter: Maximum number of iterations.
            max_backtrack: Maximum number of step-size shrinks per iteration.
            accelerate: Use FISTA momentum.
            **kwargs: Base solver arguments (tol, convergence, verbose, log_every).
        """
        super().__init__(max_iter, **kwargs)
        if max_backtrack < 1:
            raise ConfigurationError("max_backtrack must be >= 1")
        self.step_size = as_step_policy(step_size)
        self.max_backtrack = max_backtrack
        self.accelerate = accelerate

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
        r"""Minimize the penalized objective using Proximal Gradient Descent.

        Args:
            fun: A FitFunction, or a smooth function `f(params, *data) -> scalar`.
            penalty: Penalty with a proximal operator.
            tuning: Tuning record matching the penalty.
            init_params: Initial 1-D parameter vector (copied).
            data: Extra arguments for `fun` when it is a plain function.
            labels: Parameter labels used in diagnostics.
            max_iter: Override the instance's max_iter. If None, uses
                `self.max_iter`.

        Returns:
            OptResult containing final parameters, final objective, trace and status.
            Hitting the iteration cap is reported through
            `status=Status.MAX_ITERATIONS_REACHED`, not raised.

        Raises:
            ConfigurationError: If the tuning record or the options are invalid.
            StepSizeCollapse: If backtracking exceeds `max_backtrack` shrinks.
                The last valid iterate is attached as `error.result`.
            NoMinimumFound: If a proximal operator finds no finite candidate.
        """
        iterations = max_iter if max_iter is not None else self.max_iter
        if iterations < 1:
            raise ConfigurationError("max_iter must be >= 1")
        fit, params, labels = self._prepare(fun, penalty, tuning, init_params, data, labels)

        fit_val, grads = fit.value_and_gradient(params)
        fit_val = float(fit_val)
        value = fit_val + penalty.value(params, tuning, labels)
        if not math.isfinite(value):
            raise ConfigurationError(
                f"Objective is not finite at the initial parameters ({value})."
            )

        if self.verbose:
            logger.info(
                "ProxGD: n=%d, penalty=%s, policy=%r",
                params.shape[0],
                penalty.kind,
                self.step_size,
            )

        prev_params = params
        mom_t = 1.0
        last_step = None
        s = y = None
        warned = False
        trace = []
        status = Status.MAX_ITERATIONS_REACHED
        done = 0

        for it in range(iterations):
            next_t = mom_t
            point, point_val, point_grads = params, fit_val, grads
            if self.accelerate:
                next_t = (1.0 + math.sqrt(1.0 + 4.0 * mom_t**2)) / 2.0
                beta = (mom_t - 1.0) / next_t
                y_params = params + beta * (params - prev_params)
                y_val, y_grads = fit.value_and_gradient(y_params)
                y_val = float(y_val)
                if math.isfinite(y_val):
                    point, point_val, point_grads = y_params, y_val, y_grads
                else:
                    next_t = 1.0

            step = self.step_size.initial_step(it, last_step, s, y)
            for _ in range(self.max_backtrack):
                try:
                    candidate = penalty.proximal(
                        point - step * point_grads, step, tuning
                    )
                except NoMinimumFound as err:
                    raise self._fail(
                        err, Status.NO_MINIMUM_FOUND, params, value, trace, done
                    )
                diff = candidate - point
                cand_val, cand_grads = fit.value_and_gradient(candidate)
                cand_val = float(cand_val)
                majorizer = (
                    point_val
                    + float(jnp.vdot(point_grads, diff))
                    + float(jnp.vdot(diff, diff)) / (2.0 * step)
                )
                slack = MAJORIZER_RTOL * max(1.0, abs(majorizer))
                if math.isfinite(cand_val) and cand_val <= majorizer + slack:
                    break
                logger.debug("iter %d: shrinking step %.6e", it, step)
                if not warned:
                    warnings.warn(
                        f"Step size {step:.6g} violated the quadratic majorizer "
                        "and was shrunk.",
                        StepSizeShrinkWarning,
                        stacklevel=2,
                    )
                    warned = True
                step = self.step_size.shrink_step(step)
            else:
                raise self._fail(
                    StepSizeCollapse(
                        f"No sufficient decrease after {self.max_backtrack} "
                        f"step-size shrinks in iteration {it} (last step {step:.6g})."
                    ),
                    Status.STEP_SIZE_COLLAPSE,
                    params,
                    value,
                    trace,
                    done,
                )

            new_value = cand_val + penalty.value(candidate, tuning, labels)
            s = candidate - params
            y = cand_grads - grads
            prev_params, params = params, candidate
            fit_val, grads = cand_val, cand_grads
            prev_value, value = value, new_value
            last_step = step
            mom_t = next_t
            trace.append(value)
            done = it + 1

            self._log_progress(it, value, step=step)

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


def prox_gd(
    fun: FitFunction | Callable[..., jax.Array],
    penalty: Penalty,
    tuning: Any,
    init_params: Any,
    data: tuple[Any, ...] = (),
    *,
    labels: Labels | None = None,
    step_size: float | Callable[[int], float] | StepSizePolicy = 1.0,
    max_iter: int = 10000,
    max_backtrack: int = 1000,
    accelerate: bool = False,
    tol: float = 1e-8,
    convergence: Convergence | str = Convergence.OBJECTIVE,
    verbose: bool = False,
) -> OptResult:
    """Run proximal gradient descent.

    Args:
        fun: FitFunction or smooth function `f(params, *data) -> value`.
        penalty: Penalty with a proximal operator.
        tuning: Tuning record matching the penalty.
        init_params: Initial parameters.
        data: Tuple of extra arguments for `fun`.
        labels: Parameter labels used in diagnostics.
        step_size: Step size (constant, schedule, or StepSizePolicy).
        max_iter: Number of iterations to run at most.
        max_backtrack: Step-size shrinks allowed per iteration.
        accelerate: Use FISTA momentum.
        tol: Convergence tolerance.
        convergence: `"objective"` or `"parameters"`.
        verbose: Log progress during optimization.

    Returns:
        OptResult with final parameters, value, trace and status.
    """
    solver = ProxGD(
        step_size=step_size,
        max_iter=max_iter,
        max_backtrack=max_backtrack,
        accelerate=accelerate,
        tol=tol,
        convergence=convergence,
        verbose=verbose,
    )
    return solver.minimize(fun, penalty, tuning, init_params, data, labels)
