"""One-dimensional subproblems solved by region enumeration.

Coordinate descent updates one parameter at a time. For parameter j the
update `z` minimizes

    z * g_j + z * (H d)_j + 0.5 * z^2 * H_jj + p(x_j + d_j + z)

where `p` is the penalty of coordinate j. Non-convex penalties are only
piecewise convex, so every penalty reports a finite set of candidates (the
best point of each convex region) and the exact subproblem value decides
between them. Proximal operators of non-convex penalties reuse the same
machinery with the quadratic `0.5 * (v - target)^2 / step`.
"""

from __future__ import annotations

import logging
import math
import warnings
from typing import Callable, Iterable, NamedTuple

from .errors import CurvaturePerturbationWarning, NoMinimumFound
from .tuning import CoordinateTuning

logger = logging.getLogger(__name__)

CURVATURE_EPSILON = 1e-3
"""Added on top of the penalty's concavity when a subproblem is not convex.

This is an empirical workaround: the perturbed subproblem is convex in every
region, but its minimizer is not guaranteed to be a minimizer of the original
one.
"""


def divide(numerator: float, denominator: float) -> float:
    """Float division returning nan instead of raising on a zero denominator."""
    if denominator == 0:
        return math.nan
    return numerator / denominator


def clip(value: float, lower: float, upper: float) -> float:
    """Clip to `[lower, upper]`, passing nan through so it can be discarded."""
    if math.isnan(value):
        return value
    return min(max(value, lower), upper)


def outside(value: float, bound: float) -> float:
    """Push `value` out of `(-bound, bound)` on its own side of zero."""
    if math.isnan(value):
        return value
    if value < 0:
        return min(value, -bound)
    return max(value, bound)


def soft_threshold(value: float, threshold: float) -> float:
    return math.copysign(max(abs(value) - threshold, 0.0), value)


def quadratic_roots(a: float, b: float, c: float) -> list[float]:
    """Real roots of `a v^2 + b v + c`; empty if there are none."""
    if a == 0:
        return []
    discriminant = b * b - 4.0 * a * c
    if not discriminant >= 0:
        return []
    root = math.sqrt(discriminant)
    return [(-b + root) / (2.0 * a), (-b - root) / (2.0 * a)]


class SubproblemContext(NamedTuple):
    """State of one coordinate in one inner iteration.

    Attributes:
        index: Position of the coordinate in the parameter vector.
        parameter: Parameter value x_j from the outer iteration.
        direction: Current step direction d_j.
        gradient: Gradient entry g_j of the smooth part.
        hessian_direction: Entry j of the Hessian-direction product (H d)_j.
        hessian_diagonal: Hessian diagonal entry H_jj.
        lambda_: Regularization strength of the coordinate.
        theta: Shape parameter of the coordinate.
        alpha: Elastic-net mixing of the coordinate.
        weight: Coordinate weight; 0 leaves the coordinate unregularized.
    """

    index: int
    parameter: float
    direction: float
    gradient: float
    hessian_direction: float
    hessian_diagonal: float
    lambda_: float
    theta: float
    alpha: float
    weight: float

    @classmethod
    def build(
        cls,
        index: int,
        parameter: float,
        direction: float,
        gradient: float,
        hessian_direction: float,
        hessian_diagonal: float,
        tuning: CoordinateTuning,
    ) -> SubproblemContext:
        return cls(
            index=index,
            parameter=parameter,
            direction=direction,
            gradient=gradient,
            hessian_direction=hessian_direction,
            hessian_diagonal=hessian_diagonal,
            lambda_=tuning.lambda_,
            theta=tuning.theta,
            alpha=tuning.alpha,
            weight=tuning.weight,
        )

    @property
    def strength(self) -> float:
        return self.lambda_ * self.weight

    def probe(self, z: float) -> float:
        """Parameter value after applying the update `z`."""
        return self.parameter + self.direction + z

    def quadratic(self, z: float) -> float:
        return (
            z * self.gradient
            + z * self.hessian_direction
            + 0.5 * (z * z) * self.hessian_diagonal
        )

    def newton_step(self) -> float:
        return divide(-(self.gradient + self.hessian_direction), self.hessian_diagonal)


def select_minimum(
    candidates: Iterable[float],
    objective: Callable[[float], float],
    description: str = "subproblem",
) -> float:
    """Return the finite candidate with the smallest objective value.

    Non-finite candidates are discarded. Ties keep the earliest candidate.

    Raises:
        NoMinimumFound: If no candidate is finite.
    """
    best = None
    best_value = math.inf
    for candidate in candidates:
        if not math.isfinite(candidate):
            continue
        value = objective(candidate)
        if best is None or value < best_value:
            best, best_value = candidate, value
    if best is None:
        raise NoMinimumFound(f"Found no finite minimum for the {description}.")
    return best


def solve_coordinate(penalty, ctx: SubproblemContext, label: str | None = None) -> float:
    """Solve the coordinate subproblem of `penalty` exactly.

    Args:
        penalty: Penalty providing `coordinate_value`, `candidates` and `concavity`.
        ctx: Subproblem state of the coordinate.
        label: Parameter label used in diagnostics.

    Returns:
        The update `z` for the step direction of the coordinate.

    Raises:
        NoMinimumFound: If every candidate is non-finite, which points to a
            degenerate Hessian approximation.
    """
    name = label if label is not None else str(ctx.index)
    if ctx.weight == 0:
        z = ctx.newton_step()
        if not math.isfinite(z):
            raise NoMinimumFound(
                f"Newton step for parameter {name} is not finite "
                f"(H_jj = {ctx.hessian_diagonal})."
            )
        return z

    lam = ctx.strength
    concavity = penalty.concavity(lam, ctx.theta, ctx.alpha)
    if concavity > 0 and ctx.hessian_diagonal - concavity <= 0:
        warnings.warn(
            f"The subproblem of parameter {name} is not positive definite "
            f"(H_jj = {ctx.hessian_diagonal:.6g}). Raising H_jj by "
            f"{concavity:.6g} + {CURVATURE_EPSILON}; this may fail, consider "
            "the proximal-gradient engine for this penalty.",
            CurvaturePerturbationWarning,
            stacklevel=3,
        )
        ctx = ctx._replace(
            hessian_diagonal=ctx.hessian_diagonal + concavity + CURVATURE_EPSILON
        )

    # Candidates are reported for v = x_j + d_j + z, where the quadratic part
    # reads 0.5 * a * v^2 + b * v up to a constant.
    a = ctx.hessian_diagonal
    base = ctx.parameter + ctx.direction
    b = ctx.gradient + ctx.hessian_direction - a * base
    candidates = [v - base for v in penalty.candidates(a, b, lam, ctx.theta, ctx.alpha)]

    def objective(z: float) -> float:
        return ctx.quadratic(z) + penalty.coordinate_value(
            ctx.probe(z), lam, ctx.theta, ctx.alpha
        )

    z = select_minimum(candidates, objective, f"subproblem of parameter {name}")
    logger.debug("parameter %s: %d candidates, z=%.6g", name, len(candidates), z)
    return z


def proximal_coordinate(
    penalty, target: float, step: float, tuning: CoordinateTuning
) -> float:
    """Proximal operator of one coordinate by region enumeration."""
    if not tuning.penalized:
        return target
    lam = tuning.strength

    def objective(v: float) -> float:
        diff = v - target
        return 0.5 * diff * diff / step + penalty.coordinate_value(
            v, lam, tuning.theta, tuning.alpha
        )

    candidates = penalty.candidates(
        divide(1.0, step), divide(-target, step), lam, tuning.theta, tuning.alpha
    )
    return select_minimum(candidates, objective, "proximal operator")
