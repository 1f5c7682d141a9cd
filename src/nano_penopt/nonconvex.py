r"""Non-convex shrinkage penalties.

Each penalty is piecewise convex. `candidates` returns the minimizer of
$\frac{1}{2} a v^2 + b v + p(v)$ within every region (clipped so it never
leaves the region it was derived for); the exact objective then decides
between them. When a region is concave for the given `a`, its end points are
returned instead, because a concave function attains its minimum over an
interval at one of the ends.
"""

from __future__ import annotations

import math
from abc import abstractmethod

import jax
import jax.numpy as jnp

from .errors import ConfigurationError
from .penalties import Penalty
from .subproblem import clip, divide, outside, quadratic_roots
from .tuning import TuningNonconvex, as_vector


class _NonconvexPenalty(Penalty):
    tuning_type = TuningNonconvex
    min_theta = 0.0

    def validate(self, tuning, n_params: int) -> None:
        super().validate(tuning, n_params)
        theta = as_vector(tuning.theta, n_params, "theta")
        if bool(jnp.any(theta <= self.min_theta)):
            raise ConfigurationError(
                f"theta of the {self.kind} penalty must be > {self.min_theta}."
            )

    def _strengths(
        self, tuning: TuningNonconvex, n_params: int
    ) -> tuple[jax.Array, jax.Array, jax.Array]:
        lam = as_vector(tuning.lambda_, n_params, "lambda_")
        theta = as_vector(tuning.theta, n_params, "theta")
        weights = as_vector(tuning.weights, n_params, "weights")
        return lam * weights, theta, weights

    @abstractmethod
    def _contributions(
        self, abs_params: jax.Array, lam: jax.Array, theta: jax.Array
    ) -> jax.Array:
        """Elementwise penalty of `abs_params`; `lam` includes the weights."""

    def value(self, params, tuning, labels=None) -> float:
        params = jnp.asarray(params)
        lam, theta, weights = self._strengths(tuning, params.shape[0])
        contrib = self._contributions(jnp.abs(params), lam, theta)
        return float(jnp.sum(jnp.where(weights == 0, 0.0, contrib)))


class Mcp(_NonconvexPenalty):
    r"""Minimax concave penalty.

    $$p(x_j) = \begin{cases}
    \lambda |x_j| - x_j^2/(2\theta) & \text{if } |x_j| \leq \theta\lambda\\
    \theta\lambda^2/2 & \text{if } |x_j| > \lambda\theta
    \end{cases}$$

    where $\theta > 1$.

    Zhang, C.-H. (2010). Nearly unbiased variable selection under minimax concave
    penalty. The Annals of Statistics, 38(2), 894-942.
    """

    kind = "mcp"
    min_theta = 1.0

    def _contributions(self, abs_params, lam, theta):
        bowl = lam * abs_params - abs_params**2 / (2.0 * theta)
        plateau = theta * lam**2 / 2.0
        return jnp.where(abs_params <= lam * theta, bowl, plateau)

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        probe = abs(value)
        if probe <= theta * lam:
            return lam * probe - (probe * probe) / (2.0 * theta)
        return theta * lam * lam / 2.0

    def concavity(self, lam, theta, alpha) -> float:
        return 1.0 / theta

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        bound = lam * theta
        curvature = a - 1.0 / theta
        if curvature > 0:
            # bowl, v >= 0: a v + b + lam - v / theta = 0
            positive = clip(divide(-(b + lam), curvature), 0.0, bound)
            # bowl, v <= 0: a v + b - lam - v / theta = 0
            negative = clip(divide(-(b - lam), curvature), -bound, 0.0)
            bowl = [positive, negative]
        else:
            bowl = [0.0, bound, -bound]
        # plateau, |v| >= lam * theta: a v + b = 0
        plateau = outside(divide(-b, a), bound)
        return bowl + [plateau]


class Scad(_NonconvexPenalty):
    r"""Smoothly clipped absolute deviation penalty.

    $$p(x_j) = \begin{cases}
    \lambda |x_j| & \text{if } |x_j| \leq \lambda\\
    \frac{2\theta\lambda|x_j| - x_j^2 - \lambda^2}{2(\theta - 1)} & \text{if } \lambda < |x_j| \leq \theta\lambda\\
    (\theta + 1)\lambda^2/2 & \text{if } |x_j| > \theta\lambda
    \end{cases}$$

    where $\theta > 2$.

    Fan, J., & Li, R. (2001). Variable selection via nonconcave penalized
    likelihood and its oracle properties. Journal of the American Statistical
    Association, 96(456), 1348-1360.
    """

    kind = "scad"
    min_theta = 2.0

    def _contributions(self, abs_params, lam, theta):
        linear = lam * abs_params
        bowl = (2.0 * theta * lam * abs_params - abs_params**2 - lam**2) / (
            2.0 * (theta - 1.0)
        )
        plateau = (theta + 1.0) * lam**2 / 2.0
        return jnp.where(
            abs_params <= lam,
            linear,
            jnp.where(abs_params <= theta * lam, bowl, plateau),
        )

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        probe = abs(value)
        if probe <= lam:
            return lam * probe
        if probe <= theta * lam:
            return (2.0 * theta * lam * probe - probe * probe - lam * lam) / (
                2.0 * (theta - 1.0)
            )
        return (theta + 1.0) * lam * lam / 2.0

    def concavity(self, lam, theta, alpha) -> float:
        return 1.0 / (theta - 1.0)

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        bound = lam * theta
        concavity = 1.0 / (theta - 1.0)
        slope = bound * concavity
        result = [
            clip(divide(-(b + lam), a), 0.0, lam),
            clip(divide(-(b - lam), a), -lam, 0.0),
        ]
        curvature = a - concavity
        if curvature > 0:
            # lam < v <= theta * lam: a v + b + (theta * lam - v) / (theta - 1) = 0
            result.append(clip(divide(-(b + slope), curvature), lam, bound))
            result.append(clip(divide(-(b - slope), curvature), -bound, -lam))
        else:
            result.extend([lam, bound, -lam, -bound])
        result.append(outside(divide(-b, a), bound))
        return result


class Lsp(_NonconvexPenalty):
    r"""Log-sum penalty $\lambda \log(1 + |x_j| / \theta)$ with $\theta > 0$.

    Candes, E. J., Wakin, M. B., & Boyd, S. P. (2008). Enhancing Sparsity by
    Reweighted l1 Minimization. Journal of Fourier Analysis and Applications,
    14(5-6), 877-905.
    """

    kind = "lsp"

    def _contributions(self, abs_params, lam, theta):
        return lam * jnp.log1p(abs_params / theta)

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        return lam * math.log1p(abs(value) / theta)

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        # Stationary points solve a quadratic on either side of the kink at 0.
        positive = quadratic_roots(a, a * theta + b, b * theta + lam)
        negative = quadratic_roots(a, -(a * theta - b), -(b * theta - lam))
        return (
            [0.0]
            + [v for v in positive if v > 0]
            + [v for v in negative if v < 0]
        )


class CappedL1(_NonconvexPenalty):
    r"""Capped-L1 penalty $\lambda \min(|x_j|, \theta)$ with $\theta > 0$.

    Zhang, T. (2010). Analysis of Multi-stage Convex Relaxation for Sparse
    Regularization. Journal of Machine Learning Research, 11, 1081-1107.
    """

    kind = "cappedL1"

    def _contributions(self, abs_params, lam, theta):
        return lam * jnp.minimum(abs_params, theta)

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        return lam * min(abs(value), theta)

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        return [
            clip(divide(-(b + lam), a), 0.0, theta),
            clip(divide(-(b - lam), a), -theta, 0.0),
            outside(divide(-b, a), theta),
        ]
