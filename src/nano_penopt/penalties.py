r"""Penalty abstraction and the convex penalties.

Every penalty is a stateless policy object: parameter vectors and tuning
records are owned by the caller and passed into each call.

- `value` and, for smooth penalties, `gradient` are evaluated on whole
  vectors with `jax.numpy`.
- `proximal` is used by the proximal-gradient engine.
- `solve_subproblem` is used by the coordinate-descent engine.

Both per-coordinate paths are built on three scalar methods: `coordinate_value`,
`candidates` and `concavity` (see `nano_penopt.subproblem`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import jax
import jax.numpy as jnp

from .errors import ConfigurationError
from .subproblem import (
    SubproblemContext,
    divide,
    proximal_coordinate,
    soft_threshold,
    solve_coordinate,
)
from .tuning import CoordinateTuning, TuningEnet, as_vector
from .types import Labels


class Penalty(ABC):
    """Abstract base class for all penalties."""

    kind: str = ""
    smooth: bool = False
    tuning_type: type | None = None

    def validate(self, tuning: Any, n_params: int) -> None:
        """Check that `tuning` is a valid record for `n_params` parameters.

        Raises:
            ConfigurationError: If the record has the wrong type or invalid values.
        """
        if self.tuning_type is not None and not isinstance(tuning, self.tuning_type):
            raise ConfigurationError(
                f"{self.kind} penalty expects {self.tuning_type.__name__}, "
                f"got {type(tuning).__name__}."
            )
        tuning.validate(n_params)

    def coordinate_tunings(self, tuning: Any, n_params: int) -> list[CoordinateTuning]:
        return tuning.coordinates(n_params)

    @abstractmethod
    def value(
        self, params: jax.Array, tuning: Any, labels: Labels | None = None
    ) -> float:
        """Penalty value at `params`."""

    def gradient(
        self, params: jax.Array, tuning: Any, labels: Labels | None = None
    ) -> jax.Array:
        raise ConfigurationError(
            f"{self.kind} penalty is not differentiable; use its proximal "
            "operator or the coordinate-descent engine."
        )

    def subgradient(
        self, params: jax.Array, tuning: Any, labels: Labels | None = None
    ) -> jax.Array:
        """Minimum-norm subgradient of the penalty."""
        if self.smooth:
            return self.gradient(params, tuning, labels)
        raise ConfigurationError(f"Subgradients are not available for {self.kind}.")

    def proximal(self, target: jax.Array, step: float, tuning: Any) -> jax.Array:
        r"""Componentwise $\operatorname{arg min}_x \frac{1}{2}(x - t)^2 / s + p(x)$."""
        target = jnp.asarray(target)
        coords = self.coordinate_tunings(tuning, target.shape[0])
        values = jax.device_get(target).tolist()
        out = [proximal_coordinate(self, t, step, c) for t, c in zip(values, coords)]
        return jnp.asarray(out, dtype=target.dtype)

    def solve_subproblem(self, ctx: SubproblemContext, label: str | None = None) -> float:
        return solve_coordinate(self, ctx, label)

    def coordinate_value(
        self, value: float, lam: float, theta: float, alpha: float
    ) -> float:
        """Penalty of one coordinate at `value`; `lam` includes the weight.

        Per-coordinate hook used by `proximal` and `solve_subproblem`. Every
        penalty that relies on those default paths must override it.
        """
        raise NotImplementedError

    def candidates(
        self, a: float, b: float, lam: float, theta: float, alpha: float
    ) -> list[float]:
        """Candidate minimizers of `0.5 * a * v^2 + b * v + p(v)`, one per region.

        Per-coordinate hook of the same default paths; subclasses must
        override it. Penalties that dispatch per coordinate themselves
        (`MixedPenalty`) do not.
        """
        raise NotImplementedError

    def concavity(self, lam: float, theta: float, alpha: float) -> float:
        """Largest negative curvature of the penalty, 0 for piecewise convex ones."""
        return 0.0

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class NoPenalty(Penalty):
    """No regularization; coordinate updates are plain Newton steps."""

    kind = "none"
    smooth = True

    def validate(self, tuning: Any, n_params: int) -> None:
        pass

    def coordinate_tunings(self, tuning: Any, n_params: int) -> list[CoordinateTuning]:
        return [CoordinateTuning(0.0, 0.0, 0.0, 0.0)] * n_params

    def value(self, params, tuning=None, labels=None) -> float:
        return 0.0

    def gradient(self, params, tuning=None, labels=None) -> jax.Array:
        return jnp.zeros_like(jnp.asarray(params))

    def proximal(self, target, step, tuning=None) -> jax.Array:
        return jnp.asarray(target)

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        return 0.0

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        return [divide(-b, a)]


class _EnetPenalty(Penalty):
    r"""Shared implementation of ridge, lasso and elastic net.

    For coordinate j with $l_j = \lambda_j w_j$:

    $$p(x_j) = \alpha_j l_j |x_j| + (1 - \alpha_j) l_j x_j^2$$

    Ridge keeps only the quadratic term, lasso only the absolute term.
    """

    tuning_type = TuningEnet
    use_l1 = True
    use_l2 = True

    def _shares(self, lam: float, alpha: float) -> tuple[float, float]:
        l1 = alpha * lam if self.use_l1 else 0.0
        l2 = (1.0 - alpha) * lam if self.use_l2 else 0.0
        return l1, l2

    def _strengths(
        self, tuning: TuningEnet, n_params: int
    ) -> tuple[jax.Array, jax.Array]:
        lam = as_vector(tuning.lambda_, n_params, "lambda_")
        alpha = as_vector(tuning.alpha, n_params, "alpha")
        weights = as_vector(tuning.weights, n_params, "weights")
        strength = lam * weights
        zeros = jnp.zeros_like(strength)
        l1 = alpha * strength if self.use_l1 else zeros
        l2 = (1.0 - alpha) * strength if self.use_l2 else zeros
        return l1, l2

    def value(self, params, tuning, labels=None) -> float:
        params = jnp.asarray(params)
        l1, l2 = self._strengths(tuning, params.shape[0])
        # Switched-off terms contribute exactly 0, even for non-finite params.
        l1_part = jnp.where(l1 == 0, 0.0, l1 * jnp.abs(params))
        l2_part = jnp.where(l2 == 0, 0.0, l2 * params**2)
        return float(jnp.sum(l1_part + l2_part))

    def subgradient(self, params, tuning, labels=None) -> jax.Array:
        params = jnp.asarray(params)
        l1, l2 = self._strengths(tuning, params.shape[0])
        l1_part = jnp.where(l1 == 0, 0.0, l1 * jnp.sign(params))
        l2_part = jnp.where(l2 == 0, 0.0, 2 * l2 * params)
        return l1_part + l2_part

    def proximal(self, target, step, tuning) -> jax.Array:
        target = jnp.asarray(target)
        l1, l2 = self._strengths(tuning, target.shape[0])
        shrunk = jnp.sign(target) * jnp.maximum(0, jnp.abs(target) - l1 * step)
        return shrunk / (1 + (2 * l2 * step))

    def coordinate_value(self, value, lam, theta, alpha) -> float:
        l1, l2 = self._shares(lam, alpha)
        return l1 * abs(value) + l2 * value * value

    def candidates(self, a, b, lam, theta, alpha) -> list[float]:
        l1, l2 = self._shares(lam, alpha)
        return [divide(soft_threshold(-b, l1), a + 2.0 * l2)]


class Ridge(_EnetPenalty):
    r"""Ridge penalty $\sum_j (1 - \alpha_j) \lambda_j w_j x_j^2$.

    Smooth; switched off entirely when `alpha == 1`.

    Hoerl, A. E., & Kennard, R. W. (1970). Ridge Regression: Biased Estimation
    for Nonorthogonal Problems. Technometrics, 12(1), 55-67.
    """

    kind = "ridge"
    smooth = True
    use_l1 = False

    def gradient(self, params, tuning, labels=None) -> jax.Array:
        params = jnp.asarray(params)
        _, l2 = self._strengths(tuning, params.shape[0])
        return jnp.where(l2 == 0, 0.0, 2 * l2 * params)


class Lasso(_EnetPenalty):
    r"""Lasso penalty $\sum_j \alpha_j \lambda_j w_j |x_j|$.

    Tibshirani, R. (1996). Regression Shrinkage and Selection via the Lasso.
    Journal of the Royal Statistical Society. Series B, 58(1), 267-288.
    """

    kind = "lasso"
    use_l2 = False


class ElasticNet(_EnetPenalty):
    """Elastic net: lasso and ridge terms mixed by `alpha`.

    Zou, H., & Hastie, T. (2005). Regularization and variable selection via the
    elastic net. Journal of the Royal Statistical Society. Series B, 67(2), 301-320.
    """

    kind = "elasticNet"
