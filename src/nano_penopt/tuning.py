"""Tuning-parameter records.

Records are plain immutable values. Scalars are accepted wherever a field may
also be per-parameter; expanding a length-1 sequence to P entries is left to
the caller.
"""

from __future__ import annotations

from typing import NamedTuple, Sequence

import jax
import jax.numpy as jnp

from .errors import ConfigurationError

ArrayLike = float | Sequence[float] | jax.Array


def as_vector(value: ArrayLike, n_params: int, name: str) -> jax.Array:
    """Return `value` as a length-`n_params` float vector.

    Raises:
        ConfigurationError: If `value` is neither a scalar nor of length `n_params`.
    """
    arr = jnp.asarray(value, dtype=jnp.result_type(float))
    if arr.ndim == 0:
        return jnp.full((n_params,), arr)
    if arr.ndim != 1 or arr.shape[0] != n_params:
        raise ConfigurationError(
            f"{name} must be a scalar or a vector of length {n_params}. "
            f"Got shape {tuple(arr.shape)}"
        )
    return arr


def _check_range(
    arr: jax.Array, name: str, lower: float, upper: float | None = None
) -> None:
    if not bool(jnp.all(jnp.isfinite(arr))):
        raise ConfigurationError(f"{name} must be finite.")
    if bool(jnp.any(arr < lower)):
        raise ConfigurationError(f"{name} must be >= {lower}.")
    if upper is not None and bool(jnp.any(arr > upper)):
        raise ConfigurationError(f"{name} must be <= {upper}.")


class CoordinateTuning(NamedTuple):
    """Tuning values of a single coordinate."""

    lambda_: float
    theta: float
    alpha: float
    weight: float

    @property
    def penalized(self) -> bool:
        return self.weight != 0

    @property
    def strength(self) -> float:
        """Effective regularization strength `lambda * weight`."""
        return self.lambda_ * self.weight


class TuningEnet(NamedTuple):
    """Tuning parameters of the ridge, lasso and elastic-net penalties.

    Attributes:
        lambda_: Regularization strength >= 0 (scalar or per parameter).
        alpha: Mixing in [0, 1]; 1 is a pure lasso, 0 a pure ridge.
        weights: Per-parameter multiplier >= 0; 0 leaves a parameter unregularized.
    """

    lambda_: ArrayLike
    alpha: ArrayLike
    weights: ArrayLike

    def validate(self, n_params: int) -> None:
        _check_range(as_vector(self.lambda_, n_params, "lambda_"), "lambda_", 0.0)
        _check_range(as_vector(self.alpha, n_params, "alpha"), "alpha", 0.0, 1.0)
        _check_range(as_vector(self.weights, n_params, "weights"), "weights", 0.0)

    def coordinates(self, n_params: int) -> list[CoordinateTuning]:
        lambdas = jax.device_get(as_vector(self.lambda_, n_params, "lambda_")).tolist()
        alphas = jax.device_get(as_vector(self.alpha, n_params, "alpha")).tolist()
        weights = jax.device_get(as_vector(self.weights, n_params, "weights")).tolist()
        return [
            CoordinateTuning(lambda_=lam, theta=0.0, alpha=alpha, weight=weight)
            for lam, alpha, weight in zip(lambdas, alphas, weights)
        ]


class TuningNonconvex(NamedTuple):
    """Tuning parameters of the mcp, scad, lsp and capped-L1 penalties.

    Attributes:
        lambda_: Regularization strength >= 0 (scalar or per parameter).
        theta: Shape parameter. A scalar, except for mixed penalties where
            it may be given per parameter.
        weights: Per-parameter multiplier >= 0; 0 leaves a parameter unregularized.
    """

    lambda_: ArrayLike
    theta: ArrayLike
    weights: ArrayLike

    def validate(self, n_params: int) -> None:
        _check_range(as_vector(self.lambda_, n_params, "lambda_"), "lambda_", 0.0)
        _check_range(as_vector(self.weights, n_params, "weights"), "weights", 0.0)
        theta = as_vector(self.theta, n_params, "theta")
        if not bool(jnp.all(jnp.isfinite(theta))):
            raise ConfigurationError("theta must be finite.")

    def coordinates(self, n_params: int) -> list[CoordinateTuning]:
        lambdas = jax.device_get(as_vector(self.lambda_, n_params, "lambda_")).tolist()
        thetas = jax.device_get(as_vector(self.theta, n_params, "theta")).tolist()
        weights = jax.device_get(as_vector(self.weights, n_params, "weights")).tolist()
        return [
            CoordinateTuning(lambda_=lam, theta=theta, alpha=1.0, weight=weight)
            for lam, theta, weight in zip(lambdas, thetas, weights)
        ]
