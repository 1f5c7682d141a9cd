"""Fit-function contract consumed by the engines."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

import jax
import jax.numpy as jnp

from .errors import ConfigurationError


class FitFunction(ABC):
    """Smooth part of the objective.

    Engines need `value` and `gradient`; the coordinate-descent engine also
    uses `hessian` when `has_hessian` is True and falls back to BFGS otherwise.
    """

    has_hessian: bool = False

    @abstractmethod
    def value(self, params: jax.Array) -> jax.Array:
        """Fit value at `params`."""

    @abstractmethod
    def gradient(self, params: jax.Array) -> jax.Array:
        """Gradient of the fit at `params`."""

    def value_and_gradient(self, params: jax.Array) -> tuple[jax.Array, jax.Array]:
        return self.value(params), self.gradient(params)

    def hessian(self, params: jax.Array) -> jax.Array:
        raise NotImplementedError(f"{type(self).__name__} provides no Hessian.")

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class AutodiffFit(FitFunction):
    """Fit function `fun(params, *data) -> scalar` differentiated by JAX.

    Args:
        fun: Smooth objective with signature `f(params, *data) -> scalar`.
        data: Extra positional arguments passed to `fun` on every call.
    """

    has_hessian = True

    def __init__(self, fun: Callable[..., jax.Array], data: tuple[Any, ...] = ()) -> None:
        self.fun = fun
        self.data = tuple(data)
        self._value = jax.jit(fun)
        self._value_and_grad = jax.jit(jax.value_and_grad(fun))
        self._hessian = jax.jit(jax.hessian(fun))

    def value(self, params):
        return self._value(params, *self.data)

    def gradient(self, params):
        return self._value_and_grad(params, *self.data)[1]

    def value_and_gradient(self, params):
        return self._value_and_grad(params, *self.data)

    def hessian(self, params):
        return self._hessian(params, *self.data)

    def __repr__(self) -> str:
        name = getattr(self.fun, "__name__", repr(self.fun))
        return f"AutodiffFit({name})"


def as_fit_function(
    fun: FitFunction | Callable[..., jax.Array], data: tuple[Any, ...] = ()
) -> FitFunction:
    """Coerce a callable into a FitFunction; FitFunctions pass through."""
    if isinstance(fun, FitFunction):
        return fun
    if callable(fun):
        return AutodiffFit(fun, data)
    raise TypeError(f"Expected a FitFunction or a callable, got {type(fun).__name__}.")


def as_params(init_params: Any) -> jax.Array:
    """Return a private 1-D float copy of the initial parameters."""
    params = jnp.array(init_params, dtype=jnp.result_type(float), copy=True)
    if params.ndim != 1:
        raise ConfigurationError(
            f"Parameters must be a 1-D vector, got shape {params.shape}."
        )
    return params
