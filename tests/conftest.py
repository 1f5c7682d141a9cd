import jax

jax.config.update("jax_enable_x64", True)

import jax.numpy as jnp  # noqa: E402
import pytest  # noqa: E402

from nano_penopt import FitFunction  # noqa: E402


class QuadraticFit(FitFunction):
    """f(x) = 0.5 x'Ax - b'x with an explicit Hessian."""

    def __init__(self, A, b, with_hessian=True):
        self.A = jnp.asarray(A, dtype=jnp.float64)
        self.b = jnp.asarray(b, dtype=jnp.float64)
        self.has_hessian = with_hessian

    def value(self, params):
        return 0.5 * params @ self.A @ params - self.b @ params

    def gradient(self, params):
        return self.A @ params - self.b

    def hessian(self, params):
        if not self.has_hessian:
            return super().hessian(params)
        return self.A


@pytest.fixture
def quadratic_problem():
    # Min 0.5 * (x - 3)^2
    target = jnp.array([3.0])

    def fun(params):
        return 0.5 * jnp.sum((params - target) ** 2)

    init_params = jnp.array([0.0])
    return fun, init_params, target


@pytest.fixture
def two_param_problem():
    # f(x) = (x1 - 1)^2 + (x2 + 2)^2
    center = jnp.array([1.0, -2.0])

    def fun(params):
        return jnp.sum((params - center) ** 2)

    init_params = jnp.zeros(2)
    return fun, init_params, center


@pytest.fixture
def coupled_quadratic():
    # Strictly convex with off-diagonal curvature; minimizer A^{-1} b = [0.2, 0.4].
    A = [[3.0, 1.0], [1.0, 2.0]]
    b = [1.0, 1.0]
    return QuadraticFit(A, b), jnp.array([0.2, 0.4])


@pytest.fixture
def separable_targets():
    # 0.5 * ||x - t||^2 with unit curvature in every coordinate.
    targets = jnp.array([2.5, -0.4, 1.2, -4.0])

    def fun(params):
        return 0.5 * jnp.sum((params - targets) ** 2)

    return fun, targets


@pytest.fixture
def quadratic_fit():
    return QuadraticFit
