import logging

import jax.numpy as jnp
import pytest
from nano_penopt import (
    BarzilaiBorweinStep,
    ConfigurationError,
    Lasso,
    Mcp,
    NoMinimumFound,
    NoPenalty,
    ProxGD,
    Status,
    StepSizeCollapse,
    StepSizeShrinkWarning,
    TuningEnet,
    TuningNonconvex,
    prox_gd,
)

LASSO_ONE = TuningEnet(lambda_=1.0, alpha=1.0, weights=jnp.ones(1))


def test_prox_gd_lasso(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    # argmin 0.5 * (x - 3)^2 + |x| = 2
    solver = ProxGD(step_size=1.0)
    res = solver.minimize(fun, Lasso(), LASSO_ONE, init_params)

    assert res.status is Status.CONVERGED
    assert res.success
    assert jnp.allclose(res.params, jnp.array([2.0]))
    assert res.final_value == pytest.approx(2.5)
    assert res.iterations == len(res.trace)


def test_prox_gd_functional_api(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    res = prox_gd(fun, Lasso(), LASSO_ONE, init_params, step_size=1.0)

    assert jnp.allclose(res.params, jnp.array([2.0]))


def test_prox_gd_with_data():
    def fun(params, target):
        return 0.5 * jnp.sum((params - target) ** 2)

    res = prox_gd(fun, Lasso(), LASSO_ONE, jnp.zeros(1), (jnp.array([-3.0]),))
    assert jnp.allclose(res.params, jnp.array([-2.0]))


def test_prox_gd_max_iterations(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=0.1, max_iter=1)
    res = solver.minimize(fun, Lasso(), LASSO_ONE, init_params)

    assert res.status is Status.MAX_ITERATIONS_REACHED
    assert not res.success
    assert res.iterations == 1
    assert res.trace.shape == (1,)


def test_prox_gd_max_iter_override(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=0.1, max_iter=10000)
    res = solver.minimize(fun, Lasso(), LASSO_ONE, init_params, max_iter=3)

    assert res.iterations == 3


def test_prox_gd_shrinks_large_steps(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=10.0)

    with pytest.warns(StepSizeShrinkWarning):
        res = solver.minimize(fun, Lasso(), LASSO_ONE, init_params)
    assert res.status is Status.CONVERGED
    assert jnp.allclose(res.params, jnp.array([2.0]), atol=1e-6)


def test_prox_gd_step_size_collapse(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=10.0, max_backtrack=1)

    with pytest.warns(StepSizeShrinkWarning):
        with pytest.raises(StepSizeCollapse) as excinfo:
            solver.minimize(fun, Lasso(), LASSO_ONE, init_params)

    partial = excinfo.value.result
    assert partial.status is Status.STEP_SIZE_COLLAPSE
    assert partial.iterations == 0
    assert jnp.array_equal(partial.params, init_params)


def test_prox_gd_non_finite_gradient_has_no_minimum():
    def fun(params):
        # |x| written so that its gradient at 0 is 0 / 0
        return jnp.sum(jnp.sqrt(params**2))

    tuning = TuningNonconvex(lambda_=1.0, theta=3.0, weights=jnp.ones(2))
    init_params = jnp.zeros(2)
    with pytest.raises(NoMinimumFound) as excinfo:
        ProxGD(step_size=1.0).minimize(fun, Mcp(), tuning, init_params)

    partial = excinfo.value.result
    assert partial.status is Status.NO_MINIMUM_FOUND
    assert partial.iterations == 0
    assert jnp.array_equal(partial.params, init_params)


def test_prox_gd_mcp():
    def fun(params):
        return 0.5 * jnp.sum((params - 2.0) ** 2)

    tuning = TuningNonconvex(lambda_=1.0, theta=3.0, weights=jnp.ones(1))
    res = ProxGD(step_size=1.0).minimize(fun, Mcp(), tuning, jnp.zeros(1))

    # (|t| - lambda) / (1 - 1/theta) = 1 / (2/3)
    assert res.status is Status.CONVERGED
    assert jnp.allclose(res.params, jnp.array([1.5]))


def test_prox_gd_accelerated():
    def fun(params):
        return 0.5 * jnp.sum((params - 5.0) ** 2)

    solver = ProxGD(step_size=0.1, accelerate=True, max_iter=2000, tol=0.0)
    res = solver.minimize(fun, Lasso(), LASSO_ONE, jnp.zeros(1))

    assert res.status is Status.MAX_ITERATIONS_REACHED
    assert jnp.allclose(res.params, jnp.array([4.0]), atol=1e-10)
    assert res.final_value < float(res.trace[0])


def test_prox_gd_parameter_convergence(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=0.5, convergence="parameters", tol=1e-10)
    res = solver.minimize(fun, Lasso(), LASSO_ONE, init_params)

    assert res.status is Status.CONVERGED
    assert jnp.allclose(res.params, jnp.array([2.0]), atol=1e-9)


def test_prox_gd_barzilai_borwein(two_param_problem):
    fun, init_params, center = two_param_problem
    solver = ProxGD(step_size=BarzilaiBorweinStep(0.1))
    res = solver.minimize(fun, NoPenalty(), None, init_params)

    assert res.status is Status.CONVERGED
    assert jnp.allclose(res.params, center, atol=1e-6)


def test_prox_gd_schedule(quadratic_problem):
    fun, init_params, target = quadratic_problem
    res = prox_gd(fun, NoPenalty(), None, init_params, step_size=lambda it: 0.5)

    assert jnp.allclose(res.params, target, atol=1e-4)


def test_prox_gd_labels_mismatch(quadratic_problem):
    fun, init_params, _ = quadratic_problem
    with pytest.raises(ConfigurationError, match="labels"):
        ProxGD().minimize(fun, Lasso(), LASSO_ONE, init_params, labels=["a", "b"])


def test_prox_gd_rejects_non_finite_start():
    def fun(params):
        return jnp.sum(jnp.log(params))

    with pytest.raises(ConfigurationError, match="not finite"):
        ProxGD().minimize(fun, NoPenalty(), None, jnp.array([-1.0]))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_backtrack": 0},
        {"max_iter": 0},
        {"tol": -1.0},
        {"convergence": "gradient"},
        {"step_size": -0.1},
    ],
)
def test_prox_gd_invalid_options(kwargs):
    with pytest.raises(ConfigurationError):
        ProxGD(**kwargs)


def test_prox_gd_verbose_logs(quadratic_problem, caplog):
    fun, init_params, _ = quadratic_problem
    solver = ProxGD(step_size=1.0, verbose=True)

    with caplog.at_level(logging.INFO, logger="nano_penopt"):
        solver.minimize(fun, Lasso(), LASSO_ONE, init_params)

    assert "ProxGD iter    0" in caplog.text
    assert "Converged" in caplog.text
