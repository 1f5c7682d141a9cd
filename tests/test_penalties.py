import jax.numpy as jnp
import pytest
from nano_penopt import (
    CappedL1,
    ConfigurationError,
    ElasticNet,
    Lasso,
    Lsp,
    Mcp,
    NoPenalty,
    Ridge,
    Scad,
    SubproblemContext,
    TuningEnet,
    TuningNonconvex,
)

PARAMS = jnp.array([-3.0, -0.7, 0.0, 0.2, 1.5, 8.0])
WEIGHTS = jnp.array([1.0, 0.5, 1.0, 2.0, 1.0, 0.0])


@pytest.mark.parametrize(
    "penalty, tuning",
    [
        (Ridge(), TuningEnet(lambda_=0.3, alpha=0.2, weights=WEIGHTS)),
        (Lasso(), TuningEnet(lambda_=0.3, alpha=1.0, weights=WEIGHTS)),
        (ElasticNet(), TuningEnet(lambda_=0.3, alpha=0.6, weights=WEIGHTS)),
        (Mcp(), TuningNonconvex(lambda_=0.8, theta=2.5, weights=WEIGHTS)),
        (Scad(), TuningNonconvex(lambda_=0.8, theta=3.7, weights=WEIGHTS)),
        (Lsp(), TuningNonconvex(lambda_=0.8, theta=0.5, weights=WEIGHTS)),
        (CappedL1(), TuningNonconvex(lambda_=0.8, theta=1.0, weights=WEIGHTS)),
    ],
)
def test_penalty_value_nonnegative(penalty, tuning):
    penalty.validate(tuning, PARAMS.shape[0])
    assert penalty.value(PARAMS, tuning) >= 0.0
    assert penalty.value(jnp.zeros(6), tuning) == 0.0


def test_ridge_switched_off_by_alpha():
    ridge = Ridge()
    tuning = TuningEnet(lambda_=2.0, alpha=1.0, weights=jnp.ones(6))

    assert ridge.value(PARAMS * 1e6, tuning) == 0.0
    assert jnp.array_equal(ridge.gradient(PARAMS * 1e6, tuning), jnp.zeros(6))


def test_lasso_switched_off_by_alpha():
    tuning = TuningEnet(lambda_=2.0, alpha=0.0, weights=jnp.ones(6))

    assert Lasso().value(PARAMS, tuning) == 0.0
    assert jnp.array_equal(Lasso().proximal(PARAMS, 1.0, tuning), PARAMS)


def test_ridge_value_and_gradient():
    ridge = Ridge()
    params = jnp.array([1.5, -2.0])
    tuning = TuningEnet(lambda_=2.0, alpha=0.5, weights=jnp.array([1.0, 0.0]))

    # (1 - alpha) * lambda * w * x^2 = 1.0 * 1.5^2
    assert ridge.value(params, tuning) == pytest.approx(2.25)
    assert jnp.allclose(ridge.gradient(params, tuning), jnp.array([3.0, 0.0]))


def test_lasso_weight_zero_excludes_parameter():
    lasso = Lasso()
    tuning = TuningEnet(lambda_=1.0, alpha=1.0, weights=jnp.array([1.0, 0.0]))

    small = lasso.value(jnp.array([-2.0, 0.1]), tuning)
    large = lasso.value(jnp.array([-2.0, jnp.inf]), tuning)
    assert small == large == 2.0

    subgradient = lasso.subgradient(jnp.array([-2.0, 5.0]), tuning)
    assert subgradient[1] == 0.0
    assert subgradient[0] == -1.0


def test_elastic_net_value():
    enet = ElasticNet()
    params = jnp.array([2.0, -1.0])
    tuning = TuningEnet(lambda_=jnp.array([1.0, 2.0]), alpha=0.25, weights=jnp.ones(2))

    expected = 0.25 * (1.0 * 2.0 + 2.0 * 1.0) + 0.75 * (1.0 * 4.0 + 2.0 * 1.0)
    assert enet.value(params, tuning) == pytest.approx(expected)


def test_prox_lasso_operator():
    # Prox_L1(x, lambda) = sign(x) * max(|x| - lambda, 0)
    lasso = Lasso()
    tuning = TuningEnet(lambda_=1.0, alpha=1.0, weights=jnp.ones(3))

    res = lasso.proximal(jnp.array([1.5, 0.5, -1.5]), 1.0, tuning)
    assert jnp.allclose(res, jnp.array([0.5, 0.0, -0.5]))


def test_prox_elastic_net_operator():
    enet = ElasticNet()
    tuning = TuningEnet(lambda_=1.0, alpha=0.5, weights=jnp.ones(1))

    # soft(3, 0.5 * 0.5) / (1 + 2 * 0.5 * 0.5)
    res = enet.proximal(jnp.array([3.0]), 0.5, tuning)
    assert jnp.allclose(res, jnp.array([2.75 / 1.5]))


def test_convex_subproblem_matches_proximal():
    # With H_jj = 1 / step, a coordinate update from d = 0 equals the prox.
    lasso = Lasso()
    tuning = TuningEnet(lambda_=0.7, alpha=1.0, weights=jnp.ones(1))
    coord = lasso.coordinate_tunings(tuning, 1)[0]

    ctx = SubproblemContext.build(0, 1.0, 0.0, -2.0, 0.0, 1.0, coord)
    z = lasso.solve_subproblem(ctx)
    prox = lasso.proximal(jnp.array([1.0 + 2.0]), 1.0, tuning)
    assert 1.0 + z == pytest.approx(float(prox[0]))


def test_no_penalty():
    penalty = NoPenalty()
    penalty.validate(None, 3)

    assert penalty.value(PARAMS, None) == 0.0
    assert jnp.array_equal(penalty.gradient(PARAMS, None), jnp.zeros(6))
    assert jnp.array_equal(penalty.proximal(PARAMS, 0.1, None), PARAMS)


def test_nonsmooth_penalty_has_no_gradient():
    with pytest.raises(ConfigurationError):
        Lasso().gradient(PARAMS, TuningEnet(1.0, 1.0, jnp.ones(6)))


@pytest.mark.parametrize(
    "tuning",
    [
        TuningEnet(lambda_=-1.0, alpha=0.5, weights=jnp.ones(3)),
        TuningEnet(lambda_=1.0, alpha=1.5, weights=jnp.ones(3)),
        TuningEnet(lambda_=1.0, alpha=0.5, weights=jnp.array([1.0, -1.0, 1.0])),
        TuningEnet(lambda_=1.0, alpha=0.5, weights=jnp.ones(2)),
        TuningEnet(lambda_=jnp.ones(4), alpha=0.5, weights=jnp.ones(3)),
        TuningEnet(lambda_=jnp.nan, alpha=0.5, weights=jnp.ones(3)),
    ],
)
def test_invalid_enet_tuning(tuning):
    with pytest.raises(ConfigurationError):
        ElasticNet().validate(tuning, 3)


def test_wrong_tuning_record():
    with pytest.raises(ConfigurationError, match="TuningEnet"):
        Lasso().validate(TuningNonconvex(1.0, 3.0, jnp.ones(2)), 2)
