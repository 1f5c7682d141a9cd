import warnings

import jax
import jax.numpy as jnp

from nano_penopt import (
    CoordinateDescent,
    Lasso,
    Mcp,
    MixedPenalty,
    NoPenalty,
    NumericalInstabilityWarning,
    OptimizationError,
    TuningNonconvex,
)


def run_test():
    # Logistic regression with an unpenalized intercept, a lasso on the first
    # slope and MCP on the others.
    key = jax.random.PRNGKey(1)
    x_key, u_key = jax.random.split(key)

    num_samples = 500
    num_features = 6

    X = jax.random.normal(x_key, (num_samples, num_features)).at[:, 0].set(1.0)
    true_w = jnp.array([-0.5, 1.0, 0.0, 2.0, 0.0, -1.0])
    prob = jax.nn.sigmoid(X @ true_w)
    y = (jax.random.uniform(u_key, (num_samples,)) < prob).astype(X.dtype)

    def neg_log_likelihood(w, x, y):
        logits = x @ w
        return jnp.mean(jax.nn.softplus(logits) - y * logits)

    penalty = MixedPenalty([NoPenalty(), Lasso()] + [Mcp()] * (num_features - 2))
    tuning = TuningNonconvex(lambda_=0.05, theta=3.0, weights=1.0)

    solver = CoordinateDescent(verbose=True)
    print("Starting minimization (mixed lasso / MCP logistic regression)...")
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", NumericalInstabilityWarning)
        try:
            result = solver.minimize(
                neg_log_likelihood, penalty, tuning, jnp.zeros(num_features), (X, y)
            )
        except OptimizationError as e:
            print(f"Optimization failed with error: {e}")
            result = e.result
    for w in caught:
        print("Warning:", w.message)

    if result is not None:
        print("Final value (full objective):", result.final_value)
        print("True w:", jax.device_get(true_w))
        print("Learned w:", jax.device_get(result.params))


if __name__ == "__main__":
    import logging

    logging.basicConfig(level=logging.INFO)
    run_test()
