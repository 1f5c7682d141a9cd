import jax
import jax.numpy as jnp

from nano_penopt import CoordinateDescent, Lasso, ProxGD, TuningEnet


def run_test():
    # Lasso regression: minimize 0.5 * mean((X w - y)^2) + lambda * ||w[1:]||_1
    key = jax.random.PRNGKey(0)
    key, x_key, noise_key = jax.random.split(key, 3)

    num_samples = 256
    num_features = 20

    X = jax.random.normal(x_key, (num_samples, num_features))
    X = X.at[:, 0].set(1.0)
    true_w = jnp.zeros((num_features,)).at[:4].set(jnp.array([1.0, 2.0, -1.5, 0.5]))
    noise = 0.05 * jax.random.normal(noise_key, (num_samples,))
    y = X @ true_w + noise

    data = (X, y)

    def smooth_loss(w, x, y):
        residual = x @ w - y
        return 0.5 * jnp.mean(residual**2)

    # The intercept stays unregularized.
    weights = jnp.ones((num_features,)).at[0].set(0.0)
    tuning = TuningEnet(lambda_=0.05, alpha=1.0, weights=weights)
    init_params = jnp.zeros((num_features,))
    labels = ["intercept"] + [f"b{j}" for j in range(1, num_features)]

    solvers = (ProxGD(step_size=0.5, verbose=True, log_every=20), CoordinateDescent())
    for solver in solvers:
        print(f"Starting minimization with {type(solver).__name__}...")
        result = solver.minimize(
            smooth_loss, Lasso(), tuning, init_params, data, labels=labels
        )
        print("Status:", result.status.value, "after", result.iterations, "iterations")
        print("Final value (full objective):", result.final_value)
        print("Learned w (first 6):", jax.device_get(result.params[:6]))
        print("Zero coefficients:", int(jnp.sum(result.params == 0)))

    print("True w (first 6):", jax.device_get(true_w[:6]))


if __name__ == "__main__":
    import logging

    logging.basicConfig(level=logging.INFO)
    run_test()
