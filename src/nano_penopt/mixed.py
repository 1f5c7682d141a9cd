"""Per-parameter mixture of penalties."""

from __future__ import annotations

from typing import Sequence

import jax
import jax.numpy as jnp

from .errors import ConfigurationError
from .nonconvex import CappedL1, Lsp, Mcp, Scad
from .penalties import Lasso, NoPenalty, Penalty
from .subproblem import SubproblemContext, proximal_coordinate
from .tuning import TuningNonconvex

MIXABLE = (NoPenalty, Lasso, Mcp, Scad, Lsp, CappedL1)


class MixedPenalty(Penalty):
    """Applies a different penalty to every parameter.

    The tuning record is a `TuningNonconvex` whose `lambda_`, `theta` and
    `weights` are read per parameter. Lasso coordinates ignore `theta`.

    Args:
        penalties: One penalty per parameter, each an instance of `NoPenalty`,
            `Lasso`, `Mcp`, `Scad`, `Lsp` or `CappedL1`.
    """

    kind = "mixed"
    tuning_type = TuningNonconvex

    def __init__(self, penalties: Sequence[Penalty]) -> None:
        for penalty in penalties:
            if not isinstance(penalty, MIXABLE):
                raise ConfigurationError(
                    f"{type(penalty).__name__} cannot be part of a mixed penalty. "
                    f"Supported are: {', '.join(p.__name__ for p in MIXABLE)}."
                )
        self.penalties = tuple(penalties)

    def validate(self, tuning, n_params: int) -> None:
        if len(self.penalties) != n_params:
            raise ConfigurationError(
                f"Mixed penalty has {len(self.penalties)} entries for "
                f"{n_params} parameters."
            )
        super().validate(tuning, n_params)
        for j, (penalty, coord) in enumerate(
            zip(self.penalties, tuning.coordinates(n_params))
        ):
            min_theta = getattr(penalty, "min_theta", None)
            if min_theta is not None and not coord.theta > min_theta:
                raise ConfigurationError(
                    f"theta of the {penalty.kind} penalty on parameter {j} "
                    f"must be > {min_theta}."
                )

    def value(self, params, tuning, labels=None) -> float:
        params = jnp.asarray(params)
        values = jax.device_get(params).tolist()
        total = 0.0
        for penalty, value, coord in zip(
            self.penalties, values, tuning.coordinates(params.shape[0])
        ):
            if coord.penalized:
                total += penalty.coordinate_value(
                    value, coord.strength, coord.theta, coord.alpha
                )
        return total

    def proximal(self, target, step, tuning) -> jax.Array:
        target = jnp.asarray(target)
        values = jax.device_get(target).tolist()
        out = [
            proximal_coordinate(penalty, t, step, coord)
            for penalty, t, coord in zip(
                self.penalties, values, tuning.coordinates(target.shape[0])
            )
        ]
        return jnp.asarray(out, dtype=target.dtype)

    def solve_subproblem(self, ctx: SubproblemContext, label: str | None = None) -> float:
        return self.penalties[ctx.index].solve_subproblem(ctx, label)

    def __repr__(self) -> str:
        return f"MixedPenalty({[p.kind for p in self.penalties]!r})"
