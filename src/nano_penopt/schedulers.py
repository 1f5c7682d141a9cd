"""Step-size policies for the proximal-gradient engine.

A policy proposes the step an iteration starts from; the engine then
backtracks by multiplying with `shrink` until the quadratic majorizer holds.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

import jax
import jax.numpy as jnp

from .errors import ConfigurationError


class StepSizePolicy(ABC):
    """Base class for step-size policies (pure, functional API)."""

    def __init__(self, step: float, shrink: float = 0.5) -> None:
        if not step > 0:
            raise ConfigurationError("step must be positive")
        if not 0 < shrink < 1:
            raise ConfigurationError("shrink must be in (0, 1)")
        self.step = float(step)
        self.shrink = float(shrink)

    @abstractmethod
    def initial_step(
        self,
        iteration: int,
        last_step: float | None,
        s: jax.Array | None = None,
        y: jax.Array | None = None,
    ) -> float:
        """Return the step size an iteration starts backtracking from.

        Args:
            iteration: The current outer iteration (0-indexed).
            last_step: Step accepted in the previous iteration, if any.
            s: Difference of the last two iterates, if available.
            y: Difference of the last two gradients, if available.
        """

    def shrink_step(self, step: float) -> float:
        return step * self.shrink

    def __repr__(self) -> str:
        attrs = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({attrs})"


class ConstantStep(StepSizePolicy):
    """Restart every iteration from the same step size."""

    def initial_step(self, iteration, last_step, s=None, y=None) -> float:  # noqa: ARG002
        return self.step


class ScheduledStep(StepSizePolicy):
    """Start every iteration from `schedule(iteration)`."""

    def __init__(
        self, schedule: Callable[[int], float], shrink: float = 0.5
    ) -> None:
        super().__init__(1.0, shrink)
        self.schedule = schedule

    def initial_step(self, iteration, last_step, s=None, y=None) -> float:
        step = float(self.schedule(iteration))
        if not step > 0:
            raise ConfigurationError(
                f"Step schedule returned a non-positive step {step} at iteration "
                f"{iteration}."
            )
        return step


class InheritedStep(StepSizePolicy):
    """Start from the last accepted step, multiplied by `growth`."""

    def __init__(self, step: float, shrink: float = 0.5, growth: float = 1.0) -> None:
        if not growth >= 1:
            raise ConfigurationError("growth must be >= 1")
        super().__init__(step, shrink)
        self.growth = float(growth)

    def initial_step(self, iteration, last_step, s=None, y=None) -> float:
        if last_step is None:
            return self.step
        return last_step * self.growth


class BarzilaiBorweinStep(StepSizePolicy):
    """Barzilai-Borwein step `s's / s'y`, clipped to `[min_step, max_step]`.

    Falls back to `step` on the first iteration and whenever `s'y <= 0`.
    """

    def __init__(
        self,
        step: float,
        shrink: float = 0.5,
        min_step: float = 1e-10,
        max_step: float = 1e10,
    ) -> None:
        if not 0 < min_step <= max_step:
            raise ConfigurationError("Require 0 < min_step <= max_step")
        super().__init__(step, shrink)
        self.min_step = float(min_step)
        self.max_step = float(max_step)

    def initial_step(self, iteration, last_step, s=None, y=None) -> float:
        if s is None or y is None:
            return self.step
        sy = float(jnp.vdot(s, y))
        if not sy > 0:
            return self.step
        ss = float(jnp.vdot(s, s))
        return min(max(ss / sy, self.min_step), self.max_step)


def as_step_policy(
    step_size: float | Callable[[int], float] | StepSizePolicy,
) -> StepSizePolicy:
    """Coerce a step-size input into a StepSizePolicy."""
    if isinstance(step_size, StepSizePolicy):
        return step_size
    if callable(step_size):
        return ScheduledStep(step_size)
    return ConstantStep(step_size)
