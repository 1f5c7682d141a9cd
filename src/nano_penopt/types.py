from enum import Enum
from typing import NamedTuple, Sequence

import jax

Labels = Sequence[str]
"""Parameter labels, used for diagnostics only."""


class Status(str, Enum):
    """Terminal state of an optimization run."""

    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"
    STEP_SIZE_COLLAPSE = "step_size_collapse"
    NO_MINIMUM_FOUND = "no_minimum_found"


class Convergence(str, Enum):
    """Quantity compared against the tolerance after every outer iteration."""

    OBJECTIVE = "objective"
    PARAMETERS = "parameters"


class OptResult(NamedTuple):
    """Optimization result container.

    Attributes:
        params: Final parameters.
        final_value: Penalized objective `fit + penalty` at the returned parameters.
        trace: Penalized objective values per outer iteration.
        success: Whether the convergence criterion was met.
        iterations: Number of outer iterations performed.
        status: Terminal state of the run.
    """

    params: jax.Array
    final_value: float
    trace: jax.Array
    success: bool = True
    iterations: int = 0
    status: Status = Status.CONVERGED
