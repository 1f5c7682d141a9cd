import logging

from .coordinate_descent import CoordinateDescent, bfgs_update, coordinate_descent
from .errors import (
    ConfigurationError,
    CurvaturePerturbationWarning,
    NoMinimumFound,
    NumericalInstabilityWarning,
    OptimizationError,
    StepSizeCollapse,
    StepSizeShrinkWarning,
)
from .fit import AutodiffFit, FitFunction, as_fit_function
from .mixed import MixedPenalty
from .nonconvex import CappedL1, Lsp, Mcp, Scad
from .penalties import ElasticNet, Lasso, NoPenalty, Penalty, Ridge
from .prox_gd import ProxGD, prox_gd
from .schedulers import (
    BarzilaiBorweinStep,
    ConstantStep,
    InheritedStep,
    ScheduledStep,
    StepSizePolicy,
    as_step_policy,
)
from .subproblem import SubproblemContext, select_minimum, solve_coordinate
from .tuning import CoordinateTuning, TuningEnet, TuningNonconvex
from .types import Convergence, OptResult, Status

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "coordinate_descent",
    "prox_gd",
    "CoordinateDescent",
    "ProxGD",
    "bfgs_update",
    "Penalty",
    "NoPenalty",
    "Ridge",
    "Lasso",
    "ElasticNet",
    "Mcp",
    "Scad",
    "Lsp",
    "CappedL1",
    "MixedPenalty",
    "TuningEnet",
    "TuningNonconvex",
    "CoordinateTuning",
    "SubproblemContext",
    "select_minimum",
    "solve_coordinate",
    "FitFunction",
    "AutodiffFit",
    "as_fit_function",
    "StepSizePolicy",
    "ConstantStep",
    "ScheduledStep",
    "InheritedStep",
    "BarzilaiBorweinStep",
    "as_step_policy",
    "OptResult",
    "Status",
    "Convergence",
    "OptimizationError",
    "ConfigurationError",
    "NoMinimumFound",
    "StepSizeCollapse",
    "NumericalInstabilityWarning",
    "CurvaturePerturbationWarning",
    "StepSizeShrinkWarning",
]
