"""
cruisempc: Receding-Horizon Cruise Control
==========================================

cruisempc regulates the longitudinal speed of a point-mass vehicle
toward a reference velocity with Model Predictive Control under bounded
actuation force. Each tick it solves a finite-horizon problem with
scipy.optimize and applies only the first force.

Quick Start
-----------
>>> import cruisempc
>>> spec = cruisempc.HorizonSpec(horizon=20, dt=0.1, mass=1500.0,
...                              v_ref=cruisempc.kmh_to_ms(100.0))
>>> controller = cruisempc.RecedingHorizonController(spec)
>>> for record in controller.run(ticks=200):
...     print(record.format())

Solver strategies are selected with SolverOptions:

>>> options = cruisempc.SolverOptions(method="interior_point")
>>> controller = cruisempc.RecedingHorizonController(spec, options)
"""

__version__ = "0.1.0"
__author__ = "cruisempc Contributors"

# Import public API
from .config import HorizonSpec, Method, SolverOptions
from .solver import solve
from .result import SolveResult, Status
from .exceptions import (
    CruiseMPCError,
    ConfigurationError,
    DimensionError,
    InvalidInputError,
    SolveFailure,
    InfeasibleError,
    IterationLimitError,
    NumericalError,
    DeadlineExceededError,
)
from .mpc import (
    FailurePolicy,
    HorizonProblem,
    MPCResult,
    PointMassVehicle,
    RecedingHorizonController,
    TickRecord,
    Trajectory,
    WarmStart,
)
from .utils import kmh_to_ms, ms_to_kmh

__all__ = [
    # Version
    "__version__",

    # Configuration
    "HorizonSpec",
    "SolverOptions",
    "Method",

    # Solving
    "solve",
    "SolveResult",
    "Status",
    "HorizonProblem",

    # Control loop
    "RecedingHorizonController",
    "MPCResult",
    "WarmStart",
    "FailurePolicy",
    "PointMassVehicle",
    "TickRecord",
    "Trajectory",

    # Units
    "kmh_to_ms",
    "ms_to_kmh",

    # Exceptions
    "CruiseMPCError",
    "ConfigurationError",
    "DimensionError",
    "InvalidInputError",
    "SolveFailure",
    "InfeasibleError",
    "IterationLimitError",
    "NumericalError",
    "DeadlineExceededError",
]


def info() -> str:
    """Return information about the cruisempc installation."""
    import platform

    import numpy
    import scipy

    lines = [
        f"cruisempc version: {__version__}",
        f"Python version: {platform.python_version()}",
        f"Platform: {platform.platform()}",
        f"numpy version: {numpy.__version__}",
        f"scipy version: {scipy.__version__}",
    ]
    return "\n".join(lines)
