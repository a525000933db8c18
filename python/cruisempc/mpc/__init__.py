"""
cruisempc Model Predictive Control (MPC)
========================================

Receding-horizon longitudinal speed control of a point-mass vehicle.

Quick Start
-----------
>>> from cruisempc import HorizonSpec
>>> from cruisempc.mpc import RecedingHorizonController
>>>
>>> controller = RecedingHorizonController(HorizonSpec())
>>> trajectory = controller.simulate(ticks=200)
>>> round(trajectory.final_velocity * 3.6, 1)
100.0

Single Solve
------------
>>> from cruisempc.mpc import HorizonProblem
>>> from cruisempc import solve
>>>
>>> problem = HorizonProblem(HorizonSpec())
>>> result = solve(problem.bind(current_velocity=0.0))
>>> problem.first_control(result.x)
3000.0

Classes
-------
RecedingHorizonController
    The control loop, with warm start and failure policies
HorizonProblem
    Cost, dynamics constraints and bounds for one HorizonSpec
PointMassVehicle
    Shared dynamics model for prediction and plant update
Trajectory
    Closed-loop history

Theory
------
MPC solves at each tick:

    minimize    Σ_{k=0}^{N-1} [(X_k - v_ref)^2 + λ U_k^2]
    subject to  X_{k+1} = X_k + (U_k / m) dt
                u_min <= U_k <= u_max
                X_0 = v_current

and applies U_0 only.
"""

from .dynamics import PointMassVehicle
from .constraints import BoxConstraints
from .problem import HorizonProblem, ProblemInstance, build_instance
from .controller import (
    ControllerState,
    FailurePolicy,
    MPCResult,
    RecedingHorizonController,
    WarmStart,
)
from .trajectory import TELEMETRY_HEADER, TickRecord, Trajectory

__all__ = [
    # Controller
    "RecedingHorizonController",
    "ControllerState",
    "MPCResult",
    "WarmStart",
    "FailurePolicy",
    # Problem
    "HorizonProblem",
    "ProblemInstance",
    "build_instance",
    "BoxConstraints",
    # Dynamics
    "PointMassVehicle",
    # Telemetry
    "TickRecord",
    "Trajectory",
    "TELEMETRY_HEADER",
]
