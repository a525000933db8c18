"""
Vehicle Dynamics Model
======================

Longitudinal point-mass model used by MPC.

Continuous: dv/dt = u / m
Discrete:   v_{k+1} = v_k + (u_k / m) * dt   (forward Euler)

The horizon problem's dynamics constraints and the closed-loop plant
update both go through ``PointMassVehicle.step``, so the predicted and
simulated trajectories use the identical formula.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union
import numpy as np

from ..exceptions import ConfigurationError

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class PointMassVehicle:
    """
    Point-mass vehicle driven by a longitudinal force.

    State: velocity v (m/s)
    Input: force u (N)

    Args:
        mass: Vehicle mass (kg)

    Example:
        >>> vehicle = PointMassVehicle(mass=1500.0)
        >>> vehicle.rate(0.0, 3000.0)
        2.0
        >>> vehicle.step(0.0, 3000.0, dt=0.1)
        0.2
    """
    mass: float

    def __post_init__(self):
        """Validate mass."""
        if not np.isfinite(self.mass) or self.mass <= 0:
            raise ConfigurationError(f"mass must be positive, got {self.mass}")

    def rate(self, v: ArrayLike, u: ArrayLike) -> ArrayLike:
        """
        Velocity rate of change.

        Args:
            v: Velocity (unused by this model, kept for the f(x, u) signature)
            u: Applied force

        Returns:
            dv/dt, broadcast over array inputs
        """
        return u / self.mass

    def step(self, v: ArrayLike, u: ArrayLike, dt: float) -> ArrayLike:
        """
        One forward Euler step.

        Args:
            v: Current velocity
            u: Force held over the step
            dt: Step length

        Returns:
            Velocity after dt
        """
        return v + self.rate(v, u) * dt

    def step_partials(self, dt: float) -> Tuple[float, float]:
        """
        Partial derivatives of ``step`` with respect to (v, u).

        The model is linear, so these are constants.
        """
        return 1.0, dt / self.mass

    def simulate(self, v0: float, controls: np.ndarray, dt: float) -> np.ndarray:
        """
        Simulate the model over a sequence of forces.

        Args:
            v0: Initial velocity
            controls: Force sequence (N,)
            dt: Step length

        Returns:
            Velocity trajectory (N+1,) including the initial velocity
        """
        controls = np.asarray(controls, dtype=np.float64).ravel()

        N = len(controls)
        trajectory = np.zeros(N + 1)
        trajectory[0] = v0

        for k in range(N):
            trajectory[k + 1] = self.step(trajectory[k], controls[k], dt)

        return trajectory

    def max_acceleration(self, u_min: float, u_max: float) -> float:
        """Largest achievable |dv/dt| under the given force bounds."""
        return max(abs(u_min), abs(u_max)) / self.mass
