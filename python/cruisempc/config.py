"""
cruisempc Configuration
=======================

Typed configuration for a speed-control session.

- HorizonSpec: the immutable finite-horizon problem definition
- SolverOptions: numerical strategy and budgets for the solver adapter

Defaults reproduce the reference cruise scenario: a 1500 kg vehicle
accelerating from rest to 100 km/h with +/-3000 N of actuation, a
20-step horizon at 0.1 s.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .exceptions import ConfigurationError
from .utils.units import kmh_to_ms
from .utils.validation import check_finite, check_positive


DEFAULT_HORIZON = 20
DEFAULT_DT = 0.1
DEFAULT_MASS = 1500.0
DEFAULT_V_REF = kmh_to_ms(100.0)
DEFAULT_U_MIN = -3000.0
DEFAULT_U_MAX = 3000.0
DEFAULT_CONTROL_WEIGHT = 1e-7
DEFAULT_TICKS = 200


@dataclass(frozen=True)
class HorizonSpec:
    """
    Finite-horizon speed tracking problem definition.

    Read-only for the lifetime of a control session and safe to share
    between controllers.

    Args:
        horizon: Number of prediction steps N
        dt: Discretization step (seconds)
        mass: Vehicle mass (kg)
        v_ref: Target velocity (m/s)
        u_min: Lower force bound (N)
        u_max: Upper force bound (N)
        control_weight: Penalty lambda on U_k^2
        terminal_weight: Penalty on (X_N - v_ref)^2, zero by default

    Example:
        >>> spec = HorizonSpec(horizon=20, dt=0.1, v_ref=kmh_to_ms(100))
        >>> spec.n_vars
        41
    """
    horizon: int = DEFAULT_HORIZON
    dt: float = DEFAULT_DT
    mass: float = DEFAULT_MASS
    v_ref: float = DEFAULT_V_REF
    u_min: float = DEFAULT_U_MIN
    u_max: float = DEFAULT_U_MAX
    control_weight: float = DEFAULT_CONTROL_WEIGHT
    terminal_weight: float = 0.0
    _vehicle: Any = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        """Validate and normalize fields."""
        # PointMassVehicle lives in mpc, which imports this module
        from .mpc.dynamics import PointMassVehicle

        if isinstance(self.horizon, bool) or int(self.horizon) != self.horizon:
            raise ConfigurationError(f"horizon must be an integer, got {self.horizon!r}")
        if self.horizon <= 0:
            raise ConfigurationError(f"horizon must be positive, got {self.horizon}")

        # frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "horizon", int(self.horizon))
        object.__setattr__(self, "dt", check_positive("dt", self.dt))
        object.__setattr__(self, "mass", check_positive("mass", self.mass))
        object.__setattr__(self, "v_ref", check_finite("v_ref", self.v_ref))
        object.__setattr__(self, "u_min", check_finite("u_min", self.u_min))
        object.__setattr__(self, "u_max", check_finite("u_max", self.u_max))

        if self.u_min > self.u_max:
            raise ConfigurationError(
                f"u_min ({self.u_min}) must not exceed u_max ({self.u_max})"
            )

        for name in ("control_weight", "terminal_weight"):
            value = check_finite(name, getattr(self, name))
            if value < 0:
                raise ConfigurationError(f"{name} must be non-negative, got {value}")
            object.__setattr__(self, name, value)

        object.__setattr__(self, "_vehicle", PointMassVehicle(self.mass))

    @property
    def n_states(self) -> int:
        """Number of predicted velocities (N+1)."""
        return self.horizon + 1

    @property
    def n_controls(self) -> int:
        """Number of control forces (N)."""
        return self.horizon

    @property
    def n_vars(self) -> int:
        """Decision vector length (2N+1)."""
        return self.n_states + self.n_controls

    @property
    def first_control_index(self) -> int:
        """Index of U_0 in the decision vector."""
        return self.horizon + 1

    @property
    def u_bounds(self):
        """(u_min, u_max) tuple."""
        return self.u_min, self.u_max

    @property
    def vehicle(self):
        """Dynamics model shared by the horizon problem and the plant."""
        return self._vehicle


class Method(Enum):
    """
    Numerical strategy used by the solver adapter.

    Attributes:
        SQP: Sequential quadratic programming (scipy SLSQP)
        INTERIOR_POINT: Whole-horizon NLP with exact Hessian (scipy trust-constr)
    """
    SQP = "sqp"
    INTERIOR_POINT = "interior_point"

    def __str__(self) -> str:
        return self.value


# (max_iterations, tolerance) per backend
_METHOD_DEFAULTS = {
    Method.SQP: (500, 1e-9),
    Method.INTERIOR_POINT: (3000, 1e-8),
}


@dataclass(frozen=True)
class SolverOptions:
    """
    Solver adapter options.

    Args:
        method: Backend strategy
        max_iterations: Iteration budget per solve (None: backend default)
        tolerance: Convergence tolerance passed to the backend
            (None: backend default)
        feasibility_tolerance: Max accepted equality residual / bound excess
        time_limit: Wall-clock budget per solve in seconds (None: no limit)
        scaling: Solve in scaled variables (states by per-step velocity
            authority, controls by the force span)
        verbose: Forward backend progress output to stdout

    Example:
        >>> options = SolverOptions(method="interior_point", time_limit=0.05)
        >>> options.max_iterations
        3000
    """
    method: Method = Method.SQP
    max_iterations: Optional[int] = None
    tolerance: Optional[float] = None
    feasibility_tolerance: float = 1e-6
    time_limit: Optional[float] = None
    scaling: bool = True
    verbose: bool = False

    def __post_init__(self):
        """Validate options and fill backend defaults."""
        try:
            object.__setattr__(self, "method", Method(self.method))
        except ValueError:
            choices = ", ".join(m.value for m in Method)
            raise ConfigurationError(f"method must be one of {choices}, got {self.method!r}")

        default_iters, default_tol = _METHOD_DEFAULTS[self.method]

        if self.max_iterations is None:
            object.__setattr__(self, "max_iterations", default_iters)
        elif (
            isinstance(self.max_iterations, bool)
            or int(self.max_iterations) != self.max_iterations
            or self.max_iterations <= 0
        ):
            raise ConfigurationError(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        object.__setattr__(self, "max_iterations", int(self.max_iterations))

        if self.tolerance is None:
            object.__setattr__(self, "tolerance", default_tol)
        object.__setattr__(self, "tolerance", check_positive("tolerance", self.tolerance))
        object.__setattr__(
            self,
            "feasibility_tolerance",
            check_positive("feasibility_tolerance", self.feasibility_tolerance),
        )
        if self.time_limit is not None:
            object.__setattr__(self, "time_limit", check_positive("time_limit", self.time_limit))
