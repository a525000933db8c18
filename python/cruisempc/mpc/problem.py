"""
Horizon Problem Builder
=======================

Finite-horizon speed tracking problem for one control tick.

Decision variables: z = [X_0, ..., X_N, U_0, ..., U_{N-1}]

    minimize    Σ_{k=0}^{N-1} [(X_k - v_ref)^2 + λ U_k^2] + w_N (X_N - v_ref)^2
    subject to  X_0 = v_current
                X_{k+1} = X_k + (U_k / m) dt,     k = 0..N-1
                u_min <= U_k <= u_max

The structure (cost, Jacobian, bounds) is built once per HorizonSpec.
The current velocity is the only quantity that changes between ticks and
is injected with ``HorizonProblem.bind``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import numpy as np
from scipy import sparse

from ..config import HorizonSpec
from ..utils.validation import validate_measurement, validate_vector
from .constraints import BoxConstraints


class HorizonProblem:
    """
    Cost and constraint callables for a HorizonSpec.

    Args:
        spec: Horizon definition

    Example:
        >>> problem = HorizonProblem(HorizonSpec())
        >>> instance = problem.bind(current_velocity=0.0)
        >>> result = solve(instance)
    """

    def __init__(self, spec: HorizonSpec) -> None:
        self.spec = spec
        self.vehicle = spec.vehicle
        self.bounds = BoxConstraints.for_horizon(spec)

        self._build_cost()
        self._build_constraints()

    @property
    def horizon(self) -> int:
        return self.spec.horizon

    @property
    def n_vars(self) -> int:
        return self.spec.n_vars

    @property
    def n_eq(self) -> int:
        """Initial condition plus N dynamics rows."""
        return self.spec.horizon + 1

    @property
    def first_control_index(self) -> int:
        return self.spec.first_control_index

    def _build_cost(self):
        """Constant diagonal Hessian of the quadratic cost."""
        N = self.horizon
        hess = np.zeros(self.n_vars)
        hess[:N] = 2.0
        hess[N] = 2.0 * self.spec.terminal_weight
        hess[N + 1:] = 2.0 * self.spec.control_weight
        self._hess_diag = hess

    def _build_constraints(self):
        """
        Build the constant equality Jacobian.

        Row 0:    X_0                                (= v_current)
        Row k+1:  X_{k+1} - dv X_k - du U_k          (= 0)

        with (dv, du) the partials of the shared Euler step.
        """
        N = self.horizon
        dv, du = self.vehicle.step_partials(self.spec.dt)

        rows = [0]
        cols = [0]
        data = [1.0]

        for k in range(N):
            row = k + 1

            rows.append(row)
            cols.append(k + 1)
            data.append(1.0)

            rows.append(row)
            cols.append(k)
            data.append(-dv)

            rows.append(row)
            cols.append(N + 1 + k)
            data.append(-du)

        self._A_eq = sparse.csr_matrix(
            (data, (rows, cols)),
            shape=(self.n_eq, self.n_vars)
        )

    def split(self, z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Split a decision vector into (velocities (N+1,), forces (N,))."""
        N = self.horizon
        return z[:N + 1], z[N + 1:]

    def first_control(self, z: np.ndarray) -> float:
        """U_0, the action applied for the current tick."""
        return float(z[self.first_control_index])

    def cost(self, z: np.ndarray) -> float:
        """Tracking cost J(z)."""
        N = self.horizon
        X, U = self.split(z)
        err = X[:N] - self.spec.v_ref
        terminal = X[N] - self.spec.v_ref
        return float(
            err @ err
            + self.spec.control_weight * (U @ U)
            + self.spec.terminal_weight * terminal ** 2
        )

    def cost_gradient(self, z: np.ndarray) -> np.ndarray:
        """Gradient of J."""
        offset = np.zeros(self.n_vars)
        offset[:self.horizon + 1] = self.spec.v_ref
        return self._hess_diag * (z - offset)

    def cost_hessian(self) -> np.ndarray:
        """Diagonal of the constant Hessian of J."""
        return self._hess_diag.copy()

    def equality(self, z: np.ndarray, current_velocity: float) -> np.ndarray:
        """
        Equality residual g(z) of length N+1.

        g[0] = X_0 - v_current, g[k+1] = X_{k+1} - step(X_k, U_k).
        """
        X, U = self.split(z)
        residual = np.empty(self.n_eq)
        residual[0] = X[0] - current_velocity
        residual[1:] = X[1:] - self.vehicle.step(X[:-1], U, self.spec.dt)
        return residual

    def equality_jacobian(self) -> sparse.csr_matrix:
        """Constant Jacobian of g."""
        return self._A_eq

    def equality_rhs(self, current_velocity: float) -> np.ndarray:
        """b such that g(z) = A z - b."""
        b = np.zeros(self.n_eq)
        b[0] = current_velocity
        return b

    def variable_scale(self) -> np.ndarray:
        """
        Natural magnitude of each decision variable.

        States scale with the velocity change one full-force step can
        produce; controls with the force span.
        """
        u_span = max(abs(self.spec.u_min), abs(self.spec.u_max))
        if u_span > 0:
            u_scale = u_span
            x_scale = self.vehicle.max_acceleration(self.spec.u_min, self.spec.u_max) * self.spec.dt
        else:
            # zero actuation authority, nothing to balance
            u_scale = x_scale = 1.0

        scale = np.empty(self.n_vars)
        scale[:self.horizon + 1] = x_scale
        scale[self.horizon + 1:] = u_scale
        return scale

    def variable_offset(self, current_velocity: float) -> np.ndarray:
        """
        Origin of the scaled variables: every state at the current
        velocity, every force at zero.

        Measured from here, a feasible state is at most N full-force
        steps away, whatever the velocity magnitude.
        """
        offset = np.zeros(self.n_vars)
        offset[:self.horizon + 1] = current_velocity
        return offset

    def cost_scale(self, current_velocity: Optional[float] = None) -> float:
        """
        Normalizer for the cost measured from ``variable_offset``.

        N * x_scale * max(x_scale, |v_ref - v|): cost changes are of order
        one per stage in scaled variables, both near the reference and
        when the tracking error is many full-force steps away.
        """
        x_scale = self.variable_scale()[0]
        gap = 0.0 if current_velocity is None else abs(self.spec.v_ref - current_velocity)
        return self.horizon * x_scale * max(x_scale, gap)

    def zero_guess(self) -> np.ndarray:
        """Cold-start guess."""
        return np.zeros(self.n_vars)

    def shift(self, z: np.ndarray) -> np.ndarray:
        """
        Shift a solution one step forward, repeating the last entries.

        The result is a guess for the horizon starting one tick later.
        """
        X, U = self.split(np.asarray(z, dtype=np.float64))
        X_next = np.concatenate([X[1:], X[-1:]])
        U_next = np.concatenate([U[1:], U[-1:]])
        return np.concatenate([X_next, U_next])

    def bind(
        self,
        current_velocity: float,
        initial_guess: Optional[np.ndarray] = None,
    ) -> "ProblemInstance":
        """
        Bind the current velocity and a guess to this problem.

        Args:
            current_velocity: Measured/estimated velocity (m/s)
            initial_guess: Decision vector guess (default: zeros)

        Returns:
            ProblemInstance ready for the solver
        """
        current_velocity = validate_measurement("current_velocity", current_velocity)

        if initial_guess is None:
            guess = self.zero_guess()
        else:
            guess = validate_vector(
                "initial_guess", initial_guess, self.n_vars,
                lb=self.bounds.lb, ub=self.bounds.ub,
            )

        return ProblemInstance(
            problem=self,
            current_velocity=current_velocity,
            initial_guess=guess,
        )


@dataclass
class ProblemInstance:
    """
    A HorizonProblem bound to one current velocity and one guess.

    Tick-scoped: created once per control tick and discarded after the
    solve.

    Attributes:
        problem: Shared problem structure
        current_velocity: Injected initial condition X_0
        initial_guess: Warm-start decision vector, within bounds
    """
    problem: HorizonProblem
    current_velocity: float
    initial_guess: np.ndarray

    @property
    def spec(self) -> HorizonSpec:
        return self.problem.spec

    @property
    def lb(self) -> np.ndarray:
        return self.problem.bounds.lb

    @property
    def ub(self) -> np.ndarray:
        return self.problem.bounds.ub

    def objective(self, z: np.ndarray) -> float:
        return self.problem.cost(z)

    def gradient(self, z: np.ndarray) -> np.ndarray:
        return self.problem.cost_gradient(z)

    def equality(self, z: np.ndarray) -> np.ndarray:
        return self.problem.equality(z, self.current_velocity)

    def equality_jacobian(self) -> sparse.csr_matrix:
        return self.problem.equality_jacobian()

    def equality_rhs(self) -> np.ndarray:
        return self.problem.equality_rhs(self.current_velocity)

    def constraint_violation(self, z: np.ndarray) -> float:
        """Max abs equality residual or bound excess at z."""
        eq = np.abs(self.equality(z)).max()
        return float(max(eq, self.problem.bounds.violation(z)))


def build_instance(
    spec: HorizonSpec,
    current_velocity: float,
    initial_guess: Optional[np.ndarray] = None,
) -> ProblemInstance:
    """
    Rebuild the whole horizon problem and bind it.

    Equivalent to ``HorizonProblem(spec).bind(...)``; used when the
    structure is not kept between ticks.
    """
    return HorizonProblem(spec).bind(current_velocity, initial_guess)
