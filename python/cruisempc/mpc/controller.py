"""
MPC Controllers
===============

Receding-horizon speed controller.

Each tick:

1. inject the current velocity into the horizon problem
2. solve with the warm-start guess
3. apply U_0 (index N+1 of the decision vector)
4. advance the plant with the same Euler step and dt as the horizon
5. carry the solution forward as the next guess

Classes:
- RecedingHorizonController: the control loop
- MPCResult: one solved horizon
- ControllerState: velocity and warm start carried between ticks
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Optional
import numpy as np

from ..config import DEFAULT_TICKS, HorizonSpec, SolverOptions
from ..exceptions import ConfigurationError, SolveFailure, failure_for
from ..result import Status
from ..solver import solve
from ..utils.validation import validate_measurement
from .problem import HorizonProblem, ProblemInstance, build_instance
from .trajectory import TickRecord, Trajectory

logger = logging.getLogger(__name__)


class WarmStart(Enum):
    """
    Initial guess handed to the solver each tick.

    Attributes:
        COLD: Zero vector every tick
        PREVIOUS: Last solution as returned
        SHIFTED: Last solution shifted one step, tail repeated
    """
    COLD = "cold"
    PREVIOUS = "previous"
    SHIFTED = "shifted"

    def __str__(self) -> str:
        return self.value


class FailurePolicy(Enum):
    """
    What a tick does when the solver fails.

    Attributes:
        RAISE: Raise the SolveFailure and stop the loop
        HOLD: Re-apply the previous control, flag the tick degraded
        COAST: Apply zero force (clipped to bounds), flag the tick degraded
    """
    RAISE = "raise"
    HOLD = "hold"
    COAST = "coast"

    def __str__(self) -> str:
        return self.value


@dataclass
class MPCResult:
    """
    MPC solution result.

    Attributes:
        x: Predicted velocity trajectory (N+1,)
        u: Optimal force sequence (N,)
        z: Full decision vector (2N+1,)
        cost: Optimal cost value
        status: Solver status
        solve_time: Computation time (seconds)
        iterations: Solver iterations
    """
    x: np.ndarray
    u: np.ndarray
    z: np.ndarray
    cost: float
    status: str
    solve_time: float
    iterations: int

    @property
    def optimal_control(self) -> float:
        """First control action to apply."""
        return float(self.u[0])

    @property
    def predicted_trajectory(self) -> np.ndarray:
        """Predicted velocity trajectory (N+1,)."""
        return self.x

    @property
    def is_optimal(self) -> bool:
        """Whether solution is optimal."""
        return self.status == str(Status.OPTIMAL)

    def __repr__(self) -> str:
        return (
            f"MPCResult(\n"
            f"  status={self.status},\n"
            f"  cost={self.cost:.4f},\n"
            f"  solve_time={self.solve_time*1000:.2f}ms,\n"
            f"  horizon={len(self.u)}\n"
            f")"
        )

    @classmethod
    def from_solve(cls, problem: HorizonProblem, result) -> "MPCResult":
        """Split a successful SolveResult into velocities and forces."""
        x_traj, u_seq = problem.split(result.x)
        return cls(
            x=x_traj.copy(),
            u=u_seq.copy(),
            z=result.x,
            cost=result.objective,
            status=str(result.status),
            solve_time=result.solve_time,
            iterations=result.iterations,
        )


@dataclass
class ControllerState:
    """
    Mutable state of one control session.

    Owned exclusively by its controller.

    Attributes:
        velocity: Current plant velocity (m/s)
        guess: Warm-start decision vector for the next solve
        tick: Index of the next tick
        last_control: Force applied on the previous tick
        degraded: Whether the previous tick used a fallback control
    """
    velocity: float
    guess: np.ndarray
    tick: int = 0
    last_control: float = 0.0
    degraded: bool = False


class RecedingHorizonController:
    """
    Receding-horizon speed controller.

    Solves the horizon problem every tick and applies only the first
    force. The plant model is the same ``PointMassVehicle.step`` the
    horizon problem uses for its dynamics constraints.

    Args:
        spec: Horizon definition (default: reference cruise scenario)
        options: Solver adapter options
        warm_start: Guess strategy between ticks
        failure_policy: Reaction to a failed solve
        rebuild_each_tick: Rebuild the problem structure every tick
            instead of re-binding the current velocity
        initial_velocity: Plant velocity at tick 0 (m/s)

    Example:
        >>> controller = RecedingHorizonController(HorizonSpec())
        >>> for record in controller.run(ticks=200):
        ...     print(record.format())
    """

    def __init__(
        self,
        spec: Optional[HorizonSpec] = None,
        options: Optional[SolverOptions] = None,
        warm_start: WarmStart = WarmStart.PREVIOUS,
        failure_policy: FailurePolicy = FailurePolicy.RAISE,
        rebuild_each_tick: bool = False,
        initial_velocity: float = 0.0,
    ) -> None:
        self.spec = spec if spec is not None else HorizonSpec()
        self.options = options if options is not None else SolverOptions()

        try:
            self.warm_start = WarmStart(warm_start)
        except ValueError:
            raise ConfigurationError(f"unknown warm start {warm_start!r}")
        try:
            self.failure_policy = FailurePolicy(failure_policy)
        except ValueError:
            raise ConfigurationError(f"unknown failure policy {failure_policy!r}")

        self.rebuild_each_tick = rebuild_each_tick
        self.vehicle = self.spec.vehicle
        self.problem = HorizonProblem(self.spec)

        self.state = self._initial_state(initial_velocity)

    def _initial_state(self, velocity: float) -> ControllerState:
        return ControllerState(
            velocity=validate_measurement("initial_velocity", velocity),
            guess=self.problem.zero_guess(),
        )

    def reset(self, velocity: float = 0.0) -> None:
        """Start a new session from the given velocity."""
        self.state = self._initial_state(velocity)

    def bind(
        self,
        velocity: float,
        guess: Optional[np.ndarray] = None,
    ) -> ProblemInstance:
        """Bind (or rebuild) the horizon problem for the given velocity."""
        if self.rebuild_each_tick:
            return build_instance(self.spec, velocity, guess)
        return self.problem.bind(velocity, guess)

    def solve(
        self,
        velocity: float,
        guess: Optional[np.ndarray] = None,
        tick: Optional[int] = None,
    ) -> MPCResult:
        """
        Solve the horizon problem from a velocity without touching state.

        Args:
            velocity: Current velocity (m/s)
            guess: Initial guess (default: zeros)
            tick: Tick index to report on failure

        Returns:
            MPCResult with predicted velocities and forces

        Raises:
            SolveFailure: if the solver did not converge to a feasible point
        """
        instance = self.bind(velocity, guess)
        result = solve(instance, self.options)
        result.raise_for_status(tick)
        return MPCResult.from_solve(instance.problem, result)

    def step(self, measured_velocity: Optional[float] = None) -> TickRecord:
        """
        Run one control tick.

        Args:
            measured_velocity: External velocity measurement replacing the
                internal plant velocity (streaming use)

        Returns:
            TickRecord with the applied force and the updated velocity

        Raises:
            SolveFailure: if the solve fails and the policy is RAISE; the
                controller state, including the velocity, is left as it
                was before the tick
        """
        state = self.state
        if measured_velocity is not None:
            velocity = validate_measurement("measured_velocity", measured_velocity)
        else:
            velocity = state.velocity

        tick = state.tick

        instance = self.bind(velocity, state.guess)
        result = solve(instance, self.options)

        if result.status.is_successful:
            control = instance.problem.first_control(result.x)
            state.guess = self._next_guess(result.x)
            degraded = False
        else:
            failure = failure_for(
                result.status,
                diagnostic=result.message,
                tick=tick,
                iterations=result.iterations,
            )
            control = self._fallback(failure)
            state.guess = self.problem.zero_guess()
            degraded = True

        next_velocity = float(self.vehicle.step(velocity, control, self.spec.dt))

        record = TickRecord(
            tick=tick,
            time=tick * self.spec.dt,
            velocity=next_velocity,
            control=control,
            status=result.status,
            iterations=result.iterations,
            solve_time=result.solve_time,
            degraded=degraded,
        )

        state.velocity = next_velocity
        state.last_control = control
        state.degraded = degraded
        state.tick += 1

        logger.debug(
            "tick %d: v=%.4f m/s u=%.2f N status=%s iterations=%d",
            tick, next_velocity, control, result.status, result.iterations,
        )
        return record

    def _next_guess(self, z: np.ndarray) -> np.ndarray:
        if self.warm_start == WarmStart.COLD:
            return self.problem.zero_guess()
        if self.warm_start == WarmStart.SHIFTED:
            return self.problem.shift(z)
        return z.copy()

    def _fallback(self, failure: SolveFailure) -> float:
        """Control applied for a failed tick, or raise under RAISE."""
        if self.failure_policy == FailurePolicy.RAISE:
            raise failure

        if self.failure_policy == FailurePolicy.HOLD:
            control = self.state.last_control
        else:
            control = 0.0
        control = float(np.clip(control, self.spec.u_min, self.spec.u_max))

        logger.warning(
            "%s; applying %s fallback of %.1f N", failure, self.failure_policy, control
        )
        return control

    def run(self, ticks: Optional[int] = DEFAULT_TICKS) -> Iterator[TickRecord]:
        """
        Run the loop on the internal plant model.

        Args:
            ticks: Number of ticks, or None to run until the caller stops
                iterating

        Yields:
            TickRecord per tick, in order
        """
        if ticks is None:
            counter = itertools.count()
        else:
            if isinstance(ticks, bool) or int(ticks) != ticks or ticks < 0:
                raise ConfigurationError(f"ticks must be a non-negative integer, got {ticks!r}")
            counter = range(int(ticks))

        for _ in counter:
            yield self.step()

    def stream(self, measurements: Iterable[float]) -> Iterator[TickRecord]:
        """
        Drive the loop from an external velocity feed.

        Each measurement replaces the plant velocity before the tick is
        solved; the loop ends when the feed does.
        """
        for measured in measurements:
            yield self.step(measured_velocity=measured)

    def simulate(self, ticks: int = DEFAULT_TICKS) -> Trajectory:
        """
        Simulate closed-loop control from the current state.

        Args:
            ticks: Number of ticks

        Returns:
            Trajectory with velocities, forces and solver statistics
        """
        if ticks is None:
            raise ConfigurationError("simulate needs a finite number of ticks")
        initial_velocity = self.state.velocity
        records = list(self.run(ticks))
        return Trajectory.from_records(records, initial_velocity)
