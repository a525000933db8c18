"""
Closed-Loop Trajectories
========================

Per-tick telemetry records and the closed-loop history they add up to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional
import numpy as np

from ..result import Status
from ..utils.units import ms_to_kmh

TELEMETRY_HEADER = "Time | Velocity | Control Input"


@dataclass(frozen=True)
class TickRecord:
    """
    Telemetry for one control tick.

    Attributes:
        tick: Tick index (0-based)
        time: Elapsed time at the start of the tick (s)
        velocity: Plant velocity after applying the control (m/s)
        control: Applied force (N)
        status: Solver status for the tick
        iterations: Solver iterations
        solve_time: Solver wall-clock time (s)
        degraded: True if a fallback control was applied
    """
    tick: int
    time: float
    velocity: float
    control: float
    status: Status = Status.OPTIMAL
    iterations: int = 0
    solve_time: float = 0.0
    degraded: bool = False

    @property
    def velocity_kmh(self) -> float:
        return ms_to_kmh(self.velocity)

    def format(self) -> str:
        """One telemetry line: elapsed time, velocity (km/h), force (N)."""
        line = "%3.1f s | %6.2f km/h | %7.1f N" % (self.time, self.velocity_kmh, self.control)
        if self.degraded:
            line += f" | degraded ({self.status})"
        return line


@dataclass
class Trajectory:
    """
    Closed-loop history of a control session.

    Args:
        velocities: Plant velocity (T+1,) including the initial velocity
        controls: Applied forces (T,)
        time: Tick start times (T,), optional
        iterations: Solver iterations per tick (T,), optional
        solve_times: Solver wall-clock times per tick (T,), optional
        degraded: Fallback flags per tick (T,), optional

    Example:
        >>> traj = controller.simulate(ticks=200)
        >>> traj.settling_tick(v_ref, band=kmh_to_ms(1.0))
        139
    """
    velocities: np.ndarray
    controls: np.ndarray
    time: Optional[np.ndarray] = None
    iterations: Optional[np.ndarray] = None
    solve_times: Optional[np.ndarray] = None
    degraded: Optional[np.ndarray] = None

    def __post_init__(self):
        """Validate trajectory."""
        self.velocities = np.asarray(self.velocities, dtype=np.float64).ravel()
        self.controls = np.asarray(self.controls, dtype=np.float64).ravel()

        if len(self.velocities) != len(self.controls) + 1:
            raise ValueError(
                f"velocities ({len(self.velocities)}) must have one more "
                f"entry than controls ({len(self.controls)})"
            )

    @property
    def n_ticks(self) -> int:
        """Number of control ticks."""
        return len(self.controls)

    @property
    def initial_velocity(self) -> float:
        return float(self.velocities[0])

    @property
    def final_velocity(self) -> float:
        return float(self.velocities[-1])

    @property
    def velocities_kmh(self) -> np.ndarray:
        return ms_to_kmh(self.velocities)

    @property
    def n_degraded(self) -> int:
        """Number of ticks that applied a fallback control."""
        if self.degraded is None:
            return 0
        return int(np.count_nonzero(self.degraded))

    def tracking_error(self, v_ref: float) -> np.ndarray:
        """|v - v_ref| for every recorded velocity."""
        return np.abs(self.velocities - v_ref)

    def settling_tick(self, v_ref: float, band: float) -> Optional[int]:
        """
        First tick after which the velocity stays within v_ref +/- band.

        Returns:
            Tick index k such that velocities[k+1:] are all inside the
            band, or None if the final velocity is outside it.
        """
        outside = np.nonzero(self.tracking_error(v_ref)[1:] > band)[0]
        if len(outside) == 0:
            return 0
        last = int(outside[-1])
        if last == self.n_ticks - 1:
            return None
        return last + 1

    def overshoot(self, v_ref: float) -> float:
        """
        Largest excursion past v_ref, in the direction of approach.

        Zero if the velocity never crosses the reference.
        """
        if self.initial_velocity <= v_ref:
            return float(max(self.velocities.max() - v_ref, 0.0))
        return float(max(v_ref - self.velocities.min(), 0.0))

    @classmethod
    def from_records(
        cls,
        records: Iterable[TickRecord],
        initial_velocity: float,
    ) -> "Trajectory":
        """Assemble a trajectory from tick records in chronological order."""
        records: List[TickRecord] = list(records)

        velocities = np.empty(len(records) + 1)
        velocities[0] = initial_velocity
        velocities[1:] = [r.velocity for r in records]

        return cls(
            velocities=velocities,
            controls=np.array([r.control for r in records], dtype=np.float64),
            time=np.array([r.time for r in records], dtype=np.float64),
            iterations=np.array([r.iterations for r in records], dtype=np.int64),
            solve_times=np.array([r.solve_time for r in records], dtype=np.float64),
            degraded=np.array([r.degraded for r in records], dtype=bool),
        )
