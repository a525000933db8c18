"""
cruisempc Result Classes
========================

Data classes for solver results and status.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any

import numpy as np


class Status(Enum):
    """
    Solver status codes.

    Attributes:
        OPTIMAL: Converged within tolerance, constraints satisfied
        INFEASIBLE: No feasible point found, or result violates constraints
        MAX_ITERATIONS: Iteration budget exhausted
        TIME_LIMIT: Wall-clock budget exceeded
        NUMERICAL_ERROR: Line search failure, singular subproblem, divergence
        UNSOLVED: Problem not yet solved
    """
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    MAX_ITERATIONS = "max_iterations"
    TIME_LIMIT = "time_limit"
    NUMERICAL_ERROR = "numerical_error"
    UNSOLVED = "unsolved"

    def __str__(self) -> str:
        return self.value

    @property
    def is_successful(self) -> bool:
        """True if a converged, feasible solution was found."""
        return self == Status.OPTIMAL


@dataclass
class SolveResult:
    """
    Result of solving one horizon problem.

    Attributes:
        status: Solver status
        objective: Cost at the returned decision vector
        x: Decision vector [X_0..X_N, U_0..U_{N-1}]
        iterations: Number of iterations performed
        solve_time: Wall clock time in seconds
        constraint_violation: Max abs equality residual or bound excess
        message: Backend diagnostic message

    Example:
        >>> result = solve(instance)
        >>> if result.status.is_successful:
        ...     u0 = result.x[instance.problem.first_control_index]
    """

    status: Status
    objective: float
    x: np.ndarray
    iterations: int
    solve_time: float

    constraint_violation: float = 0.0
    message: str = ""

    # Optional metadata
    method: str = ""
    problem_info: Dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return (
            f"SolveResult(status={self.status}, "
            f"objective={self.objective:.6g}, "
            f"iterations={self.iterations}, "
            f"time={self.solve_time:.4f}s)"
        )

    def raise_for_status(self, tick: Optional[int] = None) -> None:
        """
        Raise the matching SolveFailure if the solve did not succeed.

        Args:
            tick: Control tick index to report in the error
        """
        if self.status.is_successful:
            return

        from .exceptions import failure_for
        raise failure_for(
            self.status,
            diagnostic=self.message,
            tick=tick,
            iterations=self.iterations,
        )

    def summary(self) -> str:
        """Return a formatted summary of the solve result."""
        lines = [
            "=" * 50,
            "cruisempc Solve Summary",
            "=" * 50,
            f"Status:           {self.status}",
            f"Method:           {self.method}",
            f"Objective:        {self.objective:.10g}",
            f"Iterations:       {self.iterations}",
            f"Solve time:       {self.solve_time:.4f} s",
            "-" * 50,
            f"Max violation:    {self.constraint_violation:.6e}",
            f"Message:          {self.message}",
            "=" * 50,
        ]
        return "\n".join(lines)
