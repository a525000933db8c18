"""
cruisempc Exception Classes
===========================

Custom exceptions for cruisempc error handling.

Configuration problems are detected before the control loop starts;
solver failures are raised per tick and carry the tick index, the
solver status and whatever diagnostic the backend reported.
"""

from typing import Optional

from .result import Status


class CruiseMPCError(Exception):
    """Base exception for all cruisempc errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigurationError(CruiseMPCError, ValueError):
    """
    Raised when a horizon, solver or run configuration is invalid.

    Examples: non-positive horizon or time step, inverted force bounds.
    Never raised once a control session is running.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid configuration: {message}")


class DimensionError(CruiseMPCError):
    """
    Raised when a decision vector or guess has the wrong length.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Dimension mismatch: {message}")


class InvalidInputError(CruiseMPCError):
    """
    Raised when runtime input data is invalid.

    Examples: NaN velocity measurement, infinite warm-start entries.
    """

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid input: {message}")


class SolveFailure(CruiseMPCError):
    """
    Raised when the solver produced no usable solution for a tick.

    Attributes:
        status: Solver status that caused the failure
        tick: Control tick index (None outside the control loop)
        diagnostic: Backend message, if any
    """

    default_status = Status.NUMERICAL_ERROR

    def __init__(
        self,
        diagnostic: str = "",
        status: Optional[Status] = None,
        tick: Optional[int] = None,
        iterations: Optional[int] = None,
    ) -> None:
        self.status = status if status is not None else self.default_status
        self.tick = tick
        self.diagnostic = diagnostic
        self.iterations = iterations

        where = f"tick {tick}: " if tick is not None else ""
        message = f"{where}solve failed ({self.status})"
        if diagnostic:
            message += f": {diagnostic}"
        super().__init__(message)


class InfeasibleError(SolveFailure):
    """
    Raised when no decision vector satisfies the constraints.

    Also raised when the backend reports success but the returned
    vector violates the dynamics or bounds beyond tolerance.
    """

    default_status = Status.INFEASIBLE


class IterationLimitError(SolveFailure):
    """Raised when the solver exhausts its iteration budget."""

    default_status = Status.MAX_ITERATIONS


class NumericalError(SolveFailure):
    """
    Raised when numerical issues are encountered.

    This may indicate ill-conditioning, a failed line search or
    divergence of the iterates.
    """

    default_status = Status.NUMERICAL_ERROR


class DeadlineExceededError(SolveFailure):
    """
    Raised when a solve overran its wall-clock budget.

    The solution arrived too late to be applied in an online loop.
    """

    default_status = Status.TIME_LIMIT


_FAILURES = {
    Status.INFEASIBLE: InfeasibleError,
    Status.MAX_ITERATIONS: IterationLimitError,
    Status.NUMERICAL_ERROR: NumericalError,
    Status.TIME_LIMIT: DeadlineExceededError,
}


def failure_for(
    status: Status,
    diagnostic: str = "",
    tick: Optional[int] = None,
    iterations: Optional[int] = None,
) -> SolveFailure:
    """Build the SolveFailure subclass matching a failed status."""
    cls = _FAILURES.get(status, SolveFailure)
    return cls(diagnostic, status=status, tick=tick, iterations=iterations)
