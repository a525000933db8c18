"""
cruisempc Solver Interface
==========================

Adapter between a bound horizon problem and scipy.optimize.

Only equality constraints g(z) = 0 and box bounds on z are handed to the
backend. Two strategies satisfy the same contract:

- Method.SQP: SLSQP, an SQP method with an inner least-squares QP
- Method.INTERIOR_POINT: trust-constr on the whole horizon NLP, exact Hessian

Backends work on scaled variables y with z = offset + scale * y, where
the offset puts every state at the current velocity. The cost is
quadratic with a constant diagonal Hessian, so it is passed as its
exact expansion around the offset with the constant term dropped.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import numpy as np
from scipy.optimize import Bounds, LinearConstraint, minimize

from .config import Method, SolverOptions
from .result import SolveResult, Status

if TYPE_CHECKING:
    from .mpc.problem import ProblemInstance

logger = logging.getLogger(__name__)


# SLSQP exit modes
_SLSQP_SUCCESS = 0
_SLSQP_INFEASIBLE = (2, 4)
_SLSQP_LINESEARCH = 8
_SLSQP_ITERATION_LIMIT = 9

# trust-constr statuses
_TRUST_CONSTR_CONVERGED = (1, 2)
_TRUST_CONSTR_ITERATION_LIMIT = 0


@dataclass
class _ScaledProblem:
    """
    Horizon problem in scaled variables y, z = offset + scale * y.

    Attributes:
        scale: Per-variable scale (2N+1,)
        offset: Per-variable origin (2N+1,)
        grad0: Cost gradient at the offset, scaled
        hess: Diagonal cost Hessian, scaled
        A: Equality Jacobian, scaled (dense)
        b: Equality right-hand side, scaled
        lb, ub: Bounds on y
        y0: Initial guess in y
    """
    scale: np.ndarray
    offset: np.ndarray
    grad0: np.ndarray
    hess: np.ndarray
    A: np.ndarray
    b: np.ndarray
    lb: np.ndarray
    ub: np.ndarray
    y0: np.ndarray

    @classmethod
    def build(cls, instance: "ProblemInstance", scaling: bool) -> "_ScaledProblem":
        problem = instance.problem
        v0 = instance.current_velocity

        if scaling:
            scale = problem.variable_scale()
            offset = problem.variable_offset(v0)
            cost_scale = problem.cost_scale(v0)
        else:
            scale = np.ones(problem.n_vars)
            offset = np.zeros(problem.n_vars)
            cost_scale = 1.0

        # equality rows are velocity differences, scaled like the states
        row_scale = scale[0]
        A = problem.equality_jacobian()

        return cls(
            scale=scale,
            offset=offset,
            grad0=problem.cost_gradient(offset) * scale / cost_scale,
            hess=problem.cost_hessian() * scale ** 2 / cost_scale,
            A=A.toarray() * scale[np.newaxis, :] / row_scale,
            b=(instance.equality_rhs() - A @ offset) / row_scale,
            lb=(instance.lb - offset) / scale,
            ub=(instance.ub - offset) / scale,
            y0=(instance.initial_guess - offset) / scale,
        )

    def objective(self, y: np.ndarray) -> float:
        return float(self.grad0 @ y + 0.5 * (self.hess * y) @ y)

    def gradient(self, y: np.ndarray) -> np.ndarray:
        return self.grad0 + self.hess * y

    def equality(self, y: np.ndarray) -> np.ndarray:
        return self.A @ y - self.b

    def unscale(self, y: np.ndarray) -> np.ndarray:
        return self.offset + self.scale * y


def solve(
    instance: "ProblemInstance",
    options: Optional[SolverOptions] = None,
) -> SolveResult:
    """
    Solve one bound horizon problem.

    Args:
        instance: Problem bound to the current velocity and a guess
        options: Backend strategy and budgets (default: SolverOptions())

    Returns:
        SolveResult; ``status.is_successful`` tells whether ``x`` may be
        applied. Backend failures are reported through the status, never
        raised.
    """
    options = options or SolverOptions()
    start_time = time.perf_counter()

    try:
        scaled = _ScaledProblem.build(instance, options.scaling)
        if options.method == Method.SQP:
            result = _solve_sqp(instance, scaled, options)
        else:
            result = _solve_interior_point(instance, scaled, options)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        logger.debug("backend %s raised: %s", options.method, e)
        result = SolveResult(
            status=Status.NUMERICAL_ERROR,
            objective=float("nan"),
            x=instance.initial_guess.copy(),
            iterations=0,
            solve_time=0.0,
            message=f"{type(e).__name__}: {e}",
        )

    result.method = str(options.method)
    result.solve_time = time.perf_counter() - start_time

    _check_solution(instance, options, result)

    if options.time_limit is not None and result.solve_time > options.time_limit:
        if result.status.is_successful:
            result.status = Status.TIME_LIMIT
            result.message = (
                f"solve took {result.solve_time:.4f}s, "
                f"limit {options.time_limit:.4f}s"
            )

    logger.debug(
        "%s solve: status=%s iterations=%d time=%.4fs violation=%.3e",
        options.method,
        result.status,
        result.iterations,
        result.solve_time,
        result.constraint_violation,
    )
    return result


def _solve_sqp(instance, scaled, options):
    """SLSQP on the scaled problem."""
    res = minimize(
        scaled.objective,
        scaled.y0,
        jac=scaled.gradient,
        method="SLSQP",
        bounds=Bounds(scaled.lb, scaled.ub),
        constraints=[{
            "type": "eq",
            "fun": scaled.equality,
            "jac": lambda y: scaled.A,
        }],
        options={
            "maxiter": options.max_iterations,
            "ftol": options.tolerance,
            "disp": options.verbose,
        },
    )

    if res.status == _SLSQP_SUCCESS:
        status = Status.OPTIMAL
    elif res.status == _SLSQP_ITERATION_LIMIT:
        status = Status.MAX_ITERATIONS
    elif res.status in _SLSQP_INFEASIBLE:
        status = Status.INFEASIBLE
    elif res.status == _SLSQP_LINESEARCH:
        # Raised when the guess is already optimal to working precision;
        # accepted only if the point passes the feasibility check.
        status = Status.OPTIMAL
    else:
        status = Status.NUMERICAL_ERROR

    return _to_result(instance, scaled, res, status)


def _solve_interior_point(instance, scaled, options):
    """trust-constr on the scaled problem with the exact Hessian."""
    hess = np.diag(scaled.hess)

    res = minimize(
        scaled.objective,
        scaled.y0,
        jac=scaled.gradient,
        hess=lambda y: hess,
        method="trust-constr",
        bounds=Bounds(scaled.lb, scaled.ub),
        constraints=[LinearConstraint(scaled.A, scaled.b, scaled.b)],
        options={
            "maxiter": options.max_iterations,
            "gtol": options.tolerance,
            "xtol": options.tolerance,
            "verbose": 2 if options.verbose else 0,
        },
    )

    if res.status in _TRUST_CONSTR_CONVERGED:
        status = Status.OPTIMAL
    elif res.status == _TRUST_CONSTR_ITERATION_LIMIT:
        status = Status.MAX_ITERATIONS
    else:
        status = Status.NUMERICAL_ERROR

    return _to_result(instance, scaled, res, status)


def _to_result(instance, scaled, res, status):
    """Unscale a scipy OptimizeResult into a SolveResult."""
    z = scaled.unscale(np.asarray(res.x, dtype=np.float64))

    if not np.all(np.isfinite(z)):
        return SolveResult(
            status=Status.NUMERICAL_ERROR,
            objective=float("nan"),
            x=instance.initial_guess.copy(),
            iterations=int(getattr(res, "nit", 0)),
            solve_time=0.0,
            message="solver returned non-finite values",
        )

    # Undo rounding from unscaling so the bounds hold exactly.
    z = instance.problem.bounds.project(z)

    return SolveResult(
        status=status,
        objective=instance.objective(z),
        x=z,
        iterations=int(getattr(res, "nit", 0)),
        solve_time=0.0,
        message=str(getattr(res, "message", "")),
        problem_info={"backend_status": int(res.status)},
    )


def _check_solution(instance, options, result):
    """Downgrade a success whose point violates the constraints."""
    result.constraint_violation = instance.constraint_violation(result.x)

    if not result.status.is_successful:
        return

    if result.constraint_violation > options.feasibility_tolerance:
        result.status = Status.INFEASIBLE
        result.message = (
            f"constraint violation {result.constraint_violation:.3e} exceeds "
            f"tolerance {options.feasibility_tolerance:.1e} ({result.message})"
        )
