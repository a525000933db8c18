"""
MPC Bounds
==========

Box bounds on the horizon decision vector.

States carry no bounds (-inf/+inf); controls are boxed by the actuation
limits u_min <= U_k <= u_max.
"""

from __future__ import annotations

from dataclasses import dataclass
import numpy as np


@dataclass
class BoxConstraints:
    """
    Per-variable bounds lb <= z <= ub.

    Args:
        lower: Lower bounds, -inf where unbounded
        upper: Upper bounds, +inf where unbounded

    Example:
        >>> box = BoxConstraints.for_horizon(HorizonSpec(horizon=20))
        >>> box.is_satisfied(np.zeros(41))
        True
    """
    lower: np.ndarray
    upper: np.ndarray

    def __post_init__(self):
        self.lower = np.asarray(self.lower, dtype=np.float64).ravel()
        self.upper = np.asarray(self.upper, dtype=np.float64).ravel()

        if self.lower.shape != self.upper.shape:
            raise ValueError(
                f"lower ({len(self.lower)}) and upper ({len(self.upper)}) "
                f"must have same length"
            )
        if (self.lower > self.upper).any():
            raise ValueError("lower must not exceed upper")

    @property
    def dim(self) -> int:
        return len(self.lower)

    @property
    def lb(self) -> np.ndarray:
        return self.lower

    @property
    def ub(self) -> np.ndarray:
        return self.upper

    def is_satisfied(self, z: np.ndarray, tol: float = 0.0) -> bool:
        """Check if z lies in the box, up to tol."""
        return bool((z >= self.lower - tol).all() and (z <= self.upper + tol).all())

    def project(self, z: np.ndarray) -> np.ndarray:
        """Clip z into the box."""
        return np.clip(z, self.lower, self.upper)

    def violation(self, z: np.ndarray) -> float:
        """Largest distance of any entry outside its bounds (0 inside)."""
        if self.dim == 0:
            return 0.0
        excess = np.maximum(self.lower - z, z - self.upper)
        return float(max(excess.max(), 0.0))

    @classmethod
    def for_horizon(cls, spec) -> "BoxConstraints":
        """
        Bounds for the full decision vector of a HorizonSpec.

        z = [X_0, ..., X_N, U_0, ..., U_{N-1}]
        """
        lower = np.concatenate([
            np.full(spec.n_states, -np.inf),
            np.full(spec.n_controls, spec.u_min),
        ])
        upper = np.concatenate([
            np.full(spec.n_states, np.inf),
            np.full(spec.n_controls, spec.u_max),
        ])
        return cls(lower, upper)
