"""Input validation utilities."""

import math
from typing import Any, Optional

import numpy as np

from ..exceptions import ConfigurationError, DimensionError, InvalidInputError


def check_finite(name: str, value: Any) -> float:
    """Return value as float, raising ConfigurationError if not finite."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}")
    return value


def check_positive(name: str, value: Any) -> float:
    """Return value as float, raising ConfigurationError unless > 0."""
    value = check_finite(name, value)
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def validate_vector(
    name: str,
    vector: Any,
    length: int,
    lb: Optional[np.ndarray] = None,
    ub: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Validate a runtime vector (warm-start guess, solution).

    Returns:
        float64 copy of the vector, projected onto [lb, ub] if given
    """
    vector = np.array(vector, dtype=np.float64).ravel()

    if len(vector) != length:
        raise DimensionError(f"{name} has {len(vector)} elements, expected {length}")

    if not np.all(np.isfinite(vector)):
        raise InvalidInputError(f"{name} contains NaN or infinite values")

    if lb is not None or ub is not None:
        vector = np.clip(vector, lb, ub)

    return vector


def validate_measurement(name: str, value: Any) -> float:
    """Validate a scalar runtime measurement such as a velocity."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {value}")
    return value
