"""Validation and unit conversion helpers."""

from .units import kmh_to_ms, ms_to_kmh
from .validation import check_finite, check_positive, validate_vector

__all__ = [
    "kmh_to_ms",
    "ms_to_kmh",
    "check_finite",
    "check_positive",
    "validate_vector",
]
