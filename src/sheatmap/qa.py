"""
Error types and validation checks for heatmap inputs and parameters.

Every check raises instead of repairing: a malformed record or an unusable
parameter aborts the whole run.
"""

from typing import Optional

import numpy as np


class ParseError(ValueError):
    """Raised when an input record has a missing or non-numeric coordinate."""
    pass


class ConfigError(ValueError):
    """Raised when run parameters cannot produce a valid grid."""
    pass


def assert_positive(value: float, name: str) -> float:
    """
    Assert that a parameter is a finite, strictly positive number.

    Args:
        value: Value to check
        name: Parameter name for the error message

    Returns:
        The value as float

    Raises:
        ConfigError: If value is not finite or not > 0
    """
    value = float(value)
    if not np.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


def assert_finite(value: float, name: str) -> float:
    """Assert that a parameter is a finite number."""
    value = float(value)
    if not np.isfinite(value):
        raise ConfigError(f"{name} must be finite, got {value}")
    return value


def assert_ordered(lo: float, hi: float, axis: str) -> None:
    """
    Assert that an extent is not inverted.

    Raises:
        ConfigError: If hi < lo
    """
    if hi < lo:
        raise ConfigError(
            f"Degenerate extent: {axis}max ({hi}) is smaller than {axis}min ({lo})"
        )


def first_invalid_row(values: np.ndarray) -> Optional[int]:
    """
    Find the first row holding a NaN or infinite coordinate.

    Args:
        values: Array of shape (n, 2)

    Returns:
        Row position, or None if every coordinate is finite
    """
    bad = ~np.isfinite(values).all(axis=1)
    if not bad.any():
        return None
    return int(np.argmax(bad))
