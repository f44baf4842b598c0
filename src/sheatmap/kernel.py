"""
Quartic (biweight) kernel and kernel parameters.

The kernel yields a raw weighted count, not a normalised probability
density: there is no division by bandwidth or point count.
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

from sheatmap.qa import assert_positive
from sheatmap.units import to_native_units

QUARTIC_SCALE = 15.0 / 16.0


def quartic_weight(
    distance: Union[float, np.ndarray],
    radius: float,
) -> Union[float, np.ndarray]:
    """
    Quartic kernel weight for distance(s) from a cell center.

    Formula: w = 15/16 · (1 - (d/r)²)² for d <= r, else 0

    Args:
        distance: Distance(s) in meters
        radius: Kernel radius in meters

    Returns:
        Weight(s); 15/16 at d = 0 and exactly 0 at d = radius

    Example:
        >>> quartic_weight(0.0, 1.0)
        0.9375
    """
    d = np.asarray(distance, dtype=float)
    u = 1.0 - (d / radius) ** 2
    w = np.where(d <= radius, QUARTIC_SCALE * u * u, 0.0)
    if w.ndim == 0:
        return float(w)
    return w


@dataclass(frozen=True)
class KernelParams:
    """Kernel radius in meters and the coordinate mode it is applied in."""
    radius: float
    geographic: bool = False

    def __post_init__(self):
        object.__setattr__(self, "radius", assert_positive(self.radius, "radius"))

    @property
    def radius_native(self) -> float:
        """Approximate radius in coordinate units, for query windows and extents."""
        return to_native_units(self.geographic, self.radius)

    @property
    def radius_sq(self) -> float:
        return self.radius * self.radius
