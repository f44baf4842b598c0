"""
Grid extent resolution.

The output grid covers either user-supplied bounds or the data extent
expanded by one (approximate) kernel radius on every side. Each bound is
defaulted independently.

Grid dimensions round extent/resolution half away from zero:
(0..10, res 2) -> 5 columns, (0..9, res 2) -> round(4.5) = 5 rows.
"""

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from sheatmap.kernel import KernelParams
from sheatmap.qa import ConfigError, assert_finite, assert_ordered, assert_positive
from sheatmap.units import to_native_units

Bounds = Tuple[float, float, float, float]  # (xmin, xmax, ymin, ymax)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class GridSpec:
    """Bounds and cell size of the output grid, in native coordinate units."""
    xmin: float
    xmax: float
    ymin: float
    ymax: float
    xres: float
    yres: float

    def __post_init__(self):
        for name in ("xmin", "xmax", "ymin", "ymax"):
            object.__setattr__(self, name, assert_finite(getattr(self, name), name))
        for name in ("xres", "yres"):
            value = float(getattr(self, name))
            if not np.isfinite(value) or value <= 0:
                raise ConfigError(f"resolution must be positive, got {name}={value}")
            object.__setattr__(self, name, value)
        assert_ordered(self.xmin, self.xmax, "x")
        assert_ordered(self.ymin, self.ymax, "y")

    @property
    def width(self) -> int:
        """Number of columns."""
        return round_half_away((self.xmax - self.xmin) / self.xres)

    @property
    def height(self) -> int:
        """Number of rows."""
        return round_half_away((self.ymax - self.ymin) / self.yres)

    @property
    def cell_count(self) -> int:
        return self.width * self.height

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        """Center (posx, posy) of a cell; row 0 is ymin, column 0 is xmin."""
        return self.xmin + col * self.xres, self.ymin + row * self.yres

    def column_positions(self) -> np.ndarray:
        """posx of every column, in column order."""
        return self.xmin + np.arange(self.width, dtype=float) * self.xres

    def to_dict(self) -> dict:
        return {
            "xmin": self.xmin, "xmax": self.xmax,
            "ymin": self.ymin, "ymax": self.ymax,
            "xres": self.xres, "yres": self.yres,
            "width": self.width, "height": self.height,
        }


def data_extent(points: np.ndarray) -> Optional[Bounds]:
    """
    Observed extent of a point set.

    Args:
        points: Array of shape (n, 2)

    Returns:
        (xmin, xmax, ymin, ymax), or None when there are no points
    """
    points = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(points) == 0:
        return None
    xmin, ymin = points.min(axis=0)
    xmax, ymax = points.max(axis=0)
    return float(xmin), float(xmax), float(ymin), float(ymax)


def resolve_grid_spec(
    data_bounds: Optional[Bounds],
    resolution: Tuple[float, float],
    kernel: KernelParams,
    xmin: Optional[float] = None,
    xmax: Optional[float] = None,
    ymin: Optional[float] = None,
    ymax: Optional[float] = None,
) -> GridSpec:
    """
    Resolve the final grid from data extent, user overrides and resolution.

    Each missing bound defaults to the data extent pushed outward by the
    kernel radius in native units.

    Args:
        data_bounds: Observed (xmin, xmax, ymin, ymax), None if no points
        resolution: (xres, yres) in meters
        kernel: Kernel parameters (radius and coordinate mode)
        xmin, xmax, ymin, ymax: Optional bounds in native units

    Returns:
        Validated GridSpec

    Raises:
        ConfigError: If a bound must be inferred from zero points, the
            resolution is not positive, or the extent is inverted
    """
    xres_m, yres_m = resolution
    xres_m = assert_positive(xres_m, "resolution")
    yres_m = assert_positive(yres_m, "resolution")

    overrides = (xmin, xmax, ymin, ymax)
    if any(v is None for v in overrides) and data_bounds is None:
        raise ConfigError("cannot infer extent from zero points")

    pad = kernel.radius_native
    if data_bounds is not None:
        dxmin, dxmax, dymin, dymax = data_bounds
        defaults = (dxmin - pad, dxmax + pad, dymin - pad, dymax + pad)
    else:
        defaults = (None, None, None, None)

    final = [d if v is None else float(v) for v, d in zip(overrides, defaults)]

    return GridSpec(
        xmin=final[0],
        xmax=final[1],
        ymin=final[2],
        ymax=final[3],
        xres=to_native_units(kernel.geographic, xres_m),
        yres=to_native_units(kernel.geographic, yres_m),
    )
