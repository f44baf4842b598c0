"""
Coordinate unit conversion and distance metrics.

Two coordinate modes are supported:
- Planar: coordinates are already in meters, distances are Euclidean.
- Geographic: coordinates are (longitude, latitude) in degrees, distances are
  great-circle meters on a sphere of mean Earth radius.

Meter-to-degree conversion is a fixed approximation used only to size query
windows and grid extents. The exact metric decides which points count.
"""

import math
from typing import List, Sequence, Tuple, Union

import numpy as np

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE = 110_000.0

ArrayLike = Union[float, np.ndarray]
Envelope = Tuple[Tuple[float, float], Tuple[float, float]]


def to_native_units(geographic: bool, meters: float) -> float:
    """
    Convert a length in meters to the coordinate units of the data.

    Args:
        geographic: True if coordinates are lat/lon degrees
        meters: Length in meters

    Returns:
        The same length in native units (identity when planar)

    Example:
        >>> to_native_units(True, 110_000.0)
        1.0
    """
    if geographic:
        return meters / METERS_PER_DEGREE
    return meters


def planar_distance_sq(x1: ArrayLike, y1: ArrayLike, x2: ArrayLike, y2: ArrayLike) -> ArrayLike:
    """Squared Euclidean distance, broadcasting over numpy arrays."""
    return (np.asarray(x1) - x2) ** 2 + (np.asarray(y1) - y2) ** 2


def great_circle_distance(lon1: ArrayLike, lat1: ArrayLike, lon2: ArrayLike, lat2: ArrayLike) -> ArrayLike:
    """
    Great-circle distance in meters via the chord length between two points.

    Formula (θ = latitude, Δφ = longitude difference, radians):
        dz = sin θ1 - sin θ2
        dx = cos Δφ · cos θ1 - cos θ2
        dy = sin Δφ · cos θ1
        d  = 2R · asin(sqrt(dx² + dy² + dz²) / 2)

    The asin argument is clipped to [0, 1]; near the antipode the result is
    only as precise as the floating rounding of the chord allows.

    Args:
        lon1, lat1: First point(s) in degrees
        lon2, lat2: Second point(s) in degrees

    Returns:
        Distance(s) in meters
    """
    dphi = np.radians(np.asarray(lon1) - lon2)
    th1 = np.radians(lat1)
    th2 = np.radians(lat2)

    dz = np.sin(th1) - np.sin(th2)
    dx = np.cos(dphi) * np.cos(th1) - np.cos(th2)
    dy = np.sin(dphi) * np.cos(th1)

    half_chord = np.sqrt(dx * dx + dy * dy + dz * dz) / 2.0
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.clip(half_chord, 0.0, 1.0))


def distance(geographic: bool, p1: Sequence[float], p2: Sequence[float]) -> float:
    """
    Distance in meters between two (x, y) points.

    Args:
        geographic: True for great-circle distance on (lon, lat) degrees,
            False for Euclidean distance
        p1: First point as (x, y)
        p2: Second point as (x, y)

    Returns:
        Distance in meters
    """
    if geographic:
        return float(great_circle_distance(p1[0], p1[1], p2[0], p2[1]))
    return float(np.sqrt(planar_distance_sq(p1[0], p1[1], p2[0], p2[1])))


def query_half_widths(geographic: bool, radius: float, lat: float) -> Tuple[float, float]:
    """
    Half-widths (x, y) of a query window that contains every point within radius.

    In geographic mode the longitude half-width is stretched by the cosine of
    the highest latitude the window reaches, so the window stays a superset
    of the exact great-circle disc away from the equator.

    Args:
        geographic: True if coordinates are lat/lon degrees
        radius: Radius in meters
        lat: Latitude of the window center (ignored when planar)

    Returns:
        Tuple of (x_half_width, y_half_width) in native units
    """
    dy = to_native_units(geographic, radius)
    if not geographic:
        return dy, dy

    lat_extreme = abs(lat) + dy
    if lat_extreme >= 90.0:
        return 180.0, dy

    dx = dy / math.cos(math.radians(lat_extreme))
    return min(dx, 180.0), dy


def query_envelopes(geographic: bool, radius: float, posx: float, posy: float) -> List[Envelope]:
    """
    Broad-phase query windows around a cell center.

    Planar mode yields a single square window. Geographic mode adds copies
    shifted by 360 degrees when the window crosses the antimeridian, for
    longitudes stored in [-180, 180].

    Args:
        geographic: True if coordinates are lat/lon degrees
        radius: Radius in meters
        posx: Cell center x (longitude in geographic mode)
        posy: Cell center y (latitude in geographic mode)

    Returns:
        List of (min_corner, max_corner) envelopes
    """
    dx, dy = query_half_widths(geographic, radius, posy)
    envelopes = [((posx - dx, posy - dy), (posx + dx, posy + dy))]

    if geographic:
        if posx - dx < -180.0:
            envelopes.append(((posx - dx + 360.0, posy - dy), (posx + dx + 360.0, posy + dy)))
        if posx + dx > 180.0:
            envelopes.append(((posx - dx - 360.0, posy - dy), (posx + dx - 360.0, posy + dy)))

    return envelopes
