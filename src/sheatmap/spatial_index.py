"""
Immutable 2D point index for envelope queries.

The index is bulk-loaded once with a Sort-Tile-Recursive R-tree
(shapely.STRtree) and never modified afterwards, so it can be shared
read-only by any number of queries.
"""

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import shapely

logger = logging.getLogger(__name__)

Corner = Tuple[float, float]


class PointIndex:
    """
    Bulk-loaded R-tree over a fixed set of (x, y) points.

    Query results are exactly the indexed points inside the envelope,
    bounds inclusive. Result order is unspecified.

    Usage:
        index = PointIndex.build(points)
        nearby = index.query_envelope((0.0, 0.0), (10.0, 10.0))
    """

    def __init__(self, coords: np.ndarray, tree: Optional[shapely.STRtree]):
        """Use PointIndex.build() instead of calling this directly."""
        self._coords = coords
        self._tree = tree

    @classmethod
    def build(cls, points: Sequence[Sequence[float]]) -> "PointIndex":
        """
        Bulk-load an index from all points at once.

        Args:
            points: Array-like of shape (n, 2); n may be 0

        Returns:
            Immutable PointIndex
        """
        coords = np.array(points, dtype=float).reshape(-1, 2)
        coords.setflags(write=False)

        if len(coords) == 0:
            logger.debug("Built empty point index")
            return cls(coords, None)

        tree = shapely.STRtree(shapely.points(coords))
        logger.debug(f"Built point index with {len(coords)} entries")
        return cls(coords, tree)

    def __len__(self) -> int:
        return len(self._coords)

    @property
    def coords(self) -> np.ndarray:
        """Read-only (n, 2) array of indexed coordinates."""
        return self._coords

    @property
    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """Data extent as (xmin, xmax, ymin, ymax), or None for an empty index."""
        if len(self._coords) == 0:
            return None
        xmin, ymin = self._coords.min(axis=0)
        xmax, ymax = self._coords.max(axis=0)
        return float(xmin), float(xmax), float(ymin), float(ymax)

    def query_indices(self, min_corner: Corner, max_corner: Corner) -> np.ndarray:
        """
        Positions of the points inside an envelope.

        Args:
            min_corner: (xmin, ymin) of the envelope
            max_corner: (xmax, ymax) of the envelope

        Returns:
            Integer array of point positions, unordered
        """
        if self._tree is None:
            return np.empty(0, dtype=np.intp)

        minx, miny = min_corner
        maxx, maxy = max_corner
        candidates = self._tree.query(shapely.box(minx, miny, maxx, maxy))

        # STRtree matches on bounding boxes; re-check against the exact bounds
        xs = self._coords[candidates, 0]
        ys = self._coords[candidates, 1]
        inside = (xs >= minx) & (xs <= maxx) & (ys >= miny) & (ys <= maxy)
        return candidates[inside]

    def query_envelope(self, min_corner: Corner, max_corner: Corner) -> np.ndarray:
        """
        Points inside an envelope.

        Args:
            min_corner: (xmin, ymin) of the envelope
            max_corner: (xmax, ymax) of the envelope

        Returns:
            Array of shape (k, 2) with the matching coordinates
        """
        return self._coords[self.query_indices(min_corner, max_corner)]


def build_index(points: Sequence[Sequence[float]]) -> PointIndex:
    """Bulk-load a PointIndex; see PointIndex.build."""
    return PointIndex.build(points)
