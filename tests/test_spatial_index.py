"""
Tests for the bulk-loaded point index.
"""

import numpy as np
import pytest

from sheatmap.spatial_index import PointIndex, build_index


def _as_set(coords):
    return {tuple(p) for p in np.asarray(coords).tolist()}


class TestBuild:
    """Tests for index construction."""

    def test_empty_index(self):
        index = PointIndex.build([])
        assert len(index) == 0
        assert index.bounds is None
        assert index.query_envelope((-1e9, -1e9), (1e9, 1e9)).shape == (0, 2)
        assert len(index.query_indices((0.0, 0.0), (1.0, 1.0))) == 0

    def test_bounds(self):
        index = build_index([(1.0, 5.0), (-2.0, 3.0), (4.0, -1.0)])
        assert index.bounds == (-2.0, 4.0, -1.0, 5.0)

    def test_coords_are_read_only(self):
        index = build_index(np.array([[0.0, 0.0], [1.0, 1.0]]))
        with pytest.raises(ValueError):
            index.coords[0, 0] = 99.0

    def test_index_is_independent_of_source_array(self):
        points = np.array([[0.0, 0.0], [1.0, 1.0]])
        index = build_index(points)
        points[0, 0] = 50.0
        assert _as_set(index.query_envelope((-0.5, -0.5), (0.5, 0.5))) == {(0.0, 0.0)}


class TestQueryEnvelope:
    """Tests for envelope queries."""

    @pytest.fixture
    def grid_index(self):
        xs, ys = np.meshgrid(np.arange(10, dtype=float), np.arange(10, dtype=float))
        return build_index(np.column_stack([xs.ravel(), ys.ravel()]))

    def test_bounds_are_inclusive(self, grid_index):
        found = grid_index.query_envelope((2.0, 3.0), (4.0, 3.0))
        assert _as_set(found) == {(2.0, 3.0), (3.0, 3.0), (4.0, 3.0)}

    def test_matches_brute_force(self):
        rng = np.random.default_rng(7)
        points = rng.uniform(-100, 100, (2000, 2))
        index = build_index(points)

        for _ in range(50):
            lo = rng.uniform(-120, 80, 2)
            hi = lo + rng.uniform(0, 60, 2)
            mask = (
                (points[:, 0] >= lo[0]) & (points[:, 0] <= hi[0])
                & (points[:, 1] >= lo[1]) & (points[:, 1] <= hi[1])
            )
            found = index.query_envelope(tuple(lo), tuple(hi))
            assert _as_set(found) == _as_set(points[mask])

    def test_envelope_outside_data(self, grid_index):
        assert len(grid_index.query_envelope((100.0, 100.0), (200.0, 200.0))) == 0

    def test_duplicate_points_are_all_returned(self):
        index = build_index([(1.0, 1.0), (1.0, 1.0), (1.0, 1.0)])
        assert len(index.query_indices((0.0, 0.0), (2.0, 2.0))) == 3

    def test_query_has_no_side_effects(self, grid_index):
        first = sorted(grid_index.query_indices((1.0, 1.0), (5.0, 5.0)).tolist())
        second = sorted(grid_index.query_indices((1.0, 1.0), (5.0, 5.0)).tolist())
        assert first == second
        assert len(grid_index) == 100
