"""
Tests for the quartic kernel.
"""

import numpy as np
import pytest

from sheatmap.kernel import KernelParams, quartic_weight
from sheatmap.qa import ConfigError


class TestQuarticWeight:
    """Tests for w = 15/16 (1 - (d/r)^2)^2."""

    def test_center_weight(self):
        assert quartic_weight(0.0, 7.0) == pytest.approx(15 / 16)

    def test_boundary_weight_is_zero(self):
        assert quartic_weight(7.0, 7.0) == 0.0

    def test_outside_radius_is_zero(self):
        assert quartic_weight(7.5, 7.0) == 0.0

    def test_half_radius(self):
        # (1 - 0.25)^2 * 15/16
        assert quartic_weight(0.5, 1.0) == pytest.approx(0.5625 * 0.9375)

    def test_monotonic_non_increasing(self):
        d = np.linspace(0.0, 3.0, 301)
        w = quartic_weight(d, 3.0)
        assert np.all(np.diff(w) <= 0)
        assert np.all(w >= 0)

    def test_array_input_returns_array(self):
        w = quartic_weight(np.array([0.0, 1.0, 2.0]), 1.0)
        np.testing.assert_allclose(w, [0.9375, 0.0, 0.0])


class TestKernelParams:
    """Tests for kernel parameter validation."""

    @pytest.mark.parametrize("radius", [0.0, -1.0, float("nan"), float("inf")])
    def test_rejects_bad_radius(self, radius):
        with pytest.raises(ConfigError):
            KernelParams(radius=radius)

    def test_planar_native_radius(self):
        assert KernelParams(radius=25.0).radius_native == 25.0

    def test_geographic_native_radius(self):
        params = KernelParams(radius=220_000.0, geographic=True)
        assert params.radius_native == pytest.approx(2.0)
        assert params.radius_sq == pytest.approx(220_000.0 ** 2)
