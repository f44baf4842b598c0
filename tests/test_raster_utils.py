"""
Tests for the GeoTIFF sink.
"""

import numpy as np
import pytest
import rasterio

from sheatmap.extent import GridSpec
from sheatmap.grid import GridEvaluator
from sheatmap.kernel import KernelParams
from sheatmap.qa import ConfigError
from sheatmap.raster_utils import (
    GeoTiffWriter,
    grid_transform,
    is_geotiff_path,
    raster_stats,
    read_raster_metadata,
)
from sheatmap.spatial_index import build_index


@pytest.fixture
def grid():
    return GridSpec(xmin=-1, xmax=2, ymin=-1, ymax=1, xres=1, yres=1)


class TestGridTransform:
    """Pixel centers coincide with grid cell centers."""

    def test_pixel_centers(self, grid):
        transform = grid_transform(grid)
        # Bottom-left pixel (last raster row, first column) is cell (row 0, col 0)
        x, y = transform * (0.5, grid.height - 0.5)
        assert (x, y) == pytest.approx(grid.cell_center(0, 0))
        # Top-right pixel is the last grid row and column
        x, y = transform * (grid.width - 0.5, 0.5)
        assert (x, y) == pytest.approx(grid.cell_center(grid.height - 1, grid.width - 1))


class TestGeoTiffWriter:
    """Tests for writing density rows to a GeoTIFF."""

    def test_values_and_orientation(self, tmp_path, grid):
        out = tmp_path / "heat.tif"
        kernel = KernelParams(radius=1.0)
        evaluator = GridEvaluator(build_index([(0.0, 0.0), (1.0, 0.0)]), grid, kernel)

        with GeoTiffWriter(out, grid) as sink:
            evaluator.run(sink)

        with rasterio.open(out) as src:
            band = src.read(1)

        assert band.shape == (2, 3)
        # Raster row 0 is the top (y = 0), raster row 1 is y = -1
        np.testing.assert_allclose(band[0], [0.0, 0.9375, 0.9375])
        np.testing.assert_allclose(band[1], [0.0, 0.0, 0.0])

    def test_metadata(self, tmp_path, grid):
        out = tmp_path / "heat.tif"
        evaluator = GridEvaluator(build_index([(0.0, 0.0)]), grid, KernelParams(radius=1.0))
        with GeoTiffWriter(out, grid, crs="EPSG:4326") as sink:
            evaluator.run(sink)

        meta = read_raster_metadata(out)
        assert (meta.width, meta.height) == (3, 2)
        assert meta.count == 1
        assert meta.dtype == "float64"
        assert meta.resolution == pytest.approx((1.0, 1.0))
        assert meta.bounds == pytest.approx((-1.5, -1.5, 1.5, 0.5))
        assert meta.crs.to_epsg() == 4326

        stats = raster_stats(meta)
        assert stats["raster_size"] == (3, 2)

    def test_empty_grid_rejected(self, tmp_path):
        empty = GridSpec(xmin=0, xmax=0, ymin=0, ymax=1, xres=1, yres=1)
        with pytest.raises(ConfigError):
            with GeoTiffWriter(tmp_path / "heat.tif", empty):
                pass
        assert not (tmp_path / "heat.tif").exists()

    def test_no_file_on_error(self, tmp_path, grid):
        out = tmp_path / "heat.tif"
        with pytest.raises(RuntimeError):
            with GeoTiffWriter(out, grid) as sink:
                sink.write_header()
                raise RuntimeError("boom")
        assert not out.exists()


class TestIsGeotiffPath:

    @pytest.mark.parametrize("name,expected", [
        ("a.tif", True), ("a.TIFF", True), ("a.xyz", False), ("a", False),
    ])
    def test_suffixes(self, name, expected):
        assert is_geotiff_path(name) is expected
