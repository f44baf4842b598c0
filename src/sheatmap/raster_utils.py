"""
GeoTIFF output for density grids.

Rows are written one window at a time as the evaluator produces them, so
the raster sink streams exactly like the XYZ text sink. The raster is
north-up: grid row 0 (ymin) is the last raster row.
"""

import sys
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import rasterio
from rasterio.crs import CRS
from rasterio.transform import from_origin
from rasterio.windows import Window

from sheatmap.extent import GridSpec
from sheatmap.io_utils import atomic_path
from sheatmap.qa import ConfigError

GEOTIFF_SUFFIXES = (".tif", ".tiff")
GEOGRAPHIC_CRS = "EPSG:4326"


@dataclass
class RasterMetadata:
    """Metadata for a raster file."""
    path: Path
    crs: Optional[CRS]
    bounds: Tuple[float, float, float, float]  # (left, bottom, right, top)
    width: int
    height: int
    count: int  # number of bands
    dtype: str
    nodata: Optional[float]
    transform: Any  # Affine transform

    @property
    def resolution(self) -> Tuple[float, float]:
        """Get pixel resolution (x, y)."""
        return abs(self.transform.a), abs(self.transform.e)


def read_raster_metadata(path: Union[str, Path]) -> RasterMetadata:
    """
    Read raster metadata without loading the full array.

    Args:
        path: Path to raster file

    Returns:
        RasterMetadata object
    """
    path = Path(path)

    with rasterio.open(path) as src:
        return RasterMetadata(
            path=path,
            crs=src.crs,
            bounds=tuple(src.bounds),
            width=src.width,
            height=src.height,
            count=src.count,
            dtype=str(src.dtypes[0]),
            nodata=src.nodata,
            transform=src.transform,
        )


def raster_stats(meta: RasterMetadata) -> Dict[str, Any]:
    """Summary of a written raster for the run log."""
    return {
        "raster_path": str(meta.path),
        "raster_crs": str(meta.crs) if meta.crs else None,
        "raster_bounds": meta.bounds,
        "raster_resolution": meta.resolution,
        "raster_size": (meta.width, meta.height),
        "raster_dtype": meta.dtype,
    }


def grid_transform(grid: GridSpec):
    """
    Affine transform placing each pixel center on its grid cell center.

    Cell centers run from xmin and ymin in steps of xres and yres, so the
    raster edges sit half a cell outside them.
    """
    west = grid.xmin - grid.xres / 2.0
    north = grid.ymin + (grid.height - 0.5) * grid.yres
    return from_origin(west, north, grid.xres, grid.yres)


def is_geotiff_path(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in GEOTIFF_SUFFIXES


class GeoTiffWriter:
    """
    Streaming single-band float64 GeoTIFF sink.

    Usage:
        with GeoTiffWriter("heat.tif", grid, crs="EPSG:4326") as sink:
            evaluator.run(sink)
    """

    def __init__(
        self,
        path: Union[str, Path],
        grid: GridSpec,
        crs: Optional[str] = None,
    ):
        self.path = Path(path)
        self.grid = grid
        self.crs = crs
        self._stack = ExitStack()
        self._dst = None

    def __enter__(self) -> "GeoTiffWriter":
        if self.grid.width == 0 or self.grid.height == 0:
            raise ConfigError(
                f"GeoTIFF output needs a non-empty grid, got "
                f"{self.grid.width} x {self.grid.height}"
            )

        try:
            temp_path = self._stack.enter_context(atomic_path(self.path))
            self._dst = self._stack.enter_context(rasterio.open(
                temp_path,
                "w",
                driver="GTiff",
                width=self.grid.width,
                height=self.grid.height,
                count=1,
                dtype="float64",
                crs=self.crs,
                transform=grid_transform(self.grid),
            ))
        except BaseException:
            self._stack.__exit__(*sys.exc_info())
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self._dst = None
        return self._stack.__exit__(exc_type, exc_val, exc_tb)

    def write_header(self) -> None:
        """Rasters carry their layout in the file profile; nothing to write."""

    def write_row(self, result) -> None:
        """Write one RowResult into its (flipped) raster row."""
        raster_row = self.grid.height - 1 - result.row
        window = Window(0, raster_row, self.grid.width, 1)
        self._dst.write(result.values.reshape(1, -1), 1, window=window)
