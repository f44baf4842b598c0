"""
End-to-end heatmap run: points in, density grid out.

Steps:
1. Validate kernel parameters
2. Read points and bulk-load the spatial index
3. Resolve grid extent and resolution
4. Sweep the grid, streaming rows to the XYZ or GeoTIFF sink
5. Log metrics and optionally write the metadata file
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sheatmap.config import HeatmapConfig
from sheatmap.extent import GridSpec, data_extent, resolve_grid_spec
from sheatmap.grid import EvaluationSummary, GridEvaluator
from sheatmap.hashing import RunMetadata, config_digest, is_up_to_date, write_run_metadata
from sheatmap.io_utils import XYZWriter, read_points
from sheatmap.kernel import KernelParams
from sheatmap.raster_utils import (
    GEOGRAPHIC_CRS,
    GeoTiffWriter,
    is_geotiff_path,
    raster_stats,
    read_raster_metadata,
)
from sheatmap.spatial_index import PointIndex


@dataclass
class HeatmapResult:
    """Outcome of a heatmap run."""
    output_path: Path
    skipped: bool = False
    point_count: int = 0
    grid: Optional[GridSpec] = None
    summary: Optional[EvaluationSummary] = None
    metadata_path: Optional[Path] = None


def output_crs(config: HeatmapConfig) -> Optional[str]:
    """CRS tag for raster output: explicit, else WGS84 in geographic mode."""
    if config.crs:
        return config.crs
    return GEOGRAPHIC_CRS if config.assume_geographic else None


def open_sink(config: HeatmapConfig, grid: GridSpec):
    """Pick the output writer from the output file extension."""
    if is_geotiff_path(config.output_path):
        return GeoTiffWriter(config.output_path, grid, crs=output_crs(config))
    return XYZWriter(config.output_path)


def run_heatmap(config: HeatmapConfig, logger) -> HeatmapResult:
    """
    Build a density grid from the configured input and write it out.

    Args:
        config: Resolved run configuration
        logger: JSONLLogger instance

    Returns:
        HeatmapResult

    Raises:
        ConfigError: Invalid radius, resolution or extent
        ParseError: Malformed input record
        OSError: Input or output file failure
    """
    inputs = {"points": str(config.input_path)}
    run_config = config.to_dict()
    logger.log_config(run_config, config_digest(config))
    logger.log_inputs(inputs)

    if config.skip_unchanged and is_up_to_date(config):
        logger.info(f"{config.output_path} is up to date, skipping")
        return HeatmapResult(output_path=config.output_path, skipped=True)

    kernel = KernelParams(radius=config.radius, geographic=config.assume_geographic)

    logger.info(f"Reading points from {config.input_path}")
    points = read_points(config.input_path)
    logger.info(f"Read in {len(points)} points")

    index = PointIndex.build(points)
    grid = resolve_grid_spec(data_extent(points), config.resolution, kernel, **config.bounds)
    logger.info(
        f"Grid: {grid.width} x {grid.height} cells, "
        f"x {grid.xmin}..{grid.xmax}, y {grid.ymin}..{grid.ymax}"
    )

    evaluator = GridEvaluator(
        index, grid, kernel,
        progress_every=config.progress_every,
        logger=logger,
    )
    with open_sink(config, grid) as sink:
        summary = evaluator.run(sink)
    logger.info("finished")

    logger.log_outputs({"grid": str(config.output_path)})
    logger.log_metrics({
        "point_count": len(points),
        "grid": grid.to_dict(),
        **summary.to_dict(),
    })
    if is_geotiff_path(config.output_path):
        logger.log_raster_stats(raster_stats(read_raster_metadata(config.output_path)))

    result = HeatmapResult(
        output_path=config.output_path,
        point_count=len(points),
        grid=grid,
        summary=summary,
    )

    if config.write_metadata or config.skip_unchanged:
        metadata = RunMetadata.from_run(config, grid, len(points), summary, logger.run_id)
        result.metadata_path = write_run_metadata(metadata)
        logger.info(f"Wrote metadata file {result.metadata_path}")

    return result
