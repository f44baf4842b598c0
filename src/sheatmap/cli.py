"""
Command-line entry point: `sheatmap -i points.csv -o heat.xyz -R 10 10`.
"""

import argparse
import sys
from importlib.metadata import PackageNotFoundError, version
from typing import List, Optional

import yaml

from sheatmap.config import build_config, load_params
from sheatmap.heatmap import run_heatmap
from sheatmap.logging_utils import get_logger
from sheatmap.qa import ConfigError, ParseError


def _package_version() -> str:
    try:
        return version("sheatmap")
    except PackageNotFoundError:
        return "unknown"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheatmap",
        description="Create heatmaps: kernel density of CSV points on a regular grid",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {_package_version()}")
    parser.add_argument("-i", "--input", required=True, metavar="INPUT.csv",
                        help="Input CSV file; x and y are the first two fields")
    parser.add_argument("-o", "--output", required=True, metavar="OUTPUT.xyz",
                        help="Output XYZ ASCII grid file (.tif/.tiff writes a GeoTIFF)")
    parser.add_argument("--xmin", type=float, default=None)
    parser.add_argument("--xmax", type=float, default=None)
    parser.add_argument("--ymin", type=float, default=None)
    parser.add_argument("--ymax", type=float, default=None)
    parser.add_argument("-R", "--res", type=float, nargs=2, required=True,
                        metavar=("XRES", "YRES"),
                        help="Resolution of image, in meters")
    parser.add_argument("-r", "--radius", type=float, default=None,
                        help="Radius value for heatmap, in meters (default: 10)")
    parser.add_argument("--assume-lat-lon", action="store_true",
                        help="Treat x/y as longitude/latitude degrees and use great-circle distance")
    parser.add_argument("--crs", default=None,
                        help="CRS tag for GeoTIFF output (e.g. EPSG:3857)")
    parser.add_argument("--config", default=None,
                        help="Params YAML file (default: ./configs/params.yml if present)")
    parser.add_argument("--metadata", action="store_true",
                        help="Write a <output stem>_metadata.json provenance file")
    parser.add_argument("--skip-unchanged", action="store_true",
                        help="Skip the run if output, input hash and config are unchanged")
    parser.add_argument("--log-dir", default=None,
                        help="Directory for a JSONL run log")
    parser.add_argument("--log-level", default=None,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the CLI.

    Returns:
        0 on success, 1 on a parse, config or I/O error
    """
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args, load_params(args.config))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"sheatmap: error: {exc}", file=sys.stderr)
        return 1

    with get_logger("sheatmap", log_dir=config.log_dir, level=config.log_level) as logger:
        try:
            run_heatmap(config, logger)
        except (ParseError, ConfigError, OSError) as exc:
            logger.error(f"{type(exc).__name__}: {exc}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
