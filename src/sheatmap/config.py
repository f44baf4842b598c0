"""
Run configuration.

Values are layered: command-line arguments override the `heatmap:` and
`logging:` sections of a params YAML file, which override built-in defaults.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from rasterio.crs import CRS
from rasterio.errors import CRSError

from sheatmap.grid import DEFAULT_PROGRESS_EVERY
from sheatmap.io_utils import read_yaml
from sheatmap.paths import default_logs_dir, default_params_path
from sheatmap.qa import ConfigError

DEFAULT_RADIUS = 10.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class HeatmapConfig:
    """Everything a heatmap run needs, resolved from CLI and params file."""
    input_path: Path
    output_path: Path
    resolution: Tuple[float, float]
    radius: float = DEFAULT_RADIUS
    xmin: Optional[float] = None
    xmax: Optional[float] = None
    ymin: Optional[float] = None
    ymax: Optional[float] = None
    assume_geographic: bool = False
    progress_every: int = DEFAULT_PROGRESS_EVERY
    crs: Optional[str] = None
    write_metadata: bool = False
    skip_unchanged: bool = False
    log_dir: Optional[Path] = None
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def bounds(self) -> Dict[str, Optional[float]]:
        """User bound overrides, None where the data extent applies."""
        return {"xmin": self.xmin, "xmax": self.xmax, "ymin": self.ymin, "ymax": self.ymax}

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe view of the parameters that determine the output."""
        return {
            "input_path": str(self.input_path),
            "output_path": str(self.output_path),
            "resolution": list(self.resolution),
            "radius": self.radius,
            **self.bounds,
            "assume_geographic": self.assume_geographic,
            "crs": self.crs,
        }


def load_params(path: Optional[Union[str, Path]] = None) -> dict:
    """
    Load a params YAML file.

    Args:
        path: Explicit params file. If None, configs/params.yml under the
            working directory is used when it exists.

    Returns:
        Parsed params dictionary ({} when no file applies)

    Raises:
        FileNotFoundError: If an explicit path does not exist
    """
    if path is None:
        path = default_params_path()
        if not path.exists():
            return {}

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Params file not found: {path}")
    return read_yaml(path)


def check_crs(crs: Optional[str]) -> Optional[str]:
    """
    Validate a CRS tag for raster output.

    Raises:
        ConfigError: If rasterio cannot interpret the tag
    """
    if crs is None:
        return None
    try:
        CRS.from_user_input(crs)
    except CRSError as exc:
        raise ConfigError(f"Invalid CRS {crs!r}: {exc}") from exc
    return str(crs)


def _pick(cli_value, file_value, default):
    if cli_value is not None:
        return cli_value
    if file_value is not None:
        return file_value
    return default


def build_config(args, params: Optional[dict] = None) -> HeatmapConfig:
    """
    Merge parsed CLI arguments with params file values.

    Args:
        args: argparse.Namespace from the sheatmap CLI
        params: Parsed params file (see load_params)

    Returns:
        HeatmapConfig

    Raises:
        ConfigError: If the CRS tag is not recognised
    """
    params = params or {}
    heat = params.get("heatmap") or {}
    log = params.get("logging") or {}

    log_dir = args.log_dir
    if log_dir is None and log.get("jsonl"):
        log_dir = default_logs_dir()

    xres, yres = args.res

    return HeatmapConfig(
        input_path=Path(args.input),
        output_path=Path(args.output),
        resolution=(float(xres), float(yres)),
        radius=float(_pick(args.radius, heat.get("radius"), DEFAULT_RADIUS)),
        xmin=args.xmin,
        xmax=args.xmax,
        ymin=args.ymin,
        ymax=args.ymax,
        assume_geographic=bool(args.assume_lat_lon),
        progress_every=int(heat.get("progress_every") or DEFAULT_PROGRESS_EVERY),
        crs=check_crs(_pick(args.crs, heat.get("crs"), None)),
        write_metadata=bool(args.metadata),
        skip_unchanged=bool(args.skip_unchanged),
        log_dir=Path(log_dir) if log_dir is not None else None,
        log_level=str(_pick(args.log_level, log.get("level"), DEFAULT_LOG_LEVEL)).upper(),
    )
