"""
Default file locations for a heatmap run.

Defaults resolve against the directory the run is started from, never the
install location: `configs/params.yml` and `logs/` under the working
directory.
"""

from pathlib import Path
from typing import Optional

CONFIG_DIRNAME = "configs"
PARAMS_FILENAME = "params.yml"
LOGS_DIRNAME = "logs"


def default_params_path(base_dir: Optional[Path] = None) -> Path:
    """Params file used when --config is not given."""
    return Path(base_dir or Path.cwd()) / CONFIG_DIRNAME / PARAMS_FILENAME


def default_logs_dir(base_dir: Optional[Path] = None) -> Path:
    """JSONL log directory used when `logging.jsonl` is on and --log-dir is not given."""
    return Path(base_dir or Path.cwd()) / LOGS_DIRNAME
