"""
Structured JSONL logging for heatmap runs.

A run logger writes human-readable lines to stderr and, when a log
directory is configured, one JSON object per record to
`<log_dir>/<run_name>_<run_id>.jsonl`. JSONL records carry timestamp, run
name, run_id, level, message and an optional `extra` dict (config, inputs,
outputs, metrics, raster stats, library versions).
"""

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

PAYLOAD_ATTR = "payload"


def generate_run_id() -> str:
    """Generate a unique run ID for this execution."""
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{timestamp}_{uuid.uuid4().hex[:8]}"


def get_versions() -> dict[str, str]:
    """Versions of the libraries that shape a heatmap, for provenance."""
    import numpy
    import pandas
    import rasterio
    import shapely
    import yaml

    return {
        "python": sys.version.split()[0],
        "numpy": numpy.__version__,
        "pandas": pandas.__version__,
        "shapely": shapely.__version__,
        "rasterio": rasterio.__version__,
        "pyyaml": yaml.__version__,
    }


class JSONLFormatter(logging.Formatter):
    """Formats a LogRecord as one JSON line tagged with the run identity."""

    def __init__(self, run_name: str, run_id: str):
        super().__init__()
        self.run_name = run_name
        self.run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "run_name": self.run_name,
            "run_id": self.run_id,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        payload = getattr(record, PAYLOAD_ATTR, None)
        if payload:
            entry["extra"] = payload
        return json.dumps(entry, default=str)


class JSONLLogger:
    """
    Run logger handed to the heatmap pipeline.

    Exposes debug/info/error like a stdlib logger, plus log_* helpers that
    attach structured payloads to the JSONL record.

    Usage:
        with JSONLLogger("sheatmap", log_dir="logs") as logger:
            logger.info("Read in 1000 points")
            logger.log_metrics({"point_count": 1000})
    """

    def __init__(
        self,
        run_name: str,
        run_id: Optional[str] = None,
        log_dir: Optional[Union[str, Path]] = None,
        level: Union[int, str] = logging.INFO,
    ):
        self.run_name = run_name
        self.run_id = run_id or generate_run_id()
        self.log_file: Optional[Path] = None

        self._logger = logging.getLogger(f"sheatmap.run.{run_name}.{self.run_id}")
        self._logger.setLevel(logging.DEBUG)
        self._logger.propagate = False

        console = logging.StreamHandler(sys.stderr)
        console.setLevel(level)
        console.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        self._handlers = [console]

        if log_dir is not None:
            log_dir = Path(log_dir)
            log_dir.mkdir(parents=True, exist_ok=True)
            self.log_file = log_dir / f"{run_name}_{self.run_id}.jsonl"
            jsonl = logging.FileHandler(self.log_file, encoding="utf-8")
            jsonl.setLevel(logging.DEBUG)
            jsonl.setFormatter(JSONLFormatter(run_name, self.run_id))
            self._handlers.append(jsonl)

        for handler in self._handlers:
            self._logger.addHandler(handler)

        self.debug(
            "Logger initialized",
            extra={"log_file": str(self.log_file) if self.log_file else None,
                   "versions": get_versions()},
        )

    def _log(self, level: int, message: str, extra: Optional[dict[str, Any]]) -> None:
        self._logger.log(level, message, extra={PAYLOAD_ATTR: extra})

    def debug(self, message: str, extra: Optional[dict[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[dict[str, Any]] = None) -> None:
        self._log(logging.INFO, message, extra)

    def error(self, message: str, extra: Optional[dict[str, Any]] = None) -> None:
        self._log(logging.ERROR, message, extra)

    def log_config(self, config: dict[str, Any], config_digest: str) -> None:
        self.debug("Configuration loaded", extra={"config": config, "config_digest": config_digest})

    def log_inputs(self, inputs: dict[str, str]) -> None:
        self.debug("Inputs registered", extra={"inputs": inputs})

    def log_outputs(self, outputs: dict[str, str]) -> None:
        self.debug("Outputs registered", extra={"outputs": outputs})

    def log_metrics(self, metrics: dict[str, Any]) -> None:
        """Point count, grid size and density summary of a finished run."""
        self.info("Metrics recorded", extra={"metrics": metrics})

    def log_raster_stats(self, raster_stats: dict[str, Any]) -> None:
        self.debug("Raster stats recorded", extra={"raster_stats": raster_stats})

    def close(self) -> None:
        """Flush and detach all handlers."""
        self.debug("Logger closing")
        for handler in self._handlers:
            self._logger.removeHandler(handler)
            handler.close()
        self._handlers = []

    def __enter__(self) -> "JSONLLogger":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None:
            self.error(f"Exception occurred: {exc_type.__name__}: {exc_val}")
        self.close()


def get_logger(
    run_name: str,
    run_id: Optional[str] = None,
    log_dir: Optional[Union[str, Path]] = None,
    level: Union[int, str] = logging.INFO,
) -> JSONLLogger:
    """Convenience constructor mirroring logging.getLogger."""
    return JSONLLogger(run_name=run_name, run_id=run_id, log_dir=log_dir, level=level)
