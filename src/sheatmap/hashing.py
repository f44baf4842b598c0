"""
Run provenance for heatmap outputs.

With --metadata (or --skip-unchanged) a `<stem>_metadata.json` file is
written beside the output. It records the input fingerprint, the config
and its digest, the resolved grid, the point count and the density summary.

--skip-unchanged reuses an output only while the output and its metadata
file exist, the input file still hashes the same and the config digest
still matches.
"""

import hashlib
import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sheatmap.config import HeatmapConfig
from sheatmap.extent import GridSpec
from sheatmap.grid import EvaluationSummary
from sheatmap.io_utils import atomic_write_json, read_json
from sheatmap.logging_utils import get_versions

logger = logging.getLogger(__name__)

METADATA_SUFFIX = "_metadata.json"
CHUNK_SIZE = 1 << 20


def input_digest(path: Union[str, Path]) -> str:
    """sha256 of an input file, read in chunks."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def config_digest(config: HeatmapConfig) -> str:
    """sha256 of the output-determining config fields."""
    payload = json.dumps(config.to_dict(), sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def metadata_path_for(output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    return output_path.with_name(f"{output_path.stem}{METADATA_SUFFIX}")


@dataclass
class RunMetadata:
    """Contents of a heatmap's metadata file."""
    output_file: str
    run_id: str
    created: str
    input_file: str
    input_sha256: str
    config_digest: str
    config: Dict[str, Any]
    point_count: int
    grid: Dict[str, Any]
    summary: Dict[str, Any]
    versions: Dict[str, str]

    @classmethod
    def from_run(
        cls,
        config: HeatmapConfig,
        grid: GridSpec,
        point_count: int,
        summary: EvaluationSummary,
        run_id: str,
    ) -> "RunMetadata":
        return cls(
            output_file=str(config.output_path),
            run_id=run_id,
            created=datetime.now(timezone.utc).isoformat(),
            input_file=str(config.input_path),
            input_sha256=input_digest(config.input_path),
            config_digest=config_digest(config),
            config=config.to_dict(),
            point_count=int(point_count),
            grid=grid.to_dict(),
            summary=summary.to_dict(),
            versions=get_versions(),
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunMetadata":
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def write_run_metadata(metadata: RunMetadata) -> Path:
    """Atomically write the metadata file beside its output; returns its path."""
    path = metadata_path_for(metadata.output_file)
    atomic_write_json(metadata.to_dict(), path)
    return path


def read_run_metadata(output_path: Union[str, Path]) -> Optional[RunMetadata]:
    """
    Metadata recorded for an output.

    Returns:
        RunMetadata, or None if there is no metadata file

    Raises:
        ValueError: If the file is not valid JSON
        TypeError: If its fields do not match RunMetadata
    """
    path = metadata_path_for(output_path)
    if not path.exists():
        return None
    return RunMetadata.from_dict(read_json(path))


def is_up_to_date(config: HeatmapConfig) -> bool:
    """
    Whether the configured output can be reused as is.

    A metadata file that cannot be read counts as stale.
    """
    if not config.output_path.exists() or not config.input_path.exists():
        return False

    try:
        recorded = read_run_metadata(config.output_path)
    except (ValueError, TypeError) as exc:
        logger.debug(f"Unreadable metadata for {config.output_path}: {exc}")
        return False

    if recorded is None:
        return False
    if recorded.config_digest != config_digest(config):
        return False
    return recorded.input_sha256 == input_digest(config.input_path)
