"""
Tests for run provenance: digests, metadata files and up-to-date checks.
"""

import json
from dataclasses import replace
from pathlib import Path

import pytest

from sheatmap.config import HeatmapConfig
from sheatmap.extent import GridSpec
from sheatmap.grid import EvaluationSummary
from sheatmap.hashing import (
    RunMetadata,
    config_digest,
    input_digest,
    is_up_to_date,
    metadata_path_for,
    read_run_metadata,
    write_run_metadata,
)


@pytest.fixture
def config(tmp_path):
    points = tmp_path / "points.csv"
    points.write_text("x,y\n0,0\n1,0\n")
    output = tmp_path / "heat.xyz"
    output.write_text("x y z\n")
    return HeatmapConfig(input_path=points, output_path=output, resolution=(1.0, 1.0), radius=1.0)


@pytest.fixture
def grid():
    return GridSpec(xmin=-1.0, xmax=2.0, ymin=-1.0, ymax=1.0, xres=1.0, yres=1.0)


@pytest.fixture
def summary():
    return EvaluationSummary(rows=2, cells=6, nonzero_cells=2, max_value=0.9375, total_value=1.875)


def _record(config, grid, summary):
    return write_run_metadata(RunMetadata.from_run(config, grid, 2, summary, "run-1"))


class TestDigests:
    """Tests for input and config fingerprints."""

    def test_input_digest_changes_with_content(self, tmp_path):
        path = tmp_path / "a.csv"
        path.write_text("x,y\n0,0\n")
        first = input_digest(path)
        path.write_text("x,y\n0,1\n")
        assert input_digest(path) != first

    def test_input_digest_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            input_digest(tmp_path / "missing.csv")

    def test_config_digest_tracks_output_fields(self, config):
        assert config_digest(config) == config_digest(replace(config))
        assert config_digest(config) != config_digest(replace(config, radius=2.0))
        assert config_digest(config) != config_digest(replace(config, xmin=-5.0))

    def test_config_digest_ignores_logging(self, config):
        noisy = replace(config, log_level="DEBUG", log_dir=Path("logs"), write_metadata=True)
        assert config_digest(noisy) == config_digest(config)


class TestRunMetadata:
    """Tests for the metadata file written beside an output."""

    def test_location(self, tmp_path):
        assert metadata_path_for(tmp_path / "heat.tif") == tmp_path / "heat_metadata.json"

    def test_records_run(self, config, grid, summary):
        path = _record(config, grid, summary)

        assert path == metadata_path_for(config.output_path)
        meta = json.loads(path.read_text())
        assert meta["run_id"] == "run-1"
        assert meta["point_count"] == 2
        assert meta["grid"]["width"] == 3
        assert meta["grid"]["height"] == 2
        assert meta["summary"]["max_value"] == pytest.approx(0.9375)
        assert meta["config"]["radius"] == 1.0
        assert meta["config_digest"] == config_digest(config)
        assert meta["input_sha256"] == input_digest(config.input_path)
        assert "rasterio" in meta["versions"]

    def test_read_back(self, config, grid, summary):
        _record(config, grid, summary)
        meta = read_run_metadata(config.output_path)
        assert isinstance(meta, RunMetadata)
        assert meta.point_count == 2
        assert meta.input_file == str(config.input_path)

    def test_read_missing(self, tmp_path):
        assert read_run_metadata(tmp_path / "heat.xyz") is None


class TestIsUpToDate:
    """Tests for --skip-unchanged reuse checks."""

    def test_unchanged(self, config, grid, summary):
        _record(config, grid, summary)
        assert is_up_to_date(config)

    def test_config_changed(self, config, grid, summary):
        _record(config, grid, summary)
        assert not is_up_to_date(replace(config, radius=5.0))

    def test_input_changed(self, config, grid, summary):
        _record(config, grid, summary)
        config.input_path.write_text("x,y\n5,5\n")
        assert not is_up_to_date(config)

    def test_no_metadata(self, config):
        assert not is_up_to_date(config)

    def test_output_removed(self, config, grid, summary):
        _record(config, grid, summary)
        config.output_path.unlink()
        assert not is_up_to_date(config)

    @pytest.mark.parametrize("content", ["{not json", '{"run_id": "x"}'])
    def test_unreadable_metadata_is_stale(self, config, content):
        metadata_path_for(config.output_path).write_text(content)
        assert not is_up_to_date(config)
