"""
I/O utilities: point ingestion, atomic writes and the XYZ text sink.

All outputs are written via temp file → rename/replace, so a failed run
never leaves a half-written file at the target path.
"""

import json
import os
import tempfile
import warnings
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd
import yaml

from sheatmap.qa import ParseError, first_invalid_row

XYZ_HEADER = "x y z"


# =============================================================================
# Atomic Write Utilities
# =============================================================================

@contextmanager
def atomic_path(
    target_path: Union[str, Path],
    suffix: Optional[str] = None,
):
    """
    Context manager yielding a temp path that replaces target on success.

    For writers that need a filename rather than a file handle (e.g. rasterio).
    If an exception occurs, the temp file is removed and target is unchanged.

    Args:
        target_path: Final destination path
        suffix: Optional suffix for temp file (defaults to target's suffix)

    Yields:
        Path of the temporary file
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix is None:
        suffix = target_path.suffix or ".tmp"

    # Create temp file in same directory (for atomic rename)
    fd, temp_path = tempfile.mkstemp(
        suffix=suffix,
        prefix=f".{target_path.stem}_",
        dir=target_path.parent,
    )
    os.close(fd)
    temp_path = Path(temp_path)

    try:
        yield temp_path
        temp_path.replace(target_path)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise


@contextmanager
def atomic_write(
    target_path: Union[str, Path],
    mode: str = "w",
    suffix: Optional[str] = None,
):
    """
    Context manager for atomic file writes.

    Writes to a temporary file first, then atomically renames to target.

    Args:
        target_path: Final destination path
        mode: File mode ('w' for text, 'wb' for binary)
        suffix: Optional suffix for temp file

    Yields:
        File handle for writing

    Example:
        with atomic_write("output.xyz") as f:
            f.write("x y z\\n")
    """
    with atomic_path(target_path, suffix=suffix) as temp_path:
        with open(temp_path, mode) as f:
            yield f


def atomic_write_json(
    data: Any,
    target_path: Union[str, Path],
    **kwargs,
) -> None:
    """
    Atomically write JSON data.

    Args:
        data: JSON-serializable data
        target_path: Destination path
        **kwargs: Additional arguments passed to json.dump
    """
    kwargs.setdefault("indent", 2)
    kwargs.setdefault("default", str)

    with atomic_write(target_path, mode="w", suffix=".json") as f:
        json.dump(data, f, **kwargs)


# =============================================================================
# Read Utilities
# =============================================================================

def read_yaml(path: Union[str, Path]) -> dict:
    """Read a YAML file; an empty file reads as {}."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def read_json(path: Union[str, Path]) -> Any:
    """Read a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


COORD_FIELDS = ["x", "y"]


def _to_float(raw: pd.Series) -> np.ndarray:
    """Parse a string column to float64; unparseable or missing values become NaN."""
    return pd.to_numeric(raw, errors="coerce").to_numpy(dtype=float, na_value=np.nan)


def _line_number(path: Path, record: int) -> int:
    """1-based file line of a 0-based data record (header and blank lines skipped)."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        next(f, None)
        seen = -1
        for lineno, line in enumerate(f, start=2):
            if line.strip():
                seen += 1
                if seen == record:
                    return lineno
    return record + 2


def read_points(path: Union[str, Path]) -> np.ndarray:
    """
    Read (x, y) points from the first two fields of a CSV file.

    The first line is a header and is skipped whatever its width. Records
    may carry any number of extra fields, and blank lines are ignored. In
    geographic mode x is longitude and y is latitude.

    Args:
        path: Path to CSV file

    Returns:
        Float array of shape (n, 2); n is 0 for an empty or header-only file

    Raises:
        FileNotFoundError: If the file does not exist
        ParseError: If a coordinate is missing, non-numeric or not finite;
            the message names the file line
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    try:
        with warnings.catch_warnings():
            # Fields past the first two are dropped on purpose
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            df = pd.read_csv(
                path,
                header=None,
                skiprows=1,
                names=COORD_FIELDS,
                index_col=False,
                dtype=str,
                keep_default_na=False,
                engine="python",
            )
    except pd.errors.EmptyDataError:
        return np.empty((0, 2), dtype=float)
    except (pd.errors.ParserError, ValueError) as exc:
        raise ParseError(f"Cannot parse {path}: {exc}") from exc

    raw_x = df["x"].astype("string").str.strip()
    raw_y = df["y"].astype("string").str.strip()
    coords = np.column_stack([_to_float(raw_x), _to_float(raw_y)]).reshape(-1, 2)

    bad = first_invalid_row(coords)
    if bad is not None:
        field, raw = ("x", raw_x.iloc[bad]) if not np.isfinite(coords[bad, 0]) else ("y", raw_y.iloc[bad])
        line = _line_number(path, bad)
        if pd.isna(raw) or raw == "":
            raise ParseError(f"Missing {field} on line {line} of {path}")
        raise ParseError(f"Invalid {field} value {raw!r} on line {line} of {path}")

    return coords


# =============================================================================
# XYZ Output
# =============================================================================

def format_value(value: float) -> str:
    """
    Shortest round-trip decimal form of a float, without exponent.

    Example:
        >>> format_value(1.0), format_value(0.9375)
        ('1', '0.9375')
    """
    return np.format_float_positional(value, trim="-")


class XYZWriter:
    """
    Streaming sink for the XYZ text grid.

    Writes a header line "x y z" followed by one "posx posy value" line per
    cell, in the order rows are handed in. The file only appears at its
    final path once the writer closes without error.

    Usage:
        with XYZWriter("heat.xyz") as sink:
            sink.write_header()
            sink.write_row(row_result)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._stack = ExitStack()
        self._fh = None

    def __enter__(self) -> "XYZWriter":
        self._fh = self._stack.enter_context(atomic_write(self.path, mode="w"))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self._fh = None
        return self._stack.__exit__(exc_type, exc_val, exc_tb)

    def write_header(self) -> None:
        self._fh.write(XYZ_HEADER + "\n")

    def write_cell(self, posx: float, posy: float, value: float) -> None:
        self._fh.write(f"{format_value(posx)} {format_value(posy)} {format_value(value)}\n")

    def write_row(self, result) -> None:
        """Write every cell of a RowResult."""
        for posx, value in zip(result.xs, result.values):
            self.write_cell(posx, result.posy, value)
