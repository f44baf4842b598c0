"""
Grid evaluation: kernel density for every cell of the output grid.

Each cell is evaluated independently in two phases:
1. Broad phase: envelope query on the point index around the cell center.
2. Narrow phase: exact distance for every candidate, kernel weight for those
   within the radius.

Cells are produced row-major (row 0 = ymin, columns left to right) and
handed to the sink one row at a time; the full grid is never held.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

import numpy as np

from sheatmap.extent import GridSpec
from sheatmap.kernel import KernelParams, quartic_weight
from sheatmap.spatial_index import PointIndex
from sheatmap.units import great_circle_distance, planar_distance_sq, query_envelopes

DEFAULT_PROGRESS_EVERY = 100


class EvaluatorState(Enum):
    INITIALIZING = "initializing"
    EVALUATING_ROW = "evaluating_row"
    EVALUATING_CELL = "evaluating_cell"
    DONE = "done"
    FAILED = "failed"


@dataclass
class RowResult:
    """Density values of one grid row."""
    row: int
    posy: float
    xs: np.ndarray
    values: np.ndarray


@dataclass
class EvaluationSummary:
    """Counts and extremes of a finished grid sweep."""
    rows: int = 0
    cells: int = 0
    nonzero_cells: int = 0
    max_value: float = 0.0
    total_value: float = 0.0

    def update(self, values: np.ndarray) -> None:
        self.rows += 1
        self.cells += len(values)
        if len(values):
            self.nonzero_cells += int(np.count_nonzero(values))
            self.max_value = max(self.max_value, float(values.max()))
            self.total_value += float(values.sum())

    def to_dict(self) -> dict:
        return {
            "rows": self.rows,
            "cells": self.cells,
            "nonzero_cells": self.nonzero_cells,
            "max_value": self.max_value,
            "total_value": self.total_value,
        }


class GridEvaluator:
    """
    Sweeps a grid over a point index and emits one density value per cell.

    Sinks passed to run() must provide write_header() and write_row(RowResult).

    Usage:
        evaluator = GridEvaluator(index, grid, KernelParams(radius=10.0))
        with XYZWriter("out.xyz") as sink:
            summary = evaluator.run(sink)
    """

    def __init__(
        self,
        index: PointIndex,
        grid: GridSpec,
        kernel: KernelParams,
        progress_every: int = DEFAULT_PROGRESS_EVERY,
        logger=None,
    ):
        self.index = index
        self.grid = grid
        self.kernel = kernel
        self.progress_every = max(int(progress_every), 1)
        self.logger = logger or logging.getLogger(__name__)
        self.state = EvaluatorState.INITIALIZING

    def evaluate_cell(self, posx: float, posy: float) -> float:
        """
        Kernel density at one cell center.

        Args:
            posx: Cell center x
            posy: Cell center y

        Returns:
            Sum of quartic weights of all points within the radius
        """
        kernel = self.kernel
        envelopes = query_envelopes(kernel.geographic, kernel.radius, posx, posy)

        hits = [self.index.query_indices(lo, hi) for lo, hi in envelopes]
        candidates = hits[0] if len(hits) == 1 else np.unique(np.concatenate(hits))
        if len(candidates) == 0:
            return 0.0

        coords = self.index.coords[candidates]
        xs = coords[:, 0]
        ys = coords[:, 1]

        if kernel.geographic:
            dist = great_circle_distance(xs, ys, posx, posy)
            dist = dist[dist <= kernel.radius]
        else:
            dist_sq = planar_distance_sq(xs, ys, posx, posy)
            dist = np.sqrt(dist_sq[dist_sq <= kernel.radius_sq])

        value = 0.0
        if len(dist):
            value = float(np.sum(quartic_weight(dist, kernel.radius)))
        return value

    def evaluate_row(self, row: int) -> RowResult:
        """Evaluate every cell of one row."""
        posy = self.grid.ymin + row * self.grid.yres
        xs = self.grid.column_positions()
        values = np.zeros(len(xs), dtype=float)

        self.state = EvaluatorState.EVALUATING_CELL
        for col, posx in enumerate(xs):
            values[col] = self.evaluate_cell(float(posx), posy)

        return RowResult(row=row, posy=posy, xs=xs, values=values)

    def iter_rows(self) -> Iterator[RowResult]:
        """Yield evaluated rows in row-major order."""
        height = self.grid.height
        for row in range(height):
            self.state = EvaluatorState.EVALUATING_ROW
            if row % self.progress_every == 0:
                self.logger.info(f"{row} of {height} done")
            yield self.evaluate_row(row)

    def run(self, sink) -> EvaluationSummary:
        """
        Evaluate the whole grid and stream it to a sink.

        A grid with zero rows or columns produces a header-only output.

        Args:
            sink: Object with write_header() and write_row(RowResult)

        Returns:
            EvaluationSummary of the sweep

        Raises:
            Any exception from the index, the kernel or the sink; the
            evaluator is left in the FAILED state.
        """
        summary = EvaluationSummary()
        self.state = EvaluatorState.INITIALIZING
        self.logger.debug(
            f"Evaluating {self.grid.width} x {self.grid.height} grid "
            f"over {len(self.index)} points"
        )

        try:
            sink.write_header()
            if self.grid.width > 0:
                for result in self.iter_rows():
                    sink.write_row(result)
                    summary.update(result.values)
        except Exception:
            self.state = EvaluatorState.FAILED
            raise

        self.state = EvaluatorState.DONE
        return summary
