"""Extraction of one chunk from a matrix handle and invocation of fn on it."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd

from bgdata.chunked.margin import margin_apply
from bgdata.chunked.plan import chunk_range
from bgdata.io.matrix import MatrixHandle, get_dimnames


@dataclass
class ChunkTask:
    """Everything needed to process any chunk of a chunked run.

    Picklable whenever fn and the handle are, so that worker processes can
    rebuild the same task and extract their own chunks.

    Attributes:
        handle: Matrix handle to read from.
        rows: Selected row indices (0-based).
        cols: Selected column indices (0-based).
        chunk_by: 0 to chunk rows, 1 to chunk columns.
        chunk_size: Positions per chunk, or None for a single chunk.
        fn: User function.
        args: Extra positional arguments for fn.
        kwargs: Extra keyword arguments for fn.
        margin: If set, fn is applied to every row (0) or column (1) of each
            chunk through margin_apply instead of to the chunk as a whole.
        as_frame: Pass chunks to fn as labelled DataFrames.
    """

    handle: MatrixHandle
    rows: np.ndarray
    cols: np.ndarray
    chunk_by: int
    chunk_size: int | None
    fn: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    margin: int | None = None
    as_frame: bool = False

    @property
    def active_extent(self) -> int:
        """Number of selected indices along the chunking axis."""
        return len(self.cols) if self.chunk_by == 1 else len(self.rows)

    def positions(self, chunk_index: int) -> range:
        return chunk_range(chunk_index, self.active_extent, self.chunk_size)

    def chunk_indices(self, chunk_index: int) -> tuple[np.ndarray, np.ndarray]:
        """Row and column index sets of one chunk."""
        span = self.positions(chunk_index)
        window = slice(span.start, span.stop)
        if self.chunk_by == 1:
            return self.rows, self.cols[window]
        return self.rows[window], self.cols

    def extract(self, chunk_index: int) -> np.ndarray:
        """Bring one chunk into memory."""
        rows, cols = self.chunk_indices(chunk_index)
        return np.asarray(self.handle[rows, cols])

    def dimnames(self, chunk_index: int) -> tuple[list | None, list | None]:
        """Row and column names of one chunk (None where the handle has none)."""
        rows, cols = self.chunk_indices(chunk_index)
        row_names, col_names = get_dimnames(self.handle)
        return (
            [row_names[r] for r in rows] if row_names is not None else None,
            [col_names[c] for c in cols] if col_names is not None else None,
        )

    def __call__(self, chunk_index: int):
        chunk = self.extract(chunk_index)
        if self.margin is not None:
            labels = self.dimnames(chunk_index)[self.margin]
            return margin_apply(
                chunk, self.margin, self.fn, *self.args, labels=labels, **self.kwargs
            )
        if self.as_frame:
            row_names, col_names = self.dimnames(chunk_index)
            chunk = pd.DataFrame(chunk, index=row_names, columns=col_names)
        return self.fn(chunk, *self.args, **self.kwargs)
