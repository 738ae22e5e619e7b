"""Chunked map and apply over file-backed matrices.

Both entry points bring a bounded chunk of the matrix into memory at a time
(chunk_size rows or columns, times every selected index of the other axis),
apply a function to it, and collect the results. With n_cores > 1 chunks are
processed by a pool of worker processes that read their own chunks.
"""

from collections.abc import Callable
from typing import Any

import numpy as np
from loguru import logger

from bgdata.chunked.dispatch import check_n_cores, dispatch_chunks
from bgdata.chunked.executor import ChunkTask
from bgdata.chunked.plan import count_chunks
from bgdata.chunked.reduce import simplify_results
from bgdata.core.config import DEFAULT_CHUNK_SIZE, get_default_n_cores
from bgdata.core.memory import check_chunk_memory
from bgdata.errors import InvalidConfiguration
from bgdata.io.index import normalize_index
from bgdata.io.matrix import as_matrix_handle, get_dimnames


def _check_axis(value: int, name: str) -> None:
    if value not in (0, 1):
        raise InvalidConfiguration(
            f"{name} must be 0 (rows) or 1 (columns), got {value!r}"
        )


def _build_task(
    X: Any,
    fn: Callable[..., Any],
    args: tuple,
    kwargs: dict,
    i: Any,
    j: Any,
    chunk_by: int,
    chunk_size: int | None,
    margin: int | None = None,
    as_frame: bool = False,
) -> ChunkTask:
    handle = as_matrix_handle(X)
    n_rows, n_cols = handle.shape
    row_names, col_names = get_dimnames(handle)
    rows = normalize_index(i, n_rows, row_names, axis="i")
    cols = normalize_index(j, n_cols, col_names, axis="j")
    return ChunkTask(
        handle=handle,
        rows=rows,
        cols=cols,
        chunk_by=chunk_by,
        chunk_size=chunk_size,
        fn=fn,
        args=args,
        kwargs=kwargs,
        margin=margin,
        as_frame=as_frame,
    )


def _run(task: ChunkTask, n_cores: int | None, verbose: bool) -> list:
    if n_cores is None:
        n_cores = get_default_n_cores()
    check_n_cores(n_cores)
    n_chunks = count_chunks(task.active_extent, task.chunk_size)

    other_extent = len(task.rows) if task.chunk_by == 1 else len(task.cols)
    chunk_len = task.active_extent if task.chunk_size is None else task.chunk_size
    itemsize = np.dtype(getattr(task.handle, "dtype", np.float64)).itemsize
    check_chunk_memory(
        other_extent,
        min(chunk_len, task.active_extent),
        itemsize=itemsize,
        n_workers=min(n_cores, max(1, n_chunks)),
    )

    logger.debug(
        f"Chunked run: {len(task.rows)} x {len(task.cols)} selected, "
        f"{n_chunks} chunks by {'columns' if task.chunk_by == 1 else 'rows'}, "
        f"{n_cores} core(s)"
    )
    return dispatch_chunks(task, n_chunks, n_cores=n_cores, verbose=verbose)


def chunked_map(
    X: Any,
    fn: Callable[..., Any],
    *args,
    i: Any = None,
    j: Any = None,
    chunk_by: int = 1,
    chunk_size: int | None = DEFAULT_CHUNK_SIZE,
    n_cores: int | None = None,
    verbose: bool = False,
    as_frame: bool = False,
    **kwargs,
) -> list:
    """Apply fn to each chunk of a (file-backed) matrix.

    Similar to ``[fn(chunk) for chunk in chunks]``, but chunks are only
    brought into memory one at a time per worker. With n_cores > 1 the
    chunks are taken inside the worker processes.

    Args:
        X: Matrix handle, numpy array, or DataFrame.
        fn: Function applied to each chunk.
        *args: Extra positional arguments for fn.
        i: Rows to use: ints, booleans, or names. None uses all rows.
        j: Columns to use: ints, booleans, or names. None uses all columns.
        chunk_by: 1 to chunk columns (default), 0 to chunk rows.
        chunk_size: Rows or columns per chunk. None uses a single chunk.
        n_cores: Worker processes. None uses get_default_n_cores().
        verbose: Log one line per chunk.
        as_frame: Pass chunks as DataFrames labelled with X's dimnames.
        **kwargs: Extra keyword arguments for fn.

    Returns:
        List of per-chunk results, in chunk order.

    Raises:
        InvalidConfiguration: If X is not 2-D, or chunk_by, chunk_size or
            n_cores is invalid.
        InvalidSelector: If i or j cannot be resolved.
        ChunkExecutionError: If fn raised on a chunk.

    Example:
        >>> sums = chunked_map(X, lambda chunk: chunk.sum(axis=0), chunk_size=1000)
        >>> np.concatenate(sums).shape
        (12226,)
    """
    _check_axis(chunk_by, "chunk_by")
    task = _build_task(
        X, fn, args, kwargs, i, j, chunk_by, chunk_size, as_frame=as_frame
    )
    return _run(task, n_cores, verbose)


def chunked_apply(
    X: Any,
    margin: int,
    fn: Callable[..., Any],
    *args,
    i: Any = None,
    j: Any = None,
    chunk_size: int | None = DEFAULT_CHUNK_SIZE,
    n_cores: int | None = None,
    verbose: bool = False,
    **kwargs,
):
    """Apply fn to each row (margin=0) or column (margin=1) of a matrix.

    Chunks are taken along margin and processed with margin_apply, then the
    per-chunk results are combined with simplify_results, giving the same
    layout as a single margin_apply over X[i, j].

    Args:
        X: Matrix handle, numpy array, or DataFrame.
        margin: 0 for rows, 1 for columns.
        fn: Function applied to each row or column.
        *args: Extra positional arguments for fn.
        i: Rows to use. None uses all rows.
        j: Columns to use. None uses all columns.
        chunk_size: Rows or columns per chunk. None uses a single chunk.
        n_cores: Worker processes. None uses get_default_n_cores().
        verbose: Log one line per chunk.
        **kwargs: Extra keyword arguments for fn.

    Returns:
        1-D array or Series for scalar results, 2-D array or DataFrame with
        one column per row/column of X for vector results, a list (an
        object Series when X has names along margin) for list results.

    Raises:
        InvalidConfiguration: If X is not 2-D, or margin, chunk_size or
            n_cores is invalid.
        InvalidSelector: If i or j cannot be resolved.
        ChunkExecutionError: If fn raised on a row/column, returned a
            table, or changed the length of its result between calls.
        ShapeMismatch: If chunks returned results of different shapes.

    Example:
        >>> freqs = chunked_apply(X, 1, np.nanmean, chunk_size=1000) / 2
    """
    _check_axis(margin, "margin")
    task = _build_task(X, fn, args, kwargs, i, j, margin, chunk_size, margin=margin)
    return simplify_results(_run(task, n_cores, verbose))
