"""Sequential or multi-process execution of a ChunkTask over all chunks.

Parallel runs use a multiprocessing pool with static scheduling: chunks are
split into one contiguous batch per worker before anything runs, and each
worker re-extracts its own chunks from the matrix handle. Worker errors are
caught per chunk and sent back as ChunkFailure markers; after all chunks have
finished only the lowest-numbered failure is raised.
"""

import multiprocessing as mp
import numbers
import os
import traceback
from dataclasses import dataclass

from loguru import logger

from bgdata.chunked.executor import ChunkTask
from bgdata.core.threading import limit_worker_blas_threads
from bgdata.errors import ChunkExecutionError, InvalidConfiguration


@dataclass
class ChunkFailure:
    """Marker returned by a worker in place of a chunk result."""

    chunk_index: int
    error_type: str
    message: str
    traceback: str


# Per-worker state, set once by the pool initializer
_worker_task: ChunkTask | None = None
_worker_n_chunks: int = 0
_worker_verbose: bool = False


def _init_worker(task: ChunkTask, n_chunks: int, n_workers: int, verbose: bool) -> None:
    global _worker_task, _worker_n_chunks, _worker_verbose
    _worker_task = task
    _worker_n_chunks = n_chunks
    _worker_verbose = verbose
    limit_worker_blas_threads(n_workers)


def _run_chunk_in_worker(chunk_index: int):
    if _worker_verbose:
        logger.info(
            f"Process {os.getpid()}: Chunk {chunk_index + 1} of {_worker_n_chunks} ..."
        )
    try:
        return _worker_task(chunk_index)
    except Exception as e:
        return ChunkFailure(
            chunk_index=chunk_index,
            error_type=type(e).__name__,
            message=str(e),
            traceback=traceback.format_exc(),
        )


def _get_context():
    # fork lets workers inherit closures and lambdas without pickling them
    if "fork" in mp.get_all_start_methods():
        return mp.get_context("fork")
    return mp.get_context()


def check_n_cores(n_cores: int) -> None:
    if (
        isinstance(n_cores, bool)
        or not isinstance(n_cores, numbers.Integral)
        or n_cores < 1
    ):
        raise InvalidConfiguration(
            f"n_cores must be a positive integer, got {n_cores!r}"
        )


def _dispatch_sequential(task: ChunkTask, n_chunks: int, verbose: bool) -> list:
    results = []
    for chunk_index in range(n_chunks):
        if verbose:
            logger.info(f"Chunk {chunk_index + 1} of {n_chunks} ...")
        try:
            results.append(task(chunk_index))
        except Exception as e:
            raise ChunkExecutionError(
                chunk_index, n_chunks, str(e), error_type=type(e).__name__
            ) from e
    return results


def _dispatch_parallel(
    task: ChunkTask, n_chunks: int, n_cores: int, verbose: bool
) -> list:
    n_workers = min(n_cores, n_chunks)
    # One contiguous batch per worker, fixed before execution
    batch_size = -(-n_chunks // n_workers)
    logger.debug(
        f"Dispatching {n_chunks} chunks to {n_workers} workers "
        f"in batches of {batch_size}"
    )

    ctx = _get_context()
    with ctx.Pool(
        processes=n_workers,
        initializer=_init_worker,
        initargs=(task, n_chunks, n_workers, verbose),
    ) as pool:
        results = pool.map(_run_chunk_in_worker, range(n_chunks), chunksize=batch_size)

    failures = [r for r in results if isinstance(r, ChunkFailure)]
    if failures:
        first = min(failures, key=lambda f: f.chunk_index)
        logger.debug(
            f"{len(failures)} of {n_chunks} chunks reported a failure; "
            f"forwarding chunk {first.chunk_index + 1}:\n{first.traceback}"
        )
        raise ChunkExecutionError(
            first.chunk_index,
            n_chunks,
            first.message,
            error_type=first.error_type,
            first_only=True,
        )
    return results


def dispatch_chunks(
    task: ChunkTask, n_chunks: int, n_cores: int = 1, verbose: bool = False
) -> list:
    """Run task on every chunk and collect results in chunk order.

    Args:
        task: Per-chunk callable.
        n_chunks: Number of chunks to run.
        n_cores: 1 for in-process sequential execution, more for a worker
            pool of min(n_cores, n_chunks) processes.
        verbose: Log one line per chunk.

    Returns:
        List of per-chunk results, indexed by chunk.

    Raises:
        InvalidConfiguration: If n_cores < 1.
        ChunkExecutionError: If fn failed on any chunk. Sequential runs stop
            at the first failure; parallel runs finish every chunk and report
            only the lowest-numbered failure.
    """
    check_n_cores(n_cores)
    if n_chunks == 0:
        return []
    if n_cores == 1:
        return _dispatch_sequential(task, n_chunks, verbose)
    return _dispatch_parallel(task, n_chunks, n_cores, verbose)
