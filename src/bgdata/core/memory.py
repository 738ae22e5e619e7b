"""Memory estimation for chunked processing.

Each worker materializes one chunk of chunk_size x other_extent values at a
time, so peak memory is bounded by the chunk geometry rather than by the
size of the file-backed matrix. These helpers make that bound visible before
a run starts.
"""

from typing import NamedTuple

import psutil
from loguru import logger


class ChunkMemoryEstimate(NamedTuple):
    """Memory estimate for one chunked run.

    All values in GB.
    """

    chunk_gb: float  # chunk_size * other_extent * itemsize
    total_gb: float  # chunk_gb * number of concurrently materialized chunks
    available_gb: float  # Current available system memory
    sufficient: bool  # Whether available >= total * 1.1


def estimate_chunk_memory(
    other_extent: int,
    chunk_size: int,
    itemsize: int = 8,
    n_workers: int = 1,
) -> ChunkMemoryEstimate:
    """Estimate memory held by materialized chunks.

    Args:
        other_extent: Number of selected indices on the non-chunked axis.
        chunk_size: Number of indices per chunk on the chunked axis.
        itemsize: Bytes per matrix element.
        n_workers: Number of worker processes holding a chunk at once.

    Returns:
        ChunkMemoryEstimate with per-chunk and total estimates.

    Example:
        >>> est = estimate_chunk_memory(200_000, 5000, itemsize=1, n_workers=4)
        >>> print(f"{est.chunk_gb:.1f}GB per chunk")
        1.0GB per chunk
    """
    chunk_gb = other_extent * chunk_size * itemsize / 1e9
    total_gb = chunk_gb * max(1, n_workers)
    available_gb = psutil.virtual_memory().available / 1e9
    sufficient = total_gb * 1.1 < available_gb  # 10% safety margin

    return ChunkMemoryEstimate(
        chunk_gb=chunk_gb,
        total_gb=total_gb,
        available_gb=available_gb,
        sufficient=sufficient,
    )


def check_chunk_memory(
    other_extent: int,
    chunk_size: int,
    itemsize: int = 8,
    n_workers: int = 1,
) -> ChunkMemoryEstimate:
    """Estimate chunk memory and warn if it exceeds available memory.

    Never raises: the run may still succeed if the OS pages, and the caller
    can lower chunk_size in response to the warning.
    """
    est = estimate_chunk_memory(other_extent, chunk_size, itemsize, n_workers)
    logger.debug(
        f"Chunk memory: {est.chunk_gb:.3f}GB per chunk, {est.total_gb:.3f}GB "
        f"across {n_workers} worker(s), {est.available_gb:.1f}GB available"
    )
    if not est.sufficient:
        logger.warning(
            f"Chunks need ~{est.total_gb:.1f}GB but only {est.available_gb:.1f}GB "
            "is available; consider a smaller chunk_size or fewer cores"
        )
    return est
