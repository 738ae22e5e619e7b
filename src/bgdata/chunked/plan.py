"""Chunk boundary arithmetic.

Chunks are contiguous runs of positions into the active index set (the
selected rows or columns), not raw matrix indices.
"""

import numbers

from bgdata.errors import InvalidConfiguration


def _check_chunk_size(chunk_size: int | None) -> None:
    if chunk_size is None:
        return
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, numbers.Integral):
        raise InvalidConfiguration(
            f"chunk_size must be a positive integer or None, got {chunk_size!r}"
        )
    if chunk_size <= 0:
        raise InvalidConfiguration(f"chunk_size must be positive, got {chunk_size}")


def count_chunks(active_extent: int, chunk_size: int | None) -> int:
    """Number of chunks needed to cover active_extent positions.

    chunk_size=None means unbounded: a single chunk covering everything.
    """
    _check_chunk_size(chunk_size)
    if active_extent == 0:
        return 0
    if chunk_size is None:
        return 1
    return -(-active_extent // chunk_size)


def chunk_range(chunk_index: int, active_extent: int, chunk_size: int | None) -> range:
    """Positions covered by chunk chunk_index (0-based).

    Example:
        >>> chunk_range(3, 10, 3)
        range(9, 10)
    """
    _check_chunk_size(chunk_size)
    if chunk_size is None:
        chunk_size = active_extent
    start = chunk_index * chunk_size
    return range(start, min(start + chunk_size, active_extent))


def plan_chunks(active_extent: int, chunk_size: int | None) -> list[range]:
    """All chunk ranges in ascending order.

    The ranges partition range(active_extent) without gaps or overlaps; the
    last one may be shorter than chunk_size.

    Example:
        >>> plan_chunks(10, 3)
        [range(0, 3), range(3, 6), range(6, 9), range(9, 10)]
    """
    n_chunks = count_chunks(active_extent, chunk_size)
    return [chunk_range(k, active_extent, chunk_size) for k in range(n_chunks)]
