"""BLAS thread budget for chunk workers.

User functions often call BLAS through numpy. With several worker processes
each starting a full BLAS pool, a machine with 16 cores would run 16 x
n_workers threads; every worker therefore gets an even share instead.
"""

from __future__ import annotations

import os

import psutil
from loguru import logger
from threadpoolctl import threadpool_limits

from bgdata.core.config import env_int


def get_blas_thread_count() -> int:
    """Total BLAS threads available to this process and its workers.

    BGDATA_BLAS_THREADS if set, else the physical core count (hyperthreads
    only slow BLAS down), capped at os.cpu_count().
    """
    max_threads = os.cpu_count() or 64
    n = env_int(
        "BGDATA_BLAS_THREADS",
        1,
        max_threads,
        fallback="falling back to physical core count",
    )
    source = "BGDATA_BLAS_THREADS"
    if n is None:
        n = max(1, min(psutil.cpu_count(logical=False) or max_threads, max_threads))
        source = "physical core count"
    logger.debug(f"BLAS threads from {source}: {n}")
    return n


def threads_per_worker(n_workers: int) -> int:
    """Share the BLAS budget evenly between n_workers processes."""
    return max(1, get_blas_thread_count() // max(1, n_workers))


def limit_worker_blas_threads(n_workers: int) -> None:
    """Cap BLAS threads for the rest of this worker process's life."""
    threadpool_limits(limits=threads_per_worker(n_workers), user_api="blas")
