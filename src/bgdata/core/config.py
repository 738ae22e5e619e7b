"""Configuration for bgdata.

Defaults for the chunked-apply engine, environment overrides, and the output
settings used by the command-line interface.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

# Rows or columns brought into memory per chunk and per worker
DEFAULT_CHUNK_SIZE = 5000

# Worker count used when neither the caller nor BGDATA_N_CORES sets one
DEFAULT_N_CORES = 2


def env_int(name: str, low: int, high: int, fallback: str) -> int | None:
    """Read an integer override from the environment, clamped to [low, high].

    Returns None when the variable is unset or not an integer; the latter
    is logged as a warning naming what happens instead.
    """
    raw = os.environ.get(name)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a valid integer, {fallback}")
        return None
    return max(low, min(value, high))


def get_default_n_cores() -> int:
    """Worker processes used when n_cores is None.

    BGDATA_N_CORES (clamped to [1, os.cpu_count()]) if set, else
    DEFAULT_N_CORES.
    """
    n = env_int(
        "BGDATA_N_CORES",
        1,
        os.cpu_count() or 1,
        fallback=f"falling back to {DEFAULT_N_CORES} cores",
    )
    return DEFAULT_N_CORES if n is None else n


@dataclass
class OutputConfig:
    """Where the CLI writes its result files.

    Attributes:
        outdir: Output directory, created on first write.
        prefix: Filename prefix ("result" gives result.log.txt).
        verbose: Console logging at DEBUG level.
    """

    outdir: Path = field(default_factory=lambda: Path("output"))
    prefix: str = "result"
    verbose: bool = False

    @property
    def log_path(self) -> Path:
        return self.outdir / f"{self.prefix}.log.txt"

    @property
    def summary_path(self) -> Path:
        """Per-marker summary table: {outdir}/{prefix}.summary.txt"""
        return self.outdir / f"{self.prefix}.summary.txt"

    def ensure_outdir(self) -> None:
        self.outdir.mkdir(parents=True, exist_ok=True)
