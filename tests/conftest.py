"""Pytest fixtures for the bgdata test suite."""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from loguru import logger

from bgdata.io import FileBackedMatrix

# =============================================================================
# Test Tier System
# =============================================================================
#
# tier0 - Fast Unit Tests (<5s each)
#   - Pure computation on in-memory matrices, no worker pools
#   - Run: pytest -m tier0
#
# tier1 - End-to-end Tests
#   - PED/.bed/memmap files under tmp_path, multi-process dispatch
#   - Run: pytest -m tier1
#
# Quick reference:
#   pytest -m tier0             # Fast tests only
#   pytest -m "not slow"        # Everything but long-running tests
#   pytest                      # All tests
# =============================================================================

# Genotypes of the example PED file: 3 samples x 3 markers
PED_GENOTYPES = np.array([[4, 3, 1], [4, 2, 2], [4, 3, 1]])
PED_ROWNAMES = ["1_1", "1_2", "1_3"]
PED_COLNAMES = ["mrk_1", "mrk_2", "mrk_3"]


def _ped_text() -> str:
    lines = ["FID IID PAT MAT SEX PHENOTYPE " + " ".join(PED_COLNAMES)]
    for k, row in enumerate(PED_GENOTYPES):
        genotypes = " ".join(str(v) for v in row)
        lines.append(f"1 {k + 1} NA NA NA NA {genotypes}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def ped_file(tmp_path: Path) -> Path:
    """Plain-text PED file with a header, 3 samples and 3 markers."""
    path = tmp_path / "example.ped"
    path.write_text(_ped_text())
    return path


@pytest.fixture
def ped_gz_file(tmp_path: Path) -> Path:
    """Gzip-compressed copy of the example PED file."""
    import gzip

    path = tmp_path / "example.ped.gz"
    with gzip.open(path, "wt") as f:
        f.write(_ped_text())
    return path


@pytest.fixture
def int_matrix() -> np.ndarray:
    """100 x 20 integer matrix with a fixed seed."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 3, size=(100, 20))


@pytest.fixture
def labelled_matrix() -> np.ndarray:
    """6 x 4 float matrix whose columns are easy to tell apart."""
    return np.arange(24, dtype=np.float64).reshape(6, 4)


@pytest.fixture
def file_backed(tmp_path: Path, int_matrix: np.ndarray) -> FileBackedMatrix:
    """int_matrix stored in a memory-mapped file with dimnames."""
    n_rows, n_cols = int_matrix.shape
    X = FileBackedMatrix.create(
        tmp_path / "geno.bin",
        int_matrix.shape,
        dtype=np.int8,
        rownames=[f"id_{k}" for k in range(n_rows)],
        colnames=[f"snp_{k}" for k in range(n_cols)],
    )
    X[:, :] = int_matrix
    X.flush()
    return X


@pytest.fixture
def bed_data(tmp_path: Path) -> tuple[Path, np.ndarray]:
    """PLINK .bed/.bim/.fam files for 10 samples x 7 SNPs with one missing call.

    Returns:
        Tuple of (path prefix without extension, values written).
    """
    from bed_reader import to_bed

    rng = np.random.default_rng(7)
    values = rng.integers(0, 3, size=(10, 7)).astype(np.float32)
    values[2, 3] = np.nan
    prefix = tmp_path / "toy"
    to_bed(
        f"{prefix}.bed",
        values,
        properties={
            "fid": ["fam"] * 10,
            "iid": [f"s{k}" for k in range(10)],
            "sid": [f"rs{k}" for k in range(7)],
        },
    )
    return prefix, values


class LoguruCapture:
    """Collects formatted loguru records for assertions."""

    def __init__(self):
        self.records: list[str] = []

    def write(self, message) -> None:
        self.records.append(str(message))

    @property
    def text(self) -> str:
        return "".join(self.records)


@pytest.fixture
def caplog_loguru():
    """Capture loguru output of the current process (pytest's caplog misses it)."""
    capture = LoguruCapture()
    handler_id = logger.add(capture.write, level="DEBUG", format="{level} | {message}")
    yield capture
    logger.remove(handler_id)
