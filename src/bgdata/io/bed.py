"""Read-only matrix handle on PLINK binary files using bed-reader.

Each ``X[i, j]`` is a windowed read: only the bytes of the selected SNPs are
read from the .bed file, so a chunk of columns costs
O(n_samples * chunk_size) memory regardless of the number of SNPs.
"""

from pathlib import Path

import numpy as np
from bed_reader import open_bed
from loguru import logger

from bgdata.io.matrix import OuterIndexedMatrix


class BedMatrix(OuterIndexedMatrix):
    """Samples x SNPs allele-count matrix backed by .bed/.bim/.fam files.

    Row names are ``"<FID>_<IID>"`` and column names are SNP IDs. Values are
    0.0 (hom ref), 1.0 (het), 2.0 (hom alt), or NaN (missing).

    The handle pickles by path; a worker process reopens the .bed file on
    first read.

    Args:
        bfile: Path prefix for PLINK files (without .bed/.bim/.fam extension).
        dtype: Floating dtype of extracted chunks (default float32).

    Raises:
        FileNotFoundError: If the .bed file does not exist.

    Example:
        >>> X = BedMatrix(Path("data/mouse_hs1940"))
        >>> X.shape
        (1940, 12226)
    """

    def __init__(self, bfile: Path | str, dtype: type = np.float32):
        self.bfile = Path(bfile)
        self._dtype = np.dtype(dtype)
        bed_path = Path(f"{self.bfile}.bed")
        if not bed_path.exists():
            raise FileNotFoundError(f"PLINK .bed file not found: {bed_path}")

        self._bed = open_bed(bed_path)
        self._shape = (self._bed.iid_count, self._bed.sid_count)
        self.rownames = [
            f"{fid}_{iid}" for fid, iid in zip(self._bed.fid, self._bed.iid)
        ]
        self.colnames = [str(sid) for sid in self._bed.sid]
        logger.debug(
            f"Opened {bed_path}: {self._shape[0]} samples, {self._shape[1]} SNPs"
        )

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def _read(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        if len(rows) == 0 or len(cols) == 0:
            return np.empty((len(rows), len(cols)), dtype=self._dtype)
        if self._bed is None:
            self._bed = open_bed(Path(f"{self.bfile}.bed"))
        return self._bed.read(index=(rows, cols), dtype=self._dtype)

    def close(self) -> None:
        """Release the .bed file handle; it is reopened on the next read."""
        # open_bed has no close(); dropping the reference releases it
        self._bed = None

    def __getstate__(self) -> dict:
        state = self.__dict__.copy()
        state["_bed"] = None
        return state

    def __setstate__(self, state: dict) -> None:
        self.__dict__.update(state)
