"""I/O modules for bgdata.

This package contains the matrix handles read by the chunked-apply engine
and the readers that create them:
- index: Row/column selector normalization
- matrix: In-memory and memory-mapped matrix handles
- bed: PLINK binary (.bed/.bim/.fam) matrix handle
- ped: PED file reader
"""

from bgdata.io.bed import BedMatrix
from bgdata.io.index import normalize_index
from bgdata.io.matrix import (
    FileBackedMatrix,
    InMemoryMatrix,
    MatrixHandle,
    OuterIndexedMatrix,
    as_matrix_handle,
    get_dimnames,
)
from bgdata.io.ped import BGData, read_ped, read_ped_matrix

__all__ = [
    "BGData",
    "BedMatrix",
    "FileBackedMatrix",
    "InMemoryMatrix",
    "MatrixHandle",
    "OuterIndexedMatrix",
    "as_matrix_handle",
    "get_dimnames",
    "normalize_index",
    "read_ped",
    "read_ped_matrix",
]
