"""bgdata: chunked computation on file-backed genotype matrices.

bgdata applies functions to genomic marker matrices that are too large for
memory by bringing bounded chunks of rows or columns into memory one at a
time, optionally in several worker processes, and reassembling the results.
It also converts PED genotype files into memory-mapped matrices.

Key features:
- chunked_map / chunked_apply over numpy, memory-mapped and PLINK .bed matrices
- Multi-process execution with first-error reporting
- PED to file-backed matrix conversion

Example:
    >>> from bgdata import BedMatrix, chunked_apply
    >>> X = BedMatrix("data/mouse_hs1940")
    >>> freqs = chunked_apply(X, 1, np.nanmean, chunk_size=1000, n_cores=4) / 2
"""

import sys
from importlib.metadata import version

from loguru import logger

__version__ = version("bgdata")

# Configure loguru with sensible defaults on import
# Users can override by calling logger.remove()/add()
logger.remove()  # Remove default handler
logger.add(
    sys.stdout,
    level="INFO",
    format="{time:HH:mm:ss} | <level>{level: <8}</level> | {message}",
    colorize=True,
)

from bgdata.chunked import chunked_apply, chunked_map, margin_apply  # noqa: E402
from bgdata.errors import (  # noqa: E402
    BGDataError,
    ChunkExecutionError,
    InvalidConfiguration,
    InvalidSelector,
    ShapeMismatch,
    UnsupportedResultType,
)
from bgdata.io import (  # noqa: E402
    BedMatrix,
    BGData,
    FileBackedMatrix,
    InMemoryMatrix,
    read_ped,
    read_ped_matrix,
)
from bgdata.summary import summarize  # noqa: E402

__all__ = [
    "BGData",
    "BGDataError",
    "BedMatrix",
    "ChunkExecutionError",
    "FileBackedMatrix",
    "InMemoryMatrix",
    "InvalidConfiguration",
    "InvalidSelector",
    "ShapeMismatch",
    "UnsupportedResultType",
    "__version__",
    "chunked_apply",
    "chunked_map",
    "margin_apply",
    "read_ped",
    "read_ped_matrix",
    "summarize",
]
