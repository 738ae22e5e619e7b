"""Core support modules for bgdata.

- config: Defaults and output configuration
- memory: Chunk memory estimation
- progress: Progress bars
- threading: BLAS thread control for chunk workers
"""

from bgdata.core.config import (
    DEFAULT_CHUNK_SIZE,
    OutputConfig,
    get_default_n_cores,
)
from bgdata.core.memory import (
    ChunkMemoryEstimate,
    check_chunk_memory,
    estimate_chunk_memory,
)

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "OutputConfig",
    "get_default_n_cores",
    "ChunkMemoryEstimate",
    "check_chunk_memory",
    "estimate_chunk_memory",
]
