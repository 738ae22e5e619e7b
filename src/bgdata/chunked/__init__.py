"""Chunked apply engine.

- plan: Chunk boundary arithmetic
- executor: Chunk extraction and invocation
- margin: Row/column apply within a chunk
- dispatch: Sequential and multi-process execution
- reduce: Reassembly of per-chunk results
- apply: chunked_map and chunked_apply
"""

from bgdata.chunked.apply import chunked_apply, chunked_map
from bgdata.chunked.dispatch import ChunkFailure, dispatch_chunks
from bgdata.chunked.executor import ChunkTask
from bgdata.chunked.margin import margin_apply
from bgdata.chunked.plan import chunk_range, count_chunks, plan_chunks
from bgdata.chunked.reduce import simplify_results

__all__ = [
    "ChunkFailure",
    "ChunkTask",
    "chunk_range",
    "chunked_apply",
    "chunked_map",
    "count_chunks",
    "dispatch_chunks",
    "margin_apply",
    "plan_chunks",
    "simplify_results",
]
