"""Error taxonomy for bgdata.

Every error raised on purpose by the chunked-apply engine derives from
BGDataError and from the builtin exception that best describes it, so
callers can catch either.
"""


class BGDataError(Exception):
    """Base class for bgdata errors."""


class InvalidSelector(BGDataError, IndexError):
    """Row or column selector is malformed or out of range."""


class InvalidConfiguration(BGDataError, ValueError):
    """Invalid chunking parameters or a non matrix-like input."""


class UnsupportedResultType(BGDataError, TypeError):
    """Margin apply got a table, or results whose length changed between calls."""


class ShapeMismatch(BGDataError, ValueError):
    """Per-chunk results disagree in shape and cannot be combined.

    Attributes:
        chunk_index: 0-based index of the first chunk whose result does not
            match the shape of chunk 0.
    """

    def __init__(self, chunk_index: int, message: str):
        super().__init__(message)
        self.chunk_index = chunk_index


class ChunkExecutionError(BGDataError, RuntimeError):
    """User function failed while processing a chunk.

    Attributes:
        chunk_index: 0-based index of the failing chunk.
        n_chunks: Total number of chunks in the run.
        error_type: Class name of the original exception.
        first_only: True when raised after a parallel run, where later
            failures were discarded and only the first one is reported.
    """

    def __init__(
        self,
        chunk_index: int,
        n_chunks: int,
        message: str,
        error_type: str = "Exception",
        first_only: bool = False,
    ):
        self.chunk_index = chunk_index
        self.n_chunks = n_chunks
        self.error_type = error_type
        self.first_only = first_only
        self.original_message = message
        if first_only:
            text = (
                f"in chunk {chunk_index + 1} (only first error is shown): {message}"
            )
        else:
            text = f"in chunk {chunk_index + 1} of {n_chunks}: {message}"
        super().__init__(text)
