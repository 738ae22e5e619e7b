"""Per-marker summary statistics over a (file-backed) genotype matrix.

For each selected column of an allele-count matrix: the fraction of missing
calls, the frequency of the counted allele, and the standard deviation of
the allele counts, computed chunk by chunk with chunked_apply.
"""

from typing import Any

import numpy as np
import pandas as pd

from bgdata.chunked.apply import chunked_apply
from bgdata.core.config import DEFAULT_CHUNK_SIZE

SUMMARY_COLUMNS = ["freq_na", "allele_freq", "sd"]


def marker_summary(x: np.ndarray) -> np.ndarray:
    """Missing fraction, allele frequency and SD of one marker's calls.

    Markers without observed calls get NaN frequency and SD; markers with a
    single observed call get NaN SD.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return np.full(len(SUMMARY_COLUMNS), np.nan)

    missing = np.isnan(x)
    observed = x[~missing]
    freq_na = missing.mean()
    allele_freq = observed.mean() / 2 if observed.size else np.nan
    sd = observed.std(ddof=1) if observed.size > 1 else np.nan
    return np.array([freq_na, allele_freq, sd])


def summarize(
    X: Any,
    i: Any = None,
    j: Any = None,
    chunk_size: int | None = DEFAULT_CHUNK_SIZE,
    n_cores: int | None = None,
    verbose: bool = False,
) -> pd.DataFrame:
    """Summarize every selected marker (column) of X.

    Args:
        X: Matrix handle, numpy array, or DataFrame of allele counts with
            NaN for missing calls.
        i: Samples (rows) to use. None uses all rows.
        j: Markers (columns) to use. None uses all columns.
        chunk_size: Markers per chunk.
        n_cores: Worker processes. None uses get_default_n_cores().
        verbose: Log one line per chunk.

    Returns:
        DataFrame with columns freq_na, allele_freq and sd, one row per
        selected marker, indexed by marker name when X has column names.

    Example:
        >>> summarize(BedMatrix("data/mouse_hs1940"), n_cores=4).head(2)
                    freq_na  allele_freq        sd
        rs3683945       0.0     0.523196  0.777064
        rs3707673       0.0     0.523454  0.777150
    """
    res = chunked_apply(
        X,
        1,
        marker_summary,
        i=i,
        j=j,
        chunk_size=chunk_size,
        n_cores=n_cores,
        verbose=verbose,
    )
    index = res.columns if isinstance(res, pd.DataFrame) else None
    values = np.asarray(res, dtype=np.float64).reshape(len(SUMMARY_COLUMNS), -1)
    return pd.DataFrame(values.T, columns=SUMMARY_COLUMNS, index=index)
