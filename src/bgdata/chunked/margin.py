"""Memory-conscious apply along one margin of an in-memory chunk.

Instead of building a uniform copy of every row or column up front, the user
function is called once on the first row/column to learn the result shape, an
output buffer of that shape is preallocated, and the remaining rows/columns
are written into it one at a time.
"""

from collections import Counter
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np
import pandas as pd

from bgdata.errors import InvalidConfiguration, UnsupportedResultType

# Result types that describe a table rather than a value per row/column
TABLE_TYPES = (pd.DataFrame, Counter)


def _take(x: np.ndarray, margin: int, k: int) -> np.ndarray:
    return x[k, :] if margin == 0 else x[:, k]


def _values(result) -> np.ndarray:
    return np.ravel(np.asarray(result))


def _buffer_dtype(values: np.ndarray) -> np.dtype:
    # Strings have no common width across calls
    if values.dtype.kind in "USO":
        return np.dtype(object)
    return values.dtype


def _widen(out: np.ndarray, values: np.ndarray) -> np.ndarray:
    """Return out, upcast if needed so values can be stored without loss."""
    if out.dtype == object:
        return out
    if values.dtype.kind in "USO":
        return out.astype(object)
    dtype = np.result_type(out.dtype, values.dtype)
    return out if dtype == out.dtype else out.astype(dtype)


def _check_length(values: np.ndarray, expected: int, k: int) -> None:
    if values.size != expected:
        raise UnsupportedResultType(
            f"call {k + 1} returned {values.size} values "
            f"but the first call returned {expected}"
        )


def margin_apply(
    x: np.ndarray,
    margin: int,
    fn: Callable[..., Any],
    *args,
    labels: Sequence | None = None,
    **kwargs,
):
    """Apply fn to every row (margin=0) or column (margin=1) of x.

    The result layout is picked from the first call:

    - list or dict: a list with one entry per row/column (an object Series
      indexed by labels when labels are given, so repeated labels keep
      every entry)
    - a single value: a 1-D array (a Series indexed by labels when given)
    - a vector of length != 1: a 2-D array with one column per row/column of
      x, labelled as a DataFrame when labels are given or fn returns a
      Series

    The output buffer starts with the dtype of the first result and is
    upcast when a later result needs it (int to float, numbers to object for
    strings), so no value is truncated.

    Args:
        x: 2-D array.
        margin: 0 for rows, 1 for columns.
        fn: Function applied to each 1-D slice.
        *args: Extra positional arguments for fn.
        labels: Optional names of the rows/columns along margin.
        **kwargs: Extra keyword arguments for fn.

    Raises:
        InvalidConfiguration: If margin is not 0 or 1 or x is not 2-D.
        UnsupportedResultType: If fn returns a table (DataFrame, Counter),
            raised after the first call, or a later call returns a different
            number of values than the first.

    Example:
        >>> margin_apply(np.arange(6).reshape(2, 3), 0, np.sum)
        array([ 3, 12])
    """
    if margin not in (0, 1):
        raise InvalidConfiguration(
            f"margin must be 0 (rows) or 1 (columns), got {margin}"
        )
    x = np.asarray(x)
    if x.ndim != 2:
        raise InvalidConfiguration(f"margin_apply needs a 2-D array, got {x.ndim}-D")

    extent = x.shape[margin]
    if labels is not None and len(labels) != extent:
        raise InvalidConfiguration(
            f"{len(labels)} labels given for a margin of extent {extent}"
        )
    if extent == 0:
        return np.empty(0)

    sample = fn(_take(x, margin, 0), *args, **kwargs)

    if isinstance(sample, TABLE_TYPES):
        raise UnsupportedResultType("tables are not supported")

    if isinstance(sample, (list, dict)):
        out: list = [None] * extent
        out[0] = sample
        for k in range(1, extent):
            out[k] = fn(_take(x, margin, k), *args, **kwargs)
        if labels is not None:
            return pd.Series(out, index=pd.Index(labels), dtype=object)
        return out

    row_labels = sample.index if isinstance(sample, pd.Series) else None
    values = _values(sample)

    if values.size == 1:
        out = np.empty(extent, dtype=_buffer_dtype(values))
        out[0] = values[0]
        for k in range(1, extent):
            value = _values(fn(_take(x, margin, k), *args, **kwargs))
            _check_length(value, 1, k)
            out = _widen(out, value)
            out[k] = value[0]
        if labels is not None:
            return pd.Series(out, index=pd.Index(labels))
        return out

    out = np.empty((values.size, extent), dtype=_buffer_dtype(values))
    out[:, 0] = values
    for k in range(1, extent):
        value = _values(fn(_take(x, margin, k), *args, **kwargs))
        _check_length(value, values.size, k)
        out = _widen(out, value)
        out[:, k] = value
    if labels is not None or row_labels is not None:
        return pd.DataFrame(
            out,
            index=row_labels,
            columns=pd.Index(labels) if labels is not None else None,
        )
    return out
