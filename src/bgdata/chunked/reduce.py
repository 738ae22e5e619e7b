"""Reassembly of per-chunk results into one aggregate result."""

import itertools

import numpy as np
import pandas as pd

from bgdata.errors import InvalidConfiguration, ShapeMismatch

_DIM_NAMES = ("rows", "columns")


def _family(result) -> str:
    if isinstance(result, pd.DataFrame):
        return "DataFrame"
    if isinstance(result, pd.Series):
        return "Series"
    if isinstance(result, dict):
        return "dict"
    if isinstance(result, list):
        return "list"
    if np.ndim(result) == 2:
        return "matrix"
    return "vector"


def _check_shapes(results: list, axis: int) -> str:
    family = _family(results[0])
    # 2-D pieces must agree on the dimension they are not bound along
    fixed = 1 - axis
    extent = (
        np.shape(results[0])[fixed] if family in ("matrix", "DataFrame") else None
    )
    for k, result in enumerate(results[1:], start=1):
        other = _family(result)
        if other != family:
            raise ShapeMismatch(
                k, f"chunk {k + 1} returned a {other} but chunk 1 returned a {family}"
            )
        if extent is not None and np.shape(result)[fixed] != extent:
            raise ShapeMismatch(
                k,
                f"chunk {k + 1} returned {np.shape(result)[fixed]} "
                f"{_DIM_NAMES[fixed]} but chunk 1 returned {extent}",
            )
    return family


def simplify_results(results: list, axis: int = 1):
    """Combine per-chunk results in chunk order.

    The first result decides the layout: 2-D results are bound along axis
    (column-bound by default, row-bound with axis=0 for row chunks), keeping
    the first chunk's labels on the other axis; Series and lists are
    concatenated; dicts become one object Series so repeated keys keep every
    entry; anything else is flattened into one 1-D array.

    Raises:
        InvalidConfiguration: If axis is not 0 or 1.
        ShapeMismatch: If a later chunk's result does not have the same
            shape family as the first, or a 2-D result differs in size along
            the axis it is not bound on.

    Example:
        >>> parts = chunked_map(X, lambda c: c, chunk_by=0, chunk_size=100)
        >>> simplify_results(parts, axis=0).shape == X.shape
        True
    """
    if axis not in (0, 1):
        raise InvalidConfiguration(
            f"axis must be 0 (rows) or 1 (columns), got {axis!r}"
        )
    if not results:
        return np.empty(0)

    family = _check_shapes(results, axis)

    if family == "DataFrame":
        labels = results[0].axes[1 - axis]
        return pd.concat(
            [r.set_axis(labels, axis=1 - axis) for r in results], axis=axis
        )
    if family == "matrix":
        return np.concatenate([np.asarray(r) for r in results], axis=axis)
    if family == "Series":
        return pd.concat(results)
    if family == "dict":
        return pd.concat([pd.Series(r, dtype=object) for r in results])
    if family == "list":
        return list(itertools.chain.from_iterable(results))
    return np.concatenate([np.atleast_1d(np.asarray(r)) for r in results])
