"""Conversion of row/column selectors into integer index sets.

Selectors follow numpy conventions with a few restrictions: indices are
0-based, negative integers are not accepted, and boolean masks must cover the
whole axis. Names are resolved against the axis' dimnames.
"""

from collections.abc import Sequence

import numpy as np

from bgdata.errors import InvalidSelector


def _lookup_names(
    names_wanted: np.ndarray, names: Sequence[str] | None, axis: str
) -> np.ndarray:
    if names is None:
        raise InvalidSelector(f"{axis}: names given but the axis has no dimnames")
    name_to_index: dict[str, int] = {}
    for pos, name in enumerate(names):
        # First occurrence wins, like match() on duplicated dimnames
        name_to_index.setdefault(str(name), pos)

    indices = np.empty(len(names_wanted), dtype=np.intp)
    for k, name in enumerate(names_wanted):
        pos = name_to_index.get(str(name))
        if pos is None:
            raise InvalidSelector(f"{axis}: name {str(name)!r} not found")
        indices[k] = pos
    return indices


def normalize_index(
    selector,
    extent: int,
    names: Sequence[str] | None = None,
    axis: str = "i",
) -> np.ndarray:
    """Convert a selector into an ordered array of 0-based indices.

    Args:
        selector: None (all), a slice, a scalar int or str, or a 1-D
            sequence/array of ints, bools, or strs.
        extent: Length of the axis being indexed.
        names: Dimnames of the axis, required for name selectors.
        axis: Label used in error messages ("i" for rows, "j" for columns).

    Returns:
        np.intp array of indices. Order and duplicates of the selector are
        preserved.

    Raises:
        InvalidSelector: If a boolean mask has the wrong length, a name is
            unknown, an integer is outside [0, extent), or the selector has
            an unsupported type.

    Example:
        >>> normalize_index([True, False, True], 3)
        array([0, 2])
        >>> normalize_index(["b", "a"], 2, names=["a", "b"])
        array([1, 0])
    """
    if selector is None:
        return np.arange(extent, dtype=np.intp)

    if isinstance(selector, slice):
        return np.arange(extent, dtype=np.intp)[selector]

    if isinstance(selector, (bool, np.bool_)):
        raise InvalidSelector(
            f"{axis}: a single boolean is not a valid selector, use a mask"
        )

    if isinstance(selector, (int, np.integer, str)):
        selector = [selector]

    try:
        values = np.asarray(selector)
    except ValueError as e:
        raise InvalidSelector(f"{axis}: cannot interpret selector: {e}") from e

    if values.ndim != 1:
        raise InvalidSelector(
            f"{axis}: selector must be one-dimensional, got shape {values.shape}"
        )

    if values.size == 0:
        return np.empty(0, dtype=np.intp)

    kind = values.dtype.kind
    if kind == "b":
        if values.size != extent:
            raise InvalidSelector(
                f"{axis}: boolean selector has length {values.size} "
                f"but the axis has extent {extent}"
            )
        return np.flatnonzero(values).astype(np.intp)

    if kind in "iu":
        bad = (values < 0) | (values >= extent)
        if bad.any():
            raise InvalidSelector(
                f"{axis}: index {values[bad][0]} out of range for extent {extent}"
            )
        return values.astype(np.intp)

    if kind in "US" or (
        kind == "O" and all(isinstance(v, str) for v in values.tolist())
    ):
        return _lookup_names(values, names, axis)

    raise InvalidSelector(f"{axis}: unsupported selector dtype {values.dtype}")
