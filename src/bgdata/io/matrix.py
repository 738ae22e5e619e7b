"""Matrix handles consumed by the chunked-apply engine.

A matrix handle exposes shape, dimnames and dtype, and returns in-memory
numpy arrays for ``handle[i, j]`` with outer indexing: every selected row
crossed with every selected column, like ``X[i, j, drop = FALSE]`` on an R
matrix. Selectors are normalized with normalize_index, so integers, boolean
masks and names all work.

FileBackedMatrix keeps its values in a numpy memmap on disk and pickles by
path, so worker processes reopen the same file instead of receiving a copy
of the data. The backing file is only ever read during chunked runs, which
makes it safe to open from several processes at once.
"""

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import numpy as np
import pandas as pd

from bgdata.errors import InvalidConfiguration, InvalidSelector
from bgdata.io.index import normalize_index

DimNames = tuple[list[str] | None, list[str] | None]


@runtime_checkable
class MatrixHandle(Protocol):
    """Structural type of anything chunked_map can read from."""

    @property
    def shape(self) -> tuple[int, ...]: ...

    def __getitem__(self, key: Any) -> np.ndarray: ...


def get_dimnames(handle: Any) -> DimNames:
    """Row and column names of a handle, (None, None) if it has none."""
    dimnames = getattr(handle, "dimnames", None)
    if dimnames is None:
        return None, None
    return dimnames


def _check_names(names: Sequence | None, extent: int, axis: str) -> list[str] | None:
    if names is None:
        return None
    names = [str(name) for name in names]
    if len(names) != extent:
        raise InvalidConfiguration(
            f"{axis} has {len(names)} names but the matrix has extent {extent}"
        )
    return names


class OuterIndexedMatrix:
    """Base class for handles with outer-indexed ``X[i, j]`` access.

    Subclasses provide shape, dtype and _read(rows, cols); selector
    normalization and the ``__getitem__`` protocol live here.
    """

    rownames: list[str] | None = None
    colnames: list[str] | None = None

    @property
    def shape(self) -> tuple[int, int]:
        raise NotImplementedError

    @property
    def dtype(self) -> np.dtype:
        raise NotImplementedError

    @property
    def ndim(self) -> int:
        return 2

    @property
    def dimnames(self) -> DimNames:
        return self.rownames, self.colnames

    def _normalize(self, key) -> tuple[np.ndarray, np.ndarray]:
        if not isinstance(key, tuple) or len(key) != 2:
            raise InvalidSelector("matrix handles take two selectors: X[i, j]")
        i, j = key
        n_rows, n_cols = self.shape
        rows = normalize_index(i, n_rows, self.rownames, axis="i")
        cols = normalize_index(j, n_cols, self.colnames, axis="j")
        return rows, cols

    def _read(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def __getitem__(self, key) -> np.ndarray:
        rows, cols = self._normalize(key)
        return self._read(rows, cols)

    def __len__(self) -> int:
        return self.shape[0]

    def __repr__(self) -> str:
        n_rows, n_cols = self.shape
        return f"{type(self).__name__}({n_rows} x {n_cols}, dtype={self.dtype})"


class InMemoryMatrix(OuterIndexedMatrix):
    """A numpy array with dimnames and outer indexing."""

    def __init__(
        self,
        data: np.ndarray,
        rownames: Sequence | None = None,
        colnames: Sequence | None = None,
    ):
        data = np.asarray(data)
        if data.ndim != 2:
            raise InvalidConfiguration(
                f"X must be a matrix-like object, got {data.ndim} dimensions"
            )
        self._data = data
        self.rownames = _check_names(rownames, data.shape[0], "rows")
        self.colnames = _check_names(colnames, data.shape[1], "columns")

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    def _read(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        return self._data[np.ix_(rows, cols)]

    def __setitem__(self, key, value) -> None:
        rows, cols = self._normalize(key)
        self._data[np.ix_(rows, cols)] = value

    def to_numpy(self) -> np.ndarray:
        return self._data


def _as_slice(indices: np.ndarray) -> slice | np.ndarray:
    """Turn a run of consecutive indices into a slice (a view on memmaps)."""
    if len(indices) > 0 and np.all(np.diff(indices) == 1):
        return slice(int(indices[0]), int(indices[-1]) + 1)
    return indices


class FileBackedMatrix(OuterIndexedMatrix):
    """Matrix stored in a raw binary file and accessed through numpy.memmap.

    Layout on disk:
        <path>       raw values, column-major by default
        <path>.json  header with shape, dtype, order, rownames, colnames

    Args:
        path: Path of the binary file.
        mode: memmap mode, "r" (read-only) or "r+" (read-write).

    Raises:
        FileNotFoundError: If the binary file or its header is missing.
    """

    HEADER_SUFFIX = ".json"

    def __init__(self, path: Path | str, mode: str = "r"):
        self.path = Path(path)
        self.mode = mode
        header_path = self.header_path(self.path)
        if not self.path.exists():
            raise FileNotFoundError(f"Matrix file not found: {self.path}")
        if not header_path.exists():
            raise FileNotFoundError(f"Matrix header not found: {header_path}")

        with open(header_path) as f:
            header = json.load(f)

        self._shape = tuple(header["shape"])
        self._order = header.get("order", "F")
        self._data = np.memmap(
            self.path,
            dtype=np.dtype(header["dtype"]),
            mode=mode,
            shape=self._shape,
            order=self._order,
        )
        self.rownames = header.get("rownames")
        self.colnames = header.get("colnames")

    @classmethod
    def header_path(cls, path: Path) -> Path:
        return Path(f"{path}{cls.HEADER_SUFFIX}")

    @classmethod
    def create(
        cls,
        path: Path | str,
        shape: tuple[int, int],
        dtype: Any = np.float64,
        rownames: Sequence | None = None,
        colnames: Sequence | None = None,
        order: str = "F",
    ) -> "FileBackedMatrix":
        """Create a new zero-filled file-backed matrix, opened read-write.

        Raises:
            FileExistsError: If path or its header already exists.
            InvalidConfiguration: If dtype is not numeric/boolean, the matrix
                would be empty, or names do not match the shape.
        """
        path = Path(path)
        dtype = np.dtype(dtype)
        if dtype.kind in "USOV":
            raise InvalidConfiguration(
                f"file-backed matrices need a numeric dtype, got {dtype}"
            )
        if len(shape) != 2:
            raise InvalidConfiguration(f"shape must have two dimensions, got {shape}")
        if shape[0] * shape[1] == 0:
            raise InvalidConfiguration(
                f"cannot create an empty file-backed matrix (shape {shape})"
            )
        if order not in ("C", "F"):
            raise InvalidConfiguration(f"order must be 'C' or 'F', got {order!r}")

        header_path = cls.header_path(path)
        for existing in (path, header_path):
            if existing.exists():
                raise FileExistsError(f"Refusing to overwrite {existing}")

        header = {
            "shape": [int(shape[0]), int(shape[1])],
            "dtype": dtype.str,
            "order": order,
            "rownames": _check_names(rownames, shape[0], "rows"),
            "colnames": _check_names(colnames, shape[1], "columns"),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(header_path, "w") as f:
            json.dump(header, f)

        np.memmap(path, dtype=dtype, mode="w+", shape=tuple(shape), order=order).flush()
        return cls(path, mode="r+")

    @property
    def shape(self) -> tuple[int, int]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    def _read(self, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
        row_key = _as_slice(rows)
        col_key = _as_slice(cols)
        if isinstance(row_key, slice) and isinstance(col_key, slice):
            return np.array(self._data[row_key, col_key])
        if isinstance(col_key, slice):
            return np.array(self._data[:, col_key][rows, :])
        if isinstance(row_key, slice):
            return np.array(self._data[row_key, :][:, cols])
        return np.array(self._data[np.ix_(rows, cols)])

    def __setitem__(self, key, value) -> None:
        rows, cols = self._normalize(key)
        self._data[np.ix_(rows, cols)] = value

    def flush(self) -> None:
        """Write pending changes to disk."""
        self._data.flush()

    def to_numpy(self) -> np.memmap:
        return self._data

    def set_dimnames(
        self, rownames: Sequence | None, colnames: Sequence | None
    ) -> None:
        """Replace the row and column names stored in the header."""
        header_path = self.header_path(self.path)
        with open(header_path) as f:
            header = json.load(f)
        header["rownames"] = _check_names(rownames, self._shape[0], "rows")
        header["colnames"] = _check_names(colnames, self._shape[1], "columns")
        with open(header_path, "w") as f:
            json.dump(header, f)
        self.rownames = header["rownames"]
        self.colnames = header["colnames"]

    def __getstate__(self) -> dict:
        # Pickle by reference; the receiving process maps the file itself
        if self.mode != "r":
            self.flush()
        return {"path": str(self.path), "mode": self.mode}

    def __setstate__(self, state: dict) -> None:
        self.__init__(state["path"], mode=state["mode"])


def as_matrix_handle(X: Any) -> MatrixHandle:
    """Wrap X as a matrix handle.

    numpy arrays and DataFrames are wrapped in InMemoryMatrix (DataFrame
    index and columns become dimnames). Handles are returned as they are.

    Raises:
        InvalidConfiguration: If X is not two-dimensional.
    """
    if isinstance(X, OuterIndexedMatrix):
        return X
    if isinstance(X, pd.DataFrame):
        return InMemoryMatrix(X.to_numpy(), rownames=X.index, colnames=X.columns)
    if isinstance(X, np.ndarray):
        return InMemoryMatrix(X)
    shape = getattr(X, "shape", None)
    if shape is None or len(shape) != 2 or not hasattr(X, "__getitem__"):
        raise InvalidConfiguration("X must be a matrix-like object")
    return X
