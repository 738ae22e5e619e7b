"""PED genotype file reader.

Reads whitespace-delimited PED files whose genotype columns are already
coded as allele counts (for example the output of ``plink --recodeA``):

    FID IID PAT MAT SEX PHENOTYPE snp1 snp2 ...
    1   1   NA  NA  NA  NA        0    2    ...

The leading n_col_skip columns become the phenotype table; the remaining p
columns are written into a genotype matrix, either file-backed (read_ped) or
in memory (read_ped_matrix). Files ending in .gz are decompressed on the fly.
"""

import gzip
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
from loguru import logger

from bgdata.core.progress import progress_iterator
from bgdata.errors import InvalidConfiguration
from bgdata.io.matrix import FileBackedMatrix, InMemoryMatrix, OuterIndexedMatrix

# Standard names of the six leading PED columns
PED_COLUMNS = ["FID", "IID", "PAT", "MAT", "SEX", "PHENOTYPE"]

GENO_FILENAME = "geno.bin"


@dataclass
class BGData:
    """Genotypes plus the phenotype table read alongside them.

    Attributes:
        geno: Genotype matrix with shape (n_samples, n_markers).
        pheno: Phenotype table with one row per sample, indexed like the
            rows of geno.
    """

    geno: OuterIndexedMatrix
    pheno: pd.DataFrame

    @property
    def n_samples(self) -> int:
        """Number of samples (rows of geno)."""
        return self.geno.shape[0]

    @property
    def n_markers(self) -> int:
        """Number of markers (columns of geno)."""
        return self.geno.shape[1]


def _open_text(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return open(path)


def _iter_tokens(path: Path) -> Iterator[list[str]]:
    with _open_text(path) as f:
        for line in f:
            tokens = line.split()
            if tokens:
                yield tokens


def _ped_dimensions(
    path: Path,
    header: bool,
    n_col_skip: int,
    n: int | None,
    p: int | None,
) -> tuple[int, int, list[str] | None]:
    """Determine n, p and the header line, scanning the file only if needed."""
    lines = _iter_tokens(path)
    first = next(lines, None)
    if first is None:
        raise ValueError(f"PED file is empty: {path}")

    p_file = len(first) - n_col_skip
    if p_file < 0:
        raise ValueError(
            f"PED file has {len(first)} columns, fewer than n_col_skip={n_col_skip}"
        )
    if p is not None and p != p_file:
        raise ValueError(
            f"p={p} given but the PED file has {p_file} genotype columns"
        )

    header_tokens = first if header else None
    if n is None:
        n = sum(1 for _ in lines) + (0 if header else 1)
    lines.close()

    return n, p_file, header_tokens


def _convert_pheno(
    records: list[list[str]], columns: list[str], index: list[str], na: set[str]
) -> pd.DataFrame:
    pheno = pd.DataFrame(records, columns=columns, index=index, dtype=object)
    pheno = pheno.mask(pheno.isin(na))
    for col in pheno.columns:
        try:
            pheno[col] = pd.to_numeric(pheno[col])
        except (TypeError, ValueError):
            pass
    return pheno


def _fill_genotypes(
    path: Path,
    target: np.ndarray,
    header: bool,
    n_col_skip: int,
    id_cols: Sequence[int],
    na: set[str],
    verbose: bool,
) -> tuple[list[list[str]], list[str]]:
    """Write genotype rows into target; return phenotype records and row names."""
    n, p = target.shape
    numeric = target.dtype.kind not in "O"
    integer = target.dtype.kind in "iub"

    raw_lines = _iter_tokens(path)
    if header:
        next(raw_lines)
    lines = raw_lines
    if verbose:
        lines = progress_iterator(raw_lines, total=n, desc="Reading PED")

    records: list[list[str]] = []
    rownames: list[str] = []
    try:
        for k, tokens in enumerate(lines):
            if k == n:
                break
            if len(tokens) != n_col_skip + p:
                raise ValueError(
                    f"PED line {k + 1}: expected {n_col_skip + p} columns, "
                    f"got {len(tokens)}"
                )
            records.append(tokens[:n_col_skip])
            rownames.append("_".join(tokens[c] for c in id_cols))

            values = tokens[n_col_skip:]
            if numeric:
                row = np.array(
                    [np.nan if v in na else v for v in values], dtype=np.float64
                )
                if integer and np.isnan(row).any():
                    raise ValueError(
                        f"PED line {k + 1}: missing genotypes cannot be stored as "
                        f"{target.dtype}; use a floating dtype"
                    )
                target[k, :] = row
            else:
                target[k, :] = [None if v in na else v for v in values]
    finally:
        lines.close()
        raw_lines.close()

    if len(records) < n:
        raise ValueError(f"PED file has {len(records)} data lines, expected n={n}")

    return records, rownames


def _pheno_columns(header_tokens: list[str] | None, n_col_skip: int) -> list[str]:
    if header_tokens is not None:
        return header_tokens[:n_col_skip]
    if n_col_skip == len(PED_COLUMNS):
        return list(PED_COLUMNS)
    return [f"V{k + 1}" for k in range(n_col_skip)]


def _check_input(path: Path, n_col_skip: int, id_cols: Sequence[int]) -> None:
    if not path.exists():
        raise FileNotFoundError(f"PED file not found: {path}")
    if any(c < 0 or c >= n_col_skip for c in id_cols):
        raise InvalidConfiguration(
            f"id_cols {tuple(id_cols)} must index the first {n_col_skip} columns"
        )


def read_ped(
    path: Path | str,
    folder_out: Path | str,
    header: bool = True,
    dtype: Any = np.int8,
    n: int | None = None,
    p: int | None = None,
    na_strings: Sequence[str] = ("NA",),
    n_col_skip: int = 6,
    id_cols: Sequence[int] = (0, 1),
    verbose: bool = False,
) -> BGData:
    """Read a PED file into a file-backed genotype matrix.

    Args:
        path: PED file, optionally gzip-compressed (.gz).
        folder_out: Directory to create for the genotype matrix. Must not
            exist yet.
        header: Whether the first line holds column names.
        dtype: Numeric dtype of the genotype matrix (default int8).
        n: Number of samples. Counted from the file if None.
        p: Number of markers. Taken from the first line if None.
        na_strings: Tokens that denote missing values.
        n_col_skip: Number of leading phenotype columns.
        id_cols: Phenotype columns joined with "_" to form row names.
        verbose: Show a progress bar while reading.

    Returns:
        BGData whose geno is a FileBackedMatrix at folder_out/geno.bin.

    Raises:
        FileNotFoundError: If the PED file does not exist.
        FileExistsError: If folder_out already exists.
        InvalidConfiguration: If dtype is not numeric.
        ValueError: If the file is malformed or holds missing genotypes
            for an integer dtype.

    Example:
        >>> data = read_ped(Path("geno.ped.gz"), Path("out/geno"))
        >>> data.geno.shape
        (1940, 12226)
    """
    path = Path(path)
    folder_out = Path(folder_out)
    _check_input(path, n_col_skip, id_cols)
    if folder_out.exists():
        raise FileExistsError(f"Output folder already exists: {folder_out}")
    dtype = np.dtype(dtype)
    if dtype.kind in "USOV":
        raise InvalidConfiguration(
            f"file-backed genotypes need a numeric dtype, got {dtype}"
        )

    n, p, header_tokens = _ped_dimensions(path, header, n_col_skip, n, p)
    logger.info(f"Reading {n} samples x {p} markers from {path}")

    folder_out.mkdir(parents=True)
    geno = FileBackedMatrix.create(folder_out / GENO_FILENAME, (n, p), dtype=dtype)
    na = set(na_strings)
    records, rownames = _fill_genotypes(
        path, geno.to_numpy(), header, n_col_skip, id_cols, na, verbose
    )
    colnames = header_tokens[n_col_skip:] if header_tokens is not None else None
    geno.set_dimnames(rownames, colnames)
    geno.flush()

    columns = _pheno_columns(header_tokens, n_col_skip)
    pheno = _convert_pheno(records, columns, rownames, na)
    logger.info(f"Genotypes written to {geno.path}")
    return BGData(geno=geno, pheno=pheno)


def read_ped_matrix(
    path: Path | str,
    header: bool = True,
    dtype: Any = np.int8,
    n: int | None = None,
    p: int | None = None,
    na_strings: Sequence[str] = ("NA",),
    n_col_skip: int = 6,
    id_cols: Sequence[int] = (0, 1),
    verbose: bool = False,
) -> BGData:
    """Read a PED file into an in-memory genotype matrix.

    Same arguments as read_ped without folder_out. String dtypes are
    accepted here and keep genotype tokens as text (None for missing).
    """
    path = Path(path)
    _check_input(path, n_col_skip, id_cols)
    dtype = np.dtype(dtype)

    n, p, header_tokens = _ped_dimensions(path, header, n_col_skip, n, p)
    logger.info(f"Reading {n} samples x {p} markers from {path}")

    text = dtype.kind in "USO"
    data = np.empty((n, p), dtype=object if text else dtype)
    na = set(na_strings)
    records, rownames = _fill_genotypes(
        path, data, header, n_col_skip, id_cols, na, verbose
    )
    colnames = header_tokens[n_col_skip:] if header_tokens is not None else None

    geno = InMemoryMatrix(data, rownames=rownames, colnames=colnames)
    columns = _pheno_columns(header_tokens, n_col_skip)
    pheno = _convert_pheno(records, columns, rownames, na)
    return BGData(geno=geno, pheno=pheno)
