"""bgdata command-line interface.

Typer-based CLI for converting PED files into file-backed genotype matrices
and summarizing markers chunk by chunk. Global options (-outdir, -o, -v)
come before the command:

    bgdata -outdir out read-ped -ped geno.ped.gz -folder-out out/geno
    bgdata -outdir out summarize -geno out/geno/geno.bin -cores 4
"""

import sys
import time
from pathlib import Path
from typing import Annotated, NoReturn

import numpy as np
import typer

import bgdata
from bgdata.core import DEFAULT_CHUNK_SIZE, OutputConfig, get_default_n_cores
from bgdata.io import BedMatrix, FileBackedMatrix, read_ped
from bgdata.summary import summarize
from bgdata.utils import setup_logging, write_run_log

app = typer.Typer(
    name="bgdata",
    help="bgdata: chunked computation on file-backed genotype matrices.",
    add_completion=False,
)

# Set by the callback, read by the commands
_global_config: OutputConfig | None = None


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bgdata version {bgdata.__version__}")
        raise typer.Exit()


@app.callback()
def main(
    outdir: Annotated[
        Path,
        typer.Option("-outdir", help="Output directory"),
    ] = Path("output"),
    output: Annotated[
        str,
        typer.Option("-o", help="Output file prefix"),
    ] = "result",
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Log every chunk and debug details"),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option("-log-file", help="Also write DEBUG logs here as JSON lines"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """bgdata: chunked computation on file-backed genotype matrices."""
    global _global_config
    _global_config = OutputConfig(outdir=outdir, prefix=output, verbose=verbose)
    setup_logging(verbose=verbose, log_file=log_file)


def _get_config() -> OutputConfig:
    global _global_config
    if _global_config is None:
        _global_config = OutputConfig()
    return _global_config


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def _finish(config: OutputConfig, params: dict, timing: dict) -> None:
    log_path = write_run_log(config, params, timing, " ".join(sys.argv))
    typer.echo(f"Log written to {log_path}")


@app.command("read-ped")
def read_ped_command(
    ped: Annotated[
        Path,
        typer.Option("-ped", help="PED file (optionally .gz) with allele counts"),
    ],
    folder_out: Annotated[
        Path,
        typer.Option("-folder-out", help="Folder to create for the genotype matrix"),
    ],
    dtype: Annotated[
        str,
        typer.Option("-dtype", help="Numeric dtype of the genotypes"),
    ] = "int8",
    header: Annotated[
        bool,
        typer.Option("--header/--no-header", help="First line holds column names"),
    ] = True,
    n: Annotated[
        int | None,
        typer.Option("-n", help="Number of samples (counted if omitted)"),
    ] = None,
    p: Annotated[
        int | None,
        typer.Option("-p", help="Number of markers (read from the file if omitted)"),
    ] = None,
) -> None:
    """Convert a PED file into a file-backed genotype matrix."""
    start_time = time.perf_counter()
    config = _get_config()

    if not ped.exists():
        _fail(f"PED file not found: {ped}")
    try:
        dtype_obj = np.dtype(dtype)
    except TypeError:
        _fail(f"unknown dtype {dtype!r}")

    typer.echo(f"Reading PED file {ped}...")
    try:
        data = read_ped(
            ped,
            folder_out,
            header=header,
            dtype=dtype_obj,
            n=n,
            p=p,
            verbose=config.verbose,
        )
    except (OSError, ValueError) as e:
        _fail(f"cannot read PED file: {e}")

    typer.echo(f"Loaded {data.n_samples} samples, {data.n_markers} markers")
    typer.echo(f"Genotypes written to {data.geno.path}")

    params = {
        "n_samples": data.n_samples,
        "n_markers": data.n_markers,
        "dtype": dtype_obj.name,
        "ped_file": str(ped),
        "geno_file": str(data.geno.path),
    }
    _finish(config, params, {"total": time.perf_counter() - start_time})


@app.command("summarize")
def summarize_command(
    geno: Annotated[
        Path | None,
        typer.Option("-geno", help="File-backed genotype matrix (geno.bin)"),
    ] = None,
    bfile: Annotated[
        Path | None,
        typer.Option("-bfile", help="PLINK binary file prefix"),
    ] = None,
    chunk_size: Annotated[
        int,
        typer.Option("-chunk-size", help="Markers per chunk"),
    ] = DEFAULT_CHUNK_SIZE,
    cores: Annotated[
        int | None,
        typer.Option("-cores", help="Worker processes (default: BGDATA_N_CORES or 2)"),
    ] = None,
) -> None:
    """Compute missing rate, allele frequency and SD for every marker."""
    start_time = time.perf_counter()
    config = _get_config()

    if (geno is None) == (bfile is None):
        _fail("give exactly one of -geno or -bfile")
    source = geno if geno is not None else bfile
    try:
        X = FileBackedMatrix(geno) if geno is not None else BedMatrix(bfile)
    except (OSError, ValueError) as e:
        _fail(f"cannot open genotypes: {e}")

    n_samples, n_markers = X.shape
    typer.echo(f"Loaded {n_samples} samples, {n_markers} markers")

    n_cores = cores if cores is not None else get_default_n_cores()
    t_summary = time.perf_counter()
    try:
        table = summarize(
            X, chunk_size=chunk_size, n_cores=n_cores, verbose=config.verbose
        )
    except bgdata.BGDataError as e:
        _fail(str(e))
    summary_time = time.perf_counter() - t_summary

    config.ensure_outdir()
    table.to_csv(
        config.summary_path, sep="\t", index_label="marker", float_format="%.10g"
    )
    typer.echo(f"Summary written to {config.summary_path}")

    params = {
        "n_samples": n_samples,
        "n_markers": n_markers,
        "input": str(source),
        "chunk_size": chunk_size,
        "n_cores": n_cores,
        "output_file": str(config.summary_path),
    }
    timing = {"total": time.perf_counter() - start_time, "summarize": summary_time}
    _finish(config, params, timing)


if __name__ == "__main__":
    app()
