"""Console logging setup and the run log written next to CLI outputs."""

import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

import bgdata

CONSOLE_FORMAT = "{time:HH:mm:ss} | <level>{level: <8}</level> | {message}"


def setup_logging(verbose: bool = False, log_file: Path | None = None) -> None:
    """Replace all loguru handlers with bgdata's console handler.

    Args:
        verbose: Log DEBUG messages (chunk plans, memory estimates, worker
            failure counts) to the console instead of INFO and above.
        log_file: Also write every DEBUG+ record to this file as JSON lines.
    """
    logger.remove()
    logger.add(
        sys.stdout,
        level="DEBUG" if verbose else "INFO",
        format=CONSOLE_FORMAT,
        colorize=True,
    )
    if log_file:
        logger.add(log_file, serialize=True, level="DEBUG")


def _section(title: str, entries: dict, template: str) -> list[str]:
    lines = [f"## {title}:"]
    lines += [template.format(key=key, value=value) for key, value in entries.items()]
    return lines + ["##"]


def write_run_log(
    output_config: "bgdata.core.config.OutputConfig",
    params: dict,
    timing: dict,
    command_line: str,
) -> Path:
    """Write {outdir}/{prefix}.log.txt describing one CLI run.

    Every line starts with "##"; params and timing become
    "## key = value" and "## key time = 1.23 seconds" entries:

        ##
        ## bgdata Version = 0.1.0
        ## Date = 2026-10-18T10:30:00
        ##
        ## Command Line Input = bgdata summarize -geno out/geno/geno.bin
        ##
        ## Summary Statistics:
        ## n_markers = 12226
        ##
        ## Computation Time:
        ## total time = 1.23 seconds
        ##

    Returns:
        Path of the log file.
    """
    seconds = {
        key: f"{value:.2f}" if isinstance(value, float) else value
        for key, value in timing.items()
    }
    lines = [
        "##",
        f"## bgdata Version = {bgdata.__version__}",
        f"## Date = {datetime.now().isoformat()}",
        "##",
        f"## Command Line Input = {command_line}",
        "##",
    ]
    lines += _section("Summary Statistics", params, "## {key} = {value}")
    lines += _section("Computation Time", seconds, "## {key} time = {value} seconds")

    output_config.ensure_outdir()
    log_path = output_config.log_path
    log_path.write_text("\n".join(lines) + "\n")
    return log_path
