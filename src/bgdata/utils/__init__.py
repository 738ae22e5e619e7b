"""Utility modules for bgdata."""

from bgdata.utils.logging import setup_logging, write_run_log

__all__ = ["setup_logging", "write_run_log"]
