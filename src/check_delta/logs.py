"""Diagnostic output routing for the ``--log-type`` option."""

from pathlib import Path
import logging

from rich.console import Console
from rich.logging import RichHandler

from .constants import LOG_FILE
from .core import LogType

# Parent of every module logger in the package
PACKAGE_LOGGER = "check_delta"


def configure_logging(log_type: LogType, target_dir: Path, verbose: bool = False) -> logging.Handler:
    """Route check-delta diagnostics to stderr, a log file, or nowhere.

    Replaces any handler installed by an earlier call, so repeated runs in
    one process (tests, embedding) do not duplicate output.

    Args:
        log_type: Destination
        target_dir: Build output directory holding the log file
        verbose: Include DEBUG records

    Returns:
        The installed handler
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_type == LogType.STDERR:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=False,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    elif log_type == LogType.FILE:
        target_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target_dir / LOG_FILE, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    else:
        handler = logging.NullHandler()

    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    logger.propagate = False
    return handler
