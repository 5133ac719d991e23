"""Logging utilities for cellcycle-classifier.

Provides a run log file next to the outputs and a YAML run summary
(parameters, panel overlap and state counts) for provenance.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

PathLike = Union[str, Path]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def timestamped_path(path: PathLike) -> Path:
    """Insert a timestamp before the suffix.

    Example: cell_cycle.log -> cell_cycle_20260301_101500.log
    """
    path = Path(path)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return path.parent / f"{path.stem}_{stamp}{path.suffix or '.log'}"


def attach_file_log(
    logger: logging.Logger,
    log_path: PathLike,
    level: int = logging.INFO,
    timestamped: bool = True,
) -> Tuple[logging.Logger, Path]:
    """Add a file handler to ``logger``.

    Parameters
    ----------
    logger : logging.Logger
        Logger receiving the handler; existing handlers are kept
    log_path : PathLike
        Base log file path
    level : int
        Level of the file handler
    timestamped : bool
        If True, keep previous logs by timestamping the file name

    Returns
    -------
    Tuple[logging.Logger, Path]
        The logger and the actual log file path
    """
    actual = timestamped_path(log_path) if timestamped else Path(log_path)
    actual.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(actual, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return logger, actual


def write_run_summary(
    path: PathLike,
    record: Dict[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
) -> Path:
    """Write a YAML run summary.

    Parameters
    ----------
    path : PathLike
        Destination file (overwritten)
    record : dict
        Summary to serialize; values must be YAML-safe
    logger : logging.Logger, optional
        If provided, the summary is echoed to this logger as well
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(record, sort_keys=False)
    path.write_text(text, encoding="utf-8")
    if logger is not None:
        logger.info("Run summary:\n%s", text.rstrip("\n"))
    return path
