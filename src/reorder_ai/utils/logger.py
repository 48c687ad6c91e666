"""
Logging Setup
=============
One formatter and one handler layout for every ``reorder_ai`` module.

Records go to stdout; the CLI can add a log file afterwards through
``configure_logging``. Package loggers do not propagate to the root
logger, so embedding applications keep control of their own output.

Usage:
    from reorder_ai.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("Forecast run started")
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
PACKAGE_LOGGER_PREFIX = 'reorder_ai'


def _formatter() -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _add_file_handler(logger: logging.Logger, log_file: Union[str, Path], level: int) -> None:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path, encoding='utf-8')
    file_handler.setLevel(level)
    file_handler.setFormatter(_formatter())
    logger.addHandler(file_handler)


def get_logger(
    name: str,
    log_file: Optional[Union[str, Path]] = None,
    level: int = logging.INFO
) -> logging.Logger:
    """
    Return the logger for ``name``, attaching handlers on first use.

    Parameters
    ----------
    name : str
        Usually the calling module's ``__name__``
    log_file : str or Path, optional
        Also write records to this file
    level : int
        Threshold for the logger and its handlers

    Returns
    -------
    logging.Logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(_formatter())
    logger.addHandler(stream_handler)

    if log_file:
        _add_file_handler(logger, log_file, level)

    logger.propagate = False
    return logger


def configure_logging(level: Union[int, str] = logging.INFO,
                      log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Apply a level (and optional log file) to every package logger.

    Loggers created with ``get_logger`` do not propagate, so the file
    handler is attached to each ``reorder_ai`` logger individually.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    for name, existing in list(logging.root.manager.loggerDict.items()):
        if not name.startswith(PACKAGE_LOGGER_PREFIX) or not isinstance(existing, logging.Logger):
            continue
        existing.setLevel(level)
        for handler in existing.handlers:
            handler.setLevel(level)

        has_file = any(isinstance(h, logging.FileHandler) for h in existing.handlers)
        if log_file and not has_file:
            _add_file_handler(existing, log_file, level)


def log_dataframe_info(logger: logging.Logger, df_name: str, df) -> None:
    """Log the shape of a result table and warn about empty cells."""
    rows, columns = df.shape
    logger.info(f"Table '{df_name}': {rows:,} rows x {columns} columns")

    empty_cells = int(df.isna().to_numpy().sum())
    if empty_cells:
        logger.warning(f"Table '{df_name}' has {empty_cells:,} empty cells")


class LogContext:
    """
    Log the start, end and duration of one pipeline stage.

    The duration is kept on ``elapsed`` after the block exits. Exceptions
    are logged and re-raised.

    Usage:
        with LogContext(logger, "Training reorder classifier") as stage:
            ...
        stage.elapsed
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.elapsed: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.info(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.perf_counter() - self._started
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation} ({self.elapsed:.2f}s)")
        else:
            self.logger.error(f"Failed: {self.operation} ({self.elapsed:.2f}s) - {exc_val}")
        return False
