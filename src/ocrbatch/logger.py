# src/ocrbatch/logger.py

import logging
import sys
from pathlib import Path
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler
from typing import Union, Optional, List

LOGGER_NAME = "ocrbatch"

# --- Custom Log Level for Progress ---
PROGRESS = 25
logging.addLevelName(PROGRESS, "PROGRESS")

def progress(self, msg, *args, **kwargs):
    if self.isEnabledFor(PROGRESS):
        self._log(PROGRESS, msg, args, **kwargs)

logging.Logger.progress = progress

# --- Custom Filters ---
class ExcludeLevelFilter(logging.Filter):
    def __init__(self, levelno: int):
        super().__init__()
        self.levelno = levelno
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno != self.levelno


def build_handlers(
    *,
    level: int = logging.INFO,
    file_path: Optional[Union[str, Path]] = None,
    file_level: Optional[int] = None,
    stream=None,
) -> List[logging.Handler]:
    """
    Create the console and (optional) rotating file handlers.

    PROGRESS records are kept out of the log file; the console shows them
    so long-running batches give feedback per file.
    """
    handlers: List[logging.Handler] = []

    ch = logging.StreamHandler(stream or sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(asctime)s | %(levelname)-8s | %(message)s", "%H:%M:%S"))
    handlers.append(ch)

    if file_path:
        fp = Path(file_path)
        fp.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(fp, maxBytes=5*1024*1024, backupCount=2, encoding="utf-8")
        fh.setLevel(file_level if file_level is not None else level)
        fh.setFormatter(logging.Formatter("%(asctime)s | %(processName)-15s | %(levelname)-8s | %(message)s"))
        fh.addFilter(ExcludeLevelFilter(PROGRESS))
        handlers.append(fh)

    return handlers


def setup_logging(
    *,
    level: int = logging.INFO,
    file_path: Optional[Union[str, Path]] = None,
    file_level: Optional[int] = None,
    stream=None,
) -> logging.Logger:
    """
    Configure the 'ocrbatch' logger for a CLI run.

    Args:
        level: The base logging level for console output.
        file_path: Path to the persistent log file.
        file_level: The logging level for the file.
        stream: Console stream, stderr by default.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(min(level, file_level if file_level is not None else level))
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in build_handlers(level=level, file_path=file_path, file_level=file_level, stream=stream):
        logger.addHandler(h)
    logger.propagate = False
    return logger


def start_queue_listener(log_queue) -> QueueListener:
    """
    Drain worker-process records from log_queue into the handlers currently
    attached to the package logger. You must call .stop() on the result.
    """
    handlers = logging.getLogger(LOGGER_NAME).handlers or build_handlers()
    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()
    return listener


def configure_worker_logging(log_queue, level: int = logging.DEBUG):
    """
    Configures the logger for a worker process.
    This is called in the initializer of a multiprocessing.Pool.
    It removes all existing handlers and adds only a QueueHandler.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Remove any handlers that may have been inherited from the parent process
    logger.handlers.clear()

    if log_queue is not None:
        logger.addHandler(QueueHandler(log_queue))
        logger.propagate = False
