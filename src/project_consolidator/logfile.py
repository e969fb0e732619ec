"""
Logging configuration: console output and the buffered run log file.

Log file lines look like:

    18-10-2026 14:03:11 [INFO] Crawl complete: 12 projects in 340 folders

Levels written to the file are INFO, WARN, ERROR and SYSTEM (run start/end
markers). Records are buffered in memory and flushed every
LOG_BUFFER_CAPACITY records, on any ERROR, and through flush_now().
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional, Union

SYSTEM = 25
logging.addLevelName(SYSTEM, "SYSTEM")

PACKAGE_LOGGER = "project_consolidator"

LOG_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_FILE_DATEFMT = "%d-%m-%Y %H:%M:%S"
LOG_BUFFER_CAPACITY = 50


class LogFileFormatter(logging.Formatter):
    """Formatter that renders the log file's four level names."""

    LEVEL_NAMES = {
        logging.DEBUG: "INFO",
        logging.INFO: "INFO",
        SYSTEM: "SYSTEM",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "ERROR",
    }

    def __init__(self):
        super().__init__(fmt=LOG_FILE_FORMAT, datefmt=LOG_FILE_DATEFMT)

    def format(self, record: logging.LogRecord) -> str:
        # Work on a copy so other handlers still see the standard name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = self.LEVEL_NAMES.get(record.levelno, record.levelname)
        return super().format(record)


def log_system(logger: logging.Logger, message: str) -> None:
    """Log a SYSTEM-level run marker."""
    logger.log(SYSTEM, message)


def create_file_handler(
    log_path: Union[str, Path],
    capacity: int = LOG_BUFFER_CAPACITY
) -> logging.handlers.MemoryHandler:
    """
    Build a buffered, append-only handler for the run log file.

    Args:
        log_path: Path of the log file (created if missing)
        capacity: Records buffered before an automatic flush

    Returns:
        A MemoryHandler wrapping a FileHandler
    """
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    target = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    target.setFormatter(LogFileFormatter())
    buffered = logging.handlers.MemoryHandler(
        capacity,
        flushLevel=logging.ERROR,
        target=target,
        flushOnClose=True
    )
    buffered.setLevel(logging.INFO)
    return buffered


def setup_logging(verbosity: int, log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Configure console logging by verbosity and attach the log file handler.

    -v enables INFO, -vv enables DEBUG; the default shows warnings only.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logging.basicConfig(level=level, handlers=[console])

    if log_file is not None:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        # The file records INFO and above whatever the console shows
        package_logger.setLevel(min(level, logging.INFO))
        package_logger.addHandler(create_file_handler(log_file))


def _buffered_handlers():
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    return [
        h for h in package_logger.handlers
        if isinstance(h, logging.handlers.MemoryHandler)
    ]


def flush_now() -> None:
    """Write every buffered log record to disk immediately."""
    for handler in _buffered_handlers():
        handler.flush()


def close_log_files() -> None:
    """Flush, close and detach the log file handlers."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in _buffered_handlers():
        target = handler.target
        handler.close()
        if target is not None:
            target.close()
        package_logger.removeHandler(handler)
