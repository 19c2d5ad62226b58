"""
Logging Configuration for the Roster Engine

- Rotating file handlers (main, debug and error logs)
- Colored console output
- Structured warnings for rejected operations (log_engine_error)

Usage Example:
    import logging

    from roster_engine.logging_config import setup_logging

    setup_logging(level="INFO", log_dir="logs")

    logger = logging.getLogger(__name__)
    logger.info("Engine started")

Log Files Created:
- logs/roster_engine.log: Main log (INFO+), committed transactions
- logs/roster_engine_debug.log: Debug log (DEBUG+), transaction boundaries
- logs/roster_engine_error.log: Error log (ERROR+)

Each file rotates at 10MB with 5 backup files.
"""

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Optional

from .errors import RosterEngineError


DETAILED_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"
)

SIMPLE_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

CONSOLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_PREFIX = "roster_engine"


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        'DEBUG': '\033[36m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[35m',
        'RESET': '\033[0m'
    }

    def format(self, record):
        original = record.levelname
        if original in self.COLORS:
            record.levelname = f"{self.COLORS[original]}{original}{self.COLORS['RESET']}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _rotating_handler(
    log_dir: str,
    suffix: str,
    level: int,
    log_format: str,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, f"{LOG_FILE_PREFIX}{suffix}.log"),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(log_format, datefmt=DATE_FORMAT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    enable_console: bool = True,
    enable_file: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    format_style: str = "detailed"
) -> None:
    """
    Configure logging for a process hosting the engine.

    Call once at startup. Replaces any handlers already on the root logger.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files
        enable_console: Whether to log to console
        enable_file: Whether to log to rotating files
        max_bytes: Maximum size per log file before rotation
        backup_count: Number of rotated files to keep
        format_style: "detailed" or "simple"

    Raises:
        ValueError: If level is not a logging level name
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    log_format = DETAILED_FORMAT if format_style == "detailed" else SIMPLE_FORMAT

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(ColoredFormatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(console_handler)

    if enable_file:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(log_dir, "", logging.INFO, log_format, max_bytes, backup_count))
        root_logger.addHandler(_rotating_handler(log_dir, "_debug", logging.DEBUG, DETAILED_FORMAT, max_bytes, backup_count))
        root_logger.addHandler(_rotating_handler(log_dir, "_error", logging.ERROR, DETAILED_FORMAT, max_bytes, backup_count))

    root_logger.info(
        f"Logging initialized - Level: {level}, "
        f"Console: {enable_console}, File: {enable_file}"
    )


def log_engine_error(
    logger: logging.Logger,
    error: RosterEngineError,
    level: str = "WARNING",
    operation: Optional[str] = None
) -> None:
    """
    Log a rejected engine operation with its structured context.

    Business-rule rejections are expected outcomes, so the default level is
    WARNING and no traceback is attached.

    Args:
        logger: Logger of the component that saw the rejection
        error: The engine error being raised
        level: Log level name
        operation: Unit-of-work label (e.g. "trade.admin_approve") used as prefix
    """
    details = error.to_dict()
    context = ", ".join(f"{k}={v}" for k, v in details["context"].items())
    prefix = f"[{operation}] " if operation else ""
    logger.log(
        logging.getLevelName(level.upper()),
        f"{prefix}{details['kind']} [{details['error_code']}]: {details['message']}"
        + (f" [{context}]" if context else "")
    )
