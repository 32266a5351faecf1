"""
Logging setup for the walk-up scan service.

The listener thread, on-demand scan threads and Flask request threads all
talk to the same device, so every line carries the name of the thread
that wrote it. Scan sessions additionally log under their own logger
(walkup_scan.session.<id>) so one session can be grepped out of the file.

Log Format:
    2026-10-16 10:15:30 [INFO    ] [MainThread] walkup_scan.app - Starting service
    2026-10-16 10:15:31 [INFO    ] [Walkup] walkup_scan.modules.listening - Waiting scan event
    2026-10-16 10:15:42 [INFO    ] [Scan-a1b2c3d4] walkup_scan.session.a1b2c3d4 - Page downloaded

Usage:
    setup_logging(log_level=logging.INFO, enable_file_logging=True)
    logger = get_logger(__name__)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "walkup_scan"

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5

# Connection pool chatter on every event-table poll
NOISY_LOGGERS = ("urllib3", "urllib3.connectionpool")


class ThreadContextFilter(logging.Filter):
    """Adds thread_name and thread_id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.thread_name = threading.current_thread().name
        record.thread_id = threading.get_ident()
        return True


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      thread_filter: logging.Filter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(thread_filter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure the service logger.

    Console output is always on. With file logging, all records also go to
    <log_dir>/<app_name>.log and ERROR and above to <app_name>_error.log,
    both rotated at 10 MB.

    Args:
        app_name: Name of the service logger
        log_level: Minimum level for console and main file
        log_dir: Directory for log files (default: ./logs next to this file)
        enable_file_logging: Whether to write log files

    Returns:
        The configured service logger
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False
    logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    thread_filter = ThreadContextFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter, thread_filter))
        logger.addHandler(
            _rotating_handler(log_dir / f"{app_name}_error.log", logging.ERROR, formatter, thread_filter)
        )
        logger.info(f"File logging enabled: {app_log_file}")

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Child logger in the service namespace.

    get_logger("modules.listening") -> "walkup_scan.modules.listening"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def get_session_logger(session_id: str) -> logging.Logger:
    """Logger for one scan session, named after the first 8 characters of its id."""
    return logging.getLogger(f"{APP_LOGGER_NAME}.session.{session_id[:8]}")


def set_thread_name(name: str) -> None:
    """Rename the current thread; the name shows up in every log line."""
    threading.current_thread().name = name
