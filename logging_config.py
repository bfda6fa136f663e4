"""
Centralized logging configuration for CanLabeler.

This module provides thread-aware logging with automatic thread context
in all log messages. The scale runs in its own thread and catalog loads
fan out to a small pool, so the thread name tells you who said what.

Features:
    - Automatic thread name in all log messages
    - Console output (always enabled)
    - Rotating file logs (optional, for production)
    - Separate error log for ERROR/CRITICAL messages (ledger faults land here)
    - Per-can loggers for print attempts, also written to a print audit log

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] can_labeler.app - Starting application
    2026-10-19 10:15:31 [INFO    ] [Scale] can_labeler.services.scale_service - Scale read loop starting
    2026-10-19 10:15:32 [INFO    ] [MainThread] can_labeler.print.4821 - Label dispatched

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)

    # For one print attempt
    print_logger = get_print_logger(4821)
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "can_labeler"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Logging filter that adds thread context to all log records.

    Adds thread_name and thread_id to each record for the format string.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()

        # Never filters anything out, only adds context
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

LOG_FORMAT = "%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        filename=path,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(ThreadContextFilter())
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    Handlers:
        console            every message at log_level (always)
        <app>.log          every message at log_level (file logging only)
        <app>_error.log    ERROR and CRITICAL (file logging only)
        <app>_prints.log   per-can print loggers only, an audit trail of
                           every can id handed out (file logging only)

    Args:
        app_name: Name of the root logger (default: "can_labeler")
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs relative to this file)
        enable_file_logging: Whether to write to log files (default: True)

    Returns:
        Configured root logger instance
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs to root logger
    logger.handlers.clear()

    print_logger = logging.getLogger(f"{app_name}.print")
    print_logger.handlers.clear()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(ThreadContextFilter())
    logger.addHandler(console_handler)

    if enable_file_logging:
        log_dir = Path(log_dir) if log_dir else Path(__file__).parent / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)

        app_log_file = log_dir / f"{app_name}.log"
        logger.addHandler(_rotating_handler(app_log_file, log_level, formatter))
        logger.addHandler(_rotating_handler(log_dir / f"{app_name}_error.log", logging.ERROR, formatter))

        # Print records still propagate to the app handlers above
        print_logger.addHandler(_rotating_handler(log_dir / f"{app_name}_prints.log", logging.INFO, formatter))

        logger.info(f"File logging enabled in {log_dir}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger with the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger under "can_labeler", e.g. "can_labeler.services.print_workflow"
    """
    if not name.startswith(APP_LOGGER_NAME):
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


class PrintLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with the can id it belongs to."""

    def process(self, msg, kwargs):
        msg, kwargs = super().process(msg, kwargs)
        return f"[can {self.extra['can_id']}] {msg}", kwargs


def get_print_logger(can_id) -> PrintLoggerAdapter:
    """
    Get a logger for one print attempt.

    Makes it easy to grep every step taken for a single can. All attempts
    share the "can_labeler.print" logger; the can id travels in `extra`
    (and in the message prefix) so no logger is created per can.

    Args:
        can_id: Can id consumed by the attempt

    Returns:
        Adapter over "can_labeler.print" with extra={"can_id": can_id}
    """
    return PrintLoggerAdapter(logging.getLogger(f"{APP_LOGGER_NAME}.print"), {"can_id": can_id})


def set_thread_name(name: str) -> None:
    """Set the name shown in the [thread_name] field of log messages."""
    threading.current_thread().name = name
