"""Logging configuration for circuitflow.

The compiler only emits records. Host applications call setup_logging() to get:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing decorator and context manager for compile steps
- Audit trail of path switch-overs

Environment Variables:
    CIRCUITFLOW_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    CIRCUITFLOW_LOG_FILE: Path to log file (default: ~/.circuitflow/circuitflow.log)
    CIRCUITFLOW_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    CIRCUITFLOW_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from circuitflow.utils.logging_config import setup_logging, timed

    setup_logging()  # calling again replaces the handlers; reset_logging() removes them

    @timed("compile")
    def compile_circuit(details, ...):
        ...

    with timed_section_sync("static_mac", circuit_id=100):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

from .audit_log import setup_audit_logging

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("circuitflow.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("CIRCUITFLOW_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".circuitflow" / "circuitflow.log"
    path_str = os.environ.get("CIRCUITFLOW_LOG_FILE", str(default_path))
    return Path(path_str)


MAIN_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s"
PERF_FORMAT = "%(asctime)s.%(msecs)03d | PERF | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so a second setup replaces them
_HANDLER_TAG = "_circuitflow_handler"


def _rotating_handler(path: Path, fmt: str) -> RotatingFileHandler:
    max_size_mb = int(os.environ.get("CIRCUITFLOW_LOG_MAX_SIZE", "10"))
    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=int(os.environ.get("CIRCUITFLOW_LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt, datefmt=DATE_FORMAT))
    return handler


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_TAG, True)
    logger.addHandler(handler)


def reset_logging() -> None:
    """Remove every handler setup_logging() installed."""
    for logger in (logging.getLogger("circuitflow"), perf_logger):
        for handler in list(logger.handlers):
            if getattr(handler, _HANDLER_TAG, False):
                logger.removeHandler(handler)
                handler.close()


def setup_logging(
    log_file: Optional[Path] = None,
    level: Optional[int] = None,
    console: bool = True,
) -> Path:
    """Attach circuitflow's handlers for an application embedding the compiler.

    The compiler itself only emits records; nothing is written until the
    host application calls this (or configures logging on its own).

    Args:
        log_file: Main log file (default: CIRCUITFLOW_LOG_FILE)
        level: Console level (default: CIRCUITFLOW_LOG_LEVEL)
        console: Also log to stderr

    Returns:
        Path of the main log file; circuitflow-perf.log and audit.log are
        written next to it
    """
    log_file = Path(log_file) if log_file is not None else get_log_file()
    level = level if level is not None else get_log_level()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    reset_logging()

    package_logger = logging.getLogger("circuitflow")
    package_logger.setLevel(logging.DEBUG)
    _install(package_logger, _rotating_handler(log_file, MAIN_FORMAT))
    if console:
        stream = logging.StreamHandler()
        stream.setLevel(level)
        stream.setFormatter(logging.Formatter(MAIN_FORMAT, datefmt=DATE_FORMAT))
        _install(package_logger, stream)

    # perf records also reach the main log through propagation
    perf_logger.setLevel(logging.DEBUG)
    _install(perf_logger, _rotating_handler(log_file.parent / "circuitflow-perf.log", PERF_FORMAT))

    setup_audit_logging(str(log_file.parent))

    package_logger.info(
        f"Logging initialized: level={logging.getLevelName(level)}, file={log_file}"
    )
    return log_file


def _circuit_label(args: tuple, circuit_id: Optional[int]) -> str:
    if circuit_id is not None:
        return str(circuit_id)
    if args and getattr(args[0], "circuit_id", None) is not None:
        return str(args[0].circuit_id)
    return "N/A"


def timed(operation: str, circuit_id: Optional[int] = None):
    """Decorator to log execution time of a function.

    Args:
        operation: Name of the operation (e.g., "compile", "change_path")
        circuit_id: Optional circuit identifier (can also be inferred from the
            first argument's circuit_id)

    Usage:
        @timed("compile")
        def compile_circuit(details, ...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            label = _circuit_label(args, circuit_id)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
                elapsed = (time.perf_counter() - start) * 1000  # ms
                perf_logger.info(
                    f"{operation:20s} | {label:10s} | {elapsed:8.2f}ms | OK"
                )
                return result
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(
                    f"{operation:20s} | {label:10s} | {elapsed:8.2f}ms | FAIL: {e}"
                )
                raise

        return wrapper

    return decorator


@contextmanager
def timed_section_sync(operation: str, circuit_id: Optional[int] = None, **extra):
    """Context manager for timing code sections.

    Args:
        operation: Name of the operation
        circuit_id: Circuit identifier
        **extra: Additional context to log

    Usage:
        with timed_section_sync("static_mac", circuit_id=100, path="primary"):
            ...
    """
    start = time.perf_counter()
    label = str(circuit_id) if circuit_id is not None else "N/A"
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {label:10s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.debug(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {label:10s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
