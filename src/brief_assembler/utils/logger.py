"""Rich console logging with per-stage timing for the assembly pipeline."""

from __future__ import annotations

import json
import logging
import time
from contextlib import contextmanager
from typing import Generator, Optional

from rich.console import Console
from rich.logging import RichHandler

from ..config import get_settings

# Global console for rich output
console = Console(stderr=True)

_loggers: dict[str, logging.Logger] = {}


def _rich_handler() -> RichHandler:
    return RichHandler(console=console, rich_tracebacks=True, show_path=False, markup=False)


class ProgressLogger:
    """Logger wrapper that times named pipeline stages."""

    def __init__(self, logger: logging.Logger, component: str):
        self.logger = logger
        self.component = component
        self._start_times: dict[str, float] = {}

    def start_operation(self, operation: str, details: str = "") -> None:
        """Log the start of an operation and track timing."""
        self._start_times[operation] = time.perf_counter()
        msg = f"[START] {operation}"
        if details:
            msg += f" - {details}"
        self.logger.info(msg)

    def end_operation(self, operation: str, success: bool = True, details: str = "") -> float:
        """Log the end of an operation and return its duration in seconds."""
        started = self._start_times.pop(operation, None)
        duration = time.perf_counter() - started if started is not None else 0.0

        status = "DONE" if success else "FAILED"
        msg = f"[{status}] {operation} ({duration:.2f}s)"
        if details:
            msg += f" - {details}"

        if success:
            self.logger.info(msg)
        else:
            self.logger.error(msg)
        return duration

    def step(self, operation: str, step_name: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
        """Log a step within an operation."""
        progress = ""
        if current is not None and total:
            pct = (current / total) * 100
            progress = f"[{current}/{total} - {pct:.0f}%] "
        self.logger.info(f"  {progress}{operation}: {step_name}")

    def debug(self, msg: str, **context) -> None:
        self._log_with_context(logging.DEBUG, msg, context)

    def info(self, msg: str, **context) -> None:
        self._log_with_context(logging.INFO, msg, context)

    def warning(self, msg: str, **context) -> None:
        self._log_with_context(logging.WARNING, msg, context)

    def error(self, msg: str, **context) -> None:
        self._log_with_context(logging.ERROR, msg, context)

    def _log_with_context(self, level: int, msg: str, context: dict) -> None:
        if context:
            msg = f"{msg} | {json.dumps(context, default=str)}"
        self.logger.log(level, f"[{self.component}] {msg}")


def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Configure logger with Rich handler.

    Args:
        name: Logger name
        level: Logging level; defaults to the configured LOG_LEVEL

    Returns:
        Configured logger
    """
    if name in _loggers:
        return _loggers[name]

    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_rich_handler()],
    )

    logger = logging.getLogger(name)
    _loggers[name] = logger
    return logger


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger.

    Args:
        name: Logger name
        level: Optional logging level

    Returns:
        Logger instance
    """
    if name in _loggers:
        return _loggers[name]

    return setup_logger(name, level)


def get_progress_logger(name: str, component: str = "") -> ProgressLogger:
    """Get a progress-aware logger for a pipeline component."""
    return ProgressLogger(get_logger(name), component or name.rsplit(".", 1)[-1])


def setup_logging(level: Optional[str] = None) -> None:
    """
    Set up global logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR); defaults to the
            configured LOG_LEVEL
    """
    numeric = getattr(logging, (level or get_settings().log_level).upper())
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[_rich_handler()],
        force=True,
    )

    for logger in _loggers.values():
        logger.setLevel(numeric)


@contextmanager
def log_operation(logger: logging.Logger, operation: str, details: str = "") -> Generator[None, None, None]:
    """
    Context manager for logging operation start/end with timing.

    Usage:
        with log_operation(logger, "Assembling document", "template: Pizza"):
            ...
    """
    start_time = time.perf_counter()
    logger.info(f"[START] {operation}" + (f" - {details}" if details else ""))
    try:
        yield
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(f"[FAILED] {operation} ({duration:.2f}s) - {e}")
        raise
    duration = time.perf_counter() - start_time
    logger.info(f"[DONE] {operation} ({duration:.2f}s)")
