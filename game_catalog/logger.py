"""Logging setup shared by the catalog clients, importer, routes and CLI."""

import logging
import os
import sys
import time
from typing import Any, Mapping, Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)-8s] [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(
    name: str = "game-catalog",
    level: Optional[int] = None
) -> logging.Logger:
    """
    Return a named logger writing to stdout.

    Repeated calls for the same name reuse the existing handler.

    Args:
        name: Logger name (usually __name__ from calling module)
        level: Logging level (defaults to LOG_LEVEL from the environment, else INFO)

    Returns:
        Configured logger instance
    """
    if level is None:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def format_fields(fields: Mapping[str, Any]) -> str:
    """Render key/value pairs as ``key=value`` separated by spaces."""
    return " ".join(f"{key}={value}" for key, value in fields.items())


class LogContext:
    """
    Time a long-running step such as an import run.

    Extra keyword fields are appended to every message, e.g.
    ``LogContext(logger, "Import", target=5000)`` logs
    ``Import started (target=5000)``.
    """

    def __init__(self, logger: logging.Logger, context: str, **fields: Any):
        self.logger = logger
        self.context = context
        self.suffix = f" ({format_fields(fields)})" if fields else ""
        self.started = None

    def __enter__(self):
        self.started = time.monotonic()
        self.logger.info(f"{self.context} started{self.suffix}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.monotonic() - self.started

        if exc_type is None:
            self.logger.info(f"{self.context} finished in {elapsed:.2f}s{self.suffix}")
        else:
            self.logger.error(f"{self.context} aborted after {elapsed:.2f}s{self.suffix}: {exc_type.__name__}: {exc_val}")

        return False


def log_with_stats(logger: logging.Logger, stats: Mapping[str, Any], prefix: str = "Results"):
    """Log a stats dictionary on one line, e.g. ``Import results: batches=3 games_imported=1500``."""
    logger.info(f"{prefix}: {format_fields(stats)}")


def log_error_with_context(logger: logging.Logger, operation: str, identifier: str, error: Exception):
    """
    Log a recovered failure.

    Used where the caller degrades instead of raising: a best-effort upsert
    step, a remote search fallback, a detail join or a route handler.
    """
    logger.error(f"{operation} failed [{identifier}]: {type(error).__name__}: {error}")
