# =============================================================================
# demonlist_core/logging/config.py
# Logging Configuration for the Demon List storage core
# =============================================================================

import logging
import os
import sys
import time
from datetime import date
from pathlib import Path
from typing import Dict, Optional, Tuple, Type, Union


# Sync work runs on named threads (SyncPushWorker, SyncPull_0, ...), so the
# thread name is part of every line
LOG_FORMAT = "%(asctime)s | %(threadName)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log directory
LOG_DIR = Path("logs")

# Overrides the default level when setup_logging() is called without one
LOG_LEVEL_ENV = "DEMONLIST_LOG_LEVEL"

# HTTP stack loggers that flood INFO with one line per PostgREST request
NOISY_LOGGERS: Dict[str, int] = {
    "urllib3": logging.WARNING,
    "requests": logging.WARNING,
    "charset_normalizer": logging.WARNING,
}


def resolve_level(level: Union[int, str, None] = None) -> int:
    """
    Turn a level given as int or name into a logging level.

    ``None`` reads DEMONLIST_LOG_LEVEL; unknown names fall back to INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).strip().upper())
    return value if isinstance(value, int) else logging.INFO


def log_file_path(day: Optional[date] = None) -> Path:
    """Daily log file under LOG_DIR, e.g. logs/demonlist_2024-03-01.log."""
    return LOG_DIR / f"demonlist_{(day or date.today()).isoformat()}.log"


def setup_logging(
    level: Union[int, str, None] = None,
    log_to_file: bool = False,
    log_filename: Optional[str] = None,
    noisy_loggers: Optional[Dict[str, int]] = None,
) -> int:
    """
    Configure application-wide logging.

    Args:
        level: Level as int or name; DEMONLIST_LOG_LEVEL (then INFO) when None
        log_to_file: Also write to the daily file under LOG_DIR
        log_filename: Fixed filename under LOG_DIR instead of the daily one
        noisy_loggers: Logger name -> minimum level (default NOISY_LOGGERS)

    Returns:
        The level the root logger was set to
    """
    resolved = resolve_level(level)
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        path = LOG_DIR / log_filename if log_filename else log_file_path()
        handlers.append(logging.FileHandler(path, encoding="utf-8"))

    logging.basicConfig(
        level=resolved,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name, minimum in (NOISY_LOGGERS if noisy_loggers is None else noisy_loggers).items():
        logging.getLogger(name).setLevel(minimum)

    logging.getLogger("demonlist_core").info(
        f"Logging initialized at {logging.getLevelName(resolved)}"
    )
    return resolved


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Usage:
        from demonlist_core.logging import get_logger
        logger = get_logger(__name__)
        logger.info("Bootstrap pull started")
    """
    return logging.getLogger(name)


class LogContext:
    """
    Time an operation and log its start and outcome.

    Exceptions listed in ``expected`` are normal outcomes of a user action
    (a rejected submission, a missing level) and are logged at INFO without
    a traceback; anything else is logged as an error. Exceptions are never
    suppressed.

    Usage:
        with LogContext(logger, "Rejecting submission", expected=(DomainValidationError,)):
            moderation.reject_submission(sub_id, actor)
        # Logs: "Rejecting submission... started"
        # Logs: "Rejecting submission... completed (3 ms)"
    """

    def __init__(
        self,
        logger: logging.Logger,
        operation: str,
        level: int = logging.INFO,
        expected: Tuple[Type[BaseException], ...] = (),
    ):
        self.logger = logger
        self.operation = operation
        self.level = level
        self.expected = expected
        self.elapsed_ms: Optional[float] = None
        self._started: Optional[float] = None

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.log(self.level, f"{self.operation}... started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.perf_counter() - self._started) * 1000

        if exc_type is None:
            self.logger.log(self.level, f"{self.operation}... completed ({self.elapsed_ms:.0f} ms)")
        elif self.expected and issubclass(exc_type, self.expected):
            self.logger.info(f"{self.operation}... refused ({self.elapsed_ms:.0f} ms): {exc_val}")
        else:
            self.logger.error(
                f"{self.operation}... failed ({self.elapsed_ms:.0f} ms): {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )

        return False
