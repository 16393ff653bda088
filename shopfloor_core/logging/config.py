# =============================================================================
# shopfloor_core/logging/config.py
# Logging Configuration for the Shop-Floor Tracker
# =============================================================================

import logging
import sys
import time
from datetime import date
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(threadName)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Supabase client stack; every request is logged at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "postgrest")


def _level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: Union[int, str] = logging.INFO, log_dir: Optional[Path] = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level, as an int or a name such as "DEBUG"
            (``AppConfig.log_level`` carries the ``LOG_LEVEL`` setting)
        log_dir: If given, also append to ``shopfloor_YYYY-MM-DD.log`` there
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / f"shopfloor_{date.today().isoformat()}.log"))

    logging.basicConfig(
        level=_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Times a block and logs how it ended.

    Usage:
        with LogContext(logger, "Verifying remote store access"):
            store.fetch_first("jobs")
        # Verifying remote store access: ok in 0.21s
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self._started = 0.0

    def __enter__(self):
        self._started = time.perf_counter()
        self.logger.debug(f"{self.operation}: started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self._started
        if exc_type is None:
            self.logger.info(f"{self.operation}: ok in {elapsed:.2f}s")
        else:
            self.logger.warning(f"{self.operation}: failed after {elapsed:.2f}s ({exc_val})")
        return False
