"""
Structured logging with recognized-sign event logging.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps

CONSOLE_FORMAT = "%(asctime)s  %(levelname)-5s  %(message)s"
FILE_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)-7s] %(threadName)-12s %(name)-32s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Chatty third-party loggers capped at WARNING unless the app runs at DEBUG
_NOISY_LOGGERS = ("absl", "PIL", "matplotlib")


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure the root logger: console plus an optional rotating file.

    File records carry the thread name: frames are analyzed on
    the camera thread and results arrive on the detector's thread.
    """
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(max(numeric_level, logging.INFO))
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=int(max_size_mb * 1024 * 1024),
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class SignLogger:
    """Logs every sign the analyzer settles on and keeps a history."""

    def __init__(self):
        self.logger = logging.getLogger("sign_events")
        self._history = []

    def log_sign(self, label, index=None, fps=None):
        """Log a newly displayed sign."""
        self._history.append({
            "timestamp": time.time(),
            "label": label,
            "index": index,
        })
        self.logger.info(
            "Sign: %-20s | Class: %-4s | FPS: %s",
            label,
            index if index is not None else "-",
            f"{fps:.1f}" if fps else "N/A",
        )

    def get_history(self, last_n=None):
        """Get recently logged signs."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_signs(self):
        return len(self._history)


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
