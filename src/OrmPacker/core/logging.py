"""Console and file sinks for the ``orm_packer`` logger.

Worker threads all report through one logger. Console records are written
with ``tqdm.write`` so they land above the directory progress bar instead of
tearing it. A handler emits each record under its own lock, so a multi-line
report logged as one record prints as one contiguous block.
"""

import logging
import logging.handlers
import os
import sys
import threading
from typing import Optional

from tqdm import tqdm

LOGGER_NAME = "orm_packer"
CONSOLE_FORMAT = "%(message)s"
FILE_FORMAT = "%(asctime)s [%(levelname)s] [T%(thread)d] %(message)s"

# 10 MB per log file, 3 rotated backups
_LOG_MAX_BYTES = 10 * 1024 * 1024
_LOG_BACKUP_COUNT = 3
_setup_lock = threading.Lock()


class LevelPrefixFormatter(logging.Formatter):
    """Plain text for progress messages; warnings and errors name their level."""

    def format(self, record):
        text = super().format(record)
        if record.levelno >= logging.WARNING:
            return f"{record.levelname}: {text}"
        return text


class TqdmConsoleHandler(logging.Handler):
    """Write records to the console without breaking an active tqdm bar."""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=self.stream or sys.stdout)
        except Exception:
            self.handleError(record)


def _parse_level(level) -> Optional[int]:
    numeric_level = getattr(logging, str(level).upper(), None)
    return numeric_level if isinstance(numeric_level, int) else None


def setup_logging(level: str = "INFO", log_file: str = None, stream=None) -> logging.Logger:
    """Attach the console sink (and optionally a rotating file) to ``orm_packer``.

    Safe to call repeatedly: an existing console handler or a file handler for
    the same path is reused. Records stop propagating to the root logger so a
    host application's handlers do not print them a second time.
    """
    numeric_level = _parse_level(level)
    with _setup_lock:
        packer_logger = logging.getLogger(LOGGER_NAME)
        packer_logger.setLevel(numeric_level or logging.INFO)
        packer_logger.propagate = False

        console = next(
            (h for h in packer_logger.handlers if isinstance(h, TqdmConsoleHandler)),
            None,
        )
        if console is None:
            console = TqdmConsoleHandler(stream)
            console.setFormatter(LevelPrefixFormatter(CONSOLE_FORMAT))
            packer_logger.addHandler(console)
        elif stream is not None:
            console.stream = stream

        if log_file:
            path = os.path.abspath(log_file)
            existing = {getattr(h, "baseFilename", None) for h in packer_logger.handlers}
            if path not in existing:
                os.makedirs(os.path.dirname(path), exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    path, maxBytes=_LOG_MAX_BYTES, backupCount=_LOG_BACKUP_COUNT,
                    encoding="utf-8",
                )
                file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
                packer_logger.addHandler(file_handler)

    if numeric_level is None:
        packer_logger.warning("Invalid log level '%s', defaulting to INFO", level)
    return packer_logger
