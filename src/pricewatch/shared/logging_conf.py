# src/pricewatch/shared/logging_conf.py
"""
Logging Setup

Configures the root logger once at startup: a stdout handler (unless
PRICEWATCH_LOG_STDOUT=false) and, when LOG_FILE or LOG_DIR is set, a
size-rotated log file. All modules log through logging.getLogger(__name__).

Files that USE this module:
- pricewatch.app (calls setup_logging before anything else)
- tests.test_shared (unit tests)

Files that this module USES:
- None
"""
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s :: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "pricewatch.log"


def _log_file_path(log_file: Optional[Union[str, Path]],
                   log_dir: Optional[Union[str, Path]]) -> Optional[Path]:
    """LOG_DIR wins over LOG_FILE; the parent directory is created."""
    if log_dir:
        path = Path(log_dir) / LOG_FILE_NAME
    elif log_file:
        path = Path(log_file)
    else:
        return None
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def setup_logging(
    level=logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    log_dir: Optional[Union[str, Path]] = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> Optional[Path]:
    """
    Install the stdout and rotating-file handlers on the root logger.

    Args:
        level: Root log level
        log_file: Log file path
        log_dir: Directory for pricewatch.log (takes precedence over log_file)
        max_bytes: Rotation size of the log file
        backup_count: Rotated files kept

    Returns:
        Path of the log file, or None when logging to stdout only
    """
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = []

    if os.environ.get("PRICEWATCH_LOG_STDOUT", "true").lower() == "true":
        handlers.append(logging.StreamHandler(sys.stdout))

    path = _log_file_path(log_file, log_dir)
    if path is not None:
        handlers.append(RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"))

    if not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, handlers=handlers)

    # httpx logs every Telegram API call at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging to %s at level %s", path or "stdout", logging.getLevelName(level))
    return path
