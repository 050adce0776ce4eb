"""
Logging for the violation lookup service.

One service logger ("violation_lookup") owns the handlers: a rotating log
file and stderr. stdout is left alone because the MCP server speaks
JSON-RPC over it. Components log through child loggers such as
"violation_lookup.browser_session", which propagate to the service logger.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional

ROOT_LOGGER_NAME = "violation_lookup"
LOG_FILE_NAME = "violation_lookup.log"

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
CONSOLE_FORMAT = "%(asctime)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _default_log_dirs() -> Iterable[Path]:
    yield Path(__file__).resolve().parent.parent / "logs"
    yield Path.home() / ".violation_lookup" / "logs"


def _default_log_file() -> Optional[str]:
    """Pick the first default log directory we are allowed to write into."""
    for log_dir in _default_log_dirs():
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".write_probe"
            probe.touch()
            probe.unlink()
        except OSError:
            continue
        return str(log_dir / LOG_FILE_NAME)
    return None


def _file_handler(log_file: str, level: int, max_bytes: int, backup_count: int) -> Optional[logging.Handler]:
    try:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    except OSError:
        return None
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    log_file: Optional[str] = None,
    log_level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    force_reconfigure: bool = False,
) -> logging.Logger:
    """
    Configure a logger with a rotating file handler and a stderr handler.

    A logger that already has handlers is returned untouched unless
    force_reconfigure is set, in which case its handlers are replaced.

    Args:
        name: Logger name (default: "violation_lookup")
        log_file: Log file path (default: logs/violation_lookup.log in the
            project, falling back to ~/.violation_lookup/logs)
        log_level: Level for the logger and both handlers (default: INFO)
        max_bytes: File size that triggers rotation (default: 10MB)
        backup_count: Rotated files to keep (default: 5)
        force_reconfigure: Replace existing handlers (default: False)

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        if not force_reconfigure:
            return logger
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(log_level)
    logger.propagate = False

    # An unwritable log file only costs us the file output
    if log_file is None:
        log_file = _default_log_file()
    if log_file:
        file_handler = _file_handler(log_file, log_level, max_bytes, backup_count)
        if file_handler is not None:
            logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)

    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Return a logger, configuring its top-level ancestor on first use.

    Dotted names get no handlers of their own and propagate to the
    top-level logger.
    """
    logger = logging.getLogger(name)
    top_name = name.split(".", 1)[0]

    if top_name != name:
        if not logging.getLogger(top_name).handlers:
            setup_logger(name=top_name)
        logger.propagate = True
    elif not logger.handlers:
        setup_logger(name=name)

    return logger
