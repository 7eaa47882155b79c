"""
Logging configuration for the interview practice system.

Every module gets its logger at import time:

    logger = setup_logger("question_supply")

Console output always goes to stdout; a log file is added when one is
given (app.py passes get_default_log_file() when MOCKPREP_LOG_TO_FILE=true).
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _attach(logger: logging.Logger, handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def setup_logger(
    name: str = "mockprep",
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Set up a named logger with a console handler and an optional file handler.

    Calling it again for the same name returns the configured logger
    without adding handlers twice.

    Args:
        name: Logger name
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to
            LOG_LEVEL from config.
        log_file: Optional path to a log file
        format_string: Custom format string

    Returns:
        Configured logger instance
    """
    if log_level is None:
        from .config import LOG_LEVEL
        log_level = LOG_LEVEL
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    if logger.handlers:
        return logger

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    _attach(logger, logging.StreamHandler(sys.stdout), level, formatter)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        _attach(logger, logging.FileHandler(log_file, mode="a"), level, formatter)

    return logger


def get_default_log_file() -> Path:
    """Timestamped log file under logs/ at the repository root."""
    from .config import BASE_DIR
    logs_dir = BASE_DIR / "logs"
    logs_dir.mkdir(exist_ok=True)
    return logs_dir / f"mockprep_{datetime.now():%Y%m%d_%H%M%S}.log"
