"""Logging setup for walkforward_validator"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import DEFAULT_LOG_DIR, DEFAULT_LOG_LEVEL


def setup_logger(
    name: str = "walkforward_validator",
    log_dir: Optional[str] = DEFAULT_LOG_DIR,
    level: str = DEFAULT_LOG_LEVEL
) -> logging.Logger:
    """
    Setup logger with file and console handlers.

    Log format: [TIMESTAMP] [LEVEL] [MODULE] Message
    Logs to: <log_dir>/validation_YYYY-MM-DD.log (no file when log_dir is None)

    Args:
        name: Logger name
        log_dir: Directory for log files
        level: Console logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    detailed_formatter = logging.Formatter(
        fmt='[%(asctime)s] [%(levelname)8s] [%(name)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        fmt='[%(levelname)s] %(message)s'
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        log_file = log_path / f"validation_{datetime.now().strftime('%Y-%m-%d')}.log"
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(detailed_formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(simple_formatter)
    logger.addHandler(console_handler)

    return logger
