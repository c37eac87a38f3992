"""
Peeng_Server/logger.py
Shared loguru logger. Every module binds its own component tag.
"""

import sys
from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:DD/MM/YYYY HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>[{extra[component]}]</magenta> <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:DD/MM/YYYY HH:mm:ss} | {level: <8} | [{extra[component]}] {name}:{function}:{line} | {message}"

logger.configure(extra={"component": "MAIN"})


def setup_logging(level="INFO", log_file=None):
    """
    Replaces the default loguru handler with a colored console sink and,
    when log_file is set, a rotating file sink.
    """
    logger.remove()
    logger.add(sys.stderr, colorize=True, format=CONSOLE_FORMAT, level=level, enqueue=True)

    if log_file:
        logger.add(
            log_file,
            rotation="10 MB",
            retention="7 days",
            format=FILE_FORMAT,
            level=level,
            encoding="utf-8",
            enqueue=True,
        )


def get_logger(component):
    return logger.bind(component=component)
