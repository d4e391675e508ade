"""
Logging for ScholarSense
loguru sinks are installed once, on the first get_logger() call
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from scholarsense.config import Config, config

_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}"
_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

_configured = False


def log_level(settings: Config) -> str:
    """Debug mode overrides the configured level"""
    return "DEBUG" if settings.debug else settings.log_level.upper()


def setup_logging(settings: Optional[Config] = None, force: bool = False) -> None:
    """
    Install the console, scrape-log and error-log sinks

    Args:
        settings: Configuration (default: global config)
        force: Replace sinks installed by an earlier call
    """
    global _configured
    if _configured and not force:
        return

    settings = settings or config
    level = log_level(settings)

    logger.remove()
    logger.configure(extra={"name": "scholarsense"})

    logger.add(sys.stdout, format=_CONSOLE_FORMAT, level=level, colorize=True)

    log_file = Path(settings.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    # Tracebacks with variable values only in debug mode
    logger.add(
        str(log_file),
        format=_FILE_FORMAT,
        level=level,
        rotation="100 MB",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        backtrace=settings.debug,
        diagnose=settings.debug,
    )

    logger.add(
        str(log_file.parent / f"{log_file.stem}_error.log"),
        format=_FILE_FORMAT,
        level="ERROR",
        rotation="50 MB",
        retention="60 days",
        compression="zip",
        encoding="utf-8",
    )

    _configured = True


def get_logger(name: str):
    """Get a logger bound to a component name"""
    setup_logging()
    return logger.bind(name=name)
