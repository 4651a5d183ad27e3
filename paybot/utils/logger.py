"""
Logging for the payments chat bot.

loguru sinks: console, a rotating debug file and an error file. Every record is
passed through ``redact_sensitive`` before any sink sees it, so upstream
payloads can be logged without leaking access or refresh tokens.
"""

import os
import sys
from typing import Optional
from loguru import logger
from .config import settings
from .response_utils import redact_sensitive

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


def _redact_record(record) -> None:
    record["message"] = redact_sensitive(record["message"])


def _add_file_sinks() -> None:
    log_dir = os.path.dirname(settings.log_file) or "."
    logger.add(
        settings.log_file,
        level="DEBUG",
        format=FILE_FORMAT,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        compression="zip",
    )
    logger.add(
        os.path.join(log_dir, "error.log"),
        level="ERROR",
        format=FILE_FORMAT,
        rotation="1 day",
        retention="7 days",
        compression="zip",
    )


def setup_logger():
    """Replace loguru's default sink with the bot's sinks."""
    logger.remove()
    logger.configure(extra={"name": "paybot"}, patcher=_redact_record)

    logger.add(sys.stdout, level=settings.log_level.upper(), format=CONSOLE_FORMAT, colorize=True)

    # Serverless hosts get console output only
    if os.getenv("VERCEL") or not settings.log_file:
        return logger
    try:
        _add_file_sinks()
    except OSError as e:
        logger.warning(f"File logging not available: {e}")
    return logger


app_logger = setup_logger()


def get_logger(name: Optional[str] = None):
    """Module logger; ``name`` shows up in every line it writes."""
    if name:
        return logger.bind(name=name)
    return logger
