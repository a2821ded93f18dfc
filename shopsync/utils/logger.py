"""
Logging configuration

Every record carries a `tenant` extra ("-" outside tenant context). Sync
jobs bind `tenant` and `sync=True`; the latter routes their lines into a
separate daily sync log as well.
"""
import sys
from typing import Optional

from loguru import logger

from shopsync.config import Settings, get_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[tenant]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[tenant]} | {name}:{function}:{line} - {message}"


def _is_sync_record(record) -> bool:
    return record["extra"].get("sync", False)


def setup_logger(settings: Optional[Settings] = None):
    """Configure sinks. Without a log_dir only the console sink is added."""
    settings = settings or get_settings()

    logger.remove()
    logger.configure(extra={"tenant": "-"})

    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=settings.log_level)

    if not settings.log_dir:
        return logger

    logger.add(
        f"{settings.log_dir}/shopsync_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention="30 days",
        compression="zip",
        level="INFO"
    )

    logger.add(
        f"{settings.log_dir}/errors_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        rotation="00:00",
        retention="90 days",
        level="ERROR"
    )

    # Sync jobs only, including per-stage DEBUG transitions
    logger.add(
        f"{settings.log_dir}/sync_{{time:YYYY-MM-DD}}.log",
        format=FILE_FORMAT,
        filter=_is_sync_record,
        rotation="00:00",
        retention="30 days",
        level="DEBUG"
    )

    return logger


log = setup_logger()
