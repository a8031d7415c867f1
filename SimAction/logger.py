"""Shared loguru logger and its sink configuration."""

import sys

from loguru import logger

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logger(
    console_level: str = "INFO",
    log_file: str | None = "logs/simaction_{time:YYYY-MM-DD}.log",
    file_level: str = "DEBUG",
    rotation: str = "100 MB",
    retention: str = "7 days",
    compression: str = "zip",
) -> None:
    """Replace the default loguru sink with console and optional file sinks.

    Args:
        console_level: Minimum level written to stderr
        log_file: File path template (loguru placeholders allowed), None disables
        file_level: Minimum level written to the file sink
        rotation: Rotation trigger for the file sink
        retention: How long rotated files are kept
        compression: Compression applied to rotated files
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=console_level,
        format=_CONSOLE_FORMAT,
        colorize=True,
    )

    if log_file:
        logger.add(
            log_file,
            level=file_level,
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression=compression,
            encoding="utf-8",
            enqueue=True,
        )

    logger.debug(f"Logger configured (console={console_level}, file={log_file})")


__all__ = ["configure_logger", "logger"]
