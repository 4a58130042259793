"""Logging setup for the modrun command line."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from .config import ConfigError, LoggingConfig

PACKAGE_LOGGER = "modrun"
LOG_FILE_NAME = "modrun.log"
DEBUG_FILE_NAME = "debug.log"
FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
MAX_LOG_BYTES = 2_000_000
LOG_BACKUPS = 3

# level -> (symbol, ANSI colour code)
_LEVEL_STYLES: dict[int, tuple[str, int]] = {
    logging.DEBUG: ("D", 36),
    logging.INFO: ("I", 32),
    logging.WARNING: ("!", 33),
    logging.ERROR: ("X", 31),
    logging.CRITICAL: ("X", 35),
}


class ConsoleFormatter(logging.Formatter):
    """Render records as ``<symbol> [<component>] <message>``.

    The component is the logger name below ``modrun``, so a record from
    ``modrun.dispatcher`` shows up as ``[dispatcher]``.
    """

    def __init__(self, use_color: bool = False) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        symbol, code = _LEVEL_STYLES.get(record.levelno, ("?", 37))
        if self.use_color:
            symbol = f"\x1b[{code}m{symbol}\x1b[0m"
        return f"{symbol} [{component_name(record.name)}] {super().format(record)}"


def component_name(logger_name: str) -> str:
    prefix = PACKAGE_LOGGER + "."
    if logger_name.startswith(prefix):
        return logger_name[len(prefix) :]
    return logger_name


def configure_logging(
    logging_config: LoggingConfig, *, stream: TextIO | None = None
) -> logging.Logger:
    """Install console and file handlers on the ``modrun`` logger.

    Handlers from an earlier call are closed and replaced, so repeated CLI
    invocations in one process do not duplicate output. Other loggers are left
    alone.
    """

    level = level_from_string(logging_config.level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if logging_config.debug_file else level)

    console = logging.StreamHandler(stream or sys.stderr)
    console.setLevel(level)
    console.setFormatter(ConsoleFormatter(use_color=_wants_color(console.stream)))
    logger.addHandler(console)

    log_dir = logging_config.log_dir
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.addHandler(_file_handler(log_dir / LOG_FILE_NAME, level))
        if logging_config.debug_file:
            logger.addHandler(_file_handler(log_dir / DEBUG_FILE_NAME, logging.DEBUG))
    return logger


def level_from_string(level: str) -> int:
    names = logging.getLevelNamesMapping()
    try:
        return names[level.strip().upper()]
    except KeyError as exc:
        raise ConfigError(f"Unknown log level: {level}") from exc


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(
        path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _wants_color(stream: TextIO) -> bool:
    # https://no-color.org
    if os.environ.get("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


__all__ = ["ConsoleFormatter", "component_name", "configure_logging", "level_from_string"]
