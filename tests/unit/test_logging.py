from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from modrun.config import ConfigError, LoggingConfig
from modrun.logging import (
    ConsoleFormatter,
    component_name,
    configure_logging,
    level_from_string,
)


def _record(name: str, level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


@pytest.fixture
def package_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("modrun")
    previous_level = logger.level
    yield logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(previous_level)


def test_console_formatter_shows_symbol_and_component() -> None:
    plain = ConsoleFormatter()
    colored = ConsoleFormatter(use_color=True)

    assert plain.format(_record("modrun.cache", logging.WARNING, "careful")) == "! [cache] careful"
    assert (
        colored.format(_record("modrun.dispatcher", logging.INFO, "pinned"))
        == "\x1b[32mI\x1b[0m [dispatcher] pinned"
    )


@pytest.mark.parametrize(
    "name, expected",
    [("modrun.invoker", "invoker"), ("modrun", "modrun"), ("asyncio", "asyncio")],
)
def test_component_name(name: str, expected: str) -> None:
    assert component_name(name) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("debug", logging.DEBUG), (" Warn ", logging.WARNING), ("CRITICAL", logging.CRITICAL)],
)
def test_level_from_string(value: str, expected: int) -> None:
    assert level_from_string(value) == expected


def test_unknown_level_is_config_error() -> None:
    with pytest.raises(ConfigError, match="Unknown log level"):
        level_from_string("chatty")


def test_console_honours_configured_level(package_logger: logging.Logger) -> None:
    stream = io.StringIO()
    configure_logging(LoggingConfig(level="warning"), stream=stream)

    logging.getLogger("modrun.resolver").info("hidden")
    logging.getLogger("modrun.resolver").warning("shown")

    assert stream.getvalue() == "! [resolver] shown\n"


def test_repeated_configuration_replaces_handlers(package_logger: logging.Logger) -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging(LoggingConfig(level="info"), stream=first)
    configure_logging(LoggingConfig(level="info"), stream=second)

    logging.getLogger("modrun.cli").info("once")

    assert len(package_logger.handlers) == 1
    assert first.getvalue() == ""
    assert second.getvalue() == "I [cli] once\n"


def test_configure_logging_writes_log_files(
    tmp_path: Path, package_logger: logging.Logger
) -> None:
    log_dir = tmp_path / "logs"
    configure_logging(
        LoggingConfig(level="info", debug_file=True, log_dir=log_dir), stream=io.StringIO()
    )
    logging.getLogger("modrun.test").debug("only in debug log")
    logging.getLogger("modrun.test").info("in both logs")
    for handler in package_logger.handlers:
        handler.flush()

    main_log = (log_dir / "modrun.log").read_text(encoding="utf-8")
    debug_log = (log_dir / "debug.log").read_text(encoding="utf-8")

    assert "in both logs" in main_log
    assert "only in debug log" not in main_log
    assert "only in debug log" in debug_log
    assert "modrun.test: in both logs" in debug_log
