"""Tests for logging setup."""

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from cluster_exec.utils import console
from cluster_exec.utils.console import (
    VERBOSE,
    ColorfulFormatter,
    configure_logging,
    get_log_file_path,
)


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    package_logger = logging.getLogger("cluster_exec")
    yield
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)
    console._log_file_path = None


def make_record(name: str, level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, None, None)


def test_verbose_level_registered() -> None:
    """VERBOSE sits between DEBUG and INFO."""
    assert logging.DEBUG < VERBOSE < logging.INFO
    assert logging.getLevelName(VERBOSE) == "VERBOSE"


def test_formatter_without_colors() -> None:
    """Plain output shows level, short component and message."""
    formatter = ColorfulFormatter(use_colors=False)

    line = formatter.format(
        make_record("cluster_exec.services.executors", logging.ERROR, "attempt failed")
    )

    assert "\033[" not in line
    parts = [p.strip() for p in line.split("|")]
    assert parts[1] == "ERROR"
    assert parts[2] == "services.executors"
    assert parts[3] == "attempt failed"


def test_formatter_with_colors_highlights_targets() -> None:
    """Coloured output highlights user@host."""
    formatter = ColorfulFormatter(use_colors=True)

    line = formatter.format(
        make_record("cluster_exec.services.cluster", logging.INFO, "ssh gpadmin@sdw1")
    )

    assert "\033[95mgpadmin@sdw1\033[0m" in line


def test_configure_logging_writes_log_file(tmp_path: Path) -> None:
    """A log file receives debug output and becomes the 'see log' path."""
    log_file = tmp_path / "logs" / "run.log"

    package_logger = configure_logging("INFO", use_colors=False, log_file=log_file)
    logging.getLogger("cluster_exec.services.executors").debug("attempt detail")
    for handler in package_logger.handlers:
        handler.flush()

    assert get_log_file_path() == str(log_file)
    assert "attempt detail" in log_file.read_text()


def test_configure_logging_is_idempotent() -> None:
    """Calling twice does not stack handlers."""
    configure_logging("VERBOSE", use_colors=False)
    package_logger = configure_logging("VERBOSE", use_colors=False)

    assert len(package_logger.handlers) == 1
    assert package_logger.level == VERBOSE
    assert get_log_file_path() == "the log output"
