"""Unit tests for CLI logging setup."""

import io
import json
import logging
from collections.abc import Iterator

import pytest

from templar.utils.logging import (
    ConsoleFormatter,
    JSONFormatter,
    LogMode,
    TemplarLogger,
    configure_from_cli,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_templar_logger() -> Iterator[None]:
    """Restore the templar logger after each test."""
    logger = logging.getLogger("templar")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def _record(msg: str, level: int = logging.INFO, name: str = "templar.engine") -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, (), None)


class TestConsoleFormatter:
    """Tests for human and verbose console output."""

    def test_human(self) -> None:
        """Test the plain human format."""
        formatter = ConsoleFormatter(use_colors=False)

        assert formatter.format(_record("loaded")) == "[INFO] loaded"

    def test_verbose_includes_logger_name(self) -> None:
        """Test that verbose output names the logger."""
        formatter = ConsoleFormatter(use_colors=False, verbose=True)

        line = formatter.format(_record("loaded", logging.DEBUG))

        assert line.startswith("[DEBUG][")
        assert line.endswith("templar.engine: loaded")

    def test_colors(self) -> None:
        """Test that colors wrap the level."""
        formatter = ConsoleFormatter(use_colors=True)

        assert "\033[31m[ERROR]" in formatter.format(_record("bad", logging.ERROR))


class TestJSONFormatter:
    """Tests for JSON lines output."""

    def test_fields(self) -> None:
        """Test the JSON payload."""
        payload = json.loads(JSONFormatter().format(_record("loaded")))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "templar.engine"
        assert payload["msg"] == "loaded"
        assert "ts" in payload

    def test_extra_data(self) -> None:
        """Test structured extras."""
        record = _record("loaded")
        record.extra_data = {"template": "greeting"}  # type: ignore[attr-defined]

        payload = json.loads(JSONFormatter().format(record))

        assert payload["template"] == "greeting"


class TestSetupLogging:
    """Tests for logger configuration."""

    def test_setup_writes_to_stream(self) -> None:
        """Test that library loggers reach the configured stream."""
        stream = io.StringIO()
        setup_logging(LogMode.HUMAN, logging.DEBUG, stream)

        logging.getLogger("templar.engine").debug("Resolved %s", "greeting")

        assert stream.getvalue() == "[DEBUG] Resolved greeting\n"

    def test_json_mode(self) -> None:
        """Test JSON lines mode."""
        stream = io.StringIO()
        setup_logging(LogMode.JSON, logging.INFO, stream)

        get_logger().info("hello")

        assert json.loads(stream.getvalue())["msg"] == "hello"

    def test_structured(self) -> None:
        """Test structured logging through the custom logger."""
        stream = io.StringIO()
        setup_logging(LogMode.JSON, logging.INFO, stream)
        logger = get_logger()

        assert isinstance(logger, TemplarLogger)
        logger.structured(logging.INFO, "rendered", template="page", size=12)

        payload = json.loads(stream.getvalue())
        assert payload["template"] == "page"
        assert payload["size"] == 12

    def test_configure_quiet(self) -> None:
        """Test that quiet raises the level to WARNING."""
        configure_from_cli(quiet=True)

        assert logging.getLogger("templar").level == logging.WARNING

    def test_configure_verbose(self) -> None:
        """Test that verbose lowers the level to DEBUG."""
        configure_from_cli(verbose=True)

        assert logging.getLogger("templar").level == logging.DEBUG
