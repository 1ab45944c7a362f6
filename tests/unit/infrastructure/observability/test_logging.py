"""Tests for structured logging."""

import json
import logging
import sys

from artshelf.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


def make_record(message: str = "hello", exc_info: object = None) -> logging.LogRecord:
    return logging.LogRecord(
        name="artshelf.test",
        level=logging.ERROR,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=exc_info,  # type: ignore[arg-type]
    )


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self) -> None:
        """Test setting and getting correlation ID."""
        result = set_correlation_id("scan-123")
        assert result == "scan-123"
        assert get_correlation_id() == "scan-123"

    def test_generated_id_uses_prefix(self) -> None:
        """Generated ids carry the run prefix."""
        result = set_correlation_id(prefix="scan-")
        assert result.startswith("scan-")
        assert len(result) > len("scan-")
        assert get_correlation_id() == result

    def test_filter_attaches_id_to_record(self) -> None:
        """Every record gets the current run id."""
        set_correlation_id("rescan-42")
        record = make_record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "rescan-42"  # type: ignore[attr-defined]


class TestFormatters:
    """Test the two output formats."""

    def test_json_formatter_includes_correlation_id(self) -> None:
        """JSON lines carry level, logger and correlation id."""
        set_correlation_id("scan-json")
        record = make_record("batch done")
        CorrelationIdFilter().filter(record)

        payload = json.loads(
            CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s").format(record)
        )

        assert payload["message"] == "batch done"
        assert payload["level"] == "ERROR"
        assert payload["logger"] == "artshelf.test"
        assert payload["correlation_id"] == "scan-json"

    def test_compact_formatter_shows_root_cause_chain(self) -> None:
        """Chained exceptions are listed root cause first."""
        try:
            try:
                raise ValueError("database is locked")
            except ValueError as inner:
                raise RuntimeError("Failed to process batch 3") from inner
        except RuntimeError:
            text = CompactExceptionFormatter().formatException(sys.exc_info())

        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == [
            "╰─► ValueError: database is locked",
            "╰─► RuntimeError: Failed to process batch 3",
        ]


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self) -> None:
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_replaces_handlers(self) -> None:
        """Calling twice leaves exactly one handler."""
        configure_logging(log_level="INFO", json_format=True)
        configure_logging(log_level="INFO", json_format=False)

        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, CompactExceptionFormatter)

    def test_third_party_loggers_quieted(self) -> None:
        """Chatty libraries are raised to WARNING."""
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
