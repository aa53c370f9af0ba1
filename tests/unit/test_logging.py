"""
Unit tests for state layer logging utilities.
"""

import json
import logging
import threading

import pytest

from radb_state.core.logging import (
    PACKAGE_LOGGER,
    ContextFilter,
    HumanReadableFormatter,
    LogContext,
    StructuredFormatter,
    configure_logging,
    parse_level,
)


def make_record(message="hello", **extra):
    record = logging.LogRecord(
        name="radb_state.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def package_logger():
    """Package logger with handlers restored after the test."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    saved_handlers, saved_level = list(logger.handlers), logger.level
    logger.handlers = []
    yield logger
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


class TestFormatters:
    """Tests for the log formatters."""

    def test_structured(self):
        line = StructuredFormatter(include_timestamp=False).format(
            make_record(operation="save", snapshot_id="route-1")
        )
        data = json.loads(line)

        assert data == {
            "level": "WARNING",
            "logger": "radb_state.test",
            "message": "hello",
            "operation": "save",
            "snapshot_id": "route-1",
        }

    def test_structured_timestamp(self):
        data = json.loads(StructuredFormatter().format(make_record()))
        assert data["timestamp"].endswith("+00:00")

    def test_human_readable_context_suffix(self):
        line = HumanReadableFormatter(include_timestamp=False).format(
            make_record(operation="cleanup")
        )
        assert line == "radb_state.test - WARNING - hello [operation=cleanup]"

    def test_human_readable_no_context(self):
        line = HumanReadableFormatter(include_timestamp=False).format(make_record())
        assert line == "radb_state.test - WARNING - hello"


class TestLogContext:
    """Tests for LogContext and ContextFilter."""

    def test_nested_contexts_merge(self):
        with LogContext(operation="cleanup", state_dir="/tmp/state"):
            with LogContext(snapshot_id="route-1"):
                assert LogContext.get_current() == {
                    "operation": "cleanup",
                    "state_dir": "/tmp/state",
                    "snapshot_id": "route-1",
                }
            assert "snapshot_id" not in LogContext.get_current()
        assert LogContext.get_current() == {}

    def test_threads_do_not_share_context(self):
        """Test interleaved contexts in two threads restore independently."""
        a_entered, b_entered, a_exited = threading.Event(), threading.Event(), threading.Event()
        seen = {}

        def thread_a():
            with LogContext(operation="A"):
                a_entered.set()
                b_entered.wait(5)
                seen["a_inside"] = LogContext.get_current()
            seen["a_after"] = LogContext.get_current()
            a_exited.set()

        def thread_b():
            a_entered.wait(5)
            with LogContext(operation="B"):
                b_entered.set()
                a_exited.wait(5)
                seen["b_inside"] = LogContext.get_current()
            seen["b_after"] = LogContext.get_current()

        threads = [threading.Thread(target=thread_a), threading.Thread(target=thread_b)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert seen == {
            "a_inside": {"operation": "A"},
            "a_after": {},
            "b_inside": {"operation": "B"},
            "b_after": {},
        }
        assert LogContext.get_current() == {}

    def test_filter_copies_context(self):
        record = make_record()
        with LogContext(operation="save", snapshot_id="route-1"):
            assert ContextFilter().filter(record)

        assert record.operation == "save"
        assert record.snapshot_id == "route-1"

    def test_filter_keeps_explicit_extra(self):
        record = make_record(snapshot_id="explicit")
        with LogContext(snapshot_id="from-context"):
            ContextFilter().filter(record)
        assert record.snapshot_id == "explicit"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(logging.ERROR) == logging.ERROR
        assert parse_level("nonsense") == logging.INFO

    def test_single_handler(self, package_logger):
        configure_logging("DEBUG")
        configure_logging("DEBUG")

        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.DEBUG

    def test_structured_handler(self, package_logger):
        configure_logging(structured=True)
        assert isinstance(package_logger.handlers[0].formatter, StructuredFormatter)
