"""
Tests for Structured Logging.

Test Strategy
-------------
- Focus on logger behavior, not stdlib logging internals
- Test context binding, stage tracking and message formatting
- Global logging state is restored after every test

Organization
------------
- TestStructuredLogger: formatting and context binding
- TestGetLogger: get_logger factory
- TestConfigureLogging: reconfiguring existing loggers
- TestQueryLogger: stage tracking
"""

import logging

import pytest

from psearch.core.logging import (
    LogConfig,
    QueryLogger,
    StructuredLogger,
    configure_logging,
    get_logger,
)


@pytest.fixture(autouse=True)
def restore_logging():
    root_level = logging.getLogger().level
    yield
    configure_logging("WARNING")
    logging.getLogger().setLevel(root_level)


class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_format_without_fields(self):
        logger = StructuredLogger("psearch.test.plain", LogConfig(console=False))
        assert logger._format_message("hello") == "hello"

    def test_format_with_fields(self):
        logger = StructuredLogger("psearch.test.fields", LogConfig(console=False))
        message = logger._format_message("Ranked", documents=3, must=0)
        assert message == "Ranked | documents=3 | must=0"

    def test_bind_and_unbind(self):
        logger = StructuredLogger("psearch.test.bind", LogConfig(console=False))
        logger.bind(session="s1")

        assert logger._format_message("x", k=1) == "x | session=s1 | k=1"
        logger.unbind("session")
        assert logger._format_message("x") == "x"

    def test_level_from_config(self):
        logger = StructuredLogger("psearch.test.level", LogConfig(level="DEBUG"))
        assert logger.logger.level == logging.DEBUG


class TestGetLogger:
    """Tests for get_logger()."""

    def test_cached_by_name(self):
        assert get_logger("psearch.test.cached") is get_logger("psearch.test.cached")

    def test_distinct_names(self):
        assert get_logger("psearch.test.one") is not get_logger("psearch.test.two")


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_reconfigures_existing_loggers(self):
        logger = get_logger("psearch.test.reconfigure")
        configure_logging("DEBUG", console=False)
        assert logger.logger.level == logging.DEBUG

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "logs" / "psearch.log"
        configure_logging("INFO", log_file=log_file, console=False)

        get_logger("psearch.test.file").info("Listed files", files=3)

        assert "Listed files | files=3" in log_file.read_text(encoding="utf-8")


class TestQueryLogger:
    """Tests for QueryLogger."""

    def test_success_logged(self, caplog):
        query_log = QueryLogger("fox", generation=2)
        with caplog.at_level(logging.DEBUG, logger="psearch.query"):
            query_log.start_stage("evaluate")
            query_log.start_stage("rank")
            query_log.finish(True, documents=3)

        assert "stage=evaluate" in caplog.text
        assert "Query evaluated | query=fox | generation=2 | documents=3" in (
            caplog.text
        )

    def test_failure_logged(self, caplog):
        query_log = QueryLogger("a AND b")
        query_log.finish(False, error="Unexpected token")

        assert "Query failed" in caplog.text
        assert "error=Unexpected token" in caplog.text
