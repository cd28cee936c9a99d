"""
Unit tests for structured logging utilities.
"""

import json
import logging
from io import StringIO

import pytest

from impact_agent.utils.logging import (
    ContextLoggerAdapter,
    JSONFormatter,
    get_logger,
    log_api_call,
    log_partial_failure,
    log_pipeline_event,
    log_stage_transition,
)


@pytest.fixture
def capture():
    """Attach a JSON-formatted in-memory handler to a fresh logger."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(JSONFormatter())

    base_logger = logging.getLogger("impact_agent.tests.logging")
    base_logger.handlers.clear()
    base_logger.addHandler(handler)
    base_logger.setLevel(logging.DEBUG)
    base_logger.propagate = False

    def read_records():
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    yield base_logger, read_records

    base_logger.handlers.clear()


def test_json_formatter_basic(capture):
    """Test JSON formatter produces the standard fields."""
    base_logger, read_records = capture

    base_logger.info("Test message")

    record = read_records()[0]
    assert record["level"] == "INFO"
    assert record["message"] == "Test message"
    assert record["logger"] == "impact_agent.tests.logging"
    assert record["timestamp"].endswith("Z")
    assert "source" in record


def test_json_formatter_context_fields(capture):
    """Test known context fields are top-level and the rest go under context."""
    base_logger, read_records = capture

    base_logger.info("With context", extra={"pr_number": 7, "repository": "org/repo", "diff_chars": 120})

    record = read_records()[0]
    assert record["pr_number"] == 7
    assert record["repository"] == "org/repo"
    assert record["context"] == {"diff_chars": 120}


def test_json_formatter_exception(capture):
    """Test exception details are included."""
    base_logger, read_records = capture

    try:
        raise ValueError("boom")
    except ValueError:
        base_logger.error("Failure", exc_info=True)

    record = read_records()[0]
    assert record["error"]["type"] == "ValueError"
    assert record["error"]["message"] == "boom"
    assert "Traceback" in record["error"]["stack_trace"]


def test_context_logger_adapter_with_context(capture):
    """Test bound context is merged into every record without overriding explicit extras."""
    base_logger, read_records = capture
    adapter = ContextLoggerAdapter(base_logger, {"repository": "org/repo"})

    bound = adapter.with_context(pr_number=3)
    bound.info("first")
    bound.info("second", extra={"stage": "publish", "repository": "other/repo"})

    first, second = read_records()
    assert first["pr_number"] == 3
    assert first["repository"] == "org/repo"
    assert second["stage"] == "publish"
    assert second["repository"] == "other/repo"
    assert adapter.extra == {"repository": "org/repo"}


def test_get_logger_returns_adapter():
    logger = get_logger("impact_agent.tests", pr_number=1)
    assert isinstance(logger, ContextLoggerAdapter)
    assert logger.extra == {"pr_number": 1}


def test_log_pipeline_event(capture):
    base_logger, read_records = capture

    log_pipeline_event(ContextLoggerAdapter(base_logger), "closed", 12, "org/repo", "master")

    record = read_records()[0]
    assert record["pr_number"] == 12
    assert record["context"]["action"] == "closed"
    assert record["context"]["base_ref"] == "master"


def test_log_stage_transition(capture):
    base_logger, read_records = capture

    log_stage_transition(ContextLoggerAdapter(base_logger), "fetch_sources", "completed", tree_entries=5)

    record = read_records()[0]
    assert record["stage"] == "fetch_sources"
    assert record["context"]["status"] == "completed"
    assert record["context"]["tree_entries"] == 5


def test_log_api_call_success(capture):
    base_logger, read_records = capture

    log_api_call(ContextLoggerAdapter(base_logger), "github", "/compare", "GET", 200, 12.3456)

    record = read_records()[0]
    assert record["level"] == "INFO"
    assert record["context"]["status_code"] == 200
    assert record["context"]["duration_ms"] == 12.35


def test_log_api_call_error(capture):
    base_logger, read_records = capture

    log_api_call(ContextLoggerAdapter(base_logger), "jira", "/comment", "POST", 500, error="Server error")

    record = read_records()[0]
    assert record["level"] == "ERROR"
    assert record["context"]["error"] == "Server error"


def test_log_partial_failure(capture):
    base_logger, read_records = capture
    adapter = ContextLoggerAdapter(base_logger)

    log_partial_failure(adapter, "sync", total_items=3, successful_items=2, errors=["b - failed"])
    log_partial_failure(adapter, "sync", total_items=2, successful_items=2, errors=[])

    partial, complete = read_records()
    assert partial["level"] == "WARNING"
    assert partial["context"]["failed_items"] == 1
    assert partial["context"]["errors"] == ["b - failed"]
    assert complete["level"] == "INFO"
    assert "errors" not in complete["context"]
