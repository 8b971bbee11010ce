"""
Tests for structured logging.
"""
import json
import logging
import pytest
from datanova.core.logging import NO_REQUEST_ID, JSONFormatter, TextFormatter, configure_logging


def make_record(**extra):
    record = logging.LogRecord("datanova.test", logging.INFO, __file__, 10, "Uploaded %s", ("sales.csv",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


@pytest.mark.unit
def test_json_formatter_includes_extras():
    output = json.loads(JSONFormatter().format(make_record(correlation_id="abc", duration=0.25)))

    assert output["message"] == "Uploaded sales.csv"
    assert output["service"] == "datanova-workflow"
    assert output["level"] == "INFO"
    assert output["logger"] == "datanova.test"
    assert output["correlation_id"] == "abc"
    assert output["duration"] == 0.25


@pytest.mark.unit
def test_json_timestamp_comes_from_record():
    record = make_record()
    record.created = 0.0

    output = json.loads(JSONFormatter().format(record))

    assert output["timestamp"] == "1970-01-01T00:00:00Z"


@pytest.mark.unit
def test_records_outside_a_request_get_default_id():
    assert json.loads(JSONFormatter().format(make_record()))["correlation_id"] == NO_REQUEST_ID
    assert f"[{NO_REQUEST_ID}]" in TextFormatter().format(make_record(correlation_id=None))


@pytest.mark.unit
def test_text_formatter():
    line = TextFormatter().format(make_record(correlation_id="req-1"))
    assert "[req-1]" in line
    assert line.endswith("Uploaded sales.csv")


@pytest.mark.unit
def test_configure_logging_json_from_env(monkeypatch, root_logger):
    monkeypatch.setenv("LOG_FORMAT", "json")

    configure_logging("debug")

    assert root_logger.level == logging.DEBUG
    assert len(root_logger.handlers) == 1
    assert isinstance(root_logger.handlers[0].formatter, JSONFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.unit
def test_configure_logging_explicit_format(monkeypatch, root_logger):
    monkeypatch.setenv("LOG_FORMAT", "json")

    configure_logging("info", log_format="text")

    assert isinstance(root_logger.handlers[0].formatter, TextFormatter)
