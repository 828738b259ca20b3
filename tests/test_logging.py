import json
import logging
import sys

from budgetwise.logging import JSONFormatter, setup_logging


def _record(level=logging.INFO, msg="test", args=(), exc_info=None):
    return logging.LogRecord(
        name="budgetwise.test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=args,
        exc_info=exc_info,
    )


def test_json_formatter_basic():
    output = json.loads(JSONFormatter().format(_record(msg="hello %s", args=("world",))))
    assert output["level"] == "INFO"
    assert output["message"] == "hello world"
    assert output["logger"] == "budgetwise.test"
    assert "timestamp" in output
    assert "intent" not in output


def test_json_formatter_extra_fields():
    record = _record(level=logging.WARNING)
    record.user_id = 67890
    record.intent = "spending"
    record.handler = "fallback"
    record.latency_ms = 150
    output = json.loads(JSONFormatter().format(record))
    assert output["user_id"] == 67890
    assert output["intent"] == "spending"
    assert output["handler"] == "fallback"
    assert output["latency_ms"] == 150


def test_json_formatter_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(level=logging.ERROR, msg="failed", exc_info=sys.exc_info())
    output = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in output["exception"]


def test_setup_logging():
    setup_logging(level=logging.DEBUG)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JSONFormatter)
    # Cleanup
    root.handlers.clear()
    logging.basicConfig(level=logging.WARNING)
