import json
import logging

from spendwise.logging import JSONFormatter, setup_logging


def test_json_formatter_basic():
    formatter = JSONFormatter()
    record = logging.LogRecord(
        name="spendwise.test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    output = json.loads(formatter.format(record))
    assert output["level"] == "INFO"
    assert output["message"] == "hello world"
    assert output["logger"] == "spendwise.test"
    assert "timestamp" in output
    assert "chat_id" not in output


def test_json_formatter_extra_fields():
    formatter = JSONFormatter()
    record = logging.LogRecord(
        name="spendwise.test",
        level=logging.WARNING,
        pathname="",
        lineno=0,
        msg="test",
        args=(),
        exc_info=None,
    )
    record.chat_id = 12345
    record.user_id = "u1"
    record.expense_id = "abc123"
    record.latency_ms = 150.5
    output = json.loads(formatter.format(record))
    assert output["chat_id"] == 12345
    assert output["user_id"] == "u1"
    assert output["expense_id"] == "abc123"
    assert output["latency_ms"] == 150.5


def test_json_formatter_exception():
    formatter = JSONFormatter()
    try:
        raise ValueError("boom")
    except ValueError:
        import sys

        record = logging.LogRecord(
            name="spendwise.test",
            level=logging.ERROR,
            pathname="",
            lineno=0,
            msg="failed",
            args=(),
            exc_info=sys.exc_info(),
        )
    output = json.loads(formatter.format(record))
    assert "exception" in output
    assert "ValueError: boom" in output["exception"]


def test_setup_logging():
    setup_logging(level=logging.DEBUG)
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JSONFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING
    # Cleanup
    root.handlers.clear()
    logging.basicConfig(level=logging.WARNING)
