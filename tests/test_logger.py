"""Tests for log formatting."""

import json
import logging
import sys
from unittest.mock import patch

from logger import JsonFormatter, StructuredLogger, TextFormatter, setup_logging, token_fingerprint


def _record(msg, *args, fields=None, level=logging.INFO):
    record = logging.LogRecord("server", level, __file__, 1, msg, args, None)
    if fields is not None:
        record.fields = fields
    return record


def test_json_formatter_plain_record():
    line = json.loads(JsonFormatter().format(_record("rate limit hit for %s", "1.2.3.4")))
    assert line["message"] == "rate limit hit for 1.2.3.4"
    assert line["level"] == "INFO"
    assert line["logger"] == "server"
    assert "timestamp" in line


def test_json_formatter_merges_fields():
    record = _record("verify_token", fields={"verdict": "accepted", "status": 200})
    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "verify_token"
    assert line["verdict"] == "accepted"
    assert line["status"] == 200


def test_json_formatter_includes_exception():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("server", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    line = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in line["exc_info"]


def test_text_formatter_appends_fields():
    text = TextFormatter().format(_record("verify_token", fields={"verdict": "rejected"}))
    assert "verify_token" in text
    assert text.endswith("verdict=rejected")


def test_setup_logging_json_handler():
    with patch("logger.logging.basicConfig") as basic_config:
        setup_logging(level="WARNING", json_output=True)
    kwargs = basic_config.call_args.kwargs
    assert kwargs["level"] == "WARNING"
    assert kwargs["force"] is True
    assert isinstance(kwargs["handlers"][0].formatter, JsonFormatter)
    assert logging.getLogger("httpx").level == logging.WARNING


def test_setup_logging_text_handler():
    with patch("logger.logging.basicConfig") as basic_config:
        setup_logging(level="INFO", json_output=False)
    assert isinstance(basic_config.call_args.kwargs["handlers"][0].formatter, TextFormatter)


def test_log_event_drops_empty_fields(caplog):
    caplog.set_level(logging.INFO, logger="relay.test")
    StructuredLogger("relay.test").log_event("verify_token", verdict="invalid", score=None)
    record = caplog.records[-1]
    assert record.getMessage() == "verify_token"
    assert record.fields == {"verdict": "invalid"}


def test_token_fingerprint():
    assert token_fingerprint(None) is None
    assert token_fingerprint("") is None
    assert len(token_fingerprint("abc")) == 12
    assert token_fingerprint("abc") == token_fingerprint("abc")
