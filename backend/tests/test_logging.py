"""Tests for log formatting: JSON fields, request ids and secret redaction."""

import io
import json
import logging

import pytest

from app.core.logging_config import build_handler, request_id_var, setup_logging
from app.core.token_factory import create_token


@pytest.fixture
def capture():
    """Return (logger, read) where read() yields the emitted lines."""

    def _capture(log_format):
        stream = io.StringIO()
        logger = logging.getLogger(f"docvault.test.{log_format}")
        logger.handlers = [build_handler(log_format, stream=stream)]
        logger.propagate = False
        logger.setLevel(logging.INFO)
        return logger, lambda: stream.getvalue().splitlines()

    return _capture


def test_json_line_carries_extras(capture):
    logger, read = capture("json")
    logger.info("Folder created", extra={"folder_id": 7, "owner_id": "alice"})

    line = json.loads(read()[0])
    assert line["message"] == "Folder created"
    assert line["level"] == "INFO"
    assert line["folder_id"] == 7
    assert line["owner_id"] == "alice"
    assert "request_id" not in line


def test_request_id_in_both_formats(capture):
    json_logger, read_json = capture("json")
    text_logger, read_text = capture("text")
    token = request_id_var.set("req-42")
    try:
        json_logger.info("Document moved")
        text_logger.info("Document moved")
    finally:
        request_id_var.reset(token)

    assert json.loads(read_json()[0])["request_id"] == "req-42"
    assert "[req-42] Document moved" in read_text()[0]


def test_text_format_outside_request(capture):
    logger, read = capture("text")
    logger.info("Startup")
    assert "[-] Startup" in read()[0]


def test_bearer_and_bare_tokens_are_redacted(capture):
    logger, read = capture("text")
    jwt = create_token("alice", "secret")
    logger.warning("Rejected header Bearer %s", jwt)
    logger.warning("Token seen in query: %s", jwt)
    logger.warning("password=hunter2hunter2 retry")

    output = "\n".join(read())
    assert jwt not in output
    assert "hunter2hunter2" not in output
    assert output.count("***REDACTED***") == 3


def test_setup_logging_keeps_payload_level(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(log_level="debug", log_format="json")
        line = json.loads(capsys.readouterr().out.splitlines()[-1])
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)

    assert line["message"] == "Logging configured"
    assert line["level"] == "INFO"
    assert line["log_level"] == "DEBUG"
    assert line["log_format"] == "json"
