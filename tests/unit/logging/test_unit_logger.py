# tests/unit/logging/test_unit_logger.py
"""Tests for logging/logger.py: formatters, setup and file rotation."""

from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler

import pytest

from loadspec.logging.context import clear_context, set_command_context, set_stage
from loadspec.logging.logger import (
    JsonFormatter,
    TextFormatter,
    create_file_handler,
    get_logger,
    parse_size,
    setup_logging,
)


def _record(msg: str = "Hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="loadspec.test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _reset():
    clear_context()
    yield
    clear_context()
    logging.getLogger("loadspec").handlers.clear()


class TestJsonFormatter:
    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context_and_data(self):
        set_command_context("cmd1")
        set_stage("rate_check")
        parsed = json.loads(JsonFormatter().format(_record(data={"wait_s": 12})))
        assert parsed["context"] == {"command_id": "cmd1", "stage": "rate_check"}
        assert parsed["data"] == {"wait_s": 12}


class TestTextFormatter:
    def test_includes_context(self):
        set_command_context("cmd1")
        set_stage("fallback")
        output = TextFormatter().format(_record("Hello text"))
        assert "[cmd1]" in output
        assert "(fallback)" in output
        assert output.endswith("- Hello text")


class TestSetupLogging:
    def test_returns_child_logger(self):
        assert get_logger("cli").name == "loadspec.cli"

    def test_json_console(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger("loadspec")
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_reinit_does_not_stack(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger("loadspec").handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "loadspec.log"
        setup_logging(log_file=log_file, rotation="1MB", retention=2)
        handlers = logging.getLogger("loadspec").handlers
        file_handler = next(h for h in handlers if isinstance(h, RotatingFileHandler))
        assert file_handler.maxBytes == 1024 * 1024
        assert file_handler.backupCount == 2
        assert log_file.parent.is_dir()
        file_handler.close()


class TestParseSize:
    @pytest.mark.parametrize("text, expected", [
        ("10MB", 10 * 1024**2),
        ("512kb", 512 * 1024),
        ("1 GB", 1024**3),
        ("4096", 4096),
    ])
    def test_sizes(self, text, expected):
        assert parse_size(text) == expected

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("10bytes")

    def test_handler_creates_directories(self, tmp_path):
        handler = create_file_handler(tmp_path / "a" / "b.log", rotation="2KB")
        assert handler.maxBytes == 2048
        handler.close()
