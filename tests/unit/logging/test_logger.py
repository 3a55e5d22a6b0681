# tests/unit/logging/test_logger.py — v1
"""Tests for logging/logger.py — formatters, size parsing, setup."""

from __future__ import annotations

import json
import logging

import pytest

from learnhub.config.settings import Settings
from learnhub.logging.context import clear_context, operation_context, set_request_context
from learnhub.logging.logger import (
    ROOT_LOGGER,
    JsonFormatter,
    TextFormatter,
    configure_from_settings,
    get_logger,
    parse_size,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _reset():
    clear_context()
    yield
    clear_context()
    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("learnhub.test", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        out = json.loads(JsonFormatter().format(_record()))
        assert out["level"] == "INFO"
        assert out["logger"] == "learnhub.test"
        assert out["message"] == "hello"
        assert "context" not in out

    def test_context_attached(self):
        set_request_context("req-1")
        with operation_context("embed_batch", model="nomic-embed-text"):
            out = json.loads(JsonFormatter().format(_record()))
        assert out["context"] == {
            "request_id": "req-1",
            "operation": "embed_batch",
            "model": "nomic-embed-text",
        }

    def test_data_payload(self):
        out = json.loads(JsonFormatter().format(_record(data={"total_tokens": 12})))
        assert out["data"] == {"total_tokens": 12}


class TestTextFormatter:
    def test_includes_operation(self):
        with operation_context("cluster"):
            line = TextFormatter().format(_record("done"))
        assert "[cluster]" in line
        assert line.endswith("- done")


class TestParseSize:
    def test_units(self):
        assert parse_size("10MB") == 10 * 1024**2
        assert parse_size("512 kb") == 512 * 1024
        assert parse_size("1GB") == 1024**3

    def test_invalid(self):
        with pytest.raises(ValueError, match="Invalid size"):
            parse_size("ten megabytes")


class TestSetup:
    def test_get_logger_namespaced(self):
        assert get_logger("cache").name == "learnhub.cache"

    def test_no_handler_stacking(self):
        setup_logging()
        setup_logging()
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "learnhub.log"
        root = setup_logging(level="DEBUG", log_format="text", log_file=log_file)
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        root.info("written")
        for handler in root.handlers:
            handler.flush()
        assert "written" in log_file.read_text()

    def test_configure_from_settings(self):
        settings = Settings(_env_file=None, log_level="WARNING", log_format="text")
        root = configure_from_settings(settings)
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, TextFormatter)
