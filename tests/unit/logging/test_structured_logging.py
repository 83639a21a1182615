"""Tests for logging configuration, JSON output and job context."""

import json
import logging
import sys

import pytest

from homeflix.config import LoggingConfig
from homeflix.logging import (
    JobContextFilter,
    JSONFormatter,
    configure_logging,
    get_job_context,
    job_context,
)


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="homeflix.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJobContext:
    def test_context_is_scoped(self):
        assert get_job_context() == (None, None)
        with job_context("3f2a9c1e-0000-4000-8000-000000000000", 7):
            assert get_job_context() == ("3f2a9c1e-0000-4000-8000-000000000000", 7)
        assert get_job_context() == (None, None)

    def test_filter_adds_tag(self):
        record = _record()
        with job_context("3f2a9c1e-0000-4000-8000-000000000000", 7):
            assert JobContextFilter().filter(record) is True
        assert record.job_tag == "[J:3f2a9c1e] "
        assert record.media_item_id == 7

    def test_filter_outside_job(self):
        record = _record()
        JobContextFilter().filter(record)
        assert record.job_tag == ""
        assert record.job_id is None


class TestJSONFormatter:
    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))

        assert entry["message"] == "hello world"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "homeflix.test"
        assert "context" not in entry

    def test_extra_and_job_context(self):
        record = _record(command="ffmpeg", elapsed_seconds=1.5)
        with job_context("abc", 3):
            JobContextFilter().filter(record)

        entry = json.loads(JSONFormatter().format(record))

        assert entry["context"] == {
            "command": "ffmpeg",
            "elapsed_seconds": 1.5,
            "job_id": "abc",
            "media_item_id": 3,
        }

    def test_exception(self):
        try:
            raise ValueError("bad input")
        except ValueError:
            record = _record(msg="failed", args=None)
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad input" in entry["exception"]


class TestConfigureLogging:
    def test_json_file_logging(self, temp_dir, restore_root_logger):
        log_file = temp_dir / "logs" / "homeflix.log"
        configure_logging(LoggingConfig(level="debug", file=log_file, format="json"))

        logging.getLogger("homeflix.test").info("scan %d", 5)
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = log_file.read_text().splitlines()
        assert json.loads(lines[-1])["message"] == "scan 5"
        assert restore_root_logger.level == logging.DEBUG

    def test_stderr_when_no_file(self, restore_root_logger):
        configure_logging(LoggingConfig(level="warning"))

        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert restore_root_logger.level == logging.WARNING

    def test_file_and_stderr(self, temp_dir, restore_root_logger):
        configure_logging(
            LoggingConfig(file=temp_dir / "h.log", include_stderr=True)
        )
        assert len(restore_root_logger.handlers) == 2
