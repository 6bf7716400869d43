# tests/unit/test_logging_setup.py
"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from chaospage.logging import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_sets_root_level(self) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_replaces_handlers(self) -> None:
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        get_logger("chaospage.test").info("page streamed", page=2, records=3)

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "page streamed"
        assert event["page"] == 2
        assert event["records"] == 3
        assert event["level"] == "info"
        assert "_record" not in event

    def test_stdlib_records_share_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        logging.getLogger("plain").warning("from stdlib")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "from stdlib"
        assert event["level"] == "warning"

    def test_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        get_logger("chaospage.test").debug("hidden")
        assert "hidden" not in capsys.readouterr().err

    def test_json_drops_formatter_bookkeeping(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        get_logger("chaospage.test").info("listing complete")
        logging.getLogger("plain").info("from stdlib")

        for line in capsys.readouterr().err.strip().splitlines():
            event = json.loads(line)
            assert "_record" not in event
            assert "_from_structlog" not in event

    def test_json_renders_exception(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        try:
            raise RuntimeError("sink full")
        except RuntimeError:
            get_logger("chaospage.test").exception("sink failed")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["event"] == "sink failed"
        assert "RuntimeError: sink full" in event["exception"]
