# tests/unit/test_cli.py
"""Tests for the chaospage CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog
import yaml
from typer.testing import CliRunner

from chaospage import __version__
from chaospage.cli import EXIT_CONFIG_ERROR, EXIT_LISTING_FAILED, app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestCLIBasics:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_presets(self) -> None:
        result = runner.invoke(app, ["presets"])
        assert result.exit_code == 0
        assert "bug_cache_sum" in result.output
        assert "strict_retry" in result.output


class TestRunCommand:
    def test_small_scenario_completes(self) -> None:
        result = runner.invoke(app, ["run", "--page-size", "2", "--log-level", "ERROR"])

        assert result.exit_code == 0, result.output
        assert "Records: 8" in result.output
        assert "Amount sum: 160.00" in result.output
        assert "3:6" in result.output
        assert "Listing complete." in result.output

    def test_too_few_attempts_exits_with_listing_failure(self) -> None:
        result = runner.invoke(app, ["run", "--page-size", "2", "--max-attempts", "4", "--log-level", "ERROR"])

        assert result.exit_code == EXIT_LISTING_FAILED
        assert "Records: 6" in result.output
        assert "RetriableError" in result.output

    def test_strict_retry_preset(self) -> None:
        result = runner.invoke(app, ["run", "--preset", "strict_retry", "--page-size", "1", "--log-level", "ERROR"])

        assert result.exit_code == EXIT_LISTING_FAILED
        assert "3:4" in result.output

    def test_unknown_preset(self) -> None:
        result = runner.invoke(app, ["run", "--preset", "nope"])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "not found" in result.output

    def test_invalid_log_level(self) -> None:
        result = runner.invoke(app, ["run", "--log-level", "LOUD"])
        assert result.exit_code == EXIT_CONFIG_ERROR
        assert "Configuration error" in result.output


class TestFetchCommand:
    def test_fetch_regular_page(self) -> None:
        result = runner.invoke(app, ["fetch", "0"])
        assert result.exit_code == 0
        assert "2500 records, next page 1" in result.output

    def test_fetch_failing_page_repeatedly(self) -> None:
        result = runner.invoke(app, ["fetch", "3", "--repeat", "6"])

        assert result.exit_code == 0
        assert result.output.count("RetriableError") == 5
        assert "attempt 6: 2500 records, next page -1" in result.output

    def test_fetch_invalid_page(self) -> None:
        result = runner.invoke(app, ["fetch", "4"])
        assert result.exit_code == EXIT_LISTING_FAILED
        assert "InvalidPageError: invalid page" in result.output


class TestShowConfig:
    def test_json(self) -> None:
        result = runner.invoke(app, ["show-config", "--preset", "strict_retry", "--format", "json"])

        assert result.exit_code == 0
        config = json.loads(result.output)
        assert config["retry"]["max_attempts"] == 4
        assert config["preset_name"] == "strict_retry"

    def test_yaml_from_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "chaos.yaml"
        config_file.write_text("scenario:\n  failure_count: 2\n")

        result = runner.invoke(app, ["show-config", "--config", str(config_file)])

        assert result.exit_code == 0
        config = yaml.safe_load(result.output)
        assert config["scenario"]["failure_count"] == 2
        assert config["retry"]["retry_messages"] == ["retriable error"]

    def test_unknown_format(self) -> None:
        result = runner.invoke(app, ["show-config", "--format", "toml"])
        assert result.exit_code == EXIT_CONFIG_ERROR
