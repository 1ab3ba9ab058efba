"""Tests for structured logging configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

import gcal_events
from gcal_events.logging import _NOISE_LOGGERS, configure_logging

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_logging():
    """Restore the root logger between tests."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.WARNING)


class TestConfigureLogging:
    def test_sets_root_level(self):
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_reconfiguring_does_not_duplicate_handlers(self):
        configure_logging()
        configure_logging(fmt="json")
        assert len(logging.getLogger().handlers) == 1

    def test_noise_loggers_are_quieted(self):
        configure_logging(level="DEBUG")
        for name in _NOISE_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_json_console_output(self, capsys: pytest.CaptureFixture[str]):
        configure_logging(level="INFO", fmt="json")
        logging.getLogger("gcal_events.test").info("listed events")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "listed events"
        assert record["level"] == "info"
        assert record["logger"] == "gcal_events.test"

    def test_log_file_receives_json_lines(self, tmp_path: Path):
        log_file = tmp_path / "nested" / "gcal.log"
        configure_logging(level="DEBUG", log_file=log_file)

        logging.getLogger("gcal_events.gateway").debug("Calendar API %s %s", "GET", "/x")
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "Calendar API GET /x"
        assert record["logger"] == "gcal_events.gateway"


class TestLoggingFromConfig:
    def test_logging_table_drives_configuration(self, tmp_path: Path):
        config_path = tmp_path / "gcal-events.toml"
        log_file = tmp_path / "gcal.log"
        config_path.write_text(
            '[calendar]\ncalendar_id = "primary"\n'
            f'[logging]\nlevel = "debug"\nformat = "json"\nlog_file = "{log_file.as_posix()}"\n'
        )
        cfg = gcal_events.load_config(config_path)

        gcal_events.configure_logging(cfg.logging.level, cfg.logging.format, cfg.logging.log_file)

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
