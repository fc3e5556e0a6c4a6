"""Tests for cmvcwatch.logconfig."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from cmvcwatch.logconfig import configure_logging


class TestConfigureLogging:
    def test_sets_root_level(self):
        configure_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")
        assert logging.getLogger().level == logging.INFO

    def test_json_renderer(self, capsys: pytest.CaptureFixture[str]):
        configure_logging("INFO", json_format=True)
        structlog.get_logger("cmvcwatch.test").info("report.line_skipped", line_number=3)
        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "report.line_skipped"
        assert event["line_number"] == 3
        assert event["level"] == "info"
