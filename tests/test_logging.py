"""Tests for structlog setup."""

from __future__ import annotations

import json
import logging

import structlog

from cleansource.core.logging import setup_logging


class TestSetupLogging:
    def test_json_format(self, capsys, monkeypatch):
        monkeypatch.setenv("CLEANSOURCE_LOG_FORMAT", "json")
        setup_logging("INFO")

        structlog.get_logger("cleansource.test").info("resolver.detected", tools=["npm"])

        line = capsys.readouterr().err.strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "resolver.detected"
        assert entry["tools"] == ["npm"]
        assert entry["level"] == "info"
        assert entry["logger"] == "cleansource.test"

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("CLEANSOURCE_LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger("cleansource").level == logging.WARNING

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("CLEANSOURCE_LOG_LEVEL", "ERROR")
        setup_logging("DEBUG")
        assert logging.getLogger("cleansource").level == logging.DEBUG
