"""
Tests for logging configuration.
"""

import json
import logging

import pytest

from psychometrics.core.config import settings
from psychometrics.core.logging_config import JSONFormatter, setup_logging


@pytest.fixture
def restore_logging():
    """Undo setup_logging() so later tests keep pytest's capture handlers."""
    root = logging.getLogger()
    package = logging.getLogger("psychometrics")
    saved = (root.level, list(root.handlers), package.level, package.propagate)
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    package.setLevel(saved[2])
    package.propagate = saved[3]
    package.handlers.clear()


def make_record(level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="psychometrics.core.norming",
        level=level,
        pathname="norming.py",
        lineno=42,
        msg="Norming statistics calculated for item %s",
        args=("q1",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_basic_fields(self):
        entry = json.loads(JSONFormatter().format(make_record()))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "psychometrics.core.norming"
        assert entry["message"] == "Norming statistics calculated for item q1"
        assert "timestamp" in entry
        assert "source" not in entry

    def test_structured_fields(self):
        entry = json.loads(
            JSONFormatter().format(make_record(item_id="q1", sample_size=40, run_id="abc"))
        )
        assert entry["item_id"] == "q1"
        assert entry["sample_size"] == 40
        assert entry["run_id"] == "abc"

    def test_service_identity(self):
        entry = json.loads(JSONFormatter().format(make_record()))
        assert entry["service"] == settings.APP_NAME
        assert entry["version"] == settings.APP_VERSION

    def test_error_includes_source(self):
        entry = json.loads(JSONFormatter().format(make_record(level=logging.ERROR)))
        assert entry["source"] == "norming.py:42"


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_plain_output(self, restore_logging):
        setup_logging(level="DEBUG", json_output=False)

        package = logging.getLogger("psychometrics")
        assert package.level == logging.DEBUG
        assert package.propagate is False
        assert not isinstance(package.handlers[0].formatter, JSONFormatter)

    def test_json_output(self, restore_logging):
        setup_logging(level="WARNING", json_output=True)

        package = logging.getLogger("psychometrics")
        assert package.level == logging.WARNING
        assert isinstance(package.handlers[0].formatter, JSONFormatter)

    def test_debug_setting_lowers_default_level(self, restore_logging, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", True)
        monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")

        setup_logging(json_output=False)

        assert logging.getLogger("psychometrics").level == logging.DEBUG

    def test_log_level_setting_used_without_debug(self, restore_logging, monkeypatch):
        monkeypatch.setattr(settings, "DEBUG", False)
        monkeypatch.setattr(settings, "LOG_LEVEL", "WARNING")

        setup_logging(json_output=False)

        assert logging.getLogger("psychometrics").level == logging.WARNING
