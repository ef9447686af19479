"""
Tests for root logger configuration.
File: tests/test_logging_config.py
"""

import logging
from logging.handlers import RotatingFileHandler

import pytest

from tripmetrics.config import get_settings
from tripmetrics.logging_config import configure_logging


@pytest.fixture
def isolated_root(monkeypatch, tmp_path):
    monkeypatch.setenv("TRIPS_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("TRIPS_OUTPUT_DIR", str(tmp_path / "out"))
    monkeypatch.setenv("TRIPS_LOG_LEVEL", "DEBUG")
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield tmp_path
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


def test_configure_logging_writes_rotating_file(isolated_root):
    configure_logging()
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(handler, RotatingFileHandler) for handler in root.handlers)

    logging.getLogger("workflows.derive").info("derived 3 rows")
    for handler in root.handlers:
        handler.flush()
    log_text = (isolated_root / "logs" / "pipeline.log").read_text(encoding="utf-8")
    assert "| INFO | workflows.derive | derived 3 rows" in log_text
    assert (isolated_root / "out").is_dir()
