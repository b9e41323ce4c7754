"""Tests for structured logging configuration."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest
import structlog

from registrar.core.logging import configure_logging


@pytest.fixture(autouse=True)
def reset_logging():
    structlog.reset_defaults()
    root = logging.getLogger()
    saved = root.handlers[:]
    yield
    structlog.reset_defaults()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in saved:
        root.addHandler(handler)
    root.setLevel(logging.WARNING)


def _capture() -> io.StringIO:
    captured = io.StringIO()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(captured)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    return captured


def test_single_stderr_handler():
    configure_logging(json_output=False, level="INFO")
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert handlers[0].stream is sys.stderr


def test_reconfigure_replaces_handler():
    configure_logging(level="INFO")
    configure_logging(level="INFO")
    assert len(logging.getLogger().handlers) == 1


def test_json_output():
    configure_logging(json_output=True, level="INFO")
    captured = _capture()

    structlog.get_logger("registrar.backfill").info("identifier assigned", identifier="TCH0001")

    data = json.loads(captured.getvalue().strip())
    assert data["event"] == "identifier assigned"
    assert data["identifier"] == "TCH0001"
    assert data["level"] == "info"
    assert "timestamp" in data


@pytest.mark.parametrize("level", ["DEBUG", "WARNING", "error"])
def test_levels(level):
    configure_logging(level=level)
    assert logging.getLogger().level == getattr(logging, level.upper())
