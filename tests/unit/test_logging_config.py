"""
Unit tests for structlog configuration.
"""

import json
import logging

import pytest
import structlog

from classification_proxy.logging_config import configure_logging, mask_secret


@pytest.fixture(autouse=True)
def restore_logging():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)
    structlog.reset_defaults()


def test_development_renders_console_output(capsys):
    configure_logging("INFO", "development")

    structlog.get_logger("tests").info("cache warmed", entries=3)

    out = capsys.readouterr().out
    assert "Logging configured" in out
    assert "cache warmed" in out


def test_development_renders_exceptions(capsys):
    configure_logging("INFO", "development")
    logger = structlog.get_logger("tests")

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("sweep failed")

    out = capsys.readouterr().out
    assert "sweep failed" in out
    assert "ValueError" in out


def test_production_renders_json(capsys):
    configure_logging("INFO", "production")

    structlog.get_logger("tests").info("cache warmed", entries=3)

    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    event = json.loads(lines[-1])
    assert event["event"] == "cache warmed"
    assert event["entries"] == 3
    assert event["app"] == "classification-proxy"
    assert event["level"] == "info"


def test_production_formats_exceptions(capsys):
    configure_logging("INFO", "production")
    logger = structlog.get_logger("tests")

    try:
        raise ValueError("boom")
    except ValueError:
        logger.exception("sweep failed")

    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    event = json.loads(lines[-1])
    assert "ValueError: boom" in event["exception"]


def test_log_level_filters(capsys):
    configure_logging("WARNING", "production")

    structlog.get_logger("tests").info("not shown")

    assert "not shown" not in capsys.readouterr().out


@pytest.mark.parametrize(
    "value, expected",
    [(None, "<unset>"), ("", "<unset>"), ("abcd", "***"), ("sk-abcdef123456", "***3456")],
)
def test_mask_secret(value, expected):
    assert mask_secret(value) == expected
