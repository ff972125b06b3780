import asyncio
import io
import json
import logging
import sys

import pytest
import structlog
from structlog.testing import capture_logs

from valhalla_api.observability.logging import configure_logging, log_unhandled_async_error


_LOGGER_NAMES = ("", "uvicorn", "uvicorn.error", "uvicorn.access")


@pytest.fixture
def restore_logging():
    saved = {
        name: (logging.getLogger(name).handlers[:], logging.getLogger(name).level, logging.getLogger(name).propagate)
        for name in _LOGGER_NAMES
    }
    config = structlog.get_config()

    yield

    structlog.configure(**config)
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


def test_production_logs_are_json_with_service_name(monkeypatch, restore_logging) -> None:
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stdout", stream)
    configure_logging("info", json_logs=True, service="valhalla-test", force=True)

    structlog.get_logger("test").info("hello", answer=42)
    structlog.get_logger("test").debug("hidden")

    lines = [line for line in stream.getvalue().splitlines() if line.strip()]
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "hello"
    assert entry["answer"] == 42
    assert entry["level"] == "info"
    assert entry["service"] == "valhalla-test"
    assert "timestamp" in entry


def test_stdlib_records_share_the_format(monkeypatch, restore_logging) -> None:
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stdout", stream)
    configure_logging("warning", json_logs=True, service="valhalla-test", force=True)

    logging.getLogger("plain").warning("from stdlib")

    entry = json.loads(stream.getvalue().strip())
    assert entry["event"] == "from stdlib"
    assert entry["service"] == "valhalla-test"


def test_development_logs_are_console_lines(monkeypatch, restore_logging) -> None:
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stdout", stream)
    configure_logging("info", json_logs=False, service="valhalla-test", force=True)

    structlog.get_logger("test").info("hello", answer=42)

    output = stream.getvalue()
    assert output.count("\n") == 1
    assert "hello" in output
    assert "answer" in output
    assert "valhalla-test" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)


def test_unhandled_async_error_is_logged() -> None:
    loop = asyncio.new_event_loop()
    try:
        future = loop.create_future()
        with capture_logs() as logs:
            log_unhandled_async_error(
                loop,
                {"message": "Future exception was never retrieved", "exception": ValueError("nope"), "future": future},
            )
    finally:
        loop.close()

    assert len(logs) == 1
    assert logs[0]["event"] == "unhandled_rejection"
    assert logs[0]["log_level"] == "error"
    assert "nope" in logs[0]["reason"]
    assert "Future" in logs[0]["origin"]
