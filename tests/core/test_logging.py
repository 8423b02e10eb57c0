"""Tests for task-id context injection in logging."""

import json
import logging
import sys
import threading

import pytest

from minion.core.logging import (
    _inject_context_vars,
    bind_task_id,
    configure_structlog,
    get_task_id,
    unbind_task_id,
)


def test_bind_and_unbind() -> None:
    token = bind_task_id("task-1")
    assert get_task_id() == "task-1"
    unbind_task_id(token)
    assert get_task_id() == ""


def test_binding_is_thread_local() -> None:
    token = bind_task_id("main-task")
    seen: list[str] = []
    thread = threading.Thread(target=lambda: seen.append(get_task_id()))
    thread.start()
    thread.join()
    unbind_task_id(token)

    assert seen == [""]


def test_structlog_processor_injects_task_id() -> None:
    token = bind_task_id("task-2")
    try:
        event = _inject_context_vars(logging.getLogger("t"), "info", {"event": "x"})
    finally:
        unbind_task_id(token)
    assert event["task_id"] == "task-2"


def test_processor_omits_empty_task_id() -> None:
    event = _inject_context_vars(logging.getLogger("t"), "info", {"event": "x"})
    assert "task_id" not in event


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str, level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord("minion.pipeline.publish", level, __file__, 1, msg, ("seg_0",), exc_info)


class TestStdlibBridge:
    def test_production_renders_stdlib_records_as_json(self, restore_root_logging) -> None:
        configure_structlog(debug=False)
        formatter = restore_root_logging.handlers[0].formatter

        token = bind_task_id("task-3")
        try:
            line = formatter.format(_record("Uploading segment: %s", logging.WARNING))
        finally:
            unbind_task_id(token)

        payload = json.loads(line)
        assert payload["event"] == "Uploading segment: seg_0"
        assert payload["level"] == "warning"
        assert payload["logger"] == "minion.pipeline.publish"
        assert payload["task_id"] == "task-3"
        assert "timestamp" in payload

    def test_production_json_includes_traceback(self, restore_root_logging) -> None:
        configure_structlog(debug=False)
        formatter = restore_root_logging.handlers[0].formatter
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()

        payload = json.loads(formatter.format(_record("Failed %s", logging.ERROR, exc_info)))

        assert "ValueError: boom" in payload["exception"]

    def test_debug_renders_console_line(self, restore_root_logging) -> None:
        configure_structlog(debug=True)
        formatter = restore_root_logging.handlers[0].formatter

        line = formatter.format(_record("Uploading segment: %s"))

        assert "Uploading segment: seg_0" in line
        assert "minion.pipeline.publish" in line
        assert restore_root_logging.level == logging.DEBUG
