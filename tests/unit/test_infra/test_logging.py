"""Tests for structured logging."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from graph_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


def make_record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("graph_service.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_set_and_clear_context() -> None:
    set_log_context(request_id="abc")
    set_log_context(viewer_id="1")

    assert get_log_context() == {"request_id": "abc", "viewer_id": "1"}

    clear_log_context()
    assert get_log_context() == {}


def test_log_context_restores_previous_values() -> None:
    set_log_context(request_id="outer")

    with log_context(request_id="inner", operation_name="GetWidget"):
        assert get_log_context() == {"request_id": "inner", "operation_name": "GetWidget"}

    assert get_log_context() == {"request_id": "outer"}


async def test_context_isolated_between_tasks() -> None:
    async def operation(request_id: str) -> dict:
        with log_context(request_id=request_id):
            await asyncio.sleep(0)
            return get_log_context()

    first, second = await asyncio.gather(operation("a"), operation("b"))

    assert first == {"request_id": "a"}
    assert second == {"request_id": "b"}


def test_filter_injects_without_overwriting() -> None:
    record = make_record(request_id="explicit")

    with log_context(request_id="ambient", viewer_id="7"):
        assert ContextInjectingFilter().filter(record)

    assert record.request_id == "explicit"
    assert record.viewer_id == "7"


def test_json_formatter_output() -> None:
    formatter = JSONFormatter(static={"service": "graph-service"})

    payload = json.loads(formatter.format(make_record("built %s", phase="freeze")))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "graph_service.test"
    assert payload["message"] == "built %s"
    assert payload["service"] == "graph-service"
    assert payload["phase"] == "freeze"
    assert payload["timestamp"].endswith("Z")
