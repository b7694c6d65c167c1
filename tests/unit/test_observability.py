"""Observability helpers: trace binding, event payloads and emitted records."""

from __future__ import annotations

import logging

import pytest

from lib_dataclass_config.observability import TRACE_ID, bind_trace_id, get_logger, log_debug, log_info, make_event


@pytest.fixture(autouse=True)
def _reset_trace():
    bind_trace_id(None)
    yield
    bind_trace_id(None)


def test_bind_trace_id_sets_and_clears() -> None:
    bind_trace_id("abc")
    assert TRACE_ID.get() == "abc"
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_payload() -> None:
    assert make_event("file", "/etc/app.toml", {"options": 2}) == {"source": "file", "path": "/etc/app.toml", "options": 2}
    assert make_event("env", None) == {"source": "env", "path": None}


def test_logger_is_quiet_by_default() -> None:
    logger = get_logger()
    assert logger.name == "lib_dataclass_config"
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_log_helpers_attach_context(caplog: pytest.LogCaptureFixture) -> None:
    bind_trace_id("trace-1")
    with caplog.at_level(logging.DEBUG, logger="lib_dataclass_config"):
        log_debug("probe", **make_event("flags", None, {"options": 1}))
        log_info("done", source="final")
    records = [record for record in caplog.records if record.name == "lib_dataclass_config"]
    assert [record.getMessage() for record in records] == ["probe", "done"]
    assert records[0].context == {"trace_id": "trace-1", "source": "flags", "path": None, "options": 1}
    assert records[1].levelno == logging.INFO
