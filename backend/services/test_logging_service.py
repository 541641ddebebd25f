from __future__ import annotations

import logging

from .logging_service import RingBufferHandler


def _record(level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord("pipelines.composite.builder", level, __file__, 1, message, None, None)


def test_ring_buffer_keeps_latest_records() -> None:
    handler = RingBufferHandler(maxlen=2)
    for i in range(3):
        handler.emit(_record(logging.INFO, f"message {i}"))

    assert [r["message"] for r in handler.get_recent()] == ["message 1", "message 2"]
    assert [r["message"] for r in handler.get_recent(limit=1)] == ["message 2"]


def test_ring_buffer_level_filter_and_clear() -> None:
    handler = RingBufferHandler()
    handler.emit(_record(logging.INFO, "built"))
    handler.emit(_record(logging.WARNING, "unknown projection"))

    assert [r["message"] for r in handler.get_recent(level="warning")] == ["unknown projection"]
    assert len(handler.get_recent(level="nonsense")) == 2

    handler.clear()
    assert handler.get_recent() == []
