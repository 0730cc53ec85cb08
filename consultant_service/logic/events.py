"""Submission events: `test_result.created` and `test_result.rejected`.

Every event is logged. The most recent `EVENT_BUFFER_SIZE` events are also
kept in process so callers (and tests) can inspect what happened without a
broker; older events fall off the front of the buffer.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)

TEST_RESULT_CREATED = "test_result.created"
TEST_RESULT_REJECTED = "test_result.rejected"

EVENT_BUFFER_SIZE = 1000

Event = Dict[str, Any]

_recent: Deque[Event] = deque(maxlen=EVENT_BUFFER_SIZE)
_recent_lock = threading.Lock()


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("submission_event type=%s payload=%s", event_type, payload)
    with _recent_lock:
        _recent.append({"type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Event]:
    """Return the buffered events, oldest first; optionally clear them."""
    with _recent_lock:
        events = list(_recent)
        if clear:
            _recent.clear()
    return events


__all__ = [
    "TEST_RESULT_CREATED",
    "TEST_RESULT_REJECTED",
    "EVENT_BUFFER_SIZE",
    "publish",
    "get_buffered_events",
]
