"""Domain events raised by the assessment tree and the submission flow.

Every event is logged and kept in a bounded in-memory ring so the
test-support routes can show what happened recently. The ring never grows
past ``EVENT_BUFFER_LIMIT``; the oldest events fall off first.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)

ASSESSMENT_CREATED = "assessment.created"
ASSESSMENT_SWITCHED = "assessment.switched"
SECTION_UPDATED = "section.updated"
ASSESSMENT_SUBMITTED = "assessment.submitted"
ASSESSMENT_SUBMIT_FAILED = "assessment.submit_failed"

EVENT_BUFFER_LIMIT = 500

EVENT_BUFFER: Deque[Dict[str, Any]] = deque(maxlen=EVENT_BUFFER_LIMIT)

_sequence = itertools.count(1)


def publish(event_type: str, payload: Dict[str, Any]) -> None:
    logger.info("event_publish type=%s payload=%s", event_type, payload)
    EVENT_BUFFER.append({"seq": next(_sequence), "type": event_type, "payload": payload})


def get_buffered_events(clear: bool = True) -> List[Dict[str, Any]]:
    """Return the retained events oldest first; optionally empty the ring."""
    events = list(EVENT_BUFFER)
    if clear:
        EVENT_BUFFER.clear()
    return events


__all__ = [
    "ASSESSMENT_CREATED",
    "ASSESSMENT_SWITCHED",
    "SECTION_UPDATED",
    "ASSESSMENT_SUBMITTED",
    "ASSESSMENT_SUBMIT_FAILED",
    "EVENT_BUFFER_LIMIT",
    "EVENT_BUFFER",
    "publish",
    "get_buffered_events",
]
