"""Test support routes.

Test-only endpoints used by integration tests to reset the in-memory
workspace and to observe buffered domain events.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from fieldsurvey.logic import events

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/__test__/reset-state", summary="Test-only reset state")
async def reset_state(request: Request) -> Response:
    """Drop every assessment, autosave session and buffered event; returns 204."""
    events.EVENT_BUFFER.clear()
    request.app.state.workspace.reset()
    logger.info("test_state_reset")
    return Response(status_code=204)


@router.get("/__test__/events", summary="Test-only events feed")
async def get_test_events():
    """Expose buffered domain events without clearing the buffer."""
    return JSONResponse(events.get_buffered_events(clear=False), status_code=200)


__all__ = ["router"]
