"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type and handler callables that produce
application/problem+json responses, including the mapping of domain errors
raised by the assessment tree.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fieldsurvey.http.error_mapping import ERROR_MAP, entry_for
from fieldsurvey.logic.errors import AssessmentStoreError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem(key: str, detail: str, **extra: Any) -> HTTPException:
    """Build an HTTPException carrying a problem body from ERROR_MAP."""
    entry = ERROR_MAP[key]
    body: Dict[str, Any] = {
        "title": entry["title"],
        "status": entry["status"],
        "detail": detail,
        "code": entry["code"],
    }
    body.update(extra)
    return HTTPException(status_code=int(entry["status"]), detail=body)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = exc.detail
    else:
        body = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(body, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_store_error(request: Request, exc: AssessmentStoreError) -> JSONResponse:  # noqa: D401
    entry = entry_for(exc)
    status_code = int(entry["status"])
    logger.info("store_error code=%s path=%s detail=%s", entry["code"], request.url.path, exc)
    body = {"title": entry["title"], "status": status_code, "detail": str(exc), "code": entry["code"]}
    return JSONResponse(body, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem_body = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_INVALID",
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
            for e in exc.errors()
        ],
    }
    return JSONResponse(problem_body, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=True)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "handle_http_exception",
    "handle_store_error",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
