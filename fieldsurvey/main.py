"""FastAPI application factory for the field survey store."""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from fieldsurvey.config import AppConfig, load_config
from fieldsurvey.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_store_error,
    handle_unexpected_error,
)
from fieldsurvey.http.request_id import RequestIdMiddleware
from fieldsurvey.logging_setup import configure_logging
from fieldsurvey.logic.autosave import Scheduler
from fieldsurvey.logic.errors import AssessmentStoreError
from fieldsurvey.logic.submission import Submitter
from fieldsurvey.logic.workspace import Workspace
from fieldsurvey.routes import api_router
from fieldsurvey.routes.test_support import router as test_support_router

logger = logging.getLogger(__name__)


def _health_check(workspace: Workspace) -> Callable[[], dict]:
    def check() -> dict:
        try:
            with workspace.engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.error("health_db_check_failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}
        return {"status": "ok", "db": True, "assessments": len(workspace.tree.ids())}

    return check


def create_app(
    config: AppConfig | None = None,
    *,
    submitter: Submitter | None = None,
    scheduler: Scheduler | None = None,
) -> FastAPI:
    """Build the app around a fresh ``Workspace``.

    ``submitter`` and ``scheduler`` let tests replace the remote backend and
    the autosave timers.
    """
    configure_logging()
    cfg = config or load_config()
    workspace = Workspace(cfg, submitter=submitter, scheduler=scheduler)

    app = FastAPI(title="Field Survey Store")
    app.state.workspace = workspace

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(AssessmentStoreError, handle_store_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")
    # Test-support router has no prefix
    app.include_router(test_support_router)

    health_check = _health_check(workspace)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    logger.info(
        "app_created debounce_ms=%s default_unit_cap=%s submission_configured=%s",
        cfg.autosave.debounce_ms,
        cfg.units.default_max,
        bool(cfg.submission.url),
    )
    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
