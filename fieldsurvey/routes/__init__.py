"""APIRouter registration for the field survey store."""

from __future__ import annotations

from fastapi import APIRouter

from fieldsurvey.routes.assessments import router as assessments_router

api_router = APIRouter()
api_router.include_router(assessments_router)

__all__ = ["api_router"]
