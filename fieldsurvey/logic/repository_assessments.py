"""Assessment snapshot persistence.

Whole assessment trees are stored as JSON text, one row per assessment, so the
in-memory tree can be saved and rehydrated. Keeps route handlers free of SQL.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine

from fieldsurvey.db.base import get_engine, transaction

logger = logging.getLogger(__name__)


def save_assessment(snapshot: Mapping[str, Any], engine: Engine | None = None) -> None:
    """Insert or replace the stored snapshot for ``snapshot['id']``."""
    eng = engine or get_engine()
    params = {
        "aid": snapshot["id"],
        "status": snapshot.get("status", "draft"),
        "created_at": snapshot.get("createdAt", ""),
        "last_modified": snapshot.get("lastModified", ""),
        "payload": json.dumps(snapshot, ensure_ascii=False, sort_keys=True),
    }
    with transaction(eng) as conn:
        updated = conn.execute(
            sql_text(
                """
                UPDATE assessment_snapshot
                SET status = :status, last_modified = :last_modified, payload = :payload
                WHERE assessment_id = :aid
                """
            ),
            params,
        ).rowcount
        if not updated:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO assessment_snapshot (assessment_id, status, created_at, last_modified, payload)
                    VALUES (:aid, :status, :created_at, :last_modified, :payload)
                    """
                ),
                params,
            )
    logger.info("assessment_saved assessment_id=%s updated=%s", params["aid"], bool(updated))


def load_assessment(assessment_id: str, engine: Engine | None = None) -> Dict[str, Any] | None:
    """Return the stored snapshot, or None when the id was never saved."""
    eng = engine or get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT payload FROM assessment_snapshot WHERE assessment_id = :aid"),
            {"aid": assessment_id},
        ).fetchone()
    if row is None:
        return None
    try:
        return json.loads(row[0])
    except json.JSONDecodeError:
        logger.error("assessment_payload_corrupt assessment_id=%s", assessment_id, exc_info=True)
        raise


def list_saved_assessments(engine: Engine | None = None) -> List[Dict[str, Any]]:
    eng = engine or get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                "SELECT assessment_id, status, last_modified FROM assessment_snapshot ORDER BY last_modified DESC, assessment_id"
            )
        ).fetchall()
    return [{"id": str(r[0]), "status": str(r[1]), "lastModified": str(r[2])} for r in rows]


__all__ = ["save_assessment", "load_assessment", "list_saved_assessments"]
