"""Lightweight SQL migrations runner.

Applies .sql files in lexical order from the `migrations/` directory and
records applied filenames in a `schema_migrations` table so a file never runs
twice against the same database.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def _iter_sql_files(root: Path) -> Iterable[Path]:
    for p in sorted(root.glob("*.sql")):
        if "rollback" in p.name.lower():
            continue
        yield p


def _statements(sql: str) -> List[str]:
    out: List[str] = []
    for stmt in sql.split(";"):
        lines = [ln for ln in stmt.splitlines() if not ln.strip().startswith("--")]
        s = "\n".join(lines).strip()
        if s and s.upper() not in {"BEGIN", "COMMIT", "END"}:
            out.append(s)
    return out


def _ensure_journal(conn: Connection) -> None:
    conn.execute(
        sql_text(
            "CREATE TABLE IF NOT EXISTS schema_migrations (filename VARCHAR(255) PRIMARY KEY, applied_at VARCHAR(32) NOT NULL)"
        )
    )


def applied_migrations(engine: Engine) -> List[str]:
    with engine.begin() as conn:
        _ensure_journal(conn)
        rows = conn.execute(sql_text("SELECT filename FROM schema_migrations ORDER BY filename")).fetchall()
    return [str(r[0]) for r in rows]


def apply_migrations(engine: Engine, migrations_dir: str | os.PathLike[str] | None = None) -> List[str]:
    """Apply pending migrations; returns the filenames applied by this call."""
    root = Path(migrations_dir) if migrations_dir is not None else DEFAULT_MIGRATIONS_DIR
    if not root.exists():
        logger.warning("migrations_dir_missing path=%s", root)
        return []

    done = set(applied_migrations(engine))
    applied_now: List[str] = []
    for sql_path in _iter_sql_files(root):
        fname = sql_path.name
        if fname in done:
            continue
        sql = sql_path.read_text(encoding="utf-8")
        with engine.begin() as conn:
            for stmt in _statements(sql):
                conn.exec_driver_sql(stmt)
            conn.execute(
                sql_text("INSERT INTO schema_migrations (filename, applied_at) VALUES (:f, :at)"),
                {
                    "f": fname,
                    # ISO-8601 UTC without fractional seconds
                    "at": datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z"),
                },
            )
        applied_now.append(fname)
        logger.info("migration_applied file=%s", fname)
    return applied_now


__all__ = ["apply_migrations", "applied_migrations", "DEFAULT_MIGRATIONS_DIR"]
