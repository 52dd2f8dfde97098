"""SQLAlchemy engine helper for assessment snapshot storage.

Any SQLAlchemy URL works; SQLite is the default for local runs and tests.
No declarative models are defined here; repositories issue plain SQL.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or "sqlite+pysqlite:///:memory:"


# One cached engine per process, rebuilt when the URL changes
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return the shared Engine for ``url`` (or the environment default).

    In-memory SQLite uses a StaticPool so every session sees the same
    database for the life of the process.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({"poolclass": StaticPool, "connect_args": {"check_same_thread": False}})
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db_engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


def reset_engine() -> None:
    """Dispose the cached engine (tests switch databases between sessions)."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


@contextmanager
def transaction(engine: Engine | None = None) -> Iterator[Connection]:
    """Yield a connection inside a transaction; rolled back on error."""
    eng = engine or get_engine()
    try:
        with eng.begin() as conn:
            yield conn
    except Exception:
        logger.error("db_transaction_rolled_back", exc_info=True)
        raise


__all__ = ["get_engine", "reset_engine", "transaction"]
