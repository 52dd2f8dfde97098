"""Database bootstrap utilities for the field survey store.

Exposes engine construction and the SQL migrations runner that applies the
files under `fieldsurvey/db/migrations/`. Snapshots are stored as JSON text;
no ORM models leak into the logic layer.
"""

from fieldsurvey.db.base import get_engine, reset_engine, transaction
from fieldsurvey.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "reset_engine",
    "transaction",
    "apply_migrations",
]
