"""Per-application container for the assessment store and its collaborators.

The app factory builds one ``Workspace`` and stores it on ``app.state`` so no
route reaches for module globals: the tree, its autosave sessions, the photo
indexes (one per assessment) and the submitter all travel together.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from sqlalchemy.engine import Engine

from fieldsurvey.config import AppConfig
from fieldsurvey.db.base import get_engine
from fieldsurvey.db.migrations_runner import apply_migrations
from fieldsurvey.logic.assessment_tree import AssessmentTree
from fieldsurvey.logic.autosave import AutosaveSessions, Scheduler
from fieldsurvey.logic.errors import AssessmentNotFoundError
from fieldsurvey.logic.photos import InMemoryPhotoIndex
from fieldsurvey.logic.repository_assessments import load_assessment, save_assessment
from fieldsurvey.logic.submission import HttpSubmitter, Submitter, UnconfiguredSubmitter

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(
        self,
        config: AppConfig,
        *,
        submitter: Submitter | None = None,
        scheduler: Scheduler | None = None,
        engine: Engine | None = None,
    ) -> None:
        self.config = config
        self._engine = engine
        self._schema_ready = False
        self.tree = AssessmentTree(
            unit_caps=config.units.max_by_kind,
            default_unit_cap=config.units.default_max,
        )
        self.sessions = AutosaveSessions(delay=config.autosave.delay_seconds, scheduler=scheduler).attach(self.tree)
        self.submitter: Submitter = submitter or _default_submitter(config)
        self._photos: Dict[str, InMemoryPhotoIndex] = {}

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine(self.config.database.dsn)
        return self._engine

    def _ensure_schema(self) -> Engine:
        if not self._schema_ready:
            apply_migrations(self.engine)
            self._schema_ready = True
        return self.engine

    def photos(self, assessment_id: str) -> InMemoryPhotoIndex:
        """Photo index for an existing assessment (created on first use)."""
        if not self.tree.exists(assessment_id):
            raise AssessmentNotFoundError(assessment_id)
        return self._photos.setdefault(assessment_id, InMemoryPhotoIndex())

    def save(self, assessment_id: str) -> Dict[str, Any]:
        snapshot = self.tree.snapshot(assessment_id)
        save_assessment(snapshot, engine=self._ensure_schema())
        return snapshot

    def restore(self, assessment_id: str) -> bool:
        """Replace the in-memory assessment with its stored snapshot.

        Open autosave sessions for the id are torn down first so a pending
        commit cannot overwrite the restored data.
        """
        stored = load_assessment(assessment_id, engine=self._ensure_schema())
        if stored is None:
            return False
        self.sessions.teardown_assessment(assessment_id)
        self.tree.load_snapshot(stored)
        logger.info("assessment_restored assessment_id=%s", assessment_id)
        return True

    def reset(self) -> None:
        self.sessions.teardown_all()
        self.tree = AssessmentTree(
            unit_caps=self.config.units.max_by_kind,
            default_unit_cap=self.config.units.default_max,
        )
        self.sessions.attach(self.tree)
        self._photos.clear()


def _default_submitter(config: AppConfig) -> Submitter:
    if config.submission.url:
        return HttpSubmitter(config.submission.url, timeout=config.submission.timeout_s)
    return UnconfiguredSubmitter()


__all__ = ["Workspace"]
