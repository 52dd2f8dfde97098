"""Field survey assessment store.

A nested, partially-updatable store for building condition assessments:
form areas hold sections, sections hold fields, option selections, an
assessment triple, material entries and unit records. Writes are partial
patches merged in place; form edits reach the store through a debounced
autosave bridge. Business logic lives in `fieldsurvey/logic/` and the HTTP
surface in `fieldsurvey/routes/`.
"""

from __future__ import annotations

from fieldsurvey.main import create_app

__all__ = ["create_app"]
