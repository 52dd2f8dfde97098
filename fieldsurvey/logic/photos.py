"""Photo metadata index consulted by the forms (read-only for the core).

Only metadata is tracked: which form area / step a photo belongs to and its
upload status. Image bytes live elsewhere.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Protocol

from fieldsurvey.models.assessment import UploadStatus

UPLOAD_STATUSES = tuple(s.value for s in UploadStatus)


class PhotoCounter(Protocol):
    def photo_count_for_step(self, form_area: str, step_index: int) -> int: ...


class InMemoryPhotoIndex:
    """Per-assessment photo metadata keyed by photo id."""

    def __init__(self) -> None:
        self._photos: Dict[str, Dict[str, Any]] = {}

    def add_photo(
        self,
        local_uri: str,
        *,
        form_area: str = "",
        step: int = 0,
        field_name: str = "",
        notes: str = "",
    ) -> str:
        photo_id = str(uuid.uuid4())
        self._photos[photo_id] = {
            "id": photo_id,
            "localUri": local_uri,
            "formType": form_area,
            "formStep": int(step),
            "fieldName": field_name,
            "notes": notes,
            "uploadStatus": UploadStatus.PENDING.value,
            "capturedAt": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        }
        return photo_id

    def remove_photo(self, photo_id: str) -> bool:
        return self._photos.pop(photo_id, None) is not None

    def set_upload_status(self, photo_id: str, status: str) -> bool:
        if status not in UPLOAD_STATUSES:
            raise ValueError(f"upload status must be one of {list(UPLOAD_STATUSES)}")
        photo = self._photos.get(photo_id)
        if photo is None:
            return False
        photo["uploadStatus"] = status
        return True

    def photos_for_step(self, form_area: str, step_index: int) -> List[Dict[str, Any]]:
        return [
            dict(p) for p in self._photos.values() if p["formType"] == form_area and p["formStep"] == step_index
        ]

    def photo_count_for_step(self, form_area: str, step_index: int) -> int:
        return len(self.photos_for_step(form_area, step_index))

    @property
    def total_count(self) -> int:
        return len(self._photos)

    @property
    def pending_upload_count(self) -> int:
        return sum(1 for p in self._photos.values() if p["uploadStatus"] == UploadStatus.PENDING.value)


__all__ = ["PhotoCounter", "InMemoryPhotoIndex", "UPLOAD_STATUSES"]
