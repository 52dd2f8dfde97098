"""Option id catalogs used to order material collections.

Only ids are kept here; label text belongs to the client. The tuples are the
rendering order of each checklist.
"""

from __future__ import annotations

from typing import Dict, Tuple

PAVEMENT_OPTIONS: Tuple[str, ...] = (
    "gravel",
    "brickPaver",
    "asphalt",
    "concrete",
    "asphaltSealCoatStriping",
    "concreteStriping",
)

ENTRANCE_APRON_OPTIONS: Tuple[str, ...] = ("asphalt", "concrete", "brickPaver", "gravel")

CURBING_OPTIONS: Tuple[str, ...] = ("asphalt", "concrete", "stone")

SIDEWALK_WALKWAY_OPTIONS: Tuple[str, ...] = ("concrete", "asphalt", "brickPaver", "stone", "wood")

CATALOGS: Dict[str, Tuple[str, ...]] = {
    "PAVEMENT_OPTIONS": PAVEMENT_OPTIONS,
    "ENTRANCE_APRON_OPTIONS": ENTRANCE_APRON_OPTIONS,
    "CURBING_OPTIONS": CURBING_OPTIONS,
    "SIDEWALK_WALKWAY_OPTIONS": SIDEWALK_WALKWAY_OPTIONS,
}


def catalog(name: str | None) -> Tuple[str, ...]:
    """Return the named catalog, or an empty tuple for unknown/None names."""
    if not name:
        return ()
    return CATALOGS.get(name, ())


__all__ = [
    "PAVEMENT_OPTIONS",
    "ENTRANCE_APRON_OPTIONS",
    "CURBING_OPTIONS",
    "SIDEWALK_WALKWAY_OPTIONS",
    "CATALOGS",
    "catalog",
]
