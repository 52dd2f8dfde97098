"""Configuration utilities for the field survey store.

This module loads application configuration with the following rules:
- Primary source: `fieldsurvey_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("fieldsurvey_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class AutosaveConfig(BaseModel):
    debounce_ms: int = Field(default=300, gt=0)

    @property
    def delay_seconds(self) -> float:
        return self.debounce_ms / 1000.0


class UnitsConfig(BaseModel):
    default_max: int = Field(default=3, gt=0)
    max_by_kind: Dict[str, int] = Field(default_factory=dict)

    @field_validator("max_by_kind")
    @classmethod
    def caps_must_be_positive(cls, v: Dict[str, int]) -> Dict[str, int]:
        bad = sorted(k for k, n in v.items() if int(n) <= 0)
        if bad:
            raise ValueError(f"units.max_by_kind must be positive for {bad}")
        return v


class SubmissionConfig(BaseModel):
    url: Optional[str] = None
    timeout_s: float = Field(default=10.0, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    autosave: AutosaveConfig
    units: UnitsConfig
    submission: SubmissionConfig


# Observed maxima on the equipment screens
DEFAULT_UNIT_CAPS: Dict[str, int] = {
    "chillers": 2,
    "coolingTowers": 2,
    "boilers": 3,
    "unitHeaters": 3,
    "airHandlingUnits": 3,
    "exhaustFans": 3,
    "waterHeaters": 3,
}


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) fieldsurvey_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    # Helpers to fetch from base JSON
    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Database
    dsn = (
        _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )

    # Autosave
    debounce_text = _env("AUTOSAVE_DEBOUNCE_MS") or _read_config_file("autosave.debounce_ms") or _base("autosave.debounce_ms", "300")

    # Units
    default_max_text = _env("UNITS_DEFAULT_MAX") or _read_config_file("units.default_max") or _base("units.default_max", "3")
    caps = dict(DEFAULT_UNIT_CAPS)
    base_caps = (base.get("units") or {}).get("max_by_kind") if isinstance(base.get("units"), dict) else None
    if isinstance(base_caps, dict):
        caps.update(base_caps)

    # Submission
    submission_url = _env("SUBMISSION_URL") or _read_config_file("submission.url") or _base("submission.url")
    timeout_text = _env("SUBMISSION_TIMEOUT_S") or _read_config_file("submission.timeout_s") or _base("submission.timeout_s", "10")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            autosave=AutosaveConfig(debounce_ms=int(str(debounce_text).strip())),
            units=UnitsConfig(default_max=int(str(default_max_text).strip()), max_by_kind=caps),
            submission=SubmissionConfig(url=submission_url or None, timeout_s=float(str(timeout_text).strip())),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        # Surface actionable message
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "AutosaveConfig",
    "UnitsConfig",
    "SubmissionConfig",
    "DEFAULT_UNIT_CAPS",
    "load_config",
]
