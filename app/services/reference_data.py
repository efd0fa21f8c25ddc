"""Static reference lists (departments, business units) served with the manager list."""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEPARTMENTS_FILE = "departments.json"
BUSINESS_UNITS_FILE = "business-units.json"

_PROJECT_ROOT = Path(__file__).resolve().parents[2]


class ReferenceDataError(Exception):
    pass


class ReferenceDataService:
    def __init__(self, data_dir: str | None = None) -> None:
        candidates = [Path(data_dir).resolve()] if data_dir else []
        candidates += [Path.cwd() / "data", _PROJECT_ROOT / "data"]
        self.candidates = candidates

    def resolve_dir(self) -> Path:
        for candidate in self.candidates:
            if candidate.is_dir():
                return candidate
        raise ReferenceDataError(f"Data directory not found (tried {', '.join(map(str, self.candidates))})")

    def _read_list(self, path: Path) -> list[str]:
        try:
            values = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ReferenceDataError(f"Failed to read {path.name}: {e}") from e
        if not isinstance(values, list):
            raise ReferenceDataError(f"{path.name} must contain a JSON list")
        return [str(v) for v in values]

    def load(self) -> tuple[list[str], list[str]]:
        data_dir = self.resolve_dir()
        departments = self._read_list(data_dir / DEPARTMENTS_FILE)
        business_units = self._read_list(data_dir / BUSINESS_UNITS_FILE)
        logger.debug("Loaded %d departments and %d business units", len(departments), len(business_units))
        return departments, business_units
