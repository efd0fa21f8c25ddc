"""Local draft store for onboarding entries that have not been accepted yet."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from app.models.drafts import CURRENT_DRAFT_SCHEMA, DraftEntry, DraftForm
from app.services.envelopes import utc_timestamp

logger = logging.getLogger(__name__)

STORAGE_KEY = "emp_entries_v1"


def _item_id(item: Any) -> str | None:
    return item.get("id") if isinstance(item, dict) else None


class DraftValidationError(Exception):
    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{field}: {message}" for field, message in errors.items()))
        self.errors = errors


class DraftStore:
    """JSON-file backed collection of draft entries, keyed by client-generated id.

    Records written by older schema versions are loaded with missing fields
    defaulted. Items that fail validation are skipped on read but kept on
    disk. Entries leave the store only through ``delete``, ``clear`` or
    ``remove`` (the latter after the backend accepted them).
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        clock: Callable[[], str] = utc_timestamp,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.path = Path(directory) / f"{STORAGE_KEY}.json"
        self._clock = clock
        self._id_factory = id_factory

    def _read_raw(self) -> list[Any]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Draft store %s unreadable, starting empty: %s", self.path, e)
            return []
        return raw if isinstance(raw, list) else []

    def entries(self) -> list[DraftEntry]:
        entries: list[DraftEntry] = []
        for item in self._read_raw():
            try:
                entries.append(DraftEntry.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping unreadable draft entry: %s", e.errors()[0]["msg"])
        return entries

    def _write(self, items: Iterable[Any]) -> None:
        payload = list(items)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".drafts-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, entry_id: str) -> DraftEntry | None:
        return next((e for e in self.entries() if e.id == entry_id), None)

    def save(self, form: DraftForm, entry_id: str | None = None) -> DraftEntry:
        errors = form.field_errors()
        if errors:
            raise DraftValidationError(errors)

        now = self._clock()
        raw = self._read_raw()
        fields = form.model_dump(by_alias=True)

        # unreadable items are written back untouched
        for index, item in enumerate(raw):
            if entry_id and _item_id(item) == entry_id:
                meta = item.get("_meta")
                meta = {**(meta if isinstance(meta, dict) else {}), "savedAt": now, "schema": CURRENT_DRAFT_SCHEMA}
                updated = DraftEntry.model_validate({**item, **fields, "id": entry_id, "_meta": meta})
                raw[index] = {**updated.model_dump(mode="json", by_alias=True), "_meta": meta}
                self._write(raw)
                return updated

        created = DraftEntry.model_validate(
            {
                **fields,
                "id": entry_id or self._id_factory(),
                "_meta": {"savedAt": now, "submittedAt": None, "schema": CURRENT_DRAFT_SCHEMA},
            }
        )
        raw.append(created.model_dump(mode="json", by_alias=True))
        self._write(raw)
        return created

    def delete(self, entry_id: str) -> bool:
        return self.remove([entry_id]) == 1

    def remove(self, entry_ids: Iterable[str]) -> int:
        doomed = set(entry_ids)
        raw = self._read_raw()
        kept = [item for item in raw if _item_id(item) not in doomed]
        if len(kept) != len(raw):
            self._write(kept)
        return len(raw) - len(kept)

    def clear(self) -> None:
        self._write([])

    def unsubmitted_count(self) -> int:
        return sum(1 for e in self.entries() if not e.submitted)
