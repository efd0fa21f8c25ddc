"""Entry normalization and queue envelope builders."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from app.models.directory import Manager
from app.models.submission import EntryEnvelope, ManagerRef, TerminationEnvelope

logger = logging.getLogger(__name__)

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

ManagerLookup = Callable[[str], Manager | None]


def utc_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_start_date(value: str) -> str:
    """Render an ISO date as ``Jan05,2024`` (UTC). Unparseable values pass through."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Leaving unparseable start date %r as-is", value)
        return value

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return f"{MONTH_ABBR[parsed.month - 1]}{parsed.day:02d},{parsed.year}"


def manager_ref(manager_id: str | None, upn: str | None, name: str | None) -> ManagerRef | None:
    if not (manager_id or upn or name):
        return None
    return ManagerRef(id=manager_id or None, upn=upn or None, name=name or None)


def normalize_entry(
    entry: Mapping[str, Any],
    lookup: ManagerLookup | None = None,
    *,
    format_dates: bool = True,
) -> dict[str, Any]:
    """Return the wire ``data`` payload for one draft entry.

    ``managerName`` is display-only and is carried in the envelope's ``manager``
    block instead. A missing ``managerUpn`` is filled from ``lookup`` when the
    manager is known; unknown managers leave it null.
    """
    data = {k: v for k, v in entry.items() if k != "managerName"}

    manager_id = data.get("managerId")
    if not data.get("managerUpn"):
        manager = lookup(manager_id) if manager_id and lookup is not None else None
        data["managerUpn"] = manager.upn if manager is not None else None

    if not isinstance(data.get("fullTime"), bool):
        data["fullTime"] = True

    start_date = data.get("startDate")
    if format_dates and isinstance(start_date, str) and start_date.strip():
        data["startDate"] = format_start_date(start_date)

    return data


def build_entry_envelope(
    entry: Mapping[str, Any],
    entry_id: str,
    submitted_at: str,
    lookup: ManagerLookup | None = None,
    *,
    format_dates: bool = True,
) -> EntryEnvelope:
    data = normalize_entry(entry, lookup, format_dates=format_dates)
    data["id"] = entry_id

    name = entry.get("managerName")
    if not name and data.get("managerId") and lookup is not None:
        manager = lookup(data["managerId"])
        name = manager.name if manager else None

    return EntryEnvelope(
        submitted_at=submitted_at,
        id=entry_id,
        data=data,
        manager=manager_ref(data.get("managerId"), data.get("managerUpn"), name),
    )


def build_termination_envelope(
    employee: str,
    submitted_at: str,
    *,
    requested_by: str | None = None,
    manager_id: str = "",
    manager_upn: str = "",
    manager_name: str = "",
    notes: str | None = None,
) -> TerminationEnvelope:
    return TerminationEnvelope(
        submitted_at=submitted_at,
        requested_by=requested_by,
        employee=employee,
        manager=manager_ref(manager_id.strip(), manager_upn.strip(), manager_name.strip()),
        notes=(notes or "").strip() or None,
    )
