"""Queue envelopes and submission request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from app.models.wire import CamelModel

ENVELOPE_SCHEMA = 1


class ManagerRef(CamelModel):
    id: str | None = None
    upn: str | None = None
    name: str | None = None


class EntryEnvelope(CamelModel):
    type: Literal["employee.entry"] = "employee.entry"
    schema_version: int = Field(default=ENVELOPE_SCHEMA, alias="schema")
    submitted_at: str
    id: str
    data: dict[str, Any]
    manager: ManagerRef | None = None


class TerminationEnvelope(CamelModel):
    type: Literal["employee.termination"] = "employee.termination"
    schema_version: int = Field(default=ENVELOPE_SCHEMA, alias="schema")
    submitted_at: str
    requested_by: str | None = None
    employee: str
    manager: ManagerRef | None = None
    notes: str | None = None


class SubmitAllRequest(CamelModel):
    entries: list[dict[str, Any]] = []


class AcceptedItem(CamelModel):
    id: str
    message_id: str


class FailedItem(CamelModel):
    id: str


class SubmitResult(CamelModel):
    ok: bool
    submitted_at: str
    accepted: list[AcceptedItem] = []
    failed: list[FailedItem] = []


class OffboardRequest(CamelModel):
    employee: str = ""
    manager_id: str = ""
    manager_upn: str = ""
    manager_name: str = ""
    notes: str | None = None


class OffboardResponse(CamelModel):
    ok: bool = True
    submitted_at: str
    message_id: str
