"""Draft onboarding entries kept in the local draft store."""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from app.models.wire import CamelModel

CURRENT_DRAFT_SCHEMA = 4


class DraftMeta(CamelModel):
    saved_at: str | None = None
    submitted_at: str | None = None
    schema_version: int = Field(default=3, alias="schema")


class DraftForm(CamelModel):
    """Editable fields of an onboarding entry, as typed into the form."""

    first_name: str = ""
    last_name: str = ""
    title: str = ""
    department: str = ""
    business_unit: str = ""
    full_time: bool = True
    start_date: str | None = None
    manager_id: str = ""
    manager_upn: str | None = None
    manager_name: str | None = None

    @field_validator("full_time", mode="before")
    @classmethod
    def _default_full_time(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else True

    @field_validator("manager_upn", "manager_name", "start_date", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def field_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if len(self.first_name.strip()) < 2:
            errors["firstName"] = "First name is required"
        if len(self.last_name.strip()) < 2:
            errors["lastName"] = "Last name is required"
        if len(self.title.strip()) < 2:
            errors["title"] = "Title is required"
        if not self.department:
            errors["department"] = "Department is required"
        if not self.business_unit:
            errors["businessUnit"] = "Business Unit is required"
        if not self.manager_id:
            errors["manager"] = "Select a manager from the list"
        return errors


class DraftEntry(DraftForm):
    """A saved draft; unknown keys from other schema versions are preserved."""

    model_config = ConfigDict(extra="allow")

    id: str
    meta: DraftMeta = Field(default_factory=DraftMeta, alias="_meta")

    @property
    def submitted(self) -> bool:
        return self.meta.submitted_at is not None
