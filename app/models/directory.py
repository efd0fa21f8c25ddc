"""Directory models for managers resolved from Microsoft Graph."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from app.models.wire import CamelModel


class Manager(BaseModel):
    """A manager as exposed to the portal; immutable once built."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    upn: str | None = None
    title: str = "Unknown"
    department: str = "Unknown"


class DirectoryCacheEntry(BaseModel):
    fetched_at: float
    managers: list[Manager] = []


class GroupSampleUser(BaseModel):
    id: str
    name: str | None = None
    title: str | None = None
    dept: str | None = None


class GroupSummary(CamelModel):
    ok: bool = True
    group_id: str
    direct_count: int | None = None
    transitive_count: int | None = None
    sample_users: list[GroupSampleUser] = []
    notes: str = (
        "If counts > 0 but sampleUsers empty/null fields, add User.Read.All; "
        "for hidden membership, add Member.Read.Hidden."
    )


class ListsResponse(CamelModel):
    ok: bool = True
    departments: list[str] = []
    business_units: list[str] = []
    managers: list[Manager] = []
