"""Queue health models."""

from __future__ import annotations

from enum import Enum

from app.models.wire import CamelModel


class HealthStatus(str, Enum):
    CHECKING = "checking"
    OK = "ok"
    DEGRADED = "degraded"
    ERROR = "error"
    OFFLINE = "offline"


class ConnectionInfo(CamelModel):
    account_name: str | None = None
    queue_endpoint: str | None = None
    endpoint_suffix: str | None = None
    credential_type: str | None = None
    sas_permissions: str | None = None
    sas_services: str | None = None
    sas_resource_types: str | None = None


class StorageSnapshot(CamelModel):
    queue: str = ""
    connection_string_length: int = 0
    connection_string_preview: str | None = None
    connection_info: ConnectionInfo = ConnectionInfo()


class HealthDiagnostics(CamelModel):
    reason: str
    status_code: int | None = None
    message: str | None = None


class QueueHealthSnapshot(CamelModel):
    ok: bool
    queue_name: str | None = None
    approximate_message_count: int | None = None
    reason: str | None = None
    storage: StorageSnapshot | None = None
    diagnostics: HealthDiagnostics | None = None
