"""Azure Storage queue gateway: envelope encoding, enqueue and health."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import parse_qs

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.storage.queue.aio import QueueClient
from pydantic import BaseModel

from app.models.health import ConnectionInfo, HealthDiagnostics, QueueHealthSnapshot, StorageSnapshot

logger = logging.getLogger(__name__)

MAX_MESSAGE_BYTES = 64 * 1024

REASON_MISSING_SETTINGS = "missing-storage-settings"
REASON_NOT_FOUND = "queue-not-found"
REASON_CONNECTION_FAILED = "queue-connection-failed"


class QueueError(Exception):
    pass


class MessageTooLargeError(QueueError):
    def __init__(self, size: int) -> None:
        super().__init__(f"Message too large: {size} bytes encoded (max {MAX_MESSAGE_BYTES})")
        self.size = size


class QueueUnavailableError(QueueError):
    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason


def check_message_size(encoded: str) -> str:
    size = len(encoded.encode("ascii"))
    if size > MAX_MESSAGE_BYTES:
        raise MessageTooLargeError(size)
    return encoded


def encode_message(envelope: BaseModel | Mapping[str, Any]) -> str:
    """Serialize an envelope to compact JSON, base64 it and enforce the size cap."""
    if isinstance(envelope, BaseModel):
        payload: Any = envelope.model_dump(mode="json", by_alias=True)
    else:
        payload = dict(envelope)
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return check_message_size(base64.b64encode(raw).decode("ascii"))


def decode_message(encoded: str) -> dict[str, Any]:
    return json.loads(base64.b64decode(encoded).decode("utf-8"))


def parse_connection_info(conn: str) -> ConnectionInfo:
    if not conn:
        return ConnectionInfo()

    parts: dict[str, str] = {}
    for pair in conn.split(";"):
        key, sep, value = pair.partition("=")
        if sep:
            parts[key] = value

    sas = parts.get("SharedAccessSignature", "")
    params = parse_qs(sas.removeprefix("?")) if sas else {}

    def _first(name: str) -> str | None:
        values = params.get(name)
        return values[0] if values else None

    credential_type = "accountKey" if parts.get("AccountKey") else "sas" if sas else None
    return ConnectionInfo(
        account_name=parts.get("AccountName"),
        queue_endpoint=parts.get("QueueEndpoint"),
        endpoint_suffix=parts.get("EndpointSuffix"),
        credential_type=credential_type,
        sas_permissions=_first("sp"),
        sas_services=_first("ss"),
        sas_resource_types=_first("srt"),
    )


def redact(text: str | None, conn: str) -> str | None:
    if not text:
        return None
    if not conn:
        return text
    return text.replace(conn, "[redacted-connection-string]")


def storage_snapshot(conn: str, queue: str) -> StorageSnapshot:
    return StorageSnapshot(
        queue=queue,
        connection_string_length=len(conn),
        connection_string_preview=f"{conn[:6]}...{conn[-4:]}" if conn else None,
        connection_info=parse_connection_info(conn),
    )


class QueueGateway:
    def __init__(
        self,
        connection_string: str,
        queue_name: str,
        *,
        timeout: float = 10.0,
        client_factory: Callable[[str, str], QueueClient] = QueueClient.from_connection_string,
    ) -> None:
        self.connection_string = connection_string
        self.queue_name = queue_name.lower()
        self.timeout = timeout
        self._client_factory = client_factory
        self._client: QueueClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.connection_string and self.queue_name)

    def _get_client(self) -> QueueClient:
        if not self.configured:
            raise QueueUnavailableError(REASON_MISSING_SETTINGS, "Storage not configured")
        if self._client is None:
            self._client = self._client_factory(self.connection_string, self.queue_name)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def _bounded(self, awaitable: Any, label: str) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Queue {label} timed out after {self.timeout}s") from e

    async def ensure_queue(self) -> None:
        client = self._get_client()
        try:
            await self._bounded(client.create_queue(), "create")
            logger.info("Created queue %s", self.queue_name)
        except ResourceExistsError:
            pass

    async def send(self, envelope: BaseModel | Mapping[str, Any]) -> str:
        message = encode_message(envelope)
        client = self._get_client()
        sent = await self._bounded(client.send_message(message), "send")
        return sent.id

    async def health(self) -> QueueHealthSnapshot:
        conn = self.connection_string
        storage = storage_snapshot(conn, self.queue_name)

        if not self.configured:
            return QueueHealthSnapshot(ok=False, reason=REASON_MISSING_SETTINGS, storage=storage)

        try:
            props = await self._bounded(self._get_client().get_queue_properties(), "properties")
        except ResourceNotFoundError:
            return QueueHealthSnapshot(ok=False, queue_name=self.queue_name, reason=REASON_NOT_FOUND, storage=storage)
        except Exception as e:
            reason = getattr(e, "error_code", None) or REASON_CONNECTION_FAILED
            message = redact(getattr(e, "message", None) or str(e), conn)
            logger.error("Queue health check failed: %s %s", reason, message)
            return QueueHealthSnapshot(
                ok=False,
                queue_name=self.queue_name,
                reason=str(reason),
                storage=storage,
                diagnostics=HealthDiagnostics(
                    reason=str(reason),
                    status_code=getattr(e, "status_code", None),
                    message=message,
                ),
            )

        return QueueHealthSnapshot(
            ok=True,
            queue_name=props.name or self.queue_name,
            approximate_message_count=props.approximate_message_count,
            storage=storage,
        )
