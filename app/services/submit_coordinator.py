"""Bulk submission of draft entries to the queue in bounded batches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from app.models.submission import AcceptedItem, FailedItem, SubmitResult
from app.services.directory_cache import DirectoryCache
from app.services.envelopes import build_entry_envelope, utc_timestamp
from app.services.queue_gateway import QueueGateway

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

T = TypeVar("T")


def batched(items: Sequence[T], size: int) -> list[list[T]]:
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BulkSubmitCoordinator:
    def __init__(
        self,
        gateway: QueueGateway,
        directory_cache: DirectoryCache | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        format_start_date: bool = True,
        timestamp: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.gateway = gateway
        self.directory_cache = directory_cache
        self.batch_size = batch_size
        self.format_start_date = format_start_date
        self._timestamp = timestamp

    async def _submit_one(
        self,
        entry: Mapping[str, Any],
        entry_id: str,
        submitted_at: str,
    ) -> AcceptedItem | FailedItem:
        lookup = self.directory_cache.find if self.directory_cache is not None else None
        try:
            envelope = build_entry_envelope(
                entry,
                entry_id,
                submitted_at,
                lookup,
                format_dates=self.format_start_date,
            )
            message_id = await self.gateway.send(envelope)
        except Exception as e:
            logger.warning("Entry %s failed to enqueue: %s", entry_id, e)
            return FailedItem(id=entry_id)
        return AcceptedItem(id=entry_id, message_id=message_id)

    async def submit(self, entries: Sequence[Mapping[str, Any]]) -> SubmitResult:
        """Enqueue every entry once; a failing entry never affects its siblings."""
        await self.gateway.ensure_queue()
        submitted_at = self._timestamp()

        keyed = [(entry, str(entry.get("id") or f"no-id-{index}")) for index, entry in enumerate(entries)]
        batches = batched(keyed, self.batch_size)

        accepted: list[AcceptedItem] = []
        failed: list[FailedItem] = []
        for batch_idx, batch in enumerate(batches):
            outcomes = await asyncio.gather(
                *(self._submit_one(entry, entry_id, submitted_at) for entry, entry_id in batch)
            )
            for outcome in outcomes:
                if isinstance(outcome, AcceptedItem):
                    accepted.append(outcome)
                else:
                    failed.append(outcome)
            logger.debug("Batch %d/%d settled (%d entries)", batch_idx + 1, len(batches), len(batch))

        logger.info("Bulk submit: %d accepted, %d failed", len(accepted), len(failed))
        return SubmitResult(
            ok=not failed,
            submitted_at=submitted_at,
            accepted=accepted,
            failed=failed,
        )
