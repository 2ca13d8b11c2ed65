"""
In-Memory Storage Implementation

Process-local backends that follow the same contracts as the Google Sheets
ones. Used by the test suite and by the default development configuration.

Commit protocol: under one lock, every version the transaction read is
compared with the current one; any difference is a conflict. Otherwise all
writes are applied and each written document gets a fresh version.
"""

import asyncio
import copy
from typing import Callable, Hashable, Optional
from datetime import datetime

from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    Document,
    DocumentSnapshot,
    DocumentStore,
    Transaction,
    TransactionConflictError,
    parent_path,
)


ABSENT_VERSION = 0


class InMemoryDocumentStore(DocumentStore):
    """Document store held in a dict, with optimistic concurrency control."""

    def __init__(
        self,
        max_attempts: int = 5,
        retry_wait_seconds: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(
            max_attempts=max_attempts,
            retry_wait_seconds=retry_wait_seconds,
            clock=clock,
        )
        self._documents: dict[str, Document] = {}
        self._versions: dict[str, int] = {}
        self._sequence = 0
        self._lock = asyncio.Lock()

    async def get(self, path: str) -> Optional[Document]:
        data = self._documents.get(path)
        return copy.deepcopy(data) if data is not None else None

    async def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        return [
            DocumentSnapshot(path=path, data=copy.deepcopy(data))
            for path, data in self._documents.items()
            if parent_path(path) == collection
        ]

    async def _read_versioned(self, path: str) -> tuple[Optional[Document], Hashable]:
        # Yield like a remote read would, so concurrent transactions interleave
        await asyncio.sleep(0)
        data = self._documents.get(path)
        version = self._versions.get(path, ABSENT_VERSION)
        return (copy.deepcopy(data) if data is not None else None), version

    async def _commit(self, tx: Transaction) -> None:
        async with self._lock:
            for path, version in tx.read_versions.items():
                if self._versions.get(path, ABSENT_VERSION) != version:
                    raise TransactionConflictError(
                        f"Document changed during transaction: {path}"
                    )

            for path, data in tx.writes.items():
                if data is None:
                    self._documents.pop(path, None)
                    self._versions.pop(path, None)
                else:
                    self._sequence += 1
                    self._documents[path] = copy.deepcopy(data)
                    self._versions[path] = self._sequence


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if user_id is None or e.user_id == user_id]
        # Stable sort keeps insertion order for equal timestamps
        events = sorted(enumerate(events), key=lambda pair: (pair[1].timestamp, pair[0]), reverse=True)
        return [event for _, event in events[:limit]]
