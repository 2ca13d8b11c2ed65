"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract document store rather than binding
the ledger to one database. This allows us to:
1. Use Google Sheets as a zero-setup backend
2. Use in-memory storage for testing
3. Keep ledger rules decoupled from storage implementation

The contract every backend must honour:
- Documents are JSON-safe dicts addressed by slash-separated paths
- A transaction buffers its writes and commits them all or none
- A commit fails with TransactionConflictError if any document the
  transaction read has changed since; run_transaction() retries it
- Readers and subscribers only ever see committed state
"""

import copy
import inspect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Hashable, Optional, TypeVar, Union
from uuid import uuid4

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.audit import AuditEvent


Document = dict[str, Any]
T = TypeVar("T")

SubscriptionCallback = Callable[[list["DocumentSnapshot"]], Union[None, Awaitable[None]]]


def parent_path(path: str) -> str:
    """Collection that a document path belongs to."""
    return path.rsplit("/", 1)[0] if "/" in path else ""


@dataclass(frozen=True)
class DocumentSnapshot:
    """A committed document as seen by a reader."""

    path: str
    data: Document

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class Transaction:
    """
    Buffered read-modify-write unit.

    Reads go to the store (and are remembered with their version),
    writes stay in the buffer until the store commits them.
    Reading a path that was already written returns the buffered value.
    """

    def __init__(self, store: "DocumentStore", timestamp: datetime):
        self._store = store
        self.timestamp = timestamp
        self._read_versions: dict[str, Hashable] = {}
        self._read_cache: dict[str, Optional[Document]] = {}
        self._writes: dict[str, Optional[Document]] = {}

    async def get(self, path: str) -> Optional[Document]:
        if path in self._writes:
            data = self._writes[path]
        else:
            if path not in self._read_cache:
                data, version = await self._store._read_versioned(path)
                self._read_versions[path] = version
                self._read_cache[path] = data
            data = self._read_cache[path]
        return copy.deepcopy(data) if data is not None else None

    def set(self, path: str, data: Document) -> None:
        """Create or overwrite a document."""
        self._writes[path] = copy.deepcopy(data)

    def update(self, path: str, fields: Document) -> None:
        """Merge fields into a document this transaction has already read."""
        if path in self._writes:
            current = self._writes[path]
        else:
            current = self._read_cache.get(path)
        if current is None:
            raise NotFoundError(f"Cannot update missing or unread document: {path}")
        merged = copy.deepcopy(current)
        merged.update(copy.deepcopy(fields))
        self._writes[path] = merged

    def delete(self, path: str) -> None:
        self._writes[path] = None

    @property
    def read_versions(self) -> dict[str, Hashable]:
        return dict(self._read_versions)

    @property
    def writes(self) -> dict[str, Optional[Document]]:
        return dict(self._writes)


class Subscription:
    """Live view of one collection. Call cancel() to stop receiving updates."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        callback: SubscriptionCallback,
    ):
        self._store = store
        self.collection = collection
        self._callback = callback

    async def deliver(self, snapshots: list[DocumentSnapshot]) -> None:
        result = self._callback(snapshots)
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        self._store._remove_subscription(self)


class DocumentStore(ABC):
    """
    Abstract transactional document store.

    Subclasses provide reads, versioned reads and an atomic commit.
    Retrying, timestamps and subscriptions are shared here.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        retry_wait_seconds: float = 0.05,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._max_attempts = max_attempts
        self._retry_wait_seconds = retry_wait_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._subscriptions: list[Subscription] = []
        self._logger = structlog.get_logger(__name__)

    def now(self) -> datetime:
        """Store-side clock used for createdAt/updatedAt/lastUpdated."""
        return self._clock()

    def new_id(self) -> str:
        return uuid4().hex

    @abstractmethod
    async def get(self, path: str) -> Optional[Document]:
        """
        Read one committed document.

        Returns:
            The document data, or None if it does not exist
        """
        pass

    @abstractmethod
    async def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        """
        List committed documents directly inside a collection.

        Args:
            collection: Collection path, e.g. 'users/u1/expenses'
        """
        pass

    @abstractmethod
    async def _read_versioned(self, path: str) -> tuple[Optional[Document], Hashable]:
        """Read a document together with a version token (absent documents included)."""
        pass

    @abstractmethod
    async def _commit(self, tx: Transaction) -> None:
        """
        Apply every buffered write of tx atomically.

        Raises:
            TransactionConflictError: If a document tx read has changed
            StorageError: If the backend fails
        """
        pass

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run fn inside a transaction and commit its writes.

        fn may run more than once: a conflicting commit is retried from
        scratch. Any exception raised by fn aborts without writing.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._retry_wait_seconds, max=2),
            retry=retry_if_exception_type(TransactionConflictError),
            before_sleep=self._log_conflict,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                tx = Transaction(self, self.now())
                result = await fn(tx)
                if tx.writes:
                    await self._commit(tx)

        await self._notify(tx.writes.keys())
        return result

    def _log_conflict(self, retry_state) -> None:
        self._logger.warning(
            "transaction_conflict_retry",
            attempt=retry_state.attempt_number,
            max_attempts=self._max_attempts,
        )

    async def subscribe(
        self,
        collection: str,
        callback: SubscriptionCallback,
    ) -> Subscription:
        """
        Watch a collection.

        The callback gets the current documents right away and again
        after every commit that writes into the collection.
        """
        subscription = Subscription(self, collection, callback)
        self._subscriptions.append(subscription)
        await subscription.deliver(await self.list_documents(collection))
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    async def _notify(self, changed_paths) -> None:
        collections = {parent_path(path) for path in changed_paths}
        for subscription in list(self._subscriptions):
            if subscription.collection not in collections:
                continue
            try:
                await subscription.deliver(
                    await self.list_documents(subscription.collection)
                )
            except Exception as e:
                # The commit already happened; a broken listener must not
                # turn it into a reported failure.
                self._logger.error(
                    "subscription_callback_failed",
                    collection=subscription.collection,
                    error=str(e),
                )


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one expense edit).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'expense', 'bank')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return
            user_id: Only events for this user, if given

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """The same document path is stored more than once."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class TransactionConflictError(StorageError):
    """A document read by the transaction changed before it could commit."""
    pass


class DocumentDecodeError(StorageError):
    """A stored document does not match the expected schema."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Invalid document at {path}: {reason}")
