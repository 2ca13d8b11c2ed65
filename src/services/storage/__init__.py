"""
Storage Services Package

Provides the transactional document store contract and its backends.
The in-memory backend is the default; Google Sheets is swappable in
through configuration.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DocumentDecodeError,
    DocumentSnapshot,
    DocumentStore,
    DuplicateError,
    NotFoundError,
    StorageError,
    Subscription,
    Transaction,
    TransactionConflictError,
)
from src.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from src.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)
from src.services.storage.paths import UserPaths

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Document",
    "DocumentSnapshot",
    "DocumentStore",
    "Subscription",
    "Transaction",
    "UserPaths",
    # Exceptions
    "ConnectionError",
    "DocumentDecodeError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "TransactionConflictError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
]
