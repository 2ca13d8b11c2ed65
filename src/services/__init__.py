"""Services package."""

from src.services.attachments import (
    AttachmentError,
    AttachmentUploadError,
    AttachmentValidationError,
    CloudinaryAttachmentService,
)
from src.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DocumentDecodeError,
    DocumentStore,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    TransactionConflictError,
)

__all__ = [
    # Attachment services
    "AttachmentError",
    "AttachmentUploadError",
    "AttachmentValidationError",
    "CloudinaryAttachmentService",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DocumentDecodeError",
    "DocumentStore",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryAuditStorage",
    "InMemoryDocumentStore",
    "NotFoundError",
    "StorageError",
    "TransactionConflictError",
]
