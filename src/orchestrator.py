"""
Main Orchestrator for Wallet Ledger

This module ties together all the components and defines the
end-to-end flow for saving an expense:
    attachments -> validate -> coordinator (balance + record) -> audit

DESIGN DECISION: The orchestrator enforces the boundaries:
- No expense is saved while validation reports errors
- No balance moves outside the TransactionCoordinator
- Every step is audited

Obligations and summaries need no extra glue; the UI calls the
ObligationTracker and SummaryAggregator directly.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.config import Settings, get_settings
from src.ledger import (
    BalanceLedger,
    ExpenseRecordStore,
    ObligationTracker,
    TransactionCoordinator,
)
from src.models.expense import Expense, ExpenseDraft
from src.models.validation import ValidationResult
from src.queries import SummaryAggregator
from src.services.attachments import (
    AttachmentUploadError,
    AttachmentValidationError,
    CloudinaryAttachmentService,
)
from src.services.storage import (
    AuditStorageInterface,
    DocumentStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryAuditStorage,
    InMemoryDocumentStore,
)
from src.validation import ExpenseValidator


logger = structlog.get_logger(__name__)


class ExpenseFlow:
    """
    Orchestrates saving, editing and deleting an expense.

    Flow:
    1. Upload attachments → hosted URLs
    2. Validate → semantic checks on the draft
    3. Save → TransactionCoordinator (balance and record together)

    A draft with validation errors never reaches step 3.
    """

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        validator: Optional[ExpenseValidator] = None,
        attachment_service: Optional[CloudinaryAttachmentService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._coordinator = coordinator
        self._validator = validator or ExpenseValidator()
        self._attachment_service = attachment_service
        self._audit_logger = audit_logger

    async def upload_attachment(
        self,
        user_id: str,
        file_bytes: bytes,
        filename: str,
        mime_type: str,
    ) -> str:
        """
        Host one attachment and return its URL.

        Raises:
            AttachmentValidationError: File too large or of the wrong type
            AttachmentUploadError: The host failed
        """
        if self._attachment_service is None:
            self._attachment_service = CloudinaryAttachmentService()

        try:
            url = await self._attachment_service.upload(file_bytes, filename, mime_type)
        except AttachmentValidationError as e:
            if self._audit_logger:
                await self._audit_logger.log_attachment_rejected(
                    user_id=user_id,
                    filename=filename,
                    reason=str(e),
                )
            raise
        except AttachmentUploadError as e:
            if self._audit_logger:
                await self._audit_logger.log_external_service_error(
                    service="cloudinary",
                    error_message=str(e),
                    user_id=user_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_attachment_uploaded(
                user_id=user_id,
                filename=filename,
                url=url,
                file_size=len(file_bytes),
            )
        return url

    def validate(
        self,
        draft: ExpenseDraft,
        today: Optional[date] = None,
    ) -> tuple[ValidationResult, str]:
        """
        Validate a draft.

        Returns:
            (validation_result, user_message)
        """
        result = self._validator.validate(draft, today=today)
        return result, self._validator.get_user_friendly_summary(result)

    async def save_expense(
        self,
        user_id: str,
        draft: ExpenseDraft,
        expense_id: Optional[str] = None,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Expense], ValidationResult]:
        """
        Validate and save a new expense, or an edit when expense_id is given.

        Returns:
            (saved_expense, validation_result); saved_expense is None when
            validation reported errors

        Raises:
            LedgerError: Whatever the coordinator refused
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._validator.validate(draft, today=today)

        if not result.is_valid:
            if self._audit_logger:
                await self._audit_logger.log_expense_rejected(
                    user_id=user_id,
                    operation="update" if expense_id else "create",
                    error_code="ValidationFailed",
                    error_message="; ".join(issue.message for issue in result.errors),
                    correlation_id=correlation_id,
                    expense_id=expense_id,
                )
            return None, result

        if expense_id:
            expense = await self._coordinator.update_expense(
                user_id, expense_id, draft, correlation_id=correlation_id
            )
        else:
            expense = await self._coordinator.create_expense(
                user_id, draft, correlation_id=correlation_id
            )
        return expense, result

    async def delete_expense(self, user_id: str, expense_id: str) -> Expense:
        return await self._coordinator.delete_expense(user_id, expense_id)


@dataclass
class AppComponents:
    """Everything the front end needs, wired to one document store."""

    store: DocumentStore
    audit_storage: AuditStorageInterface
    audit_logger: AuditLogger
    balances: BalanceLedger
    expenses: ExpenseRecordStore
    coordinator: TransactionCoordinator
    obligations: ObligationTracker
    summaries: SummaryAggregator
    expense_flow: ExpenseFlow
    sheets_client: Optional[GoogleSheetsClient] = None


def _memory_backends(settings: Settings) -> tuple[DocumentStore, AuditStorageInterface]:
    app = settings.app
    store = InMemoryDocumentStore(
        max_attempts=app.transaction_max_attempts,
        retry_wait_seconds=app.transaction_retry_wait_seconds,
    )
    return store, InMemoryAuditStorage()


def create_app_components(
    use_storage: bool = True,
    settings: Optional[Settings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False to force in-memory storage.
        settings: Settings to use instead of the cached ones

    Returns:
        AppComponents sharing one store and one audit logger
    """
    settings = settings or get_settings()
    app = settings.app
    sheets_client = None

    if use_storage and app.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient(settings.google_sheets)
            store = GoogleSheetsDocumentStore(
                sheets_client,
                max_attempts=app.transaction_max_attempts,
                retry_wait_seconds=app.transaction_retry_wait_seconds,
            )
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e), fallback="memory")
            sheets_client = None
            store, audit_storage = _memory_backends(settings)
    else:
        store, audit_storage = _memory_backends(settings)

    audit_logger = AuditLogger(audit_storage)
    balances = BalanceLedger(store, audit_logger)
    expenses = ExpenseRecordStore(store)
    coordinator = TransactionCoordinator(store, balances, expenses, audit_logger)

    return AppComponents(
        store=store,
        audit_storage=audit_storage,
        audit_logger=audit_logger,
        balances=balances,
        expenses=expenses,
        coordinator=coordinator,
        obligations=ObligationTracker(store, audit_logger),
        summaries=SummaryAggregator(expenses),
        expense_flow=ExpenseFlow(
            coordinator,
            validator=ExpenseValidator(app),
            audit_logger=audit_logger,
        ),
        sheets_client=sheets_client,
    )
