"""
Audit Logger

DESIGN DECISION: Every balance change in the system is logged.
This provides:
1. Complete traceability (every balance can be explained)
2. Debugging capability
3. User can see history of their ledger
4. Compliance readiness

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from src.models.wallet import BalanceMovement
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_source_changed(
        self,
        user_id: str,
        event_type: AuditEventType,
        source_type: str,
        source_id: str,
        name: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Log a payment source being added, edited, removed or set."""
        event = AuditEventBuilder.source_changed(
            user_id=user_id,
            event_type=event_type,
            source_type=source_type,
            source_id=source_id,
            name=name,
            details=details,
        )
        await self.log(event)

    async def log_expense_created(
        self,
        user_id: str,
        expense_id: str,
        amount: str,
        source_type: str,
        source_id: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_created(
            user_id=user_id,
            expense_id=expense_id,
            amount=amount,
            source_type=source_type,
            source_id=source_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_updated(
        self,
        user_id: str,
        expense_id: str,
        old_amount: str,
        new_amount: str,
        old_source: str,
        new_source: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_updated(
            user_id=user_id,
            expense_id=expense_id,
            old_amount=old_amount,
            new_amount=new_amount,
            old_source=old_source,
            new_source=new_source,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_deleted(
        self,
        user_id: str,
        expense_id: str,
        amount: str,
        source: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_deleted(
            user_id=user_id,
            expense_id=expense_id,
            amount=amount,
            source=source,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_expense_rejected(
        self,
        user_id: str,
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
        expense_id: Optional[str] = None,
    ) -> None:
        """Log an expense operation the ledger refused."""
        event = AuditEventBuilder.expense_rejected(
            user_id=user_id,
            operation=operation,
            error_code=error_code,
            error_message=error_message,
            correlation_id=correlation_id,
            expense_id=expense_id,
        )
        await self.log(event)

    async def log_balance_movements(
        self,
        user_id: str,
        movements: list[BalanceMovement],
        correlation_id: UUID,
    ) -> None:
        """Log every balance adjustment of one committed operation."""
        for movement in movements:
            await self.log(AuditEventBuilder.balance_adjusted(
                user_id=user_id,
                movement=movement,
                correlation_id=correlation_id,
            ))

    async def log_obligation_changed(
        self,
        user_id: str,
        event_type: AuditEventType,
        kind: str,
        obligation_id: str,
        name: str,
        amount: str,
    ) -> None:
        event = AuditEventBuilder.obligation_changed(
            user_id=user_id,
            event_type=event_type,
            kind=kind,
            obligation_id=obligation_id,
            name=name,
            amount=amount,
        )
        await self.log(event)

    async def log_attachment_uploaded(
        self,
        user_id: str,
        filename: str,
        url: str,
        file_size: int,
    ) -> None:
        event = AuditEventBuilder.attachment_uploaded(
            user_id=user_id,
            filename=filename,
            url=url,
            file_size=file_size,
        )
        await self.log(event)

    async def log_attachment_rejected(
        self,
        user_id: str,
        filename: str,
        reason: str,
    ) -> None:
        event = AuditEventBuilder.attachment_rejected(
            user_id=user_id,
            filename=filename,
            reason=reason,
        )
        await self.log(event)

    async def log_transaction_failed(
        self,
        user_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a compound operation that storage could not commit."""
        event = AuditEventBuilder.transaction_failed(
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            user_id=user_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving an expense).
    Pass it through all subsequent operations.
    """
    return uuid4()
