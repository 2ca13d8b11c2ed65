"""
Audit Models for Wallet Ledger

Every balance change and every rejected operation is logged for audit purposes.
This provides:
1. A history that explains every balance
2. Debugging information when things go wrong
3. A record of what the user did and when

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.models.wallet import BalanceMovement


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Payment sources
    SOURCE_CREATED = "source_created"
    SOURCE_UPDATED = "source_updated"
    SOURCE_DELETED = "source_deleted"
    CASH_BALANCE_SET = "cash_balance_set"

    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"
    EXPENSE_REJECTED = "expense_rejected"
    BALANCE_ADJUSTED = "balance_adjusted"

    # Obligations
    ADVANCE_ADDED = "advance_added"
    ADVANCE_RETURNED = "advance_returned"
    REFUND_ADDED = "refund_added"
    REFUND_RECEIVED = "refund_received"
    OBLIGATION_UPDATED = "obligation_updated"
    OBLIGATION_DELETED = "obligation_deleted"

    # Attachments
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    ATTACHMENT_REJECTED = "attachment_rejected"

    # System events
    TRANSACTION_FAILED = "transaction_failed"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Whose ledger this is about
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the affected documents"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'bank', 'advance')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., an expense and its balance moves)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(user_id, expense_id, ...)
        event = AuditEventBuilder.balance_adjusted(user_id, movement, correlation_id)
    """

    @staticmethod
    def source_changed(
        user_id: str,
        event_type: AuditEventType,
        source_type: str,
        source_id: str,
        name: Optional[str],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        verb = {
            AuditEventType.SOURCE_CREATED: "added",
            AuditEventType.SOURCE_UPDATED: "updated",
            AuditEventType.SOURCE_DELETED: "removed",
            AuditEventType.CASH_BALANCE_SET: "set",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=source_type,
            entity_id=source_id,
            description=f"Payment source {verb}: {name or source_id}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def expense_created(
        user_id: str,
        expense_id: str,
        amount: str,
        source_type: str,
        source_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: ₹{amount} from {source_type}",
            details={
                "amount": amount,
                "source_type": source_type,
                "source_id": source_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_updated(
        user_id: str,
        expense_id: str,
        old_amount: str,
        new_amount: str,
        old_source: str,
        new_source: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense edited: ₹{old_amount} -> ₹{new_amount}",
            details={
                "old_amount": old_amount,
                "new_amount": new_amount,
                "old_source": old_source,
                "new_source": new_source,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        user_id: str,
        expense_id: str,
        amount: str,
        source: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense deleted: ₹{amount} returned to {source}",
            details={
                "amount": amount,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        user_id: str,
        operation: str,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
        expense_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Expense {operation} rejected: {error_code}",
            error_code=error_code,
            error_message=error_message,
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def balance_adjusted(
        user_id: str,
        movement: BalanceMovement,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            user_id=user_id,
            entity_type=movement.source.type.value,
            entity_id=movement.source.id,
            correlation_id=correlation_id,
            description=(
                f"{movement.source.type.label} moved "
                f"{movement.before} -> {movement.after} ({movement.action})"
            ),
            details={
                "action": movement.action,
                "amount": str(movement.amount),
                "before": str(movement.before),
                "after": str(movement.after),
            },
        )

    @staticmethod
    def obligation_changed(
        user_id: str,
        event_type: AuditEventType,
        kind: str,
        obligation_id: str,
        name: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type=kind,
            entity_id=obligation_id,
            description=f"{kind.capitalize()} {event_type.value.split('_')[-1]}: {name} ₹{amount}",
            details={
                "name": name,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def attachment_uploaded(
        user_id: str,
        filename: str,
        url: str,
        file_size: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOADED,
            user_id=user_id,
            entity_type="attachment",
            description=f"Attachment uploaded: {filename}",
            details={
                "filename": filename,
                "url": url,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def attachment_rejected(
        user_id: str,
        filename: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_REJECTED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="attachment",
            description=f"Attachment rejected: {filename}",
            error_message=reason,
            details={"filename": filename},
            is_user_action=True,
        )

    @staticmethod
    def transaction_failed(
        user_id: str,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction failed during {operation}",
            error_code="TransactionFailed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
        )
