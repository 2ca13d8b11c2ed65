"""
Ledger errors.

Every failure the ledger reports to a caller is a LedgerError. Messages
are written for the user; the attributes carry the details for code.
"""

from decimal import Decimal
from typing import Optional

from src.models.wallet import PaymentSourceType, SourceRef


class LedgerError(Exception):
    """Base exception for ledger operations."""

    code = "LedgerError"


class InsufficientFunds(LedgerError):
    """A bank account or the cash wallet would go below zero."""

    code = "InsufficientFunds"

    def __init__(self, source: SourceRef, available: Decimal, requested: Decimal):
        self.source = source
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient funds in {source.type.label.lower()}: "
            f"available {available}, requested {requested}"
        )


class MissingSourceSelection(LedgerError):
    """A bank account or credit card was chosen but not which one."""

    code = "MissingSourceSelection"

    def __init__(self, source_type: PaymentSourceType):
        self.source_type = source_type
        super().__init__(f"Please select a {source_type.label.lower()}")


class RecordNotFound(LedgerError):
    """A referenced document does not exist."""

    code = "RecordNotFound"
    kind = "Record"

    def __init__(self, record_id: str, message: Optional[str] = None):
        self.record_id = record_id
        super().__init__(message or f"{self.kind} not found: {record_id}")


class SourceNotFound(RecordNotFound):
    code = "SourceNotFound"

    def __init__(self, source: SourceRef):
        self.source = source
        super().__init__(
            source.id,
            f"{source.type.label} not found: {source.id}",
        )


class ExpenseNotFound(RecordNotFound):
    code = "ExpenseNotFound"
    kind = "Expense"


class ObligationNotFound(RecordNotFound):
    code = "ObligationNotFound"
    kind = "Obligation"


class TransactionFailed(LedgerError):
    """Storage could not commit the operation. Nothing was changed."""

    code = "TransactionFailed"

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        super().__init__(message)
