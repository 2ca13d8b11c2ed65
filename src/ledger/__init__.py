"""
Wallet ledger package.

Keeps payment source balances consistent with the expenses charged to
them, and tracks advances and refunds alongside.
"""

from src.ledger.balances import BalanceLedger
from src.ledger.coordinator import TransactionCoordinator, resolve_source
from src.ledger.errors import (
    ExpenseNotFound,
    InsufficientFunds,
    LedgerError,
    MissingSourceSelection,
    ObligationNotFound,
    RecordNotFound,
    SourceNotFound,
    TransactionFailed,
)
from src.ledger.expenses import ExpenseRecordStore
from src.ledger.obligations import ObligationTracker
from src.ledger.transaction import with_transaction

__all__ = [
    # Components
    "BalanceLedger",
    "ExpenseRecordStore",
    "ObligationTracker",
    "TransactionCoordinator",
    "resolve_source",
    "with_transaction",
    # Errors
    "ExpenseNotFound",
    "InsufficientFunds",
    "LedgerError",
    "MissingSourceSelection",
    "ObligationNotFound",
    "RecordNotFound",
    "SourceNotFound",
    "TransactionFailed",
]
