"""
Transaction entry point for ledger operations.

with_transaction() is the only way ledger code writes to the store.
fn receives a Transaction, may raise a LedgerError to abort without
writing anything, and may run more than once when its commit conflicts
with a concurrent writer.
"""

from typing import Awaitable, Callable, TypeVar

import structlog

from src.ledger.errors import LedgerError, TransactionFailed
from src.services.storage.interface import DocumentStore, StorageError, Transaction


T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def with_transaction(
    store: DocumentStore,
    fn: Callable[[Transaction], Awaitable[T]],
) -> T:
    """
    Run fn atomically against store.

    Raises:
        LedgerError: Whatever fn raised; nothing was written
        TransactionFailed: Storage failed or conflicts outlasted the retries
    """
    try:
        return await store.run_transaction(fn)
    except LedgerError:
        raise
    except StorageError as e:
        logger.error("transaction_failed", error=str(e), error_type=type(e).__name__)
        raise TransactionFailed(
            "Could not save your changes. Please try again.",
            cause=e,
        ) from e
