"""
Expense Record Store

Reads and writes expense documents. Holds no balance logic: the
transaction-scoped methods are called by the TransactionCoordinator,
which moves the payment source in the same transaction.
"""

from datetime import datetime, timezone
from typing import Optional

from src.ledger.errors import ExpenseNotFound
from src.models.expense import Expense, ExpenseDraft, ExpenseFilter
from src.models.wallet import SourceRef
from src.services.storage.codec import expense_from_document, expense_to_document
from src.services.storage.interface import DocumentStore, Transaction
from src.services.storage.paths import UserPaths


def _as_aware(value: datetime) -> datetime:
    """Dates without a zone are taken as entered, tagged UTC so they sort together."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _newest_first(expenses: list[Expense]) -> list[Expense]:
    return sorted(expenses, key=lambda e: (e.date, e.created_at), reverse=True)


class ExpenseRecordStore:
    """Expense documents of every user."""

    def __init__(self, store: DocumentStore):
        self._store = store

    # =========================================================================
    # TRANSACTION-SCOPED
    # =========================================================================

    async def get_for_update(self, tx: Transaction, user_id: str, expense_id: str) -> Expense:
        """
        Read an expense inside a transaction.

        Raises:
            ExpenseNotFound: If it does not exist (or was already deleted)
        """
        path = UserPaths(user_id).expense(expense_id)
        data = await tx.get(path)
        if data is None:
            raise ExpenseNotFound(expense_id)
        return expense_from_document(expense_id, data, path)

    def create(
        self,
        tx: Transaction,
        user_id: str,
        draft: ExpenseDraft,
        source: SourceRef,
    ) -> Expense:
        expense = Expense(
            id=self._store.new_id(),
            amount=draft.amount,
            currency=draft.currency,
            category=draft.category,
            purpose=draft.purpose,
            source=source,
            date=_as_aware(draft.date),
            attachments=list(draft.attachments),
            created_at=tx.timestamp,
            updated_at=tx.timestamp,
        )
        tx.set(UserPaths(user_id).expense(expense.id), expense_to_document(expense))
        return expense

    def update(
        self,
        tx: Transaction,
        user_id: str,
        old: Expense,
        draft: ExpenseDraft,
        source: SourceRef,
    ) -> Expense:
        """Overwrite every editable field; created_at is kept."""
        expense = Expense(
            id=old.id,
            amount=draft.amount,
            currency=draft.currency,
            category=draft.category,
            purpose=draft.purpose,
            source=source,
            date=_as_aware(draft.date),
            attachments=list(draft.attachments),
            created_at=old.created_at,
            updated_at=tx.timestamp,
        )
        tx.set(UserPaths(user_id).expense(expense.id), expense_to_document(expense))
        return expense

    def delete(self, tx: Transaction, user_id: str, expense: Expense) -> None:
        tx.delete(UserPaths(user_id).expense(expense.id))

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, user_id: str, expense_id: str) -> Optional[Expense]:
        path = UserPaths(user_id).expense(expense_id)
        data = await self._store.get(path)
        return expense_from_document(expense_id, data, path) if data is not None else None

    async def list(
        self,
        user_id: str,
        expense_filter: Optional[ExpenseFilter] = None,
    ) -> list[Expense]:
        """
        Expenses of a user, newest date first.

        Without a filter every expense is returned. With one, matching
        expenses are paged by its offset and limit.
        """
        snapshots = await self._store.list_documents(UserPaths(user_id).expenses)
        expenses = [
            expense_from_document(snap.id, snap.data, snap.path)
            for snap in snapshots
        ]
        if expense_filter is None:
            return _newest_first(expenses)

        matching = _newest_first([e for e in expenses if expense_filter.matches(e)])
        start = expense_filter.offset
        return matching[start:start + expense_filter.limit]
