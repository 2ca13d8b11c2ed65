"""
Transaction Coordinator

Every expense write is a compound operation: the expense document and
its payment source change together or not at all.

Create:  charge the source, insert the expense.
Update:  refund the old source, charge the new one, overwrite the expense.
         When the source is unchanged the two steps become one net delta.
Delete:  refund the source, remove the expense.

Each runs as a single store transaction through with_transaction(), so a
failure at any step (InsufficientFunds on the new source, a missing
source, a storage error) leaves every document as it was.
"""

from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.ledger.balances import BalanceLedger
from src.ledger.errors import LedgerError, MissingSourceSelection, TransactionFailed
from src.ledger.expenses import ExpenseRecordStore
from src.ledger.transaction import with_transaction
from src.models.expense import Expense, ExpenseDraft
from src.models.wallet import (
    BalanceMovement,
    BankSource,
    CashSource,
    CreditCardSource,
    PaymentSourceType,
    SourceRef,
    charge_delta,
    refund_delta,
)
from src.services.storage.interface import DocumentStore, Transaction


T = TypeVar("T")


def resolve_source(
    source_type: PaymentSourceType,
    source_id: Optional[str],
) -> SourceRef:
    """
    Turn the form's (type, id) pair into a source reference.

    Raises:
        MissingSourceSelection: If a bank or card was chosen without an id
    """
    if source_type is PaymentSourceType.CASH:
        return CashSource()
    if not source_id:
        raise MissingSourceSelection(source_type)
    if source_type is PaymentSourceType.BANK:
        return BankSource(id=source_id)
    return CreditCardSource(id=source_id)


def describe_source(source: SourceRef) -> str:
    if source.type is PaymentSourceType.CASH:
        return source.type.value
    return f"{source.type.value}:{source.id}"


class TransactionCoordinator:
    """The only writer of expense documents."""

    def __init__(
        self,
        store: DocumentStore,
        balances: BalanceLedger,
        expenses: ExpenseRecordStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._balances = balances
        self._expenses = expenses
        self._audit = audit_logger
        self._logger = structlog.get_logger(__name__)

    async def _move(
        self,
        tx: Transaction,
        user_id: str,
        source: SourceRef,
        delta,
        action: str,
    ) -> BalanceMovement:
        before = await self._balances.get_balance(tx, user_id, source)
        after = await self._balances.adjust_balance(tx, user_id, source, delta)
        return BalanceMovement(
            source=source,
            action=action,
            amount=delta,
            before=before,
            after=after,
        )

    async def create_expense(
        self,
        user_id: str,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record an expense and charge its payment source.

        Raises:
            MissingSourceSelection: Bank/card chosen without an id
            SourceNotFound: The chosen bank/card does not exist
            InsufficientFunds: Bank/cash balance is lower than the amount
            TransactionFailed: Storage could not commit
        """
        correlation_id = correlation_id or create_correlation_id()

        async def apply(tx: Transaction) -> tuple[Expense, list[BalanceMovement]]:
            source = resolve_source(draft.payment_source_type, draft.payment_source_id)
            movement = await self._move(
                tx, user_id, source, charge_delta(source, draft.amount), "create"
            )
            expense = self._expenses.create(tx, user_id, draft, source)
            return expense, [movement]

        expense, movements = await self._run(user_id, "create", correlation_id, apply)

        self._logger.info(
            "expense_created",
            user_id=user_id,
            expense_id=expense.id,
            amount=str(expense.amount),
            source=describe_source(expense.source),
        )
        if self._audit:
            await self._audit.log_expense_created(
                user_id=user_id,
                expense_id=expense.id,
                amount=str(expense.amount),
                source_type=expense.payment_source_type.value,
                source_id=expense.payment_source_id,
                correlation_id=correlation_id,
            )
            await self._audit.log_balance_movements(user_id, movements, correlation_id)
        return expense

    async def update_expense(
        self,
        user_id: str,
        expense_id: str,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Replace an expense and move the balances to match.

        The stored expense is read inside the transaction, so a concurrent
        edit of the same expense is retried against the latest version.

        Raises:
            ExpenseNotFound: The expense does not exist
            MissingSourceSelection: Bank/card chosen without an id
            SourceNotFound: The old or the new source does not exist
            InsufficientFunds: The new source cannot cover the new amount
            TransactionFailed: Storage could not commit
        """
        correlation_id = correlation_id or create_correlation_id()

        async def apply(tx: Transaction) -> tuple[Expense, Expense, list[BalanceMovement]]:
            new_source = resolve_source(draft.payment_source_type, draft.payment_source_id)
            old = await self._expenses.get_for_update(tx, user_id, expense_id)

            if old.source == new_source:
                delta = charge_delta(new_source, draft.amount) - charge_delta(old.source, old.amount)
                movements = [await self._move(tx, user_id, new_source, delta, "update")]
            else:
                movements = [
                    await self._move(
                        tx, user_id, old.source, refund_delta(old.source, old.amount), "update"
                    ),
                    await self._move(
                        tx, user_id, new_source, charge_delta(new_source, draft.amount), "update"
                    ),
                ]

            updated = self._expenses.update(tx, user_id, old, draft, new_source)
            return old, updated, movements

        old, updated, movements = await self._run(
            user_id, "update", correlation_id, apply, expense_id=expense_id
        )

        self._logger.info(
            "expense_updated",
            user_id=user_id,
            expense_id=expense_id,
            old_amount=str(old.amount),
            new_amount=str(updated.amount),
        )
        if self._audit:
            await self._audit.log_expense_updated(
                user_id=user_id,
                expense_id=expense_id,
                old_amount=str(old.amount),
                new_amount=str(updated.amount),
                old_source=describe_source(old.source),
                new_source=describe_source(updated.source),
                correlation_id=correlation_id,
            )
            await self._audit.log_balance_movements(user_id, movements, correlation_id)
        return updated

    async def delete_expense(
        self,
        user_id: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Remove an expense and give its amount back to the source.

        Returns:
            The expense as it was before deletion

        Raises:
            ExpenseNotFound: The expense does not exist (or is already gone)
            SourceNotFound: Its payment source has since been removed
            TransactionFailed: Storage could not commit
        """
        correlation_id = correlation_id or create_correlation_id()

        async def apply(tx: Transaction) -> tuple[Expense, list[BalanceMovement]]:
            old = await self._expenses.get_for_update(tx, user_id, expense_id)
            movement = await self._move(
                tx, user_id, old.source, refund_delta(old.source, old.amount), "delete"
            )
            self._expenses.delete(tx, user_id, old)
            return old, [movement]

        deleted, movements = await self._run(
            user_id, "delete", correlation_id, apply, expense_id=expense_id
        )

        self._logger.info(
            "expense_deleted",
            user_id=user_id,
            expense_id=expense_id,
            amount=str(deleted.amount),
        )
        if self._audit:
            await self._audit.log_expense_deleted(
                user_id=user_id,
                expense_id=expense_id,
                amount=str(deleted.amount),
                source=describe_source(deleted.source),
                correlation_id=correlation_id,
            )
            await self._audit.log_balance_movements(user_id, movements, correlation_id)
        return deleted

    async def _run(
        self,
        user_id: str,
        operation: str,
        correlation_id: UUID,
        fn: Callable[[Transaction], Awaitable[T]],
        expense_id: Optional[str] = None,
    ) -> T:
        try:
            return await with_transaction(self._store, fn)
        except TransactionFailed as e:
            if self._audit:
                await self._audit.log_transaction_failed(
                    user_id=user_id,
                    operation=f"expense {operation}",
                    error_message=str(e.cause or e),
                    correlation_id=correlation_id,
                )
            raise
        except LedgerError as e:
            self._logger.warning(
                "expense_rejected",
                user_id=user_id,
                operation=operation,
                error_code=e.code,
                expense_id=expense_id,
            )
            if self._audit:
                await self._audit.log_expense_rejected(
                    user_id=user_id,
                    operation=operation,
                    error_code=e.code,
                    error_message=str(e),
                    correlation_id=correlation_id,
                    expense_id=expense_id,
                )
            raise
