"""
Balance Ledger

Holds the current amount of every payment source:
- bank account balance (goes down on expense)
- credit card due amount (goes up on expense, floored at zero)
- cash wallet balance (goes down on expense)

get_balance() and adjust_balance() only run inside a transaction opened
by the TransactionCoordinator. The remaining methods manage the sources
themselves and are what the wallet screens call.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from src.audit import AuditLogger
from src.ledger.errors import InsufficientFunds, SourceNotFound
from src.ledger.transaction import with_transaction
from src.models.audit import AuditEventType
from src.models.money import ZERO, to_amount
from src.models.wallet import (
    BankAccount,
    BankSource,
    CashSource,
    CashWallet,
    CreditCard,
    CreditCardSource,
    PaymentSourceType,
    SourceRef,
    WalletOverview,
)
from src.services.storage.codec import (
    bank_account_from_document,
    bank_account_to_document,
    cash_wallet_from_document,
    credit_card_from_document,
    credit_card_to_document,
    encode_amount,
    encode_time,
)
from src.services.storage.interface import DocumentStore, Transaction
from src.services.storage.paths import UserPaths


Amount = Union[Decimal, float, int, str]

_UNSET = object()


def _non_negative(value: Amount, label: str) -> Decimal:
    amount = to_amount(value)
    if amount < 0:
        raise ValueError(f"{label} cannot be negative")
    return amount


class BalanceLedger:
    """Per-user payment sources and their running amounts."""

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._logger = structlog.get_logger(__name__)

    # =========================================================================
    # TRANSACTION-SCOPED
    # =========================================================================

    async def get_balance(self, tx: Transaction, user_id: str, source: SourceRef) -> Decimal:
        """
        Current balance, or due amount for a credit card.

        Raises:
            SourceNotFound: If the bank account or card does not exist
        """
        paths = UserPaths(user_id)
        path = paths.source(source)
        data = await tx.get(path)

        if source.type is PaymentSourceType.CASH:
            return cash_wallet_from_document(data, path).balance
        if data is None:
            raise SourceNotFound(source)
        if source.type is PaymentSourceType.BANK:
            return bank_account_from_document(source.id, data, path).balance
        return credit_card_from_document(source.id, data, path).due_amount

    async def adjust_balance(
        self,
        tx: Transaction,
        user_id: str,
        source: SourceRef,
        delta: Decimal,
    ) -> Decimal:
        """
        Apply delta to a source and return its new amount.

        Bank/cash: a negative delta that would take the balance below zero
        is refused. Credit card: the due amount is clamped at zero.

        Raises:
            SourceNotFound: If the bank account or card does not exist
            InsufficientFunds: If a bank/cash balance would go negative
        """
        paths = UserPaths(user_id)
        path = paths.source(source)
        current = await self.get_balance(tx, user_id, source)
        stamp = encode_time(tx.timestamp)

        if source.type is PaymentSourceType.CREDIT_CARD:
            new_amount = max(ZERO, current + delta)
            tx.update(path, {"dueAmount": encode_amount(new_amount), "lastUpdated": stamp})
            return new_amount

        new_amount = current + delta
        if delta < 0 and new_amount < 0:
            raise InsufficientFunds(source, available=current, requested=-delta)

        if source.type is PaymentSourceType.CASH:
            # The cash wallet comes into existence the first time it is touched
            tx.set(path, {"balance": encode_amount(new_amount), "lastUpdated": stamp})
        else:
            tx.update(path, {"balance": encode_amount(new_amount), "lastUpdated": stamp})
        return new_amount

    # =========================================================================
    # BANK ACCOUNTS
    # =========================================================================

    async def add_bank_account(self, user_id: str, name: str, balance: Amount = ZERO) -> BankAccount:
        opening = _non_negative(balance, "Opening balance")
        account_id = self._store.new_id()
        path = UserPaths(user_id).bank_account(account_id)

        async def apply(tx: Transaction) -> BankAccount:
            account = BankAccount(
                id=account_id,
                name=name,
                balance=opening,
                last_updated=tx.timestamp,
            )
            tx.set(path, bank_account_to_document(account))
            return account

        account = await with_transaction(self._store, apply)
        await self._log_source(
            user_id, AuditEventType.SOURCE_CREATED, account.ref, account.name,
            {"balance": str(account.balance)},
        )
        return account

    async def update_bank_account(
        self,
        user_id: str,
        account_id: str,
        name: Optional[str] = None,
        balance: Optional[Amount] = None,
    ) -> BankAccount:
        """Rename an account or correct its balance by hand."""
        new_balance = _non_negative(balance, "Balance") if balance is not None else None
        source = BankSource(id=account_id)
        path = UserPaths(user_id).bank_account(account_id)

        async def apply(tx: Transaction) -> BankAccount:
            data = await tx.get(path)
            if data is None:
                raise SourceNotFound(source)
            current = bank_account_from_document(account_id, data, path)
            account = BankAccount(
                id=account_id,
                name=name if name is not None else current.name,
                balance=new_balance if new_balance is not None else current.balance,
                last_updated=tx.timestamp,
            )
            tx.set(path, bank_account_to_document(account))
            return account

        account = await with_transaction(self._store, apply)
        await self._log_source(
            user_id, AuditEventType.SOURCE_UPDATED, source, account.name,
            {"balance": str(account.balance)},
        )
        return account

    async def delete_bank_account(self, user_id: str, account_id: str) -> None:
        """
        Remove a bank account.

        Expenses already charged to it keep their reference; editing or
        deleting them later fails with SourceNotFound.
        """
        source = BankSource(id=account_id)
        path = UserPaths(user_id).bank_account(account_id)

        async def apply(tx: Transaction) -> str:
            data = await tx.get(path)
            if data is None:
                raise SourceNotFound(source)
            tx.delete(path)
            return data.get("name", account_id)

        name = await with_transaction(self._store, apply)
        await self._log_source(user_id, AuditEventType.SOURCE_DELETED, source, name)

    async def get_bank_account(self, user_id: str, account_id: str) -> Optional[BankAccount]:
        path = UserPaths(user_id).bank_account(account_id)
        data = await self._store.get(path)
        return bank_account_from_document(account_id, data, path) if data is not None else None

    async def list_bank_accounts(self, user_id: str) -> list[BankAccount]:
        snapshots = await self._store.list_documents(UserPaths(user_id).bank_accounts)
        accounts = [
            bank_account_from_document(snap.id, snap.data, snap.path)
            for snap in snapshots
        ]
        return sorted(accounts, key=lambda a: a.name.lower())

    # =========================================================================
    # CREDIT CARDS
    # =========================================================================

    async def add_credit_card(
        self,
        user_id: str,
        name: str,
        due_amount: Amount = ZERO,
        bill_due_day: Optional[int] = None,
    ) -> CreditCard:
        due = _non_negative(due_amount, "Due amount")
        card_id = self._store.new_id()
        path = UserPaths(user_id).credit_card(card_id)

        async def apply(tx: Transaction) -> CreditCard:
            card = CreditCard(
                id=card_id,
                name=name,
                due_amount=due,
                bill_due_day=bill_due_day,
                last_updated=tx.timestamp,
            )
            tx.set(path, credit_card_to_document(card))
            return card

        card = await with_transaction(self._store, apply)
        await self._log_source(
            user_id, AuditEventType.SOURCE_CREATED, card.ref, card.name,
            {"due_amount": str(card.due_amount)},
        )
        return card

    async def update_credit_card(
        self,
        user_id: str,
        card_id: str,
        name: Optional[str] = None,
        due_amount: Optional[Amount] = None,
        bill_due_day=_UNSET,
    ) -> CreditCard:
        """
        Edit a card. Pass bill_due_day=None to clear the due day;
        leave it out to keep the current one.
        """
        new_due = _non_negative(due_amount, "Due amount") if due_amount is not None else None
        source = CreditCardSource(id=card_id)
        path = UserPaths(user_id).credit_card(card_id)

        async def apply(tx: Transaction) -> CreditCard:
            data = await tx.get(path)
            if data is None:
                raise SourceNotFound(source)
            current = credit_card_from_document(card_id, data, path)
            card = CreditCard(
                id=card_id,
                name=name if name is not None else current.name,
                due_amount=new_due if new_due is not None else current.due_amount,
                bill_due_day=current.bill_due_day if bill_due_day is _UNSET else bill_due_day,
                last_updated=tx.timestamp,
            )
            tx.set(path, credit_card_to_document(card))
            return card

        card = await with_transaction(self._store, apply)
        await self._log_source(
            user_id, AuditEventType.SOURCE_UPDATED, source, card.name,
            {"due_amount": str(card.due_amount)},
        )
        return card

    async def delete_credit_card(self, user_id: str, card_id: str) -> None:
        source = CreditCardSource(id=card_id)
        path = UserPaths(user_id).credit_card(card_id)

        async def apply(tx: Transaction) -> str:
            data = await tx.get(path)
            if data is None:
                raise SourceNotFound(source)
            tx.delete(path)
            return data.get("name", card_id)

        name = await with_transaction(self._store, apply)
        await self._log_source(user_id, AuditEventType.SOURCE_DELETED, source, name)

    async def get_credit_card(self, user_id: str, card_id: str) -> Optional[CreditCard]:
        path = UserPaths(user_id).credit_card(card_id)
        data = await self._store.get(path)
        return credit_card_from_document(card_id, data, path) if data is not None else None

    async def list_credit_cards(self, user_id: str) -> list[CreditCard]:
        snapshots = await self._store.list_documents(UserPaths(user_id).credit_cards)
        cards = [
            credit_card_from_document(snap.id, snap.data, snap.path)
            for snap in snapshots
        ]
        return sorted(cards, key=lambda c: c.name.lower())

    # =========================================================================
    # CASH
    # =========================================================================

    async def set_cash_balance(self, user_id: str, balance: Amount) -> CashWallet:
        amount = _non_negative(balance, "Cash balance")
        path = UserPaths(user_id).cash

        async def apply(tx: Transaction) -> CashWallet:
            wallet = CashWallet(balance=amount, last_updated=tx.timestamp)
            tx.set(path, {
                "balance": encode_amount(wallet.balance),
                "lastUpdated": encode_time(tx.timestamp),
            })
            return wallet

        wallet = await with_transaction(self._store, apply)
        await self._log_source(
            user_id, AuditEventType.CASH_BALANCE_SET, CashSource(), "Cash",
            {"balance": str(wallet.balance)},
        )
        return wallet

    async def get_cash_wallet(self, user_id: str) -> CashWallet:
        path = UserPaths(user_id).cash
        return cash_wallet_from_document(await self._store.get(path), path)

    # =========================================================================
    # READS
    # =========================================================================

    async def read_balance(self, user_id: str, source: SourceRef) -> Decimal:
        """
        Committed amount of a source, outside any transaction.

        Raises:
            SourceNotFound: If the bank account or card does not exist
        """
        if source.type is PaymentSourceType.CASH:
            return (await self.get_cash_wallet(user_id)).balance
        if source.type is PaymentSourceType.BANK:
            account = await self.get_bank_account(user_id, source.id)
            if account is None:
                raise SourceNotFound(source)
            return account.balance
        card = await self.get_credit_card(user_id, source.id)
        if card is None:
            raise SourceNotFound(source)
        return card.due_amount

    async def overview(self, user_id: str) -> WalletOverview:
        return WalletOverview(
            bank_accounts=await self.list_bank_accounts(user_id),
            credit_cards=await self.list_credit_cards(user_id),
            cash=await self.get_cash_wallet(user_id),
        )

    async def _log_source(
        self,
        user_id: str,
        event_type: AuditEventType,
        source: SourceRef,
        name: Optional[str],
        details: Optional[dict] = None,
    ) -> None:
        self._logger.info(
            "payment_source_changed",
            user_id=user_id,
            event_type=event_type.value,
            source_type=source.type.value,
            source_id=source.id,
        )
        if self._audit:
            await self._audit.log_source_changed(
                user_id=user_id,
                event_type=event_type,
                source_type=source.type.value,
                source_id=source.id,
                name=name,
                details=details,
            )
