"""
Document codec.

Converts ledger models to JSON-safe documents and back. Amounts are stored
as decimal strings, timestamps as ISO-8601 strings, enums as their values.

Decoding is strict: a document that does not fit the schema (including a
status or category outside its enum) raises DocumentDecodeError instead of
being passed on half-parsed.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, TypeVar

from pydantic import ValidationError

from src.models.expense import Expense
from src.models.obligation import Advance, Refund
from src.models.wallet import (
    BankAccount,
    BankSource,
    CashSource,
    CashWallet,
    CreditCard,
    CreditCardSource,
    PaymentSourceType,
    SourceRef,
)
from src.services.storage.interface import Document, DocumentDecodeError


T = TypeVar("T")


def encode_amount(value: Decimal) -> str:
    return str(value)


def encode_time(value: datetime) -> str:
    return value.isoformat()


def _decode(path: str, build: Callable[[], T]) -> T:
    try:
        return build()
    except (ValidationError, KeyError, TypeError, ValueError, InvalidOperation) as e:
        raise DocumentDecodeError(path, str(e)) from e


# =============================================================================
# PAYMENT SOURCES
# =============================================================================

def bank_account_to_document(account: BankAccount) -> Document:
    return {
        "name": account.name,
        "balance": encode_amount(account.balance),
        "lastUpdated": encode_time(account.last_updated) if account.last_updated else None,
    }


def bank_account_from_document(account_id: str, data: Document, path: str) -> BankAccount:
    return _decode(path, lambda: BankAccount(
        id=account_id,
        name=data["name"],
        balance=Decimal(data["balance"]),
        last_updated=data.get("lastUpdated"),
    ))


def credit_card_to_document(card: CreditCard) -> Document:
    document = {
        "name": card.name,
        "dueAmount": encode_amount(card.due_amount),
        "lastUpdated": encode_time(card.last_updated) if card.last_updated else None,
    }
    if card.bill_due_day is not None:
        document["billDueDayOfMonth"] = card.bill_due_day
    return document


def credit_card_from_document(card_id: str, data: Document, path: str) -> CreditCard:
    return _decode(path, lambda: CreditCard(
        id=card_id,
        name=data["name"],
        due_amount=Decimal(data["dueAmount"]),
        bill_due_day=data.get("billDueDayOfMonth"),
        last_updated=data.get("lastUpdated"),
    ))


def cash_wallet_from_document(data: Optional[Document], path: str) -> CashWallet:
    """A cash wallet that was never written reads as an empty wallet."""
    if data is None:
        return CashWallet()
    return _decode(path, lambda: CashWallet(
        balance=Decimal(data["balance"]),
        last_updated=data.get("lastUpdated"),
    ))


# =============================================================================
# EXPENSES
# =============================================================================

def source_from_fields(source_type: str, source_id: Optional[str]) -> SourceRef:
    """Rebuild a source reference from its stored flat fields."""
    kind = PaymentSourceType(source_type)
    if kind is PaymentSourceType.BANK:
        return BankSource(id=source_id)
    if kind is PaymentSourceType.CREDIT_CARD:
        return CreditCardSource(id=source_id)
    return CashSource()


def expense_to_document(expense: Expense) -> Document:
    return {
        "amount": encode_amount(expense.amount),
        "currency": expense.currency.value,
        "category": expense.category.value,
        "purpose": expense.purpose,
        "paymentSourceType": expense.payment_source_type.value,
        "paymentSourceId": expense.payment_source_id,
        "date": encode_time(expense.date),
        "attachments": list(expense.attachments),
        "createdAt": encode_time(expense.created_at),
        "updatedAt": encode_time(expense.updated_at),
    }


def expense_from_document(expense_id: str, data: Document, path: str) -> Expense:
    return _decode(path, lambda: Expense(
        id=expense_id,
        amount=Decimal(data["amount"]),
        currency=data["currency"],
        category=data["category"],
        purpose=data["purpose"],
        source=source_from_fields(data["paymentSourceType"], data.get("paymentSourceId")),
        date=data["date"],
        attachments=data.get("attachments") or [],
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
    ))


# =============================================================================
# OBLIGATIONS
# =============================================================================

def advance_to_document(advance: Advance) -> Document:
    return {
        "name": advance.name,
        "amount": encode_amount(advance.amount),
        "purpose": advance.purpose,
        "status": advance.status.value,
        "createdAt": encode_time(advance.created_at),
        "updatedAt": encode_time(advance.updated_at),
    }


def advance_from_document(advance_id: str, data: Document, path: str) -> Advance:
    return _decode(path, lambda: Advance(
        id=advance_id,
        name=data["name"],
        amount=Decimal(data["amount"]),
        purpose=data.get("purpose") or "",
        status=data["status"],
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
    ))


def refund_to_document(refund: Refund) -> Document:
    document = {
        "name": refund.name,
        "amount": encode_amount(refund.amount),
        "purpose": refund.purpose,
        "status": refund.status.value,
        "createdAt": encode_time(refund.created_at),
        "updatedAt": encode_time(refund.updated_at),
    }
    if refund.contact_number:
        document["contactNumber"] = refund.contact_number
    return document


def refund_from_document(refund_id: str, data: Document, path: str) -> Refund:
    return _decode(path, lambda: Refund(
        id=refund_id,
        name=data["name"],
        amount=Decimal(data["amount"]),
        purpose=data.get("purpose") or "",
        contact_number=data.get("contactNumber"),
        status=data["status"],
        created_at=data["createdAt"],
        updated_at=data["updatedAt"],
    ))
