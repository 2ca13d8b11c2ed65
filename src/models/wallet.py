"""
Payment Source Models

A payment source is one of:
- a bank account (balance decreases on expense)
- a credit card (due amount increases on expense - it is a liability)
- the cash wallet (one per user, balance decreases on expense)

DESIGN DECISION: Expenses reference their source through a tagged variant
(BankSource | CreditCardSource | CashSource). A bank or card reference
cannot exist without an id, and the cash reference never carries one.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.models.money import ZERO, NonNegativeAmount, SignedAmount


CASH_WALLET_ID = "cash"


class PaymentSourceType(str, Enum):
    """Kinds of payment source. Values match the stored paymentSourceType."""
    BANK = "bank"
    CREDIT_CARD = "creditCard"
    CASH = "cash"

    @property
    def label(self) -> str:
        return {
            PaymentSourceType.BANK: "Bank",
            PaymentSourceType.CREDIT_CARD: "Credit Card",
            PaymentSourceType.CASH: "Cash",
        }[self]


# =============================================================================
# SOURCE REFERENCES - tagged variant
# =============================================================================

class BankSource(BaseModel):
    """Reference to a bank account."""
    model_config = ConfigDict(frozen=True)

    type: Literal[PaymentSourceType.BANK] = PaymentSourceType.BANK
    id: str = Field(..., min_length=1)


class CreditCardSource(BaseModel):
    """Reference to a credit card."""
    model_config = ConfigDict(frozen=True)

    type: Literal[PaymentSourceType.CREDIT_CARD] = PaymentSourceType.CREDIT_CARD
    id: str = Field(..., min_length=1)


class CashSource(BaseModel):
    """Reference to the user's single cash wallet."""
    model_config = ConfigDict(frozen=True)

    type: Literal[PaymentSourceType.CASH] = PaymentSourceType.CASH

    @property
    def id(self) -> str:
        return CASH_WALLET_ID


SourceRef = Annotated[
    Union[BankSource, CreditCardSource, CashSource],
    Field(discriminator="type"),
]


def is_liability(source: SourceRef) -> bool:
    """Credit cards track what is owed, everything else tracks what is held."""
    return source.type is PaymentSourceType.CREDIT_CARD


def charge_delta(source: SourceRef, amount: Decimal) -> Decimal:
    """
    Delta to apply to a source when an expense of `amount` is charged to it.

    Bank/cash balances go down, card dues go up.
    """
    return amount if is_liability(source) else -amount


def refund_delta(source: SourceRef, amount: Decimal) -> Decimal:
    """Inverse of charge_delta: what removing an expense does to its source."""
    return -charge_delta(source, amount)


# =============================================================================
# PAYMENT SOURCES
# =============================================================================

class BankAccount(BaseModel):
    """A bank account with a running balance."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1, max_length=100)
    balance: SignedAmount
    last_updated: Optional[datetime] = None

    @property
    def ref(self) -> BankSource:
        return BankSource(id=self.id)


class CreditCard(BaseModel):
    """A credit card. due_amount is a liability and never below zero."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str = Field(..., min_length=1, max_length=100)
    due_amount: NonNegativeAmount = ZERO
    bill_due_day: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Day of month the card bill is due"
    )
    last_updated: Optional[datetime] = None

    @property
    def ref(self) -> CreditCardSource:
        return CreditCardSource(id=self.id)


class CashWallet(BaseModel):
    """The user's cash in hand."""

    balance: SignedAmount = ZERO
    last_updated: Optional[datetime] = None

    @property
    def ref(self) -> CashSource:
        return CashSource()


class WalletOverview(BaseModel):
    """Every payment source of one user, with derived totals."""

    bank_accounts: list[BankAccount] = Field(default_factory=list)
    credit_cards: list[CreditCard] = Field(default_factory=list)
    cash: CashWallet = Field(default_factory=CashWallet)

    @property
    def total_bank_balance(self) -> Decimal:
        return sum((account.balance for account in self.bank_accounts), ZERO)

    @property
    def total_credit_due(self) -> Decimal:
        return sum((card.due_amount for card in self.credit_cards), ZERO)

    @property
    def total_available(self) -> Decimal:
        """Money the user holds: bank accounts plus cash."""
        return self.total_bank_balance + self.cash.balance


class BalanceMovement(BaseModel):
    """
    One adjustment applied to a payment source.

    Kept as history in the audit trail so every balance can be explained.
    """

    source: SourceRef
    action: str = Field(..., pattern="^(create|update|delete)$")
    amount: Decimal = Field(..., description="Signed delta that was requested")
    before: Decimal
    after: Decimal
