"""
Expense Models

ExpenseDraft is what the user fills in. Expense is what the ledger stores.

CRITICAL: Expenses are only created, changed and removed by the
TransactionCoordinator, which moves the payment source balance in the
same transaction. Nothing else writes expense documents.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.money import PositiveAmount
from src.models.wallet import PaymentSourceType, SourceRef


# =============================================================================
# ENUMS
# =============================================================================

class ExpenseCategory(str, Enum):
    """Supported expense categories."""
    GROCERIES = "Groceries"
    DINING = "Dining"
    TRANSPORTATION = "Transportation"
    ENTERTAINMENT = "Entertainment"
    SHOPPING = "Shopping"
    HEALTH = "Health"
    BILLS = "Bills"
    EDUCATION = "Education"
    TRAVEL = "Travel"
    OTHER = "Other"


class Currency(str, Enum):
    """
    Currencies an expense can be recorded in.

    Stored with the expense for display only. Nothing is converted.
    """
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    INR = "INR"
    JPY = "JPY"

    @property
    def symbol(self) -> str:
        return {
            Currency.USD: "$",
            Currency.EUR: "€",
            Currency.GBP: "£",
            Currency.INR: "₹",
            Currency.JPY: "¥",
        }[self]


ALLOWED_ATTACHMENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "video/mp4",
    "video/quicktime",
})


# =============================================================================
# EXPENSES
# =============================================================================

class ExpenseDraft(BaseModel):
    """
    Expense details as entered in the form.

    The payment source is kept loose here (type plus optional id) because
    that is how the form submits it. The coordinator turns it into a
    SourceRef before touching any balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: PositiveAmount
    currency: Currency = Currency.INR
    category: ExpenseCategory
    purpose: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="What the expense was for"
    )
    payment_source_type: PaymentSourceType
    payment_source_id: Optional[str] = Field(
        default=None,
        description="Bank account or credit card id; ignored for cash"
    )
    date: datetime = Field(
        ...,
        description="When the expense happened (user supplied)"
    )
    attachments: list[str] = Field(default_factory=list)

    @field_validator('payment_source_id')
    @classmethod
    def blank_id_is_missing(cls, v: Optional[str]) -> Optional[str]:
        """An empty selection from the form means nothing was selected."""
        if v is not None and not v.strip():
            return None
        return v


class Expense(BaseModel):
    """A recorded expense attributed to exactly one payment source."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    amount: PositiveAmount
    currency: Currency = Currency.INR
    category: ExpenseCategory
    purpose: str = Field(..., min_length=1, max_length=500)
    source: SourceRef
    date: datetime
    attachments: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @property
    def payment_source_type(self) -> PaymentSourceType:
        return self.source.type

    @property
    def payment_source_id(self) -> str:
        return self.source.id

    @property
    def day(self) -> date:
        """Calendar day used for grouping in summaries."""
        return self.date.date()


class ExpenseFilter(BaseModel):
    """Filters for listing expenses. Date bounds are inclusive days."""

    category: Optional[ExpenseCategory] = None
    source_type: Optional[PaymentSourceType] = None
    source_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    limit: int = Field(default=100, ge=1, le=10000)
    offset: int = Field(default=0, ge=0)

    def matches(self, expense: Expense) -> bool:
        if self.category and expense.category != self.category:
            return False
        if self.source_type and expense.payment_source_type != self.source_type:
            return False
        if self.source_id and expense.payment_source_id != self.source_id:
            return False
        if self.date_from and expense.day < self.date_from:
            return False
        if self.date_to and expense.day > self.date_to:
            return False
        return True


# =============================================================================
# ATTACHMENTS
# =============================================================================

class AttachmentUpload(BaseModel):
    """A file the user wants to attach to an expense, before upload."""

    filename: str = Field(..., min_length=1)
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only images and short videos are accepted."""
        if v.lower() not in ALLOWED_ATTACHMENT_TYPES:
            raise ValueError(
                f"Unsupported attachment type: {v}. "
                "Only images and videos are allowed."
            )
        return v.lower()
