"""
Obligation Models

Two independent, informational ledgers:
- Advances: money the user lent out (outstanding -> returned)
- Refunds: money owed back to the user (pending -> received)

Obligations never move a payment source balance.
Status transitions are one-way and single-step; there is no way back.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.models.money import ZERO, PositiveAmount


class AdvanceStatus(str, Enum):
    """Lifecycle of money lent out."""
    OUTSTANDING = "outstanding"
    RETURNED = "returned"


class RefundStatus(str, Enum):
    """Lifecycle of money owed to the user."""
    PENDING = "pending"
    RECEIVED = "received"


class AdvanceDraft(BaseModel):
    """Editable fields of an advance."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Who the money was given to"
    )
    amount: PositiveAmount
    purpose: str = Field(default="", max_length=500)


class RefundDraft(BaseModel):
    """Editable fields of a refund."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Who owes the money"
    )
    amount: PositiveAmount
    purpose: str = Field(default="", max_length=500)
    contact_number: Optional[str] = Field(default=None, max_length=20)


class Advance(BaseModel):
    """Money lent out by the user."""

    id: str
    name: str
    amount: PositiveAmount
    purpose: str = ""
    status: AdvanceStatus = AdvanceStatus.OUTSTANDING
    created_at: datetime
    updated_at: datetime


class Refund(BaseModel):
    """Money the user is waiting to get back."""

    id: str
    name: str
    amount: PositiveAmount
    purpose: str = ""
    contact_number: Optional[str] = None
    status: RefundStatus = RefundStatus.PENDING
    created_at: datetime
    updated_at: datetime


class AdvanceTotals(BaseModel):
    """Running totals over advances, split by status."""

    total_outstanding: Decimal = ZERO
    total_returned: Decimal = ZERO
    outstanding_count: int = 0
    returned_count: int = 0


class RefundTotals(BaseModel):
    """Running totals over refunds, split by status."""

    total_pending: Decimal = ZERO
    total_received: Decimal = ZERO
    pending_count: int = 0
    received_count: int = 0
