"""Read-side summary models produced by the SummaryAggregator."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.expense import Expense, ExpenseCategory
from src.models.money import ZERO


class DailyTotal(BaseModel):
    """Total spent on one calendar day (zero when nothing was spent)."""

    day: date
    total: Decimal = ZERO
    count: int = 0


class WeeklyTotal(BaseModel):
    """Total spent in the Monday-anchored week starting on week_start."""

    week_start: date
    total: Decimal = ZERO
    count: int = 0


class MonthlySummary(BaseModel):
    """Total for one month plus the expenses that make it up."""

    year: int
    month: int = Field(..., ge=1, le=12)
    total: Decimal = ZERO
    expenses: list[Expense] = Field(default_factory=list)


class CategoryTotal(BaseModel):
    category: ExpenseCategory
    total: Decimal = ZERO
    count: int = 0


class PeriodSummary(BaseModel):
    """Dashboard figures relative to as_of."""

    as_of: date
    today: Decimal = ZERO
    this_week: Decimal = ZERO
    this_month: Decimal = ZERO
