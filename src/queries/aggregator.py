"""
Summary Aggregator

DESIGN DECISION: Summaries are DERIVED, never stored.
Every figure is recomputed from the expense documents on each read,
so a chart can never disagree with the expense list.

Grouping key is the date the user gave the expense, truncated to the
day. created_at is never used for grouping.
"""

import calendar
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from src.ledger.expenses import ExpenseRecordStore
from src.models.expense import Expense
from src.models.money import ZERO
from src.models.summary import (
    CategoryTotal,
    DailyTotal,
    MonthlySummary,
    PeriodSummary,
    WeeklyTotal,
)


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise ValueError(f"Range start {start} is after range end {end}")


def _sum(expenses: Iterable[Expense]) -> Decimal:
    return sum((e.amount for e in expenses), ZERO)


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class SummaryAggregator:
    """
    Read-only totals over a user's expenses.

    GUARANTEES:
    - Only sums real stored expenses
    - Day ranges are inclusive and zero-filled, never sparse
    - No side effects
    """

    def __init__(self, expenses: ExpenseRecordStore):
        self._expenses = expenses

    async def _between(self, user_id: str, start: date, end: date) -> list[Expense]:
        _check_range(start, end)
        return [
            e for e in await self._expenses.list(user_id)
            if start <= e.day <= end
        ]

    async def daily_totals(self, user_id: str, start: date, end: date) -> list[DailyTotal]:
        """
        One entry per day from start to end inclusive, in order.

        Days without expenses are present with a zero total.
        """
        expenses = await self._between(user_id, start, end)
        totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[date, int] = defaultdict(int)
        for expense in expenses:
            totals[expense.day] += expense.amount
            counts[expense.day] += 1

        days = (end - start).days + 1
        return [
            DailyTotal(day=day, total=totals[day], count=counts[day])
            for day in (start + timedelta(days=offset) for offset in range(days))
        ]

    async def recent_daily_totals(
        self,
        user_id: str,
        days: int = 7,
        today: Optional[date] = None,
    ) -> list[DailyTotal]:
        """The last `days` days ending today (the dashboard chart window)."""
        if days < 1:
            raise ValueError("days must be at least 1")
        today = today or date.today()
        return await self.daily_totals(user_id, today - timedelta(days=days - 1), today)

    async def weekly_totals(self, user_id: str, start: date, end: date) -> list[WeeklyTotal]:
        """
        Monday-anchored weeks overlapping start..end, zero-filled.

        Only expenses inside start..end are counted, even when the first
        or last week reaches past the range.
        """
        expenses = await self._between(user_id, start, end)
        totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[date, int] = defaultdict(int)
        for expense in expenses:
            key = week_start(expense.day)
            totals[key] += expense.amount
            counts[key] += 1

        weeks = []
        current = week_start(start)
        while current <= end:
            weeks.append(WeeklyTotal(week_start=current, total=totals[current], count=counts[current]))
            current += timedelta(days=7)
        return weeks

    async def monthly_total(self, user_id: str, year: int, month: int) -> MonthlySummary:
        """Total for a calendar month plus the expenses behind it, newest first."""
        first, last = month_bounds(year, month)
        expenses = await self._between(user_id, first, last)
        return MonthlySummary(
            year=year,
            month=month,
            total=_sum(expenses),
            expenses=expenses,
        )

    async def range_total(self, user_id: str, start: date, end: date) -> Decimal:
        return _sum(await self._between(user_id, start, end))

    async def expenses_on(self, user_id: str, day: date) -> list[Expense]:
        """Drill-down list for one day of the chart."""
        return await self._between(user_id, day, day)

    async def category_totals(
        self,
        user_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> list[CategoryTotal]:
        """Spend per category, largest first. Categories with no spend are left out."""
        expenses = await self._expenses.list(user_id)
        if start is not None and end is not None:
            _check_range(start, end)

        grouped: dict = {}
        for expense in expenses:
            if start is not None and expense.day < start:
                continue
            if end is not None and expense.day > end:
                continue
            entry = grouped.setdefault(expense.category, CategoryTotal(category=expense.category))
            entry.total += expense.amount
            entry.count += 1

        return sorted(grouped.values(), key=lambda c: (-c.total, c.category.value))

    async def period_summary(self, user_id: str, today: Optional[date] = None) -> PeriodSummary:
        """Spend today, this week (from Monday) and this month, up to today."""
        today = today or date.today()
        monday = week_start(today)
        first_of_month = today.replace(day=1)
        # A week can start in the previous month
        expenses = await self._between(user_id, min(monday, first_of_month), today)

        return PeriodSummary(
            as_of=today,
            today=_sum(e for e in expenses if e.day == today),
            this_week=_sum(e for e in expenses if monday <= e.day <= today),
            this_month=_sum(e for e in expenses if first_of_month <= e.day <= today),
        )


def describe_range(date_from: Optional[date], date_to: Optional[date]) -> str:
    """Human-readable caption for a date range."""
    if date_from and date_to:
        if date_from == date_to:
            return f"on {date_from.strftime('%d %b %Y')}"
        elif date_from.month == date_to.month and date_from.year == date_to.year:
            return f"{date_from.strftime('%d')}-{date_to.strftime('%d %b %Y')}"
        elif date_from.year == date_to.year:
            return f"from {date_from.strftime('%d %b')} to {date_to.strftime('%d %b %Y')}"
        else:
            return f"from {date_from.strftime('%d %b %Y')} to {date_to.strftime('%d %b %Y')}"
    elif date_from:
        return f"from {date_from.strftime('%d %b %Y')}"
    elif date_to:
        return f"until {date_to.strftime('%d %b %Y')}"
    return "all time"
