"""
Tests for the SummaryAggregator.

All totals are derived from stored expenses; these tests seed a small
history through the coordinator and read it back.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
import pytest_asyncio

from src.models import ExpenseCategory, PaymentSourceType
from src.queries import describe_range
from src.queries.aggregator import month_bounds, week_start


USER = "user-1"
CASH = PaymentSourceType.CASH


@pytest_asyncio.fixture
async def history(coordinator, balances, draft):
    """Five expenses around the turn of April/May 2024."""
    await balances.set_cash_balance(USER, "10000")
    seeds = [
        ("50", datetime(2024, 4, 30, 12, 0), ExpenseCategory.SHOPPING),
        ("100", datetime(2024, 5, 1, 9, 0), ExpenseCategory.DINING),
        ("20", datetime(2024, 5, 2, 23, 30), ExpenseCategory.GROCERIES),
        ("30", datetime(2024, 5, 2, 8, 0), ExpenseCategory.GROCERIES),
        ("40", datetime(2024, 5, 6, 18, 0), ExpenseCategory.TRAVEL),
    ]
    return [
        await coordinator.create_expense(USER, draft(amount, CASH, when=when, category=category))
        for amount, when, category in seeds
    ]


class TestHelpers:
    def test_week_start_is_monday(self):
        assert week_start(date(2024, 5, 10)) == date(2024, 5, 6)
        assert week_start(date(2024, 5, 6)) == date(2024, 5, 6)
        assert week_start(date(2024, 5, 5)) == date(2024, 4, 29)

    def test_month_bounds(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(2023, 12) == (date(2023, 12, 1), date(2023, 12, 31))

    def test_describe_range(self):
        assert describe_range(None, None) == "all time"
        assert describe_range(date(2024, 5, 2), date(2024, 5, 2)) == "on 02 May 2024"
        assert describe_range(date(2024, 5, 1), date(2024, 5, 7)) == "01-07 May 2024"


class TestDailyTotals:
    @pytest.mark.asyncio
    async def test_days_are_zero_filled(self, summaries, history):
        totals = await summaries.daily_totals(USER, date(2024, 4, 30), date(2024, 5, 3))

        assert [t.day for t in totals] == [
            date(2024, 4, 30),
            date(2024, 5, 1),
            date(2024, 5, 2),
            date(2024, 5, 3),
        ]
        assert [t.total for t in totals] == [
            Decimal("50"), Decimal("100"), Decimal("50"), Decimal("0"),
        ]
        assert totals[2].count == 2

    @pytest.mark.asyncio
    async def test_empty_history(self, summaries):
        totals = await summaries.daily_totals(USER, date(2024, 5, 1), date(2024, 5, 7))
        assert len(totals) == 7
        assert all(t.total == 0 and t.count == 0 for t in totals)

    @pytest.mark.asyncio
    async def test_reversed_range_is_refused(self, summaries):
        with pytest.raises(ValueError):
            await summaries.daily_totals(USER, date(2024, 5, 2), date(2024, 5, 1))

    @pytest.mark.asyncio
    async def test_recent_window(self, summaries, history):
        totals = await summaries.recent_daily_totals(USER, days=7, today=date(2024, 5, 6))

        assert len(totals) == 7
        assert totals[0].day == date(2024, 4, 30)
        assert totals[-1].day == date(2024, 5, 6)
        assert sum(t.total for t in totals) == Decimal("240")

    @pytest.mark.asyncio
    async def test_grouped_by_expense_date_not_creation_time(self, summaries, history):
        # Every expense was created today, yet none of them falls on today
        today = history[0].created_at.date()
        totals = await summaries.daily_totals(USER, today, today)
        assert totals[0].total == 0

        drill_down = await summaries.expenses_on(USER, date(2024, 5, 2))
        assert sorted(e.amount for e in drill_down) == [Decimal("20"), Decimal("30")]


class TestLongerPeriods:
    @pytest.mark.asyncio
    async def test_weekly_totals(self, summaries, history):
        weeks = await summaries.weekly_totals(USER, date(2024, 4, 29), date(2024, 5, 12))

        assert [(w.week_start, w.total, w.count) for w in weeks] == [
            (date(2024, 4, 29), Decimal("200"), 4),
            (date(2024, 5, 6), Decimal("40"), 1),
        ]

    @pytest.mark.asyncio
    async def test_weekly_totals_ignore_expenses_outside_range(self, summaries, history):
        weeks = await summaries.weekly_totals(USER, date(2024, 5, 1), date(2024, 5, 1))
        assert [(w.week_start, w.total) for w in weeks] == [(date(2024, 4, 29), Decimal("100"))]

    @pytest.mark.asyncio
    async def test_monthly_total(self, summaries, history):
        may = await summaries.monthly_total(USER, 2024, 5)
        april = await summaries.monthly_total(USER, 2024, 4)

        assert may.total == Decimal("190")
        assert len(may.expenses) == 4
        assert may.expenses[0].day == date(2024, 5, 6)
        assert april.total == Decimal("50")

    @pytest.mark.asyncio
    async def test_range_total(self, summaries, history):
        assert await summaries.range_total(USER, date(2024, 5, 1), date(2024, 5, 2)) == Decimal("150")

    @pytest.mark.asyncio
    async def test_category_totals(self, summaries, history):
        totals = await summaries.category_totals(USER)

        assert [(c.category, c.total) for c in totals] == [
            (ExpenseCategory.DINING, Decimal("100")),
            (ExpenseCategory.GROCERIES, Decimal("50")),
            (ExpenseCategory.SHOPPING, Decimal("50")),
            (ExpenseCategory.TRAVEL, Decimal("40")),
        ]
        assert totals[1].count == 2

    @pytest.mark.asyncio
    async def test_category_totals_in_range(self, summaries, history):
        totals = await summaries.category_totals(USER, date(2024, 5, 2), date(2024, 5, 6))
        assert [c.category for c in totals] == [ExpenseCategory.GROCERIES, ExpenseCategory.TRAVEL]

    @pytest.mark.asyncio
    async def test_period_summary_week_reaching_into_last_month(self, summaries, history):
        summary = await summaries.period_summary(USER, today=date(2024, 5, 2))

        assert summary.today == Decimal("50")
        assert summary.this_week == Decimal("200")
        assert summary.this_month == Decimal("150")

    @pytest.mark.asyncio
    async def test_totals_follow_edits_and_deletes(self, summaries, coordinator, history, draft):
        await coordinator.update_expense(
            USER, history[1].id,
            draft("10", CASH, when=datetime(2024, 5, 1, 9, 0), category=ExpenseCategory.DINING),
        )
        await coordinator.delete_expense(USER, history[4].id)

        may = await summaries.monthly_total(USER, 2024, 5)
        assert may.total == Decimal("60")
