"""
Tests for the BalanceLedger.

Transaction-scoped reads and adjustments are driven through
store.run_transaction(), the way the coordinator drives them.
"""

from decimal import Decimal

import pytest

from src.ledger import InsufficientFunds, SourceNotFound
from src.models import AuditEventType
from src.models.wallet import BankSource, CashSource, CreditCardSource
from src.services.storage.paths import UserPaths


USER = "user-1"


async def adjust(store, balances, source, delta):
    async def fn(tx):
        return await balances.adjust_balance(tx, USER, source, Decimal(delta))
    return await store.run_transaction(fn)


class TestAdjustBalance:
    @pytest.mark.asyncio
    async def test_bank_balance_moves_by_delta(self, store, balances):
        account = await balances.add_bank_account(USER, "HDFC", "1000")

        assert await adjust(store, balances, account.ref, "-250.50") == Decimal("749.50")
        assert await balances.read_balance(USER, account.ref) == Decimal("749.50")

    @pytest.mark.asyncio
    async def test_bank_cannot_go_negative(self, store, balances):
        account = await balances.add_bank_account(USER, "HDFC", "100")

        with pytest.raises(InsufficientFunds) as exc_info:
            await adjust(store, balances, account.ref, "-100.01")

        assert exc_info.value.available == Decimal("100.00")
        assert exc_info.value.requested == Decimal("100.01")
        assert await balances.read_balance(USER, account.ref) == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_bank_can_reach_exactly_zero(self, store, balances):
        account = await balances.add_bank_account(USER, "HDFC", "100")
        assert await adjust(store, balances, account.ref, "-100") == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_card_due_is_clamped_at_zero(self, store, balances):
        card = await balances.add_credit_card(USER, "Visa", "50")

        assert await adjust(store, balances, card.ref, "-80") == Decimal("0.00")
        assert await adjust(store, balances, card.ref, "30") == Decimal("30.00")

    @pytest.mark.asyncio
    async def test_cash_wallet_is_created_on_first_credit(self, store, balances):
        path = UserPaths(USER).cash
        assert await store.get(path) is None

        assert await adjust(store, balances, CashSource(), "40") == Decimal("40.00")
        assert (await store.get(path))["balance"] == "40.00"

    @pytest.mark.asyncio
    async def test_missing_cash_wallet_reads_as_zero(self, store, balances):
        with pytest.raises(InsufficientFunds):
            await adjust(store, balances, CashSource(), "-1")
        assert (await balances.get_cash_wallet(USER)).balance == Decimal("0.00")

    @pytest.mark.asyncio
    async def test_unknown_bank_or_card_is_reported(self, store, balances):
        with pytest.raises(SourceNotFound):
            await adjust(store, balances, BankSource(id="nope"), "-1")
        with pytest.raises(SourceNotFound):
            await adjust(store, balances, CreditCardSource(id="nope"), "1")

    @pytest.mark.asyncio
    async def test_adjustment_stamps_last_updated(self, store, balances):
        account = await balances.add_bank_account(USER, "HDFC", "100")
        await adjust(store, balances, account.ref, "-1")

        updated = await balances.get_bank_account(USER, account.id)
        assert updated.last_updated is not None
        assert updated.name == "HDFC"


class TestSourceManagement:
    @pytest.mark.asyncio
    async def test_add_and_list_bank_accounts_by_name(self, balances):
        await balances.add_bank_account(USER, "SBI", "10")
        await balances.add_bank_account(USER, "axis", "20")

        names = [a.name for a in await balances.list_bank_accounts(USER)]
        assert names == ["axis", "SBI"]

    @pytest.mark.asyncio
    async def test_negative_opening_amounts_are_refused(self, balances):
        with pytest.raises(ValueError):
            await balances.add_bank_account(USER, "HDFC", "-1")
        with pytest.raises(ValueError):
            await balances.add_credit_card(USER, "Visa", "-1")
        with pytest.raises(ValueError):
            await balances.set_cash_balance(USER, "-1")

    @pytest.mark.asyncio
    async def test_non_numeric_opening_amounts_are_refused(self, balances):
        with pytest.raises(ValueError, match="Not an amount"):
            await balances.add_bank_account(USER, "HDFC", "abc")
        with pytest.raises(ValueError, match="Not an amount"):
            await balances.set_cash_balance(USER, "NaN")
        assert await balances.list_bank_accounts(USER) == []

    @pytest.mark.asyncio
    async def test_update_bank_account_keeps_unspecified_fields(self, balances):
        account = await balances.add_bank_account(USER, "HDFC", "100")

        renamed = await balances.update_bank_account(USER, account.id, name="HDFC Savings")
        assert renamed.balance == Decimal("100.00")

        corrected = await balances.update_bank_account(USER, account.id, balance="75")
        assert corrected.name == "HDFC Savings"
        assert corrected.balance == Decimal("75.00")

    @pytest.mark.asyncio
    async def test_update_credit_card_due_day(self, balances):
        card = await balances.add_credit_card(USER, "Visa", "0", bill_due_day=5)

        kept = await balances.update_credit_card(USER, card.id, due_amount="20")
        assert kept.bill_due_day == 5
        assert kept.due_amount == Decimal("20.00")

        cleared = await balances.update_credit_card(USER, card.id, bill_due_day=None)
        assert cleared.bill_due_day is None

    @pytest.mark.asyncio
    async def test_delete_sources(self, balances):
        account = await balances.add_bank_account(USER, "HDFC", "100")
        card = await balances.add_credit_card(USER, "Visa")

        await balances.delete_bank_account(USER, account.id)
        await balances.delete_credit_card(USER, card.id)

        assert await balances.get_bank_account(USER, account.id) is None
        assert await balances.get_credit_card(USER, card.id) is None
        with pytest.raises(SourceNotFound):
            await balances.delete_bank_account(USER, account.id)

    @pytest.mark.asyncio
    async def test_updating_missing_source_fails(self, balances):
        with pytest.raises(SourceNotFound):
            await balances.update_bank_account(USER, "missing", name="x")
        with pytest.raises(SourceNotFound):
            await balances.update_credit_card(USER, "missing", name="x")

    @pytest.mark.asyncio
    async def test_set_cash_balance(self, balances):
        wallet = await balances.set_cash_balance(USER, "300")
        assert wallet.balance == Decimal("300.00")
        assert await balances.read_balance(USER, CashSource()) == Decimal("300.00")

    @pytest.mark.asyncio
    async def test_users_are_isolated(self, balances):
        await balances.add_bank_account(USER, "HDFC", "100")
        assert await balances.list_bank_accounts("someone-else") == []


class TestOverview:
    @pytest.mark.asyncio
    async def test_totals(self, balances):
        await balances.add_bank_account(USER, "HDFC", "100")
        await balances.add_bank_account(USER, "SBI", "50.25")
        await balances.add_credit_card(USER, "Visa", "30")
        await balances.set_cash_balance(USER, "10")

        overview = await balances.overview(USER)

        assert overview.total_bank_balance == Decimal("150.25")
        assert overview.total_credit_due == Decimal("30.00")
        assert overview.total_available == Decimal("160.25")

    @pytest.mark.asyncio
    async def test_empty_user(self, balances):
        overview = await balances.overview(USER)
        assert overview.bank_accounts == []
        assert overview.cash.balance == Decimal("0")


class TestSourceAudit:
    @pytest.mark.asyncio
    async def test_source_changes_are_audited(self, balances, audit_storage):
        account = await balances.add_bank_account(USER, "HDFC", "100")
        await balances.update_bank_account(USER, account.id, balance="90")
        await balances.delete_bank_account(USER, account.id)

        events = await audit_storage.get_events_by_entity("bank", account.id)
        assert [e.event_type for e in events] == [
            AuditEventType.SOURCE_CREATED,
            AuditEventType.SOURCE_UPDATED,
            AuditEventType.SOURCE_DELETED,
        ]
        assert events[0].user_id == USER
