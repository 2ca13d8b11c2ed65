"""
Tests for Wallet Ledger models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Ledger tests run against the in-memory document store
3. No real API calls in tests (use monkeypatch)
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.models import (
    AttachmentUpload,
    BankAccount,
    BankSource,
    CashSource,
    CashWallet,
    CreditCard,
    CreditCardSource,
    Currency,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseFilter,
    PaymentSourceType,
    WalletOverview,
    charge_delta,
    format_inr,
    refund_delta,
    to_amount,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.wallet import BalanceMovement


class TestMoney:
    """Tests for amount helpers."""

    def test_to_amount_rounds_half_up(self):
        assert to_amount("10.005") == Decimal("10.01")
        assert to_amount(2) == Decimal("2.00")

    def test_to_amount_from_float_uses_decimal_text(self):
        assert to_amount(0.1) == Decimal("0.10")

    def test_to_amount_rejects_text(self):
        with pytest.raises(ValueError, match="Not an amount"):
            to_amount("abc")
        with pytest.raises(ValueError):
            to_amount("Infinity")

    def test_format_inr_uses_indian_grouping(self):
        assert format_inr(Decimal("1234567.5")) == "₹12,34,567.50"
        assert format_inr(Decimal("999")) == "₹999.00"
        assert format_inr(Decimal("100000")) == "₹1,00,000.00"

    def test_format_inr_negative_and_without_symbol(self):
        assert format_inr(Decimal("-1500")) == "-₹1,500.00"
        assert format_inr(Decimal("1500"), show_symbol=False) == "1,500.00"


class TestSourceReferences:
    """Tests for the tagged payment source reference."""

    def test_bank_source_requires_id(self):
        with pytest.raises(ValidationError):
            BankSource(id="")

    def test_credit_card_source_requires_id(self):
        with pytest.raises(ValidationError):
            CreditCardSource()

    def test_cash_source_has_fixed_id(self):
        assert CashSource().id == "cash"
        assert CashSource() == CashSource()

    def test_same_id_different_type_is_different_source(self):
        assert BankSource(id="x") != CreditCardSource(id="x")

    def test_charge_and_refund_signs(self):
        amount = Decimal("50.00")
        assert charge_delta(BankSource(id="b"), amount) == Decimal("-50.00")
        assert charge_delta(CashSource(), amount) == Decimal("-50.00")
        assert charge_delta(CreditCardSource(id="c"), amount) == Decimal("50.00")
        assert refund_delta(BankSource(id="b"), amount) == Decimal("50.00")
        assert refund_delta(CreditCardSource(id="c"), amount) == Decimal("-50.00")

    def test_source_type_labels(self):
        assert PaymentSourceType.CREDIT_CARD.label == "Credit Card"
        assert PaymentSourceType("creditCard") is PaymentSourceType.CREDIT_CARD


class TestPaymentSources:
    def test_credit_card_due_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            CreditCard(id="c1", name="Visa", due_amount=Decimal("-1"))

    def test_credit_card_bill_due_day_range(self):
        with pytest.raises(ValidationError):
            CreditCard(id="c1", name="Visa", bill_due_day=32)
        assert CreditCard(id="c1", name="Visa", bill_due_day=31).bill_due_day == 31

    def test_wallet_overview_totals(self):
        overview = WalletOverview(
            bank_accounts=[
                BankAccount(id="a", name="HDFC", balance=Decimal("1000.00")),
                BankAccount(id="b", name="SBI", balance=Decimal("250.50")),
            ],
            credit_cards=[CreditCard(id="c", name="Visa", due_amount=Decimal("300.00"))],
            cash=CashWallet(balance=Decimal("49.50")),
        )
        assert overview.total_bank_balance == Decimal("1250.50")
        assert overview.total_credit_due == Decimal("300.00")
        assert overview.total_available == Decimal("1300.00")

    def test_refs_from_sources(self):
        assert BankAccount(id="a", name="HDFC", balance=Decimal("0")).ref == BankSource(id="a")
        assert CashWallet().ref == CashSource()


class TestExpenseModels:
    def test_draft_blank_source_id_is_missing(self):
        draft = ExpenseDraft(
            amount=Decimal("10"),
            category=ExpenseCategory.DINING,
            purpose="Lunch",
            payment_source_type=PaymentSourceType.BANK,
            payment_source_id="   ",
            date=datetime(2024, 5, 1),
        )
        assert draft.payment_source_id is None

    def test_draft_rejects_non_positive_amount(self):
        with pytest.raises(ValidationError):
            ExpenseDraft(
                amount=Decimal("0"),
                category=ExpenseCategory.DINING,
                purpose="Lunch",
                payment_source_type=PaymentSourceType.CASH,
                date=datetime(2024, 5, 1),
            )

    def test_draft_rejects_empty_purpose(self):
        with pytest.raises(ValidationError):
            ExpenseDraft(
                amount=Decimal("10"),
                category=ExpenseCategory.DINING,
                purpose="   ",
                payment_source_type=PaymentSourceType.CASH,
                date=datetime(2024, 5, 1),
            )

    def test_draft_rejects_sub_cent_form_amount_and_long_purpose(self):
        # 0.004 passes the form's "> 0" check but rounds to zero
        with pytest.raises(ValidationError, match="amount"):
            ExpenseDraft(
                amount=to_amount(0.004),
                category=ExpenseCategory.DINING,
                purpose="Lunch",
                payment_source_type=PaymentSourceType.CASH,
                date=datetime(2024, 5, 1),
            )
        with pytest.raises(ValidationError, match="purpose"):
            ExpenseDraft(
                amount=Decimal("10"),
                category=ExpenseCategory.DINING,
                purpose="x" * 501,
                payment_source_type=PaymentSourceType.CASH,
                date=datetime(2024, 5, 1),
            )

    def test_draft_defaults_to_inr(self):
        draft = ExpenseDraft(
            amount=Decimal("10"),
            category=ExpenseCategory.DINING,
            purpose="Lunch",
            payment_source_type=PaymentSourceType.CASH,
            date=datetime(2024, 5, 1),
        )
        assert draft.currency == Currency.INR
        assert draft.currency.symbol == "₹"

    def test_expense_exposes_flat_source_fields(self):
        expense = Expense(
            id="e1",
            amount=Decimal("20.00"),
            category=ExpenseCategory.TRAVEL,
            purpose="Auto",
            source=CreditCardSource(id="c1"),
            date=datetime(2024, 5, 1, 22, 30),
            created_at=datetime(2024, 5, 2, 8, 0),
            updated_at=datetime(2024, 5, 2, 8, 0),
        )
        assert expense.payment_source_type is PaymentSourceType.CREDIT_CARD
        assert expense.payment_source_id == "c1"
        assert expense.day == date(2024, 5, 1)

    def test_expense_filter_matches(self):
        expense = Expense(
            id="e1",
            amount=Decimal("20.00"),
            category=ExpenseCategory.TRAVEL,
            purpose="Auto",
            source=BankSource(id="b1"),
            date=datetime(2024, 5, 1),
            created_at=datetime(2024, 5, 1),
            updated_at=datetime(2024, 5, 1),
        )
        assert ExpenseFilter().matches(expense)
        assert ExpenseFilter(category=ExpenseCategory.TRAVEL, source_id="b1").matches(expense)
        assert not ExpenseFilter(source_type=PaymentSourceType.CASH).matches(expense)
        assert ExpenseFilter(date_from=date(2024, 5, 1), date_to=date(2024, 5, 1)).matches(expense)
        assert not ExpenseFilter(date_from=date(2024, 5, 2)).matches(expense)

    def test_attachment_upload_rejects_documents(self):
        with pytest.raises(ValidationError):
            AttachmentUpload(filename="a.pdf", file_size_bytes=10, mime_type="application/pdf")
        upload = AttachmentUpload(filename="a.jpg", file_size_bytes=10, mime_type="IMAGE/JPEG")
        assert upload.mime_type == "image/jpeg"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            description="Test event",
        )
        assert event.event_id is not None
        assert event.timestamp.tzinfo is not None
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_sheets_row(self):
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id="u1",
            description="Test error",
            error_message="Something went wrong",
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "transaction_failed"
        assert row[4] == "u1"
        assert row[10] == "Something went wrong"

    def test_balance_adjusted_builder(self):
        movement = BalanceMovement(
            source=BankSource(id="b1"),
            action="create",
            amount=Decimal("-300.00"),
            before=Decimal("1000.00"),
            after=Decimal("700.00"),
        )
        event = AuditEventBuilder.balance_adjusted("u1", movement, correlation_id=None)
        assert event.entity_type == "bank"
        assert event.entity_id == "b1"
        assert event.details["after"] == "700.00"

    def test_balance_movement_action_is_closed(self):
        with pytest.raises(ValidationError):
            BalanceMovement(
                source=CashSource(),
                action="transfer",
                amount=Decimal("1"),
                before=Decimal("0"),
                after=Decimal("1"),
            )

    def test_expense_rejected_is_warning(self):
        event = AuditEventBuilder.expense_rejected(
            user_id="u1",
            operation="create",
            error_code="InsufficientFunds",
            error_message="Not enough",
            correlation_id=None,
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.error_code == "InsufficientFunds"
