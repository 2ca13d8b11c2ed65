"""
Data Models Package

This package contains all Pydantic models used in the Wallet Ledger system.
All data flowing through the system must conform to these schemas.
"""

from src.models.money import (
    format_inr,
    to_amount,
)
from src.models.wallet import (
    CASH_WALLET_ID,
    BalanceMovement,
    BankAccount,
    BankSource,
    CashSource,
    CashWallet,
    CreditCard,
    CreditCardSource,
    PaymentSourceType,
    SourceRef,
    WalletOverview,
    charge_delta,
    refund_delta,
)
from src.models.expense import (
    AttachmentUpload,
    Currency,
    Expense,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseFilter,
)
from src.models.obligation import (
    Advance,
    AdvanceDraft,
    AdvanceStatus,
    AdvanceTotals,
    Refund,
    RefundDraft,
    RefundStatus,
    RefundTotals,
)
from src.models.summary import (
    CategoryTotal,
    DailyTotal,
    MonthlySummary,
    PeriodSummary,
    WeeklyTotal,
)
from src.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Money
    "format_inr",
    "to_amount",
    # Payment sources
    "CASH_WALLET_ID",
    "BalanceMovement",
    "BankAccount",
    "BankSource",
    "CashSource",
    "CashWallet",
    "CreditCard",
    "CreditCardSource",
    "PaymentSourceType",
    "SourceRef",
    "WalletOverview",
    "charge_delta",
    "refund_delta",
    # Expenses
    "AttachmentUpload",
    "Currency",
    "Expense",
    "ExpenseCategory",
    "ExpenseDraft",
    "ExpenseFilter",
    # Obligations
    "Advance",
    "AdvanceDraft",
    "AdvanceStatus",
    "AdvanceTotals",
    "Refund",
    "RefundDraft",
    "RefundStatus",
    "RefundTotals",
    # Summaries
    "CategoryTotal",
    "DailyTotal",
    "MonthlySummary",
    "PeriodSummary",
    "WeeklyTotal",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
