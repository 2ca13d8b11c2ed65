"""
Expense Validation

DESIGN DECISION: Validation happens in two places:

SCHEMA VALIDATION (pydantic, on ExpenseDraft):
- Type checking
- Required field presence
- Positive amount, non-empty purpose

SEMANTIC VALIDATION (this module):
- Future date detection
- Absurd amount detection
- Attachment URL sanity
- This catches logically impossible or suspicious entries

The ledger's own rules (enough balance, source exists) are not checked
here; the TransactionCoordinator enforces them inside the transaction.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional
from urllib.parse import urlparse

from src.config import AppSettings, get_settings
from src.models.expense import ExpenseDraft
from src.models.validation import ValidationIssue, ValidationResult


OLD_EXPENSE_DAYS = 365


class ExpenseValidator:
    """Semantic checks on an expense draft before it is saved."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(
        self,
        draft: ExpenseDraft,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Check a draft.

        Checks:
        - Date not beyond the future tolerance (error)
        - Date not more than a year old (warning)
        - Amount not above the configured maximum (error)
        - Amount not below one unit (warning)
        - Attachments are http(s) URLs (error)
        """
        issues = []
        today = today or date.today()
        expense_day = draft.date.date()

        # Future date check (with tolerance)
        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if expense_day > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({expense_day}) is in the future",
                severity="error",
                suggested_fix="Pick the day the money was actually spent",
            ))

        if expense_day < today - timedelta(days=OLD_EXPENSE_DAYS):
            issues.append(ValidationIssue(
                field="date",
                issue_type="suspicious_date",
                message=f"Expense date ({expense_day}) is more than a year ago",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Absurd amount check
        max_amount = Decimal(str(self._settings.max_expense_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.currency.symbol}{draft.amount:,.2f}) is above the limit of {max_amount:,.2f}",
                severity="error",
                suggested_fix="Check for an extra zero",
            ))
        elif draft.amount < Decimal("1"):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.currency.symbol}{draft.amount}) seems unusually low",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        for url in draft.attachments:
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                issues.append(ValidationIssue(
                    field="attachments",
                    issue_type="invalid_format",
                    message=f"Attachment is not a hosted URL: {url}",
                    severity="error",
                    suggested_fix="Upload the file again",
                ))

        return ValidationResult(issues=issues)

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to non-technical users.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if result.errors:
            lines.append("❌ This expense cannot be saved yet:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
