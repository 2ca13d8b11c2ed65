"""
Shared fixtures.

Every test gets a fresh in-memory store with no wait between conflict
retries, so nothing here touches a real service.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

import pytest

from src.audit import AuditLogger
from src.ledger import (
    BalanceLedger,
    ExpenseRecordStore,
    ObligationTracker,
    TransactionCoordinator,
)
from src.models import ExpenseCategory, ExpenseDraft, PaymentSourceType
from src.queries import SummaryAggregator
from src.services.storage import InMemoryAuditStorage, InMemoryDocumentStore


USER = "user-1"


def make_draft(
    amount: str = "100.00",
    source_type: PaymentSourceType = PaymentSourceType.CASH,
    source_id: Optional[str] = None,
    when: Optional[datetime] = None,
    category: ExpenseCategory = ExpenseCategory.GROCERIES,
    purpose: str = "Vegetables",
    attachments: Optional[list[str]] = None,
) -> ExpenseDraft:
    return ExpenseDraft(
        amount=Decimal(amount),
        category=category,
        purpose=purpose,
        payment_source_type=source_type,
        payment_source_id=source_id,
        date=when or datetime(2024, 5, 10, 12, 0),
        attachments=attachments or [],
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(retry_wait_seconds=0.0)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def balances(store, audit_logger) -> BalanceLedger:
    return BalanceLedger(store, audit_logger)


@pytest.fixture
def expenses(store) -> ExpenseRecordStore:
    return ExpenseRecordStore(store)


@pytest.fixture
def coordinator(store, balances, expenses, audit_logger) -> TransactionCoordinator:
    return TransactionCoordinator(store, balances, expenses, audit_logger)


@pytest.fixture
def obligations(store, audit_logger) -> ObligationTracker:
    return ObligationTracker(store, audit_logger)


@pytest.fixture
def summaries(expenses) -> SummaryAggregator:
    return SummaryAggregator(expenses)


@pytest.fixture
def draft():
    """Factory for expense drafts: draft(amount, source_type, source_id, ...)."""
    return make_draft
