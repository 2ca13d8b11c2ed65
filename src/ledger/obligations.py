"""
Obligation Tracker

Advances (money lent out) and refunds (money owed back) are tracked on
their own. They never touch a payment source.

mark_returned()/mark_received() set the final status unconditionally,
so calling them twice is harmless. There is no way back to the first
status. Totals are recomputed from the documents on every read.
"""

from typing import Optional

import structlog

from src.audit import AuditLogger
from src.ledger.errors import ObligationNotFound
from src.ledger.transaction import with_transaction
from src.models.audit import AuditEventType
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
from src.services.storage.codec import (
    advance_from_document,
    advance_to_document,
    refund_from_document,
    refund_to_document,
)
from src.services.storage.interface import DocumentStore, Transaction
from src.services.storage.paths import UserPaths


class ObligationTracker:
    """Advances and refunds of every user."""

    def __init__(
        self,
        store: DocumentStore,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit = audit_logger
        self._logger = structlog.get_logger(__name__)

    # =========================================================================
    # ADVANCES
    # =========================================================================

    async def add_advance(self, user_id: str, draft: AdvanceDraft) -> Advance:
        advance_id = self._store.new_id()
        path = UserPaths(user_id).advance(advance_id)

        async def apply(tx: Transaction) -> Advance:
            advance = Advance(
                id=advance_id,
                name=draft.name,
                amount=draft.amount,
                purpose=draft.purpose,
                created_at=tx.timestamp,
                updated_at=tx.timestamp,
            )
            tx.set(path, advance_to_document(advance))
            return advance

        advance = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.ADVANCE_ADDED, "advance", advance.id, advance.name, advance.amount)
        return advance

    async def _read_advance(self, tx: Transaction, user_id: str, advance_id: str) -> Advance:
        path = UserPaths(user_id).advance(advance_id)
        data = await tx.get(path)
        if data is None:
            raise ObligationNotFound(advance_id)
        return advance_from_document(advance_id, data, path)

    async def mark_returned(self, user_id: str, advance_id: str) -> Advance:
        """
        Raises:
            ObligationNotFound: If the advance does not exist
        """
        path = UserPaths(user_id).advance(advance_id)

        async def apply(tx: Transaction) -> Advance:
            current = await self._read_advance(tx, user_id, advance_id)
            advance = current.model_copy(update={
                "status": AdvanceStatus.RETURNED,
                "updated_at": tx.timestamp,
            })
            tx.set(path, advance_to_document(advance))
            return advance

        advance = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.ADVANCE_RETURNED, "advance", advance.id, advance.name, advance.amount)
        return advance

    async def edit_advance(self, user_id: str, advance_id: str, draft: AdvanceDraft) -> Advance:
        """Change name, amount and purpose. Status is kept."""
        path = UserPaths(user_id).advance(advance_id)

        async def apply(tx: Transaction) -> Advance:
            current = await self._read_advance(tx, user_id, advance_id)
            advance = Advance(
                id=advance_id,
                name=draft.name,
                amount=draft.amount,
                purpose=draft.purpose,
                status=current.status,
                created_at=current.created_at,
                updated_at=tx.timestamp,
            )
            tx.set(path, advance_to_document(advance))
            return advance

        advance = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.OBLIGATION_UPDATED, "advance", advance.id, advance.name, advance.amount)
        return advance

    async def delete_advance(self, user_id: str, advance_id: str) -> Advance:
        path = UserPaths(user_id).advance(advance_id)

        async def apply(tx: Transaction) -> Advance:
            current = await self._read_advance(tx, user_id, advance_id)
            tx.delete(path)
            return current

        advance = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.OBLIGATION_DELETED, "advance", advance.id, advance.name, advance.amount)
        return advance

    async def get_advance(self, user_id: str, advance_id: str) -> Optional[Advance]:
        path = UserPaths(user_id).advance(advance_id)
        data = await self._store.get(path)
        return advance_from_document(advance_id, data, path) if data is not None else None

    async def list_advances(
        self,
        user_id: str,
        status: Optional[AdvanceStatus] = None,
    ) -> list[Advance]:
        """Advances newest first, optionally only those in one status."""
        snapshots = await self._store.list_documents(UserPaths(user_id).advances)
        advances = [
            advance_from_document(snap.id, snap.data, snap.path)
            for snap in snapshots
        ]
        if status is not None:
            advances = [a for a in advances if a.status == status]
        return sorted(advances, key=lambda a: a.created_at, reverse=True)

    async def advance_totals(self, user_id: str) -> AdvanceTotals:
        totals = AdvanceTotals()
        for advance in await self.list_advances(user_id):
            if advance.status == AdvanceStatus.OUTSTANDING:
                totals.total_outstanding += advance.amount
                totals.outstanding_count += 1
            else:
                totals.total_returned += advance.amount
                totals.returned_count += 1
        return totals

    # =========================================================================
    # REFUNDS
    # =========================================================================

    async def add_refund(self, user_id: str, draft: RefundDraft) -> Refund:
        refund_id = self._store.new_id()
        path = UserPaths(user_id).refund(refund_id)

        async def apply(tx: Transaction) -> Refund:
            refund = Refund(
                id=refund_id,
                name=draft.name,
                amount=draft.amount,
                purpose=draft.purpose,
                contact_number=draft.contact_number or None,
                created_at=tx.timestamp,
                updated_at=tx.timestamp,
            )
            tx.set(path, refund_to_document(refund))
            return refund

        refund = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.REFUND_ADDED, "refund", refund.id, refund.name, refund.amount)
        return refund

    async def _read_refund(self, tx: Transaction, user_id: str, refund_id: str) -> Refund:
        path = UserPaths(user_id).refund(refund_id)
        data = await tx.get(path)
        if data is None:
            raise ObligationNotFound(refund_id)
        return refund_from_document(refund_id, data, path)

    async def mark_received(self, user_id: str, refund_id: str) -> Refund:
        """
        Raises:
            ObligationNotFound: If the refund does not exist
        """
        path = UserPaths(user_id).refund(refund_id)

        async def apply(tx: Transaction) -> Refund:
            current = await self._read_refund(tx, user_id, refund_id)
            refund = current.model_copy(update={
                "status": RefundStatus.RECEIVED,
                "updated_at": tx.timestamp,
            })
            tx.set(path, refund_to_document(refund))
            return refund

        refund = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.REFUND_RECEIVED, "refund", refund.id, refund.name, refund.amount)
        return refund

    async def edit_refund(self, user_id: str, refund_id: str, draft: RefundDraft) -> Refund:
        """Change name, amount, purpose and contact. Status is kept."""
        path = UserPaths(user_id).refund(refund_id)

        async def apply(tx: Transaction) -> Refund:
            current = await self._read_refund(tx, user_id, refund_id)
            refund = Refund(
                id=refund_id,
                name=draft.name,
                amount=draft.amount,
                purpose=draft.purpose,
                contact_number=draft.contact_number or None,
                status=current.status,
                created_at=current.created_at,
                updated_at=tx.timestamp,
            )
            tx.set(path, refund_to_document(refund))
            return refund

        refund = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.OBLIGATION_UPDATED, "refund", refund.id, refund.name, refund.amount)
        return refund

    async def delete_refund(self, user_id: str, refund_id: str) -> Refund:
        path = UserPaths(user_id).refund(refund_id)

        async def apply(tx: Transaction) -> Refund:
            current = await self._read_refund(tx, user_id, refund_id)
            tx.delete(path)
            return current

        refund = await with_transaction(self._store, apply)
        await self._log(user_id, AuditEventType.OBLIGATION_DELETED, "refund", refund.id, refund.name, refund.amount)
        return refund

    async def get_refund(self, user_id: str, refund_id: str) -> Optional[Refund]:
        path = UserPaths(user_id).refund(refund_id)
        data = await self._store.get(path)
        return refund_from_document(refund_id, data, path) if data is not None else None

    async def list_refunds(
        self,
        user_id: str,
        status: Optional[RefundStatus] = None,
    ) -> list[Refund]:
        """Refunds newest first, optionally only those in one status."""
        snapshots = await self._store.list_documents(UserPaths(user_id).refunds)
        refunds = [
            refund_from_document(snap.id, snap.data, snap.path)
            for snap in snapshots
        ]
        if status is not None:
            refunds = [r for r in refunds if r.status == status]
        return sorted(refunds, key=lambda r: r.created_at, reverse=True)

    async def refund_totals(self, user_id: str) -> RefundTotals:
        totals = RefundTotals()
        for refund in await self.list_refunds(user_id):
            if refund.status == RefundStatus.PENDING:
                totals.total_pending += refund.amount
                totals.pending_count += 1
            else:
                totals.total_received += refund.amount
                totals.received_count += 1
        return totals

    async def _log(self, user_id, event_type, kind, obligation_id, name, amount) -> None:
        self._logger.info(
            "obligation_changed",
            user_id=user_id,
            event_type=event_type.value,
            obligation_id=obligation_id,
        )
        if self._audit:
            await self._audit.log_obligation_changed(
                user_id=user_id,
                event_type=event_type,
                kind=kind,
                obligation_id=obligation_id,
                name=name,
                amount=str(amount),
            )
