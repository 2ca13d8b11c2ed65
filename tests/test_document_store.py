"""
Tests for the transactional document store contract.

Run against the in-memory backend; the Google Sheets backend follows
the same contract with a single batch_update per commit.
"""

import pytest

from src.ledger import TransactionFailed, with_transaction
from src.services.storage import (
    DocumentSnapshot,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    TransactionConflictError,
)
from src.services.storage.interface import parent_path
from src.services.storage.paths import UserPaths


DOC = "users/u1/things/a"
OTHER = "users/u1/things/b"


class TestPaths:
    def test_user_paths_layout(self):
        paths = UserPaths("u1")
        assert paths.bank_account("b1") == "users/u1/paymentSources/bankAccounts/b1"
        assert paths.credit_card("c1") == "users/u1/paymentSources/creditCards/c1"
        assert paths.cash == "users/u1/paymentSources/cash"
        assert paths.expense("e1") == "users/u1/expenses/e1"
        assert paths.advance("a1") == "users/u1/obligations/advances/a1"
        assert paths.refund("r1") == "users/u1/obligations/refunds/r1"

    def test_user_id_must_be_a_single_segment(self):
        with pytest.raises(ValueError):
            UserPaths("")
        with pytest.raises(ValueError):
            UserPaths("a/b")

    def test_parent_path(self):
        assert parent_path(DOC) == "users/u1/things"
        assert DocumentSnapshot(path=DOC, data={}).id == "a"


class TestTransactions:
    @pytest.mark.asyncio
    async def test_reads_see_own_writes_but_store_does_not(self, store):
        seen = {}

        async def fn(tx):
            tx.set(DOC, {"n": 1})
            seen["inside"] = await tx.get(DOC)
            seen["committed"] = await store.get(DOC)

        await store.run_transaction(fn)
        assert seen["inside"] == {"n": 1}
        assert seen["committed"] is None
        assert await store.get(DOC) == {"n": 1}

    @pytest.mark.asyncio
    async def test_all_writes_commit_together(self, store):
        async def fn(tx):
            tx.set(DOC, {"n": 1})
            tx.set(OTHER, {"n": 2})

        await store.run_transaction(fn)
        docs = await store.list_documents("users/u1/things")
        assert sorted(d.data["n"] for d in docs) == [1, 2]

    @pytest.mark.asyncio
    async def test_exception_aborts_without_writing(self, store):
        async def fn(tx):
            tx.set(DOC, {"n": 1})
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(fn)
        assert await store.get(DOC) is None

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, store):
        await store.run_transaction(lambda tx: _set(tx, DOC, {"a": 1, "b": 2}))

        async def fn(tx):
            await tx.get(DOC)
            tx.update(DOC, {"b": 3})

        await store.run_transaction(fn)
        assert await store.get(DOC) == {"a": 1, "b": 3}

    @pytest.mark.asyncio
    async def test_update_of_missing_document_fails(self, store):
        async def fn(tx):
            await tx.get(DOC)
            tx.update(DOC, {"b": 3})

        with pytest.raises(NotFoundError):
            await store.run_transaction(fn)

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.run_transaction(lambda tx: _set(tx, DOC, {"a": 1}))

        async def fn(tx):
            tx.delete(DOC)
            assert await tx.get(DOC) is None

        await store.run_transaction(fn)
        assert await store.get(DOC) is None

    @pytest.mark.asyncio
    async def test_returned_documents_are_copies(self, store):
        await store.run_transaction(lambda tx: _set(tx, DOC, {"items": [1]}))
        data = await store.get(DOC)
        data["items"].append(2)
        assert await store.get(DOC) == {"items": [1]}


class TestConflicts:
    @pytest.mark.asyncio
    async def test_conflicting_commit_is_retried(self, store):
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 10}))
        attempts = []

        async def fn(tx):
            attempts.append(1)
            data = await tx.get(DOC)
            if len(attempts) == 1:
                # Another writer gets in between our read and our commit
                await store.run_transaction(lambda other: _set(other, DOC, {"n": 20}))
            tx.set(DOC, {"n": data["n"] + 1})

        await store.run_transaction(fn)
        assert len(attempts) == 2
        assert await store.get(DOC) == {"n": 21}

    @pytest.mark.asyncio
    async def test_creating_the_same_document_twice_conflicts(self, store):
        attempts = []

        async def fn(tx):
            attempts.append(1)
            existing = await tx.get(DOC)
            if len(attempts) == 1:
                await store.run_transaction(lambda other: _set(other, DOC, {"n": 1}))
            tx.set(DOC, {"n": (existing or {"n": 0})["n"] + 5})

        await store.run_transaction(fn)
        assert await store.get(DOC) == {"n": 6}

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_conflict(self):
        store = InMemoryDocumentStore(max_attempts=3, retry_wait_seconds=0.0)
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 0}))
        attempts = []

        async def fn(tx):
            attempts.append(1)
            await tx.get(DOC)
            await store.run_transaction(lambda other: _set(other, DOC, {"n": len(attempts)}))
            tx.set(DOC, {"n": -1})

        with pytest.raises(TransactionConflictError):
            await store.run_transaction(fn)
        assert len(attempts) == 3
        assert (await store.get(DOC))["n"] == 3

    @pytest.mark.asyncio
    async def test_with_transaction_reports_exhaustion_as_transaction_failed(self):
        store = InMemoryDocumentStore(max_attempts=2, retry_wait_seconds=0.0)
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 0}))

        async def fn(tx):
            await tx.get(DOC)
            await store.run_transaction(lambda other: _set(other, DOC, {"n": 1}))
            tx.set(DOC, {"n": -1})

        with pytest.raises(TransactionFailed) as exc_info:
            await with_transaction(store, fn)
        assert isinstance(exc_info.value.cause, TransactionConflictError)

    @pytest.mark.asyncio
    async def test_with_transaction_wraps_storage_errors(self, store):
        async def fn(tx):
            raise StorageError("disk on fire")

        with pytest.raises(TransactionFailed):
            await with_transaction(store, fn)


class TestSubscriptions:
    @pytest.mark.asyncio
    async def test_subscriber_gets_current_state_then_updates(self, store):
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 1}))
        received = []

        subscription = await store.subscribe(
            "users/u1/things",
            lambda docs: received.append(sorted(d.id for d in docs)),
        )
        await store.run_transaction(lambda tx: _set(tx, OTHER, {"n": 2}))

        assert received == [["a"], ["a", "b"]]

        subscription.cancel()
        await store.run_transaction(lambda tx: _set(tx, "users/u1/things/c", {"n": 3}))
        assert len(received) == 2

    @pytest.mark.asyncio
    async def test_async_callbacks_are_awaited(self, store):
        received = []

        async def callback(docs):
            received.append(len(docs))

        await store.subscribe("users/u1/things", callback)
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 1}))
        assert received == [0, 1]

    @pytest.mark.asyncio
    async def test_other_collections_do_not_notify(self, store):
        received = []
        await store.subscribe("users/u1/things", received.append)
        await store.run_transaction(lambda tx: _set(tx, "users/u1/other/x", {"n": 1}))
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_subscriber_never_sees_uncommitted_writes(self, store):
        received = []
        await store.subscribe("users/u1/things", lambda docs: received.append(len(docs)))

        async def fn(tx):
            tx.set(DOC, {"n": 1})
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            await store.run_transaction(fn)
        assert received == [0]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_fail_the_commit(self, store):
        calls = []

        def callback(docs):
            calls.append(1)
            if len(calls) > 1:
                raise ValueError("listener broke")

        await store.subscribe("users/u1/things", callback)
        await store.run_transaction(lambda tx: _set(tx, DOC, {"n": 1}))
        assert await store.get(DOC) == {"n": 1}
        assert len(calls) == 2


async def _set(tx, path, data):
    tx.set(path, data)
