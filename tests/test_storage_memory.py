"""Tests for the in-memory ledger and audit storage."""

import asyncio
from datetime import datetime
from decimal import Decimal

import pytest

from pocketledger.models import AuditEventBuilder, TransactionType
from pocketledger.services.storage import (
    ConstraintError,
    DuplicateError,
    InMemoryAuditStorage,
    NotFoundError,
)


class TestAccounts:
    """Account writes and reads."""

    @pytest.mark.asyncio
    async def test_ids_are_assigned_in_order(self, storage):
        assert await storage.insert_account("Cash") == 1
        assert await storage.insert_account("Bank", Decimal("100")) == 2
        accounts = await storage.all_accounts().first()
        assert [a.name for a in accounts] == ["Cash", "Bank"]
        assert accounts[1].initial_balance == Decimal("100")

    @pytest.mark.asyncio
    async def test_missing_account_reads_as_none(self, storage):
        assert await storage.account_by_id(42).first() is None

    @pytest.mark.asyncio
    async def test_update_missing_account(self, storage):
        await storage.insert_account("Cash")
        account = await storage.account_by_id(1).first()
        with pytest.raises(NotFoundError):
            await storage.update_account(account.model_copy(update={"id": 2}))

    @pytest.mark.asyncio
    async def test_delete_cascades(self, storage, make_tx):
        cash = await storage.insert_account("Cash")
        bank = await storage.insert_account("Bank")
        await storage.insert_transaction(make_tx(cash, "10", datetime(2024, 3, 1)))
        kept = await storage.insert_transaction(make_tx(bank, "20", datetime(2024, 3, 1)))

        await storage.delete_account(await storage.account_by_id(cash).first())

        remaining = await storage.transactions_in_range(
            None, datetime(2024, 3, 1), datetime(2024, 3, 31)
        ).first()
        assert [t.id for t in remaining] == [kept]
        assert [a.id for a in await storage.all_accounts().first()] == [bank]

    @pytest.mark.asyncio
    async def test_delete_missing_account_is_noop(self, storage):
        await storage.insert_account("Cash")
        account = await storage.account_by_id(1).first()
        await storage.delete_account(account)
        await storage.delete_account(account)
        assert await storage.all_accounts().first() == []


class TestTransactions:
    """Transaction writes, range queries and sums."""

    @pytest.mark.asyncio
    async def test_insert_requires_account(self, storage, make_tx):
        with pytest.raises(ConstraintError):
            await storage.insert_transaction(make_tx(7, "10", datetime(2024, 3, 1)))

    @pytest.mark.asyncio
    async def test_explicit_duplicate_id(self, storage, make_tx):
        account_id = await storage.insert_account("Cash")
        transaction = make_tx(account_id, "10", datetime(2024, 3, 1)).model_copy(update={"id": 5})
        await storage.insert_transaction(transaction)
        with pytest.raises(DuplicateError):
            await storage.insert_transaction(transaction)
        # Generated ids move past explicit ones
        assert await storage.insert_transaction(make_tx(account_id, "1", datetime(2024, 3, 1))) == 6

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, storage, make_tx):
        account_id = await storage.insert_account("Cash")
        transaction = make_tx(account_id, "10", datetime(2024, 3, 1)).model_copy(update={"id": 3})
        with pytest.raises(NotFoundError):
            await storage.update_transaction(transaction)

    @pytest.mark.asyncio
    async def test_range_is_inclusive_by_day_and_newest_first(self, storage, make_tx):
        account_id = await storage.insert_account("Cash")
        first = await storage.insert_transaction(make_tx(account_id, "1", datetime(2024, 3, 1, 0, 0)))
        last = await storage.insert_transaction(make_tx(account_id, "2", datetime(2024, 3, 31, 23, 30)))
        same_day = await storage.insert_transaction(make_tx(account_id, "3", datetime(2024, 3, 31, 23, 30)))
        await storage.insert_transaction(make_tx(account_id, "4", datetime(2024, 4, 1)))
        await storage.insert_transaction(make_tx(account_id, "5", datetime(2024, 2, 29, 23, 59)))

        items = await storage.transactions_in_range(
            account_id, datetime(2024, 3, 1), datetime(2024, 3, 31)
        ).first()
        assert [i.id for i in items] == [same_day, last, first]
        assert items[0].account.name == "Cash"

    @pytest.mark.asyncio
    async def test_account_filter_and_global_view(self, storage, make_tx):
        cash = await storage.insert_account("Cash")
        bank = await storage.insert_account("Bank")
        await storage.insert_transaction(make_tx(cash, "1", datetime(2024, 3, 2)))
        await storage.insert_transaction(make_tx(bank, "2", datetime(2024, 3, 3)))
        start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)

        assert len(await storage.transactions_in_range(cash, start, end).first()) == 1
        assert len(await storage.transactions_in_range(None, start, end).first()) == 2

    @pytest.mark.asyncio
    async def test_sum_by_type(self, storage, make_tx):
        account_id = await storage.insert_account("Cash")
        start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)
        assert await storage.sum_by_type(account_id, TransactionType.INCOME, start, end).first() == Decimal("0")

        await storage.insert_transaction(make_tx(account_id, "100", datetime(2024, 3, 5)))
        await storage.insert_transaction(make_tx(account_id, "20", datetime(2024, 3, 1)))
        await storage.insert_transaction(
            make_tx(account_id, "40", datetime(2024, 3, 5), TransactionType.INCOME)
        )
        expense = await storage.sum_by_type(account_id, TransactionType.EXPENSE, start, end).first()
        income = await storage.sum_by_type(None, TransactionType.INCOME, start, end).first()
        assert (income, expense) == (Decimal("40"), Decimal("120"))

    @pytest.mark.asyncio
    async def test_live_query_follows_writes(self, storage, make_tx):
        account_id = await storage.insert_account("Cash")
        iterator = storage.transactions_in_range(
            account_id, datetime(2024, 3, 1), datetime(2024, 3, 31)
        ).__aiter__()
        assert await iterator.__anext__() == []

        transaction_id = await storage.insert_transaction(make_tx(account_id, "9", datetime(2024, 3, 9)))
        assert [i.id for i in await asyncio.wait_for(iterator.__anext__(), 1)] == [transaction_id]

        stored = await storage.transaction_by_id(transaction_id).first()
        await storage.delete_transaction(stored)
        assert await asyncio.wait_for(iterator.__anext__(), 1) == []
        await iterator.aclose()


class TestAuditStorage:
    """Tests for InMemoryAuditStorage."""

    @pytest.mark.asyncio
    async def test_events_by_entity_and_recent(self):
        audit = InMemoryAuditStorage()
        await audit.append_event(AuditEventBuilder.transaction_deleted(transaction_id=1))
        await audit.append_event(AuditEventBuilder.transaction_deleted(transaction_id=2))
        await audit.append_event(AuditEventBuilder.account_created(1, "Cash", "0"))

        events = await audit.get_events_by_entity("transaction", 2)
        assert [e.entity_id for e in events] == [2]

        recent = await audit.get_recent_events(limit=2)
        assert len(recent) == 2
        assert recent[0].entity_type == "account"
