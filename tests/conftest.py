"""
Shared fixtures.

No test touches the network: ledgers live in memory, and the Google
Sheets backend runs against fake worksheets.
"""

import asyncio
import contextlib
from datetime import datetime
from decimal import Decimal

import pytest

from pocketledger.audit.logger import AuditLogger
from pocketledger.models.ledger import NEW_ID, Transaction, TransactionType
from pocketledger.reactive import LiveQuery
from pocketledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    StorageError,
)
from pocketledger.services.storage.base import ACCOUNTS


class RecordingStorage(InMemoryLedgerStorage):
    """In-memory storage that remembers every write it was asked to do."""

    def __init__(self):
        super().__init__()
        self.writes: list[tuple[str, object]] = []

    async def insert_transaction(self, transaction):
        self.writes.append(("insert_transaction", transaction))
        return await super().insert_transaction(transaction)

    async def update_transaction(self, transaction):
        self.writes.append(("update_transaction", transaction))
        await super().update_transaction(transaction)

    async def delete_transaction(self, transaction):
        self.writes.append(("delete_transaction", transaction))
        await super().delete_transaction(transaction)


class BrokenTransactionsStorage(InMemoryLedgerStorage):
    """Accounts load fine; every transaction read fails."""

    async def _load_transactions(self):
        raise StorageError("transactions table is unreadable")


class CorruptTransactionsStorage(InMemoryLedgerStorage):
    """Every transaction read trips over a bad record."""

    async def _load_transactions(self):
        raise TypeError("unorderable transaction dates")


class FlakyAccountsStorage(InMemoryLedgerStorage):
    """The first accounts stream opened fails; later ones work."""

    def __init__(self):
        super().__init__()
        self.account_stream_failures = 1

    def all_accounts(self):
        if self.account_stream_failures:
            self.account_stream_failures -= 1

            async def fail():
                raise StorageError("accounts table is locked")

            return LiveQuery(self._notifier, [ACCOUNTS], fail)
        return super().all_accounts()


def make_transaction(
    account_id: int,
    amount: str,
    when: datetime,
    transaction_type: TransactionType = TransactionType.EXPENSE,
    title: str = "Entry",
    category: str = "",
) -> Transaction:
    return Transaction(
        id=NEW_ID,
        title=title,
        amount=Decimal(amount),
        category=category,
        date=when,
        type=transaction_type,
        account_id=account_id,
    )


@pytest.fixture
def make_tx():
    return make_transaction


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def recording_storage():
    return RecordingStorage()


@pytest.fixture
def broken_storage():
    return BrokenTransactionsStorage()


@pytest.fixture
def corrupt_storage():
    return CorruptTransactionsStorage()


@pytest.fixture
def flaky_storage():
    return FlakyAccountsStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def wait_for_state():
    """Await the first snapshot of a controller matching a predicate."""

    async def wait(controller, predicate, timeout: float = 2.0):
        async def watch():
            async with contextlib.aclosing(controller.states()) as states:
                async for state in states:
                    if predicate(state):
                        return state

        return await asyncio.wait_for(watch(), timeout)

    return wait


@pytest.fixture
def eventually():
    """Poll an async condition until it holds."""

    async def check(condition, timeout: float = 2.0):
        async def poll():
            while not await condition():
                await asyncio.sleep(0.01)

        await asyncio.wait_for(poll(), timeout)

    return check
