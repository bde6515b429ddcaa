"""
In-Memory Storage Implementation

The default backend, and the one the tests run against. Records live
in insertion-ordered dicts; ids are handed out from 1 upwards, the way
an autoincrement column would.
"""

import itertools
from decimal import Decimal

import structlog

from pocketledger.models.audit import AuditEvent
from pocketledger.models.ledger import NEW_ID, Account, Transaction
from pocketledger.services.storage.base import (
    ACCOUNTS,
    TRANSACTIONS,
    SnapshotLedgerStorage,
)
from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    ConstraintError,
    DuplicateError,
    NotFoundError,
)


logger = structlog.get_logger(__name__)


class InMemoryLedgerStorage(SnapshotLedgerStorage):
    """Dict-backed ledger storage."""

    def __init__(self):
        super().__init__()
        self._accounts: dict[int, Account] = {}
        self._transactions: dict[int, Transaction] = {}
        self._account_ids = itertools.count(1)
        self._transaction_ids = itertools.count(1)

    async def _load_accounts(self) -> list[Account]:
        return list(self._accounts.values())

    async def _load_transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    # --- Accounts ---

    async def insert_account(
        self,
        name: str,
        initial_balance: Decimal = Decimal("0"),
    ) -> int:
        account_id = next(self._account_ids)
        self._accounts[account_id] = Account(
            id=account_id,
            name=name,
            initial_balance=initial_balance,
        )
        logger.debug("account_inserted", account_id=account_id)
        self._changed(ACCOUNTS)
        return account_id

    async def update_account(self, account: Account) -> None:
        if account.id not in self._accounts:
            raise NotFoundError(f"Account not found: {account.id}")
        self._accounts[account.id] = account
        self._changed(ACCOUNTS)

    async def delete_account(self, account: Account) -> None:
        if self._accounts.pop(account.id, None) is None:
            return
        orphaned = [
            t.id for t in self._transactions.values()
            if t.account_id == account.id
        ]
        for transaction_id in orphaned:
            del self._transactions[transaction_id]
        logger.debug(
            "account_deleted",
            account_id=account.id,
            cascaded_transactions=len(orphaned),
        )
        self._changed(ACCOUNTS, TRANSACTIONS)

    # --- Transactions ---

    async def insert_transaction(self, transaction: Transaction) -> int:
        self._check_account(transaction)
        if transaction.id == NEW_ID:
            transaction_id = next(self._transaction_ids)
            transaction = transaction.model_copy(update={"id": transaction_id})
        elif transaction.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {transaction.id}")
        else:
            transaction_id = transaction.id
            # Keep generated ids clear of explicitly chosen ones
            self._transaction_ids = itertools.count(
                max(transaction_id, *self._transactions.keys(), 0) + 1
            )
        self._transactions[transaction_id] = transaction
        logger.debug("transaction_inserted", transaction_id=transaction_id)
        self._changed(TRANSACTIONS)
        return transaction_id

    async def update_transaction(self, transaction: Transaction) -> None:
        if transaction.id not in self._transactions:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._check_account(transaction)
        self._transactions[transaction.id] = transaction
        logger.debug("transaction_updated", transaction_id=transaction.id)
        self._changed(TRANSACTIONS)

    async def delete_transaction(self, transaction: Transaction) -> None:
        if self._transactions.pop(transaction.id, None) is None:
            return
        logger.debug("transaction_deleted", transaction_id=transaction.id)
        self._changed(TRANSACTIONS)

    def _check_account(self, transaction: Transaction) -> None:
        if transaction.account_id not in self._accounts:
            raise ConstraintError(
                f"Account {transaction.account_id} does not exist"
            )


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit log kept in a list. Append-only."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(reversed(self._events), key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
