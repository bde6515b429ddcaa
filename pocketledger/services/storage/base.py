"""
Snapshot-Based Ledger Storage

Backends that can load all accounts and all transactions cheaply
(memory, a spreadsheet) share their read side: every live query is a
filter over the two snapshots, re-run when a write notifies the
tables it touched.
"""

from abc import abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pocketledger.models.ledger import (
    Account,
    Transaction,
    TransactionType,
    TransactionWithAccount,
)
from pocketledger.reactive.streams import ChangeNotifier, LiveQuery
from pocketledger.services.storage.interface import LedgerStorageInterface


ACCOUNTS = "accounts"
TRANSACTIONS = "transactions"


def in_range(transaction: Transaction, start: datetime, end: datetime) -> bool:
    """Inclusive range check by calendar day."""
    return start.date() <= transaction.date.date() <= end.date()


def newest_first(transactions: list[Transaction]) -> list[Transaction]:
    """Date descending; the most recently stored first on identical dates."""
    return sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)


class SnapshotLedgerStorage(LedgerStorageInterface):
    """
    Read side of a ledger backend, built on two snapshot loads.

    Subclasses implement the writes plus _load_accounts() and
    _load_transactions(), and call _changed() after every write.
    """

    def __init__(self):
        self._notifier = ChangeNotifier()

    @abstractmethod
    async def _load_accounts(self) -> list[Account]:
        """All accounts in insertion order."""
        pass

    @abstractmethod
    async def _load_transactions(self) -> list[Transaction]:
        """All transactions, any order."""
        pass

    def _changed(self, *tables: str) -> None:
        self._notifier.notify(*tables)

    # --- Live queries ---

    def all_accounts(self) -> LiveQuery[list[Account]]:
        return LiveQuery(self._notifier, [ACCOUNTS], self._load_accounts)

    def account_by_id(self, account_id: int) -> LiveQuery[Optional[Account]]:
        async def fetch() -> Optional[Account]:
            for account in await self._load_accounts():
                if account.id == account_id:
                    return account
            return None

        return LiveQuery(self._notifier, [ACCOUNTS], fetch)

    def transaction_by_id(self, transaction_id: int) -> LiveQuery[Optional[Transaction]]:
        async def fetch() -> Optional[Transaction]:
            for transaction in await self._load_transactions():
                if transaction.id == transaction_id:
                    return transaction
            return None

        return LiveQuery(self._notifier, [TRANSACTIONS], fetch)

    def transactions_in_range(
        self,
        account_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> LiveQuery[list[TransactionWithAccount]]:
        async def fetch() -> list[TransactionWithAccount]:
            accounts = {account.id: account for account in await self._load_accounts()}
            matching = [
                t for t in await self._load_transactions()
                if (account_id is None or t.account_id == account_id)
                and in_range(t, start, end)
                and t.account_id in accounts
            ]
            return [
                TransactionWithAccount(transaction=t, account=accounts[t.account_id])
                for t in newest_first(matching)
            ]

        return LiveQuery(self._notifier, [ACCOUNTS, TRANSACTIONS], fetch)

    def sum_by_type(
        self,
        account_id: Optional[int],
        transaction_type: TransactionType,
        start: datetime,
        end: datetime,
    ) -> LiveQuery[Decimal]:
        async def fetch() -> Decimal:
            account_ids = {account.id for account in await self._load_accounts()}
            total = Decimal("0")
            for t in await self._load_transactions():
                if (
                    t.type == transaction_type
                    and t.account_id in account_ids
                    and (account_id is None or t.account_id == account_id)
                    and in_range(t, start, end)
                ):
                    total += t.amount
            return total

        return LiveQuery(self._notifier, [ACCOUNTS, TRANSACTIONS], fetch)
