"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in memory, in Google Sheets, or in a database later
2. Use in-memory storage for testing
3. Keep screen controllers decoupled from the storage implementation

Writes are one-shot coroutines. Reads are live queries: they emit the
current result, then re-emit whenever a write changes the data they
depend on.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from pocketledger.models.audit import AuditEvent
from pocketledger.models.ledger import (
    Account,
    Transaction,
    TransactionType,
    TransactionWithAccount,
)

if TYPE_CHECKING:
    from pocketledger.reactive.streams import LiveQuery


class LedgerStorageInterface(ABC):
    """
    Abstract interface for account and transaction storage.

    Any storage implementation (in-memory, Google Sheets, SQLite, etc.)
    must implement these methods.
    """

    # --- Accounts ---

    @abstractmethod
    async def insert_account(
        self,
        name: str,
        initial_balance: Decimal = Decimal("0"),
    ) -> int:
        """
        Create an account.

        Returns:
            The id storage assigned to the new account
        """
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> None:
        """
        Replace a stored account.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        pass

    @abstractmethod
    async def delete_account(self, account: Account) -> None:
        """
        Delete an account and every transaction that belongs to it.

        Deleting an account that doesn't exist is a no-op.
        """
        pass

    @abstractmethod
    def all_accounts(self) -> "LiveQuery[list[Account]]":
        """All accounts, in insertion order."""
        pass

    @abstractmethod
    def account_by_id(self, account_id: int) -> "LiveQuery[Optional[Account]]":
        """One account, or None when no account has this id."""
        pass

    # --- Transactions ---

    @abstractmethod
    async def insert_transaction(self, transaction: Transaction) -> int:
        """
        Store a new transaction.

        A transaction with id NEW_ID gets a storage-assigned id.

        Returns:
            The id of the stored transaction

        Raises:
            ConstraintError: If the owning account doesn't exist
            DuplicateError: If the given id is already taken
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> None:
        """
        Replace a stored transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ConstraintError: If the owning account doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction: Transaction) -> None:
        """Delete a transaction. Deleting a missing one is a no-op."""
        pass

    @abstractmethod
    def transaction_by_id(self, transaction_id: int) -> "LiveQuery[Optional[Transaction]]":
        """One transaction, or None when no transaction has this id."""
        pass

    @abstractmethod
    def transactions_in_range(
        self,
        account_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> "LiveQuery[list[TransactionWithAccount]]":
        """
        Transactions dated within [start, end], joined with their account.

        Args:
            account_id: Only this account's transactions; None for all accounts
            start: First day of the range (inclusive)
            end: Last day of the range (inclusive, whole day)

        Returns:
            Live list ordered by date descending (most recent first)
        """
        pass

    @abstractmethod
    def sum_by_type(
        self,
        account_id: Optional[int],
        transaction_type: TransactionType,
        start: datetime,
        end: datetime,
    ) -> "LiveQuery[Decimal]":
        """
        Total amount of one transaction type within [start, end].

        Transactions whose account no longer exists are left out, the
        same rows transactions_in_range leaves out.
        Emits Decimal("0") when nothing matches.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific record.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConstraintError(StorageError):
    """A write would break a relationship (e.g. a transaction without its account)."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
