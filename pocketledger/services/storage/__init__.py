"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Ships an in-memory backend and a Google Sheets backend; both are swappable.
"""

from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ConstraintError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from pocketledger.services.storage.base import SnapshotLedgerStorage
from pocketledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)
from pocketledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    "SnapshotLedgerStorage",
    # Exceptions
    "ConnectionError",
    "ConstraintError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
]
