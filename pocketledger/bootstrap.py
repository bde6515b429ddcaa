"""
Application Wiring

Builds the storage backend, audit logger and services for the
configured backend, and the screen controllers on top of them.
"""

from datetime import date
from typing import Optional

import structlog

from pocketledger.audit.logger import AuditLogger
from pocketledger.config import get_settings
from pocketledger.controllers import TransactionFormController, TransactionListController
from pocketledger.services.accounts import AccountService
from pocketledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from pocketledger.validation import TransactionFormValidator


logger = structlog.get_logger(__name__)


def create_app_components(
    backend: Optional[str] = None,
) -> tuple[LedgerStorageInterface, AuditLogger, AccountService]:
    """
    Factory function to create all application components.

    Args:
        backend: "memory" or "google_sheets".
                 Defaults to the configured storage backend.

    Returns:
        (storage, audit_logger, account_service)
    """
    backend = backend or get_settings().app.storage_backend
    storage = None
    audit_logger = None

    if backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Sheets not configured - continue in memory
            logger.warning("google_sheets_not_configured", error=str(e))
            storage = None
    elif backend != "memory":
        raise ValueError(f"Unknown storage backend: {backend}")

    if storage is None:
        storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    account_service = AccountService(storage, audit_logger)
    logger.info("app_components_created", backend=type(storage).__name__)
    return storage, audit_logger, account_service


def create_transaction_list_controller(
    storage: LedgerStorageInterface,
    audit_logger: Optional[AuditLogger] = None,
    reference_date: Optional[date] = None,
) -> TransactionListController:
    return TransactionListController(
        storage,
        audit_logger=audit_logger,
        reference_date=reference_date,
    )


def create_transaction_form_controller(
    storage: LedgerStorageInterface,
    transaction_id: Optional[int] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> TransactionFormController:
    """Form controller for a new transaction, or for editing transaction_id."""
    return TransactionFormController(
        storage,
        transaction_id=transaction_id,
        audit_logger=audit_logger,
        validator=TransactionFormValidator(),
    )
