"""
Audit Logger

DESIGN DECISION: Every write to the ledger is logged, and so is every
write that failed. This provides:
1. A history of what changed in which account
2. Debugging information when a storage backend misbehaves
3. A record of rejected form submissions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketledger.config import get_settings
from pocketledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from pocketledger.models.validation import ValidationIssue
from pocketledger.services.storage import AuditStorageInterface


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    debug_mode: bool = False,
) -> None:
    """Set up structlog on top of the stdlib root logger.

    debug_mode overrides both the level and the format.
    """
    if debug_mode:
        log_level, log_format = "DEBUG", "console"
    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level))
    logging.getLogger().setLevel(getattr(logging, log_level))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure structlog for local logging
_app_settings = get_settings().app
configure_logging(
    _app_settings.log_level,
    _app_settings.log_format,
    _app_settings.debug_mode,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (in memory or a Google Sheets tab)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_account_created(
        self,
        account_id: int,
        name: str,
        initial_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        event = AuditEventBuilder.account_created(
            account_id=account_id,
            name=name,
            initial_balance=str(initial_balance),
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_account_updated(
        self,
        account_id: int,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        event = AuditEventBuilder.account_updated(
            account_id=account_id,
            name=name,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_account_deleted(
        self,
        account_id: int,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        event = AuditEventBuilder.account_deleted(
            account_id=account_id,
            name=name,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_transaction_saved(
        self,
        transaction_id: int,
        amount: Decimal,
        transaction_type: str,
        account_id: int,
        is_new: bool,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log a transaction insert (is_new) or update."""
        event = AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            amount=str(amount),
            transaction_type=transaction_type,
            account_id=account_id,
            is_new=is_new,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_validation_failed(
        self,
        issues: list[ValidationIssue],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log a rejected form, one entry per failing field."""
        fields = []
        for issue in issues:
            if issue.severity == "error" and issue.field not in fields:
                fields.append(issue.field)
        event = AuditEventBuilder.validation_failed(
            fields=fields,
            issues=[issue.model_dump() for issue in issues],
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log a storage fault caught at a controller boundary."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        return await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        return await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a save).
    Pass it through all subsequent operations.
    """
    return uuid4()
