"""Tests for the audit logger."""

import logging
from decimal import Decimal

import pytest
import structlog

from pocketledger.audit import AuditLogger, configure_logging, create_correlation_id
from pocketledger.models import AuditEventType, AuditSeverity, ValidationIssue
from pocketledger.services.storage import InMemoryAuditStorage


class FailingAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise RuntimeError("audit sheet unavailable")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_persists_events(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        assert await audit_logger.log_transaction_saved(
            transaction_id=3,
            amount=Decimal("12.50"),
            transaction_type="expense",
            account_id=1,
            is_new=True,
            correlation_id=correlation_id,
        )
        events = await audit_storage.get_events_by_entity("transaction", 3)
        assert events[0].event_type == AuditEventType.TRANSACTION_CREATED
        assert events[0].details["amount"] == "12.50"
        assert events[0].correlation_id == correlation_id

    @pytest.mark.asyncio
    async def test_local_only_logger(self):
        assert await AuditLogger().log_error("unexpected", "boom") is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_raised(self):
        audit_logger = AuditLogger(FailingAuditStorage())
        assert await audit_logger.log_transaction_deleted(transaction_id=1) is False

    @pytest.mark.asyncio
    async def test_validation_failure_lists_error_fields(self, audit_logger, audit_storage):
        issues = [
            ValidationIssue(field="title", issue_type="missing", message="Title is required", severity="error"),
            ValidationIssue(field="date", issue_type="future_date", message="Future", severity="warning"),
        ]
        await audit_logger.log_validation_failed(issues)
        event = (await audit_storage.get_recent_events())[0]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.description.endswith("title")
        assert len(event.details["issues"]) == 2

    @pytest.mark.asyncio
    async def test_account_events(self, audit_logger, audit_storage):
        await audit_logger.log_account_created(1, "Cash", Decimal("0"))
        await audit_logger.log_account_updated(1, "Wallet")
        await audit_logger.log_account_deleted(1, "Wallet")
        events = await audit_storage.get_events_by_entity("account", 1)
        assert [e.event_type for e in events] == [
            AuditEventType.ACCOUNT_CREATED,
            AuditEventType.ACCOUNT_UPDATED,
            AuditEventType.ACCOUNT_DELETED,
        ]

    @pytest.mark.asyncio
    async def test_storage_error_event(self, audit_logger, audit_storage):
        await audit_logger.log_storage_error(
            operation="insert_transaction",
            error_message="Account 9 does not exist",
            entity_type="transaction",
        )
        event = (await audit_storage.get_recent_events())[0]
        assert event.event_type == AuditEventType.STORAGE_ERROR
        assert event.error_message == "Account 9 does not exist"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_debug_mode_overrides_level_and_format(self):
        try:
            configure_logging("WARNING", "json", debug_mode=True)
            assert logging.getLogger().level == logging.DEBUG
            processors = structlog.get_config()["processors"]
            assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        finally:
            configure_logging()

    def test_level_and_format_from_arguments(self):
        try:
            configure_logging("WARNING", "json")
            assert logging.getLogger().level == logging.WARNING
            processors = structlog.get_config()["processors"]
            assert isinstance(processors[-1], structlog.processors.JSONRenderer)
        finally:
            configure_logging()
