"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the system must conform to these schemas.
"""

from pocketledger.models.ledger import (
    NEW_ID,
    Account,
    Transaction,
    TransactionType,
    TransactionWithAccount,
)
from pocketledger.models.aggregates import (
    DayGroup,
    LedgerItem,
    MonthlyTotals,
    MonthWindow,
)
from pocketledger.models.state import (
    SaveOutcome,
    SaveResult,
    TransactionFormState,
    TransactionListState,
)
from pocketledger.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from pocketledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger records
    "NEW_ID",
    "Account",
    "Transaction",
    "TransactionType",
    "TransactionWithAccount",
    # Derived values
    "DayGroup",
    "LedgerItem",
    "MonthlyTotals",
    "MonthWindow",
    # Screen state
    "SaveOutcome",
    "SaveResult",
    "TransactionFormState",
    "TransactionListState",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
