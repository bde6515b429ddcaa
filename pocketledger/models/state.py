"""
Screen State Snapshots

Each screen controller publishes one of these. A snapshot is immutable
and is always replaced wholesale - readers never see a half-updated
state.

Net totals are properties computed from the income and expense
fields; they are never stored independently.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from pocketledger.models.aggregates import DayGroup, MonthlyTotals, MonthWindow
from pocketledger.models.ledger import (
    NEW_ID,
    Account,
    TransactionType,
    TransactionWithAccount,
)
from pocketledger.models.validation import ValidationIssue


class TransactionListState(BaseModel):
    """Snapshot behind the month-by-month transaction list."""
    model_config = ConfigDict(frozen=True)

    reference_date: date
    window: MonthWindow
    selected_account_id: Optional[int] = None
    accounts: tuple[Account, ...] = ()
    transactions: tuple[TransactionWithAccount, ...] = ()
    day_groups: tuple[DayGroup, ...] = ()
    income_total: Decimal = Decimal("0")
    expense_total: Decimal = Decimal("0")
    is_loading: bool = True
    error_message: Optional[str] = None

    @property
    def net_total(self) -> Decimal:
        return self.income_total - self.expense_total

    @property
    def totals(self) -> MonthlyTotals:
        return MonthlyTotals(income=self.income_total, expense=self.expense_total)

    @property
    def selected_account(self) -> Optional[Account]:
        for account in self.accounts:
            if account.id == self.selected_account_id:
                return account
        return None

    @property
    def is_empty(self) -> bool:
        """Loaded, and nothing recorded in this window."""
        return not self.is_loading and not self.transactions


class TransactionFormState(BaseModel):
    """
    Transient fields of the add/edit transaction form.

    amount is kept as the text the user typed; it is only parsed on save.
    """
    model_config = ConfigDict(frozen=True)

    id: int = NEW_ID
    title: str = ""
    amount: str = ""
    category: str = ""
    description: Optional[str] = None
    date: datetime = Field(default_factory=datetime.now)
    transaction_type: TransactionType = TransactionType.EXPENSE
    accounts: tuple[Account, ...] = ()
    selected_account_id: Optional[int] = None
    is_editing: bool = False
    is_loading: bool = True
    has_been_saved: bool = False
    validation_issues: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()
    error_message: Optional[str] = None


class SaveOutcome(str, Enum):
    """How a save attempt ended."""
    SAVED = "saved"
    VALIDATION_FAILED = "validation_failed"
    STORAGE_FAILED = "storage_failed"


class SaveResult(BaseModel):
    """Result of TransactionFormController.save()."""
    model_config = ConfigDict(frozen=True)

    outcome: SaveOutcome
    transaction_id: Optional[int] = None
    issues: tuple[ValidationIssue, ...] = ()
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == SaveOutcome.SAVED

    @property
    def failed_fields(self) -> list[str]:
        return [issue.field for issue in self.issues if issue.severity == "error"]
