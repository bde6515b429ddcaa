"""
Core Ledger Records

Accounts and the income/expense transactions recorded against them.

DESIGN DECISION: Amounts are stored unsigned. Whether a transaction adds
to or takes from a total is decided by its type, never by the sign of
the stored value.

Records are frozen: a change is a new record (model_copy) handed back
to storage, so a snapshot holding a record can never see it mutate.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Id value meaning "not stored yet - storage assigns one on insert"
NEW_ID = 0


class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class Account(BaseModel):
    """
    A place money is kept (cash, bank, card).

    Deleting an account deletes its transactions; storage enforces that.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        default=NEW_ID,
        ge=0,
        description="Storage-assigned identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display name (e.g., 'Main Bank')"
    )
    initial_balance: Decimal = Field(
        default=Decimal("0"),
        description="Starting balance, may be negative"
    )

    @field_validator('name')
    @classmethod
    def reject_blank_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Account name cannot be blank")
        return v


class Transaction(BaseModel):
    """
    A single income or expense entry.

    Only the calendar day of `date` matters for grouping and month
    ranges; the time of day is kept but never compared. A timezone on
    `date` is dropped, keeping the wall-clock time it was given in.
    """
    model_config = ConfigDict(frozen=True)

    id: int = Field(
        default=NEW_ID,
        ge=0,
        description="Storage-assigned identifier"
    )
    title: str = Field(
        ...,
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Unsigned amount; the type carries the direction"
    )
    category: str = Field(
        default="",
        max_length=100,
        description="Free-text category"
    )
    date: datetime
    type: TransactionType
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    account_id: int = Field(
        ...,
        ge=1,
        description="Owning account"
    )

    @field_validator('date')
    @classmethod
    def drop_timezone(cls, v: datetime) -> datetime:
        """Keep the wall-clock time as entered; dates are compared naive."""
        if v.tzinfo is not None:
            return v.replace(tzinfo=None)
        return v

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it moves the account balance (income +, expense -)."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount


class TransactionWithAccount(BaseModel):
    """A transaction joined with the account it belongs to."""
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    account: Account

    @property
    def id(self) -> int:
        return self.transaction.id

    @property
    def date(self) -> datetime:
        return self.transaction.date
