"""
Derived Aggregate Values

Nothing in this module is persisted. Month windows, day groups and
month totals are computed from stored transactions every time they
are needed.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pocketledger.models.ledger import Transaction, TransactionWithAccount


LedgerItem = Union[TransactionWithAccount, Transaction]


class MonthWindow(BaseModel):
    """
    Inclusive [start, end] range covering one calendar month.

    start is the first day at 00:00:00, end is the last day at 00:00:00.
    Membership is decided by calendar day, so a transaction late on the
    last day still belongs to the window.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode='after')
    def validate_bounds(self) -> 'MonthWindow':
        if self.end < self.start:
            raise ValueError("Window end cannot be before start")
        if (self.start.year, self.start.month) != (self.end.year, self.end.month):
            raise ValueError("Window must cover a single calendar month")
        return self

    @property
    def year(self) -> int:
        return self.start.year

    @property
    def month(self) -> int:
        return self.start.month

    def contains(self, moment: Union[date, datetime]) -> bool:
        """Check whether a date falls in the window, by calendar day."""
        day = moment.date() if isinstance(moment, datetime) else moment
        return self.start.date() <= day <= self.end.date()


class DayGroup(BaseModel):
    """
    Transactions sharing one calendar day, most recent day first.

    daily_total is a net *outflow*: expenses add, income subtracts.
    A positive value means more was spent than earned that day.
    """
    model_config = ConfigDict(frozen=True)

    day: date
    daily_total: Decimal
    transactions: tuple[LedgerItem, ...] = Field(default_factory=tuple)


class MonthlyTotals(BaseModel):
    """Income and expense sums for a month window."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        """Income minus expense. Never stored."""
        return self.income - self.expense
