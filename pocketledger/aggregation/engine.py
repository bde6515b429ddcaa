"""
Aggregation Engine

Turns a month's worth of transactions into what the list screen shows:
day groups with a per-day total, and income/expense/net for the month.

TWO SIGN CONVENTIONS - keep them apart:
- Day totals are net OUTFLOW: expenses add, income subtracts.
  A day with more spending than income shows a positive total.
- Month totals are net INFLOW: income minus expense.

Both functions are pure. Storage does the filtering and the
date-descending ordering; this module only groups and sums.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Sequence, Union

from pocketledger.models.aggregates import DayGroup, LedgerItem, MonthlyTotals
from pocketledger.models.ledger import Transaction, TransactionType, TransactionWithAccount


def _record(item: LedgerItem) -> Transaction:
    if isinstance(item, TransactionWithAccount):
        return item.transaction
    return item


def day_key(moment: Union[date, datetime]) -> date:
    """Calendar day of a moment, time of day dropped."""
    if isinstance(moment, datetime):
        return moment.date()
    return moment


def daily_net_outflow(items: Iterable[LedgerItem]) -> Decimal:
    """Sum of expenses minus sum of income."""
    total = Decimal("0")
    for item in items:
        transaction = _record(item)
        if transaction.type == TransactionType.EXPENSE:
            total += transaction.amount
        else:
            total -= transaction.amount
    return total


def group_by_day(items: Sequence[LedgerItem]) -> list[DayGroup]:
    """
    Group transactions by calendar day.

    Groups come out in the order their first transaction appears in
    `items`, and each group keeps the input order of its members. With
    the date-descending input storage produces, that means most recent
    day first.

    Accepts plain transactions or transactions joined with their account;
    the groups hold whatever was passed in.
    """
    buckets: dict[date, list[LedgerItem]] = {}
    for item in items:
        buckets.setdefault(day_key(_record(item).date), []).append(item)

    return [
        DayGroup(
            day=day,
            daily_total=daily_net_outflow(members),
            transactions=tuple(members),
        )
        for day, members in buckets.items()
    ]


def monthly_totals(income_sum: Decimal, expense_sum: Decimal) -> MonthlyTotals:
    """Month totals from the two already-aggregated sums. No rounding, no clamping."""
    return MonthlyTotals(income=income_sum, expense=expense_sum)
