"""Grouping, totals and month arithmetic for the transaction list."""

from pocketledger.aggregation.engine import (
    daily_net_outflow,
    day_key,
    group_by_day,
    monthly_totals,
)
from pocketledger.aggregation.months import (
    MonthNavigator,
    compute_month_window,
    shift_month,
)

__all__ = [
    "daily_net_outflow",
    "day_key",
    "group_by_day",
    "monthly_totals",
    "MonthNavigator",
    "compute_month_window",
    "shift_month",
]
