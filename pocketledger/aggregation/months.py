"""
Month Windows and Month Navigation

The list screen always shows exactly one calendar month. This module
computes that month's boundaries and moves between months.

DESIGN DECISION: Shifting a month clamps the day of month.
31 January + 1 month is 29 February (or 28th), never 2 March.
relativedelta does the clamping for us.
"""

import calendar
from datetime import date, datetime
from typing import Union

from dateutil.relativedelta import relativedelta

from pocketledger.models.aggregates import MonthWindow


def compute_month_window(reference: Union[date, datetime]) -> MonthWindow:
    """
    Window for the calendar month containing `reference`.

    Any date in the same month gives the same window.
    """
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return MonthWindow(
        start=datetime(reference.year, reference.month, 1),
        end=datetime(reference.year, reference.month, last_day),
    )


def shift_month(current: date, delta: int) -> date:
    """
    Move one month back (delta=-1) or forward (delta=+1).

    The day of month is clamped to the target month's last day.
    """
    if delta not in (-1, 1):
        raise ValueError(f"Month shift must be -1 or +1, got {delta}")
    if isinstance(current, datetime):
        current = current.date()
    return current + relativedelta(months=delta)


class MonthNavigator:
    """
    Holds the month currently being viewed.

    previous() and next() are the only way to change it.
    """

    def __init__(self, reference: Union[date, datetime, None] = None):
        if reference is None:
            reference = date.today()
        elif isinstance(reference, datetime):
            reference = reference.date()
        self._reference = reference

    @property
    def reference_date(self) -> date:
        return self._reference

    @property
    def window(self) -> MonthWindow:
        return compute_month_window(self._reference)

    def previous(self) -> MonthWindow:
        self._reference = shift_month(self._reference, -1)
        return self.window

    def next(self) -> MonthWindow:
        self._reference = shift_month(self._reference, 1)
        return self.window
