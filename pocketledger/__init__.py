"""
Pocket Ledger - Source Package

A personal-finance ledger: accounts, income/expense transactions,
and the month-by-month view built from them.

DESIGN PRINCIPLES:
1. Storage is the single source of truth
2. Every screen state is an immutable snapshot, replaced wholesale
3. Derived numbers (day totals, month totals) are always recomputed
4. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
