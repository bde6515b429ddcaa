"""
Transaction List Controller

Owns the month-by-month transaction list: which month is shown, which
account is selected, and the grouped transactions and totals derived
from storage for that pair.

DESIGN DECISION: Storage is the single source of truth. Intents that
write (delete) never touch the local snapshot; the next emission of
the month's live queries is what removes the row and fixes the totals.

Every (account, month) pair gets its own subscription and generation
number. Changing either cancels the old subscription, and anything the
old generation still delivers is dropped.
"""

import asyncio
from datetime import date
from decimal import Decimal
from functools import partial
from typing import AsyncIterator, Callable, Optional, Sequence

import structlog

from pocketledger.aggregation import MonthNavigator, group_by_day
from pocketledger.audit.logger import AuditLogger
from pocketledger.models.aggregates import LedgerItem, MonthWindow
from pocketledger.models.ledger import (
    Account,
    Transaction,
    TransactionType,
    TransactionWithAccount,
)
from pocketledger.models.state import TransactionListState
from pocketledger.reactive import StateHolder, Subscription, SubscriptionScope, combine_latest
from pocketledger.services.storage.interface import LedgerStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class TransactionListController:
    """
    State behind the transaction list screen.

    Usage:
        async with TransactionListController(storage) as controller:
            async for state in controller.states():
                render(state)
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        reference_date: Optional[date] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._navigator = MonthNavigator(reference_date)
        self._scope = SubscriptionScope("transaction_list", on_error=self._on_error)
        self._state = StateHolder(TransactionListState(
            reference_date=self._navigator.reference_date,
            window=self._navigator.window,
        ))
        self._generation = 0
        self._accounts_subscription: Optional[Subscription] = None
        self._month_subscription: Optional[Subscription] = None
        self._default_selection_done = False
        self._started = False

    @property
    def state(self) -> TransactionListState:
        return self._state.value

    def states(self) -> AsyncIterator[TransactionListState]:
        """The current snapshot, then every replacement."""
        return self._state.watch()

    # --- Lifecycle ---

    def start(self) -> None:
        """Subscribe to accounts and to the current month. Needs a running loop."""
        if self._started:
            return
        self._started = True
        self._subscribe_accounts()
        self._subscribe_month()

    async def close(self) -> None:
        await self._scope.close()
        self._accounts_subscription = None
        self._month_subscription = None

    async def __aenter__(self) -> "TransactionListController":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Intents ---

    def select_account(self, account_id: Optional[int]) -> None:
        """Show one account's transactions, or every account's with None."""
        # An explicit choice replaces the first-account default
        self._default_selection_done = True
        if account_id == self.state.selected_account_id:
            return
        logger.debug("account_selected", account_id=account_id)
        self._apply_selection(account_id)

    def previous_month(self) -> MonthWindow:
        return self._change_month(self._navigator.previous)

    def next_month(self) -> MonthWindow:
        return self._change_month(self._navigator.next)

    def delete_transaction(self, item: LedgerItem) -> asyncio.Task:
        """
        Ask storage to delete a transaction.

        The snapshot is left alone; the deletion shows up with the next
        emission of the month's queries.
        """
        transaction = item.transaction if isinstance(item, TransactionWithAccount) else item
        logger.info("transaction_delete_requested", transaction_id=transaction.id)
        return self._scope.launch(self._delete(transaction), name="delete")

    # --- Reactions ---

    def _on_accounts(self, accounts: Sequence[Account]) -> None:
        accounts = tuple(accounts)
        selected = self.state.selected_account_id
        target = selected

        if accounts and not self._default_selection_done:
            self._default_selection_done = True
            if target is None:
                target = accounts[0].id

        if target is not None and target not in {a.id for a in accounts}:
            target = accounts[0].id if accounts else None

        self._state.update(lambda s: s.model_copy(update={"accounts": accounts}))
        if target != selected:
            logger.debug("account_selection_reset", previous=selected, account_id=target)
            self._apply_selection(target)

    def _on_month_data(self, generation: int, values: tuple) -> None:
        if generation != self._generation:
            return
        transactions, income, expense = values
        transactions = tuple(transactions)
        self._state.update(lambda s: s.model_copy(update={
            "transactions": transactions,
            "day_groups": tuple(group_by_day(transactions)),
            "income_total": income,
            "expense_total": expense,
            "is_loading": False,
            "error_message": None,
        }))

    def _on_error(self, error: Exception) -> None:
        logger.error("transaction_list_failed", error=str(error), error_type=type(error).__name__)
        self._state.update(lambda s: s.model_copy(update={
            "is_loading": False,
            "error_message": str(error),
        }))
        if self._scope.closed:
            return
        if isinstance(error, StorageError):
            record = self._audit.log_storage_error(
                operation="transaction_list",
                error_message=str(error),
            )
        else:
            record = self._audit.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": "transaction_list"},
            )
        self._scope.launch(record, name="audit")

    # --- Internals ---

    def _apply_selection(self, account_id: Optional[int]) -> None:
        self._state.update(lambda s: s.model_copy(update={
            "selected_account_id": account_id,
            **_cleared(),
        }))
        if self._started:
            self._subscribe_accounts()
            self._subscribe_month()

    def _change_month(self, step: Callable[[], MonthWindow]) -> MonthWindow:
        window = step()
        reference_date = self._navigator.reference_date
        logger.debug("month_changed", start=window.start.date().isoformat())
        self._state.update(lambda s: s.model_copy(update={
            "reference_date": reference_date,
            "window": window,
            **_cleared(),
        }))
        if self._started:
            self._subscribe_accounts()
            self._subscribe_month()
        return window

    def _subscribe_accounts(self) -> None:
        # A storage fault ends the accounts stream; the next intent restarts it
        if self._accounts_subscription is not None and self._accounts_subscription.active:
            return
        self._accounts_subscription = self._scope.collect(
            self._storage.all_accounts(), self._on_accounts, name="accounts",
        )

    def _subscribe_month(self) -> None:
        self._generation += 1
        generation = self._generation
        if self._month_subscription is not None:
            self._month_subscription.cancel()

        state = self.state
        account_id = state.selected_account_id
        start, end = state.window.start, state.window.end
        logger.debug(
            "month_subscribed",
            generation=generation,
            account_id=account_id,
            start=start.date().isoformat(),
        )
        stream = combine_latest(
            self._storage.transactions_in_range(account_id, start, end),
            self._storage.sum_by_type(account_id, TransactionType.INCOME, start, end),
            self._storage.sum_by_type(account_id, TransactionType.EXPENSE, start, end),
        )
        self._month_subscription = self._scope.collect(
            stream,
            partial(self._on_month_data, generation),
            name=f"month:{generation}",
        )

    async def _delete(self, transaction: Transaction) -> None:
        await self._storage.delete_transaction(transaction)
        await self._audit.log_transaction_deleted(transaction_id=transaction.id)


def _cleared() -> dict:
    """Snapshot fields reset while a new subscription loads."""
    return {
        "transactions": (),
        "day_groups": (),
        "income_total": Decimal("0"),
        "expense_total": Decimal("0"),
        "is_loading": True,
        "error_message": None,
    }
