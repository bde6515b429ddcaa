"""
Transaction Form Controller

Holds the transient fields of the add/edit transaction form and writes
them to storage on an explicit save.

Setters only replace the snapshot. The amount setter also filters: text
that can't grow into a non-negative decimal numeral is refused and the
snapshot is left as it was.
"""

from datetime import datetime
from typing import AsyncIterator, Callable, Optional

import structlog
from pydantic import ValidationError

from pocketledger.audit.logger import AuditLogger
from pocketledger.models.ledger import NEW_ID, Transaction, TransactionType
from pocketledger.models.state import SaveOutcome, SaveResult, TransactionFormState
from pocketledger.models.validation import ValidationIssue
from pocketledger.reactive import StateHolder, SubscriptionScope
from pocketledger.services.storage.interface import LedgerStorageInterface, StorageError
from pocketledger.validation import (
    TransactionFormValidator,
    is_acceptable_amount_input,
    parse_amount_or_zero,
)


logger = structlog.get_logger(__name__)


class TransactionFormController:
    """
    State behind the add/edit transaction screen.

    Pass a transaction_id to edit an existing transaction; leave it out
    to create a new one.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        transaction_id: Optional[int] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[TransactionFormValidator] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._validator = validator or TransactionFormValidator()
        self._scope = SubscriptionScope("transaction_form", on_error=self._on_error)
        is_editing = transaction_id is not None and transaction_id != NEW_ID
        self._state = StateHolder(TransactionFormState(
            id=transaction_id if is_editing else NEW_ID,
            date=now(),
            is_editing=is_editing,
        ))

    @property
    def state(self) -> TransactionFormState:
        return self._state.value

    def states(self) -> AsyncIterator[TransactionFormState]:
        """The current snapshot, then every replacement."""
        return self._state.watch()

    # --- Lifecycle ---

    async def load(self) -> TransactionFormState:
        """
        Load the accounts list and, when editing, the transaction.

        A new form pre-selects the first account.
        """
        await self._scope.launch(self._load(), name="load")
        return self.state

    async def close(self) -> None:
        await self._scope.close()

    async def __aenter__(self) -> "TransactionFormController":
        await self.load()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # --- Field setters ---

    def set_title(self, title: str) -> None:
        self._set(title=title)

    def set_amount(self, text: str) -> bool:
        """
        Set the amount text.

        Returns:
            False, leaving the snapshot unchanged, if the text was refused
        """
        if not is_acceptable_amount_input(text):
            return False
        self._set(amount=text)
        return True

    def set_category(self, category: str) -> None:
        self._set(category=category)

    def set_description(self, description: Optional[str]) -> None:
        self._set(description=description or None)

    def set_date(self, value: datetime) -> None:
        self._set(date=value)

    def set_transaction_type(self, transaction_type: TransactionType) -> None:
        self._set(transaction_type=transaction_type)

    def select_account(self, account_id: Optional[int]) -> None:
        self._set(selected_account_id=account_id)

    # --- Save ---

    async def save(self) -> SaveResult:
        """
        Validate the form and write it to storage.

        Nothing is written when validation fails. A storage fault is
        reported in the result and on the snapshot, not raised.
        """
        return await self._scope.launch(self._save(), name="save")

    async def _save(self) -> SaveResult:
        state = self.state
        result = self._validator.validate(state)
        errors = tuple(result.errors)
        transaction = None

        if not errors:
            try:
                transaction = Transaction(
                    id=state.id if state.is_editing else NEW_ID,
                    title=state.title,
                    amount=parse_amount_or_zero(state.amount),
                    category=state.category,
                    description=state.description,
                    date=state.date,
                    type=state.transaction_type,
                    account_id=state.selected_account_id,
                )
            except ValidationError as e:
                errors = tuple(_issues_from(e))

        if errors:
            logger.info("transaction_form_rejected", fields=[i.field for i in errors])
            self._set(validation_issues=errors, warnings=(), error_message=None)
            await self._audit.log_validation_failed(list(errors))
            return SaveResult(outcome=SaveOutcome.VALIDATION_FAILED, issues=errors)

        warnings = tuple(result.warnings)
        try:
            if state.is_editing:
                await self._storage.update_transaction(transaction)
                transaction_id = transaction.id
            else:
                transaction_id = await self._storage.insert_transaction(transaction)
        except StorageError as e:
            logger.error("transaction_save_failed", error=str(e), transaction_id=state.id)
            self._set(validation_issues=(), warnings=warnings, error_message=str(e))
            await self._audit.log_storage_error(
                operation="update_transaction" if state.is_editing else "insert_transaction",
                error_message=str(e),
                entity_type="transaction",
                entity_id=state.id if state.is_editing else None,
            )
            return SaveResult(
                outcome=SaveOutcome.STORAGE_FAILED,
                issues=warnings,
                error_message=str(e),
            )

        logger.info("transaction_saved", transaction_id=transaction_id, is_new=not state.is_editing)
        # The form now edits the stored record
        self._set(
            id=transaction_id,
            is_editing=True,
            has_been_saved=True,
            validation_issues=(),
            warnings=warnings,
            error_message=None,
        )
        await self._audit.log_transaction_saved(
            transaction_id=transaction_id,
            amount=transaction.amount,
            transaction_type=transaction.type.value,
            account_id=transaction.account_id,
            is_new=not state.is_editing,
        )
        return SaveResult(
            outcome=SaveOutcome.SAVED,
            transaction_id=transaction_id,
            issues=warnings,
        )

    # --- Internals ---

    async def _load(self) -> None:
        accounts = tuple(await self._storage.all_accounts().first())
        updates: dict = {"accounts": accounts, "is_loading": False}

        if self.state.is_editing:
            transaction = await self._storage.transaction_by_id(self.state.id).first()
            if transaction is None:
                logger.warning("transaction_not_found", transaction_id=self.state.id)
            else:
                updates.update(
                    title=transaction.title,
                    amount=format(transaction.amount, "f"),
                    category=transaction.category,
                    description=transaction.description,
                    date=transaction.date,
                    transaction_type=transaction.type,
                    selected_account_id=transaction.account_id,
                )
        elif accounts and self.state.selected_account_id is None:
            updates["selected_account_id"] = accounts[0].id

        self._set(**updates)

    def _set(self, **changes) -> None:
        self._state.update(lambda s: s.model_copy(update=changes))

    def _on_error(self, error: Exception) -> None:
        logger.error("transaction_form_failed", error=str(error), error_type=type(error).__name__)
        self._set(is_loading=False, error_message=str(error))
        if self._scope.closed:
            return
        if isinstance(error, StorageError):
            record = self._audit.log_storage_error(
                operation="load_transaction_form",
                error_message=str(error),
                entity_type="transaction",
                entity_id=self.state.id if self.state.is_editing else None,
            )
        else:
            record = self._audit.log_error(
                error_type=type(error).__name__,
                error_message=str(error),
                details={"operation": "load_transaction_form"},
            )
        self._scope.launch(record, name="audit")


def _issues_from(error: ValidationError) -> list[ValidationIssue]:
    """One error issue per rejected Transaction field."""
    issues = []
    for detail in error.errors():
        field = str(detail["loc"][0]) if detail["loc"] else "transaction"
        issues.append(ValidationIssue(
            field=field,
            issue_type=detail["type"],
            message=detail["msg"],
            severity="error",
        ))
    return issues
