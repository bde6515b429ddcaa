"""
Account Management

Creating, renaming and deleting accounts. Each change is written to
storage first and audited after; a storage fault propagates to the
caller untouched.
"""

from decimal import Decimal
from typing import Optional

import structlog

from pocketledger.audit.logger import AuditLogger
from pocketledger.models.ledger import Account
from pocketledger.services.storage.interface import (
    LedgerStorageInterface,
    NotFoundError,
)


logger = structlog.get_logger(__name__)


class AccountService:
    """Account writes with an audit trail."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()

    async def create_account(
        self,
        name: str,
        initial_balance: Decimal = Decimal("0"),
    ) -> Account:
        """
        Create an account.

        Raises:
            pydantic.ValidationError: If the name is blank
        """
        # Validate before anything reaches storage
        Account(name=name, initial_balance=initial_balance)
        account_id = await self._storage.insert_account(name, initial_balance)
        account = Account(id=account_id, name=name, initial_balance=initial_balance)
        logger.info("account_created", account_id=account_id)
        await self._audit.log_account_created(
            account_id=account_id,
            name=name,
            initial_balance=initial_balance,
        )
        return account

    async def rename_account(self, account_id: int, new_name: str) -> Account:
        """
        Give an account a new name.

        Raises:
            NotFoundError: If no account has this id
        """
        account = await self._storage.account_by_id(account_id).first()
        if account is None:
            raise NotFoundError(f"Account not found: {account_id}")
        renamed = Account(
            id=account.id,
            name=new_name,
            initial_balance=account.initial_balance,
        )
        await self._storage.update_account(renamed)
        logger.info("account_renamed", account_id=account_id)
        await self._audit.log_account_updated(account_id=account_id, name=new_name)
        return renamed

    async def delete_account(self, account_id: int) -> bool:
        """
        Delete an account together with its transactions.

        Returns:
            False if there was no such account
        """
        account = await self._storage.account_by_id(account_id).first()
        if account is None:
            return False
        await self._storage.delete_account(account)
        logger.info("account_deleted", account_id=account_id)
        await self._audit.log_account_deleted(account_id=account_id, name=account.name)
        return True
