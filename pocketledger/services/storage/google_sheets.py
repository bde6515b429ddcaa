"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can view and export their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (cascading deletes are done row by row)
- Limited query capabilities (we filter in Python)
- Edits made directly in the spreadsheet are not pushed to live
  queries; only writes made through this storage object are

The implementation follows the abstract interface, so screen
controllers never know which backend they are talking to.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from pocketledger.config import GoogleSheetsSettings, get_settings
from pocketledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocketledger.models.ledger import NEW_ID, Account, Transaction, TransactionType
from pocketledger.services.storage.base import (
    ACCOUNTS,
    TRANSACTIONS,
    SnapshotLedgerStorage,
)
from pocketledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    ConstraintError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Retry transient API failures; a refused write will be refused again
retry_sheet_write = retry(
    retry=retry_if_not_exception_type(
        (ConstraintError, DuplicateError, NotFoundError, ValidationError)
    ),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


# Column mappings for Accounts sheet
ACCOUNT_COLUMNS = [
    "account_id",
    "name",
    "initial_balance",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "title",
    "amount",
    "category",
    "date",
    "type",
    "description",
    "account_id",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        """Get or create the Accounts worksheet."""
        return self._get_or_create_sheet(
            self._settings.accounts_sheet_name, ACCOUNT_COLUMNS, rows=100
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    """Cell value, or default for empty or missing cells."""
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _next_id(rows: list[list]) -> int:
    ids = [int(row[0]) for row in rows if row and row[0]]
    return max(ids, default=0) + 1


class GoogleSheetsLedgerStorage(SnapshotLedgerStorage):
    """
    Google Sheets implementation of ledger storage.

    Accounts and transactions are rows in two worksheets, one record
    per row, in insertion order.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    # --- Row conversion ---

    def _account_to_row(self, account: Account) -> list:
        return [
            str(account.id),
            account.name,
            str(account.initial_balance),
        ]

    def _row_to_account(self, row: list) -> Account:
        return Account(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            initial_balance=Decimal(_safe_get(row, 2, "0")),
        )

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            transaction.title,
            str(transaction.amount),
            transaction.category,
            transaction.date.isoformat(),
            transaction.type.value,
            transaction.description or "",
            str(transaction.account_id),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        return Transaction(
            id=int(_safe_get(row, 0)),
            title=_safe_get(row, 1),
            amount=Decimal(_safe_get(row, 2)),
            category=_safe_get(row, 3),
            date=datetime.fromisoformat(_safe_get(row, 4)),
            type=TransactionType(_safe_get(row, 5)),
            description=_safe_get(row, 6) or None,
            account_id=int(_safe_get(row, 7)),
        )

    def _data_rows(self, sheet: gspread.Worksheet) -> list[list]:
        """All rows except the header."""
        return sheet.get_all_values()[1:]

    def _find_row(self, sheet: gspread.Worksheet, record_id: int) -> Optional[int]:
        """1-based sheet row number holding record_id, if any."""
        for idx, row in enumerate(self._data_rows(sheet), start=2):  # Row 1 is header
            if row and row[0] == str(record_id):
                return idx
        return None

    # --- Snapshot loads ---

    async def _load_accounts(self) -> list[Account]:
        try:
            sheet = self._client.get_accounts_sheet()
            accounts = []
            for row in self._data_rows(sheet):
                if not row or not row[0]:  # Skip empty rows
                    continue
                try:
                    accounts.append(self._row_to_account(row))
                except (ValueError, ArithmeticError):
                    logger.warning("malformed_account_row", row=row)
            return accounts
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load accounts: {e}")

    async def _load_transactions(self) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = []
            for row in self._data_rows(sheet):
                if not row or not row[0]:
                    continue
                try:
                    transactions.append(self._row_to_transaction(row))
                except (ValueError, ArithmeticError):
                    logger.warning("malformed_transaction_row", row=row)
            return transactions
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load transactions: {e}")

    # --- Accounts ---

    @retry_sheet_write
    async def insert_account(
        self,
        name: str,
        initial_balance: Decimal = Decimal("0"),
    ) -> int:
        account = Account(name=name, initial_balance=initial_balance)
        try:
            sheet = self._client.get_accounts_sheet()
            account = account.model_copy(update={"id": _next_id(self._data_rows(sheet))})
            sheet.append_row(self._account_to_row(account), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}")
        self._changed(ACCOUNTS)
        return account.id

    async def update_account(self, account: Account) -> None:
        try:
            sheet = self._client.get_accounts_sheet()
            idx = self._find_row(sheet, account.id)
            if idx is None:
                raise NotFoundError(f"Account not found: {account.id}")
            for col_idx, value in enumerate(self._account_to_row(account), start=1):
                sheet.update_cell(idx, col_idx, value)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update account: {e}")
        self._changed(ACCOUNTS)

    async def delete_account(self, account: Account) -> None:
        removed = 0
        try:
            accounts_sheet = self._client.get_accounts_sheet()
            idx = self._find_row(accounts_sheet, account.id)
            if idx is None:
                return

            # Cascade: remove the account's transactions first, bottom-up
            # so earlier row numbers stay valid
            transactions_sheet = self._client.get_transactions_sheet()
            rows = self._data_rows(transactions_sheet)
            owned = [
                row_idx for row_idx, row in enumerate(rows, start=2)
                if len(row) > 7 and row[7] == str(account.id)
            ]
            for row_idx in reversed(owned):
                transactions_sheet.delete_rows(row_idx)
                removed += 1

            accounts_sheet.delete_rows(idx)
            removed += 1
        except Exception as e:
            raise StorageError(f"Failed to delete account: {e}")
        finally:
            # A partial cascade still changed the sheet
            if removed:
                self._changed(ACCOUNTS, TRANSACTIONS)
        logger.debug(
            "account_deleted",
            account_id=account.id,
            cascaded_transactions=len(owned),
        )

    # --- Transactions ---

    async def _require_account(self, account_id: int) -> None:
        accounts = await self._load_accounts()
        if not any(account.id == account_id for account in accounts):
            raise ConstraintError(f"Account {account_id} does not exist")

    @retry_sheet_write
    async def insert_transaction(self, transaction: Transaction) -> int:
        await self._require_account(transaction.account_id)
        try:
            sheet = self._client.get_transactions_sheet()
            rows = self._data_rows(sheet)
            if transaction.id == NEW_ID:
                transaction = transaction.model_copy(update={"id": _next_id(rows)})
            elif any(row and row[0] == str(transaction.id) for row in rows):
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            sheet.append_row(
                self._transaction_to_row(transaction),
                value_input_option="RAW",
            )
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")
        self._changed(TRANSACTIONS)
        return transaction.id

    async def update_transaction(self, transaction: Transaction) -> None:
        await self._require_account(transaction.account_id)
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row(sheet, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            for col_idx, value in enumerate(self._transaction_to_row(transaction), start=1):
                sheet.update_cell(idx, col_idx, value)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")
        self._changed(TRANSACTIONS)

    async def delete_transaction(self, transaction: Transaction) -> None:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row(sheet, transaction.id)
            if idx is None:
                return
            sheet.delete_rows(idx)
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")
        self._changed(TRANSACTIONS)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=_safe_get(row, 0),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=int(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=_safe_get(row, 6) or None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError):
                logger.warning("malformed_audit_row", row=row)
        return events

    @retry_sheet_write
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._read_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
