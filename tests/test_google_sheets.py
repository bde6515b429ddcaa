"""
Tests for the Google Sheets backend.

Runs against fake worksheets; nothing here talks to Google.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import gspread
import pytest

from pocketledger.config import GoogleSheetsSettings
from pocketledger.models import AuditEventBuilder, TransactionType
from pocketledger.services.storage import (
    ConstraintError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    NotFoundError,
    StorageError,
)
from pocketledger.services.storage.google_sheets import (
    ACCOUNT_COLUMNS,
    AUDIT_COLUMNS,
    TRANSACTION_COLUMNS,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the storage code."""

    def __init__(self, header):
        self.rows = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        target = self.rows[row - 1]
        while len(target) < col:
            target.append("")
        target[col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.accounts = FakeWorksheet(ACCOUNT_COLUMNS)
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.audit = FakeWorksheet(AUDIT_COLUMNS)

    def get_accounts_sheet(self):
        return self.accounts

    def get_transactions_sheet(self):
        return self.transactions

    def get_audit_sheet(self):
        return self.audit


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        try:
            return self.sheets[title]
        except KeyError:
            raise gspread.WorksheetNotFound(title)

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet([])
        sheet.rows = []
        self.sheets[title] = sheet
        return sheet


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_storage(client):
    return GoogleSheetsLedgerStorage(client)


class TestGoogleSheetsLedgerStorage:
    """Ledger storage over worksheets."""

    @pytest.mark.asyncio
    async def test_accounts_round_trip_through_rows(self, sheets_storage, client):
        assert await sheets_storage.insert_account("Cash", Decimal("12.50")) == 1
        assert await sheets_storage.insert_account("Bank") == 2
        assert client.accounts.rows[1] == ["1", "Cash", "12.50"]

        accounts = await sheets_storage.all_accounts().first()
        assert [(a.id, a.name) for a in accounts] == [(1, "Cash"), (2, "Bank")]
        assert accounts[0].initial_balance == Decimal("12.50")

    @pytest.mark.asyncio
    async def test_update_account(self, sheets_storage, client):
        await sheets_storage.insert_account("Cash")
        account = await sheets_storage.account_by_id(1).first()
        await sheets_storage.update_account(account.model_copy(update={"name": "Wallet"}))
        assert client.accounts.rows[1][1] == "Wallet"

        with pytest.raises(NotFoundError):
            await sheets_storage.update_account(account.model_copy(update={"id": 9}))

    @pytest.mark.asyncio
    async def test_transactions_and_sums(self, sheets_storage, make_tx):
        account_id = await sheets_storage.insert_account("Cash")
        await sheets_storage.insert_transaction(make_tx(account_id, "100", datetime(2024, 3, 5, 18, 0)))
        await sheets_storage.insert_transaction(
            make_tx(account_id, "40", datetime(2024, 3, 5, 9, 0), TransactionType.INCOME)
        )
        await sheets_storage.insert_transaction(make_tx(account_id, "20", datetime(2024, 3, 1)))
        start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)

        items = await sheets_storage.transactions_in_range(account_id, start, end).first()
        assert [i.id for i in items] == [1, 2, 3]
        assert items[0].transaction.amount == Decimal("100")
        expense = await sheets_storage.sum_by_type(account_id, TransactionType.EXPENSE, start, end).first()
        assert expense == Decimal("120")

    @pytest.mark.asyncio
    async def test_transaction_needs_account(self, sheets_storage, make_tx):
        with pytest.raises(ConstraintError):
            await sheets_storage.insert_transaction(make_tx(3, "5", datetime(2024, 3, 1)))

    @pytest.mark.asyncio
    async def test_update_and_delete_transaction(self, sheets_storage, client, make_tx):
        account_id = await sheets_storage.insert_account("Cash")
        transaction_id = await sheets_storage.insert_transaction(
            make_tx(account_id, "5", datetime(2024, 3, 1), title="Coffee")
        )
        stored = await sheets_storage.transaction_by_id(transaction_id).first()
        await sheets_storage.update_transaction(stored.model_copy(update={"title": "Tea"}))
        assert (await sheets_storage.transaction_by_id(transaction_id).first()).title == "Tea"

        await sheets_storage.delete_transaction(stored)
        assert await sheets_storage.transaction_by_id(transaction_id).first() is None
        assert len(client.transactions.rows) == 1

    @pytest.mark.asyncio
    async def test_delete_account_cascades(self, sheets_storage, client, make_tx):
        cash = await sheets_storage.insert_account("Cash")
        bank = await sheets_storage.insert_account("Bank")
        await sheets_storage.insert_transaction(make_tx(cash, "1", datetime(2024, 3, 1)))
        await sheets_storage.insert_transaction(make_tx(bank, "2", datetime(2024, 3, 2)))
        await sheets_storage.insert_transaction(make_tx(cash, "3", datetime(2024, 3, 3)))

        await sheets_storage.delete_account(await sheets_storage.account_by_id(cash).first())

        assert [row[7] for row in client.transactions.rows[1:]] == [str(bank)]
        assert [row[1] for row in client.accounts.rows[1:]] == ["Bank"]

    @pytest.mark.asyncio
    async def test_orphan_rows_left_out_of_sums(self, sheets_storage, client, make_tx):
        cash = await sheets_storage.insert_account("Cash")
        bank = await sheets_storage.insert_account("Bank")
        await sheets_storage.insert_transaction(make_tx(cash, "10", datetime(2024, 3, 1)))
        await sheets_storage.insert_transaction(make_tx(bank, "25", datetime(2024, 3, 2)))
        # Bank's row removed by hand, its transaction left behind
        del client.accounts.rows[2]
        start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)

        items = await sheets_storage.transactions_in_range(None, start, end).first()
        expense = await sheets_storage.sum_by_type(None, TransactionType.EXPENSE, start, end).first()
        assert [i.account.name for i in items] == ["Cash"]
        assert expense == Decimal("10")

    @pytest.mark.asyncio
    async def test_partial_cascade_still_notifies(self, sheets_storage, client, make_tx):
        cash = await sheets_storage.insert_account("Cash")
        for day in (1, 2, 3):
            await sheets_storage.insert_transaction(make_tx(cash, "1", datetime(2024, 3, day)))
        account = await sheets_storage.account_by_id(cash).first()
        start, end = datetime(2024, 3, 1), datetime(2024, 3, 31)

        stream = aiter(sheets_storage.transactions_in_range(None, start, end))
        assert len(await anext(stream)) == 3

        delete_rows = client.transactions.delete_rows

        def delete_once(index):
            client.transactions.delete_rows = failing
            delete_rows(index)

        def failing(index):
            raise RuntimeError("quota exceeded")

        client.transactions.delete_rows = delete_once
        with pytest.raises(StorageError):
            await sheets_storage.delete_account(account)

        items = await asyncio.wait_for(anext(stream), 1.0)
        assert [i.transaction.date.day for i in items] == [2, 1]
        await stream.aclose()

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, sheets_storage, client):
        client.accounts.rows.append(["1", "Cash", "0"])
        client.accounts.rows.append(["oops", "Broken", "0"])
        client.accounts.rows.append([])
        accounts = await sheets_storage.all_accounts().first()
        assert [a.name for a in accounts] == ["Cash"]

    @pytest.mark.asyncio
    async def test_ids_follow_the_largest_row(self, sheets_storage, client):
        client.accounts.rows.append(["7", "Old", "0"])
        assert await sheets_storage.insert_account("New") == 8


class TestGoogleSheetsAuditStorage:
    """Audit events as worksheet rows."""

    @pytest.mark.asyncio
    async def test_append_and_read_back(self, client):
        audit = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.transaction_saved(
            transaction_id=4,
            amount="12.50",
            transaction_type="expense",
            account_id=1,
            is_new=True,
        )
        assert await audit.append_event(event) is True
        await audit.append_event(AuditEventBuilder.transaction_deleted(transaction_id=5))

        events = await audit.get_events_by_entity("transaction", 4)
        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details["amount"] == "12.50"
        assert events[0].is_user_action is True

        recent = await audit.get_recent_events(limit=1)
        assert len(recent) == 1


class TestGoogleSheetsClient:
    """Worksheet creation on first use."""

    def test_missing_sheet_is_created_with_header(self):
        with pytest.warns(UserWarning):
            settings = GoogleSheetsSettings(
                credentials_path="/nonexistent/credentials.json",
                spreadsheet_id="sheet-id",
            )
        sheets_client = GoogleSheetsClient(settings)
        spreadsheet = FakeSpreadsheet()
        sheets_client._spreadsheet = spreadsheet

        sheet = sheets_client.get_accounts_sheet()
        assert sheet.rows == [ACCOUNT_COLUMNS]
        assert sheets_client.get_accounts_sheet() is sheet
        assert "Transactions" not in spreadsheet.sheets
        sheets_client.get_transactions_sheet()
        assert "Transactions" in spreadsheet.sheets
