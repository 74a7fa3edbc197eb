"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a persistent backend because:
1. The user can look at (and back up) their budget directly in Sheets
2. No database setup required
3. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for one household)
- No transactions: batch writes go out as one `batch_update` call
  after every id has been checked, so a rejected batch writes nothing
- Limited query capabilities (we filter in Python)

Each entity gets its own worksheet. Values are written RAW as strings
and parsed back through the pydantic models, which coerce them.
"""

import functools
import json
from typing import Any, Callable, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetbook.config import get_settings
from budgetbook.log_config import get_logger
from budgetbook.models.monthly import Month, Transaction
from budgetbook.models.yearly import (
    SectionKey,
    YearlyLineItem,
    YearlySubsection,
    parse_line_item,
)
from budgetbook.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    MonthStorageInterface,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
    YearlyStorageInterface,
)

logger = get_logger(__name__)


MONTH_COLUMNS = [
    "id",
    "owner_id",
    "name",
    "year",
    "month_index",
    "starting_balance_cents",
    "currency",
    "use_previous_month_end",
]

TRANSACTION_COLUMNS = [
    "id",
    "month_id",
    "owner_id",
    "label",
    "kind",
    "amount_cents",
    "date",
    "is_paid",
    "order",
    "category",
    "is_recurring",
    "is_template_only",
    "mode",
    "savings_percentage",
    "linked_income_id",
]

SUBSECTION_COLUMNS = [
    "id",
    "owner_id",
    "year",
    "section_key",
    "title",
    "order",
]

# Section-specific fields go into details_json
LINE_ITEM_COLUMNS = [
    "id",
    "owner_id",
    "year",
    "section_key",
    "subsection_id",
    "order",
    "label",
    "amount_cents",
    "details_json",
]

_LINE_ITEM_FLAT = set(LINE_ITEM_COLUMNS) - {"details_json"}

# Missing rows and duplicates are answers, not transient failures
_RETRY = dict(
    retry=retry_if_not_exception_type((NotFoundError, DuplicateError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


# =============================================================================
# ROW CODECS
# =============================================================================

def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def model_to_row(model: BaseModel, columns: list[str]) -> list[str]:
    """Flatten a model into one string per column."""
    data = model.model_dump(mode="json")
    return [_cell(data.get(column)) for column in columns]


def row_to_dict(row: list[str], columns: list[str]) -> dict[str, str]:
    """Map a sheet row back to column names, dropping blank cells."""
    return {
        column: row[index]
        for index, column in enumerate(columns)
        if index < len(row) and row[index] != ""
    }


def line_item_to_row(item: YearlyLineItem) -> list[str]:
    data = item.model_dump(mode="json")
    details = {k: v for k, v in data.items() if k not in _LINE_ITEM_FLAT and v is not None}
    data["details_json"] = json.dumps(details, sort_keys=True)
    return [_cell(data.get(column)) for column in LINE_ITEM_COLUMNS]


def row_to_line_item(row: list[str]) -> YearlyLineItem:
    data: dict[str, Any] = row_to_dict(row, LINE_ITEM_COLUMNS)
    details = json.loads(data.pop("details_json", "") or "{}")
    data.update(details)
    return parse_line_item(data)


# =============================================================================
# CLIENT
# =============================================================================

class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(**_RETRY)
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

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def months_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.months_sheet_name, MONTH_COLUMNS)

    def transactions_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.transactions_sheet_name, TRANSACTION_COLUMNS)

    def subsections_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.subsections_sheet_name, SUBSECTION_COLUMNS)

    def line_items_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.line_items_sheet_name, LINE_ITEM_COLUMNS)


class _SheetTable:
    """
    One worksheet of one entity type.

    Rows are located by the id in column A. Row numbers are 1-based and
    row 1 is the header.
    """

    def __init__(
        self,
        sheet_getter: Callable[[], gspread.Worksheet],
        columns: list[str],
        encode: Callable[[Any], list[str]],
        decode: Callable[[list[str]], Any],
    ):
        self._sheet_getter = sheet_getter
        self._columns = columns
        self._encode = encode
        self._decode = decode

    def column_number(self, name: str) -> int:
        return self._columns.index(name) + 1

    def rows(self) -> list[tuple[int, Any]]:
        """(row_number, model) for every decodable row."""
        values = self._sheet_getter().get_all_values()[1:]
        parsed = []
        for row_number, row in enumerate(values, start=2):
            if not row or not row[0]:
                continue
            try:
                parsed.append((row_number, self._decode(row)))
            except ValueError as e:
                # pydantic.ValidationError is a ValueError
                logger.warning("sheet_row_skipped", row=row_number, error=str(e))
        return parsed

    def find(self, row_id: UUID) -> Optional[tuple[int, Any]]:
        for row_number, model in self.rows():
            if model.id == row_id:
                return row_number, model
        return None

    def append(self, models: list[Any]) -> None:
        if models:
            self._sheet_getter().append_rows(
                [self._encode(m) for m in models],
                value_input_option="RAW",
            )

    def replace(self, row_number: int, model: Any) -> None:
        last = rowcol_to_a1(row_number, len(self._columns))
        self._sheet_getter().update(
            range_name=f"A{row_number}:{last}",
            values=[self._encode(model)],
            value_input_option="RAW",
        )

    def delete(self, row_numbers: list[int]) -> None:
        sheet = self._sheet_getter()
        # Bottom-up so earlier deletions don't shift later row numbers
        for row_number in sorted(row_numbers, reverse=True):
            sheet.delete_rows(row_number)

    def set_cells(self, updates: list[tuple[int, str, Any]]) -> None:
        """Write (row_number, column, value) cells in one batch call."""
        if not updates:
            return
        data = [
            {
                "range": rowcol_to_a1(row_number, self.column_number(column)),
                "values": [[_cell(value)]],
            }
            for row_number, column, value in updates
        ]
        self._sheet_getter().batch_update(data, value_input_option="RAW")


def _wrap(action: str):
    """Re-raise unexpected failures as StorageError, keep our own errors."""
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except StorageError:
                raise
            except Exception as e:
                logger.error("sheets_call_failed", action=action, error=str(e))
                raise StorageError(f"Failed to {action}: {e}")
        return wrapper
    return decorator


# =============================================================================
# STORAGE IMPLEMENTATIONS
# =============================================================================

class GoogleSheetsMonthStorage(MonthStorageInterface):
    """Months, one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            lambda: self._client.months_sheet(),
            MONTH_COLUMNS,
            lambda m: model_to_row(m, MONTH_COLUMNS),
            lambda row: Month.model_validate(row_to_dict(row, MONTH_COLUMNS)),
        )

    @retry(**_RETRY)
    @_wrap("save month")
    async def save_month(self, month: Month) -> Month:
        if await self.find_month(month.owner_id, month.year, month.month_index):
            raise DuplicateError(
                f"Month already exists: {month.year}-{month.month_index + 1:02d}"
            )
        self._table.append([month])
        return month

    @_wrap("get month")
    async def get_month(self, owner_id: UUID, month_id: UUID) -> Optional[Month]:
        found = self._table.find(month_id)
        if found is None or found[1].owner_id != owner_id:
            return None
        return found[1]

    @_wrap("find month")
    async def find_month(self, owner_id: UUID, year: int, month_index: int) -> Optional[Month]:
        for _, month in self._table.rows():
            if month.owner_id == owner_id and month.key == (year, month_index):
                return month
        return None

    @_wrap("list months")
    async def list_months(self, owner_id: UUID) -> list[Month]:
        months = [m for _, m in self._table.rows() if m.owner_id == owner_id]
        return sorted(months, key=lambda m: m.key)

    @retry(**_RETRY)
    @_wrap("update month")
    async def update_month(self, month: Month) -> Month:
        found = self._table.find(month.id)
        if found is None or found[1].owner_id != month.owner_id:
            raise NotFoundError(f"Month not found: {month.id}")
        self._table.replace(found[0], month)
        return month


class GoogleSheetsTransactionStorage(TransactionStorageInterface):
    """Transactions, one per row."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(
            lambda: self._client.transactions_sheet(),
            TRANSACTION_COLUMNS,
            lambda tx: model_to_row(tx, TRANSACTION_COLUMNS),
            lambda row: Transaction.model_validate(row_to_dict(row, TRANSACTION_COLUMNS)),
        )

    @retry(**_RETRY)
    @_wrap("save transactions")
    async def save_transactions(self, transactions: list[Transaction]) -> list[Transaction]:
        self._table.append(transactions)
        return transactions

    @_wrap("get transaction")
    async def get_transaction(self, owner_id: UUID, transaction_id: UUID) -> Optional[Transaction]:
        found = self._table.find(transaction_id)
        if found is None or found[1].owner_id != owner_id:
            return None
        return found[1]

    @_wrap("list transactions")
    async def list_for_month(self, owner_id: UUID, month_id: UUID) -> list[Transaction]:
        rows = [
            tx for _, tx in self._table.rows()
            if tx.owner_id == owner_id and tx.month_id == month_id
        ]
        return sorted(rows, key=lambda tx: tx.order)

    @retry(**_RETRY)
    @_wrap("update transaction")
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        found = self._table.find(transaction.id)
        if found is None or found[1].owner_id != transaction.owner_id:
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._table.replace(found[0], transaction)
        return transaction

    @_wrap("delete transaction")
    async def delete_transaction(self, owner_id: UUID, transaction_id: UUID) -> bool:
        found = self._table.find(transaction_id)
        if found is None or found[1].owner_id != owner_id:
            return False
        self._table.delete([found[0]])
        return True

    @retry(**_RETRY)
    @_wrap("apply transaction orders")
    async def apply_orders(self, owner_id: UUID, orders: dict[UUID, float]) -> None:
        located = {tx.id: (row_number, tx) for row_number, tx in self._table.rows()}
        updates = []
        for tx_id, order in orders.items():
            hit = located.get(tx_id)
            if hit is None or hit[1].owner_id != owner_id:
                raise NotFoundError(f"Transaction not found: {tx_id}")
            updates.append((hit[0], "order", order))
        self._table.set_cells(updates)


class GoogleSheetsYearlyStorage(YearlyStorageInterface):
    """Subsections and line items on two worksheets."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._subsections = _SheetTable(
            lambda: self._client.subsections_sheet(),
            SUBSECTION_COLUMNS,
            lambda s: model_to_row(s, SUBSECTION_COLUMNS),
            lambda row: YearlySubsection.model_validate(row_to_dict(row, SUBSECTION_COLUMNS)),
        )
        self._items = _SheetTable(
            lambda: self._client.line_items_sheet(),
            LINE_ITEM_COLUMNS,
            line_item_to_row,
            row_to_line_item,
        )

    # -- subsections ---------------------------------------------------------

    @retry(**_RETRY)
    @_wrap("save subsections")
    async def save_subsections(self, subsections: list[YearlySubsection]) -> list[YearlySubsection]:
        self._subsections.append(subsections)
        return subsections

    @_wrap("get subsection")
    async def get_subsection(self, owner_id: UUID, subsection_id: UUID) -> Optional[YearlySubsection]:
        found = self._subsections.find(subsection_id)
        if found is None or found[1].owner_id != owner_id:
            return None
        return found[1]

    @_wrap("list subsections")
    async def list_subsections(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlySubsection]:
        rows = [
            sub for _, sub in self._subsections.rows()
            if sub.owner_id == owner_id
            and sub.year == year
            and (section_key is None or sub.section_key == section_key)
        ]
        return sorted(rows, key=lambda sub: sub.order)

    @retry(**_RETRY)
    @_wrap("update subsection")
    async def update_subsection(self, subsection: YearlySubsection) -> YearlySubsection:
        found = self._subsections.find(subsection.id)
        if found is None or found[1].owner_id != subsection.owner_id:
            raise NotFoundError(f"Subsection not found: {subsection.id}")
        self._subsections.replace(found[0], subsection)
        return subsection

    @_wrap("delete subsection")
    async def delete_subsection(self, owner_id: UUID, subsection_id: UUID) -> int:
        found = self._subsections.find(subsection_id)
        if found is None or found[1].owner_id != owner_id:
            raise NotFoundError(f"Subsection not found: {subsection_id}")
        doomed = [
            row_number for row_number, item in self._items.rows()
            if item.container_id == subsection_id
        ]
        self._items.delete(doomed)
        self._subsections.delete([found[0]])
        return len(doomed)

    @retry(**_RETRY)
    @_wrap("apply subsection orders")
    async def apply_subsection_orders(self, owner_id: UUID, orders: dict[UUID, int]) -> None:
        located = {sub.id: (row_number, sub) for row_number, sub in self._subsections.rows()}
        updates = []
        for sub_id, order in orders.items():
            hit = located.get(sub_id)
            if hit is None or hit[1].owner_id != owner_id:
                raise NotFoundError(f"Subsection not found: {sub_id}")
            updates.append((hit[0], "order", order))
        self._subsections.set_cells(updates)

    # -- line items ----------------------------------------------------------

    @retry(**_RETRY)
    @_wrap("save line items")
    async def save_line_items(self, items: list[YearlyLineItem]) -> list[YearlyLineItem]:
        self._items.append(items)
        return items

    @_wrap("get line item")
    async def get_line_item(self, owner_id: UUID, item_id: UUID) -> Optional[YearlyLineItem]:
        found = self._items.find(item_id)
        if found is None or found[1].owner_id != owner_id:
            return None
        return found[1]

    @_wrap("list line items")
    async def list_line_items(
        self,
        owner_id: UUID,
        year: int,
        section_key: Optional[SectionKey] = None,
    ) -> list[YearlyLineItem]:
        rows = [
            item for _, item in self._items.rows()
            if item.owner_id == owner_id
            and item.year == year
            and (section_key is None or item.section_key == section_key)
        ]
        return sorted(rows, key=lambda item: item.order)

    @retry(**_RETRY)
    @_wrap("update line item")
    async def update_line_item(self, item: YearlyLineItem) -> YearlyLineItem:
        found = self._items.find(item.id)
        if found is None or found[1].owner_id != item.owner_id:
            raise NotFoundError(f"Line item not found: {item.id}")
        self._items.replace(found[0], item)
        return item

    @_wrap("delete line item")
    async def delete_line_item(self, owner_id: UUID, item_id: UUID) -> bool:
        found = self._items.find(item_id)
        if found is None or found[1].owner_id != owner_id:
            return False
        self._items.delete([found[0]])
        return True

    @retry(**_RETRY)
    @_wrap("apply line item orders")
    async def apply_line_item_orders(
        self,
        owner_id: UUID,
        orders: dict[UUID, int],
        containers: Optional[dict[UUID, Optional[UUID]]] = None,
    ) -> None:
        containers = containers or {}
        located = {item.id: (row_number, item) for row_number, item in self._items.rows()}
        updates = []
        for item_id in list(orders) + [i for i in containers if i not in orders]:
            hit = located.get(item_id)
            if hit is None or hit[1].owner_id != owner_id:
                raise NotFoundError(f"Line item not found: {item_id}")
        for item_id, subsection_id in containers.items():
            updates.append((located[item_id][0], "subsection_id", subsection_id))
        for item_id, order in orders.items():
            updates.append((located[item_id][0], "order", order))
        self._items.set_cells(updates)

    @_wrap("list years")
    async def list_years(self, owner_id: UUID) -> list[int]:
        years = {item.year for _, item in self._items.rows() if item.owner_id == owner_id}
        years |= {sub.year for _, sub in self._subsections.rows() if sub.owner_id == owner_id}
        return sorted(years, reverse=True)
