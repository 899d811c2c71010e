"""
Google Sheets Storage Implementation

Google Sheets is the hosted backend because:
1. Users can view and export their data directly in Sheets
2. No database setup required
3. Google handles backups

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no change feed: snapshots are pushed after our own
  writes, and refresh() picks up edits made elsewhere
- Limited query capabilities (we filter and order in Python)

Each user's rows share one worksheet and are told apart by the user_id
column.
"""

import json
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from expense_tracker.models.expense import Expense, ExpenseDraft, order_expenses
from expense_tracker.services.storage.interface import (
    AuditStorageInterface,
    ExpenseStoreInterface,
    NotFoundError,
    PreferenceStoreInterface,
    StorageError,
    StoreUnavailableError,
)

logger = structlog.get_logger(__name__)


# Column mappings for the Expenses sheet
EXPENSE_COLUMNS = [
    "id",
    "user_id",
    "title",
    "amount",
    "category",
    "date",
    "created_at",
    "updated_at",
]

# Column mappings for the Preferences sheet
PREFERENCE_COLUMNS = [
    "user_id",
    "currency",
    "updated_at",
]

# Column mappings for the Audit sheet (see AuditEvent.to_sheets_row)
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def _parse_timestamp(value: str) -> datetime:
    """Timestamps without an offset were written by hand; read them as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

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
            except FileNotFoundError as e:
                raise StoreUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound as e:
                raise StoreUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get a worksheet, creating it with a header row if missing."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_expenses_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.expenses_sheet_name, EXPENSE_COLUMNS)

    def get_preferences_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(self._settings.preferences_sheet_name, PREFERENCE_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsExpenseStore(ExpenseStoreInterface):
    """
    Google Sheets implementation of the expense store.

    One expense per row. Amounts are written as plain decimal strings with
    value_input_option="RAW" so Sheets never reformats them.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        super().__init__()
        self._client = client or GoogleSheetsClient()

    def _expense_to_row(self, user_id: str, expense: Expense) -> list:
        """Convert an Expense to a spreadsheet row."""
        return [
            expense.id,
            user_id,
            expense.title,
            str(expense.amount),
            expense.category,
            expense.date.isoformat(),
            expense.created_at.isoformat(),
            expense.updated_at.isoformat(),
        ]

    def _row_to_expense(self, row: list) -> Expense:
        """Convert a spreadsheet row to an Expense."""
        return Expense(
            id=_safe_get(row, 0),
            title=_safe_get(row, 2),
            amount=Decimal(_safe_get(row, 3)),
            category=_safe_get(row, 4),
            date=date.fromisoformat(_safe_get(row, 5)),
            created_at=_parse_timestamp(_safe_get(row, 6)),
            updated_at=_parse_timestamp(_safe_get(row, 7)),
        )

    def _find_row(self, rows: list[list], user_id: str, expense_id: str) -> Optional[int]:
        """1-based sheet row number of the expense, or None."""
        for idx, row in enumerate(rows[1:], start=2):  # Row 1 is the header
            if _safe_get(row, 0) == expense_id and _safe_get(row, 1) == user_id:
                return idx
        return None

    async def list_expenses(self, user_id: str) -> list[Expense]:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to list expenses: {e}") from e

        expenses = []
        for row in all_rows:
            if not row or _safe_get(row, 1) != user_id:
                continue
            try:
                expenses.append(self._row_to_expense(row))
            except (ValidationError, ValueError, InvalidOperation) as e:
                logger.warning(
                    "malformed_expense_row",
                    expense_id=_safe_get(row, 0),
                    error=str(e),
                )

        return order_expenses(expenses)

    async def _insert_expense(self, user_id: str, draft: ExpenseDraft) -> Expense:
        now = _utcnow()
        expense = Expense(
            id=uuid4().hex,
            title=draft.title,
            amount=draft.amount,
            category=draft.category,
            date=draft.date,
            created_at=now,
            updated_at=now,
        )
        try:
            sheet = self._client.get_expenses_sheet()
            sheet.append_row(
                self._expense_to_row(user_id, expense),
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save expense: {e}") from e
        return expense

    async def _replace_expense(
        self,
        user_id: str,
        expense_id: str,
        draft: ExpenseDraft,
    ) -> Expense:
        try:
            sheet = self._client.get_expenses_sheet()
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, user_id, expense_id)
            if idx is None:
                raise NotFoundError(f"Expense not found: {expense_id}")

            existing = self._row_to_expense(all_rows[idx - 1])
            updated = existing.model_copy(update={
                "title": draft.title,
                "amount": draft.amount,
                "category": draft.category.value,
                "date": draft.date,
                "updated_at": _utcnow(),
            })
            first = rowcol_to_a1(idx, 1)
            last = rowcol_to_a1(idx, len(EXPENSE_COLUMNS))
            sheet.update(
                range_name=f"{first}:{last}",
                values=[self._expense_to_row(user_id, updated)],
                value_input_option="RAW",
            )
            return updated
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to update expense: {e}") from e

    async def _remove_expense(self, user_id: str, expense_id: str) -> bool:
        try:
            sheet = self._client.get_expenses_sheet()
            idx = self._find_row(sheet.get_all_values(), user_id, expense_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to delete expense: {e}") from e


class GoogleSheetsPreferenceStore(PreferenceStoreInterface):
    """
    Google Sheets implementation of the preference store.

    One row per user. A write touches only the cells it names.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, rows: list[list], user_id: str) -> Optional[int]:
        for idx, row in enumerate(rows[1:], start=2):
            if _safe_get(row, 0) == user_id:
                return idx
        return None

    async def get_preferences(self, user_id: str) -> dict[str, Any]:
        try:
            rows = self._client.get_preferences_sheet().get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to read preferences: {e}") from e

        idx = self._find_row(rows, user_id)
        if idx is None:
            return {}
        row = rows[idx - 1]
        return {
            column: _safe_get(row, col_idx)
            for col_idx, column in enumerate(PREFERENCE_COLUMNS)
            if column != "user_id" and _safe_get(row, col_idx)
        }

    async def set_preferences(self, user_id: str, fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(PREFERENCE_COLUMNS[1:])
        if unknown:
            raise ValueError(f"Unknown preference fields: {sorted(unknown)}")

        values = {key: str(value) for key, value in fields.items()}
        values["updated_at"] = _utcnow().isoformat()

        try:
            sheet = self._client.get_preferences_sheet()
            idx = self._find_row(sheet.get_all_values(), user_id)
            if idx is None:
                row = [user_id] + [values.get(column, "") for column in PREFERENCE_COLUMNS[1:]]
                sheet.append_row(row, value_input_option="RAW")
                return

            for column, value in values.items():
                sheet.update_cell(idx, PREFERENCE_COLUMNS.index(column) + 1, value)
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to save preferences: {e}") from e


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
            timestamp=_parse_timestamp(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.error(
                "audit_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to get audit events: {e}") from e

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            if user_id is not None and _safe_get(row, 4) != user_id:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValidationError, ValueError) as e:
                logger.warning("malformed_audit_row", error=str(e))

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
