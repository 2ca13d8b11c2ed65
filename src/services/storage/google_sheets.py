"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Every document is one row of the Documents sheet:
    path | version | data_json | updated_at

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- Reads scan the whole sheet (we filter in Python)
- Atomicity comes from sending every write of a commit in a single
  batch_update request, after re-checking versions under a lock.
  This serializes writers within one process; it is not a multi-process
  database lock.
"""

import asyncio
import json
from datetime import datetime
from decimal import Decimal
from typing import Callable, Hashable, Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DocumentSnapshot,
    DocumentStore,
    DuplicateError,
    StorageError,
    Transaction,
    TransactionConflictError,
    parent_path,
)


logger = structlog.get_logger(__name__)

# Column mappings for Documents sheet
DOCUMENT_COLUMNS = [
    "path",
    "version",
    "data_json",
    "updated_at",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

ABSENT_VERSION = ""


def _json_default(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


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

    def get_documents_sheet(self) -> gspread.Worksheet:
        """Get or create the Documents worksheet."""
        return self._get_or_create_sheet(
            self._settings.documents_sheet_name,
            DOCUMENT_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class _Row:
    """One parsed row of the Documents sheet."""

    __slots__ = ("number", "version", "data")

    def __init__(self, number: int, version: str, data: Document):
        self.number = number
        self.version = version
        self.data = data


class GoogleSheetsDocumentStore(DocumentStore):
    """
    Google Sheets implementation of the document store.

    Deleted documents leave a blank row that later inserts reuse.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        max_attempts: int = 5,
        retry_wait_seconds: float = 0.05,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(
            max_attempts=max_attempts,
            retry_wait_seconds=retry_wait_seconds,
            clock=clock,
        )
        self._client = client or GoogleSheetsClient()
        self._commit_lock = asyncio.Lock()

    def _load(self) -> tuple[dict[str, _Row], list[int], int]:
        """
        Read the whole sheet.

        Returns:
            (rows by path, numbers of blank rows, number of the last used row)
        """
        try:
            values = self._client.get_documents_sheet().get_all_values()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read documents: {e}")

        rows: dict[str, _Row] = {}
        blanks: list[int] = []
        # Row 1 is the header
        for number, row in enumerate(values[1:], start=2):
            if not row or not row[0]:
                blanks.append(number)
                continue
            try:
                data = json.loads(row[2]) if len(row) > 2 and row[2] else {}
            except json.JSONDecodeError as e:
                raise StorageError(f"Corrupt document row {number}: {e}")
            if row[0] in rows:
                raise DuplicateError(
                    f"Document {row[0]} is stored twice "
                    f"(rows {rows[row[0]].number} and {number})"
                )
            rows[row[0]] = _Row(number, row[1] if len(row) > 1 else ABSENT_VERSION, data)
        return rows, blanks, max(len(values), 1)

    async def get(self, path: str) -> Optional[Document]:
        rows, _, _ = self._load()
        row = rows.get(path)
        return row.data if row else None

    async def list_documents(self, collection: str) -> list[DocumentSnapshot]:
        rows, _, _ = self._load()
        return [
            DocumentSnapshot(path=path, data=row.data)
            for path, row in rows.items()
            if parent_path(path) == collection
        ]

    async def _read_versioned(self, path: str) -> tuple[Optional[Document], Hashable]:
        rows, _, _ = self._load()
        row = rows.get(path)
        if row is None:
            return None, ABSENT_VERSION
        return row.data, row.version

    async def _commit(self, tx: Transaction) -> None:
        async with self._commit_lock:
            rows, blanks, last_row = self._load()

            for path, version in tx.read_versions.items():
                current = rows[path].version if path in rows else ABSENT_VERSION
                if current != version:
                    raise TransactionConflictError(
                        f"Document changed during transaction: {path}"
                    )

            updated_at = tx.timestamp.isoformat()
            updates = []
            next_row = last_row
            for path, data in tx.writes.items():
                if path in rows:
                    number = rows[path].number
                elif data is None:
                    continue
                elif blanks:
                    number = blanks.pop(0)
                else:
                    next_row += 1
                    number = next_row

                if data is None:
                    values = ["", "", "", ""]
                else:
                    values = [
                        path,
                        uuid4().hex,
                        json.dumps(data, default=_json_default),
                        updated_at,
                    ]
                updates.append({"range": f"A{number}:D{number}", "values": [values]})

            if not updates:
                return

            try:
                sheet = self._client.get_documents_sheet()
                if next_row > sheet.row_count:
                    sheet.add_rows(next_row - sheet.row_count)
                # One request: the API applies all ranges or none
                sheet.batch_update(updates, value_input_option="RAW")
            except Exception as e:
                raise StorageError(f"Failed to commit documents: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            user_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        try:
            sheet = self._client.get_audit_sheet()
            all_rows = sheet.get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError) as e:
                logger.warning("audit_row_skipped", error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.error("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(self, correlation_id) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = [e for e in self._read_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = [
            e for e in self._read_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = [
            e for e in self._read_events()
            if user_id is None or e.user_id == user_id
        ]
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
