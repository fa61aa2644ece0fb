"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a storage backend because:
1. Club committee members can view the ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions across worksheets. Each save rewrites all three sheets
  in full; the in-memory snapshot remains authoritative if a write fails
  part way, and the next successful save repairs the sheets.
- Limited query capabilities (we never query Sheets, we load it whole)
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from src.config import GoogleSheetsSettings, get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.club import (
    ClubSnapshot,
    Member,
    PaymentRecord,
    PaymentStatus,
    Transaction,
    TransactionType,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    PersistenceError,
    SnapshotStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


MEMBER_COLUMNS = [
    "id",
    "name",
    "ic_number",
    "member_number",
    "phone",
    "join_date",
]

PAYMENT_COLUMNS = [
    "member_id",
    "year",
    "month",
    "amount",
    "paid_date",
    "status",
]

TRANSACTION_COLUMNS = [
    "id",
    "date",
    "type",
    "category",
    "amount",
    "description",
    "related_member_id",
    "related_month",
    "payment_key",
]

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


def _safe_getter(row: list):
    """Index into a sheet row, tolerating short rows."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
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

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
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


class GoogleSheetsSnapshotStorage(SnapshotStorageInterface):
    """
    Google Sheets implementation of snapshot storage.

    One worksheet per collection, one record per row. Every save rewrites
    each worksheet in full.
    """

    backend_name = "google_sheets"

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheets(self) -> tuple[gspread.Worksheet, gspread.Worksheet, gspread.Worksheet]:
        settings = self._client.settings
        return (
            self._client.get_worksheet(settings.members_sheet_name, MEMBER_COLUMNS),
            self._client.get_worksheet(settings.payments_sheet_name, PAYMENT_COLUMNS),
            self._client.get_worksheet(
                settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=5000
            ),
        )

    # -- row conversion -----------------------------------------------------

    @staticmethod
    def _member_to_row(member: Member) -> list:
        return [
            member.id,
            member.name,
            member.ic_number,
            member.member_number,
            member.phone,
            member.join_date.isoformat(),
        ]

    @staticmethod
    def _row_to_member(row: list) -> Member:
        safe_get = _safe_getter(row)
        return Member(
            id=safe_get(0),
            name=safe_get(1),
            ic_number=safe_get(2),
            member_number=safe_get(3),
            phone=safe_get(4),
            join_date=date.fromisoformat(safe_get(5)),
        )

    @staticmethod
    def _payment_to_row(record: PaymentRecord) -> list:
        return [
            record.member_id,
            str(record.year),
            str(record.month),
            str(record.amount),
            record.paid_date.isoformat() if record.paid_date else "",
            record.status.value,
        ]

    @staticmethod
    def _row_to_payment(row: list) -> PaymentRecord:
        safe_get = _safe_getter(row)
        return PaymentRecord(
            member_id=safe_get(0),
            year=int(safe_get(1)),
            month=int(safe_get(2)),
            amount=Decimal(safe_get(3, "0")),
            paid_date=datetime.fromisoformat(safe_get(4)) if safe_get(4) else None,
            status=PaymentStatus(safe_get(5, PaymentStatus.UNPAID.value)),
        )

    @staticmethod
    def _transaction_to_row(txn: Transaction) -> list:
        return [
            txn.id,
            txn.date.isoformat(),
            txn.type.value,
            txn.category,
            str(txn.amount),
            txn.description,
            txn.related_member_id or "",
            "" if txn.related_month is None else str(txn.related_month),
            txn.payment_key or "",
        ]

    @staticmethod
    def _row_to_transaction(row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=safe_get(0),
            date=date.fromisoformat(safe_get(1)),
            type=TransactionType(safe_get(2)),
            category=safe_get(3),
            amount=Decimal(safe_get(4, "0")),
            description=safe_get(5),
            related_member_id=safe_get(6) or None,
            related_month=int(safe_get(7)) if safe_get(7) else None,
            payment_key=safe_get(8) or None,
        )

    # -- interface ------------------------------------------------------------

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _read_rows(self) -> tuple[list, list, list]:
        """Data rows (header excluded) of the three worksheets."""
        try:
            members_sheet, payments_sheet, txn_sheet = self._sheets()
            return (
                members_sheet.get_all_values()[1:],
                payments_sheet.get_all_values()[1:],
                txn_sheet.get_all_values()[1:],
            )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read ledger sheets: {e}")

    def load(self) -> Optional[ClubSnapshot]:
        """
        Load all three worksheets; None when every sheet is empty.

        A row that cannot be parsed fails the whole load. Dropping a
        member or payment row would leave fee entries without their
        record, so the sheets must be repaired by hand instead.

        Raises:
            StorageError: If a sheet cannot be read or holds a malformed row
        """
        member_rows, payment_rows, txn_rows = self._read_rows()
        if not (member_rows or payment_rows or txn_rows):
            return None

        snapshot = ClubSnapshot()
        bad_rows = []
        for sheet, rows, convert, target in (
            ("members", member_rows, self._row_to_member, snapshot.members),
            ("payments", payment_rows, self._row_to_payment, snapshot.payments),
            ("transactions", txn_rows, self._row_to_transaction, snapshot.transactions),
        ):
            # Row 1 is the header
            for number, row in enumerate(rows, start=2):
                if not row or not row[0]:  # Skip empty rows
                    continue
                try:
                    target.append(convert(row))
                except (ValueError, TypeError, InvalidOperation) as e:
                    logger.error("sheet_row_malformed", sheet=sheet, row=number, error=str(e))
                    bad_rows.append(f"{sheet} row {number}")

        if bad_rows:
            raise StorageError(f"Malformed rows in ledger sheets: {', '.join(bad_rows)}")
        return snapshot

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def save(self, snapshot: ClubSnapshot) -> bool:
        """Rewrite every worksheet from the snapshot."""
        try:
            members_sheet, payments_sheet, txn_sheet = self._sheets()
            for sheet, columns, rows in (
                (members_sheet, MEMBER_COLUMNS,
                 [self._member_to_row(m) for m in snapshot.members]),
                (payments_sheet, PAYMENT_COLUMNS,
                 [self._payment_to_row(p) for p in snapshot.payments]),
                (txn_sheet, TRANSACTION_COLUMNS,
                 [self._transaction_to_row(t) for t in snapshot.transactions]),
            ):
                sheet.clear()
                sheet.update(
                    values=[columns] + rows,
                    range_name="A1",
                    value_input_option="RAW",
                )
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save ledger sheets: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=safe_get(0),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=safe_get(6) or None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            self._sheet().append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = self._sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except ValueError:
                    continue

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
