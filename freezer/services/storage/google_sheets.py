"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is used as the remote record store because:
1. Household members can see the raw records directly in Sheets
2. No server to run; the remote stays a dumb store
3. Link sharing and permissions come from Google Drive
4. Easy to export/migrate later

TRADEOFFS:
- No push notifications (change signals come from outside, see SyncCoordinator)
- No transactions (one row per record, overwritten whole)
- A cell holds at most 50,000 characters, which bounds the document size

Layout of a spreadsheet:
- FreezerRecords: one row per household root record
- Subscriptions:  one row per registered change subscription
- Shares:         one row per share link handed out

The private scope is the configured spreadsheet. The shared scope is the
spreadsheet behind the share link this device accepted.

gspread is blocking, so every call runs in a worker thread.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Optional

import gspread
from gspread.utils import extract_id_from_url
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from freezer.config import CloudSettings, get_settings
from freezer.models.inventory import utc_now
from freezer.models.sync import (
    ROOT_RECORD_TYPE,
    DatabaseScope,
    RemoteRecord,
    ShareMetadata,
    SharePermission,
)
from freezer.services.storage.interface import (
    RemoteRecordStore,
    RemoteStoreError,
    RemoteUnavailableError,
    SubscriptionExistsError,
)
from freezer.services.storage.share_context import ShareContext


# Column mappings for FreezerRecords sheet
RECORD_COLUMNS = [
    "record_name",
    "record_type",
    "payload",
    "updated_at",
    "household_id",
    "household_name",
]

# Column mappings for Subscriptions sheet
SUBSCRIPTION_COLUMNS = [
    "subscription_id",
    "scope",
    "created_at",
]

# Column mappings for Shares sheet
SHARE_COLUMNS = [
    "share_url",
    "root_record_name",
    "permission",
    "title",
    "created_at",
]

SHARE_URL_MARKER = "#record="

# Google Sheets refuses cells longer than this
MAX_CELL_CHARACTERS = 50_000


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def split_share_url(share_url: str) -> Optional[tuple[str, str]]:
    """Split a share link into (spreadsheet url, root record name)."""
    spreadsheet_url, marker, record_name = share_url.partition(SHARE_URL_MARKER)
    if not marker or not spreadsheet_url or not record_name:
        return None
    return spreadsheet_url, record_name


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and caches opened spreadsheets.
    """

    def __init__(self, settings: Optional[CloudSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheets: dict[str, gspread.Spreadsheet] = {}
        self._settings = settings or get_settings().cloud

    @property
    def settings(self) -> CloudSettings:
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
                raise RemoteUnavailableError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise RemoteUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self, spreadsheet_id: Optional[str] = None) -> gspread.Spreadsheet:
        """Get a spreadsheet by key; the configured one by default."""
        key = spreadsheet_id or self._settings.spreadsheet_id
        if not key:
            raise RemoteUnavailableError("No spreadsheet configured for cloud sync")

        if key not in self._spreadsheets:
            client = self.connect()
            try:
                self._spreadsheets[key] = client.open_by_key(key)
            except gspread.SpreadsheetNotFound:
                raise RemoteUnavailableError(f"Spreadsheet not found: {key}")
        return self._spreadsheets[key]

    def find_spreadsheet_by_url(self, url: str) -> Optional[gspread.Spreadsheet]:
        """Open the spreadsheet behind a URL, or None if it cannot be resolved."""
        try:
            key = extract_id_from_url(url)
        except gspread.exceptions.NoValidUrlKeyFound:
            return None
        try:
            return self.get_spreadsheet(key)
        except RemoteUnavailableError:
            return None

    def get_worksheet(
        self,
        title: str,
        columns: list[str],
        spreadsheet_id: Optional[str] = None,
    ) -> gspread.Worksheet:
        """Get or create a worksheet with a header row."""
        spreadsheet = self.get_spreadsheet(spreadsheet_id)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=100,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


class GoogleSheetsRemoteStore(RemoteRecordStore):
    """
    Google Sheets implementation of the remote record store.

    Records are rows keyed by record name; the document payload is the
    JSON-serialized InventoryDocument in a single cell.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        share_context: Optional[ShareContext] = None,
    ):
        self._client = client or GoogleSheetsClient()
        self._share_context = share_context or ShareContext()
        self._settings = self._client.settings

    # =========================================================================
    # ROW MAPPING
    # =========================================================================

    def _record_to_row(self, record: RemoteRecord) -> list:
        """Convert a RemoteRecord to a spreadsheet row."""
        return [
            record.record_name,
            record.record_type,
            record.payload or "",
            record.updated_at.isoformat(),
            record.household_id or "",
            record.household_name or "",
        ]

    def _row_to_record(self, row: list) -> RemoteRecord:
        """Convert a spreadsheet row to a RemoteRecord."""
        updated_at = _safe_get(row, 3)
        return RemoteRecord(
            record_name=_safe_get(row, 0),
            record_type=_safe_get(row, 1) or ROOT_RECORD_TYPE,
            payload=_safe_get(row, 2) or None,
            updated_at=datetime.fromisoformat(updated_at) if updated_at else utc_now(),
            household_id=_safe_get(row, 4) or None,
            household_name=_safe_get(row, 5) or None,
        )

    # =========================================================================
    # SHEET ACCESS (blocking)
    # =========================================================================

    def _spreadsheet_for(self, scope: DatabaseScope) -> Optional[str]:
        if scope is DatabaseScope.SHARED:
            return self._share_context.accepted_container_id
        return None

    def _records_sheet(self, scope: DatabaseScope) -> Optional[gspread.Worksheet]:
        if scope is DatabaseScope.SHARED and self._spreadsheet_for(scope) is None:
            return None
        return self._client.get_worksheet(
            self._settings.records_sheet_name,
            RECORD_COLUMNS,
            self._spreadsheet_for(scope),
        )

    def _subscriptions_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._settings.subscriptions_sheet_name,
            SUBSCRIPTION_COLUMNS,
        )

    def _shares_sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(
            self._settings.shares_sheet_name,
            SHARE_COLUMNS,
        )

    @staticmethod
    def _find_row(sheet: gspread.Worksheet, key: str, column: int = 0) -> tuple[int, Optional[list]]:
        """Return (1-based row index, row) of the first row whose column equals key."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Start from 2 (row 1 is header)
            if row and len(row) > column and row[column] == key:
                return idx, row
        return 0, None

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _upsert_row(self, sheet: gspread.Worksheet, key: str, row: list) -> None:
        idx, _ = self._find_row(sheet, key)
        if idx:
            sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")
        else:
            sheet.append_row(row, value_input_option="RAW")

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append_row(self, sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    def _fetch_record_sync(self, scope: DatabaseScope, record_name: str) -> Optional[RemoteRecord]:
        sheet = self._records_sheet(scope)
        if sheet is None:
            return None
        _, row = self._find_row(sheet, record_name)
        return self._row_to_record(row) if row else None

    def _save_record_sync(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        sheet = self._records_sheet(scope)
        if sheet is None:
            raise RemoteStoreError("No shared household accepted on this device")
        if record.payload and len(record.payload) > MAX_CELL_CHARACTERS:
            raise RemoteStoreError(
                f"Document of {record.record_name} is too large for one cell "
                f"({len(record.payload)} > {MAX_CELL_CHARACTERS} characters)"
            )
        self._upsert_row(sheet, record.record_name, self._record_to_row(record))

    def _fetch_subscription_sync(self, scope: DatabaseScope, subscription_id: str) -> Optional[str]:
        sheet = self._subscriptions_sheet()
        for row in sheet.get_all_values()[1:]:
            if _safe_get(row, 0) == subscription_id and _safe_get(row, 1) == scope.value:
                return subscription_id
        return None

    def _save_subscription_sync(self, scope: DatabaseScope, subscription_id: str) -> None:
        if self._fetch_subscription_sync(scope, subscription_id):
            raise SubscriptionExistsError(f"Subscription already exists: {subscription_id}")
        self._append_row(
            self._subscriptions_sheet(),
            [subscription_id, scope.value, utc_now().isoformat()],
        )

    def _fetch_share_url_sync(self, root_record_name: str) -> Optional[str]:
        _, row = self._find_row(self._shares_sheet(), root_record_name, column=1)
        if row is None:
            return None
        return _safe_get(row, 0) or None

    def _save_share_sync(
        self,
        root_record: RemoteRecord,
        permission: SharePermission,
        title: str,
    ) -> Optional[str]:
        self._save_record_sync(DatabaseScope.PRIVATE, root_record)

        spreadsheet = self._client.get_spreadsheet()
        role = "writer" if permission is SharePermission.READ_WRITE else "reader"
        spreadsheet.share(None, perm_type="anyone", role=role, notify=False)

        if not spreadsheet.url:
            return None
        share_url = f"{spreadsheet.url}{SHARE_URL_MARKER}{root_record.record_name}"
        self._append_row(
            self._shares_sheet(),
            [share_url, root_record.record_name, permission.value, title, utc_now().isoformat()],
        )
        return share_url

    def _fetch_share_metadata_sync(self, share_url: str) -> Optional[ShareMetadata]:
        parts = split_share_url(share_url)
        if parts is None:
            return None
        spreadsheet_url, record_name = parts

        spreadsheet = self._client.find_spreadsheet_by_url(spreadsheet_url)
        if spreadsheet is None:
            return None

        return ShareMetadata(
            share_url=share_url,
            root_record_name=record_name,
            container_id=spreadsheet.id,
            title=spreadsheet.title,
        )

    def _accept_share_sync(self, metadata: ShareMetadata) -> None:
        sheet = self._client.get_worksheet(
            self._settings.records_sheet_name,
            RECORD_COLUMNS,
            metadata.container_id,
        )
        _, row = self._find_row(sheet, metadata.root_record_name)
        if row is None:
            raise RemoteStoreError(f"Shared record not found: {metadata.root_record_name}")

    # =========================================================================
    # ASYNC API
    # =========================================================================

    async def _run(self, operation: str, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except RemoteStoreError:
            raise
        except (GoogleAuthError, OSError) as e:
            raise RemoteUnavailableError(f"Failed to {operation}: {e}")
        except gspread.exceptions.GSpreadException as e:
            raise RemoteStoreError(f"Failed to {operation}: {e}")

    async def fetch_record(self, scope: DatabaseScope, record_name: str) -> Optional[RemoteRecord]:
        return await self._run("fetch record", self._fetch_record_sync, scope, record_name)

    async def save_record(self, scope: DatabaseScope, record: RemoteRecord) -> None:
        await self._run("save record", self._save_record_sync, scope, record)

    async def fetch_subscription(self, scope: DatabaseScope, subscription_id: str) -> Optional[str]:
        return await self._run("fetch subscription", self._fetch_subscription_sync, scope, subscription_id)

    async def save_subscription(self, scope: DatabaseScope, subscription_id: str) -> None:
        await self._run("save subscription", self._save_subscription_sync, scope, subscription_id)

    async def fetch_share_url(self, root_record_name: str) -> Optional[str]:
        return await self._run("fetch share", self._fetch_share_url_sync, root_record_name)

    async def save_share(
        self,
        root_record: RemoteRecord,
        permission: SharePermission,
        title: str,
    ) -> Optional[str]:
        return await self._run("save share", self._save_share_sync, root_record, permission, title)

    async def fetch_share_metadata(self, share_url: str) -> Optional[ShareMetadata]:
        return await self._run("fetch share metadata", self._fetch_share_metadata_sync, share_url)

    async def accept_share(self, metadata: ShareMetadata) -> None:
        await self._run("accept share", self._accept_share_sync, metadata)
