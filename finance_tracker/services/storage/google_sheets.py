"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is kept as an alternative backend because:
1. Non-technical users can view their movements directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no access rules: owner checks happen here only
- Limited query capabilities (we filter in Python)

Rows are converted to the same Portuguese-key documents Firestore
stores, so Movement.from_document is the only reader for both.
"""

import json
from datetime import date
from typing import Optional
from uuid import uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import GoogleSheetsSettings, get_settings
from finance_tracker.models.movement import (
    Movement,
    MovementDraft,
    MovementKind,
    MovementUpdate,
    PaymentStatus,
)
from finance_tracker.models.user import UserProfile
from finance_tracker.services.storage.interface import (
    MovementStoreInterface,
    NotFoundError,
    StoreConnectionError,
    StoreError,
    UserProfileStoreInterface,
    check_owner,
    sort_newest_first,
)

logger = structlog.get_logger(__name__)


# Column mappings for Movimentacoes sheet (headers are the document keys)
MOVEMENT_COLUMNS = [
    "id",
    "uid",
    "tipo",
    "valor",
    "data",
    "descricao",
    "despesaTipo",
    "meses",
    "situacao",
]

# Column mappings for Usuarios sheet
USER_COLUMNS = [
    "uid",
    "name",
    "email",
    "createdAt",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
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
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                ) from e
            except (ValueError, gspread.exceptions.GSpreadException) as e:
                raise StoreConnectionError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise StoreConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str]) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(title=title, rows=1000, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_movements_sheet(self) -> gspread.Worksheet:
        """Get or create the Movimentacoes worksheet."""
        return self._get_or_create(self._settings.movements_sheet_name, MOVEMENT_COLUMNS)

    def get_users_sheet(self) -> gspread.Worksheet:
        """Get or create the Usuarios worksheet."""
        return self._get_or_create(self._settings.users_sheet_name, USER_COLUMNS)


def movement_to_row(movement_id: str, document: dict) -> list:
    """Convert a movement document to a spreadsheet row."""
    row = []
    for column in MOVEMENT_COLUMNS:
        if column == "id":
            row.append(movement_id)
        elif column == "meses":
            months = document.get("meses")
            row.append(json.dumps(months) if months is not None else "")
        else:
            value = document.get(column)
            row.append("" if value is None else str(value))
    return row


def row_to_document(row: list) -> dict:
    """
    Convert a spreadsheet row back to a movement document.

    Blank cells are absent keys; the months cell holds JSON.
    """
    # Handle missing columns gracefully
    def safe_get(index: int) -> str:
        try:
            return row[index] or ""
        except IndexError:
            return ""

    document = {}
    for index, column in enumerate(MOVEMENT_COLUMNS[1:], start=1):
        value = safe_get(index)
        if not value:
            continue
        if column == "meses":
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                continue
        document[column] = value
    return document


class GoogleSheetsMovementStore(MovementStoreInterface):
    """
    Google Sheets implementation of movement storage.

    Movements are stored as rows in a worksheet with one movement per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_rows(self) -> list[tuple[int, str, dict]]:
        """All data rows as (sheet_row_number, id, document)."""
        try:
            all_rows = self._client.get_movements_sheet().get_all_values()
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to read movements: {e}") from e

        rows = []
        # Row 1 is the header
        for number, row in enumerate(all_rows[1:], start=2):
            if not row or not row[0]:
                continue
            rows.append((number, row[0], row_to_document(row)))
        return rows

    def _read(self, movement_id: str, document: dict) -> Optional[Movement]:
        try:
            return Movement.from_document(movement_id, document)
        except ValidationError as e:
            logger.warning(
                "movement_skipped",
                movement_id=movement_id,
                error=str(e),
            )
            return None

    def _find(self, movement_id: str) -> tuple[int, Movement]:
        for number, row_id, document in self._read_rows():
            if row_id == movement_id:
                movement = self._read(row_id, document)
                if movement is not None:
                    return number, movement
        raise NotFoundError(f"Movement not found: {movement_id}")

    async def create_movement(self, draft: MovementDraft, owner_id: str) -> Movement:
        """Append a movement row with a generated id."""
        movement_id = uuid4().hex
        document = draft.with_owner(owner_id).to_document()
        try:
            sheet = self._client.get_movements_sheet()
            sheet.append_row(movement_to_row(movement_id, document), value_input_option="RAW")
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to save movement: {e}") from e

        logger.info("movement_created", movement_id=movement_id, owner_id=owner_id)
        return Movement.from_document(movement_id, document)

    async def get_movement(self, movement_id: str) -> Optional[Movement]:
        try:
            _, movement = self._find(movement_id)
        except NotFoundError:
            return None
        return movement

    async def list_movements(
        self,
        owner_id: str,
        kind: Optional[MovementKind] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[Movement]:
        movements = []
        for _, movement_id, document in self._read_rows():
            if document.get("uid") != owner_id:
                continue
            movement = self._read(movement_id, document)
            if movement is None:
                continue

            # Apply filters
            if kind and movement.kind != kind:
                continue
            if payment_status and movement.payment_status != payment_status:
                continue
            if date_from and movement.date < date_from:
                continue
            if date_before and movement.date >= date_before:
                continue

            movements.append(movement)

        return sort_newest_first(movements)

    async def list_all_movements(self) -> list[Movement]:
        movements = [
            self._read(movement_id, document)
            for _, movement_id, document in self._read_rows()
        ]
        return sort_newest_first([m for m in movements if m is not None])

    async def update_movement(
        self,
        movement_id: str,
        changes: MovementUpdate,
        owner_id: str,
    ) -> Movement:
        number, current = self._find(movement_id)
        check_owner(current, owner_id)

        updated = current.apply(changes)
        row = movement_to_row(movement_id, updated.to_document())
        try:
            sheet = self._client.get_movements_sheet()
            sheet.update(
                values=[row],
                range_name=f"A{number}",
                value_input_option="RAW",
            )
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to update movement: {e}") from e

        logger.info("movement_updated", movement_id=movement_id, owner_id=owner_id)
        return updated

    async def delete_movement(self, movement_id: str, owner_id: str) -> bool:
        number, current = self._find(movement_id)
        check_owner(current, owner_id)

        try:
            self._client.get_movements_sheet().delete_rows(number)
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to delete movement: {e}") from e

        logger.info("movement_deleted", movement_id=movement_id, owner_id=owner_id)
        return True


class GoogleSheetsUserProfileStore(UserProfileStoreInterface):
    """One row per user in the Usuarios worksheet."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    async def save_profile(self, profile: UserProfile) -> bool:
        document = profile.to_document()
        row = [profile.uid] + [document[column] for column in USER_COLUMNS[1:]]
        try:
            sheet = self._client.get_users_sheet()
            all_rows = sheet.get_all_values()
            for number, existing in enumerate(all_rows[1:], start=2):
                if existing and existing[0] == profile.uid:
                    sheet.update(values=[row], range_name=f"A{number}")
                    return True
            sheet.append_row(row, value_input_option="RAW")
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to save profile: {e}") from e
        return True

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            all_rows = self._client.get_users_sheet().get_all_values()
        except gspread.exceptions.GSpreadException as e:
            raise StoreError(f"Failed to get profile: {e}") from e

        for row in all_rows[1:]:
            if row and row[0] == uid:
                data = {
                    column: row[index]
                    for index, column in enumerate(USER_COLUMNS)
                    if index < len(row) and row[index]
                }
                try:
                    return UserProfile.model_validate(data)
                except ValidationError as e:
                    logger.warning("profile_skipped", uid=uid, error=str(e))
                    return None
        return None
