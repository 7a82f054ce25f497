"""Tests for the Google Sheets stores with the worksheet mocked out."""

import asyncio
import json
from datetime import date
from unittest.mock import MagicMock

import gspread
import pytest

from finance_tracker.models import MovementUpdate, UserProfile
from finance_tracker.services.storage import NotFoundError, OwnershipError, StoreError
from finance_tracker.services.storage.google_sheets import (
    MOVEMENT_COLUMNS,
    USER_COLUMNS,
    GoogleSheetsMovementStore,
    GoogleSheetsUserProfileStore,
    movement_to_row,
    row_to_document,
)
from helpers import expense, income


@pytest.fixture
def sheet():
    return MagicMock()


@pytest.fixture
def sheets_client(sheet):
    client = MagicMock()
    client.get_movements_sheet.return_value = sheet
    client.get_users_sheet.return_value = sheet
    return client


@pytest.fixture
def sheets_store(sheets_client):
    return GoogleSheetsMovementStore(sheets_client)


def rows(*movements):
    """Header plus one row per (id, draft, owner)."""
    values = [list(MOVEMENT_COLUMNS)]
    for movement_id, draft, owner in movements:
        values.append(movement_to_row(movement_id, draft.with_owner(owner).to_document()))
    return values


class TestRowConversion:
    """Tests for converting between rows and documents."""

    def test_fixed_expense_row(self):
        """Test column order and the JSON months cell."""
        document = expense(status="pago", months=[24299, 24300]).with_owner("u1").to_document()
        row = movement_to_row("m1", document)
        assert row[0] == "m1"
        assert row[MOVEMENT_COLUMNS.index("uid")] == "u1"
        assert json.loads(row[MOVEMENT_COLUMNS.index("meses")]) == [24299, 24300]

    def test_blank_cells_are_absent(self):
        """Test that income rows drop the empty expense columns."""
        row = movement_to_row("m1", income().with_owner("u1").to_document())
        document = row_to_document(row)
        assert "despesaTipo" not in document
        assert "meses" not in document
        assert document["tipo"] == "receita"

    def test_short_row(self):
        """Test that missing trailing columns are tolerated."""
        assert row_to_document(["m1", "u1", "receita"]) == {"uid": "u1", "tipo": "receita"}

    def test_bad_months_cell(self):
        """Test that an unreadable months cell is dropped."""
        row = ["m1", "u1", "despesa", "10", "2024-12-01", "x", "fixa", "not json", "pago"]
        assert "meses" not in row_to_document(row)


class TestGoogleSheetsMovementStore:
    """Tests for movement rows."""

    def test_create_appends_row(self, sheets_store, sheet):
        """Test that create appends one row with the owner."""
        movement = asyncio.run(sheets_store.create_movement(income(), "u1"))

        row = sheet.append_row.call_args.args[0]
        assert row[0] == movement.id
        assert row[1] == "u1"

    def test_list_filters_owner_and_dates(self, sheets_store, sheet):
        """Test owner scoping and the half-open window."""
        sheet.get_all_values.return_value = rows(
            ("a", income(), "u1"),
            ("b", income(day=date(2025, 1, 1)), "u1"),
            ("c", income(), "u2"),
        )
        movements = asyncio.run(sheets_store.list_movements(
            "u1",
            date_from=date(2024, 12, 1),
            date_before=date(2025, 1, 1),
        ))
        assert [m.id for m in movements] == ["a"]

    def test_update_rewrites_row(self, sheets_store, sheet):
        """Test that an update rewrites the movement's row in place."""
        sheet.get_all_values.return_value = rows(
            ("a", income(), "u1"),
            ("b", expense(months=[24299]), "u1"),
        )

        updated = asyncio.run(sheets_store.update_movement("b", MovementUpdate(payment_status="pago"), "u1"))

        assert updated.payment_status.value == "pago"
        kwargs = sheet.update.call_args.kwargs
        assert kwargs["range_name"] == "A3"
        assert kwargs["values"][0][MOVEMENT_COLUMNS.index("situacao")] == "pago"

    def test_update_checks_owner(self, sheets_store, sheet):
        """Test that another user's row is not rewritten."""
        sheet.get_all_values.return_value = rows(("a", income(), "u1"))
        with pytest.raises(OwnershipError):
            asyncio.run(sheets_store.update_movement("a", MovementUpdate(description="x"), "u2"))
        sheet.update.assert_not_called()

    def test_delete_removes_row(self, sheets_store, sheet):
        """Test that delete removes the movement's row."""
        sheet.get_all_values.return_value = rows(("a", income(), "u1"))
        assert asyncio.run(sheets_store.delete_movement("a", "u1")) is True
        sheet.delete_rows.assert_called_once_with(2)

    def test_delete_missing(self, sheets_store, sheet):
        """Test that unknown ids raise NotFoundError."""
        sheet.get_all_values.return_value = rows()
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_store.delete_movement("zzz", "u1"))

    def test_read_failure(self, sheets_store, sheet):
        """Test that gspread errors become StoreError."""
        sheet.get_all_values.side_effect = gspread.exceptions.GSpreadException("quota")
        with pytest.raises(StoreError):
            asyncio.run(sheets_store.list_movements("u1"))


class TestGoogleSheetsUserProfileStore:
    """Tests for profile rows."""

    def test_save_new_profile(self, sheets_client, sheet):
        """Test that a new profile is appended."""
        sheet.get_all_values.return_value = [list(USER_COLUMNS)]
        store = GoogleSheetsUserProfileStore(sheets_client)
        profile = UserProfile(uid="u1", name="Alice", email="alice@example.com")

        asyncio.run(store.save_profile(profile))
        assert sheet.append_row.call_args.args[0][:3] == ["u1", "Alice", "alice@example.com"]

    def test_get_profile(self, sheets_client, sheet):
        """Test reading a profile row back."""
        sheet.get_all_values.return_value = [
            list(USER_COLUMNS),
            ["u1", "Alice", "alice@example.com", "2024-12-01T10:00:00+00:00"],
        ]
        store = GoogleSheetsUserProfileStore(sheets_client)

        profile = asyncio.run(store.get_profile("u1"))
        assert profile.name == "Alice"
        assert asyncio.run(store.get_profile("u2")) is None
