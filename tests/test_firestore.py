"""Tests for the Firestore stores with the client mocked out."""

import asyncio
from unittest.mock import MagicMock, patch

import pytest
from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError

from finance_tracker.config import FirebaseSettings
from finance_tracker.models import MovementKind, MovementUpdate, PaymentStatus, UserProfile
from finance_tracker.services.storage import NotFoundError, OwnershipError, StoreError
from finance_tracker.services.storage.firestore import (
    APP_NAME,
    FirestoreClient,
    FirestoreMovementStore,
    FirestoreUserProfileStore,
)
from helpers import expense, income


def snapshot(doc_id, data, exists=True):
    snap = MagicMock()
    snap.id = doc_id
    snap.exists = exists
    snap.to_dict.return_value = data
    return snap


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def client(collection):
    client = MagicMock()
    client.movements.return_value = collection
    client.users.return_value = collection
    return client


@pytest.fixture
def firestore_store(client):
    return FirestoreMovementStore(client)


def stored_document(draft, owner="uid-alice"):
    return draft.with_owner(owner).to_document()


class TestFirestoreClient:
    """Tests for Admin SDK initialization."""

    @patch("finance_tracker.services.storage.firestore.firestore")
    @patch("finance_tracker.services.storage.firestore.credentials")
    @patch("finance_tracker.services.storage.firestore.firebase_admin")
    def test_connect_initializes_named_app(self, mock_admin, mock_credentials, mock_firestore, tmp_path):
        """Test that the app is initialized once under its own name."""
        path = tmp_path / "firebase.json"
        path.write_text("{}")
        settings = FirebaseSettings(web_api_key="k", credentials_path=str(path), project_id="demo")
        mock_admin.get_app.side_effect = ValueError("no app")

        client = FirestoreClient(settings)
        first = client.connect()
        second = client.connect()

        assert first is second is mock_firestore.client.return_value
        mock_admin.initialize_app.assert_called_once_with(
            mock_credentials.Certificate.return_value,
            {"projectId": "demo"},
            name=APP_NAME,
        )


class TestFirestoreMovementStore:
    """Tests for movement documents in Firestore."""

    def test_create_sets_document(self, firestore_store, collection):
        """Test that create writes the owner-stamped document."""
        doc_ref = collection.document.return_value
        doc_ref.id = "new-id"

        movement = asyncio.run(firestore_store.create_movement(income(), "uid-alice"))

        assert movement.id == "new-id"
        doc_ref.set.assert_called_once_with(stored_document(income()))

    def test_create_failure(self, firestore_store, collection):
        """Test that API errors become StoreError."""
        collection.document.return_value.set.side_effect = GoogleAPIError("unavailable")
        with pytest.raises(StoreError):
            asyncio.run(firestore_store.create_movement(income(), "uid-alice"))

    def test_list_uses_server_side_filters(self, firestore_store, collection):
        """Test that owner, kind, status and dates become query predicates."""
        query = collection.where.return_value
        query.where.return_value = query
        query.stream.return_value = [
            snapshot("a", stored_document(expense(status="pendente"))),
        ]

        movements = asyncio.run(firestore_store.list_movements(
            "uid-alice",
            kind=MovementKind.EXPENSE,
            payment_status=PaymentStatus.PENDING,
            date_from=income().date.replace(day=1),
            date_before=income().date.replace(year=2025, month=1, day=1),
        ))

        assert [m.id for m in movements] == ["a"]
        first = collection.where.call_args.kwargs["filter"]
        assert (first.field_path, first.op_string, first.value) == ("uid", "==", "uid-alice")
        predicates = [
            (c.kwargs["filter"].field_path, c.kwargs["filter"].op_string, c.kwargs["filter"].value)
            for c in query.where.call_args_list
        ]
        assert predicates == [
            ("tipo", "==", "despesa"),
            ("situacao", "==", "pendente"),
            ("data", ">=", "2024-12-01"),
            ("data", "<", "2025-01-01"),
        ]

    def test_list_skips_unreadable_documents(self, firestore_store, collection):
        """Test that a malformed document is skipped, not fatal."""
        collection.where.return_value.stream.return_value = [
            snapshot("good", stored_document(income())),
            snapshot("bad", {"tipo": "receita", "valor": "abc"}),
        ]
        movements = asyncio.run(firestore_store.list_movements("uid-alice"))
        assert [m.id for m in movements] == ["good"]

    def test_list_failure(self, firestore_store, collection):
        """Test that a failed query becomes StoreError."""
        collection.where.return_value.stream.side_effect = GoogleAPIError("unavailable")
        with pytest.raises(StoreError):
            asyncio.run(firestore_store.list_movements("uid-alice"))

    def test_update_deletes_cleared_fields(self, firestore_store, collection):
        """Test that cleared expense attributes are removed from the document."""
        doc_ref = collection.document.return_value
        doc_ref.get.return_value = snapshot("a", stored_document(expense(months=[24299])))

        updated = asyncio.run(firestore_store.update_movement(
            "a",
            MovementUpdate(expense_kind="variavel"),
            "uid-alice",
        ))

        changes = doc_ref.update.call_args.args[0]
        assert changes["despesaTipo"] == "variavel"
        assert changes["situacao"] == "pago"
        assert changes["meses"] is firestore.DELETE_FIELD
        assert updated.months_span is None

    def test_update_checks_owner(self, firestore_store, collection):
        """Test that another user's document is not written."""
        doc_ref = collection.document.return_value
        doc_ref.get.return_value = snapshot("a", stored_document(income()))

        with pytest.raises(OwnershipError):
            asyncio.run(firestore_store.update_movement("a", MovementUpdate(description="x"), "uid-bob"))
        doc_ref.update.assert_not_called()

    def test_delete_missing(self, firestore_store, collection):
        """Test that deleting an unknown id raises NotFoundError."""
        collection.document.return_value.get.return_value = snapshot("a", None, exists=False)
        with pytest.raises(NotFoundError):
            asyncio.run(firestore_store.delete_movement("a", "uid-alice"))

    def test_delete(self, firestore_store, collection):
        """Test that the owner can delete."""
        doc_ref = collection.document.return_value
        doc_ref.get.return_value = snapshot("a", stored_document(income()))
        assert asyncio.run(firestore_store.delete_movement("a", "uid-alice")) is True
        doc_ref.delete.assert_called_once()


class TestFirestoreUserProfileStore:
    """Tests for profile documents."""

    def test_save_and_get(self, client, collection):
        """Test that profiles are keyed by uid."""
        store = FirestoreUserProfileStore(client)
        profile = UserProfile(uid="uid-alice", name="Alice", email="alice@example.com")

        asyncio.run(store.save_profile(profile))
        collection.document.assert_called_with("uid-alice")
        collection.document.return_value.get.return_value = snapshot("uid-alice", profile.to_document())

        assert asyncio.run(store.get_profile("uid-alice")).name == "Alice"
