"""
Cloud Firestore Storage Implementation

DESIGN DECISION: Firestore is the primary backend because the identity
provider is Firebase Authentication: document access rules can key on
request.auth.uid, which is what actually protects one user's movements
from another.

All owner, kind, status and date filters run server-side as query
predicates. Combining the uid equality with the date range needs a
composite index (uid ASC, data ASC) on the movements collection.

Store operations are not retried; only establishing the client is.
"""

from datetime import date
from typing import Optional

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from google.api_core.exceptions import GoogleAPIError
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import FirebaseSettings, get_settings
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

APP_NAME = "controle-financeiro"


class FirestoreClient:
    """
    Low-level Firestore client wrapper.

    Handles Admin SDK initialization and provides retry logic for it.
    """

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        self._settings = settings or get_settings().firebase
        self._client = None

    @property
    def settings(self) -> FirebaseSettings:
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self):
        """
        Initialize the Firebase Admin app and return a Firestore client.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                try:
                    app = firebase_admin.get_app(APP_NAME)
                except ValueError:
                    options = {}
                    if self._settings.project_id:
                        options["projectId"] = self._settings.project_id
                    app = firebase_admin.initialize_app(
                        credentials.Certificate(self._settings.credentials_path),
                        options,
                        name=APP_NAME,
                    )
                self._client = firestore.client(app)
            except FileNotFoundError as e:
                raise StoreConnectionError(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                ) from e
            except (ValueError, GoogleAPIError) as e:
                raise StoreConnectionError(f"Failed to connect to Firestore: {e}") from e

        return self._client

    def movements(self):
        return self.connect().collection(self._settings.movements_collection)

    def users(self):
        return self.connect().collection(self._settings.users_collection)


class FirestoreMovementStore(MovementStoreInterface):
    """
    Firestore implementation of movement storage.

    One document per movement in the movements collection, keyed by
    an auto-generated id, with the owner's uid as a field.
    """

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    def _read(self, snapshot) -> Optional[Movement]:
        """Convert a snapshot, skipping documents that cannot be read."""
        try:
            return Movement.from_document(snapshot.id, snapshot.to_dict() or {})
        except ValidationError as e:
            logger.warning(
                "movement_skipped",
                movement_id=snapshot.id,
                error=str(e),
            )
            return None

    async def create_movement(self, draft: MovementDraft, owner_id: str) -> Movement:
        """Add a movement document with an auto-generated id."""
        document = draft.with_owner(owner_id).to_document()
        try:
            doc_ref = self._client.movements().document()
            doc_ref.set(document)
        except GoogleAPIError as e:
            raise StoreError(f"Failed to save movement: {e}") from e

        logger.info("movement_created", movement_id=doc_ref.id, owner_id=owner_id)
        return Movement.from_document(doc_ref.id, document)

    async def get_movement(self, movement_id: str) -> Optional[Movement]:
        try:
            snapshot = self._client.movements().document(movement_id).get()
        except GoogleAPIError as e:
            raise StoreError(f"Failed to get movement: {e}") from e

        if not snapshot.exists:
            return None
        return self._read(snapshot)

    async def list_movements(
        self,
        owner_id: str,
        kind: Optional[MovementKind] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[Movement]:
        """List one owner's movements using server-side predicates."""
        query = self._client.movements().where(filter=FieldFilter("uid", "==", owner_id))
        if kind:
            query = query.where(filter=FieldFilter("tipo", "==", kind.value))
        if payment_status:
            query = query.where(filter=FieldFilter("situacao", "==", payment_status.value))
        # Dates are ISO strings, so string comparison is date comparison
        if date_from:
            query = query.where(filter=FieldFilter("data", ">=", date_from.isoformat()))
        if date_before:
            query = query.where(filter=FieldFilter("data", "<", date_before.isoformat()))

        try:
            snapshots = list(query.stream())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to list movements: {e}") from e

        movements = [self._read(snapshot) for snapshot in snapshots]
        return sort_newest_first([m for m in movements if m is not None])

    async def list_all_movements(self) -> list[Movement]:
        try:
            snapshots = list(self._client.movements().stream())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to list movements: {e}") from e

        movements = [self._read(snapshot) for snapshot in snapshots]
        return sort_newest_first([m for m in movements if m is not None])

    async def update_movement(
        self,
        movement_id: str,
        changes: MovementUpdate,
        owner_id: str,
    ) -> Movement:
        current = await self.get_movement(movement_id)
        if current is None:
            raise NotFoundError(f"Movement not found: {movement_id}")
        check_owner(current, owner_id)

        document_changes = {
            key: firestore.DELETE_FIELD if value is None else value
            for key, value in changes.to_document_changes(current.kind).items()
        }
        if document_changes:
            try:
                self._client.movements().document(movement_id).update(document_changes)
            except GoogleAPIError as e:
                raise StoreError(f"Failed to update movement: {e}") from e

        logger.info("movement_updated", movement_id=movement_id, owner_id=owner_id)
        return current.apply(changes)

    async def delete_movement(self, movement_id: str, owner_id: str) -> bool:
        current = await self.get_movement(movement_id)
        if current is None:
            raise NotFoundError(f"Movement not found: {movement_id}")
        check_owner(current, owner_id)

        try:
            self._client.movements().document(movement_id).delete()
        except GoogleAPIError as e:
            raise StoreError(f"Failed to delete movement: {e}") from e

        logger.info("movement_deleted", movement_id=movement_id, owner_id=owner_id)
        return True


class FirestoreUserProfileStore(UserProfileStoreInterface):
    """Profile documents at users/<uid>."""

    def __init__(self, client: Optional[FirestoreClient] = None):
        self._client = client or FirestoreClient()

    async def save_profile(self, profile: UserProfile) -> bool:
        try:
            self._client.users().document(profile.uid).set(profile.to_document())
        except GoogleAPIError as e:
            raise StoreError(f"Failed to save profile: {e}") from e
        return True

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            snapshot = self._client.users().document(uid).get()
        except GoogleAPIError as e:
            raise StoreError(f"Failed to get profile: {e}") from e

        if not snapshot.exists:
            return None
        try:
            return UserProfile.model_validate({"uid": uid, **(snapshot.to_dict() or {})})
        except ValidationError as e:
            logger.warning("profile_skipped", uid=uid, error=str(e))
            return None
