"""
In-Memory Storage Implementation

Dict-backed stores with the same semantics as the remote backends.
Documents are kept in their stored (Portuguese-key) form so the
document boundary is exercised exactly as it is against Firestore.

Used by the test suite and by the "memory" backend for offline demos.
"""

from datetime import date
from typing import Optional
from uuid import uuid4

import structlog
from pydantic import ValidationError

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
    UserProfileStoreInterface,
    check_owner,
    sort_newest_first,
)

logger = structlog.get_logger(__name__)


class InMemoryMovementStore(MovementStoreInterface):
    """Movement documents in a dict keyed by id."""

    def __init__(self, documents: Optional[dict[str, dict]] = None):
        self._documents: dict[str, dict] = dict(documents or {})

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

    async def create_movement(self, draft: MovementDraft, owner_id: str) -> Movement:
        movement_id = uuid4().hex
        document = draft.with_owner(owner_id).to_document()
        self._documents[movement_id] = document
        logger.info("movement_created", movement_id=movement_id, owner_id=owner_id)
        return Movement.from_document(movement_id, document)

    async def get_movement(self, movement_id: str) -> Optional[Movement]:
        document = self._documents.get(movement_id)
        if document is None:
            return None
        return self._read(movement_id, document)

    async def list_movements(
        self,
        owner_id: str,
        kind: Optional[MovementKind] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[Movement]:
        movements = []
        for movement_id, document in self._documents.items():
            # Predicates on the raw document, as a server-side query would
            if document.get("uid") != owner_id:
                continue
            if kind and document.get("tipo") != kind.value:
                continue
            if payment_status and document.get("situacao") != payment_status.value:
                continue
            raw_date = document.get("data")
            if date_from and not (isinstance(raw_date, str) and raw_date >= date_from.isoformat()):
                continue
            if date_before and not (isinstance(raw_date, str) and raw_date < date_before.isoformat()):
                continue

            movement = self._read(movement_id, document)
            if movement is not None:
                movements.append(movement)

        return sort_newest_first(movements)

    async def list_all_movements(self) -> list[Movement]:
        movements = [
            self._read(movement_id, document)
            for movement_id, document in self._documents.items()
        ]
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

        document = dict(self._documents[movement_id])
        for key, value in changes.to_document_changes(current.kind).items():
            if value is None:
                document.pop(key, None)
            else:
                document[key] = value
        self._documents[movement_id] = document
        logger.info("movement_updated", movement_id=movement_id, owner_id=owner_id)
        return Movement.from_document(movement_id, document)

    async def delete_movement(self, movement_id: str, owner_id: str) -> bool:
        current = await self.get_movement(movement_id)
        if current is None:
            raise NotFoundError(f"Movement not found: {movement_id}")
        check_owner(current, owner_id)

        del self._documents[movement_id]
        logger.info("movement_deleted", movement_id=movement_id, owner_id=owner_id)
        return True

    @property
    def documents(self) -> dict[str, dict]:
        """Raw stored documents (read-only copy)."""
        return {key: dict(value) for key, value in self._documents.items()}


class InMemoryUserProfileStore(UserProfileStoreInterface):
    """Profile documents in a dict keyed by uid."""

    def __init__(self):
        self._documents: dict[str, dict] = {}

    async def save_profile(self, profile: UserProfile) -> bool:
        self._documents[profile.uid] = profile.to_document()
        return True

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        document = self._documents.get(uid)
        if document is None:
            return None
        return UserProfile.model_validate({"uid": uid, **document})
