"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run on Cloud Firestore, Google Sheets or in memory
2. Use in-memory storage for testing
3. Keep views decoupled from the storage implementation

Every read the views perform is scoped to an owner, and every write
checks the owner of the record it touches. The store's own access rules
remain the real authorization boundary; these checks keep the UI honest.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from finance_tracker.models.movement import (
    Movement,
    MovementDraft,
    MovementKind,
    MovementUpdate,
    PaymentStatus,
)
from finance_tracker.models.user import UserProfile


class MovementStoreInterface(ABC):
    """
    Abstract interface for movement storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def create_movement(self, draft: MovementDraft, owner_id: str) -> Movement:
        """
        Store a new movement stamped with its owner.

        Returns:
            The stored movement, with its assigned id

        Raises:
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def get_movement(self, movement_id: str) -> Optional[Movement]:
        """
        Retrieve a movement by id.

        Returns:
            The movement if found and readable, None otherwise
        """
        pass

    @abstractmethod
    async def list_movements(
        self,
        owner_id: str,
        kind: Optional[MovementKind] = None,
        payment_status: Optional[PaymentStatus] = None,
        date_from: Optional[date] = None,
        date_before: Optional[date] = None,
    ) -> list[Movement]:
        """
        List one owner's movements with optional filters.

        Args:
            owner_id: Only movements created by this uid
            kind: Filter by income/expense
            payment_status: Filter by paid/pending
            date_from: Movements on or after this date
            date_before: Movements strictly before this date

        Returns:
            Matching movements, newest first. Unreadable documents
            are skipped.
        """
        pass

    @abstractmethod
    async def list_all_movements(self) -> list[Movement]:
        """Unscoped read of every movement in the collection, newest first."""
        pass

    @abstractmethod
    async def update_movement(
        self,
        movement_id: str,
        changes: MovementUpdate,
        owner_id: str,
    ) -> Movement:
        """
        Apply a partial update to a movement owned by owner_id.

        Returns:
            The movement as stored after the update

        Raises:
            NotFoundError: If the movement doesn't exist
            OwnershipError: If it belongs to another user
            StoreError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_movement(self, movement_id: str, owner_id: str) -> bool:
        """
        Delete a movement owned by owner_id.

        Returns:
            True if deleted

        Raises:
            NotFoundError: If the movement doesn't exist
            OwnershipError: If it belongs to another user
        """
        pass


class UserProfileStoreInterface(ABC):
    """Profile documents, written once at registration."""

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> bool:
        pass

    @abstractmethod
    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        pass


class StoreError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StoreError):
    """Entity not found in storage."""
    pass


class OwnershipError(StoreError):
    """The record belongs to a different user."""
    pass


class StoreConnectionError(StoreError):
    """Could not connect to storage backend."""
    pass


def check_owner(movement: Movement, owner_id: str) -> None:
    """
    Raise OwnershipError unless movement belongs to owner_id.

    Legacy movements without an owner are not editable by anyone.
    """
    if movement.owner_id != owner_id:
        raise OwnershipError(
            f"Movement {movement.id} does not belong to user {owner_id}"
        )


def sort_newest_first(movements: list[Movement]) -> list[Movement]:
    return sorted(movements, key=lambda m: m.date, reverse=True)
