"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Cloud Firestore is the default backend; Google Sheets and in-memory
implementations are interchangeable behind the same interface.
"""

from finance_tracker.services.storage.interface import (
    MovementStoreInterface,
    NotFoundError,
    OwnershipError,
    StoreConnectionError,
    StoreError,
    UserProfileStoreInterface,
    check_owner,
)
from finance_tracker.services.storage.memory import (
    InMemoryMovementStore,
    InMemoryUserProfileStore,
)

__all__ = [
    # Interfaces
    "MovementStoreInterface",
    "UserProfileStoreInterface",
    "check_owner",
    # Exceptions
    "NotFoundError",
    "OwnershipError",
    "StoreConnectionError",
    "StoreError",
    # In-memory implementation
    "InMemoryMovementStore",
    "InMemoryUserProfileStore",
]
