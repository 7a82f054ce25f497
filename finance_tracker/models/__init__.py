"""
Data Models Package

All data flowing through the system conforms to these schemas.
"""

from finance_tracker.models.movement import (
    ExpenseKind,
    Movement,
    MovementDraft,
    MovementKind,
    MovementUpdate,
    PaymentStatus,
    decode_month_index,
    encode_month_index,
    month_indices_from,
)
from finance_tracker.models.user import AuthUser, UserProfile
from finance_tracker.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Movement models
    "ExpenseKind",
    "Movement",
    "MovementDraft",
    "MovementKind",
    "MovementUpdate",
    "PaymentStatus",
    "decode_month_index",
    "encode_month_index",
    "month_indices_from",
    # User models
    "AuthUser",
    "UserProfile",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
