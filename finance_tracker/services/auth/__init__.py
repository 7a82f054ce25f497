"""
Authentication Services Package

Identity provider interface, its Firebase and in-memory implementations,
the AuthSession context object and encrypted session persistence.
"""

from finance_tracker.services.auth.interface import (
    AUTH_ERROR_MESSAGES,
    AuthError,
    AuthResult,
    IdentityProviderInterface,
    NotAuthenticatedError,
    message_for_code,
)
from finance_tracker.services.auth.memory import InMemoryIdentityProvider
from finance_tracker.services.auth.persistence import SessionPersistence
from finance_tracker.services.auth.session import AuthSession, CookieUpdate

__all__ = [
    "AUTH_ERROR_MESSAGES",
    "AuthError",
    "AuthResult",
    "AuthSession",
    "CookieUpdate",
    "IdentityProviderInterface",
    "InMemoryIdentityProvider",
    "NotAuthenticatedError",
    "SessionPersistence",
    "message_for_code",
]
