"""
In-memory identity provider for tests and offline demos.

Mirrors the Firebase rules the app relies on: e-mails must look like
e-mails, passwords need at least 6 characters, and an e-mail can only
be registered once.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from finance_tracker.models.user import AuthUser
from finance_tracker.services.auth.interface import (
    AuthError,
    AuthResult,
    IdentityProviderInterface,
)

MIN_PASSWORD_LENGTH = 6


@dataclass
class _Account:
    uid: str
    email: str
    password: str
    display_name: Optional[str] = None
    disabled: bool = False

    def to_user(self) -> AuthUser:
        return AuthUser(uid=self.uid, email=self.email, display_name=self.display_name)


class InMemoryIdentityProvider(IdentityProviderInterface):
    """Accounts and refresh tokens kept in dicts."""

    def __init__(self):
        self._accounts: dict[str, _Account] = {}
        self._refresh_tokens: dict[str, str] = {}

    def _issue(self, account: _Account) -> AuthResult:
        token = uuid4().hex
        self._refresh_tokens[token] = account.email
        return AuthResult(user=account.to_user(), refresh_token=token)

    def add_account(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        uid: Optional[str] = None,
    ) -> AuthUser:
        """Seed an account directly (tests, demo data)."""
        account = _Account(
            uid=uid or uuid4().hex,
            email=email.strip().lower(),
            password=password,
            display_name=display_name,
        )
        self._accounts[account.email] = account
        return account.to_user()

    def disable(self, email: str) -> None:
        self._accounts[email.strip().lower()].disabled = True

    async def sign_in(self, email: str, password: str) -> AuthResult:
        account = self._accounts.get(email.strip().lower())
        if account is None or account.password != password:
            raise AuthError("INVALID_LOGIN_CREDENTIALS")
        if account.disabled:
            raise AuthError("USER_DISABLED")
        return self._issue(account)

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        email = email.strip().lower()
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise AuthError("INVALID_EMAIL")
        if email in self._accounts:
            raise AuthError("EMAIL_EXISTS")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError("WEAK_PASSWORD : Password should be at least 6 characters")

        self.add_account(email, password, display_name=name)
        return self._issue(self._accounts[email])

    async def refresh(self, refresh_token: str) -> AuthResult:
        email = self._refresh_tokens.get(refresh_token)
        account = self._accounts.get(email) if email else None
        if account is None:
            raise AuthError("INVALID_REFRESH_TOKEN")
        if account.disabled:
            raise AuthError("USER_DISABLED")
        return AuthResult(user=account.to_user(), refresh_token=refresh_token)

    async def sign_out(self) -> None:
        pass
