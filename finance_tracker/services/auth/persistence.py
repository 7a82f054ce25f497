"""
Encrypted session persistence ("keep me signed in").

The signed-in user and their refresh token are sealed into a
Fernet token that the browser keeps in a cookie. The server stores
nothing, so a remembered session only ever comes back to the browser
that asked to be remembered. The key is derived from a passphrase with
PBKDF2, so the token is useless without AppSettings.session_secret.
"""

import base64
import json
from typing import Optional

import structlog
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from finance_tracker.config import AppSettings
from finance_tracker.models.user import AuthUser

logger = structlog.get_logger(__name__)

KDF_SALT = b"controle-financeiro-session-v1"
KDF_ITERATIONS = 390_000


def derive_key(passphrase: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=KDF_SALT,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))


class SessionPersistence:
    """Seals and opens the per-browser session token."""

    def __init__(self, secret: str, cookie_name: str = "controle_financeiro_session", max_age_days: int = 30):
        self._fernet = Fernet(derive_key(secret))
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_days * 24 * 60 * 60

    @classmethod
    def from_settings(cls, settings: AppSettings) -> Optional["SessionPersistence"]:
        """None when no session secret is configured."""
        if not settings.persistence_enabled:
            return None
        return cls(settings.session_secret, settings.session_cookie, settings.session_max_age_days)

    def seal(self, user: AuthUser, refresh_token: Optional[str]) -> str:
        """Encrypted token for the browser cookie."""
        payload = {
            "uid": user.uid,
            "email": user.email,
            "display_name": user.display_name,
            "refresh_token": refresh_token,
        }
        return self._fernet.encrypt(json.dumps(payload).encode("utf-8")).decode("ascii")

    def open(self, token: Optional[str]) -> Optional[dict]:
        """
        The sealed payload, or None.

        A token that cannot be decrypted (other secret, tampering,
        expiry) is treated as no session.
        """
        if not token:
            return None
        try:
            raw = self._fernet.decrypt(token.encode("ascii"), ttl=self.max_age_seconds)
            payload = json.loads(raw.decode("utf-8"))
        except (InvalidToken, ValueError) as e:
            logger.warning("session_token_unreadable", error=type(e).__name__)
            return None
        if not isinstance(payload, dict) or not payload.get("uid"):
            return None
        return payload

    def cookie_assignment(self, token: Optional[str]) -> str:
        """`document.cookie` string that stores the token, or removes it when None."""
        if token is None:
            return f"{self.cookie_name}=; path=/; max-age=0; SameSite=Strict"
        return f"{self.cookie_name}={token}; path=/; max-age={self.max_age_seconds}; SameSite=Strict"
