"""
Firebase Authentication over the Identity Toolkit REST API.

The Admin SDK cannot verify passwords, so sign-in and sign-up go
through the same REST endpoints the Firebase web SDK uses, with the
project's Web API key.
"""

from typing import Optional

import requests
import structlog

from finance_tracker.config import FirebaseSettings, get_settings
from finance_tracker.models.user import AuthUser
from finance_tracker.services.auth.interface import (
    AuthError,
    AuthResult,
    IdentityProviderInterface,
)

logger = structlog.get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1/accounts"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"


class FirebaseIdentityProvider(IdentityProviderInterface):
    """Identity provider backed by Firebase Authentication (e-mail/password)."""

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        self._settings = settings or get_settings().firebase

    def _post(self, url: str, **kwargs) -> dict:
        """
        POST to a Firebase endpoint and return the JSON body.

        Raises:
            AuthError: With the provider's error code on a non-200 reply,
                or NETWORK_REQUEST_FAILED when the call itself fails
        """
        try:
            response = requests.post(
                url,
                params={"key": self._settings.web_api_key},
                timeout=self._settings.request_timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as e:
            raise AuthError("NETWORK_REQUEST_FAILED", str(e)) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code != 200:
            message = body.get("error", {}).get("message") if isinstance(body, dict) else None
            raise AuthError(message or "UNKNOWN", f"HTTP {response.status_code}: {message}")
        return body

    def _identity(self, method: str, payload: dict) -> dict:
        return self._post(f"{IDENTITY_TOOLKIT_URL}:{method}", json=payload)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        data = self._identity("signInWithPassword", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        logger.info("provider_sign_in", uid=data["localId"])
        return AuthResult(
            user=AuthUser(
                uid=data["localId"],
                email=data.get("email", email),
                display_name=data.get("displayName") or None,
            ),
            refresh_token=data.get("refreshToken"),
        )

    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        data = self._identity("signUp", {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        # The account exists from here on; the display name is a second call
        self._identity("update", {
            "idToken": data["idToken"],
            "displayName": name,
            "returnSecureToken": False,
        })
        logger.info("provider_sign_up", uid=data["localId"])
        return AuthResult(
            user=AuthUser(
                uid=data["localId"],
                email=data.get("email", email),
                display_name=name,
            ),
            refresh_token=data.get("refreshToken"),
        )

    async def refresh(self, refresh_token: str) -> AuthResult:
        tokens = self._post(SECURE_TOKEN_URL, data={
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        lookup = self._identity("lookup", {"idToken": tokens["id_token"]})
        users = lookup.get("users") or []
        if not users:
            raise AuthError("USER_NOT_FOUND", "Refresh token has no user")

        account = users[0]
        return AuthResult(
            user=AuthUser(
                uid=account.get("localId", tokens.get("user_id")),
                email=account.get("email"),
                display_name=account.get("displayName") or None,
            ),
            refresh_token=tokens.get("refresh_token", refresh_token),
        )

    async def sign_out(self) -> None:
        # Tokens are bearer tokens; dropping them client-side is signing out
        logger.info("provider_sign_out")
