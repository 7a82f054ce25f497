"""
Abstract Identity Provider Interface

DESIGN DECISION: Authentication is delegated to an external provider.
The app never sees password hashes; it only receives a uid and a
refresh token it can trade for a fresh sign-in later.

Provider failures surface as AuthError carrying the provider's error
code and a short Portuguese message the UI can show as-is.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field

from finance_tracker.models.user import AuthUser

INVALID_CREDENTIALS_MESSAGE = "E-mail ou senha inválidos."
UNKNOWN_ERROR_MESSAGE = "Ocorreu um erro desconhecido."

# Provider error code -> message shown to the user
AUTH_ERROR_MESSAGES = {
    "EMAIL_NOT_FOUND": INVALID_CREDENTIALS_MESSAGE,
    "INVALID_PASSWORD": INVALID_CREDENTIALS_MESSAGE,
    "INVALID_LOGIN_CREDENTIALS": INVALID_CREDENTIALS_MESSAGE,
    "EMAIL_EXISTS": "Este e-mail já está cadastrado.",
    "INVALID_EMAIL": "E-mail inválido.",
    "WEAK_PASSWORD": "A senha deve ter pelo menos 6 caracteres.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Muitas tentativas. Tente novamente mais tarde.",
    "USER_DISABLED": "Esta conta foi desativada.",
}


def normalize_error_code(raw: Optional[str]) -> str:
    """
    Reduce a provider error message to its code.

    The REST API sometimes appends detail after the code:
    "WEAK_PASSWORD : Password should be at least 6 characters".
    """
    if not raw:
        return "UNKNOWN"
    return raw.split(":", 1)[0].strip().upper() or "UNKNOWN"


def message_for_code(code: str) -> str:
    return AUTH_ERROR_MESSAGES.get(normalize_error_code(code), UNKNOWN_ERROR_MESSAGE)


class AuthError(Exception):
    """Sign-in, sign-up or refresh was rejected by the provider."""

    def __init__(self, code: str, detail: Optional[str] = None):
        self.code = normalize_error_code(code)
        self.user_message = message_for_code(self.code)
        super().__init__(detail or self.code)


class NotAuthenticatedError(Exception):
    """A view that needs a signed-in user was opened without one."""

    user_message = "Por favor, faça login para acessar esta página."


class AuthResult(BaseModel):
    """What a successful sign-in, sign-up or refresh yields."""

    user: AuthUser
    refresh_token: Optional[str] = Field(
        default=None,
        description="Long-lived token used to restore the session"
    )


class IdentityProviderInterface(ABC):
    """
    Abstract interface for identity provider operations.

    Every method raises AuthError when the provider rejects the call.
    """

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        """Authenticate with e-mail and password."""
        pass

    @abstractmethod
    async def sign_up(self, name: str, email: str, password: str) -> AuthResult:
        """Create an account and set its display name."""
        pass

    @abstractmethod
    async def refresh(self, refresh_token: str) -> AuthResult:
        """Trade a refresh token for the user it belongs to."""
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        pass
