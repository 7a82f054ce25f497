"""
Authentication Session

AuthSession is the one object that knows who is signed in. The app
keeps it in Streamlit session state (one per browser tab) and passes
it to every flow; nothing reads the current user from a global.

Views subscribe to it to re-run owner-scoped fetches whenever the
user changes. Subscribers are called with the new user (or None)
after every sign-in, sign-up, sign-out and restore.

"Keep me signed in" is opt-in per sign-in. The session then hands the
app a sealed token to store in that browser's cookie; restore() only
ever sees the token its own browser sent back.
"""

from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from finance_tracker.models.user import AuthUser, UserProfile
from finance_tracker.services.auth.interface import (
    AuthError,
    AuthResult,
    IdentityProviderInterface,
    NotAuthenticatedError,
)
from finance_tracker.services.auth.persistence import SessionPersistence
from finance_tracker.services.storage.interface import (
    StoreError,
    UserProfileStoreInterface,
)

logger = structlog.get_logger(__name__)

Subscriber = Callable[[Optional[AuthUser]], None]


@dataclass(frozen=True)
class CookieUpdate:
    """A change the app must apply to the browser's session cookie."""

    value: Optional[str]

    @property
    def removes(self) -> bool:
        return self.value is None


class AuthSession:
    """
    Current user, loading flag and change notifications.

    `loading` is True until the first restore() or sign-in attempt
    has settled; views render nothing user-specific while it is set.
    """

    def __init__(
        self,
        provider: IdentityProviderInterface,
        profiles: Optional[UserProfileStoreInterface] = None,
        persistence: Optional[SessionPersistence] = None,
    ):
        self._provider = provider
        self._profiles = profiles
        self._persistence = persistence
        self._user: Optional[AuthUser] = None
        self._loading = True
        self._subscribers: list[Subscriber] = []
        self._cookie_update: Optional[CookieUpdate] = None

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def can_remember(self) -> bool:
        return self._persistence is not None

    def require_user(self) -> AuthUser:
        if self._user is None:
            raise NotAuthenticatedError("No signed-in user")
        return self._user

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a change callback; returns the function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def pop_cookie_update(self) -> Optional[CookieUpdate]:
        """The pending cookie change, once."""
        update, self._cookie_update = self._cookie_update, None
        return update

    def _set_user(self, user: Optional[AuthUser]) -> None:
        self._loading = False
        self._user = user
        for callback in list(self._subscribers):
            callback(user)

    def _forget(self) -> None:
        if self._persistence is not None:
            self._cookie_update = CookieUpdate(None)

    def _accept(self, result: AuthResult, remember: bool = False) -> AuthUser:
        if remember and self._persistence is not None:
            self._cookie_update = CookieUpdate(
                self._persistence.seal(result.user, result.refresh_token)
            )
        self._set_user(result.user)
        return result.user

    async def sign_in(self, email: str, password: str, remember: bool = False) -> AuthUser:
        """
        Sign in with e-mail and password.

        Raises:
            AuthError: With a user-facing message when rejected
        """
        try:
            result = await self._provider.sign_in(email.strip(), password)
        except AuthError as e:
            self._loading = False
            logger.warning("sign_in_failed", code=e.code)
            raise

        logger.info("signed_in", uid=result.user.uid, remember=remember)
        return self._accept(result, remember)

    async def sign_up(
        self,
        name: str,
        email: str,
        password: str,
        remember: bool = False,
    ) -> AuthUser:
        """
        Create an account, write its profile document and sign in.

        Raises:
            AuthError: With a user-facing message when rejected
        """
        name = name.strip()
        email = email.strip()
        try:
            result = await self._provider.sign_up(name, email, password)
        except AuthError as e:
            self._loading = False
            logger.warning("sign_up_failed", code=e.code)
            raise

        if self._profiles is not None:
            profile = UserProfile(
                uid=result.user.uid,
                name=name or email,
                email=result.user.email or email,
            )
            try:
                await self._profiles.save_profile(profile)
            except StoreError as e:
                # The account exists either way; the profile is informational
                logger.error("profile_save_failed", uid=result.user.uid, error=str(e))

        logger.info("signed_up", uid=result.user.uid)
        return self._accept(result, remember)

    async def sign_out(self) -> None:
        uid = self._user.uid if self._user else None
        await self._provider.sign_out()
        self._forget()
        logger.info("signed_out", uid=uid)
        self._set_user(None)

    async def restore(self, token: Optional[str] = None) -> Optional[AuthUser]:
        """
        Restore the session sealed in this browser's cookie, if any.

        Always settles the loading flag and notifies subscribers.
        """
        if self._persistence is None or not token:
            self._set_user(self._user)
            return self._user

        payload = self._persistence.open(token)
        refresh_token = payload.get("refresh_token") if payload else None
        if not refresh_token:
            self._forget()
            self._set_user(self._user)
            return self._user

        try:
            result = await self._provider.refresh(refresh_token)
        except AuthError as e:
            logger.warning("session_restore_failed", code=e.code)
            self._forget()
            self._set_user(None)
            return None

        logger.info("session_restored", uid=result.user.uid)
        # Re-seal so a rotated refresh token reaches the cookie
        return self._accept(result, remember=True)
