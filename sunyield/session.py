"""Authenticated session for one client instance.

States move ``anonymous -> pending -> authenticated`` and back to
``anonymous`` on logout. A ``Session`` is an ordinary object: build one per
client (or per test) and pass it to whatever needs the current user.
"""

from enum import StrEnum

import structlog

from sunyield.client.api import AdminAPI, AuthAPI
from sunyield.client.errors import ApiError
from sunyield.client.tokens import TokenStore
from sunyield.models import KycStatus, User
from sunyield.shared.notifications import Notifier

logger = structlog.get_logger()


class SessionState(StrEnum):
    ANONYMOUS = "anonymous"
    PENDING = "pending"
    AUTHENTICATED = "authenticated"


class SessionError(Exception):
    """The session could not be established locally."""


class Session:
    def __init__(
        self,
        auth_api: AuthAPI,
        tokens: TokenStore,
        notifier: Notifier | None = None,
        admin_api: AdminAPI | None = None,
    ) -> None:
        self._auth = auth_api
        self._admin = admin_api
        self._tokens = tokens
        self.notifier = notifier or Notifier()
        self.user: User | None = None
        self.state = SessionState.ANONYMOUS
        self.is_loading = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin_authenticated(self) -> bool:
        return self._tokens.admin_token is not None

    @property
    def kyc_approved(self) -> bool:
        return self.user is not None and self.user.kyc_status == KycStatus.APPROVED

    async def restore(self) -> User | None:
        """Resume a persisted session, if any.

        A token that no longer resolves to a user is discarded; there is no
        retry.
        """
        if not self._tokens.user_token:
            self.state = SessionState.ANONYMOUS
            return None

        self.state = SessionState.PENDING
        self.is_loading = True
        try:
            user = await self._auth.current_user()
        except ApiError as exc:
            logger.info("session_restore_failed", kind=exc.kind.value)
            self._tokens.clear_user()
            self.user = None
            self.state = SessionState.ANONYMOUS
            return None
        finally:
            self.is_loading = False

        self.user = user
        self.state = SessionState.AUTHENTICATED
        logger.info("session_restored", user_id=user.id)
        return user

    def login(self, token: str, user: User) -> None:
        try:
            self._tokens.set_user_token(token)
        except OSError as exc:
            logger.error("token_persist_failed", user_id=user.id, error=str(exc))
            raise SessionError("Could not store session token") from exc
        self.user = user
        self.state = SessionState.AUTHENTICATED
        logger.info("session_started", user_id=user.id)

    async def login_with_credentials(self, email: str, password: str) -> User:
        self.is_loading = True
        try:
            response = await self._auth.login(email, password)
            self.login(response.token, response.user)
        except ApiError as exc:
            self.notifier.error(exc.message or "Login failed")
            raise
        finally:
            self.is_loading = False
        self.notifier.success("Login successful!")
        return response.user

    async def register(self, email: str, password: str, full_name: str, contact: str) -> None:
        """Create the account and trigger OTP delivery. Does not log in."""
        self.is_loading = True
        try:
            await self._auth.register(email, password, full_name, contact)
        except ApiError as exc:
            self.notifier.error(exc.message or "Registration failed")
            raise
        finally:
            self.is_loading = False
        self.notifier.success(
            "Registration successful! Please check your email for OTP verification."
        )

    async def verify_otp(self, email: str, otp: str) -> User:
        self.is_loading = True
        try:
            response = await self._auth.verify_otp(email, otp)
            self.login(response.token, response.user)
        except ApiError as exc:
            self.notifier.error(exc.message or "OTP verification failed")
            raise
        finally:
            self.is_loading = False
        self.notifier.success("OTP verified successfully! You are now logged in.")
        return response.user

    async def resend_otp(self, email: str) -> None:
        try:
            await self._auth.resend_otp(email)
        except ApiError as exc:
            self.notifier.error(exc.message or "Could not resend OTP")
            raise
        self.notifier.success("A new OTP has been sent to your email.")

    async def admin_login(self, email: str, password: str) -> None:
        if self._admin is None:
            raise SessionError("Admin login is not available on this session")
        try:
            token = await self._admin.login(email, password)
        except ApiError as exc:
            self.notifier.error(exc.message or "Admin login failed")
            raise
        self._tokens.set_admin_token(token)
        logger.info("admin_session_started")

    def admin_logout(self) -> None:
        self._tokens.clear_admin()

    def logout(self) -> None:
        if self.user is not None:
            logger.info("session_ended", user_id=self.user.id)
        self._tokens.clear_user()
        self.user = None
        self.state = SessionState.ANONYMOUS
        self.notifier.success("Logged out successfully")

    def update_user(self, user: User) -> None:
        self.user = user
